"""CLI entrypoints for prdgen commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config, resolve_settings
from .errors import PrdGenError
from .logging import configure_logging
from .orchestrator import Orchestrator
from .service import run_service


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the extracted repository (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prdgen",
        description="Generate product requirements documents from repository analysis.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write DEBUG-level logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Extract technical facts without calling the completion service.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_path_argument(scan_parser)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Run the full pipeline and write the document as JSON.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    generate_parser.add_argument(
        "--brief",
        type=Path,
        help="Text file with an uploaded project brief to use as evidence.",
    )
    generate_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write the JSON document here instead of stdout.",
    )
    generate_parser.add_argument(
        "--tier1-only",
        action="store_true",
        help="Stop after fact extraction.",
    )
    generate_parser.add_argument(
        "--skip-section",
        action="append",
        default=[],
        metavar="NAME",
        help="Skip a detailed section by name (repeatable).",
    )
    generate_parser.add_argument(
        "--config",
        type=Path,
        help="Path to a .prdgen.yml file (defaults to the one in the repository).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for prdgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "scan":
        try:
            tier1 = Orchestrator().scan(args.path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        payload = {"project": tier1.project.name, **tier1.facts.to_dict()}
        print(json.dumps(payload, indent=2))
    elif args.command == "generate":
        try:
            orchestrator = Orchestrator(settings=_settings_from(args.config))
            brief_text = args.brief.read_text(encoding="utf-8") if args.brief else None
            result = orchestrator.run(
                args.path,
                brief_text=brief_text,
                tier1_only=bool(args.tier1_only),
                skip_sections=tuple(args.skip_section),
            )
        except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        except PrdGenError as exc:
            parser.exit(1, f"prdgen generate failed: {exc}\nRun with --verbose for more details.\n")
        rendered = json.dumps(result.to_dict(), indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(rendered + "\n", encoding="utf-8")
            print(f"Document written to {_relativize(args.output)}")
        else:
            print(rendered)
        for failure in result.failed_sections:
            print(f"warning: section {failure.section} was not generated: {failure.error}", file=sys.stderr)
    elif args.command == "serve":
        run_service(args.host, args.port, verbose=bool(args.verbose))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _settings_from(config_path: Path | None):
    if config_path is None:
        return None
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    return resolve_settings(load_config(config_path))


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
