"""Logging utilities for prdgen pipelines."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "prdgen"
_CONSOLE_FORMAT = "[prdgen] %(levelname)s %(message)s"
_VERBOSE_CONSOLE_FORMAT = "[prdgen] %(levelname)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger below the prdgen hierarchy.

    ``get_logger("tier2")`` yields ``prdgen.tier2``; no argument yields the
    package logger that ``configure_logging`` attaches handlers to.
    """
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach console (and optional file) handlers to the prdgen logger.

    Verbose mode lowers the console level to DEBUG and prefixes each line
    with the emitting component.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI or service start-up must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_VERBOSE_CONSOLE_FORMAT if verbose else _CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_sink = logging.FileHandler(log_file, encoding="utf-8")
        file_sink.setLevel(logging.DEBUG)
        file_sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_sink)
        # File sink records DEBUG regardless of console level.
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
