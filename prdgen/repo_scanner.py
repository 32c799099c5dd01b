"""Repository scanning and path classification."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .config import CONFIG_FILENAME, ConfigError, load_config
from .logging import get_logger
from .models import ScanResult

_EXCLUDED_DIRS = {
    "node_modules",
    "dist",
    "build",
    "out",
    "coverage",
    "vendor",
    "__pycache__",
    "venv",
    "env",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

_SCRIPT_SUFFIX = re.compile(r"\.(tsx|jsx|ts|js)$")
_UI_PRIMITIVE_DIR = re.compile(r"/(components/)?ui/")
_UI_PRIMITIVE_NAME = re.compile(
    r"/(button|input|card|dialog|modal|badge|label|select|checkbox|tooltip|avatar|"
    r"separator|skeleton|switch|tabs|textarea|toast|popover|dropdown-menu|sheet|"
    r"table|form|alert|accordion|slider|toggle|progress|scroll-area)\.(tsx|jsx|ts|js)$",
    re.IGNORECASE,
)
_SCREEN_DIRS = re.compile(r"/(pages|app|screens|views)/")
_SCREEN_NAME = re.compile(r"(page|screen)\.(tsx|jsx|ts|js)$", re.IGNORECASE)
_COMPONENT_FILE = re.compile(r"/components/(?:[^/]+/)*([A-Z][A-Za-z0-9]*)\.(tsx|jsx)$")

_API_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/(api|routes)/"),
    re.compile(r"/route\.(ts|js)$"),
    re.compile(r"/api\.(ts|js)$"),
)

_MODEL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/schema\.prisma$"),
    re.compile(r"/schema\.(ts|js)$"),
    re.compile(r"/models?\.(ts|js)$"),
    re.compile(r"/models/"),
    re.compile(r"/schemas?/"),
)

_logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .prdgen.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False
        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def _build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None
    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]
    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return []
    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        rule = _build_ignore_rule(line[1:] if negate else line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _parse_config_excludes(root: Path) -> List[IgnoreRule]:
    try:
        config = load_config(root / CONFIG_FILENAME)
    except (ConfigError, OSError) as exc:
        _logger.debug("Ignoring unreadable %s: %s", CONFIG_FILENAME, exc)
        return []
    rules: List[IgnoreRule] = []
    for pattern in config.exclude_paths:
        rule = _build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def _load_ignore_rules(root: Path) -> List[IgnoreRule]:
    rules = _parse_gitignore(root / ".gitignore")
    rules.extend(_parse_config_excludes(root))
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[str]:
    # os.walk drops unreadable directories silently (onerror=None).
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS or name.startswith("."):
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield rel_path


def is_screen(rel_path: str) -> bool:
    """Page, screen or top-level component file by path convention."""
    anchored = f"/{rel_path}"
    if not _SCRIPT_SUFFIX.search(anchored):
        return False
    if _UI_PRIMITIVE_DIR.search(anchored) or _UI_PRIMITIVE_NAME.search(anchored):
        return False
    if is_api_file(rel_path):
        return False
    if _SCREEN_DIRS.search(anchored) or _SCREEN_NAME.search(anchored):
        return True
    match = _COMPONENT_FILE.search(anchored)
    if match is None:
        return False
    stem = match.group(1)
    return not (stem.lower().startswith("use") or stem.lower() == "index")


def is_api_file(rel_path: str) -> bool:
    anchored = f"/{rel_path}"
    return any(pattern.search(anchored) for pattern in _API_PATTERNS)


def is_model_file(rel_path: str) -> bool:
    anchored = f"/{rel_path}"
    return any(pattern.search(anchored) for pattern in _MODEL_PATTERNS)


class RepoScanner:
    """Walks the repository and classifies file paths."""

    def scan(self, root: str | Path) -> ScanResult:
        """Return the path classification for ``root``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")

        rules = _load_ignore_rules(root_path)
        result = ScanResult(root=str(root_path))
        for rel_path in _iter_files(root_path, rules):
            result.all_files.append(rel_path)
            if is_screen(rel_path):
                result.screens.append(rel_path)
            if is_api_file(rel_path) and _SCRIPT_SUFFIX.search(rel_path):
                result.api_files.append(rel_path)
            if is_model_file(rel_path):
                result.model_files.append(rel_path)

        _logger.debug(
            "Scanned %d files (%d screens, %d api, %d models)",
            len(result.all_files),
            len(result.screens),
            len(result.api_files),
            len(result.model_files),
        )
        return result


__all__ = ["IgnoreRule", "RepoScanner", "is_api_file", "is_model_file", "is_screen"]
