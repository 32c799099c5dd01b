"""Shared helper utilities for detector implementations."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

_WORD_SPLIT = re.compile(r"[-_\s]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def read_text(root: Path, relative: str) -> Optional[str]:
    """Return file contents, or ``None`` when the file cannot be read."""
    path = root / relative
    try:
        if path.is_file():
            return path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None
    return None


def title_case(value: str) -> str:
    """``user-profile`` / ``user_profile`` / ``userProfile`` -> ``User Profile``."""
    spaced = _CAMEL_BOUNDARY.sub(" ", value)
    words = [word for word in _WORD_SPLIT.split(spaced) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def file_stem(relative: str) -> str:
    name = relative.rsplit("/", 1)[-1]
    return name.split(".", 1)[0]


def line_of(text: str, index: int) -> int:
    """Return 1-based line number for a character index."""
    return text.count("\n", 0, index) + 1


def screen_framework(relative: str) -> str:
    """Guess the UI framework that owns a screen file from its location."""
    anchored = f"/{relative}"
    if "/src/pages/" in anchored:
        return "react"
    if "/app/" in anchored or "/pages/" in anchored:
        return "nextjs"
    if "/screens/" in anchored:
        return "react-native"
    return "react"


def match_block(text: str, open_index: int) -> str:
    """Return the text between the brace at ``open_index`` and its partner."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : index]
    return text[open_index + 1 :]


__all__ = ["file_stem", "line_of", "match_block", "read_text", "screen_framework", "title_case"]
