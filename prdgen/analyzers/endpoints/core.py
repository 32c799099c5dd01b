"""Shared endpoint normalization helpers."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Tuple

from ...models import Endpoint

PLACEHOLDER = ":param"

_PARAM_PATTERNS: List[Tuple[re.Pattern[str], str]] = [
    (re.compile(r"\$\{[^}]*\}"), PLACEHOLDER),
    (re.compile(r"\[\.\.\.([A-Za-z_][A-Za-z0-9_]*)\]"), r":\1"),
    (re.compile(r"\[([A-Za-z_][A-Za-z0-9_]*)\]"), r":\1"),
    (re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}"), r":\1"),
    (re.compile(r"<(?:[A-Za-z_]+:)?([A-Za-z_][A-Za-z0-9_]*)>"), r":\1"),
]

_QUERY_OR_FRAGMENT = re.compile(r"[?#].*$")
_ROUTE_GROUP = re.compile(r"/\([^/)]*\)")


def normalize_path(path: str) -> str:
    """Return a canonical path with dynamic segments replaced by placeholders."""
    if not path:
        return "/"
    result = path.strip()
    for pattern, replacement in _PARAM_PATTERNS:
        result = pattern.sub(replacement, result)
    result = _QUERY_OR_FRAGMENT.sub("", result)
    if not result.startswith("/"):
        result = "/" + result
    result = re.sub(r"/{2,}", "/", result)
    if len(result) > 1 and result.endswith("/"):
        result = result[:-1]
    return result or "/"


def method_upper(value: str) -> str:
    """Normalize HTTP verbs to uppercase."""
    return (value or "").strip().upper()


def route_path_from_file(relative: str) -> Optional[str]:
    """Derive the URL of a file-system route handler (``app/api/x/route.ts``)."""
    match = re.search(r"(?:^|/)(api/.+)$", relative)
    if match is None:
        return None
    path = "/" + match.group(1)
    path = re.sub(r"/route\.(ts|js)$", "", path)
    path = re.sub(r"(/index)?\.(tsx|jsx|ts|js)$", "", path)
    path = _ROUTE_GROUP.sub("", path)
    return normalize_path(path)


def dedupe_endpoints(endpoints: Iterable[Endpoint]) -> List[Endpoint]:
    """Keep the first endpoint per (method, path) and sort for stable output."""
    results: Dict[Tuple[str, str], Endpoint] = {}
    for endpoint in endpoints:
        method = method_upper(endpoint.method)
        path = normalize_path(endpoint.path)
        key = (method, path)
        if key in results:
            continue
        results[key] = Endpoint(
            method=method,
            path=path,
            file=endpoint.file,
            line=endpoint.line,
            framework=endpoint.framework,
        )
    return sorted(results.values(), key=lambda ep: (ep.path, ep.method))


__all__ = [
    "Endpoint",
    "PLACEHOLDER",
    "dedupe_endpoints",
    "method_upper",
    "normalize_path",
    "route_path_from_file",
]
