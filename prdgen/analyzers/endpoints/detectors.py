"""API endpoint detection across client and server idioms."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from ...models import Endpoint, ScanResult
from ..base import Detector
from ..utils import line_of
from .core import dedupe_endpoints, route_path_from_file

_SCRIPT_FILE = re.compile(r"\.(tsx|jsx|ts|js|mjs|cjs)$")
_DECLARATION_FILE = re.compile(r"\.d\.ts$")


@dataclass(frozen=True)
class CallIdiom:
    """Regex describing one call-site idiom and how to read its match."""

    name: str
    pattern: re.Pattern[str]
    framework: str
    method: Callable[[re.Match[str], str], str]
    path: Callable[[re.Match[str]], str]


def _fixed(verb: str) -> Callable[[re.Match[str], str], str]:
    return lambda _match, _text: verb


def _group(name: str) -> Callable[[re.Match[str], str], str]:
    return lambda match, _text: match.group(name)


def _fetch_method(match: re.Match[str], text: str) -> str:
    # Options object follows the URL literal; look no further than the call's end.
    window = text[match.end() : match.end() + 400].split(";", 1)[0]
    found = re.search(r"method\s*:\s*['\"`](\w+)['\"`]", window)
    return found.group(1) if found else "GET"


# ---------------------------------------------------------------------------
# Call-site idioms
# ---------------------------------------------------------------------------

_QUOTED_PATH = r"""(?P<q>[`'"])(?P<path>[^`'"\n]+)(?P=q)"""

CALL_IDIOMS: Tuple[CallIdiom, ...] = (
    CallIdiom(
        name="fetch",
        pattern=re.compile(r"\bfetch\(\s*" + _QUOTED_PATH),
        framework="client",
        method=_fetch_method,
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="axios",
        pattern=re.compile(r"\baxios\.(?P<verb>get|post|put|patch|delete)\(\s*" + _QUOTED_PATH),
        framework="client",
        method=_group("verb"),
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="query-hook",
        pattern=re.compile(r"\buseQuery\([^)]*?" + _QUOTED_PATH, re.S),
        framework="client",
        method=_fixed("GET"),
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="mutation-hook",
        pattern=re.compile(r"\buseMutation\([^)]*?" + _QUOTED_PATH, re.S),
        framework="client",
        method=_fixed("POST"),
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="api-client",
        pattern=re.compile(
            r"\b(?:api|apiClient|client|http)\.(?P<verb>get|post|put|patch|delete)\(\s*" + _QUOTED_PATH
        ),
        framework="client",
        method=_group("verb"),
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="express",
        pattern=re.compile(
            r"\b(?:router|app|server)\.(?P<verb>get|post|put|patch|delete|all)\(\s*" + _QUOTED_PATH
        ),
        framework="express",
        method=_group("verb"),
        path=lambda match: match.group("path"),
    ),
    CallIdiom(
        name="graphql",
        pattern=re.compile(r"\b(?P<kind>query|mutation)\s+(?P<name>[A-Z]\w*)\s*[({]"),
        framework="graphql",
        method=_fixed("GRAPHQL"),
        path=lambda match: f"/graphql/{match.group('name')}",
    ),
)

_ROUTE_HANDLER_EXPORT = re.compile(
    r"export\s+(?:async\s+function\s+|function\s+|const\s+)"
    r"(?P<verb>GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\b"
)


def extract_call_sites(
    content: str, path: str, idioms: Sequence[CallIdiom] = CALL_IDIOMS
) -> Iterator[Endpoint]:
    """Yield endpoints for every idiom match whose URL is a rooted path."""
    for idiom in idioms:
        for match in idiom.pattern.finditer(content):
            url = idiom.path(match).strip()
            if not url.startswith("/"):
                continue
            yield Endpoint(
                method=idiom.method(match, content),
                path=url,
                file=path,
                line=line_of(content, match.start()),
                framework=idiom.framework,
            )


def extract_route_handlers(content: str, path: str) -> Iterator[Endpoint]:
    """Yield one endpoint per exported HTTP-verb handler in a route file."""
    if "/api/" not in f"/{path}" and not re.search(r"(^|/)route\.(ts|js)$", path):
        return
    url = route_path_from_file(path)
    if url is None:
        return
    for match in _ROUTE_HANDLER_EXPORT.finditer(content):
        yield Endpoint(
            method=match.group("verb"),
            path=url,
            file=path,
            line=line_of(content, match.start()),
            framework="nextjs",
        )


class ApiEndpointDetector(Detector):
    """Finds API call sites and route handlers in JavaScript/TypeScript sources."""

    name = "api"

    def candidates(self, scan: ScanResult) -> Sequence[str]:
        return [
            path
            for path in scan.all_files
            if _SCRIPT_FILE.search(path) and not _DECLARATION_FILE.search(path)
        ]

    def extract(self, content: str, path: str) -> Iterable[Endpoint]:
        found: List[Endpoint] = list(extract_route_handlers(content, path))
        found.extend(extract_call_sites(content, path))
        return found

    def finalize(self, facts: List[Endpoint]) -> List[Endpoint]:
        return dedupe_endpoints(facts)

    def framework_of(self, fact: Endpoint) -> Optional[str]:
        # Server-side tags describe the backend better than client call sites.
        return None if fact.framework == "client" else fact.framework


__all__ = [
    "ApiEndpointDetector",
    "CALL_IDIOMS",
    "CallIdiom",
    "extract_call_sites",
    "extract_route_handlers",
]
