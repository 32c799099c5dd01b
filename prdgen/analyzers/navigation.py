"""Navigation extraction from file-system routes, routers and nav components."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Sequence, Set

from ..models import NavigationItem, ScanResult
from .base import DetectionResult, Detector
from .endpoints.core import normalize_path
from .utils import file_stem, screen_framework, title_case

_ROUTE_ROOT = re.compile(r"(?:^|/)(pages|app)/(.*)$")
_ROUTE_SUFFIX = re.compile(r"\.(tsx|jsx|ts|js)$")
_APP_ROUTER_FILE = re.compile(r"/(page|layout|loading|error|not-found)$")
_ROUTE_GROUP = re.compile(r"/\([^/)]*\)")
_ROUTER_FILE = re.compile(r"(^|/)(App|routes?|router|Routes|Router)\.(tsx|jsx)$")
_SPECIAL_PAGES = {"_app", "_document", "_error", "404", "500", "layout", "loading", "error", "not-found"}

NAV_FILES: tuple[str, ...] = (
    "src/components/Navigation.tsx",
    "src/components/Nav.tsx",
    "src/components/Navbar.tsx",
    "src/components/Sidebar.tsx",
    "src/components/Header.tsx",
    "src/components/AppLayout.tsx",
    "src/components/Layout.tsx",
    "components/Navigation.tsx",
    "components/Navbar.tsx",
    "components/Sidebar.tsx",
    "components/Header.tsx",
    "app/layout.tsx",
    "src/app/layout.tsx",
    "src/App.tsx",
    "src/App.jsx",
    "src/routes.tsx",
    "src/router.tsx",
)

_LINK_TO = re.compile(r"<(?:Link|NavLink)\b[^>]*?\bto=\{?\s*['\"`](/[^'\"`]*)['\"`][^>]*>\s*([^<{]*)")
_LINK_HREF = re.compile(r"<(?:Link|a)\b[^>]*?\bhref=\{?\s*['\"`](/[^'\"`]*)['\"`][^>]*>\s*([^<{]*)")
_NAV_ENTRY = re.compile(
    r"\{\s*(?:path|href|to)\s*:\s*['\"`](/[^'\"`]*)['\"`]\s*,\s*(?:label|name|title)\s*:\s*['\"`]([^'\"`]+)['\"`]"
)
_NAV_ENTRY_REVERSED = re.compile(
    r"\{\s*(?:label|name|title)\s*:\s*['\"`]([^'\"`]+)['\"`]\s*,\s*(?:path|href|to)\s*:\s*['\"`](/[^'\"`]*)['\"`]"
)
_ROUTER_ROUTE = re.compile(
    r"<Route\b[^>]*?\bpath=['\"]([^'\"]+)['\"][^>]*?\belement=\{\s*<\s*(\w+)"
)
_ROUTER_OBJECT = re.compile(
    r"\{\s*path\s*:\s*['\"]([^'\"]+)['\"]\s*,\s*element\s*:\s*<\s*(\w+)"
)


def route_for_screen(relative: str) -> Optional[str]:
    """Return the URL of a file-system routed page, or ``None`` if not a route."""
    match = _ROUTE_ROOT.search(relative)
    if match is None:
        return None
    rest = "/" + _ROUTE_SUFFIX.sub("", match.group(2))
    if rest.startswith("/api/") or rest == "/api":
        return None
    if file_stem(relative) in _SPECIAL_PAGES and match.group(1) == "pages":
        return None
    if match.group(1) == "app":
        if not rest.endswith("/page") and rest != "/page":
            return None
        rest = _APP_ROUTER_FILE.sub("", rest)
    rest = _ROUTE_GROUP.sub("", rest)
    rest = re.sub(r"/index$", "", rest)
    return normalize_path(rest or "/")


def label_for_path(path: str) -> str:
    segments = [segment for segment in path.split("/") if segment and not segment.startswith(":")]
    if not segments:
        return "Home"
    return title_case(segments[-1])


def extract_router_routes(content: str, path: str) -> Iterator[NavigationItem]:
    for pattern in (_ROUTER_ROUTE, _ROUTER_OBJECT):
        for match in pattern.finditer(content):
            route, component = match.groups()
            url = normalize_path(route) if route != "*" else "*"
            yield NavigationItem(
                path=url,
                label=title_case(component) if component else label_for_path(url),
                source="react-router",
                screen=component,
            )


def extract_links(content: str, path: str) -> Iterator[NavigationItem]:
    for pattern in (_LINK_TO, _LINK_HREF):
        for match in pattern.finditer(content):
            url, text = match.groups()
            label = " ".join(text.split())
            if not label or len(label) >= 50:
                label = label_for_path(url)
            yield NavigationItem(path=normalize_path(url), label=label, source="link")
    for match in _NAV_ENTRY.finditer(content):
        url, label = match.groups()
        yield NavigationItem(path=normalize_path(url), label=label, source="nav-config")
    for match in _NAV_ENTRY_REVERSED.finditer(content):
        label, url = match.groups()
        yield NavigationItem(path=normalize_path(url), label=label, source="nav-config")


class NavigationDetector(Detector):
    """Builds the route map from pages, routers and navigation components."""

    name = "navigation"

    def candidates(self, scan: ScanResult) -> Sequence[str]:
        known = set(scan.all_files)
        nav_files = [path for path in NAV_FILES if path in known]
        router_files = [
            path
            for path in scan.all_files
            if path not in nav_files and _ROUTER_FILE.search(path)
        ]
        return nav_files + router_files

    def extract(self, content: str, path: str) -> Iterable[NavigationItem]:
        found = list(extract_router_routes(content, path))
        found.extend(extract_links(content, path))
        return found

    def detect(self, scan: ScanResult) -> DetectionResult:
        result = super().detect(scan)
        result.facts = self.finalize(list(self._file_routes(scan)) + result.facts)
        result.framework = self.tag(result.facts)
        return result

    def _file_routes(self, scan: ScanResult) -> Iterator[NavigationItem]:
        for screen in scan.screens:
            url = route_for_screen(screen)
            if url is None:
                continue
            yield NavigationItem(path=url, label=label_for_path(url), source="file-route", screen=screen)

    def finalize(self, facts: List[NavigationItem]) -> List[NavigationItem]:
        seen: Set[str] = set()
        unique: List[NavigationItem] = []
        for item in facts:
            if item.path in seen:
                continue
            seen.add(item.path)
            unique.append(item)
        return unique

    def framework_of(self, fact: NavigationItem) -> Optional[str]:
        if fact.source == "file-route" and fact.screen:
            return screen_framework(fact.screen)
        return {"react-router": "react-router"}.get(fact.source)


__all__ = ["NavigationDetector", "extract_links", "extract_router_routes", "label_for_path", "route_for_screen"]
