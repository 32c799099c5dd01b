"""Tier-1: deterministic fact extraction and the document skeleton."""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .. import __version__
from ..analyzers import DetectionResult, Detector, discover_detectors
from ..analyzers.utils import read_text, screen_framework, title_case
from ..logging import get_logger
from ..models import (
    DataModel,
    Endpoint,
    EventFact,
    NavigationItem,
    PrdDocument,
    ProjectInfo,
    ScanResult,
    Screen,
    StatePattern,
    TechnicalFacts,
)
from ..repo_scanner import RepoScanner

_README_CANDIDATES = ("README.md", "README.txt", "readme.md", "readme.txt")
_HEADING = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.M)


@dataclass
class Tier1Result:
    """Facts, project identity and per-detector framework tags."""

    project: ProjectInfo
    facts: TechnicalFacts
    frameworks: Dict[str, Optional[str]] = field(default_factory=dict)
    file_count: int = 0


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def derive_project_name(root: Path) -> str:
    """Project name from package metadata, README heading, or the directory."""
    package = _load_package_json(root)
    name = package.get("name") if package else None
    if isinstance(name, str) and name.strip():
        bare = name.strip().split("/")[-1]
        return title_case(bare)

    for candidate in _README_CANDIDATES:
        text = read_text(root, candidate)
        if text is None:
            continue
        match = _HEADING.search(text)
        if match:
            return match.group(1).strip()

    directory = re.sub(r"^repo-", "", root.name)
    return title_case(directory) or "Untitled Project"


def detect_stack(root: Path, scan: ScanResult, frameworks: Dict[str, Optional[str]]) -> List[str]:
    stack: List[str] = []

    def _add(tag: str) -> None:
        if tag not in stack:
            stack.append(tag)

    anchored = [f"/{path}" for path in scan.all_files]
    if any("/app/" in path or "/pages/api/" in path for path in anchored) or any(
        path.startswith("/next.config.") for path in anchored
    ):
        _add("nextjs")
    if any(path.endswith((".tsx", ".jsx")) or "/src/pages/" in path for path in anchored):
        _add("react")
    if any("/screens/" in f"/{path}" for path in scan.screens):
        _add("react-native")
    package = _load_package_json(root)
    if package is not None:
        _add("nodejs")
        deps = _dependency_names(package)
        for dependency, tag in (("express", "express"), ("@prisma/client", "prisma"), ("prisma", "prisma")):
            if dependency in deps:
                _add(tag)
    if any(path.endswith("schema.prisma") for path in anchored):
        _add("prisma")
    for tag in frameworks.values():
        if tag in {"express", "graphql"}:
            _add(tag)
    return stack


def _load_package_json(root: Path) -> Optional[dict]:
    text = read_text(root, "package.json")
    if text is None:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _dependency_names(package: dict) -> List[str]:
    names: List[str] = []
    for key in ("dependencies", "devDependencies"):
        section = package.get(key)
        if isinstance(section, dict):
            names.extend(str(name) for name in section)
    return names


def _screens(scan: ScanResult) -> List[Screen]:
    screens: List[Screen] = []
    for index, path in enumerate(scan.screens, start=1):
        stem = path.rsplit("/", 1)[-1].split(".", 1)[0]
        if stem in {"page", "index"}:
            parent = path.rsplit("/", 2)[-2] if "/" in path else stem
            stem = "Home" if parent in {"app", "pages", "src"} else parent
        screens.append(
            Screen(
                id=f"screen-{index}",
                name=title_case(stem),
                path=path,
                framework=screen_framework(path),
            )
        )
    return screens


def _of_type(results: Dict[str, DetectionResult], name: str, kind: type) -> tuple:
    result = results.get(name)
    if result is None:
        return ()
    return tuple(fact for fact in result.facts if isinstance(fact, kind))


class FactExtractor:
    """Runs the scanner and detectors and assembles ``TechnicalFacts``."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        detectors: Optional[Iterable[Detector]] = None,
    ) -> None:
        self.scanner = scanner or RepoScanner()
        self._detectors = list(detectors) if detectors is not None else None
        self.logger = get_logger("tier1")

    def extract(self, path: str | Path, *, enabled: Sequence[str] | None = None) -> Tier1Result:
        root = Path(path).expanduser().resolve()
        scan = self.scanner.scan(root)
        detectors = self._detectors if self._detectors is not None else discover_detectors(enabled)

        results: Dict[str, DetectionResult] = {}
        for detector in detectors:
            self.logger.debug("Running detector %s", detector.name)
            results[detector.name] = detector.detect(scan)

        frameworks = {name: result.framework for name, result in results.items()}
        screens = _screens(scan)
        api = _of_type(results, "api", Endpoint)
        models = _of_type(results, "data_models", DataModel)
        note = (
            f"Scanned {len(scan.all_files)} files; found {len(screens)} screens, "
            f"{len(api)} API endpoints, {len(models)} data models"
        )
        facts = TechnicalFacts(
            screens=tuple(screens),
            navigation=_of_type(results, "navigation", NavigationItem),
            api=api,
            data_models=models,
            state=_of_type(results, "state", StatePattern),
            events=_of_type(results, "events", EventFact),
            stack=tuple(detect_stack(root, scan, frameworks)),
            notes=(note,),
        )

        now = utc_timestamp()
        project = ProjectInfo(
            id=str(uuid.uuid4()),
            name=derive_project_name(root),
            created_at=now,
            updated_at=now,
        )
        self.logger.info("%s", note)
        # ScanResult is consumed here and not retained.
        return Tier1Result(project=project, facts=facts, frameworks=frameworks, file_count=len(scan.all_files))


def build_skeleton(tier1: Tier1Result) -> PrdDocument:
    """Empty document aggregate carrying only Tier-1 facts."""
    return PrdDocument(
        project=tier1.project,
        facts=tier1.facts,
        metadata={
            "version": "1.0.0",
            "generatedAt": tier1.project.created_at,
            "generatorVersion": __version__,
            "frameworks": {name: tag for name, tag in tier1.frameworks.items() if tag},
        },
    )


__all__ = ["FactExtractor", "Tier1Result", "build_skeleton", "derive_project_name", "detect_stack", "utc_timestamp"]
