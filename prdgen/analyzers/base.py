"""Base classes for feature detector plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from ..models import ScanResult
from .utils import read_text


@dataclass
class DetectionResult:
    """Facts from one detector plus its best-effort framework tag."""

    detector: str
    facts: List[Any] = field(default_factory=list)
    framework: Optional[str] = None


class Detector(ABC):
    """Heuristic extractor: pure ``(content, path) -> facts`` over selected files."""

    name: str = "detector"

    @abstractmethod
    def candidates(self, scan: ScanResult) -> Sequence[str]:
        """Return the relative paths whose contents should be examined."""

    @abstractmethod
    def extract(self, content: str, path: str) -> Iterable[Any]:
        """Produce facts from one file's contents. Must not raise on odd input."""

    def finalize(self, facts: List[Any]) -> List[Any]:
        """Deduplicate or order the combined facts."""
        return facts

    def framework_of(self, fact: Any) -> Optional[str]:
        return getattr(fact, "framework", None)

    def detect(self, scan: ScanResult) -> DetectionResult:
        root = Path(scan.root)
        facts: List[Any] = []
        for relative in self.candidates(scan):
            content = read_text(root, relative)
            if content is None:
                continue
            facts.extend(self.extract(content, relative))
        facts = self.finalize(facts)
        return DetectionResult(detector=self.name, facts=facts, framework=self.tag(facts))

    def tag(self, facts: Sequence[Any]) -> Optional[str]:
        """Most common framework among ``facts``."""
        tags = Counter(tag for tag in (self.framework_of(fact) for fact in facts) if tag)
        return tags.most_common(1)[0][0] if tags else None
