"""State management pattern detection."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..models import ScanResult, StatePattern
from .base import Detector

_STATE_PATH = re.compile(r"(^|/)(store|stores|state|context|contexts|redux|zustand|atoms|slices)(/|\.)", re.I)
_STATE_NAME = re.compile(r"(Context|Store|Provider|Slice)\.(tsx|jsx|ts|js)$")
_SCRIPT_FILE = re.compile(r"\.(tsx|jsx|ts|js)$")


@dataclass(frozen=True)
class StateIdiom:
    """Pattern for one state library and how to name its matches."""

    type: str
    pattern: re.Pattern[str]
    name: Callable[[re.Match[str]], str]


STATE_IDIOMS: Tuple[StateIdiom, ...] = (
    StateIdiom(
        type="redux",
        pattern=re.compile(r"createSlice\(\s*\{\s*name\s*:\s*['\"`](\w+)['\"`]"),
        name=lambda match: match.group(1),
    ),
    StateIdiom(
        type="redux",
        pattern=re.compile(r"\bconfigureStore\("),
        name=lambda _match: "root-store",
    ),
    StateIdiom(
        type="zustand",
        pattern=re.compile(r"\b(?:const|let)\s+(\w+)\s*=\s*create(?:<[^>]*>)?\(\s*(?:\)\s*\(\s*)?(?:\(|set\b)"),
        name=lambda match: match.group(1),
    ),
    StateIdiom(
        type="react-context",
        pattern=re.compile(r"\b(\w+)Context\s*=\s*(?:React\.)?createContext\b"),
        name=lambda match: f"{match.group(1)}Context",
    ),
    StateIdiom(
        type="react-context",
        pattern=re.compile(r"\b(?:function|const)\s+(\w+Provider)\b"),
        name=lambda match: match.group(1),
    ),
    StateIdiom(
        type="react-query",
        pattern=re.compile(r"\bnew\s+QueryClient\("),
        name=lambda _match: "query-client",
    ),
    StateIdiom(
        type="recoil",
        pattern=re.compile(r"\b(?:const|let)\s+(\w+)\s*=\s*(?:atom|selector)(?:Family)?\("),
        name=lambda match: match.group(1),
    ),
    StateIdiom(
        type="mobx",
        pattern=re.compile(r"\bclass\s+(\w+)[^{]*\{[^}]*?make(?:Auto)?Observable\(", re.S),
        name=lambda match: match.group(1),
    ),
)


def extract_state_patterns(
    content: str, path: str, idioms: Sequence[StateIdiom] = STATE_IDIOMS
) -> Iterator[StatePattern]:
    for idiom in idioms:
        for match in idiom.pattern.finditer(content):
            yield StatePattern(type=idiom.type, name=idiom.name(match), location=path)


class StatePatternDetector(Detector):
    """Finds stores, slices, atoms and contexts in state-related files."""

    name = "state"

    def candidates(self, scan: ScanResult) -> Sequence[str]:
        return [
            path
            for path in scan.all_files
            if _SCRIPT_FILE.search(path) and (_STATE_PATH.search(path) or _STATE_NAME.search(path))
        ]

    def extract(self, content: str, path: str) -> Iterable[StatePattern]:
        return list(extract_state_patterns(content, path))

    def finalize(self, facts: List[StatePattern]) -> List[StatePattern]:
        seen: Set[Tuple[str, str, str]] = set()
        unique: List[StatePattern] = []
        for pattern in facts:
            key = (pattern.type, pattern.location, pattern.name)
            if key in seen:
                continue
            seen.add(key)
            unique.append(pattern)
        return unique

    def framework_of(self, fact: StatePattern) -> Optional[str]:
        return fact.type


__all__ = ["STATE_IDIOMS", "StateIdiom", "StatePatternDetector", "extract_state_patterns"]
