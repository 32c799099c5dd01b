"""Core data models shared across prdgen components."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

EVIDENCE_TYPES: Tuple[str, ...] = (
    "uploaded_brief",
    "repo_readme",
    "repo_docs",
    "code_summary",
    "package_metadata",
    "config_file",
    "test_file",
    "component_analysis",
    "code_patterns",
    "other",
)

QUESTION_PRIORITIES: Tuple[str, ...] = ("high", "medium", "low")


@dataclass(frozen=True)
class EvidenceDocument:
    """Free-text source handed to a generation call."""

    id: str
    type: str
    title: str
    content: str
    source_path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in EVIDENCE_TYPES:
            raise ValueError(f"Unknown evidence type: {self.type}")


@dataclass(frozen=True)
class ClientQuestion:
    """Open question for the client, addressed to a field of the document."""

    field: str
    question: str
    reason: str = ""
    priority: str = "medium"

    def __post_init__(self) -> None:
        if self.priority not in QUESTION_PRIORITIES:
            raise ValueError(f"Unknown question priority: {self.priority}")

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class QuestionLog:
    """Append-only, ordered collection of client questions."""

    def __init__(self, questions: Sequence[ClientQuestion] = ()) -> None:
        self._questions: List[ClientQuestion] = []
        self.extend(questions)

    def append(self, question: ClientQuestion) -> None:
        if not isinstance(question, ClientQuestion):
            raise TypeError("QuestionLog only accepts ClientQuestion entries")
        self._questions.append(question)

    def extend(self, questions: Sequence[ClientQuestion]) -> None:
        for question in questions:
            self.append(question)

    def snapshot(self) -> Tuple[ClientQuestion, ...]:
        return tuple(self._questions)

    def to_list(self) -> List[Dict[str, str]]:
        return [question.to_dict() for question in self._questions]

    def __iter__(self) -> Iterator[ClientQuestion]:
        return iter(tuple(self._questions))

    def __len__(self) -> int:
        return len(self._questions)


@dataclass
class ScanResult:
    """Path classification for one scanned repository."""

    root: str
    screens: List[str] = field(default_factory=list)
    api_files: List[str] = field(default_factory=list)
    model_files: List[str] = field(default_factory=list)
    all_files: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Technical facts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Endpoint:
    """Normalized representation of an API call site or route handler."""

    method: str
    path: str
    file: str
    line: Optional[int] = None
    framework: Optional[str] = None


@dataclass(frozen=True)
class Screen:
    """User-facing page or screen component."""

    id: str
    name: str
    path: str
    framework: Optional[str] = None


@dataclass(frozen=True)
class NavigationItem:
    """Route reachable from the application's navigation."""

    path: str
    label: str
    source: str
    screen: Optional[str] = None


@dataclass(frozen=True)
class DataField:
    """Field of a data model."""

    name: str
    type: str
    required: bool = True


@dataclass(frozen=True)
class DataModel:
    """Entity declared through an ORM schema, interface or validator."""

    name: str
    kind: str
    file: str
    fields: Tuple[DataField, ...] = ()


@dataclass(frozen=True)
class StatePattern:
    """State management construct detected in the codebase."""

    type: str
    name: str
    location: str


@dataclass(frozen=True)
class EventFact:
    """User interaction or application event wired in a screen."""

    name: str
    type: str
    trigger: str
    file: str
    handler: Optional[str] = None


@dataclass(frozen=True)
class TechnicalFacts:
    """Facts extracted from code; set once by Tier-1 and never altered."""

    screens: Tuple[Screen, ...] = ()
    navigation: Tuple[NavigationItem, ...] = ()
    api: Tuple[Endpoint, ...] = ()
    data_models: Tuple[DataModel, ...] = ()
    state: Tuple[StatePattern, ...] = ()
    events: Tuple[EventFact, ...] = ()
    stack: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screens": [asdict(item) for item in self.screens],
            "navigation": [asdict(item) for item in self.navigation],
            "api": [asdict(item) for item in self.api],
            "dataModel": [asdict(item) for item in self.data_models],
            "state": [asdict(item) for item in self.state],
            "events": [asdict(item) for item in self.events],
            "aiMetadata": {
                "stackDetected": list(self.stack),
                "extractionNotes": list(self.notes),
            },
        }


@dataclass(frozen=True)
class ProjectInfo:
    """Identity of the documented project."""

    id: str
    name: str
    version: str = "1.0.0"
    created_at: str = ""
    updated_at: str = ""


@dataclass
class PrdDocument:
    """Document aggregate with technical, strategic and detailed strata."""

    project: ProjectInfo
    facts: TechnicalFacts
    strategic: Dict[str, Any] = field(default_factory=dict)
    detailed: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def clone(self) -> "PrdDocument":
        """Return a copy whose mutable strata are independent of this one."""
        return PrdDocument(
            project=self.project,
            facts=self.facts,
            strategic=copy.deepcopy(self.strategic),
            detailed=copy.deepcopy(self.detailed),
            metadata=copy.deepcopy(self.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "project": {
                "id": self.project.id,
                "name": self.project.name,
                "version": self.project.version,
                "createdAt": self.project.created_at,
                "updatedAt": self.project.updated_at,
            },
        }
        payload.update(self.facts.to_dict())
        reserved = set(payload) | {"metadata"}
        # Tier strata never shadow identity, facts or metadata.
        for stratum in (self.strategic, self.detailed):
            for key, value in stratum.items():
                if key not in reserved:
                    payload[key] = copy.deepcopy(value)
        payload["metadata"] = copy.deepcopy(self.metadata)
        return payload


__all__ = [
    "ClientQuestion",
    "DataField",
    "DataModel",
    "EVIDENCE_TYPES",
    "Endpoint",
    "EventFact",
    "EvidenceDocument",
    "NavigationItem",
    "PrdDocument",
    "ProjectInfo",
    "QUESTION_PRIORITIES",
    "QuestionLog",
    "ScanResult",
    "Screen",
    "StatePattern",
    "TechnicalFacts",
]
