"""Deterministic merging of tier output into the document aggregate."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Sequence

from .logging import get_logger
from .models import ClientQuestion, PrdDocument
from .prompting.constants import STRATEGIC_FIELDS

_logger = get_logger("merge")


def reassert_facts(snapshot: PrdDocument, merged: PrdDocument) -> PrdDocument:
    """Restore Tier-1 facts and project identity from the pre-tier snapshot."""
    merged.facts = snapshot.facts
    merged.project = snapshot.project
    return merged


def merge_strategic(snapshot: PrdDocument, updated: Mapping[str, Any]) -> PrdDocument:
    """Fold a Tier-2 ``updatedJson`` payload into a copy of ``snapshot``.

    Only strategic fields are read from ``updated``; anything else it carries
    (including rewritten technical facts) is ignored.
    """
    merged = snapshot.clone()
    ignored = sorted(key for key in updated if key not in STRATEGIC_FIELDS)
    if ignored:
        _logger.debug("Ignoring non-strategic keys from strategic output: %s", ", ".join(ignored))
    for field_name in STRATEGIC_FIELDS:
        if field_name in updated and updated[field_name] is not None:
            merged.strategic[field_name] = copy.deepcopy(updated[field_name])
    return reassert_facts(snapshot, merged)


def merge_sections(snapshot: PrdDocument, sections: Mapping[str, Any]) -> PrdDocument:
    """Write each successfully generated Tier-3 section into its named slot."""
    merged = snapshot.clone()
    for name, content in sections.items():
        merged.detailed[name] = copy.deepcopy(content)
    return reassert_facts(snapshot, merged)


def assemble(
    document: PrdDocument,
    questions: Sequence[ClientQuestion],
    *,
    generated_at: str,
) -> Dict[str, Any]:
    """Serializable output: the document plus the ordered question list."""
    prd = document.to_dict()
    prd.setdefault("metadata", {})["generatedAt"] = generated_at
    return {
        "prd": prd,
        "questionsForClient": {
            "questions": [question.to_dict() for question in questions],
            "generatedAt": generated_at,
        },
    }


__all__ = ["assemble", "merge_sections", "merge_strategic", "reassert_facts"]
