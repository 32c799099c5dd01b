"""Token estimation and evidence chunking.

Token counts are an approximation: a fixed ratio of characters per token, not
a real tokenizer. Ceilings are enforced against this estimate, so the real
token count of a prompt can differ from it by a modest margin either way.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import List, Optional, Sequence

from .models import EvidenceDocument

CHARS_PER_TOKEN = 3.5
MIN_TRUNCATION_TOKENS = 100
PREVIEW_CHARS = 500

_MARKER_TEMPLATE = "\n\n[Content truncated - {dropped} characters omitted to fit token budget]"


def estimate_tokens(text: str) -> int:
    """Approximate token count of ``text``."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def total_tokens(documents: Sequence[EvidenceDocument]) -> int:
    return sum(estimate_tokens(document.content) for document in documents)


def truncate_document(document: EvidenceDocument, max_tokens: int) -> Optional[EvidenceDocument]:
    """Return a copy cut to ``max_tokens`` including the truncation marker."""
    max_chars = int(max_tokens * CHARS_PER_TOKEN)
    length = len(document.content)
    if length <= max_chars:
        return document
    # Size the marker for the largest possible dropped count so it always fits.
    widest_marker = _MARKER_TEMPLATE.format(dropped=length)
    keep = max_chars - len(widest_marker)
    if keep <= 0:
        return None
    marker = _MARKER_TEMPLATE.format(dropped=length - keep)
    return replace(document, content=document.content[:keep] + marker)


def chunk(documents: Sequence[EvidenceDocument], max_tokens: int) -> List[EvidenceDocument]:
    """Greedy, order-preserving selection of documents under ``max_tokens``.

    The first document that would overflow is truncated to the remaining budget
    (when more than ``MIN_TRUNCATION_TOKENS`` remain) and is the last one kept.
    Inputs are never modified.
    """
    selected: List[EvidenceDocument] = []
    used = 0
    for document in documents:
        cost = estimate_tokens(document.content)
        if used + cost <= max_tokens:
            selected.append(document)
            used += cost
            continue
        remaining = max_tokens - used
        if remaining > MIN_TRUNCATION_TOKENS:
            truncated = truncate_document(document, remaining)
            if truncated is not None:
                selected.append(truncated)
        break
    return selected


def halve(documents: Sequence[EvidenceDocument]) -> List[EvidenceDocument]:
    """First half (rounded down) of an ordered evidence list."""
    return list(documents[: len(documents) // 2])


def summarize_evidence(documents: Sequence[EvidenceDocument], preview_chars: int = PREVIEW_CHARS) -> str:
    """Short listing of evidence titles with a leading preview of each."""
    lines: List[str] = []
    for index, document in enumerate(documents, start=1):
        preview = " ".join(document.content[:preview_chars].split())
        if len(document.content) > preview_chars:
            preview += " ..."
        lines.append(f"{index}. [{document.type}] {document.title}: {preview}")
    return "\n".join(lines)


__all__ = [
    "CHARS_PER_TOKEN",
    "MIN_TRUNCATION_TOKENS",
    "chunk",
    "estimate_tokens",
    "halve",
    "summarize_evidence",
    "total_tokens",
    "truncate_document",
]
