"""Parsing of generated JSON responses."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from ..errors import MalformedResponseError
from ..logging import get_logger
from ..models import QUESTION_PRIORITIES, ClientQuestion

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.S)

_logger = get_logger("responses")


def load_json_object(text: str) -> Dict[str, Any]:
    """Parse a response as a JSON object, tolerating a markdown code fence."""
    match = _FENCE.match(text or "")
    body = match.group(1) if match else (text or "")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Response is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("Response JSON must be an object")
    return payload


def require_keys(payload: Dict[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        if key not in payload:
            raise MalformedResponseError(f"Response missing '{key}' field")


def parse_questions(
    raw: Any, *, default_field: str, limit: Optional[int] = None
) -> List[ClientQuestion]:
    """Build questions from a list or ``{"questions": [...]}``; skip bad entries."""
    if isinstance(raw, dict):
        raw = raw.get("questions")
    if not isinstance(raw, list):
        return []
    questions: List[ClientQuestion] = []
    for entry in raw:
        question = _to_question(entry, default_field)
        if question is None:
            _logger.debug("Skipping malformed question entry: %r", entry)
            continue
        questions.append(question)
        if limit is not None and len(questions) >= limit:
            break
    return questions


def _to_question(entry: Any, default_field: str) -> Optional[ClientQuestion]:
    if isinstance(entry, str) and entry.strip():
        return ClientQuestion(field=default_field, question=entry.strip())
    if not isinstance(entry, dict):
        return None
    text = entry.get("question")
    if not isinstance(text, str) or not text.strip():
        return None
    priority = str(entry.get("priority") or "medium").strip().lower()
    if priority not in QUESTION_PRIORITIES:
        priority = "medium"
    field_path = entry.get("field")
    return ClientQuestion(
        field=field_path if isinstance(field_path, str) and field_path else default_field,
        question=text.strip(),
        reason=str(entry.get("reason") or ""),
        priority=priority,
    )


__all__ = ["load_json_object", "parse_questions", "require_keys"]
