"""Event and interaction detection in screen components."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Sequence, Set

from ..models import EventFact, ScanResult
from .base import Detector
from .utils import file_stem

MAX_SCREENS = 50

_JSX_HANDLER = re.compile(
    r"\b(on(?:Click|Change|Submit|Blur|Focus|KeyDown|KeyUp|Press|Select|Toggle|Drop))=\{\s*"
    r"(?:\(\)\s*=>\s*)?([\w.]+)"
)
_DOM_LISTENER = re.compile(r"\baddEventListener\(\s*['\"`]([\w:-]+)['\"`]\s*,\s*([\w.]+)?")
_CUSTOM_EVENT = re.compile(r"\b(?:emit|dispatch|trigger|publish)\(\s*['\"`]([\w:./-]+)['\"`]")
_FORM_SUBMIT = re.compile(r"<form\b[^>]*\bonSubmit=\{\s*(?:\(\)\s*=>\s*)?([\w.]+)")
_BUTTON_CLICK = re.compile(r"<Button\b[^>]*\bonClick=\{\s*(?:\(\)\s*=>\s*)?([\w.]+)")


def _handler_name(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return raw.split(".")[-1]


def extract_events(content: str, path: str) -> Iterator[EventFact]:
    screen = file_stem(path)
    for match in _FORM_SUBMIT.finditer(content):
        handler = _handler_name(match.group(1))
        yield EventFact(
            name=f"{screen} form submit",
            type="form-submission",
            trigger="submit",
            file=path,
            handler=handler,
        )
    for match in _BUTTON_CLICK.finditer(content):
        handler = _handler_name(match.group(1))
        yield EventFact(
            name=f"{screen} button {handler or 'click'}",
            type="button-click",
            trigger=f"click:{handler}" if handler else "click",
            file=path,
            handler=handler,
        )
    for match in _JSX_HANDLER.finditer(content):
        prop, raw = match.groups()
        handler = _handler_name(raw)
        yield EventFact(
            name=f"{screen} {prop}",
            type="user-interaction",
            trigger=f"{prop}:{handler}" if handler else prop,
            file=path,
            handler=handler,
        )
    for match in _DOM_LISTENER.finditer(content):
        event_name, raw = match.groups()
        yield EventFact(
            name=event_name,
            type="dom-event",
            trigger=f"dom:{event_name}",
            file=path,
            handler=_handler_name(raw),
        )
    for match in _CUSTOM_EVENT.finditer(content):
        event_name = match.group(1)
        yield EventFact(
            name=event_name,
            type="custom-event",
            trigger=f"custom:{event_name}",
            file=path,
        )


class EventDetector(Detector):
    """Scans screens for handlers, listeners and emitted events."""

    name = "events"

    def candidates(self, scan: ScanResult) -> Sequence[str]:
        return scan.screens[:MAX_SCREENS]

    def extract(self, content: str, path: str) -> Iterable[EventFact]:
        # One fact per trigger per file; form and button idioms win over generic props.
        seen: Set[str] = set()
        found: List[EventFact] = []
        for event in extract_events(content, path):
            key = event.trigger
            if event.type == "user-interaction" and event.handler:
                prop = event.trigger.split(":", 1)[0]
                if prop == "onSubmit" and "submit" in seen:
                    continue
                if prop == "onClick" and f"click:{event.handler}" in seen:
                    continue
            if key in seen:
                continue
            seen.add(key)
            found.append(event)
        return found

    def framework_of(self, fact: EventFact) -> Optional[str]:
        return "react" if fact.type in {"user-interaction", "form-submission", "button-click"} else None


__all__ = ["EventDetector", "MAX_SCREENS", "extract_events"]
