"""Feature detector implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import DetectionResult, Detector
from .data_models import DataModelDetector
from .endpoints.detectors import ApiEndpointDetector
from .events import EventDetector
from .navigation import NavigationDetector
from .state import StatePatternDetector

_ENTRY_POINT_GROUP = "prdgen.detectors"

_BUILTIN_FACTORIES: dict[str, Callable[[], Detector]] = {
    "api": ApiEndpointDetector,
    "data_models": DataModelDetector,
    "navigation": NavigationDetector,
    "state": StatePatternDetector,
    "events": EventDetector,
}


def discover_detectors(enabled: Sequence[str] | None = None) -> List[Detector]:
    """Return instantiated detectors, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled:
        enabled_set = {name.lower() for name in enabled}

    detectors: List[Detector] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Detector]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Detector):
            raise TypeError(f"Detector factory for '{name}' did not return a Detector instance")
        detectors.append(instance)
        seen.add(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load detector entry point '{entry.name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Detector:
            return _coerce_detector(obj)

        _add(entry.name, _factory)

    if enabled_set:
        missing = sorted(enabled_set - seen)
        if missing:
            raise ValueError(f"Unknown detectors requested: {', '.join(missing)}")

    return detectors


def _coerce_detector(obj: object) -> Detector:
    if isinstance(obj, Detector):
        return obj
    if isinstance(obj, type) and issubclass(obj, Detector):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Detector):
            return instance
    raise TypeError("Detector entry point must be a Detector subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=_ENTRY_POINT_GROUP)


__all__ = [
    "ApiEndpointDetector",
    "DataModelDetector",
    "DetectionResult",
    "Detector",
    "EventDetector",
    "NavigationDetector",
    "StatePatternDetector",
    "discover_detectors",
]
