"""Tests for detector discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from prdgen.analyzers import Detector, discover_detectors
from prdgen.analyzers.endpoints import ApiEndpointDetector
from prdgen.analyzers.events import EventDetector


class DummyDetector(Detector):
    """Test detector used for plugin discovery validation."""

    name = "dummy"

    def candidates(self, scan):  # pragma: no cover - unused
        return []

    def extract(self, content, path):  # pragma: no cover - unused
        return []


def test_discover_detectors_returns_builtin_detectors() -> None:
    detectors = discover_detectors()
    names = [detector.name for detector in detectors]
    assert names[:5] == ["api", "data_models", "navigation", "state", "events"]
    assert isinstance(detectors[0], ApiEndpointDetector)


def test_discover_detectors_respects_enabled_filter() -> None:
    detectors = discover_detectors(["Events"])
    assert len(detectors) == 1
    assert isinstance(detectors[0], EventDetector)


def test_discover_detectors_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(name="dummy", load=lambda: DummyDetector)

    def fake_entry_points(group=None):
        return [dummy_entry] if group == "prdgen.detectors" else []

    monkeypatch.setattr("prdgen.analyzers.metadata.entry_points", fake_entry_points)

    detectors = discover_detectors(["dummy"])
    assert len(detectors) == 1
    assert isinstance(detectors[0], DummyDetector)


def test_discover_detectors_rejects_non_detector_entry_points(monkeypatch) -> None:
    bad_entry = SimpleNamespace(name="bad", load=lambda: object())
    monkeypatch.setattr("prdgen.analyzers.metadata.entry_points", lambda group=None: [bad_entry])

    with pytest.raises(TypeError):
        discover_detectors(["bad"])


def test_discover_detectors_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        discover_detectors(["does-not-exist"])
