"""Tests for progress reporting and cancellation."""

from __future__ import annotations

import logging

import pytest

from prdgen.errors import PipelineCancelled
from prdgen.runtime import CancellationToken, ProgressReporter


def test_progress_reporter_clamps_and_forwards() -> None:
    calls = []
    reporter = ProgressReporter(lambda percent, message: calls.append((percent, message)))

    reporter.report(-5, "start")
    reporter.report(150, "done")

    assert calls == [(0, "start"), (100, "done")]
    assert reporter.last_percent == 100


def test_progress_reporter_absorbs_callback_failures(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken(percent: int, message: str) -> None:
        raise RuntimeError("observer exploded")

    reporter = ProgressReporter(broken)
    monkeypatch.setattr(logging.getLogger("prdgen"), "propagate", True)
    with caplog.at_level(logging.WARNING, logger="prdgen.progress"):
        reporter.report(40, "facts extracted")

    assert reporter.last_percent == 40
    assert "observer exploded" in caplog.text


def test_scaled_reporter_maps_onto_parent_range() -> None:
    calls = []
    reporter = ProgressReporter(lambda percent, message: calls.append(percent))
    scaled = reporter.scaled(70, 90)

    scaled.report(0, "a")
    scaled.report(50, "b")
    scaled.report(100, "c")

    assert calls == [70, 80, 90]


def test_cancellation_token_raises_with_reason() -> None:
    token = CancellationToken()
    token.raise_if_cancelled()

    token.cancel("user stopped the job")

    assert token.cancelled is True
    with pytest.raises(PipelineCancelled, match="Job cancelled: user stopped the job"):
        token.raise_if_cancelled()
