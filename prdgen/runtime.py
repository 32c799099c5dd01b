"""Progress reporting and cooperative cancellation for pipeline runs."""

from __future__ import annotations

from typing import Callable, Optional

from .errors import PipelineCancelled
from .logging import get_logger

ProgressCallback = Callable[[int, str], None]


class CancellationToken:
    """Flag polled between pipeline steps; never interrupts a write."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            detail = f": {self.reason}" if self.reason else ""
            raise PipelineCancelled(f"Job cancelled{detail}")


class ProgressReporter:
    """Forwards milestones to an optional callback, absorbing its failures."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self.logger = get_logger("progress")
        self.last_percent = 0

    def report(self, percent: int, message: str) -> None:
        percent = max(0, min(100, int(percent)))
        self.last_percent = percent
        self.logger.debug("%3d%% %s", percent, message)
        if self._callback is None:
            return
        try:
            self._callback(percent, message)
        except Exception as exc:
            self.logger.warning("Progress callback failed at %d%%: %s", percent, exc)

    def scaled(self, start: int, end: int) -> "ProgressReporter":
        """Return a reporter that maps 0..100 onto ``start..end``."""
        return _ScaledReporter(self, start, end)


class _ScaledReporter(ProgressReporter):
    def __init__(self, parent: ProgressReporter, start: int, end: int) -> None:
        super().__init__(None)
        self._parent = parent
        self._start = start
        self._span = end - start

    def report(self, percent: int, message: str) -> None:
        bounded = max(0, min(100, int(percent)))
        self._parent.report(self._start + round(self._span * bounded / 100), message)


__all__ = ["CancellationToken", "ProgressCallback", "ProgressReporter"]
