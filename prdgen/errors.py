"""Exception taxonomy surfaced at orchestrator boundaries."""

from __future__ import annotations

from typing import Optional


class PrdGenError(RuntimeError):
    """Base class for pipeline failures."""


class MalformedResponseError(PrdGenError):
    """Generated text is not JSON or lacks a required key. Never retried."""


class PromptBudgetError(PrdGenError):
    """The fixed part of a prompt alone exceeds the tier's token ceiling."""

    def __init__(self, message: str, *, estimated_tokens: int, ceiling: int) -> None:
        super().__init__(message)
        self.estimated_tokens = estimated_tokens
        self.ceiling = ceiling


class RetryExhaustedError(PrdGenError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class TierFailedError(PrdGenError):
    """A tier gave up; carries enough context to diagnose without a rerun."""

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        estimated_tokens: int,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.estimated_tokens = estimated_tokens
        self.cause = cause


class DeadlineExceededError(TierFailedError):
    """The degraded retry also ran past the deadline."""

    def __init__(self, *, timeout: float, attempts: int, estimated_tokens: int) -> None:
        super().__init__(
            f"Generation exceeded {timeout:g}s deadline after {attempts} attempts "
            f"(~{estimated_tokens} estimated tokens in last prompt)",
            attempts=attempts,
            estimated_tokens=estimated_tokens,
        )
        self.timeout = timeout


class PipelineCancelled(PrdGenError):
    """Cooperative cancellation was requested for the running job."""


__all__ = [
    "DeadlineExceededError",
    "MalformedResponseError",
    "PipelineCancelled",
    "PrdGenError",
    "PromptBudgetError",
    "RetryExhaustedError",
    "TierFailedError",
]
