"""Bounded retry with exponential backoff, and the deadline race primitive.

Outcomes are data rather than exceptions: callers branch on ``Ok``,
``Retryable``, ``Deadline`` and ``Fatal`` instead of matching exception
types or messages.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Tuple, TypeVar, Union

from .errors import MalformedResponseError, PipelineCancelled, RetryExhaustedError
from .logging import get_logger
from .runtime import CancellationToken

T = TypeVar("T")

DEFAULT_RETRYABLE_SIGNATURES: Tuple[str, ...] = (
    "429",
    "rate_limit",
    "rate limit",
    "timeout",
    "timed out",
    "ECONNRESET",
    "ETIMEDOUT",
)

SleepFunc = Callable[[float], Awaitable[Any]]

_logger = get_logger("retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry bounds; seconds for delays."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    retryable_error_signatures: Tuple[str, ...] = DEFAULT_RETRYABLE_SIGNATURES

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry following zero-based ``attempt``."""
        delay = self.initial_delay
        for _ in range(attempt):
            if delay >= self.max_delay or delay == 0:
                break
            delay *= self.backoff_multiplier
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    attempts: int = 1


@dataclass(frozen=True)
class Retryable:
    error: BaseException
    attempts: int = 1


@dataclass(frozen=True)
class Deadline:
    timeout: float
    attempts: int = 0


@dataclass(frozen=True)
class Fatal:
    error: BaseException
    attempts: int = 1
    exhausted: bool = False


Outcome = Union[Ok[Any], Retryable, Deadline, Fatal]


def classify(error: BaseException, policy: RetryPolicy, attempts: int = 1) -> Union[Retryable, Fatal]:
    """Map a failure to ``Retryable`` or ``Fatal`` via signature substrings."""
    if isinstance(error, (MalformedResponseError, PipelineCancelled)):
        return Fatal(error, attempts)
    haystack = f"{type(error).__name__} {error}".lower()
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        haystack += " timeout"
    for signature in policy.retryable_error_signatures:
        if signature.lower() in haystack:
            return Retryable(error, attempts)
    return Fatal(error, attempts)


class RetryExecutor:
    """Runs an async operation under a ``RetryPolicy``."""

    def __init__(self, sleep: SleepFunc | None = None) -> None:
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        *,
        cancel_token: CancellationToken | None = None,
        label: str = "operation",
    ) -> Outcome:
        """Return ``Ok`` or ``Fatal``; ``Fatal.exhausted`` marks a spent budget."""
        total = policy.max_retries + 1
        last: Optional[BaseException] = None
        for attempt in range(total):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                value = await operation()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                verdict = classify(exc, policy, attempt + 1)
                if isinstance(verdict, Fatal):
                    _logger.debug("%s failed with non-retryable error: %s", label, exc)
                    return verdict
                last = exc
                if attempt + 1 >= total:
                    break
                delay = policy.delay_for(attempt)
                _logger.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.1fs",
                    label,
                    attempt + 1,
                    total,
                    exc,
                    delay,
                )
                await self._sleep(delay)
                continue
            return Ok(value, attempt + 1)

        if last is None:
            raise RuntimeError(f"{label} finished without an outcome")
        return Fatal(RetryExhaustedError(total, last), total, exhausted=True)

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        *,
        cancel_token: CancellationToken | None = None,
        label: str = "operation",
    ) -> T:
        """Like ``execute`` but raises the terminal error instead of returning it."""
        outcome = await self.execute(operation, policy, cancel_token=cancel_token, label=label)
        if isinstance(outcome, Ok):
            return outcome.value
        if isinstance(outcome, Fatal):
            raise outcome.error
        raise RuntimeError(f"Unexpected retry outcome: {outcome!r}")


async def race_deadline(work: Awaitable[Outcome], timeout: float) -> Outcome:
    """Race ``work`` against a timer; the loser is cancelled and awaited.

    Returns the work's own outcome when it settles first, ``Deadline`` when the
    timer fires first.
    """
    work_task = asyncio.ensure_future(work)
    timer_task = asyncio.ensure_future(asyncio.sleep(timeout))
    try:
        done, _ = await asyncio.wait(
            {work_task, timer_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if work_task in done:
            return work_task.result()
        return Deadline(timeout)
    finally:
        for task in (work_task, timer_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(work_task, timer_task, return_exceptions=True)


__all__ = [
    "DEFAULT_RETRYABLE_SIGNATURES",
    "Deadline",
    "Fatal",
    "Ok",
    "Outcome",
    "RetryExecutor",
    "RetryPolicy",
    "Retryable",
    "classify",
    "race_deadline",
]
