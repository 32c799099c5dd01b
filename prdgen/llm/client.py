"""Async completion boundary used by the tier orchestrators."""

from __future__ import annotations

from typing import Optional, Protocol

from .runner import LLMRunner


class CompletionClient(Protocol):
    """Abstract ``complete(system, user, options) -> text`` capability."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_response: bool = True,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> str:
        ...


class RunnerCompletionClient:
    """Adapts ``LLMRunner`` to the ``CompletionClient`` protocol.

    The request runs on the current event loop, so cancelling the awaiting
    task aborts the in-flight HTTP call.
    """

    def __init__(self, runner: LLMRunner) -> None:
        self.runner = runner

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_response: bool = True,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> str:
        return await self.runner.run(
            user_prompt,
            system=system_prompt,
            temperature=temperature,
            json_response=json_response,
            timeout=timeout,
        )


__all__ = ["CompletionClient", "RunnerCompletionClient"]
