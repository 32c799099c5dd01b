"""Completion service adapters."""

from .client import CompletionClient, RunnerCompletionClient
from .runner import LLMRequest, LLMRunner

__all__ = ["CompletionClient", "LLMRequest", "LLMRunner", "RunnerCompletionClient"]
