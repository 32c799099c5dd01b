"""Tests for the async completion client."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from prdgen.config import Settings
from prdgen.errors import DeadlineExceededError
from prdgen.llm.client import RunnerCompletionClient
from prdgen.llm.runner import LLMRunner
from prdgen.retry import RetryExecutor
from prdgen.tiers.tier2 import Tier2Orchestrator
from tests._fixtures.fake_client import no_sleep, sample_document, sample_evidence


def test_runner_client_forwards_options() -> None:
    captured = {}

    async def fake_runner(request):
        captured["prompt"] = request.prompt
        captured["system"] = request.system
        captured["temperature"] = request.temperature
        captured["json_response"] = request.json_response
        captured["timeout"] = request.request_timeout
        return '{"done": true}'

    client = RunnerCompletionClient(LLMRunner(request_timeout=120.0, runner=fake_runner))

    result = asyncio.run(
        client.complete("system text", "user text", json_response=True, temperature=0.3, timeout=60.0)
    )

    assert result == '{"done": true}'
    assert captured == {
        "prompt": "user text",
        "system": "system text",
        "temperature": 0.3,
        "json_response": True,
        "timeout": 60.0,
    }


def test_runner_client_propagates_runner_errors() -> None:
    async def failing_runner(_request):
        raise RuntimeError("LLM HTTP runner failed: timed out")

    client = RunnerCompletionClient(LLMRunner(runner=failing_runner))

    with pytest.raises(RuntimeError, match="timed out"):
        asyncio.run(client.complete("system", "user"))


class SlowEndpoint:
    """Mock transport handler that holds every request open for ``delay`` seconds."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.started = 0
        self.cancelled = 0
        self.active = 0
        self.peak = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.started += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1
        return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})


def test_deadline_aborts_http_calls_without_overlap() -> None:
    endpoint = SlowEndpoint(delay=3.0)
    settings = Settings(base_url="http://localhost:1/v1", tier2_deadline=0.1)
    runner = LLMRunner.from_settings(settings, transport=httpx.MockTransport(endpoint))
    tier2 = Tier2Orchestrator(
        RunnerCompletionClient(runner), settings, executor=RetryExecutor(sleep=no_sleep)
    )

    started = time.perf_counter()
    with pytest.raises(DeadlineExceededError):
        asyncio.run(tier2.run(sample_document(), sample_evidence(4)))
    elapsed = time.perf_counter() - started

    assert elapsed < 1.5
    assert endpoint.started == 2
    assert endpoint.cancelled == 2
    assert endpoint.peak == 1
