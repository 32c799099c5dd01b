"""Tests for the completion endpoint runner."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from prdgen.config import Settings
from prdgen.llm.runner import LLMRunner


def _runner_with(handler, **kwargs) -> LLMRunner:
    kwargs.setdefault("base_url", "http://localhost:1/v1")
    return LLMRunner(transport=httpx.MockTransport(handler), **kwargs)


def test_llm_runner_constructs_request() -> None:
    captured = {}

    async def fake_runner(request):
        captured.update(vars(request))
        return "response"

    runner = LLMRunner(
        model="custom-model",
        base_url="http://localhost:8080/v1/",
        temperature=0.15,
        max_tokens=256,
        request_timeout=42.0,
        runner=fake_runner,
    )
    result = asyncio.run(runner.run("Hello world", system="system message", json_response=True))

    assert result == "response"
    assert captured == {
        "prompt": "Hello world",
        "system": "system message",
        "model": "custom-model",
        "temperature": 0.15,
        "max_tokens": 256,
        "json_response": True,
        "base_url": "http://localhost:8080/v1",
        "api_key": None,
        "request_timeout": 42.0,
    }


def test_llm_runner_caps_timeout_and_overrides_temperature() -> None:
    captured = {}

    async def fake_runner(request):
        captured["timeout"] = request.request_timeout
        captured["temperature"] = request.temperature
        return "ok"

    runner = LLMRunner(temperature=0.2, request_timeout=300.0, runner=fake_runner)

    asyncio.run(runner.run("prompt", temperature=0.7, timeout=30.0))
    assert captured == {"timeout": 30.0, "temperature": 0.7}

    asyncio.run(runner.run("prompt", timeout=900.0))
    assert captured == {"timeout": 300.0, "temperature": 0.2}


def test_llm_runner_from_settings() -> None:
    settings = Settings(model="gpt-test", base_url="http://example.test/v1", api_key="secret", max_tokens=99)

    runner = LLMRunner.from_settings(settings)

    assert runner.model == "gpt-test"
    assert runner.base_url == "http://example.test/v1"
    assert runner.api_key == "secret"
    assert runner.max_tokens == 99
    assert runner.request_timeout == settings.request_timeout


def test_llm_runner_http_posts_payload() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = {k.lower(): v for k, v in request.headers.items()}
        captured["payload"] = json.loads(request.content.decode("utf-8"))
        captured["timeout"] = request.extensions["timeout"]["read"]
        return httpx.Response(200, json={"choices": [{"message": {"content": '  {"ok": true}  '}}]})

    runner = _runner_with(
        handler,
        model="gpt-4-turbo",
        base_url="http://localhost:12434/engines/v1/",
        api_key="local-key",
        max_tokens=128,
        request_timeout=25.0,
    )
    result = asyncio.run(
        runner.run("Describe the product.", system="Act like a PM.", temperature=0.05, json_response=True)
    )

    assert result == '{"ok": true}'
    assert captured["url"] == "http://localhost:12434/engines/v1/chat/completions"
    assert captured["headers"]["content-type"] == "application/json"
    assert captured["headers"]["authorization"] == "Bearer local-key"
    payload = captured["payload"]
    assert payload["messages"] == [
        {"role": "system", "content": "Act like a PM."},
        {"role": "user", "content": "Describe the product."},
    ]
    assert payload["temperature"] == 0.05
    assert payload["max_tokens"] == 128
    assert payload["response_format"] == {"type": "json_object"}
    assert captured["timeout"] == 25.0


def test_llm_runner_http_error_includes_status_hint() -> None:
    runner = _runner_with(lambda request: httpx.Response(429, text="slow down"))

    with pytest.raises(RuntimeError, match="status 429: rate limit or quota exceeded: slow down"):
        asyncio.run(runner.run("prompt"))


def test_llm_runner_reports_unreachable_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RuntimeError, match="connection refused"):
        asyncio.run(_runner_with(handler).run("prompt"))


def test_llm_runner_reports_timeouts_as_retryable_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timeout", request=request)

    with pytest.raises(RuntimeError, match="timed out after 5s"):
        asyncio.run(_runner_with(handler, request_timeout=5.0).run("prompt"))


def test_llm_runner_rejects_invalid_json() -> None:
    runner = _runner_with(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(RuntimeError, match="invalid JSON"):
        asyncio.run(runner.run("prompt"))


@pytest.mark.parametrize(
    "payload",
    [{"choices": []}, {"choices": [{"message": {"content": ""}}]}, {"unexpected": True}, ["list"]],
)
def test_llm_runner_rejects_empty_responses(payload) -> None:
    runner = _runner_with(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(RuntimeError, match="empty response"):
        asyncio.run(runner.run("prompt"))


def test_llm_runner_reads_legacy_text_choices() -> None:
    runner = _runner_with(lambda request: httpx.Response(200, json={"choices": [{"text": "legacy"}]}))

    assert asyncio.run(runner.run("prompt")) == "legacy"


def test_llm_runner_requires_base_url() -> None:
    with pytest.raises(RuntimeError, match="base_url"):
        asyncio.run(LLMRunner(base_url=None).run("prompt"))
