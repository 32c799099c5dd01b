"""Async adapter for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from ..config import DEFAULT_BASE_URL, DEFAULT_MODEL, Settings

_STATUS_HINTS = {
    401: "authentication failed; check the configured API key",
    403: "access denied for the configured API key",
    404: "model or endpoint not found",
    429: "rate limit or quota exceeded",
}


@dataclass
class LLMRequest:
    """Represents one chat completion request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    json_response: bool
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]


RequestRunner = Callable[[LLMRequest], Awaitable[str]]


class LLMRunner:
    """Executes prompts against the configured completion endpoint.

    Requests run on the caller's event loop. Cancelling the awaiting task
    closes the underlying connection.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        *,
        base_url: str | None = DEFAULT_BASE_URL,
        api_key: str | None = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        request_timeout: Optional[float] = 300.0,
        runner: RequestRunner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self.transport = transport
        self._runner = runner or self._http_runner

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        runner: RequestRunner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "LLMRunner":
        return cls(
            settings.model,
            base_url=settings.base_url,
            api_key=settings.api_key,
            max_tokens=settings.max_tokens,
            request_timeout=settings.request_timeout,
            runner=runner,
            transport=transport,
        )

    async def run(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float | None = None,
        json_response: bool = False,
        timeout: float | None = None,
    ) -> str:
        """Send the prompt and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=self.max_tokens,
            json_response=json_response,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self._effective_timeout(timeout),
        )
        return await self._runner(request)

    def _effective_timeout(self, timeout: float | None) -> Optional[float]:
        if timeout is None:
            return self.request_timeout
        if self.request_timeout is None:
            return timeout
        return min(timeout, self.request_timeout)

    async def _http_runner(self, request: LLMRequest) -> str:
        if not request.base_url:
            raise RuntimeError("HTTP runner requires a base_url to be configured.")
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.json_response:
            payload["response_format"] = {"type": "json_object"}

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        timeout = request.request_timeout or 300.0

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.post(endpoint, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = exc.response.text.strip() or exc.response.reason_phrase
            hint = _STATUS_HINTS.get(status)
            prefix = f"{hint}: " if hint else ""
            raise RuntimeError(
                f"LLM HTTP runner failed with status {status}: {prefix}{message}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise RuntimeError(f"LLM HTTP runner timed out after {timeout:g}s") from exc
        except httpx.RequestError as exc:
            raise RuntimeError(f"LLM HTTP runner failed: {exc}") from exc

        try:
            response_payload = response.json()
        except ValueError as exc:
            raise RuntimeError("LLM HTTP runner returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise RuntimeError("LLM HTTP runner returned an empty response")
        return content.strip()

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""
