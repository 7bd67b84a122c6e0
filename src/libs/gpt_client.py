"""
GPT Client for vision requests.

Provides async HTTP client for OpenAI-compatible chat completions (text and
image parts) with retry logic and exponential backoff.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
import structlog
from src.core.config import get_settings

logger = structlog.get_logger()

JSON_RESPONSE_FORMAT = {"type": "json_object"}


class GPTClientError(Exception):
    """Base exception for GPT client errors."""


class GPTConfigurationError(GPTClientError):
    """Raised when the client is missing credentials."""


class GPTRateLimitError(GPTClientError):
    """Raised when rate limited by the provider."""


class GPTTimeoutError(GPTClientError):
    """Raised when request times out."""


class GPTAPIError(GPTClientError):
    """Raised for other API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class GPTResponse:
    """Parsed GPT response."""

    content: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency_ms: int
    finish_reason: str


class GPTClientProtocol(Protocol):
    """Protocol for GPT client (allows mocking)."""

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: dict[str, str] | None = None,
    ) -> GPTResponse:
        """Send chat completion request."""
        ...


def image_part(image: str, mime_type: str = "image/jpeg") -> dict[str, Any]:
    """Build an ``image_url`` content part from a base64 payload or data URL."""
    url = image if image.startswith("data:") else f"data:{mime_type};base64,{image}"
    return {"type": "image_url", "image_url": {"url": url}}


class OpenAIClient:
    """Async OpenAI API client with retry logic."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.model = model or settings.openai_model
        self.max_retries = max_retries if max_retries is not None else settings.gpt_max_retries
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.gpt_timeout_seconds
        )
        self._transport = transport

        if not self.api_key:
            logger.warning("openai_api_key_missing", msg="OPENAI_API_KEY not configured")

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: dict[str, str] | None = None,
    ) -> GPTResponse:
        """
        Send chat completion request with retry logic.

        Implements exponential backoff: 1s, 2s, 4s for retries.
        """
        if not self.api_key:
            raise GPTConfigurationError("OPENAI_API_KEY not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            payload["response_format"] = response_format

        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            start_time = datetime.now(UTC)

            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers=headers,
                        json=payload,
                    )

                latency_ms = int((datetime.now(UTC) - start_time).total_seconds() * 1000)

                if response.status_code == 200:
                    return self._parse_response(response, latency_ms)

                if response.status_code == 429:
                    last_error = GPTRateLimitError(f"Rate limited (attempt {attempt + 1})")
                    await logger.awarning(
                        "gpt_rate_limited",
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                    )
                elif response.status_code >= 500:
                    last_error = GPTAPIError(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )
                    await logger.awarning(
                        "gpt_server_error",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                    )
                else:
                    # Client error (bad key, bad payload) - don't retry
                    raise GPTAPIError(
                        f"API error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )

            except httpx.TimeoutException:
                last_error = GPTTimeoutError(f"Request timed out (attempt {attempt + 1})")
                await logger.awarning(
                    "gpt_timeout",
                    attempt=attempt + 1,
                    timeout_seconds=self.timeout,
                )

            except httpx.RequestError as e:
                last_error = GPTClientError(f"Request failed: {e}")
                await logger.awarning(
                    "gpt_request_error",
                    error=str(e),
                    attempt=attempt + 1,
                )

            if attempt < self.max_retries - 1:
                await asyncio.sleep(2**attempt)

        raise last_error or GPTClientError("All retries exhausted")

    def _parse_response(self, response: httpx.Response, latency_ms: int) -> GPTResponse:
        """Parse chat completion body; malformed bodies become GPTAPIError."""
        try:
            data = response.json()
            choice = data["choices"][0]
            usage = data.get("usage") or {}
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GPTAPIError(f"Malformed completion body: {exc}", status_code=200) from exc

        if not isinstance(content, str):
            raise GPTAPIError("Completion content is not text", status_code=200)

        return GPTResponse(
            content=content,
            model=data.get("model", self.model),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
            finish_reason=choice.get("finish_reason", "unknown"),
        )
