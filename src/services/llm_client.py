"""
Minimal async client for an OpenAI-compatible chat completions API.

Used by mood-text analysis and gamification stories. Both features are
optional: without an API key the client reports itself unavailable and
callers degrade (local heuristic, or a 503 for stories).

All calls go through the "openai_chat" circuit breaker so a failing
provider is short-circuited instead of timing out on every request.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from src.config.settings import AppConfig, load_config
from src.lib.circuit_breaker import CircuitBreakerError, get_circuit_breaker
from src.lib.exceptions import ExternalServiceError, ServiceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
CIRCUIT_NAME = "openai_chat"


class LLMClient:
    """
    Thin wrapper over ``POST {base_url}/chat/completions`` returning parsed JSON.

    Args:
        api_key: Provider key; None disables the client
        base_url: API base, e.g. https://api.openai.com/v1
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> LLMClient:
        config = config or load_config()
        return cls(api_key=config.openai_api_key, base_url=config.openai_base_url)

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def complete_json(
        self,
        messages: list[dict[str, str]],
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 300,
    ) -> dict[str, Any]:
        """
        Run a chat completion in JSON mode and return the decoded object.

        Raises:
            ServiceUnavailableError: no API key, or the circuit is open
            ExternalServiceError: transport error, non-2xx status, or a
                response that is not a JSON object
        """
        if not self.available:
            raise ServiceUnavailableError("No LLM API key configured")

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        breaker = get_circuit_breaker(CIRCUIT_NAME)

        try:
            async with breaker:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        json=payload,
                        headers=headers,
                    )
                    response.raise_for_status()
                    body = response.json()
        except CircuitBreakerError as e:
            raise ServiceUnavailableError(str(e)) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("LLM request failed: %s", e)
            raise ExternalServiceError(f"LLM request failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ExternalServiceError("LLM response was malformed") from e

        if not isinstance(parsed, dict):
            raise ExternalServiceError("LLM response was not a JSON object")
        return parsed


__all__ = ["LLMClient"]
