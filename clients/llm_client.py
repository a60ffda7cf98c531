"""
Chat-completion LLM client (OpenAI-compatible HTTP API).

Usage:
    client = LLMClient()
    response = client.generate(
        [
            {"role": "system", "content": "..."},
            {"role": "user", "content": "..."},
        ],
        response_format={"type": "json_schema", "json_schema": {...}},
    )
    print(response.content)
"""

import json
import logging
from typing import Any

import requests
from pydantic import BaseModel

from clients.vault_client import get_openai_config

logger = logging.getLogger(__name__)


# === Response Types ===


class LLMResponse(BaseModel):
    """Non-streaming response."""

    content: str
    raw_response: dict[str, Any] | None = None
    usage: dict[str, int] | None = None


# === Errors ===


class LLMError(Exception):
    """LLM operation error."""


class LLMTimeoutError(LLMError):
    """The LLM endpoint did not answer within the configured timeout."""


# === Client ===


class LLMClient:
    """Chat-completion client for an OpenAI-compatible endpoint."""

    DEFAULT_MODEL = "gpt-4.1"
    DEFAULT_BASE_URL = "https://api.openai.com"
    COMPLETIONS_PATH = "/v1/chat/completions"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 60,
    ):
        """
        Initialize chat-completion client.

        Args:
            api_key: API key. If None, fetched from Vault.
            model: Model name. If None, uses DEFAULT_MODEL.
            base_url: API root. If None, uses DEFAULT_BASE_URL.
            timeout_seconds: Per-request timeout.
        """
        if api_key is None:
            api_key = get_openai_config()["api_key"]
        if not api_key:
            raise ValueError("api_key is required")

        self.model = model or self.DEFAULT_MODEL
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {api_key}"
        logger.info(f"LLM client initialized with model: {self.model}")

    def generate(
        self,
        messages: list[dict],
        response_format: dict | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> LLMResponse:
        """
        Non-streaming generation for extraction.

        Args:
            messages: [{"role": "system"|"user"|"assistant", "content": str}]
            response_format: Structured-output format, passed through verbatim
            temperature: Sampling temperature, provider default when None
            model: Override model for this call

        Returns:
            LLMResponse with the first choice's message content

        Raises:
            LLMTimeoutError: If the endpoint does not answer in time
            LLMError: On transport failure or an unusable response
        """
        body: dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
        }
        if response_format is not None:
            body["response_format"] = response_format
        if temperature is not None:
            body["temperature"] = temperature

        try:
            response = self._session.post(
                f"{self.base_url}{self.COMPLETIONS_PATH}",
                json=body,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"LLM request timed out after {self.timeout_seconds}s")
            raise LLMTimeoutError(f"LLM request timed out: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM API connection failed: {e}")
            raise LLMError(f"LLM API call failed: {e}")

        try:
            payload = response.json()
        except json.JSONDecodeError:
            logger.error(f"LLM API returned non-JSON body (status {response.status_code})")
            raise LLMError("LLM API returned an invalid response")

        if not isinstance(payload, dict):
            raise LLMError("LLM API returned an invalid response")

        if response.status_code != 200 or "error" in payload:
            error = payload.get("error") or {}
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            logger.error(f"LLM API error ({response.status_code}): {message}")
            raise LLMError(f"LLM API error: {message}")

        return LLMResponse(
            content=self._extract_text(payload),
            raw_response={"id": payload.get("id"), "model": payload.get("model")},
            usage=self._extract_usage(payload),
        )

    # === Private ===

    def _extract_text(self, payload: dict) -> str:
        """Extract message content of the first choice."""
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise LLMError("LLM response has no message content")
        if not isinstance(content, str):
            raise LLMError("LLM response has no message content")
        return content

    def _extract_usage(self, payload: dict) -> dict[str, int] | None:
        """Extract token usage from response."""
        usage = payload.get("usage")
        if not usage:
            return None
        return {
            "input_tokens": usage.get("prompt_tokens", 0),
            "output_tokens": usage.get("completion_tokens", 0),
        }

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._session.close()
