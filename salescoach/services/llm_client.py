"""Thin Gemini client wrapper with API key rotation."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from salescoach.config.settings import settings
from salescoach.telemetry import record_analysis_attempt

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when every configured key failed to produce a response."""


class GeminiLlmClient:
    """Invoke ``models/{model}:generateContent``, falling back across a key pool."""

    def __init__(
        self,
        api_keys: Sequence[str],
        *,
        model: str = "gemini-2.5-pro",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 300.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_keys = [key for key in api_keys if key]
        self._model = model
        self._endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise LlmInvocationError(f"unexpected response body of type {type(payload).__name__}")
        candidates = payload.get("candidates") or []
        if not candidates:
            feedback = payload.get("promptFeedback") or {}
            reason = feedback.get("blockReason", "no reason given") if isinstance(feedback, dict) else "no reason given"
            raise LlmInvocationError(f"no candidates returned ({reason})")

        candidate = candidates[0] if isinstance(candidates, list) else None
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise LlmInvocationError("malformed candidate in response")
        texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
        return "".join(texts).strip()

    async def _generate(self, api_key: str, body: dict[str, Any]) -> str:
        response = await self._client.post(
            self._endpoint,
            headers={"x-goog-api-key": api_key},
            json=body,
        )
        response.raise_for_status()
        text = self._extract_text(response.json())
        if not text:
            raise LlmInvocationError("empty response text")
        return text

    async def invoke(
        self,
        *,
        prompt: str,
        response_schema: dict[str, Any] | None = None,
    ) -> str:
        """Return the model's text, trying each key in order until one succeeds."""

        if not self._api_keys:
            raise LlmInvocationError("No Gemini API keys configured")

        generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        last_error: Exception | None = None
        for index, api_key in enumerate(self._api_keys, start=1):
            try:
                text = await self._generate(api_key, body)
            except (httpx.HTTPError, LlmInvocationError, ValueError) as exc:
                last_error = exc
                record_analysis_attempt("failure")
                logger.warning(
                    "Gemini API key %s/%s failed: %s",
                    index,
                    len(self._api_keys),
                    exc,
                )
                continue
            record_analysis_attempt("success")
            return text

        raise LlmInvocationError(f"Gemini API error: {last_error}") from last_error

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_client: GeminiLlmClient | None = None


def get_llm_client() -> GeminiLlmClient:
    """Return a lazily-instantiated Gemini client singleton."""

    global _client
    if _client is None:
        config = settings.gemini
        _client = GeminiLlmClient(
            config.key_pool,
            model=config.model,
            base_url=config.base_url,
            timeout=config.request_timeout_seconds,
        )
    return _client


__all__ = ["GeminiLlmClient", "LlmInvocationError", "get_llm_client"]
