"""HTTP model client for OpenAI-compatible and Ollama chat endpoints."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from nightplan.config import Settings, get_settings
from nightplan.llm.interface import ModelClientError
from nightplan.logging_utils import redact

MAX_ERROR_MESSAGE_CHARS = 500

logger = logging.getLogger(__name__)


def _json_object(value: object) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"Plan LLM returned {type(value).__name__}, expected an object.")
    return value


class HTTPModelClient:
    """Single-turn chat completion over httpx; never logs prompts or keys."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        provider: str = "openai",
        api_key: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._provider = (provider or "openai").strip().lower()
        self._api_key = api_key
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    @property
    def provider(self) -> str:
        return self._provider

    def complete(self, *, prompt: str, temperature: float, max_tokens: int) -> str:
        safe_temperature = max(0.0, float(temperature))
        safe_max_tokens = max(1, int(max_tokens))
        try:
            if self._provider == "ollama":
                return self._complete_ollama(prompt, safe_temperature, safe_max_tokens)
            return self._complete_openai(prompt, safe_temperature, safe_max_tokens)
        except (httpx.HTTPError, ValueError) as exc:
            message = self._sanitize_error(exc)
            logger.debug("Model request to %s failed: %s", self._provider, message)
            raise ModelClientError(f"{self._provider}_error: {message}") from exc

    def _complete_openai(self, prompt: str, temperature: float, max_tokens: int) -> str:
        endpoint = self._base_url
        if not endpoint.endswith("/chat/completions"):
            endpoint = f"{endpoint}/chat/completions"
        payload = {
            "model": self._model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
        with httpx.Client(timeout=self._timeout) as client:
            response = client.post(endpoint, json=payload, headers=headers)
        response.raise_for_status()
        body = _json_object(response.json())
        choices = body.get("choices") or []
        if not isinstance(choices, list) or not choices:
            raise ValueError("Plan LLM returned no choices.")
        message = _json_object(_json_object(choices[0]).get("message") or {})
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def _complete_ollama(self, prompt: str, temperature: float, max_tokens: int) -> str:
        endpoint = self._base_url
        if not endpoint.endswith("/api/chat"):
            endpoint = f"{endpoint}/api/chat"
        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        with httpx.Client(timeout=self._timeout) as client:
            response = client.post(endpoint, json=payload)
        response.raise_for_status()
        body = _json_object(response.json())
        message = _json_object(body.get("message") or {})
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def _sanitize_error(self, exc: Exception) -> str:
        text = redact(str(exc), [self._api_key or ""])
        if len(text) > MAX_ERROR_MESSAGE_CHARS:
            text = text[:MAX_ERROR_MESSAGE_CHARS] + "…"
        return text


def build_model_client(settings: Optional[Settings] = None) -> HTTPModelClient | None:
    """Create the configured model client, or ``None`` when no endpoint is set."""

    settings = settings or get_settings()
    if not settings.llm_base_url:
        logger.debug("Plan LLM base URL not configured.")
        return None
    return HTTPModelClient(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        provider=settings.llm_provider,
        api_key=settings.llm_api_key,
        timeout=settings.llm_timeout,
    )


__all__ = ["HTTPModelClient", "build_model_client"]
