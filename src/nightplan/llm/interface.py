"""LLM runtime abstraction layer."""

from __future__ import annotations

from typing import Protocol


class ModelClient(Protocol):
    """Protocol for generative text backends used by the plan engine."""

    def complete(self, *, prompt: str, temperature: float, max_tokens: int) -> str:
        """Return raw generated text for the supplied prompt."""


class ModelClientError(RuntimeError):
    """Raised when a model backend cannot produce a completion."""
