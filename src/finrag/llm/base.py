"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Text completion port used by extraction and answering."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """Complete ``prompt`` and return the raw text.

        Args:
            prompt: The user prompt.
            system: Optional system prompt.
            temperature: Per-call sampling temperature. ``None`` keeps the
                provider default; extraction passes a low value for
                near-deterministic JSON.
        """

    @classmethod
    def provider_name(cls) -> str:
        """Return human-readable provider name."""
        return cls.__name__
