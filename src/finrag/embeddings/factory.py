"""Embedding provider factory: registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from finrag.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

# (provider_key, module_path, class_name)
_PROVIDER_REGISTRY: list[tuple[str, str, str]] = [
    ("openai", "finrag.embeddings.openai_provider", "OpenAIEmbeddingProvider"),
    ("ollama", "finrag.embeddings.ollama_provider", "OllamaEmbeddingProvider"),
]

_provider_cache: dict[str, EmbeddingProvider] = {}


def get_embedding_provider(provider: str = "openai", **kwargs) -> EmbeddingProvider:
    """Get an embedding provider by name.

    Raises:
        ValueError: If ``provider`` is not registered.
    """
    key = provider.lower()

    if not kwargs and key in _provider_cache:
        return _provider_cache[key]

    for reg_key, module_path, cls_name in _PROVIDER_REGISTRY:
        if reg_key != key:
            continue
        cls = getattr(importlib.import_module(module_path), cls_name)
        instance = cls(**kwargs)
        logger.info("Initialized embedding provider %s (dim=%d)",
                    cls.provider_name(), instance.dimension)
        if not kwargs:
            _provider_cache[key] = instance
        return instance

    raise ValueError(
        f"Unknown embedding provider '{provider}'. Available: {available_providers()}"
    )


def available_providers() -> list[str]:
    return [k for k, _, _ in _PROVIDER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _provider_cache.clear()
