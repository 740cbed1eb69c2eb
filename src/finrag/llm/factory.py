"""LLM provider factory: registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from finrag.llm.base import LLMProvider

logger = logging.getLogger(__name__)

# (provider_key, module_path, class_name)
_PROVIDER_REGISTRY: list[tuple[str, str, str]] = [
    ("openai", "finrag.llm.openai_provider", "OpenAILLMProvider"),
    ("anthropic", "finrag.llm.anthropic_provider", "AnthropicLLMProvider"),
    ("ollama", "finrag.llm.ollama_provider", "OllamaLLMProvider"),
]

_provider_cache: dict[str, LLMProvider] = {}


def get_llm_provider(provider: str = "openai", **kwargs) -> LLMProvider:
    """Get an LLM provider by name.

    Instances built without constructor arguments are cached and shared.

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
        logger.info("Initialized LLM provider %s", cls.provider_name())
        if not kwargs:
            _provider_cache[key] = instance
        return instance

    raise ValueError(
        f"Unknown LLM provider '{provider}'. Available: {available_providers()}"
    )


def available_providers() -> list[str]:
    return [k for k, _, _ in _PROVIDER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _provider_cache.clear()
