"""Chunker factory: registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from finrag.chunking.base import BaseChunker

logger = logging.getLogger(__name__)

# (strategy, module_path, class_name)
_CHUNKER_REGISTRY: list[tuple[str, str, str]] = [
    ("hierarchical", "finrag.chunking.hierarchical", "HierarchicalDocumentChunker"),
    ("record", "finrag.chunking.record_chunker", "RecordChunker"),
    ("span", "finrag.chunking.span_chunker", "HierarchicalChunker"),
]

_chunker_cache: dict[str, BaseChunker] = {}


def get_chunker(strategy: str = "hierarchical", **kwargs) -> BaseChunker:
    """Get a chunker by strategy name.

    Raises:
        ValueError: If ``strategy`` is not registered.
    """
    key = strategy.lower()
    if not kwargs and key in _chunker_cache:
        return _chunker_cache[key]

    for reg_key, module_path, cls_name in _CHUNKER_REGISTRY:
        if reg_key != key:
            continue
        cls = getattr(importlib.import_module(module_path), cls_name)
        instance = cls(**kwargs)
        if not kwargs:
            _chunker_cache[key] = instance
        return instance

    raise ValueError(f"Unknown chunking strategy '{strategy}'. Available: {available_chunkers()}")


def available_chunkers() -> list[str]:
    return [k for k, _, _ in _CHUNKER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _chunker_cache.clear()
