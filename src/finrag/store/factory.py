"""Chunk store factory: registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from finrag.store.base import ChunkStore

logger = logging.getLogger(__name__)

# (backend_key, module_path, class_name)
_STORE_REGISTRY: list[tuple[str, str, str]] = [
    ("memory", "finrag.store.memory_store", "InMemoryChunkStore"),
    ("qdrant", "finrag.store.qdrant_store", "QdrantChunkStore"),
    ("faiss", "finrag.store.faiss_store", "FAISSChunkStore"),
]

_store_cache: dict[str, ChunkStore] = {}


def get_chunk_store(backend: str = "memory", **kwargs) -> ChunkStore:
    """Get a chunk store by backend name.

    Raises:
        ValueError: If ``backend`` is not registered.
    """
    key = backend.lower()

    if not kwargs and key in _store_cache:
        return _store_cache[key]

    for reg_key, module_path, cls_name in _STORE_REGISTRY:
        if reg_key != key:
            continue
        cls = getattr(importlib.import_module(module_path), cls_name)
        instance = cls(**kwargs)
        logger.info("Initialized chunk store %s", cls.store_name())
        if not kwargs:
            _store_cache[key] = instance
        return instance

    raise ValueError(f"Unknown chunk store '{backend}'. Available: {available_stores()}")


def available_stores() -> list[str]:
    return [k for k, _, _ in _STORE_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _store_cache.clear()
