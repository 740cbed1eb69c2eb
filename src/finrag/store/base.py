"""Chunk store port and the two-phase parent/child insert."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from finrag.chunking.schemas import Chunk
from finrag.errors import ChildInsertError, ParentInsertError, StorageError
from finrag.extraction.profile import FinancialProfile
from finrag.store.schemas import SearchFilters, SearchResult

logger = logging.getLogger(__name__)


class ChunkStore(ABC):
    """Persistence and similarity search for document chunks.

    Implementations must reject a child whose parent is not stored yet, and
    return search results in descending cosine similarity with the parent's
    content inlined for child hits.
    """

    def __init__(self) -> None:
        self._profile_table: dict[str, FinancialProfile] = {}

    @abstractmethod
    def insert_parents(self, chunks: list[Chunk]) -> int:
        """Insert a batch of parent chunks. Returns the number inserted."""

    @abstractmethod
    def insert_children(self, chunks: list[Chunk]) -> int:
        """Insert a batch of child chunks whose parents are already stored."""

    @abstractmethod
    def search(
        self,
        query_embedding: list[float],
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Rank stored chunks by cosine similarity to ``query_embedding``.

        Raises:
            SearchError: The backend failed or the vector is malformed.
        """

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored chunks."""

    @abstractmethod
    def get_chunk(self, chunk_id: str) -> Chunk | None: ...

    @abstractmethod
    def delete_document(self, document_id: str) -> int:
        """Delete every chunk of a document. Returns the number removed."""

    @abstractmethod
    def clear(self) -> None:
        """Delete all chunks and profiles."""

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Counts of chunks, parents, children and documents."""

    # Profiles are small; stores without a dedicated table keep them in memory.

    def save_profile(self, profile: FinancialProfile) -> None:
        self._profile_table[profile.document_id] = profile

    def get_profile(self, document_id: str) -> FinancialProfile | None:
        return self._profile_table.get(document_id)

    @staticmethod
    def _validate_batch(chunks: list[Chunk], parents: bool) -> None:
        for chunk in chunks:
            if chunk.embedding is None:
                raise StorageError(
                    f"Chunk {chunk.id} has no embedding", document_id=chunk.document_id
                )
            if parents and chunk.parent_id is not None:
                raise StorageError(
                    f"Chunk {chunk.id} is a child, not a parent", document_id=chunk.document_id
                )
            if not parents and chunk.parent_id is None:
                raise StorageError(
                    f"Chunk {chunk.id} is a parent, not a child", document_id=chunk.document_id
                )

    @classmethod
    def store_name(cls) -> str:
        """Return human-readable store name."""
        return cls.__name__


def insert_chunks(store: ChunkStore, chunks: list[Chunk]) -> tuple[int, int]:
    """Persist a document's chunks: all parents, then all children.

    Returns:
        ``(parents_inserted, children_inserted)``.

    Raises:
        StorageError: A chunk lacks an embedding or a child's parent is
            neither in ``chunks`` nor already stored. Nothing is written.
        ParentInsertError: The parent batch failed; children were not attempted.
        ChildInsertError: The child batch failed; the parents stay stored.
    """
    if not chunks:
        return 0, 0

    document_id = chunks[0].document_id
    parents = [c for c in chunks if c.parent_id is None]
    children = [c for c in chunks if c.parent_id is not None]

    missing = [c.id for c in chunks if c.embedding is None]
    if missing:
        raise StorageError(
            f"{len(missing)} chunk(s) have no embedding", document_id=document_id
        )

    batch_ids = {c.id for c in parents}
    for parent_id in {c.parent_id for c in children} - batch_ids:
        if store.get_chunk(parent_id) is None:
            raise StorageError(
                f"Parent chunk {parent_id} is neither in the batch nor stored",
                document_id=document_id,
            )

    try:
        parents_inserted = store.insert_parents(parents) if parents else 0
    except Exception as exc:
        raise ParentInsertError(
            f"Parent batch insert failed: {exc}", document_id=document_id
        ) from exc

    try:
        children_inserted = store.insert_children(children) if children else 0
    except Exception as exc:
        logger.error(
            "Child batch failed for document %s; %d parent chunks remain stored",
            document_id, parents_inserted,
        )
        raise ChildInsertError(
            f"Child batch insert failed: {exc}",
            document_id=document_id,
            parents_inserted=parents_inserted,
        ) from exc

    logger.info(
        "Stored document %s: %d parents, %d children",
        document_id, parents_inserted, children_inserted,
    )
    return parents_inserted, children_inserted
