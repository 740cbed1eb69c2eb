"""Abstract base class for all chunkers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from finrag.chunking.schemas import Chunk
from finrag.extraction.schemas import StructuredFinancialRecord


class BaseChunker(ABC):
    """Interface for document chunking strategies."""

    @abstractmethod
    def chunk(
        self,
        text: str,
        document_id: str,
        record: StructuredFinancialRecord | None = None,
    ) -> list[Chunk]:
        """Split a document into chunks.

        Args:
            text: Full document text.
            document_id: Owning document; stamped on every chunk.
            record: Structured record supplying the financial metadata.

        Returns:
            Chunks in creation order. Every parent precedes its children.
        """

    @classmethod
    def strategy_name(cls) -> str:
        """Return human-readable strategy name."""
        return cls.__name__
