"""Data models for chunk store operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from finrag.chunking.schemas import Chunk, FinancialMetadata


@dataclass(frozen=True)
class SearchResult:
    """A scored chunk with its parent's content inlined for child hits."""

    chunk_id: str
    document_id: str
    similarity: float
    content: str
    title: str = ""
    chunk_type: str = ""
    metadata: FinancialMetadata = field(default_factory=FinancialMetadata)
    speaker: str | None = None
    confidence: float | None = None
    parent_id: str | None = None
    parent_content: str | None = None

    @classmethod
    def from_chunk(
        cls,
        chunk: Chunk,
        similarity: float,
        parent_content: str | None = None,
    ) -> SearchResult:
        return cls(
            chunk_id=chunk.id,
            document_id=chunk.document_id,
            similarity=similarity,
            content=chunk.content,
            title=chunk.title,
            chunk_type=str(chunk.chunk_type),
            metadata=chunk.metadata,
            speaker=chunk.speaker,
            confidence=chunk.confidence,
            parent_id=chunk.parent_id,
            parent_content=parent_content if chunk.parent_id else None,
        )

    @property
    def context(self) -> str:
        """Content expanded with the parent text when available."""
        if self.parent_content and self.parent_content != self.content:
            return f"{self.parent_content}\n\n[Matched excerpt]\n{self.content}"
        return self.content


@dataclass
class SearchFilters:
    """Similarity floor, result cap and metadata filters (AND logic)."""

    min_similarity: float = 0.0
    max_results: int = 10
    company: str | None = None
    report_type: str | None = None
    fiscal_year: int | None = None
    document_id: str | None = None
    chunk_types: list[str] | None = None

    def matches(self, chunk: Chunk) -> bool:
        meta = chunk.metadata
        if self.document_id and chunk.document_id != self.document_id:
            return False
        if self.company and (meta.company_name or "").casefold() != self.company.casefold():
            return False
        if self.report_type and meta.report_type != self.report_type:
            return False
        if self.fiscal_year is not None and meta.fiscal_year != self.fiscal_year:
            return False
        return not (self.chunk_types and str(chunk.chunk_type) not in self.chunk_types)

    def to_dict(self) -> dict[str, Any]:
        """Metadata conditions only, keyed by payload field."""
        d: dict[str, Any] = {}
        if self.document_id:
            d["document_id"] = self.document_id
        if self.company:
            d["company_key"] = self.company.casefold()
        if self.report_type:
            d["report_type"] = self.report_type
        if self.fiscal_year is not None:
            d["fiscal_year"] = self.fiscal_year
        return d
