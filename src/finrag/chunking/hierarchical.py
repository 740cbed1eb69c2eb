"""Combined chunker used by the ingest pipeline."""

from __future__ import annotations

from finrag.chunking.base import BaseChunker
from finrag.chunking.record_chunker import RecordChunker
from finrag.chunking.schemas import Chunk
from finrag.chunking.span_chunker import HierarchicalChunker
from finrag.chunking.splitters import (
    CHILD_CHUNK_OVERLAP,
    CHILD_CHUNK_SIZE,
    PARENT_CHUNK_OVERLAP,
    PARENT_CHUNK_SIZE,
)
from finrag.extraction.schemas import StructuredFinancialRecord


class HierarchicalDocumentChunker(BaseChunker):
    """Record chunks (executive view) followed by span chunks (full text).

    Root-level ``order`` values continue from the record chunks into the
    span parents, so the whole document reconstructs deterministically.
    Empty text yields only the record chunks.
    """

    def __init__(
        self,
        parent_chunk_size: int = PARENT_CHUNK_SIZE,
        parent_chunk_overlap: int = PARENT_CHUNK_OVERLAP,
        child_chunk_size: int = CHILD_CHUNK_SIZE,
        child_chunk_overlap: int = CHILD_CHUNK_OVERLAP,
        flat_record_chunks: bool = False,
    ):
        self.record_chunker = RecordChunker(flat=flat_record_chunks)
        self.span_chunker = HierarchicalChunker(
            parent_chunk_size=parent_chunk_size,
            parent_chunk_overlap=parent_chunk_overlap,
            child_chunk_size=child_chunk_size,
            child_chunk_overlap=child_chunk_overlap,
        )

    def chunk(
        self,
        text: str,
        document_id: str,
        record: StructuredFinancialRecord | None = None,
    ) -> list[Chunk]:
        record = record or StructuredFinancialRecord()
        chunks = self.record_chunker.chunk_record(document_id, record)
        roots = sum(1 for c in chunks if c.is_parent)
        chunks.extend(self.span_chunker.chunk(text, document_id, record, start_order=roots))
        return chunks
