"""Span-mode chunking: typed spans -> coarse parents -> fine children."""

from __future__ import annotations

import logging

from finrag.chunking.base import BaseChunker
from finrag.chunking.schemas import Chunk, FinancialMetadata
from finrag.chunking.scoring import score_confidence
from finrag.chunking.splitters import (
    CHILD_CHUNK_OVERLAP,
    CHILD_CHUNK_SIZE,
    PARENT_CHUNK_OVERLAP,
    PARENT_CHUNK_SIZE,
    build_child_splitter,
    build_parent_splitter,
)
from finrag.chunking.structure import (
    Span,
    detect_metric_tags,
    detect_structure,
    extract_section_title,
)
from finrag.extraction.schemas import StructuredFinancialRecord

logger = logging.getLogger(__name__)


class HierarchicalChunker(BaseChunker):
    """Full-fidelity chunking of the document text.

    Each detected span is split by the coarse splitter into parents
    (~1500 chars); each parent is split by the fine splitter into children
    (~400 chars) that point back to it. Every chunk carries a confidence
    score and a heuristic section title.
    """

    def __init__(
        self,
        parent_chunk_size: int = PARENT_CHUNK_SIZE,
        parent_chunk_overlap: int = PARENT_CHUNK_OVERLAP,
        child_chunk_size: int = CHILD_CHUNK_SIZE,
        child_chunk_overlap: int = CHILD_CHUNK_OVERLAP,
    ):
        self._parent_splitter = build_parent_splitter(parent_chunk_size, parent_chunk_overlap)
        self._child_splitter = build_child_splitter(child_chunk_size, child_chunk_overlap)

    def chunk(
        self,
        text: str,
        document_id: str,
        record: StructuredFinancialRecord | None = None,
        start_order: int = 0,
    ) -> list[Chunk]:
        """Chunk ``text``. Parent ``order`` values start at ``start_order``."""
        metadata = (
            FinancialMetadata.from_record(record) if record is not None else FinancialMetadata()
        )
        spans = detect_structure(text)

        chunks: list[Chunk] = []
        order = start_order
        for span in spans:
            for parent_text in self._parent_splitter.split_text(span.content):
                parent = self._make_chunk(parent_text, span, document_id, metadata, order)
                chunks.append(parent)
                order += 1

                for j, child_text in enumerate(self._child_splitter.split_text(parent_text)):
                    child = self._make_chunk(child_text, span, document_id, metadata, j)
                    child.parent_id = parent.id
                    child.depth = 2
                    chunks.append(child)

        logger.info(
            "Span chunking: %d spans -> %d parents, %d children",
            len(spans),
            sum(1 for c in chunks if c.is_parent),
            sum(1 for c in chunks if not c.is_parent),
        )
        return chunks

    @staticmethod
    def _make_chunk(
        content: str,
        span: Span,
        document_id: str,
        metadata: FinancialMetadata,
        order: int,
    ) -> Chunk:
        return Chunk(
            document_id=document_id,
            content=content,
            chunk_type=span.span_type,
            title=extract_section_title(content),
            order=order,
            depth=1,
            section_type=str(span.span_type),
            speaker=span.speaker,
            confidence=score_confidence(content, span.span_type),
            metadata=metadata.tagged(metrics=detect_metric_tags(content)),
        )
