"""Hierarchical parent/child chunking for financial documents."""

from finrag.chunking.base import BaseChunker
from finrag.chunking.factory import available_chunkers, get_chunker
from finrag.chunking.hierarchical import HierarchicalDocumentChunker
from finrag.chunking.record_chunker import RecordChunker
from finrag.chunking.schemas import Chunk, ChunkLevel, ChunkType, FinancialMetadata
from finrag.chunking.span_chunker import HierarchicalChunker
from finrag.chunking.structure import Span, detect_structure

__all__ = [
    "BaseChunker",
    "Chunk",
    "ChunkLevel",
    "ChunkType",
    "FinancialMetadata",
    "HierarchicalChunker",
    "HierarchicalDocumentChunker",
    "RecordChunker",
    "Span",
    "available_chunkers",
    "detect_structure",
    "get_chunker",
]
