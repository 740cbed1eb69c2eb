"""Data models for document processing and answering."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum


class ProcessingStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ProcessingJob:
    """Progress of one ``process_document`` call.

    Attributes:
        document_id: Document being processed.
        filename: Source file name, when known.
        status: Current lifecycle state.
        stage: Last stage entered (extracting, chunking, embedding, storing).
        progress: Fraction in [0, 1].
        error: Failure message for failed or cancelled jobs.
        chunks_created: Chunks produced by the chunk builder.
        parents_stored: Parent chunks written to the store.
        children_stored: Child chunks written to the store.
        started_at: ``time.time()`` when processing began.
        finished_at: ``time.time()`` when processing ended.
        warnings: Non-fatal issues reported by the loader.
    """

    document_id: str
    filename: str | None = None
    status: ProcessingStatus = ProcessingStatus.PENDING
    stage: str = ""
    progress: float = 0.0
    error: str | None = None
    chunks_created: int = 0
    parents_stored: int = 0
    children_stored: int = 0
    started_at: float | None = None
    finished_at: float | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    @property
    def done(self) -> bool:
        return self.status in (
            ProcessingStatus.COMPLETED,
            ProcessingStatus.FAILED,
            ProcessingStatus.CANCELLED,
        )

    def start(self) -> None:
        self.status = ProcessingStatus.PROCESSING
        self.started_at = time.time()

    def advance(self, stage: str, progress: float) -> None:
        self.stage = stage
        self.progress = progress

    def finish(self, status: ProcessingStatus, error: str | None = None) -> None:
        self.status = status
        self.error = error
        self.finished_at = time.time()
        if status == ProcessingStatus.COMPLETED:
            self.progress = 1.0


@dataclass
class Citation:
    """A source cited in a generated answer."""

    index: int
    text: str
    chunk_id: str
    document_id: str
    title: str = ""
    company: str | None = None
    fiscal_period: str | None = None
    similarity: float = 0.0


@dataclass
class RAGQuery:
    """Input to the answering pipeline.

    ``use_intent`` lets the query wording choose result count, strictness
    and chunk types; otherwise ``max_results`` and ``strictness`` apply.
    """

    question: str
    document_id: str | None = None
    company: str | None = None
    report_type: str | None = None
    fiscal_year: int | None = None
    max_results: int | None = None
    strictness: float | None = None
    use_intent: bool = False


@dataclass
class RAGResponse:
    """Output of the answering pipeline."""

    question: str
    answer: str
    citations: list[Citation] = field(default_factory=list)
    context_texts: list[str] = field(default_factory=list)
    model: str = ""
    retrieval_count: int = 0
    rewritten_query: str = ""
    search_failed: bool = False
