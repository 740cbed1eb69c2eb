"""Document processing: sanitize, extract, chunk, embed, store.

This is the main entry point for adding documents to a ``ChunkStore``.
Documents are immutable once stored; ``reprocess_document`` is the only way
to replace one.
"""

from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path

from finrag.chunking.base import BaseChunker
from finrag.chunking.hierarchical import HierarchicalDocumentChunker
from finrag.chunking.schemas import Chunk
from finrag.config import Settings
from finrag.documents.loader import DocumentLoader
from finrag.documents.sanitize import sanitize_document_text
from finrag.documents.schemas import DocumentMetadata, ReportType
from finrag.embeddings.base import EmbeddingProvider
from finrag.embeddings.generator import ChunkEmbedder
from finrag.errors import ChildInsertError, ProcessingCancelled, ProcessingError
from finrag.extraction.extractor import FinancialDataExtractor
from finrag.extraction.profile import build_profile
from finrag.extraction.schemas import StructuredFinancialRecord
from finrag.llm.base import LLMProvider
from finrag.pipeline.schemas import ProcessingJob, ProcessingStatus
from finrag.store.base import ChunkStore, insert_chunks

logger = logging.getLogger(__name__)


def apply_metadata_overrides(
    record: StructuredFinancialRecord,
    metadata: DocumentMetadata | None,
) -> StructuredFinancialRecord:
    """Caller-supplied company, ticker and report type win over extracted ones."""
    if metadata is None:
        return record

    update = {}
    company = {
        key: value
        for key, value in (("company_name", metadata.company_name), ("ticker", metadata.ticker))
        if value
    }
    if company:
        update["company_info"] = record.company_info.model_copy(update=company)
    if metadata.report_type:
        update["report_info"] = record.report_info.model_copy(
            update={"report_type": ReportType.parse(metadata.report_type)},
        )
    return record.model_copy(update=update) if update else record


class DocumentProcessor:
    """Orchestrates one document from raw text to stored, embedded chunks."""

    def __init__(
        self,
        llm: LLMProvider | None,
        embedding_provider: EmbeddingProvider,
        store: ChunkStore,
        chunker: BaseChunker | None = None,
        embedder: ChunkEmbedder | None = None,
        loader: DocumentLoader | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or Settings()
        self.store = store
        self.extractor = FinancialDataExtractor(
            llm,
            temperature=settings.extraction.temperature,
            max_chars=settings.extraction.max_chars,
        )
        self.chunker = chunker or HierarchicalDocumentChunker(
            parent_chunk_size=settings.chunking.parent_chunk_size,
            parent_chunk_overlap=settings.chunking.parent_chunk_overlap,
            child_chunk_size=settings.chunking.child_chunk_size,
            child_chunk_overlap=settings.chunking.child_chunk_overlap,
            flat_record_chunks=settings.chunking.flat_record_chunks,
        )
        self.embedder = embedder or ChunkEmbedder(
            embedding_provider,
            max_workers=settings.processing.embedding_workers,
            batch_size=settings.processing.batch_size,
        )
        self.loader = loader or DocumentLoader()
        self.jobs: dict[str, ProcessingJob] = {}
        self._jobs_lock = threading.Lock()

    def process_document(
        self,
        document_id: str,
        text: str,
        metadata: DocumentMetadata | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[Chunk]:
        """Process ``text`` and store its chunks under ``document_id``.

        Chunks already stored under ``document_id``, such as those left by a
        failed child insert, are deleted first so a retry never duplicates them.

        Args:
            document_id: Identifier shared by every chunk of the document.
            text: Raw document text.
            metadata: Overrides for the extracted company and report type.
            cancel_event: Set by another thread to stop scheduling embeddings.

        Returns:
            The stored chunks, each with its embedding.

        Raises:
            EmbeddingError: The embedding provider failed.
            ProcessingCancelled: ``cancel_event`` was set.
            StorageError: The store rejected the parent or child batch.
        """
        job = self._new_job(document_id, metadata)
        job.start()
        logger.info("Processing document %s (%d chars)", document_id, len(text))

        try:
            if removed := self.store.delete_document(document_id):
                logger.info("Removed %d stored chunks of document %s", removed, document_id)

            job.advance("extracting", 0.1)
            clean = sanitize_document_text(text)
            record = apply_metadata_overrides(self.extractor.extract(clean), metadata)

            job.advance("chunking", 0.3)
            chunks = self.chunker.chunk(clean, document_id, record)
            job.chunks_created = len(chunks)

            job.advance("embedding", 0.4)
            self.embedder.embed_chunks(chunks, cancel_event=cancel_event)

            job.advance("storing", 0.8)
            job.parents_stored, job.children_stored = insert_chunks(self.store, chunks)
            self.store.save_profile(build_profile(document_id, record))
        except ProcessingCancelled as exc:
            job.finish(ProcessingStatus.CANCELLED, exc.message)
            logger.warning("Processing cancelled for document %s", document_id)
            raise
        except ProcessingError as exc:
            if isinstance(exc, ChildInsertError):
                job.parents_stored = exc.parents_inserted
            job.finish(ProcessingStatus.FAILED, exc.message)
            logger.error("Processing failed for document %s: %s", document_id, exc.message)
            raise
        except Exception as exc:
            job.finish(ProcessingStatus.FAILED, str(exc))
            logger.exception("Unexpected error processing document %s", document_id)
            raise ProcessingError(str(exc), document_id=document_id) from exc

        job.finish(ProcessingStatus.COMPLETED)
        logger.info(
            "Processed document %s: %d chunks (%d parents, %d children) in %.2fs",
            document_id, len(chunks), job.parents_stored, job.children_stored,
            job.duration or 0.0,
        )
        return chunks

    def process_file(
        self,
        source: str | Path | bytes,
        filename: str | None = None,
        document_id: str | None = None,
        metadata: DocumentMetadata | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[Chunk]:
        """Load a PDF/DOCX/TXT/CSV/XLSX file, then ``process_document`` it.

        ``filename`` is required when ``source`` is raw bytes. A fresh
        document id is generated when none is given.
        """
        if isinstance(source, bytes):
            if not filename:
                raise ValueError("filename is required when loading from bytes")
            loaded = self.loader.load_bytes(source, filename, metadata)
        else:
            loaded = self.loader.load_file(source, metadata)
            filename = filename or Path(source).name

        metadata = metadata or DocumentMetadata()
        if metadata.filename is None:
            metadata = DocumentMetadata(
                filename=filename,
                company_name=metadata.company_name,
                ticker=metadata.ticker,
                report_type=metadata.report_type,
                source_integration=metadata.source_integration,
            )

        document_id = document_id or str(uuid.uuid4())
        previous = self.jobs.get(document_id)
        for warning in loaded.warnings:
            logger.warning("%s: %s", filename, warning)
        if not loaded.text.strip():
            logger.warning("%s contains no extractable text", filename)

        try:
            return self.process_document(document_id, loaded.text, metadata, cancel_event)
        finally:
            job = self.jobs.get(document_id)
            if job is not None and job is not previous:
                job.warnings.extend(loaded.warnings)

    def reprocess_document(
        self,
        document_id: str,
        text: str,
        metadata: DocumentMetadata | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[Chunk]:
        """Replace a stored document with a fresh run over ``text``."""
        return self.process_document(document_id, text, metadata, cancel_event)

    def get_job(self, document_id: str) -> ProcessingJob | None:
        return self.jobs.get(document_id)

    def _new_job(self, document_id: str, metadata: DocumentMetadata | None) -> ProcessingJob:
        with self._jobs_lock:
            current = self.jobs.get(document_id)
            if current is not None and current.status == ProcessingStatus.PROCESSING:
                raise ProcessingError(
                    "Document is already being processed", document_id=document_id,
                )
            job = ProcessingJob(
                document_id=document_id,
                filename=metadata.filename if metadata else None,
            )
            self.jobs[document_id] = job
            return job
