"""Tests for document processing and question answering, fully mocked."""

from __future__ import annotations

import threading

import pytest

from conftest import DIM, MockEmbedder, MockLLM
from finrag.chunking.base import BaseChunker
from finrag.chunking.schemas import Chunk, ChunkType, FinancialMetadata
from finrag.documents.loader import DocumentLoader
from finrag.documents.schemas import DocumentMetadata, LoadResult, ReportType
from finrag.errors import (
    ChildInsertError,
    EmbeddingError,
    ProcessingCancelled,
    ProcessingError,
    SearchError,
)
from finrag.extraction.schemas import StructuredFinancialRecord
from finrag.pipeline.citations import cited_indices, extract_citations, format_citations
from finrag.pipeline.ingest import DocumentProcessor, apply_metadata_overrides
from finrag.pipeline.prompts import (
    NO_RESULTS_ANSWER,
    RAG_SYSTEM_PROMPT,
    SEARCH_UNAVAILABLE_ANSWER,
    build_rag_prompt,
    format_context,
    source_label,
)
from finrag.pipeline.query import QueryPipeline
from finrag.pipeline.schemas import Citation, ProcessingJob, ProcessingStatus, RAGQuery
from finrag.retrieval.retriever import Retriever
from finrag.store.memory_store import InMemoryChunkStore
from finrag.store.schemas import SearchResult


class FailingChildStore(InMemoryChunkStore):
    def insert_children(self, chunks: list[Chunk]) -> int:
        raise RuntimeError("connection reset")


class FlakyChildStore(InMemoryChunkStore):
    """Rejects the first child batch, then behaves normally."""

    failures = 1

    def insert_children(self, chunks: list[Chunk]) -> int:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("connection reset")
        return super().insert_children(chunks)


class WarningLoader(DocumentLoader):
    def load_file(self, path, metadata=None):
        return LoadResult(text="Revenue: $5 million", warnings=["page 2 unreadable"])


class BrokenSearchStore(InMemoryChunkStore):
    def search(self, query_embedding, filters=None):
        raise SearchError("index offline")


class ExplodingChunker(BaseChunker):
    def chunk(self, text, document_id, record=None):
        raise ValueError("bad split")


def _result(
    content: str,
    index: int = 0,
    similarity: float = 0.9,
    **kwargs,
) -> SearchResult:
    return SearchResult(
        chunk_id=f"chunk-{index}",
        document_id="doc-1",
        similarity=similarity,
        content=content,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Document processing
# ---------------------------------------------------------------------------


class TestDocumentProcessor:
    @pytest.fixture
    def processor(self, embedder: MockEmbedder, store: InMemoryChunkStore) -> DocumentProcessor:
        return DocumentProcessor(None, embedder, store)

    def test_end_to_end(self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str):
        chunks = processor.process_document("doc-1", earnings_text)

        assert chunks
        assert store.count() == len(chunks)
        assert chunks[0].chunk_type == ChunkType.EXECUTIVE_SUMMARY
        assert {c.document_id for c in chunks} == {"doc-1"}
        assert any(c.chunk_type == ChunkType.FINANCIAL_METRICS for c in chunks)

    def test_every_stored_embedding_has_provider_dimension(
        self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str,
    ):
        processor.process_document("doc-1", earnings_text)
        assert all(len(c.embedding) == DIM for c in store.chunks())

    def test_parents_stored_before_children(
        self, processor: DocumentProcessor, store: InMemoryChunkStore, long_text: str,
    ):
        processor.process_document("doc-1", long_text)
        stored = store.chunks()
        first_child = next(i for i, c in enumerate(stored) if not c.is_parent)
        assert all(c.is_parent for c in stored[:first_child])
        assert all(not c.is_parent for c in stored[first_child:])
        ids = {c.id for c in stored}
        assert all(c.parent_id in ids for c in stored if c.parent_id)

    def test_job_completed(self, processor: DocumentProcessor, earnings_text: str):
        chunks = processor.process_document("doc-1", earnings_text)
        job = processor.get_job("doc-1")
        assert job.status == ProcessingStatus.COMPLETED
        assert job.progress == 1.0
        assert job.stage == "storing"
        assert job.chunks_created == len(chunks)
        assert job.parents_stored + job.children_stored == len(chunks)
        assert job.done
        assert job.duration is not None

    def test_profile_saved(self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str):
        processor.process_document("doc-1", earnings_text)
        profile = store.get_profile("doc-1")
        assert profile.company_name == "Acme Robotics Inc."
        assert profile.fiscal_period == "Q3 2024"
        assert profile.metrics["revenue"] == 734_200_000

    def test_llm_record_is_used(self, embedder: MockEmbedder, store: InMemoryChunkStore, earnings_text: str):
        llm = MockLLM(
            '{"companyInfo": {"companyName": "Acme Robotics Inc.", "ticker": "ACME"}, '
            '"reportInfo": {"reportType": "earnings", "fiscalPeriod": "Q3 2024"}, '
            '"keyHighlights": ["Record product revenue"]}'
        )
        chunks = DocumentProcessor(llm, embedder, store).process_document("doc-1", earnings_text)
        assert [c.content for c in chunks if c.chunk_type == ChunkType.HIGHLIGHT] == [
            "Record product revenue"
        ]
        assert store.get_profile("doc-1").ticker == "ACME"

    def test_metadata_overrides(
        self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str,
    ):
        metadata = DocumentMetadata(company_name="Acme Holdings", report_type=ReportType.FORM_10K)
        chunks = processor.process_document("doc-1", earnings_text, metadata)
        assert all(c.metadata.company_name == "Acme Holdings" for c in chunks)
        profile = store.get_profile("doc-1")
        assert profile.company_name == "Acme Holdings"
        assert profile.report_type == "10k"

    def test_embedding_failure(self, store: InMemoryChunkStore, earnings_text: str):
        processor = DocumentProcessor(None, MockEmbedder(fail_on_call=1), store)
        with pytest.raises(EmbeddingError):
            processor.process_document("doc-1", earnings_text)
        job = processor.get_job("doc-1")
        assert job.status == ProcessingStatus.FAILED
        assert job.stage == "embedding"
        assert store.count() == 0

    def test_cancelled(self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ProcessingCancelled):
            processor.process_document("doc-1", earnings_text, cancel_event=cancel)
        assert processor.get_job("doc-1").status == ProcessingStatus.CANCELLED
        assert store.count() == 0

    def test_child_batch_failure_reports_stored_parents(self, embedder: MockEmbedder, long_text: str):
        store = FailingChildStore(dimension=DIM)
        processor = DocumentProcessor(None, embedder, store)
        with pytest.raises(ChildInsertError):
            processor.process_document("doc-1", long_text)
        job = processor.get_job("doc-1")
        assert job.status == ProcessingStatus.FAILED
        assert job.parents_stored == store.count() > 0
        assert store.get_profile("doc-1") is None

    def test_retry_after_child_failure_does_not_duplicate(
        self, embedder: MockEmbedder, long_text: str,
    ):
        store = FlakyChildStore(dimension=DIM)
        processor = DocumentProcessor(None, embedder, store)
        with pytest.raises(ChildInsertError):
            processor.process_document("doc-1", long_text)
        assert store.count() > 0

        chunks = processor.process_document("doc-1", long_text)
        assert store.count() == len(chunks)
        assert {c.id for c in store.chunks()} == {c.id for c in chunks}
        assert processor.get_job("doc-1").status == ProcessingStatus.COMPLETED

    def test_other_documents_untouched_by_retry(
        self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str,
    ):
        other = processor.process_document("doc-2", earnings_text)
        processor.process_document("doc-1", earnings_text)
        processor.process_document("doc-1", earnings_text)
        assert len(store.chunks("doc-2")) == len(other)
        assert len(store.chunks("doc-1")) == len(other)

    def test_unexpected_error_is_wrapped(self, embedder: MockEmbedder, store: InMemoryChunkStore):
        processor = DocumentProcessor(None, embedder, store, chunker=ExplodingChunker())
        with pytest.raises(ProcessingError) as exc_info:
            processor.process_document("doc-1", "Revenue: $5 million")
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert exc_info.value.document_id == "doc-1"
        assert processor.get_job("doc-1").error == "bad split"

    def test_concurrent_processing_of_same_document_rejected(
        self, processor: DocumentProcessor, earnings_text: str,
    ):
        processor.jobs["doc-1"] = ProcessingJob("doc-1", status=ProcessingStatus.PROCESSING)
        with pytest.raises(ProcessingError, match="already being processed"):
            processor.process_document("doc-1", earnings_text)

    def test_reprocess_replaces_chunks(
        self, processor: DocumentProcessor, store: InMemoryChunkStore, earnings_text: str,
    ):
        first = processor.process_document("doc-1", earnings_text)
        second = processor.reprocess_document("doc-1", earnings_text)
        assert store.count() == len(second) == len(first)
        assert not {c.id for c in first} & {c.id for c in store.chunks()}

    def test_process_file(self, processor: DocumentProcessor, sample_txt_file):
        chunks = processor.process_file(sample_txt_file, document_id="doc-1")
        assert chunks
        job = processor.get_job("doc-1")
        assert job.filename == "acme_q3.txt"
        assert job.status == ProcessingStatus.COMPLETED

    def test_process_bytes(self, processor: DocumentProcessor, sample_txt_file):
        chunks = processor.process_file(sample_txt_file.read_bytes(), filename="acme_q3.txt")
        job = processor.get_job(chunks[0].document_id)
        assert job.filename == "acme_q3.txt"

    def test_bytes_need_filename(self, processor: DocumentProcessor):
        with pytest.raises(ValueError, match="filename"):
            processor.process_file(b"Revenue: $5 million")

    def test_loader_warnings_recorded_on_job(self, embedder: MockEmbedder, store: InMemoryChunkStore):
        processor = DocumentProcessor(None, embedder, store, loader=WarningLoader())
        processor.process_file("report.pdf", document_id="doc-1")
        assert processor.get_job("doc-1").warnings == ["page 2 unreadable"]

    def test_rejected_run_leaves_inflight_job_warnings_alone(
        self, embedder: MockEmbedder, store: InMemoryChunkStore,
    ):
        processor = DocumentProcessor(None, embedder, store, loader=WarningLoader())
        running = ProcessingJob("doc-1", status=ProcessingStatus.PROCESSING)
        processor.jobs["doc-1"] = running
        with pytest.raises(ProcessingError, match="already being processed"):
            processor.process_file("report.pdf", document_id="doc-1")
        assert processor.get_job("doc-1") is running
        assert running.warnings == []


class TestMetadataOverrides:
    def test_overrides_win(self, sample_record: StructuredFinancialRecord):
        metadata = DocumentMetadata(company_name="Acme Holdings", report_type=ReportType.FORM_10K)
        record = apply_metadata_overrides(sample_record, metadata)
        assert record.company_name == "Acme Holdings"
        assert record.company_info.ticker == "ACME"
        assert record.report_info.report_type == ReportType.FORM_10K
        assert record.report_info.fiscal_period == "Q3 2024"
        assert sample_record.company_name == "Acme Robotics Inc."

    def test_no_overrides(self, sample_record: StructuredFinancialRecord):
        assert apply_metadata_overrides(sample_record, None) is sample_record
        assert apply_metadata_overrides(sample_record, DocumentMetadata(filename="x.pdf")) is sample_record


# ---------------------------------------------------------------------------
# Question answering
# ---------------------------------------------------------------------------


class TestQueryPipeline:
    @pytest.fixture
    def loaded_store(self, embedder: MockEmbedder, store: InMemoryChunkStore, earnings_text: str):
        DocumentProcessor(None, embedder, store).process_document("doc-1", earnings_text)
        return store

    def test_answer_with_citations(self, embedder: MockEmbedder, loaded_store: InMemoryChunkStore):
        llm = MockLLM("Revenue was $734.2 million [1]. Margins improved [2].")
        pipeline = QueryPipeline(Retriever(embedder, loaded_store), llm)

        response = pipeline.ask(RAGQuery(question="What was revenue?", document_id="doc-1"))

        assert response.answer.startswith("Revenue was $734.2 million")
        assert response.model == "mock-llm"
        assert response.retrieval_count == len(response.context_texts) > 0
        assert response.rewritten_query.startswith("About Acme Robotics Inc. Q3 2024 filing")
        assert response.citations[0].index == 1
        assert response.citations[0].company == "Acme Robotics Inc."
        assert llm.systems == [RAG_SYSTEM_PROMPT]
        assert "Question: What was revenue?" in llm.prompts[0]
        assert "[1] (" in llm.prompts[0]

    def test_no_results_skips_llm(self, embedder: MockEmbedder, store: InMemoryChunkStore):
        llm = MockLLM()
        response = QueryPipeline(Retriever(embedder, store), llm).ask_simple("What was revenue?")
        assert response.answer == NO_RESULTS_ANSWER
        assert response.citations == []
        assert response.search_failed is False
        assert llm.prompts == []

    def test_search_failure_has_distinct_answer(self, embedder: MockEmbedder):
        llm = MockLLM()
        retriever = Retriever(embedder, BrokenSearchStore(dimension=DIM))
        response = QueryPipeline(retriever, llm).ask_simple("What was revenue?")
        assert response.answer == SEARCH_UNAVAILABLE_ANSWER
        assert response.search_failed is True
        assert llm.prompts == []

    def test_company_filter(self, embedder: MockEmbedder, loaded_store: InMemoryChunkStore):
        llm = MockLLM()
        pipeline = QueryPipeline(Retriever(embedder, loaded_store), llm)
        assert pipeline.ask_simple("What was revenue?", company="Globex Corp").answer == NO_RESULTS_ANSWER
        assert pipeline.ask_simple("What was revenue?", company="acme robotics inc.").citations

    def test_intent_routing(self, embedder: MockEmbedder, loaded_store: InMemoryChunkStore):
        # The earnings release has no transcript chunks to search.
        llm = MockLLM()
        pipeline = QueryPipeline(Retriever(embedder, loaded_store), llm)
        response = pipeline.ask_simple("Who said margins would expand?", use_intent=True)
        assert response.answer == NO_RESULTS_ANSWER

    def test_llm_errors_propagate(self, embedder: MockEmbedder, loaded_store: InMemoryChunkStore):
        pipeline = QueryPipeline(Retriever(embedder, loaded_store), MockLLM(RuntimeError("timeout")))
        with pytest.raises(RuntimeError):
            pipeline.ask_simple("What was revenue?")


# ---------------------------------------------------------------------------
# Prompts and citations
# ---------------------------------------------------------------------------


class TestPrompts:
    def test_source_label(self):
        meta = FinancialMetadata(company_name="Acme Robotics Inc.", fiscal_period="Q3 2024")
        result = _result("x", title="Income Statement", metadata=meta, speaker="Jane Doe")
        assert source_label(result) == (
            "Acme Robotics Inc., Q3 2024 | Income Statement | speaker: Jane Doe"
        )
        assert source_label(_result("x")) == "doc-1"

    def test_format_context_expands_parent(self):
        results = [
            _result("Revenue: $734.2M", 0, title="Key Financial Metrics"),
            _result("We opened two offices", 1, parent_id="p", parent_content="Expansion update"),
        ]
        context = format_context(results)
        assert context.startswith("[1] (Key Financial Metrics)\nRevenue: $734.2M")
        assert "\n\n---\n\n[2] (doc-1)\nExpansion update\n\n[Matched excerpt]\nWe opened" in context

    def test_build_rag_prompt(self):
        prompt = build_rag_prompt("What was revenue?", [_result("Revenue: $734.2M")])
        assert "[1]" in prompt
        assert "Question: What was revenue?" in prompt


class TestCitations:
    def test_indices(self):
        assert cited_indices("See [1], [2-4] and [1, 3]. Not [a].") == [1, 2, 3, 4]
        assert cited_indices("No citations.") == []

    def test_extract(self):
        meta = FinancialMetadata(company_name="Acme Robotics Inc.", fiscal_period="Q3 2024")
        results = [_result("Revenue: $734.2M", 0, metadata=meta), _result("Net loss", 1, 0.7)]
        citations = extract_citations("Revenue rose [1]; losses narrowed [2]. See [9].", results)
        assert [c.index for c in citations] == [1, 2]
        assert citations[0].company == "Acme Robotics Inc."
        assert citations[0].fiscal_period == "Q3 2024"
        assert citations[1].chunk_id == "chunk-1"
        assert citations[1].similarity == 0.7

    def test_long_snippet_truncated(self):
        citations = extract_citations("[1]", [_result("x" * 300)])
        assert citations[0].text == "x" * 200 + "..."

    def test_format(self):
        citations = [
            Citation(index=1, text="t", chunk_id="c", document_id="d", title="Outlook",
                     company="Acme Robotics Inc.", fiscal_period="Q3 2024"),
        ]
        assert format_citations(citations) == (
            "\n---\n**Sources:**\n- [1] | Acme Robotics Inc. | Q3 2024 | (Outlook)"
        )
        assert format_citations([]) == ""
