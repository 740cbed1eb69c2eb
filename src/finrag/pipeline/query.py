"""Query pipeline: question -> retrieve -> LLM -> cited answer."""

from __future__ import annotations

import logging

from finrag.llm.base import LLMProvider
from finrag.pipeline.citations import extract_citations
from finrag.pipeline.prompts import (
    NO_RESULTS_ANSWER,
    RAG_SYSTEM_PROMPT,
    SEARCH_UNAVAILABLE_ANSWER,
    build_rag_prompt,
)
from finrag.pipeline.schemas import RAGQuery, RAGResponse
from finrag.retrieval.retriever import Retriever
from finrag.retrieval.schemas import RetrievalResult
from finrag.store.schemas import SearchFilters

logger = logging.getLogger(__name__)


class QueryPipeline:
    """Orchestrates question -> retrieve -> generate -> cite."""

    def __init__(
        self,
        retriever: Retriever,
        llm: LLMProvider,
        system_prompt: str = RAG_SYSTEM_PROMPT,
        temperature: float | None = None,
    ):
        self.retriever = retriever
        self.llm = llm
        self.system_prompt = system_prompt
        self.temperature = temperature

    @property
    def model(self) -> str:
        return getattr(self.llm, "model", "unknown")

    def ask(self, rag_query: RAGQuery) -> RAGResponse:
        """Answer ``rag_query`` from the stored documents.

        Returns a canned answer without calling the LLM when nothing
        relevant was found or when search failed.
        """
        retrieval = self._retrieve(rag_query)
        response = RAGResponse(
            question=rag_query.question,
            answer="",
            model=self.model,
            rewritten_query=retrieval.rewritten_query,
            search_failed=retrieval.failed,
        )

        if retrieval.failed:
            response.answer = SEARCH_UNAVAILABLE_ANSWER
            return response
        if not retrieval.results:
            response.answer = NO_RESULTS_ANSWER
            return response

        prompt = build_rag_prompt(rag_query.question, retrieval.results)
        answer = self.llm.generate(
            prompt, system=self.system_prompt, temperature=self.temperature,
        )
        citations = extract_citations(answer, retrieval.results)
        logger.info(
            "Query answered: %d context chunks, %d citations",
            len(retrieval.results), len(citations),
        )

        response.answer = answer
        response.citations = citations
        response.context_texts = [r.context for r in retrieval.results]
        response.retrieval_count = len(retrieval.results)
        return response

    def ask_simple(self, question: str, **kwargs) -> RAGResponse:
        """Convenience wrapper building the ``RAGQuery`` from keywords."""
        return self.ask(RAGQuery(question=question, **kwargs))

    def _retrieve(self, rag_query: RAGQuery) -> RetrievalResult:
        if rag_query.use_intent:
            return self.retriever.enhanced_search(
                rag_query.question, document_id=rag_query.document_id,
            )

        filters = None
        if rag_query.company or rag_query.report_type or rag_query.fiscal_year is not None:
            filters = SearchFilters(
                company=rag_query.company,
                report_type=rag_query.report_type,
                fiscal_year=rag_query.fiscal_year,
            )
        return self.retriever.retrieve(
            rag_query.question,
            max_results=rag_query.max_results,
            strictness=rag_query.strictness,
            document_id=rag_query.document_id,
            filters=filters,
        )
