"""Retriever: rewrite, embed, over-fetch, adaptively filter.

Search fails closed: any error while resolving context, embedding or
querying the store is logged and reported as an empty, ``failed`` result.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import replace

from finrag.config import RetrievalSettings
from finrag.embeddings.base import EmbeddingProvider
from finrag.retrieval.adaptive import adaptive_filter
from finrag.retrieval.intent import detect_query_intent, search_options_for_intent
from finrag.retrieval.rewriter import QueryRewriter, rewrite_query
from finrag.retrieval.schemas import DocumentContext, RetrievalResult
from finrag.store.base import ChunkStore
from finrag.store.schemas import SearchFilters, SearchResult

logger = logging.getLogger(__name__)


class Retriever:
    """Query path over a ``ChunkStore``."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store: ChunkStore,
        rewriter: QueryRewriter | None = None,
        settings: RetrievalSettings | None = None,
    ):
        self.embedding_provider = embedding_provider
        self.store = store
        self.settings = settings or RetrievalSettings()
        self.rewriter = rewriter or functools.partial(
            rewrite_query, short_query_threshold=self.settings.short_query_threshold,
        )

    def search(
        self,
        query: str,
        max_results: int | None = None,
        strictness: float | None = None,
        document_context: DocumentContext | None = None,
        document_id: str | None = None,
        filters: SearchFilters | None = None,
        include_context: bool = True,
    ) -> list[SearchResult]:
        """Return the filtered results; empty on no match and on failure."""
        return self.retrieve(
            query,
            max_results=max_results,
            strictness=strictness,
            document_context=document_context,
            document_id=document_id,
            filters=filters,
            include_context=include_context,
        ).results

    def retrieve(
        self,
        query: str,
        max_results: int | None = None,
        strictness: float | None = None,
        document_context: DocumentContext | None = None,
        document_id: str | None = None,
        filters: SearchFilters | None = None,
        include_context: bool = True,
    ) -> RetrievalResult:
        """Run the full query path.

        Args:
            query: Raw user query. It is rewritten exactly once here.
            max_results: Results to return after filtering.
            strictness: Statistical cutoff ``beta`` in [0, 1]; ``None`` skips it.
            document_context: Company/period framing for the rewrite.
            document_id: Resolves the framing from the stored profile when
                ``document_context`` is not given.
            filters: Metadata filters passed to the store. Their
                similarity floor and result cap are replaced by the
                over-fetch settings.
            include_context: Keep the parent content on child hits.
        """
        cfg = self.settings
        max_results = max_results or cfg.default_max_results
        if strictness is None:
            strictness = cfg.default_strictness

        result = RetrievalResult(query=query, rewritten_query=query)
        if not query.strip():
            return result

        try:
            context = document_context or self.resolve_context(document_id)
            result.rewritten_query = self.rewriter(query, context)
            if result.rewritten_query != query:
                logger.debug("Query rewritten for embedding: %r", result.rewritten_query)

            embedding = self.embedding_provider.embed_query(result.rewritten_query)
            store_filters = replace(
                filters or SearchFilters(),
                min_similarity=cfg.initial_min_similarity,
                max_results=max_results * cfg.overfetch_factor,
            )
            candidates = self.store.search(embedding, store_filters)
        except Exception as exc:
            logger.exception("Search failed for query %r; returning no results", query)
            result.failed = True
            result.error = str(exc)
            return result

        outcome = adaptive_filter(candidates, max_results, alpha=cfg.alpha, beta=strictness)
        results = outcome.results
        if not include_context:
            results = [replace(r, parent_content=None) for r in results]

        result.results = results
        result.total_candidates = outcome.candidates
        result.after_relative_cutoff = outcome.after_relative
        logger.info(
            "Retrieved %d results (candidates=%d, after relative cutoff=%d, strictness=%s)",
            len(results), outcome.candidates, outcome.after_relative, strictness,
        )
        return result

    def enhanced_search(
        self,
        query: str,
        document_context: DocumentContext | None = None,
        document_id: str | None = None,
    ) -> RetrievalResult:
        """Pick result count, strictness and chunk types from the query wording."""
        intent = detect_query_intent(query)
        options = search_options_for_intent(intent)
        filters = SearchFilters(
            chunk_types=list(options.chunk_types) if options.chunk_types else None,
        )
        result = self.retrieve(
            query,
            max_results=options.max_results,
            strictness=options.strictness,
            document_context=document_context,
            document_id=document_id,
            filters=filters,
        )
        result.intent = str(intent)
        return result

    def resolve_context(self, document_id: str | None) -> DocumentContext | None:
        """Company and period for ``document_id`` from its stored profile."""
        if not document_id:
            return None
        profile = self.store.get_profile(document_id)
        if profile is None:
            logger.warning("No profile for document %s; using generic query framing", document_id)
            return DocumentContext(document_id=document_id)
        return DocumentContext(
            company_name=profile.company_name,
            fiscal_period=profile.fiscal_period,
            document_id=document_id,
        )
