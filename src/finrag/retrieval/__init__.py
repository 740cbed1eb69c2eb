"""Retrieval: query rewriting, adaptive filtering, search."""

from finrag.retrieval.adaptive import adaptive_filter, relative_cutoff, statistical_cutoff
from finrag.retrieval.intent import QueryIntent, detect_query_intent
from finrag.retrieval.retriever import Retriever
from finrag.retrieval.rewriter import rewrite_query
from finrag.retrieval.schemas import DocumentContext, RetrievalResult

__all__ = [
    "DocumentContext",
    "QueryIntent",
    "RetrievalResult",
    "Retriever",
    "adaptive_filter",
    "detect_query_intent",
    "relative_cutoff",
    "rewrite_query",
    "statistical_cutoff",
]
