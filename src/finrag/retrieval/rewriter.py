"""Query rewriting: anchor queries to the document they are about.

Short queries ("revenue?") embed close to unrelated content. Every query
gets a framing prefix naming the company and period when they are known;
queries under the length threshold additionally get ``answer this:``.

The policy is a plain function ``(query, context) -> str`` so it can be
swapped without touching retrieval.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from finrag.retrieval.schemas import DocumentContext

SHORT_QUERY_THRESHOLD = 20
GENERIC_PREFIX = "Regarding the uploaded financial documents, "
SHORT_QUERY_MARKER = "answer this: "

QueryRewriter = Callable[[str, DocumentContext | None], str]

_FRAMED_RE = re.compile(
    r"^(?:About .+? \(doc id: [^)]*\), |" + re.escape(GENERIC_PREFIX) + ")"
)


def framing_prefix(context: DocumentContext | None) -> str:
    if context is None or not context.company_name:
        return GENERIC_PREFIX
    doc_id = context.document_id or "unknown"
    if context.fiscal_period:
        return f"About {context.company_name} {context.fiscal_period} filing (doc id: {doc_id}), "
    return f"About {context.company_name} (doc id: {doc_id}), "


def is_rewritten(query: str) -> bool:
    """True when ``query`` already starts with a framing prefix."""
    return bool(_FRAMED_RE.match(query))


def rewrite_query(
    query: str,
    context: DocumentContext | None = None,
    short_query_threshold: int = SHORT_QUERY_THRESHOLD,
) -> str:
    """Prefix ``query`` with document framing.

    Blank and already-framed queries are returned unchanged, so applying
    the rewrite twice is a no-op.
    """
    stripped = query.strip()
    if not stripped or is_rewritten(stripped):
        return query

    prefix = framing_prefix(context)
    if len(stripped) < short_query_threshold:
        return f"{prefix}{SHORT_QUERY_MARKER}{stripped}"
    return f"{prefix}{stripped}"
