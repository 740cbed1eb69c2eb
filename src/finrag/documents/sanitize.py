"""Redact prompt-injection phrases from document text before it reaches an LLM.

Uploaded filings are untrusted input and are pasted verbatim into the
extraction prompt.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

REDACTION = "[REDACTED]"

_INJECTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i)ignore\s+(?:all\s+)?(?:the\s+)?previous\s+instructions"),
    re.compile(r"(?i)you\s+are\s+now\s+an?\b"),
    re.compile(r"(?im)^\s*system\s*:"),
    re.compile(r"(?i)</?system>"),
    re.compile(r"(?im)^\s*assistant\s*:"),
    re.compile(r"(?i)forget\s+everything"),
    re.compile(r"(?i)forget\s+your\b"),
    re.compile(r"(?i)new\s+instructions\s*:"),
]


def sanitize_document_text(text: str) -> str:
    """Replace known injection phrases with ``[REDACTED]``.

    Clean text is returned unchanged.
    """
    redactions = 0
    for pattern in _INJECTION_PATTERNS:
        text, n = pattern.subn(REDACTION, text)
        redactions += n

    if redactions:
        logger.warning("Redacted %d prompt-injection phrase(s) from document text", redactions)
    return text
