"""Advisory confidence scores for chunks.

Scores never drop a chunk; they are stored with it so callers can rank or
display extraction quality.
"""

from __future__ import annotations

import re

from finrag.chunking.schemas import ChunkType

BASE_CONFIDENCE = 0.5

_SPEAKER_RE = re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+:")
_QA_RE = re.compile(r"(?i)question|answer|thank you|next question")
_NUMBER_RE = re.compile(r"\$[\d,]+|\d+\.\d+%")
_TERMS_RE = re.compile(r"(?i)revenue|earnings|profit|margin")


def score_confidence(content: str, span_type: str) -> float:
    """Score ``content`` in ``[0, 1]`` based on its span type and length.

    Scoring rules:
        +0.3  transcript with a ``First Last:`` speaker label
        +0.1  transcript with Q&A markers
        +0.3  financial_metrics with a ``$N`` or ``N.N%`` figure
        +0.1  financial_metrics with a financial keyword
        +0.3  table with more than three pipe-separated fields
        +0.1  longer than 200 chars, +0.1 more past 500
    """
    score = BASE_CONFIDENCE

    if span_type == ChunkType.TRANSCRIPT:
        if _SPEAKER_RE.search(content):
            score += 0.3
        if _QA_RE.search(content):
            score += 0.1
    elif span_type == ChunkType.FINANCIAL_METRICS:
        if _NUMBER_RE.search(content):
            score += 0.3
        if _TERMS_RE.search(content):
            score += 0.1
    elif span_type == ChunkType.TABLE:
        if len(content.split("|")) > 3:
            score += 0.3

    if len(content) > 200:
        score += 0.1
    if len(content) > 500:
        score += 0.1

    return round(min(score, 1.0), 4)
