"""Adaptive similarity filtering of an over-fetched candidate list.

Absolute similarity thresholds do not transfer between embedding models or
corpora. Stage one keeps candidates within ``alpha`` of the best match;
stage two, when a strictness ``beta`` is given, keeps survivors at or above
``mean + beta * stdev`` of the survivors' similarities.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.5


class Scored(Protocol):
    @property
    def similarity(self) -> float: ...


T = TypeVar("T", bound=Scored)


@dataclass
class FilterOutcome(Generic[T]):
    results: list[T] = field(default_factory=list)
    candidates: int = 0
    best: float | None = None
    relative_threshold: float | None = None
    after_relative: int = 0
    mean: float | None = None
    stdev: float | None = None
    statistical_threshold: float | None = None


def _ranked(candidates: Sequence[T]) -> list[T]:
    return sorted(candidates, key=lambda c: c.similarity, reverse=True)


def relative_cutoff(candidates: Sequence[T], alpha: float = DEFAULT_ALPHA) -> list[T]:
    """Drop candidates scoring below ``best * alpha``. Output is ranked."""
    ranked = _ranked(candidates)
    if not ranked:
        return []
    threshold = ranked[0].similarity * alpha
    return [c for c in ranked if c.similarity >= threshold]


def similarity_stats(candidates: Sequence[Scored]) -> tuple[float, float]:
    """Mean and sample standard deviation (0 for a single candidate)."""
    sims = np.array([c.similarity for c in candidates], dtype=np.float64)
    stdev = float(np.std(sims, ddof=1)) if len(sims) > 1 else 0.0
    return float(np.mean(sims)), stdev


def statistical_cutoff(candidates: Sequence[T], beta: float) -> list[T]:
    """Drop candidates below ``mean + beta * stdev``; ``beta`` is clamped to [0, 1]."""
    ranked = _ranked(candidates)
    if not ranked:
        return []
    beta = min(max(beta, 0.0), 1.0)
    mean, stdev = similarity_stats(ranked)
    threshold = mean + beta * stdev
    return [c for c in ranked if c.similarity >= threshold]


def adaptive_filter(
    candidates: Sequence[T],
    max_results: int,
    alpha: float = DEFAULT_ALPHA,
    beta: float | None = None,
) -> FilterOutcome[T]:
    """Relative cutoff, optional statistical cutoff, then truncation."""
    outcome: FilterOutcome[T] = FilterOutcome(candidates=len(candidates))
    if not candidates:
        return outcome

    ranked = _ranked(candidates)
    outcome.best = ranked[0].similarity
    outcome.relative_threshold = outcome.best * alpha
    survivors = [c for c in ranked if c.similarity >= outcome.relative_threshold]
    outcome.after_relative = len(survivors)

    if beta is not None and survivors:
        beta = min(max(beta, 0.0), 1.0)
        outcome.mean, outcome.stdev = similarity_stats(survivors)
        outcome.statistical_threshold = outcome.mean + beta * outcome.stdev
        survivors = [c for c in survivors if c.similarity >= outcome.statistical_threshold]

    outcome.results = survivors[: max(max_results, 0)]
    logger.debug(
        "Adaptive filter: %d candidates, best=%.4f, relative>=%.4f kept %d, "
        "statistical>=%s kept %d, returning %d",
        outcome.candidates, outcome.best, outcome.relative_threshold, outcome.after_relative,
        "n/a" if outcome.statistical_threshold is None else f"{outcome.statistical_threshold:.4f}",
        len(survivors), len(outcome.results),
    )
    return outcome
