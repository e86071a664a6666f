"""Quality assessment for a set of blended sources.

Combines per-source overall scores, Shapley attribution, and a display-time
expected value that mixes local quality with global arena standing.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import structlog

from knowledge_arena.attribution.coalition import coalition_value
from knowledge_arena.attribution.metrics import QualityMetrics, overall_score
from knowledge_arena.attribution.shapley import (
    DEFAULT_MAX_EXACT_PLAYERS,
    DEFAULT_SAMPLES,
    Mode,
    estimate_shapley_values,
)
from knowledge_arena.core.errors import InvalidInputError

logger = structlog.get_logger()

# Arena ratings mapped linearly onto [0, 1]: 1200 -> 0.0, 1500 -> 0.5, 1800 -> 1.0
RATING_FLOOR = 1200.0
RATING_SPAN = 600.0

QUALITY_WEIGHT = 0.4
RATING_WEIGHT = 0.35
WIN_RATE_WEIGHT = 0.25


@dataclass(frozen=True)
class SourceInput:
    """A source taking part in one blend."""

    slug: str
    metrics: QualityMetrics
    name: str | None = None


@dataclass(frozen=True)
class GlobalStanding:
    """Historical arena standing of a source.

    Attributes:
        rating: Glicko-2 ``mu``.
        win_rate: Win rate as a percentage (0-100).
    """

    rating: float
    win_rate: float


@dataclass(frozen=True)
class SourceQuality:
    """Attribution result for one source."""

    slug: str
    name: str
    metrics: QualityMetrics
    overall_score: float
    shapley_value: float
    expected_value: float
    standard_error: float = 0.0


@dataclass(frozen=True)
class QualityAssessment:
    """Attribution results for a whole blend.

    Attributes:
        sources: Per-source results, in input order.
        coalition_value: v(N), the value of all sources together.
        mode: Shapley estimator used ("exact" or "sampled").
        samples: Permutations drawn (0 for exact).
    """

    sources: list[SourceQuality]
    coalition_value: float
    mode: str
    samples: int


def normalize_rating(rating: float) -> float:
    """Map an arena rating onto [0, 1] (clamped)."""
    return max(0.0, min(1.0, (rating - RATING_FLOOR) / RATING_SPAN))


def expected_value(
    quality: QualityMetrics | float,
    global_rating: float,
    global_win_rate: float,
) -> float:
    """Blend local quality with global rating and historical win rate.

    Args:
        quality: Metrics of the source, or an already computed overall score.
        global_rating: Arena ``mu`` of the source.
        global_win_rate: Historical win rate as a percentage (0-100).

    Returns:
        ``0.4 * overall + 0.35 * normalize(rating) + 0.25 * win_rate / 100``.
    """
    if not math.isfinite(global_rating):
        raise InvalidInputError("global_rating", f"must be finite, got {global_rating}")
    if not (math.isfinite(global_win_rate) and 0.0 <= global_win_rate <= 100.0):
        raise InvalidInputError(
            "global_win_rate", f"must be within [0, 100], got {global_win_rate}"
        )

    if isinstance(quality, QualityMetrics):
        score = overall_score(quality)
    elif math.isfinite(quality) and 0.0 <= quality <= 1.0:
        score = quality
    else:
        raise InvalidInputError("quality", f"must be within [0, 1], got {quality}")
    return (
        score * QUALITY_WEIGHT
        + normalize_rating(global_rating) * RATING_WEIGHT
        + global_win_rate / 100.0 * WIN_RATE_WEIGHT
    )


def assess_quality(
    sources: Sequence[SourceInput],
    global_ratings: Mapping[str, GlobalStanding] | None = None,
    *,
    value_fn: Callable[[Sequence[QualityMetrics]], float] = coalition_value,
    mode: Mode = "auto",
    max_exact_players: int = DEFAULT_MAX_EXACT_PLAYERS,
    samples: int = DEFAULT_SAMPLES,
    seed: int | None = None,
) -> QualityAssessment:
    """Perform a full quality assessment for the sources of one blend.

    Args:
        sources: Sources in the blend.
        global_ratings: Arena standing keyed by slug. Sources without an entry
            get their overall score as expected value.
        value_fn: Characteristic function for the Shapley computation.
        mode: Shapley estimator ("auto", "exact" or "sampled").
        max_exact_players: Largest population "auto" enumerates exactly.
        samples: Permutations for the sampled estimator.
        seed: Seed for the sampled estimator.

    Returns:
        QualityAssessment with one SourceQuality per source.
    """
    metrics = [s.metrics for s in sources]
    estimate = estimate_shapley_values(
        metrics,
        value_fn,
        mode=mode,
        max_exact_players=max_exact_players,
        samples=samples,
        seed=seed,
    )
    global_ratings = global_ratings or {}

    results = []
    for source, shapley, error in zip(
        sources, estimate.values, estimate.standard_errors, strict=True
    ):
        score = overall_score(source.metrics)
        standing = global_ratings.get(source.slug)
        if standing is None:
            expected = score
        else:
            expected = expected_value(score, standing.rating, standing.win_rate)
        results.append(
            SourceQuality(
                slug=source.slug,
                name=source.name or source.slug,
                metrics=source.metrics,
                overall_score=score,
                shapley_value=shapley,
                expected_value=expected,
                standard_error=error,
            )
        )

    total = value_fn(metrics) if metrics else 0.0
    logger.debug("quality_assessed", sources=len(results), coalition_value=total)
    return QualityAssessment(
        sources=results,
        coalition_value=total,
        mode=estimate.mode,
        samples=estimate.samples,
    )
