"""Default characteristic function v(S) for a coalition of blended sources."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from itertools import combinations
from statistics import mean
from typing import TypeVar

from knowledge_arena.attribution.metrics import PROFILE_DIMENSIONS, QualityMetrics, overall_score

T = TypeVar("T")

# Any v(S) over a coalition; v(empty) must be 0
CharacteristicFunction = Callable[[Sequence[T]], float]

MAX_WEIGHT = 0.6
MEAN_WEIGHT = 0.4
SYNERGY_PER_MEMBER = 0.05
UNIQUENESS_SCALE = 0.1


def synergy_bonus(size: int) -> float:
    """Flat bonus for combining sources: 0.05 per member beyond the first."""
    if size <= 1:
        return 0.0
    return SYNERGY_PER_MEMBER * (size - 1)


def uniqueness_bonus(entities: Sequence[QualityMetrics]) -> float:
    """Bonus for sources with different strengths.

    Mean pairwise absolute difference across the non-citation dimensions,
    scaled by 0.1. Zero for fewer than two sources.
    """
    if len(entities) < 2:
        return 0.0

    diffs = [
        abs(getattr(m1, dim) - getattr(m2, dim))
        for m1, m2 in combinations(entities, 2)
        for dim in PROFILE_DIMENSIONS
    ]
    return mean(diffs) * UNIQUENESS_SCALE


def coalition_value(entities: Sequence[QualityMetrics]) -> float:
    """Value a coalition of sources produces when blended together.

    ``max * 0.6 + mean * 0.4 + synergy + uniqueness``, clamped to [0, 1].

    Args:
        entities: Metrics of the sources in the coalition.

    Returns:
        Coalition value. An empty coalition is worth 0.
    """
    if not entities:
        return 0.0

    scores = [overall_score(m) for m in entities]
    value = (
        max(scores) * MAX_WEIGHT
        + mean(scores) * MEAN_WEIGHT
        + synergy_bonus(len(entities))
        + uniqueness_bonus(entities)
    )
    return min(1.0, max(0.0, value))
