"""Attribution module for Knowledge Arena.

Scores each source's contribution to a blended artifact with Shapley values.
"""

from knowledge_arena.attribution.assessment import (
    GlobalStanding,
    QualityAssessment,
    SourceInput,
    SourceQuality,
    assess_quality,
    expected_value,
    normalize_rating,
)
from knowledge_arena.attribution.coalition import (
    CharacteristicFunction,
    coalition_value,
    synergy_bonus,
    uniqueness_bonus,
)
from knowledge_arena.attribution.formatting import (
    QualityTier,
    format_quality_score,
    format_shapley_value,
    quality_tier,
)
from knowledge_arena.attribution.metrics import METRIC_WEIGHTS, QualityMetrics, overall_score
from knowledge_arena.attribution.shapley import (
    ShapleyEstimate,
    estimate_shapley_values,
    shapley_values,
)

__all__ = [
    "METRIC_WEIGHTS",
    "CharacteristicFunction",
    "GlobalStanding",
    "QualityAssessment",
    "QualityMetrics",
    "QualityTier",
    "ShapleyEstimate",
    "SourceInput",
    "SourceQuality",
    "assess_quality",
    "coalition_value",
    "estimate_shapley_values",
    "expected_value",
    "format_quality_score",
    "format_shapley_value",
    "normalize_rating",
    "overall_score",
    "quality_tier",
    "shapley_values",
    "synergy_bonus",
    "uniqueness_bonus",
]
