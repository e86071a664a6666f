"""Knowledge Arena.

Rate competing knowledge sources with Glicko-2 from pairwise votes, and
attribute the value of blended articles across sources with Shapley values.
"""

from knowledge_arena.attribution import (
    QualityMetrics,
    assess_quality,
    coalition_value,
    estimate_shapley_values,
    expected_value,
    overall_score,
    shapley_values,
)
from knowledge_arena.ranking import (
    MatchOutcome,
    Rating,
    calculate_match_outcome,
    predict_outcome,
    update_rating,
)

__version__ = "0.1.0"
__all__ = [
    "MatchOutcome",
    "QualityMetrics",
    "Rating",
    "__version__",
    "assess_quality",
    "calculate_match_outcome",
    "coalition_value",
    "estimate_shapley_values",
    "expected_value",
    "overall_score",
    "predict_outcome",
    "shapley_values",
    "update_rating",
]
