"""Quality metrics and the weighted overall score."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields

from knowledge_arena.core.errors import InvalidInputError

# Weights for combining quality metrics into an overall score (sum to 1.0)
METRIC_WEIGHTS: dict[str, float] = {
    "accuracy": 0.30,
    "readability": 0.20,
    "depth": 0.25,
    "objectivity": 0.15,
    "citations": 0.10,
}

# Dimensions compared when measuring how different two sources' strengths are
PROFILE_DIMENSIONS = ("accuracy", "readability", "depth", "objectivity")


@dataclass(frozen=True)
class QualityMetrics:
    """Quality scores of one source's contribution to a blend.

    Attributes:
        accuracy: Factual accuracy (0-1).
        readability: Clarity (0-1).
        depth: Comprehensiveness (0-1).
        objectivity: Neutrality (0-1).
        citations: Density of sourcing (0-1).
    """

    accuracy: float
    readability: float
    depth: float
    objectivity: float
    citations: float

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            numeric = (
                isinstance(value, int | float)
                and not isinstance(value, bool)
                and math.isfinite(value)
            )
            if not (numeric and 0.0 <= value <= 1.0):
                raise InvalidInputError(f.name, f"must be within [0, 1], got {value!r}")

    @classmethod
    def uniform(cls, value: float) -> QualityMetrics:
        """Metrics with every dimension set to ``value``."""
        return cls(
            accuracy=value,
            readability=value,
            depth=value,
            objectivity=value,
            citations=value,
        )

    def as_dict(self) -> dict[str, float]:
        """Return metrics keyed by dimension name."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def overall_score(metrics: QualityMetrics) -> float:
    """Calculate the overall quality score from individual metrics.

    Args:
        metrics: Quality metrics of one source.

    Returns:
        Weighted sum in [0, 1].
    """
    return sum(getattr(metrics, name) * weight for name, weight in METRIC_WEIGHTS.items())
