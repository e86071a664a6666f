"""Display helpers for quality and attribution scores."""

from __future__ import annotations

from typing import NamedTuple


class QualityTier(NamedTuple):
    """A quality label and the rich style used to print it."""

    label: str
    style: str


_TIERS = (
    (0.9, QualityTier("Excellent", "bright_green")),
    (0.75, QualityTier("Good", "green")),
    (0.6, QualityTier("Fair", "yellow")),
    (0.4, QualityTier("Basic", "dark_orange")),
)


def format_quality_score(score: float) -> str:
    """Format a 0-1 score as a whole percentage, e.g. ``"72%"``."""
    return f"{round(score * 100)}%"


def format_shapley_value(value: float) -> str:
    """Format a Shapley value as a signed percentage, e.g. ``"+12.3%"``."""
    if value >= 0:
        return f"+{value * 100:.1f}%"
    return f"{value * 100:.1f}%"


def quality_tier(score: float) -> QualityTier:
    """Get the quality tier for a 0-1 score."""
    for threshold, tier in _TIERS:
        if score >= threshold:
            return tier
    return QualityTier("Limited", "red")
