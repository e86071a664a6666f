"""Ranking module for Knowledge Arena.

Provides the Glicko-2 rating engine and an in-memory ledger built on it.
"""

from __future__ import annotations

from knowledge_arena.ranking.base import RankingSystem
from knowledge_arena.ranking.glicko2 import (
    DEFAULT_DEVIATION,
    DEFAULT_RATING,
    DEFAULT_VOLATILITY,
    EPSILON,
    SCALE,
    TAU,
    Converged,
    Glicko2System,
    LeaderboardEntry,
    MatchOutcome,
    MatchResult,
    NonConvergent,
    Rating,
    RatingUpdate,
    SourceRecord,
    Winner,
    calculate_match_outcome,
    create_rating,
    format_rating,
    predict_outcome,
    rating_interval,
    solve_volatility,
    update_rating,
)

__all__ = [
    "DEFAULT_DEVIATION",
    "DEFAULT_RATING",
    "DEFAULT_VOLATILITY",
    "EPSILON",
    "SCALE",
    "TAU",
    "Converged",
    "Glicko2System",
    "LeaderboardEntry",
    "MatchOutcome",
    "MatchResult",
    "NonConvergent",
    "RankingSystem",
    "Rating",
    "RatingUpdate",
    "SourceRecord",
    "Winner",
    "calculate_match_outcome",
    "create_rating",
    "format_rating",
    "predict_outcome",
    "rating_interval",
    "solve_volatility",
    "update_rating",
]
