"""Base protocol for ranking systems in Knowledge Arena."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class RankingSystem(Protocol):
    """Protocol for ranking ledgers.

    Implementations must provide methods for updating ratings after matches
    and retrieving current standings.
    """

    def initialize(self, candidate_ids: Sequence[str]) -> None:
        """Initialize ratings for all candidates.

        Args:
            candidate_ids: List of unique candidate identifiers.
        """
        ...

    def update(self, winner_id: str, loser_id: str) -> tuple[float, float]:
        """Update ratings after a decisive match.

        Args:
            winner_id: ID of the winning candidate.
            loser_id: ID of the losing candidate.

        Returns:
            Tuple of (new_winner_rating, new_loser_rating).
        """
        ...

    def get_rating(self, candidate_id: str) -> float:
        """Get current rating for a candidate."""
        ...

    def get_stats(self, candidate_id: str) -> dict[str, int]:
        """Get match statistics for a candidate.

        Returns:
            Dict with at least 'matches', 'wins', 'losses' keys.
        """
        ...

    def get_leaderboard(self) -> Sequence[tuple]:
        """Get leaderboard rows sorted by rating descending.

        Each row starts with (candidate_id, rating, wins, losses).
        """
        ...
