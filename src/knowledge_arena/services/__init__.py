"""Services for Knowledge Arena."""

from knowledge_arena.services.reporting import (
    generate_attribution_report,
    generate_leaderboard_report,
)

__all__ = [
    "generate_attribution_report",
    "generate_leaderboard_report",
]
