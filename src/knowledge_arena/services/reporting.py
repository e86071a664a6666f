"""Markdown report generation for Knowledge Arena."""

from __future__ import annotations

from tabulate import tabulate

from knowledge_arena.attribution import (
    QualityAssessment,
    format_quality_score,
    format_shapley_value,
    quality_tier,
)
from knowledge_arena.ranking import Glicko2System, format_rating


def generate_leaderboard_report(
    system: Glicko2System,
    title: str = "Leaderboard",
    description: str | None = None,
) -> str:
    """Generate a markdown leaderboard.

    Args:
        system: Ledger with current ratings.
        title: Report title (markdown heading).
        description: Optional description line below title.

    Returns:
        Markdown report content.
    """
    rows = [
        (
            rank,
            entry.candidate_id,
            format_rating(system.get_rating_object(entry.candidate_id)),
            f"{entry.phi:.1f}",
            f"{entry.sigma:.5f}",
            entry.wins,
            entry.losses,
            entry.ties,
            f"{system.win_rate(entry.candidate_id):.1f}%",
        )
        for rank, entry in enumerate(system.get_leaderboard(), 1)
    ]
    headers = ("Rank", "Source", "Rating (95% CI)", "RD", "Volatility", "W", "L", "T", "Win %")

    lines = [f"# {title}", ""]
    if description:
        lines.extend([description, ""])
    lines.append(tabulate(rows, headers=headers, tablefmt="github"))
    return "\n".join(lines)


def generate_attribution_report(
    assessment: QualityAssessment,
    title: str = "Attribution",
) -> str:
    """Generate a markdown attribution table for one blend.

    Args:
        assessment: Result of ``assess_quality``.
        title: Report title (markdown heading).

    Returns:
        Markdown report content.
    """
    sampled = assessment.mode == "sampled"
    rows = []
    for source in assessment.sources:
        row = [
            source.name,
            format_quality_score(source.overall_score),
            quality_tier(source.overall_score).label,
            format_shapley_value(source.shapley_value),
            format_quality_score(source.expected_value),
        ]
        if sampled:
            row.append(f"±{source.standard_error * 100:.2f}%")
        rows.append(row)

    headers = ["Source", "Quality", "Tier", "Shapley", "Expected"]
    if sampled:
        headers.append("Std. error")

    estimator = (
        f"sampled ({assessment.samples} permutations)" if sampled else "exact enumeration"
    )
    lines = [
        f"# {title}",
        "",
        f"Coalition value: {format_quality_score(assessment.coalition_value)} ({estimator})",
        "",
        tabulate(rows, headers=headers, tablefmt="github"),
    ]
    return "\n".join(lines)
