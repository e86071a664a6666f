"""Orchestration helpers that run the engines over an arena file."""

from __future__ import annotations

import structlog

from knowledge_arena.attribution import (
    GlobalStanding,
    QualityAssessment,
    SourceInput,
    assess_quality,
)
from knowledge_arena.core.config import ArenaConfig
from knowledge_arena.core.errors import ValidationError
from knowledge_arena.ranking import Glicko2System

logger = structlog.get_logger()


def replay_matches(config: ArenaConfig) -> Glicko2System:
    """Build a ledger from declared ratings and replay every match in order.

    Sources listed under ``idle_sources`` then go through an empty rating
    period.

    Args:
        config: Validated arena file.

    Returns:
        Ledger holding the resulting ratings and match counters.
    """
    system = Glicko2System()
    for source in config.sources:
        system.register(source.slug, source.rating.to_rating())

    logger.info("replay_start", sources=len(config.sources), matches=len(config.matches))
    for match in config.matches:
        system.record(match.a, match.b, match.winner)

    if config.idle_sources:
        system.decay(config.idle_sources)
        logger.info("idle_sources_decayed", sources=len(config.idle_sources))

    return system


def global_standings(config: ArenaConfig, system: Glicko2System) -> dict[str, GlobalStanding]:
    """Collect each source's arena standing for the expected value blend.

    A configured ``win_rate`` wins over the replayed one. Sources with no
    configured win rate and no replayed matches have no standing.
    """
    standings = {}
    for source in config.sources:
        record = system.get_record(source.slug)
        if source.win_rate is not None:
            win_rate = source.win_rate
        elif record.matches > 0:
            win_rate = record.win_rate
        else:
            continue
        standings[source.slug] = GlobalStanding(rating=record.rating.mu, win_rate=win_rate)
    return standings


def run_attribution(
    config: ArenaConfig,
    system: Glicko2System | None = None,
) -> QualityAssessment:
    """Attribute the value of a blend of every source with metrics.

    Args:
        config: Validated arena file.
        system: Ledger to take standings from. Replayed from ``config`` if None.

    Returns:
        QualityAssessment for the sources that declare metrics.

    Raises:
        ValidationError: If no source declares metrics.
    """
    blended = [s for s in config.sources if s.metrics is not None]
    if not blended:
        raise ValidationError("sources[].metrics", "Declare metrics for at least one source.")

    system = system or replay_matches(config)
    settings = config.attribution

    logger.info("attribution_start", sources=len(blended), mode=settings.mode)
    assessment = assess_quality(
        [
            SourceInput(slug=s.slug, metrics=s.metrics.to_metrics(), name=s.display_name)
            for s in blended
        ],
        global_standings(config, system),
        mode=settings.mode,
        max_exact_players=settings.max_exact_players,
        samples=settings.samples,
        seed=settings.seed,
    )
    logger.info(
        "attribution_complete",
        mode=assessment.mode,
        coalition_value=round(assessment.coalition_value, 4),
    )
    return assessment
