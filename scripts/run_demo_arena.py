#!/usr/bin/env python
"""Simulate arena votes between encyclopedia sources and attribute a blend."""

import numpy as np
from rich.console import Console

from knowledge_arena.core.config import ArenaConfig
from knowledge_arena.pipeline import replay_matches, run_attribution
from knowledge_arena.ranking import Rating, predict_outcome
from knowledge_arena.services.reporting import (
    generate_attribution_report,
    generate_leaderboard_report,
)

SEED = 7
NUM_VOTES = 300

# Chance that a voter calls a close comparison a tie
TIE_RATE = 0.08

# Hidden strengths the simulated voters respond to
TRUE_STRENGTH = {
    "wikipedia": 1600,
    "britannica": 1560,
    "grokipedia": 1470,
    "newworld": 1420,
}

# Quality metrics of each source's article for one blended topic
METRICS = {
    "wikipedia": {
        "accuracy": 0.85,
        "readability": 0.7,
        "depth": 0.9,
        "objectivity": 0.8,
        "citations": 0.9,
    },
    "britannica": {
        "accuracy": 0.95,
        "readability": 0.8,
        "depth": 0.7,
        "objectivity": 0.9,
        "citations": 0.4,
    },
    "grokipedia": {
        "accuracy": 0.7,
        "readability": 0.9,
        "depth": 0.6,
        "objectivity": 0.55,
        "citations": 0.2,
    },
    "newworld": {
        "accuracy": 0.75,
        "readability": 0.65,
        "depth": 0.5,
        "objectivity": 0.6,
        "citations": 0.3,
    },
}


def simulate_votes(rng: np.random.Generator) -> list[dict[str, str]]:
    """Draw votes where the stronger source wins with its Glicko-2 probability."""
    slugs = list(TRUE_STRENGTH)
    votes = []
    for _ in range(NUM_VOTES):
        a, b = rng.choice(slugs, size=2, replace=False)
        p_a = predict_outcome(
            Rating(mu=TRUE_STRENGTH[a], phi=50), Rating(mu=TRUE_STRENGTH[b], phi=50)
        )
        if rng.random() < TIE_RATE:
            winner = "tie"
        elif rng.random() < p_a:
            winner = "a"
        else:
            winner = "b"
        votes.append({"a": str(a), "b": str(b), "winner": winner})
    return votes


def main() -> None:
    """Replay simulated votes and print the leaderboard and attribution."""
    console = Console()
    rng = np.random.default_rng(SEED)

    config = ArenaConfig(
        sources=[{"slug": slug, "metrics": metrics} for slug, metrics in METRICS.items()],
        matches=simulate_votes(rng),
        attribution={"mode": "auto", "seed": SEED},
    )

    system = replay_matches(config)
    console.print(generate_leaderboard_report(system, description=f"{NUM_VOTES} simulated votes"))
    console.print()
    console.print(generate_attribution_report(run_attribution(config, system)))


if __name__ == "__main__":
    main()
