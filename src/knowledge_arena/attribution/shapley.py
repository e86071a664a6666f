"""Shapley value attribution across sources blended into one artifact.

Two estimators share one call shape:

- ``exact`` enumerates every coalition, O(n * 2^n). Only tractable for small
  populations (the usual blend has at most 5-10 sources).
- ``sampled`` averages marginal contributions over K random permutations and
  reports a standard error per source.

``auto`` picks exact up to ``max_exact_players`` and sampled beyond that.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal, TypeVar

import numpy as np
import structlog

from knowledge_arena.attribution.coalition import coalition_value
from knowledge_arena.core.errors import InvalidInputError

logger = structlog.get_logger()

T = TypeVar("T")

Mode = Literal["auto", "exact", "sampled"]

DEFAULT_MAX_EXACT_PLAYERS = 10
DEFAULT_SAMPLES = 2000

# Exact enumeration is refused above this size, even on request
EXACT_HARD_LIMIT = 20


@dataclass(frozen=True)
class ShapleyEstimate:
    """Shapley values aligned by index with the input entities.

    Attributes:
        values: Estimated Shapley value per entity.
        standard_errors: Standard error per entity (all zero for exact mode).
        mode: Estimator that produced the values.
        samples: Number of permutations drawn (0 for exact mode).
    """

    values: list[float] = field(default_factory=list)
    standard_errors: list[float] = field(default_factory=list)
    mode: Literal["exact", "sampled"] = "exact"
    samples: int = 0

    @property
    def total(self) -> float:
        """Sum of all Shapley values, equal to v(N) by efficiency."""
        return math.fsum(self.values)


class _CoalitionCache:
    """Memoises v(S) by subset bitmask for one attribution call."""

    def __init__(self, entities: Sequence[T], value_fn: Callable[[Sequence[T]], float]) -> None:
        self._entities = entities
        self._value_fn = value_fn
        self._values: dict[int, float] = {0: 0.0}

    def __call__(self, mask: int) -> float:
        value = self._values.get(mask)
        if value is None:
            members = [e for j, e in enumerate(self._entities) if mask >> j & 1]
            value = float(self._value_fn(members))
            self._values[mask] = value
        return value

    @property
    def evaluations(self) -> int:
        return len(self._values) - 1


def _exact(entities: Sequence[T], value_fn: Callable[[Sequence[T]], float]) -> ShapleyEstimate:
    n = len(entities)
    value = _CoalitionCache(entities, value_fn)

    # Probability that a random ordering places exactly |S| given members before i
    n_factorial = math.factorial(n)
    weights = [math.factorial(s) * math.factorial(n - s - 1) / n_factorial for s in range(n)]

    values = []
    for i in range(n):
        bit = 1 << i
        phi = 0.0
        for mask in range(1 << n):
            if mask & bit:
                continue
            phi += weights[mask.bit_count()] * (value(mask | bit) - value(mask))
        values.append(phi)

    logger.debug("shapley_exact_complete", players=n, evaluations=value.evaluations)
    return ShapleyEstimate(values=values, standard_errors=[0.0] * n, mode="exact", samples=0)


def _sampled(
    entities: Sequence[T],
    value_fn: Callable[[Sequence[T]], float],
    samples: int,
    seed: int | None,
) -> ShapleyEstimate:
    n = len(entities)
    value = _CoalitionCache(entities, value_fn)
    rng = np.random.default_rng(seed)

    contributions = np.zeros((samples, n))
    for k in range(samples):
        mask = 0
        previous = 0.0
        for idx in rng.permutation(n):
            mask |= 1 << int(idx)
            current = value(mask)
            contributions[k, idx] = current - previous
            previous = current

    means = contributions.mean(axis=0)
    if samples > 1:
        errors = contributions.std(axis=0, ddof=1) / math.sqrt(samples)
    else:
        errors = np.zeros(n)

    logger.debug(
        "shapley_sampled_complete",
        players=n,
        samples=samples,
        evaluations=value.evaluations,
        max_standard_error=float(errors.max()),
    )
    return ShapleyEstimate(
        values=[float(x) for x in means],
        standard_errors=[float(x) for x in errors],
        mode="sampled",
        samples=samples,
    )


def _resolve_mode(mode: str, n: int, max_exact_players: int) -> Literal["exact", "sampled"]:
    if mode == "auto":
        return "exact" if n <= max_exact_players else "sampled"
    if mode == "exact":
        if n > EXACT_HARD_LIMIT:
            raise InvalidInputError(
                "mode", f"exact enumeration is limited to {EXACT_HARD_LIMIT} entities, got {n}"
            )
        return "exact"
    if mode == "sampled":
        return "sampled"
    raise InvalidInputError("mode", f"must be 'auto', 'exact' or 'sampled', got {mode!r}")


def estimate_shapley_values(
    entities: Sequence[T],
    value_fn: Callable[[Sequence[T]], float] = coalition_value,
    *,
    mode: Mode = "auto",
    max_exact_players: int = DEFAULT_MAX_EXACT_PLAYERS,
    samples: int = DEFAULT_SAMPLES,
    seed: int | None = None,
) -> ShapleyEstimate:
    """Estimate each entity's Shapley value.

    Args:
        entities: Entities taking part in one combination event.
        value_fn: Characteristic function v(S) over a coalition. Must return 0
            for an empty coalition and depend only on the members it is given.
        mode: "exact", "sampled", or "auto" to switch on population size.
        max_exact_players: Largest population "auto" enumerates exactly.
        samples: Permutations drawn by the sampled estimator.
        seed: Seed for the permutation generator (None for fresh entropy).

    Returns:
        ShapleyEstimate aligned by index with ``entities``.

    Raises:
        InvalidInputError: If the mode or estimator parameters are invalid.
    """
    if samples < 1:
        raise InvalidInputError("samples", f"must be at least 1, got {samples}")
    if max_exact_players < 0:
        raise InvalidInputError(
            "max_exact_players", f"must be non-negative, got {max_exact_players}"
        )

    n = len(entities)
    resolved = _resolve_mode(mode, n, max_exact_players)
    logger.debug("shapley_mode_selected", requested=mode, mode=resolved, players=n)

    if n == 0:
        return ShapleyEstimate(mode=resolved)
    if resolved == "exact":
        return _exact(entities, value_fn)
    return _sampled(entities, value_fn, samples, seed)


def shapley_values(
    entities: Sequence[T],
    value_fn: Callable[[Sequence[T]], float] = coalition_value,
    *,
    mode: Mode = "auto",
    max_exact_players: int = DEFAULT_MAX_EXACT_PLAYERS,
    samples: int = DEFAULT_SAMPLES,
    seed: int | None = None,
) -> list[float]:
    """Shapley values aligned by index with ``entities``.

    See ``estimate_shapley_values`` for the arguments. An empty population
    yields an empty list; a single entity receives ``v({entity})``.
    """
    return estimate_shapley_values(
        entities,
        value_fn,
        mode=mode,
        max_exact_players=max_exact_players,
        samples=samples,
        seed=seed,
    ).values
