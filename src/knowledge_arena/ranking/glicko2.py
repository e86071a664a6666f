"""Glicko-2 rating calculations for Knowledge Arena.

Based on Mark Glickman's "Example of the Glicko-2 system" (2013).
http://www.glicko.net/glicko/glicko2.pdf

Every public function here is pure: ratings go in, new ratings come out.
``Glicko2System`` is the only stateful piece and keeps its state in memory
for the caller that owns it.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal, NamedTuple

import structlog

from knowledge_arena.core.errors import (
    InvalidInputError,
    NonConvergenceError,
    UnknownSourceError,
)

logger = structlog.get_logger()

# System constant (tau), constrains volatility change per rating period
TAU = 0.5

# Conversion factor between the public 1500-centered scale and the internal one
SCALE = 173.7178

# Convergence tolerance for the volatility root-find
EPSILON = 1e-6

DEFAULT_RATING = 1500.0
DEFAULT_DEVIATION = 350.0
DEFAULT_VOLATILITY = 0.06

# Smallest summed g²E(1-E) a period may carry; below it v and Δ² overflow the solver
MIN_INFORMATION = 1e-60

# Iteration caps for the volatility solver
MAX_BRACKET_STEPS = 100
MAX_ITERATIONS = 100

VALID_SCORES = (0.0, 0.5, 1.0)

Winner = Literal["a", "b", "tie", "both_bad"]

_Z_SCORES = {0.90: 1.645, 0.95: 1.96, 0.99: 2.576}


@dataclass(frozen=True)
class Rating:
    """Glicko-2 skill state for a single source.

    Attributes:
        mu: Skill estimate on the public scale (centered near 1500).
        phi: Rating deviation, the uncertainty of ``mu``.
        sigma: Volatility, the expected fluctuation of ``mu`` over time.
    """

    mu: float = DEFAULT_RATING
    phi: float = DEFAULT_DEVIATION
    sigma: float = DEFAULT_VOLATILITY

    def interval(self, confidence: float = 0.95) -> tuple[int, int]:
        """Confidence bounds for ``mu``.

        Args:
            confidence: One of 0.90, 0.95 or 0.99. Other values fall back to 0.95.

        Returns:
            Rounded (low, high) tuple.
        """
        z = _Z_SCORES.get(confidence, _Z_SCORES[0.95])
        margin = z * self.phi
        return round(self.mu - margin), round(self.mu + margin)


@dataclass(frozen=True)
class MatchOutcome:
    """One pairwise result from the point of view of the rated player.

    Attributes:
        opponent: Opponent's rating at the time of the comparison.
        score: 1 for a win, 0.5 for a draw, 0 for a loss.
    """

    opponent: Rating
    score: float


class RatingUpdate(NamedTuple):
    """Result of a single rating period."""

    new_rating: Rating
    rating_change: float


class MatchResult(NamedTuple):
    """Result of one head-to-head comparison applied to both sides."""

    new_rating_a: Rating
    new_rating_b: Rating
    change_a: float
    change_b: float


@dataclass(frozen=True)
class Converged:
    """Volatility solver finished within tolerance."""

    value: float
    iterations: int


@dataclass(frozen=True)
class NonConvergent:
    """Volatility solver ran out of steps at the given stage."""

    stage: Literal["bracketing", "refinement"]
    steps: int


VolatilityResult = Converged | NonConvergent


def create_rating(
    mu: float = DEFAULT_RATING,
    phi: float = DEFAULT_DEVIATION,
    sigma: float = DEFAULT_VOLATILITY,
) -> Rating:
    """Create a rating, defaulting to the values given to a newcomer."""
    rating = Rating(mu=mu, phi=phi, sigma=sigma)
    _validate_rating(rating, "rating")
    return rating


def rating_interval(rating: Rating, confidence: float = 0.95) -> tuple[int, int]:
    """Get the confidence interval of a rating (see ``Rating.interval``)."""
    return rating.interval(confidence)


def format_rating(rating: Rating) -> str:
    """Format a rating for display, e.g. ``"1500 (814-2186)"``."""
    low, high = rating.interval()
    return f"{round(rating.mu)} ({low}-{high})"


def _validate_rating(rating: Rating, name: str) -> None:
    if not math.isfinite(rating.mu):
        raise InvalidInputError(f"{name}.mu", f"must be finite, got {rating.mu}")
    if not (math.isfinite(rating.phi) and rating.phi > 0):
        raise InvalidInputError(f"{name}.phi", f"must be positive, got {rating.phi}")
    if not (math.isfinite(rating.sigma) and rating.sigma > 0):
        raise InvalidInputError(f"{name}.sigma", f"must be positive, got {rating.sigma}")


def _validate_outcome(outcome: MatchOutcome, index: int) -> None:
    _validate_rating(outcome.opponent, f"results[{index}].opponent")
    if outcome.score not in VALID_SCORES:
        raise InvalidInputError(
            f"results[{index}].score", f"must be one of 0, 0.5 or 1, got {outcome.score}"
        )


def _to_internal(rating: Rating) -> tuple[float, float]:
    return (rating.mu - DEFAULT_RATING) / SCALE, rating.phi / SCALE


def _from_internal(mu: float, phi: float) -> tuple[float, float]:
    return mu * SCALE + DEFAULT_RATING, phi * SCALE


def g(phi: float) -> float:
    """Down-weight an opponent in proportion to its own uncertainty.

    g(φ) = 1 / √(1 + 3φ²/π²)
    """
    return 1.0 / math.sqrt(1.0 + 3.0 * phi * phi / (math.pi * math.pi))


def _logistic(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _score_variance(x: float) -> float:
    # E(1 - E) written so it stays positive once E rounds to 0 or 1
    tail = math.exp(-abs(x))
    return tail / (1.0 + tail) ** 2


def expected_score(mu: float, mu_j: float, phi_j: float) -> float:
    """Expected score against an opponent on the internal scale.

    E(μ, μⱼ, φⱼ) = 1 / (1 + exp(-g(φⱼ)(μ - μⱼ)))
    """
    return _logistic(g(phi_j) * (mu - mu_j))


def _volatility_objective(x: float, delta: float, phi: float, v: float, a: float) -> float:
    ex = math.exp(x)
    d2 = delta * delta
    p2 = phi * phi
    numerator = ex * (d2 - p2 - v - ex)
    denominator = 2.0 * (p2 + v + ex) ** 2
    return numerator / denominator - (x - a) / (TAU * TAU)


def solve_volatility(
    sigma: float,
    phi: float,
    v: float,
    delta: float,
    *,
    max_bracket_steps: int = MAX_BRACKET_STEPS,
    max_iterations: int = MAX_ITERATIONS,
) -> VolatilityResult:
    """Find the new volatility with the Illinois variant of regula falsi.

    Args:
        sigma: Current volatility.
        phi: Current rating deviation on the internal scale.
        v: Estimated variance of the rating from game outcomes.
        delta: Estimated improvement in rating.
        max_bracket_steps: Cap on the ``a - k*tau`` bracket search.
        max_iterations: Cap on regula falsi refinement steps.

    Returns:
        ``Converged`` holding sigma', or ``NonConvergent`` naming the stage that
        ran out of steps.
    """
    a = math.log(sigma * sigma)
    d2 = delta * delta
    p2 = phi * phi

    def f(x: float) -> float:
        return _volatility_objective(x, delta, phi, v, a)

    upper = a
    if d2 > p2 + v:
        lower = math.log(d2 - p2 - v)
    else:
        k = 1
        while f(a - k * TAU) < 0:
            k += 1
            if k > max_bracket_steps:
                return NonConvergent(stage="bracketing", steps=k - 1)
        lower = a - k * TAU

    f_upper = f(upper)
    f_lower = f(lower)

    iterations = 0
    while abs(lower - upper) > EPSILON:
        if iterations >= max_iterations or f_lower == f_upper:
            return NonConvergent(stage="refinement", steps=iterations)
        iterations += 1

        candidate = upper + (upper - lower) * f_upper / (f_lower - f_upper)
        if candidate in (lower, upper):
            # The secant step cannot leave a bracket end, so that end is the root
            return Converged(value=math.exp(candidate / 2.0), iterations=iterations)
        f_candidate = f(candidate)

        if f_candidate * f_lower <= 0:
            upper, f_upper = lower, f_lower
        else:
            f_upper /= 2.0

        lower, f_lower = candidate, f_candidate

    return Converged(value=math.exp(upper / 2.0), iterations=iterations)


def update_rating(player: Rating, results: Sequence[MatchOutcome]) -> RatingUpdate:
    """Update a player's rating for one rating period.

    Args:
        player: Current rating of the player.
        results: Outcomes against each opponent during the period. May be empty.

    Returns:
        The new rating and the signed change in ``mu``.

    Raises:
        InvalidInputError: If a rating or score is invalid, or every opponent is
            rated so far away that the period carries no information.
        NonConvergenceError: If the volatility solver exhausts its iteration caps.
    """
    _validate_rating(player, "player")
    for index, outcome in enumerate(results):
        _validate_outcome(outcome, index)

    if not results:
        # No evidence: phi grows up to a newcomer's deviation and never shrinks
        phi_prime = math.sqrt(player.phi * player.phi + player.sigma * player.sigma)
        new_rating = Rating(
            mu=player.mu,
            phi=max(player.phi, min(phi_prime, DEFAULT_DEVIATION)),
            sigma=player.sigma,
        )
        logger.debug("rating_period_decay", phi=player.phi, new_phi=new_rating.phi)
        return RatingUpdate(new_rating=new_rating, rating_change=0.0)

    mu, phi = _to_internal(player)

    v_inverse = 0.0
    delta_sum = 0.0
    for outcome in results:
        mu_j, phi_j = _to_internal(outcome.opponent)
        g_j = g(phi_j)
        x = g_j * (mu - mu_j)
        e_j = _logistic(x)
        v_inverse += g_j * g_j * _score_variance(x)
        delta_sum += g_j * (outcome.score - e_j)

    if v_inverse < MIN_INFORMATION:
        raise InvalidInputError(
            "results", "every opponent is rated too far away for the outcome to carry information"
        )
    v = 1.0 / v_inverse
    delta = v * delta_sum

    result = solve_volatility(
        player.sigma,
        phi,
        v,
        delta,
        max_bracket_steps=MAX_BRACKET_STEPS,
        max_iterations=MAX_ITERATIONS,
    )
    if isinstance(result, NonConvergent):
        logger.warning("volatility_nonconvergent", stage=result.stage, steps=result.steps)
        raise NonConvergenceError(result.stage, result.steps)
    sigma_prime = result.value
    logger.debug("volatility_converged", iterations=result.iterations, sigma=sigma_prime)

    phi_star = math.sqrt(phi * phi + sigma_prime * sigma_prime)
    phi_prime = 1.0 / math.sqrt(1.0 / (phi_star * phi_star) + 1.0 / v)
    mu_prime = mu + phi_prime * phi_prime * delta_sum

    new_mu, new_phi = _from_internal(mu_prime, phi_prime)
    return RatingUpdate(
        new_rating=Rating(mu=new_mu, phi=new_phi, sigma=sigma_prime),
        rating_change=new_mu - player.mu,
    )


def predict_outcome(player_a: Rating, player_b: Rating) -> float:
    """Probability that ``player_a`` beats ``player_b``.

    Args:
        player_a: Rating of player A.
        player_b: Rating of player B.

    Returns:
        Expected score of A against B (0.0 to 1.0).
    """
    _validate_rating(player_a, "player_a")
    _validate_rating(player_b, "player_b")
    mu_a, _ = _to_internal(player_a)
    mu_b, phi_b = _to_internal(player_b)
    return expected_score(mu_a, mu_b, phi_b)


def _match_scores(winner: Winner | str) -> tuple[float, float]:
    match winner.lower():
        case "a":
            return 1.0, 0.0
        case "b":
            return 0.0, 1.0
        case "tie" | "both_bad":
            return 0.5, 0.5
        case _:
            raise InvalidInputError("winner", f"must be one of a, b, tie, both_bad; got {winner!r}")


def calculate_match_outcome(
    rating_a: Rating, rating_b: Rating, winner: Winner | str
) -> MatchResult:
    """Update both sides of a single comparison.

    Each side is rated against the other's pre-match rating.

    Args:
        rating_a: Current rating of source A.
        rating_b: Current rating of source B.
        winner: "a", "b" or "tie". "both_bad" is scored as a tie.

    Returns:
        New ratings and changes for both sides.
    """
    score_a, score_b = _match_scores(winner)
    update_a = update_rating(rating_a, [MatchOutcome(opponent=rating_b, score=score_a)])
    update_b = update_rating(rating_b, [MatchOutcome(opponent=rating_a, score=score_b)])
    return MatchResult(
        new_rating_a=update_a.new_rating,
        new_rating_b=update_b.new_rating,
        change_a=update_a.rating_change,
        change_b=update_b.rating_change,
    )


@dataclass
class SourceRecord:
    """Tracks the Glicko-2 rating and match counters for one source.

    Attributes:
        rating: Current rating.
        matches: Number of matches played.
        wins: Number of wins.
        losses: Number of losses.
        ties: Number of ties (including "both bad" votes).
        history: Ratings held before each update, oldest first.
    """

    rating: Rating = field(default_factory=Rating)
    matches: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    history: list[Rating] = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        """Share of matches won as a percentage (0-100)."""
        if self.matches == 0:
            return 0.0
        return self.wins / self.matches * 100.0

    def record_match(self, new_rating: Rating, score: float) -> None:
        """Record a match result.

        Args:
            new_rating: Rating after the match.
            score: 1 for a win, 0.5 for a tie, 0 for a loss.
        """
        self.history.append(self.rating)
        self.rating = new_rating
        self.matches += 1
        if score == 1.0:
            self.wins += 1
        elif score == 0.0:
            self.losses += 1
        else:
            self.ties += 1


class LeaderboardEntry(NamedTuple):
    """One leaderboard row."""

    candidate_id: str
    rating: float
    wins: int
    losses: int
    ties: int
    phi: float
    sigma: float


class Glicko2System:
    """In-memory Glicko-2 ledger implementing the RankingSystem protocol.

    Holds one ``SourceRecord`` per source and routes every change through
    ``calculate_match_outcome`` / ``update_rating``. Nothing is persisted.
    """

    def __init__(self, initial_rating: Rating | None = None) -> None:
        """Initialize the ledger.

        Args:
            initial_rating: Rating given to sources registered without one.
        """
        self.initial_rating = initial_rating or Rating()
        _validate_rating(self.initial_rating, "initial_rating")
        self._records: dict[str, SourceRecord] = {}

    def initialize(self, candidate_ids: Sequence[str]) -> None:
        """Reset the ledger with default ratings for all candidates.

        Args:
            candidate_ids: Unique source identifiers.
        """
        self._records = {cid: SourceRecord(rating=self.initial_rating) for cid in candidate_ids}

    def register(self, candidate_id: str, rating: Rating | None = None) -> None:
        """Add a source with an existing rating (e.g. loaded by the caller)."""
        rating = rating or self.initial_rating
        _validate_rating(rating, candidate_id)
        self._records[candidate_id] = SourceRecord(rating=rating)

    def _lookup(self, candidate_id: str) -> SourceRecord:
        try:
            return self._records[candidate_id]
        except KeyError:
            raise UnknownSourceError(candidate_id) from None

    def record(self, id_a: str, id_b: str, winner: Winner | str) -> MatchResult:
        """Apply one comparison between two sources.

        Args:
            id_a: Source shown as A.
            id_b: Source shown as B.
            winner: "a", "b", "tie" or "both_bad".

        Returns:
            The match result from ``calculate_match_outcome``.

        Raises:
            InvalidInputError: If a source is matched against itself.
            UnknownSourceError: If either source is not registered.
        """
        if id_a == id_b:
            raise InvalidInputError("id_b", f"a source cannot play itself, got {id_a!r} twice")
        record_a = self._lookup(id_a)
        record_b = self._lookup(id_b)
        score_a, score_b = _match_scores(winner)

        result = calculate_match_outcome(record_a.rating, record_b.rating, winner)
        record_a.record_match(result.new_rating_a, score_a)
        record_b.record_match(result.new_rating_b, score_b)

        logger.debug(
            "match_recorded",
            source_a=id_a,
            source_b=id_b,
            winner=winner,
            change_a=round(result.change_a, 2),
            change_b=round(result.change_b, 2),
        )
        return result

    def update(self, winner_id: str, loser_id: str) -> tuple[float, float]:
        """Update ratings after a decisive match.

        Args:
            winner_id: ID of the winning source.
            loser_id: ID of the losing source.

        Returns:
            Tuple of (new_winner_rating, new_loser_rating).
        """
        result = self.record(winner_id, loser_id, "a")
        return result.new_rating_a.mu, result.new_rating_b.mu

    def decay(self, candidate_ids: Sequence[str]) -> None:
        """Run an empty rating period for sources that accrued no evidence."""
        for cid in candidate_ids:
            record = self._lookup(cid)
            record.rating = update_rating(record.rating, []).new_rating

    def get_rating(self, candidate_id: str) -> float:
        """Get current ``mu`` for a source."""
        return self._lookup(candidate_id).rating.mu

    def get_rating_object(self, candidate_id: str) -> Rating:
        """Get the full Rating for a source."""
        return self._lookup(candidate_id).rating

    def get_record(self, candidate_id: str) -> SourceRecord:
        """Get the SourceRecord for a source."""
        return self._lookup(candidate_id)

    def win_rate(self, candidate_id: str) -> float:
        """Get the win rate of a source as a percentage (0-100)."""
        return self._lookup(candidate_id).win_rate

    def get_stats(self, candidate_id: str) -> dict[str, int]:
        """Get match statistics for a source.

        Returns:
            Dict with 'matches', 'wins', 'losses', 'ties' keys.
        """
        r = self._lookup(candidate_id)
        return {"matches": r.matches, "wins": r.wins, "losses": r.losses, "ties": r.ties}

    def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Get leaderboard sorted by ``mu`` descending."""
        entries = [
            LeaderboardEntry(
                cid, r.rating.mu, r.wins, r.losses, r.ties, r.rating.phi, r.rating.sigma
            )
            for cid, r in self._records.items()
        ]
        return sorted(entries, key=lambda x: x.rating, reverse=True)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._records
