"""Tests for Glicko-2 rating calculations."""

import math

import pytest

from knowledge_arena.core.errors import InvalidInputError, NonConvergenceError, UnknownSourceError
from knowledge_arena.ranking import RankingSystem, glicko2
from knowledge_arena.ranking.glicko2 import (
    SCALE,
    Converged,
    Glicko2System,
    MatchOutcome,
    NonConvergent,
    Rating,
    calculate_match_outcome,
    create_rating,
    format_rating,
    predict_outcome,
    solve_volatility,
    update_rating,
)


@pytest.fixture
def glickman_player():
    """Player from Glickman's worked example."""
    return Rating(mu=1500, phi=200, sigma=0.06)


@pytest.fixture
def glickman_results():
    """Opponents and scores from Glickman's worked example."""
    return [
        MatchOutcome(opponent=Rating(mu=1400, phi=30), score=1),
        MatchOutcome(opponent=Rating(mu=1550, phi=100), score=0),
        MatchOutcome(opponent=Rating(mu=1700, phi=300), score=0),
    ]


class TestRating:
    """Tests for the Rating value type."""

    def test_defaults(self):
        """Test newcomer defaults."""
        rating = Rating()
        assert rating.mu == 1500.0
        assert rating.phi == 350.0
        assert rating.sigma == 0.06

    def test_interval(self):
        """Test 95% interval is mu +/- 1.96 phi."""
        assert Rating().interval() == (814, 2186)

    def test_interval_other_confidence(self):
        """Test 99% interval is wider than 90%."""
        low_99, high_99 = Rating().interval(0.99)
        low_90, high_90 = Rating().interval(0.90)
        assert high_99 - low_99 > high_90 - low_90

    def test_format_rating(self):
        """Test display format."""
        assert format_rating(Rating()) == "1500 (814-2186)"

    def test_create_rating_rejects_bad_deviation(self):
        """Test create_rating validates its arguments."""
        with pytest.raises(InvalidInputError, match="phi"):
            create_rating(phi=0)


class TestUpdateRating:
    """Tests for a single rating period."""

    def test_reference_example(self, glickman_player, glickman_results):
        """Test Glickman's worked example."""
        update = update_rating(glickman_player, glickman_results)

        assert update.new_rating.mu == pytest.approx(1464.06, abs=0.1)
        assert update.new_rating.phi == pytest.approx(151.52, abs=0.1)
        assert update.new_rating.sigma == pytest.approx(0.05999, abs=1e-4)
        assert update.rating_change == pytest.approx(-35.94, abs=0.1)

    def test_deterministic(self, glickman_player, glickman_results):
        """Test identical inputs produce identical outputs."""
        first = update_rating(glickman_player, glickman_results)
        second = update_rating(glickman_player, glickman_results)
        assert first == second

    def test_does_not_mutate_inputs(self, glickman_player, glickman_results):
        """Test the player and outcomes are left untouched."""
        snapshot = list(glickman_results)
        update_rating(glickman_player, glickman_results)
        assert glickman_player == Rating(mu=1500, phi=200, sigma=0.06)
        assert glickman_results == snapshot

    def test_no_results_keeps_mu(self, glickman_player):
        """Test an empty period leaves mu alone and does not shrink phi."""
        update = update_rating(glickman_player, [])

        assert update.new_rating.mu == glickman_player.mu
        assert update.new_rating.phi >= glickman_player.phi
        assert update.new_rating.sigma == glickman_player.sigma
        assert update.rating_change == 0.0

    def test_no_results_caps_deviation(self):
        """Test decay never pushes phi beyond the newcomer deviation."""
        update = update_rating(Rating(phi=349.9999, sigma=0.5), [])
        assert update.new_rating.phi == 350.0

    def test_no_results_never_shrinks_deviation(self):
        """Test a deviation already above the newcomer cap is left in place."""
        update = update_rating(Rating(phi=400), [])
        assert update.new_rating.phi == 400.0

    def test_uncertainty_reduced_by_evidence(self):
        """Test phi' never exceeds the inflated pre-update deviation."""
        scenarios = [
            (Rating(mu=1500, phi=350), [MatchOutcome(Rating(mu=1500), 1)]),
            (Rating(mu=1800, phi=50, sigma=0.03), [MatchOutcome(Rating(mu=1200, phi=80), 0)]),
            (
                Rating(mu=1300, phi=120, sigma=0.09),
                [
                    MatchOutcome(Rating(mu=1350, phi=60), 0.5),
                    MatchOutcome(Rating(mu=1250, phi=200), 1),
                ],
            ),
        ]
        for player, results in scenarios:
            new = update_rating(player, results).new_rating
            phi_star = SCALE * math.sqrt((player.phi / SCALE) ** 2 + new.sigma**2)
            assert new.phi <= phi_star
            assert new.phi > 0
            assert new.sigma > 0

    def test_win_raises_rating(self):
        """Test beating an equal opponent raises mu."""
        update = update_rating(Rating(), [MatchOutcome(Rating(), 1)])
        assert update.rating_change > 0

    def test_draw_against_equal_keeps_mu(self):
        """Test a draw against an equal opponent leaves mu unchanged."""
        update = update_rating(Rating(), [MatchOutcome(Rating(), 0.5)])
        assert update.rating_change == pytest.approx(0.0, abs=1e-9)

    def test_distant_favourite_win(self):
        """Test a 7000 point favourite winning as expected stays finite and unmoved."""
        player = Rating(mu=8500, phi=50, sigma=0.06)
        update = update_rating(player, [MatchOutcome(Rating(mu=1500, phi=30), 1)])

        phi_star = SCALE * math.sqrt((player.phi / SCALE) ** 2 + player.sigma**2)
        assert update.new_rating.mu == pytest.approx(8500)
        assert update.new_rating.phi == pytest.approx(phi_star, rel=1e-9)
        assert update.new_rating.sigma == pytest.approx(0.06)
        assert math.isfinite(update.rating_change)

    def test_uninformative_period_rejected(self):
        """Test opponents too far away to inform v raise InvalidInputError."""
        player = Rating(mu=-250000, phi=50)
        with pytest.raises(InvalidInputError, match="results"):
            update_rating(player, [MatchOutcome(Rating(mu=1500, phi=30), 0)])

    @pytest.mark.parametrize(
        ("player", "field"),
        [
            (Rating(phi=0), "phi"),
            (Rating(phi=-10), "phi"),
            (Rating(sigma=0), "sigma"),
            (Rating(mu=math.nan), "mu"),
        ],
    )
    def test_invalid_player_rejected(self, player, field):
        """Test invalid player state is rejected before computation."""
        with pytest.raises(InvalidInputError, match=field):
            update_rating(player, [MatchOutcome(Rating(), 1)])

    def test_invalid_score_rejected(self):
        """Test scores outside {0, 0.5, 1} are rejected."""
        with pytest.raises(InvalidInputError, match="score"):
            update_rating(Rating(), [MatchOutcome(Rating(), 0.7)])

    def test_invalid_opponent_rejected(self):
        """Test an opponent with non-positive deviation is rejected."""
        with pytest.raises(InvalidInputError, match="opponent"):
            update_rating(Rating(), [MatchOutcome(Rating(phi=0), 1)])

    def test_invalid_input_is_value_error(self):
        """Test InvalidInputError can be caught as ValueError."""
        with pytest.raises(ValueError):
            update_rating(Rating(sigma=-1), [])

    def test_nonconvergence_surfaced(self, monkeypatch, glickman_player, glickman_results):
        """Test an exhausted solver raises instead of returning an approximation."""
        monkeypatch.setattr(glicko2, "MAX_ITERATIONS", 1)
        with pytest.raises(NonConvergenceError) as exc_info:
            update_rating(glickman_player, glickman_results)
        assert exc_info.value.stage == "refinement"


class TestSolveVolatility:
    """Tests for the volatility root-find."""

    def test_reference_converges(self):
        """Test the worked example converges to sigma' ~ 0.05999."""
        result = solve_volatility(0.06, 200 / SCALE, 1.7785, -0.4834)
        assert isinstance(result, Converged)
        assert result.value == pytest.approx(0.05999, abs=1e-4)
        assert result.iterations > 0

    def test_iteration_cap(self):
        """Test the refinement stops at its cap."""
        result = solve_volatility(0.06, 200 / SCALE, 1.7785, -0.4834, max_iterations=1)
        assert result == NonConvergent(stage="refinement", steps=1)

    def test_large_improvement_branch(self):
        """Test the delta^2 > phi^2 + v bracket."""
        result = solve_volatility(0.06, 0.2, 0.5, 3.0)
        assert isinstance(result, Converged)
        assert result.value > 0.06


class TestPredictOutcome:
    """Tests for win probability."""

    def test_equal_ratings(self):
        """Test equal ratings produce 0.5."""
        assert predict_outcome(Rating(), Rating()) == pytest.approx(0.5)

    def test_higher_rating_favoured(self):
        """Test the higher rated source is favoured."""
        assert predict_outcome(Rating(mu=1700), Rating(mu=1400)) > 0.5

    def test_complementary_with_equal_deviation(self):
        """Test P(a beats b) + P(b beats a) = 1 when deviations match."""
        a = Rating(mu=1620, phi=80)
        b = Rating(mu=1480, phi=80)
        assert predict_outcome(a, b) + predict_outcome(b, a) == pytest.approx(1.0)

    def test_extreme_gap_saturates(self):
        """Test huge rating gaps give 0 or 1 without overflowing."""
        assert predict_outcome(Rating(mu=-250000), Rating()) == 0.0
        assert predict_outcome(Rating(mu=250000), Rating()) == 1.0

    def test_uncertain_opponent_pulls_toward_half(self):
        """Test a more uncertain opponent gives a less extreme prediction."""
        sure = predict_outcome(Rating(mu=1700), Rating(mu=1400, phi=30))
        unsure = predict_outcome(Rating(mu=1700), Rating(mu=1400, phi=300))
        assert 0.5 < unsure < sure


class TestCalculateMatchOutcome:
    """Tests for the two-sided convenience update."""

    def test_winner_gains_loser_loses(self):
        """Test A gains and B loses when A wins."""
        result = calculate_match_outcome(Rating(), Rating(), "a")
        assert result.change_a > 0
        assert result.change_b < 0
        assert result.change_a == pytest.approx(-result.change_b)

    def test_b_wins(self):
        """Test B gains when B wins."""
        result = calculate_match_outcome(Rating(), Rating(), "B")
        assert result.change_b > 0

    def test_tie_between_equals(self):
        """Test a tie between equals leaves both ratings in place."""
        result = calculate_match_outcome(Rating(), Rating(), "tie")
        assert result.change_a == pytest.approx(0.0, abs=1e-9)
        assert result.change_b == pytest.approx(0.0, abs=1e-9)

    def test_both_bad_scored_as_tie(self):
        """Test a 'both bad' vote is scored like a tie."""
        a = Rating(mu=1600, phi=90)
        b = Rating(mu=1450, phi=140)
        assert calculate_match_outcome(a, b, "both_bad") == calculate_match_outcome(a, b, "tie")

    def test_uses_pre_match_ratings(self):
        """Test each side is updated against the other's pre-match rating."""
        a = Rating(mu=1550, phi=120)
        b = Rating(mu=1500, phi=200)
        result = calculate_match_outcome(a, b, "a")
        assert result.new_rating_a == update_rating(a, [MatchOutcome(b, 1)]).new_rating
        assert result.new_rating_b == update_rating(b, [MatchOutcome(a, 0)]).new_rating

    def test_invalid_winner(self):
        """Test unknown winner values are rejected."""
        with pytest.raises(InvalidInputError, match="winner"):
            calculate_match_outcome(Rating(), Rating(), "c")


class TestGlicko2System:
    """Tests for the in-memory ledger."""

    def test_implements_protocol(self):
        """Test the ledger satisfies the RankingSystem protocol."""
        assert isinstance(Glicko2System(), RankingSystem)

    def test_initialize(self):
        """Test initialization of sources."""
        system = Glicko2System()
        system.initialize(["a", "b", "c"])
        assert system.get_rating("a") == 1500.0
        assert system.get_rating_object("b") == Rating()

    def test_register_existing_rating(self):
        """Test sources can start from a stored rating."""
        system = Glicko2System()
        system.register("a", Rating(mu=1720, phi=60, sigma=0.05))
        assert system.get_rating("a") == 1720

    def test_update_winner_gains(self):
        """Test that winner gains rating after match."""
        system = Glicko2System()
        system.initialize(["a", "b"])

        new_winner, new_loser = system.update("a", "b")

        assert new_winner > 1500.0
        assert new_loser < 1500.0
        assert system.get_rating("a") == new_winner

    def test_stats_tracking(self):
        """Test match statistics including ties are tracked."""
        system = Glicko2System()
        system.initialize(["a", "b"])

        system.record("a", "b", "a")
        system.record("a", "b", "tie")
        system.record("a", "b", "both_bad")

        assert system.get_stats("a") == {"matches": 3, "wins": 1, "losses": 0, "ties": 2}
        assert system.get_stats("b") == {"matches": 3, "wins": 0, "losses": 1, "ties": 2}
        assert system.win_rate("a") == pytest.approx(100 / 3)
        assert system.win_rate("b") == 0.0

    def test_history_tracking(self):
        """Test prior ratings are kept in order."""
        system = Glicko2System()
        system.initialize(["a", "b"])
        system.record("a", "b", "a")
        system.record("b", "a", "a")

        history = system.get_record("a").history
        assert len(history) == 2
        assert history[0] == Rating()

    def test_leaderboard_sorted(self):
        """Test leaderboard is sorted by rating descending."""
        system = Glicko2System()
        system.initialize(["a", "b", "c"])

        system.update("a", "b")
        system.update("b", "c")

        leaderboard = system.get_leaderboard()
        assert [entry.candidate_id for entry in leaderboard] == ["a", "b", "c"]

    def test_decay_grows_uncertainty(self):
        """Test an idle period grows phi without moving mu."""
        system = Glicko2System()
        system.register("a", Rating(mu=1600, phi=100, sigma=0.06))
        system.decay(["a"])
        assert system.get_rating("a") == 1600
        assert system.get_rating_object("a").phi > 100

    def test_unknown_source(self):
        """Test lookups of undeclared sources raise UnknownSourceError."""
        system = Glicko2System()
        system.initialize(["a"])
        with pytest.raises(UnknownSourceError, match="ghost"):
            system.record("a", "ghost", "a")

    def test_self_match_rejected(self):
        """Test a source cannot be recorded playing itself."""
        system = Glicko2System()
        system.initialize(["a", "b"])
        with pytest.raises(InvalidInputError, match="itself"):
            system.record("a", "a", "a")
        assert system.get_stats("a")["matches"] == 0
