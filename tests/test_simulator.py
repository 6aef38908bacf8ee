"""
Tests for blackjack_trainer/analysis/simulator.py

Covers:
    - SimulationResult dataclass structure and formatting
    - play_round(): one stacked round through the table
    - simulate_rounds(): reproducibility, counts, CI, reshuffles
    - Strategy factories: basic strategy, EV argmax, threshold player
    - Relative check: basic strategy beats the naive threshold player
"""

from __future__ import annotations

import numpy as np
import pytest

from blackjack_trainer.analysis.simulator import (
    SimulationResult,
    make_basic_strategy_player,
    make_ev_player,
    make_simple_player_strategy,
    play_round,
    simulate_rounds,
)
from blackjack_trainer.engine.game_state import Action, BlackjackTable
from blackjack_trainer.engine.hand import Hand
from blackjack_trainer.engine.rules import GameRules
from tests.conftest import hand, stacked_shoe

RULES = GameRules()


@pytest.fixture(scope="module")
def basic_result() -> SimulationResult:
    return simulate_rounds(RULES, make_basic_strategy_player(RULES), n_rounds=3000, seed=42, return_nets=True)


# ─── TestSimulationResult ─────────────────────────────────────────────────────


class TestSimulationResult:
    def test_str(self):
        result = SimulationResult(
            n_rounds=1000,
            mean_net=-0.005,
            std_net=1.15,
            ci_95_low=-0.08,
            ci_95_high=0.07,
            house_edge_pct=0.5,
            n_wins=430,
            n_losses=480,
            n_pushes=90,
            reshuffles=3,
        )
        text = str(result)
        assert "1,000" in text
        assert "+0.50%" in text
        assert "Reshuffles: 3" in text

    def test_nets_default_none(self):
        result = simulate_rounds(RULES, make_simple_player_strategy(), n_rounds=10, seed=1)
        assert result.nets is None


# ─── play_round ───────────────────────────────────────────────────────────────


class TestPlayRound:
    def test_stacked_win(self):
        table = BlackjackTable(RULES, bankroll=100, shoe=stacked_shoe('10C', '10D', '9H', '7S'))
        table.start_game()
        delta = play_round(table, 10, make_basic_strategy_player(RULES))
        assert delta == 10.0

    def test_declines_insurance(self):
        table = BlackjackTable(RULES, bankroll=100, shoe=stacked_shoe('10C', 'AD', '9H', 'KS'))
        table.start_game()
        delta = play_round(table, 10, make_basic_strategy_player(RULES))
        assert delta == -10.0
        assert table.insurance_bet == 0.0

    def test_rejected_bet_raises(self):
        table = BlackjackTable(RULES, bankroll=1, rng=0)
        table.start_game()
        with pytest.raises(RuntimeError):
            play_round(table, 10, make_basic_strategy_player(RULES))

    def test_illegal_action_raises(self):
        table = BlackjackTable(RULES, bankroll=100, shoe=stacked_shoe('10C', '10D', '9H', '7S'))
        table.start_game()
        with pytest.raises(RuntimeError):
            play_round(table, 10, lambda hand, up, legal: Action.SPLIT)


# ─── simulate_rounds ──────────────────────────────────────────────────────────


class TestSimulateRounds:
    def test_counts_add_up(self, basic_result):
        r = basic_result
        assert r.n_wins + r.n_losses + r.n_pushes == r.n_rounds == 3000

    def test_nets_shape(self, basic_result):
        assert basic_result.nets.shape == (3000,)
        assert basic_result.nets.dtype == np.float64

    def test_nets_in_range(self, basic_result):
        # Worst case: split and double both hands; best: the same, won.
        assert basic_result.nets.min() >= -4.0
        assert basic_result.nets.max() <= 4.0

    def test_ci_contains_mean(self, basic_result):
        r = basic_result
        assert r.ci_95_low < r.mean_net < r.ci_95_high

    def test_house_edge_sign(self, basic_result):
        assert basic_result.house_edge_pct == pytest.approx(-basic_result.mean_net * 100)

    def test_mean_near_zero(self, basic_result):
        # Basic strategy is within a few percent of even; wide bound for 3k rounds.
        assert -0.1 < basic_result.mean_net < 0.1

    def test_reshuffles_happen(self, basic_result):
        assert basic_result.reshuffles > 0

    def test_reproducible(self):
        a = simulate_rounds(RULES, make_basic_strategy_player(RULES), n_rounds=200, seed=7, return_nets=True)
        b = simulate_rounds(RULES, make_basic_strategy_player(RULES), n_rounds=200, seed=7, return_nets=True)
        np.testing.assert_array_equal(a.nets, b.nets)

    def test_too_few_rounds(self):
        with pytest.raises(ValueError):
            simulate_rounds(RULES, make_simple_player_strategy(), n_rounds=1)

    def test_basic_beats_naive(self):
        basic = simulate_rounds(RULES, make_basic_strategy_player(RULES), n_rounds=4000, seed=3)
        naive = simulate_rounds(RULES, make_simple_player_strategy(20), n_rounds=4000, seed=3)
        assert basic.mean_net > naive.mean_net

    def test_ev_player_runs(self):
        result = simulate_rounds(RULES, make_ev_player(RULES), n_rounds=300, seed=5)
        assert result.n_rounds == 300


# ─── Strategy factories ───────────────────────────────────────────────────────


class TestStrategies:
    def test_basic_respects_legal(self):
        player = make_basic_strategy_player(RULES)
        legal = frozenset({Action.HIT, Action.STAND})
        assert player(Hand(cards=hand('6H', '5S')), 6, legal) is Action.HIT

    def test_ev_player_picks_legal_best(self):
        player = make_ev_player(RULES)
        full = frozenset({Action.HIT, Action.STAND, Action.DOUBLE, Action.SURRENDER})
        assert player(Hand(cards=hand('6H', '5S')), 6, full) is Action.DOUBLE
        assert player(Hand(cards=hand('6H', '5S')), 6, frozenset({Action.HIT, Action.STAND})) is Action.HIT

    def test_ev_player_splits_eights(self):
        player = make_ev_player(RULES)
        legal = frozenset(Action)
        assert player(Hand(cards=hand('8H', '8S')), 6, legal) is Action.SPLIT

    @pytest.mark.parametrize("cards,expected", [(('10H', '6S'), Action.HIT), (('10H', '7S'), Action.STAND)])
    def test_threshold_player(self, cards, expected):
        player = make_simple_player_strategy(17)
        assert player(Hand(cards=hand(*cards)), 10, frozenset({Action.HIT, Action.STAND})) is expected
