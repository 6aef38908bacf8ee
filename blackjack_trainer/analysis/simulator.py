"""
Monte Carlo simulator for blackjack strategies.

Plays complete rounds through ``BlackjackTable`` (real shoe, penetration and
reshuffles, splits, doubles, surrender, dealer peek) and accumulates the
per-round net result in units of the base bet.

Primary use: compare strategies (rule table vs EV argmax vs a naive
threshold player) and sanity-check the infinite-deck EV solver. The
solver's numbers are infinite-deck approximations; the simulator deals from
a finite shoe, so small differences are expected.

Insurance is always declined by the simulated player.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from blackjack_trainer.engine.game_state import Action, BlackjackTable, InsuranceChoice, Phase
from blackjack_trainer.engine.hand import Hand
from blackjack_trainer.engine.rules import GameRules
from blackjack_trainer.solvers.basic_strategy import recommend_action
from blackjack_trainer.solvers.ev_solver import all_action_evs

LOGGER = logging.getLogger(__name__)

PlayerStrategy = Callable[[Hand, int, frozenset[Action]], Action]
"""(active hand, dealer upcard value, legal actions) → chosen action."""

# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class SimulationResult:
    """Aggregate statistics from a Monte Carlo simulation run.

    Attributes:
        n_rounds:       Number of rounds simulated.
        mean_net:       Mean net result per round in base-bet units.
        std_net:        Sample standard deviation of per-round nets.
        ci_95_low:      Lower bound of the 95% confidence interval for mean_net.
        ci_95_high:     Upper bound of the 95% confidence interval for mean_net.
        house_edge_pct: -mean_net * 100. Positive = house advantage.
        n_wins:         Rounds with net > 0.
        n_losses:       Rounds with net < 0.
        n_pushes:       Rounds with net == 0.
        reshuffles:     Shoes rebuilt during the run (the initial shuffle excluded).
        nets:           Raw per-round nets (float64, length n_rounds), or None
                        if simulate_rounds() was called with return_nets=False.
    """

    n_rounds: int
    mean_net: float
    std_net: float
    ci_95_low: float
    ci_95_high: float
    house_edge_pct: float
    n_wins: int
    n_losses: int
    n_pushes: int
    reshuffles: int
    nets: np.ndarray | None = None

    def __str__(self) -> str:
        sign = "+" if self.mean_net >= 0 else ""
        return (
            f"Rounds: {self.n_rounds:,} | "
            f"EV: {sign}{self.mean_net:.4f} ({sign}{self.mean_net * 100:.2f}%) | "
            f"95% CI: [{self.ci_95_low:.4f}, {self.ci_95_high:.4f}] | "
            f"House edge: {self.house_edge_pct:+.2f}% | "
            f"Reshuffles: {self.reshuffles}"
        )


# ─── Core simulation loop ─────────────────────────────────────────────────────


def play_round(table: BlackjackTable, bet: float, player_strategy: PlayerStrategy) -> float:
    """Play one full round on ``table`` and return the bankroll delta.

    Raises:
        RuntimeError: If the table rejects the bet or a strategy action.
    """
    if not table.place_bet(bet):
        raise RuntimeError(f"Table rejected bet {bet} with bankroll {table.bankroll}")

    if table.phase is Phase.INSURANCE:
        table.decide_insurance(InsuranceChoice.DECLINE)

    upcard = table.dealer_hand.cards[0].value
    while table.phase is Phase.PLAYER_TURN:
        legal = frozenset(table.legal_actions())
        action = player_strategy(table.active_hand, upcard, legal)
        if not table.act(action):
            raise RuntimeError(f"Strategy chose illegal action {action} (legal: {sorted(a.name for a in legal)})")

    return table.round_result.delta


def simulate_rounds(
    rules: GameRules,
    player_strategy: PlayerStrategy,
    n_rounds: int = 100_000,
    seed: int | np.random.Generator | None = 42,
    bet: float | None = None,
    return_nets: bool = False,
) -> SimulationResult:
    """Simulate n_rounds of blackjack and return aggregate statistics.

    Rounds are dealt from one continuing shoe that reshuffles when it runs
    low. The bankroll is sized so it can never run out.

    Args:
        rules:           Table rules.
        player_strategy: Callable matching the PlayerStrategy signature.
        n_rounds:        Number of rounds to simulate.
        seed:            Seed or Generator for the shoe. None for a
                         non-deterministic run.
        bet:             Base bet; defaults to the table minimum (or 1 when
                         the minimum is 0).
        return_nets:     If True, attach the per-round net array to the result.

    Returns:
        SimulationResult with EV statistics in base-bet units.
    """
    if n_rounds < 2:
        raise ValueError(f"n_rounds must be >= 2, got {n_rounds}")
    bet = bet if bet is not None else (rules.minimum_bet or 1.0)
    bankroll = bet * 8 * (n_rounds + 1)
    table = BlackjackTable(rules, bankroll=bankroll, rng=seed)
    table.start_game()

    nets = np.empty(n_rounds, dtype=np.float64)
    for i in range(n_rounds):
        nets[i] = play_round(table, bet, player_strategy) / bet
        table.next_round()

    mean = float(np.mean(nets))
    std = float(np.std(nets, ddof=1))
    ci_margin = 1.96 * std / math.sqrt(n_rounds)
    result = SimulationResult(
        n_rounds=n_rounds,
        mean_net=mean,
        std_net=std,
        ci_95_low=mean - ci_margin,
        ci_95_high=mean + ci_margin,
        house_edge_pct=-mean * 100.0,
        n_wins=int(np.sum(nets > 0)),
        n_losses=int(np.sum(nets < 0)),
        n_pushes=int(np.sum(nets == 0)),
        reshuffles=table.shoe.shuffles - 1,
        nets=nets if return_nets else None,
    )
    LOGGER.info("Simulated %d rounds: %s", n_rounds, result)
    return result


# ─── Strategy factories ───────────────────────────────────────────────────────


def make_basic_strategy_player(rules: GameRules) -> PlayerStrategy:
    """Player that follows the basic-strategy rule table."""

    def _strategy(hand: Hand, upcard: int, legal: frozenset[Action]) -> Action:
        return recommend_action(hand, upcard, rules, allowed=legal)

    return _strategy


def make_ev_player(rules: GameRules) -> PlayerStrategy:
    """Player that takes the EV-maximising legal action at every decision.

    Each decision is re-solved from the current (total, soft) state; the
    results are cached per state for the lifetime of the returned callable.
    """
    cache: dict[tuple, Action] = {}

    def _strategy(hand: Hand, upcard: int, legal: frozenset[Action]) -> Action:
        splittable = Action.SPLIT in legal
        pair_value = hand.cards[0].value if splittable else None
        key = (hand.total, hand.soft, pair_value, upcard, legal)
        if key not in cache:
            evs = all_action_evs(hand.total, hand.soft, splittable, pair_value, upcard, rules)
            cache[key] = next(r.action for r in evs if r.action in legal)
        return cache[key]

    return _strategy


def make_simple_player_strategy(stand_threshold: int = 17) -> PlayerStrategy:
    """Return a simple threshold player strategy.

    Stand on total >= stand_threshold, hit otherwise. Useful as a baseline
    to verify that optimal play outperforms naive play.

    Args:
        stand_threshold: Total at which the player starts standing.

    Returns:
        PlayerStrategy callable.
    """

    def _strategy(hand: Hand, upcard: int, legal: frozenset[Action]) -> Action:
        if hand.total >= stand_threshold or Action.HIT not in legal:
            return Action.STAND
        return Action.HIT

    return _strategy


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    _rules = GameRules()
    print("Blackjack Monte Carlo — 100,000 rounds per strategy, 6 decks S17 DAS LS\n")
    for _name, _player in (
        ("basic strategy", make_basic_strategy_player(_rules)),
        ("EV argmax", make_ev_player(_rules)),
        ("stand on 17", make_simple_player_strategy(17)),
    ):
        print(f"{_name:>15}: {simulate_rounds(_rules, _player, n_rounds=100_000)}")
