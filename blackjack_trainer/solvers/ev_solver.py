"""
Infinite-deck EV solver for blackjack.

Two layers:
    1. ``dealer_outcome_distribution`` — the probability of each dealer
       terminal state (17–21, bust, natural) for an upcard and rule set.
    2. ``all_action_evs`` — the expected value of every legal first action
       (Stand / Hit / Double / Surrender / Split) for a player state.

Card probabilities come from an infinite (replacement) deck: each of the
values 2–9 and Ace has probability 1/13, ten-value cards 4/13.

The player side assumes a US peek game: the dealer checks for blackjack
before the player acts, so EVs are computed against the dealer
distribution conditioned on NO dealer natural.

Memoization is scoped per call for the player recursion. Dealer
distributions are cached by ``(upcard, dealer_hits_soft17)``, the only part
of the rules that changes dealer play; the cached value is immutable.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from blackjack_trainer.engine.cards import ACE_VALUE, CARD_VALUES
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import add_card_value
from blackjack_trainer.engine.rules import GameRules, dealer_should_hit

# ─── Constants ────────────────────────────────────────────────────────────────

CARD_PROBS: dict[int, float] = {v: (4.0 if v == 10 else 1.0) / 13 for v in CARD_VALUES}
"""Infinite-deck probability of drawing each card value (Ace = 11)."""

DEALER_TOTALS: tuple[int, ...] = (17, 18, 19, 20, 21)

UPCARD_VALUES: tuple[int, ...] = (2, 3, 4, 5, 6, 7, 8, 9, 10, 11)
"""Dealer upcard values in chart order (11 = Ace)."""

HARD_CHART_TOTALS: tuple[int, ...] = tuple(range(5, 21))
SOFT_CHART_TOTALS: tuple[int, ...] = tuple(range(13, 21))
PAIR_CHART_VALUES: tuple[int, ...] = (2, 3, 4, 5, 6, 7, 8, 9, 10, 11)


# ─── DealerOutcomeDistribution ────────────────────────────────────────────────


@dataclass(frozen=True)
class DealerOutcomeDistribution:
    """Probability mass over the dealer's terminal states for one upcard.

    The seven masses (17, 18, 19, 20, 21, bust, natural) sum to 1.0.

    Attributes:
        upcard:   Dealer upcard value (2–11, 11 = Ace).
        p17..p21: Probability the dealer stands on that total (non-natural).
        bust:     Probability the dealer busts.
        natural:  Probability the first two cards make a blackjack.
    """

    upcard: int
    p17: float
    p18: float
    p19: float
    p20: float
    p21: float
    bust: float
    natural: float

    def final_dist(self) -> dict[int, float]:
        """Return ``{total: prob}`` for the non-natural standing totals."""
        return {17: self.p17, 18: self.p18, 19: self.p19, 20: self.p20, 21: self.p21}

    def total_mass(self) -> float:
        return self.p17 + self.p18 + self.p19 + self.p20 + self.p21 + self.bust + self.natural

    def without_natural(self) -> DealerOutcomeDistribution:
        """Condition on the dealer not holding blackjack (after a peek).

        Examples:
            >>> d = dealer_outcome_distribution(10, GameRules()).without_natural()
            >>> d.natural
            0.0
        """
        keep = 1.0 - self.natural
        if keep <= 0.0:
            return self
        return DealerOutcomeDistribution(
            upcard=self.upcard,
            p17=self.p17 / keep,
            p18=self.p18 / keep,
            p19=self.p19 / keep,
            p20=self.p20 / keep,
            p21=self.p21 / keep,
            bust=self.bust / keep,
            natural=0.0,
        )


def _dealer_play(total: int, soft: bool, rules: GameRules, memo: dict) -> dict:
    """Distribution of dealer finals from a (total, soft) state.

    Returns a dict keyed by standing total (int) or ``'bust'``.
    """
    key = (total, soft, rules.dealer_key)
    if key in memo:
        return memo[key]

    if total > 21:
        result: dict = {"bust": 1.0}
    elif not dealer_should_hit(total, soft, rules):
        result = {total: 1.0}
    else:
        result = {}
        for value, prob in CARD_PROBS.items():
            new_total, new_soft = add_card_value(total, soft, value)
            for outcome, p in _dealer_play(new_total, new_soft, rules, memo).items():
                result[outcome] = result.get(outcome, 0.0) + prob * p

    memo[key] = result
    return result


@functools.lru_cache(maxsize=None)
def _cached_distribution(upcard: int, hits_soft17: bool) -> DealerOutcomeDistribution:
    rules = GameRules(dealer_hits_soft17=hits_soft17)
    memo: dict = {}
    masses: dict = {t: 0.0 for t in DEALER_TOTALS}
    masses["bust"] = 0.0
    natural = 0.0

    up_total, up_soft = add_card_value(0, False, upcard)
    # Enumerate the hole card here; recursion never sees a two-card 21.
    for hole, prob in CARD_PROBS.items():
        total, soft = add_card_value(up_total, up_soft, hole)
        if total == 21:
            natural += prob
            continue
        for outcome, p in _dealer_play(total, soft, rules, memo).items():
            masses[outcome] += prob * p

    return DealerOutcomeDistribution(
        upcard=upcard,
        p17=masses[17],
        p18=masses[18],
        p19=masses[19],
        p20=masses[20],
        p21=masses[21],
        bust=masses["bust"],
        natural=natural,
    )


def dealer_outcome_distribution(upcard: int, rules: GameRules) -> DealerOutcomeDistribution:
    """Return the dealer's terminal-state distribution for an upcard.

    Args:
        upcard: Upcard numeric value, 2–11 (11 = Ace).
        rules:  Table rules; only ``dealer_hits_soft17`` affects the result.

    Returns:
        An immutable DealerOutcomeDistribution whose masses sum to 1.0.

    Raises:
        ValueError: If upcard is outside 2–11.

    Examples:
        >>> d = dealer_outcome_distribution(6, GameRules())
        >>> round(d.bust, 4)
        0.4232
    """
    _check_upcard(upcard)
    return _cached_distribution(upcard, rules.dealer_hits_soft17)


# ─── Player EV ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EVResult:
    """Expected value of one action, in units of the original bet."""

    action: Action
    ev: float


ACTION_ORDER: tuple[Action, ...] = (
    Action.STAND, Action.HIT, Action.DOUBLE, Action.SURRENDER, Action.SPLIT,
)
"""Computation order, which is also the tie-break order when sorting."""


def stand_ev(total: int, dealer: DealerOutcomeDistribution) -> float:
    """EV of standing on ``total`` against a dealer distribution.

    A bust total returns -1. A dealer natural counts as a loss (it only
    carries mass when the distribution was not conditioned on a peek).

    Examples:
        >>> stand_ev(22, dealer_outcome_distribution(6, GameRules()))
        -1.0
    """
    if total > 21:
        return -1.0
    ev = dealer.bust - dealer.natural
    for dealer_total, prob in dealer.final_dist().items():
        if total > dealer_total:
            ev += prob
        elif total < dealer_total:
            ev -= prob
    return ev


class _PlayerSolver:
    """Per-call player recursion against one fixed dealer distribution.

    The memo is keyed on ``(total, soft)`` only; the dealer distribution is
    fixed for the lifetime of the instance.
    """

    def __init__(self, dealer: DealerOutcomeDistribution) -> None:
        self.dealer = dealer
        self._stand: dict[int, float] = {}
        self._max: dict[tuple[int, bool], float] = {}

    def stand(self, total: int) -> float:
        if total not in self._stand:
            self._stand[total] = stand_ev(total, self.dealer)
        return self._stand[total]

    def hit(self, total: int, soft: bool) -> float:
        ev = 0.0
        for value, prob in CARD_PROBS.items():
            new_total, new_soft = add_card_value(total, soft, value)
            ev += prob * self.max_ev(new_total, new_soft)
        return ev

    def max_ev(self, total: int, soft: bool) -> float:
        """Best EV from this state playing hit/stand optimally onward."""
        if total > 21:
            return -1.0
        key = (total, soft)
        if key not in self._max:
            # 21 cannot be improved.
            if total == 21:
                self._max[key] = self.stand(total)
            else:
                self._max[key] = max(self.stand(total), self.hit(total, soft))
        return self._max[key]

    def double(self, total: int, soft: bool) -> float:
        ev = 0.0
        for value, prob in CARD_PROBS.items():
            new_total, _ = add_card_value(total, soft, value)
            ev += prob * self.stand(new_total)
        return 2.0 * ev

    def split(self, pair_value: int, rules: GameRules) -> float:
        start_total, start_soft = add_card_value(0, False, pair_value)
        one_card_only = pair_value == ACE_VALUE and not rules.double_after_split
        ev = 0.0
        for value, prob in CARD_PROBS.items():
            total, soft = add_card_value(start_total, start_soft, value)
            ev += prob * (self.stand(total) if one_card_only else self.max_ev(total, soft))
        return 2.0 * ev


def max_ev(total: int, is_soft: bool, dealer: DealerOutcomeDistribution) -> float:
    """Optimal hit/stand EV from a player state (fresh memo per call)."""
    return _PlayerSolver(dealer).max_ev(total, is_soft)


def _check_upcard(upcard: int) -> None:
    if upcard not in UPCARD_VALUES:
        raise ValueError(f"Dealer upcard value must be 2–11, got {upcard!r}")


def _check_player_state(total: int, is_soft: bool, is_pair: bool, pair_rank: int | None) -> None:
    if is_pair != (pair_rank is not None):
        raise ValueError(
            f"is_pair={is_pair} requires pair_rank to be "
            f"{'given' if is_pair else 'None'}, got {pair_rank!r}"
        )
    if not 4 <= total <= 21:
        raise ValueError(f"Player total must be 4–21, got {total}")
    if is_soft and total < 12:
        raise ValueError(f"Soft total must be at least 12, got {total}")
    if is_pair:
        if pair_rank not in PAIR_CHART_VALUES:
            raise ValueError(f"pair_rank must be a card value 2–11, got {pair_rank!r}")
        expected = add_card_value(*add_card_value(0, False, pair_rank), pair_rank)
        if expected != (total, is_soft):
            raise ValueError(
                f"Pair of {pair_rank} is {expected}, inconsistent with "
                f"total={total}, is_soft={is_soft}"
            )


def all_action_evs(
    total: int,
    is_soft: bool,
    is_pair: bool,
    pair_rank: int | None,
    dealer_upcard_value: int,
    rules: GameRules,
) -> list[EVResult]:
    """Compute the EV of every available first action.

    Surrender is included only when the rules offer it; Split only for a
    pair. Results are sorted by EV descending; ties keep computation order
    (Stand, Hit, Double, Surrender, Split).

    Args:
        total:               Player hand total (4–21).
        is_soft:             True if an Ace is counted as 11.
        is_pair:             True for an untouched two-card pair.
        pair_rank:           Value of the paired card (2–11), or None.
        dealer_upcard_value: Dealer upcard value (2–11, 11 = Ace).
        rules:               Table rules.

    Returns:
        List of EVResult, best first.

    Raises:
        ValueError: If ``is_pair`` and ``pair_rank`` disagree, or the state
            or upcard is out of range.

    Examples:
        >>> evs = all_action_evs(11, False, False, None, 6, GameRules())
        >>> evs[0].action
        <Action.DOUBLE: 'DOUBLE'>
    """
    _check_player_state(total, is_soft, is_pair, pair_rank)
    _check_upcard(dealer_upcard_value)

    dealer = dealer_outcome_distribution(dealer_upcard_value, rules).without_natural()
    solver = _PlayerSolver(dealer)

    results = [
        EVResult(Action.STAND, solver.stand(total)),
        EVResult(Action.HIT, solver.hit(total, is_soft)),
        EVResult(Action.DOUBLE, solver.double(total, is_soft)),
    ]
    if rules.surrender_allowed:
        results.append(EVResult(Action.SURRENDER, -0.5))
    if is_pair:
        results.append(EVResult(Action.SPLIT, solver.split(pair_rank, rules)))

    # sorted() is stable, so equal EVs keep computation order.
    return sorted(results, key=lambda r: r.ev, reverse=True)


def optimal_action(
    total: int,
    is_soft: bool,
    is_pair: bool,
    pair_rank: int | None,
    dealer_upcard_value: int,
    rules: GameRules,
) -> tuple[Action, float]:
    """Return ``(action, ev)`` for the EV-maximising first action."""
    best = all_action_evs(total, is_soft, is_pair, pair_rank, dealer_upcard_value, rules)[0]
    return (best.action, best.ev)


# ─── Strategy chart ───────────────────────────────────────────────────────────


def build_ev_strategy_chart(
    rules: GameRules,
) -> dict[str, dict[tuple[int, int], tuple[Action, float]]]:
    """EV-argmax action for every chart cell.

    Returns:
        ``{'hard': {...}, 'soft': {...}, 'pairs': {...}}`` where each inner
        dict maps ``(player_total_or_pair_value, upcard)`` to ``(action, ev)``.
        Hard totals 5–20, soft totals 13–20, pairs 2–11 (11 = Aces).
    """
    chart: dict[str, dict[tuple[int, int], tuple[Action, float]]] = {
        "hard": {},
        "soft": {},
        "pairs": {},
    }
    for upcard in UPCARD_VALUES:
        for total in HARD_CHART_TOTALS:
            chart["hard"][(total, upcard)] = optimal_action(total, False, False, None, upcard, rules)
        for total in SOFT_CHART_TOTALS:
            chart["soft"][(total, upcard)] = optimal_action(total, True, False, None, upcard, rules)
        for value in PAIR_CHART_VALUES:
            total, soft = add_card_value(*add_card_value(0, False, value), value)
            chart["pairs"][(value, upcard)] = optimal_action(total, soft, True, value, upcard, rules)
    return chart


_ACTION_CODES: dict[Action, str] = {
    Action.STAND: "S",
    Action.HIT: "H",
    Action.DOUBLE: "D",
    Action.SURRENDER: "R",
    Action.SPLIT: "P",
}


def _upcard_label(upcard: int) -> str:
    return "A" if upcard == ACE_VALUE else str(upcard)


def print_strategy_chart(
    chart: dict[str, dict[tuple[int, int], tuple[Action, float]]],
    rules: GameRules,
    title: str = "EV-optimal strategy",
) -> None:
    """Print a strategy chart as three letter grids (S/H/D/R/P)."""
    header = "      " + " ".join(f"{_upcard_label(u):>3}" for u in UPCARD_VALUES)
    print(f"\n{title} — {rules.deck_count} decks, {rules.dealer_key}, "
          f"DAS {'on' if rules.double_after_split else 'off'}, "
          f"surrender {rules.surrender_policy.value}")

    sections = (
        ("Hard", "hard", HARD_CHART_TOTALS, str),
        ("Soft", "soft", SOFT_CHART_TOTALS, lambda t: f"A,{t - 11}"),
        ("Pairs", "pairs", PAIR_CHART_VALUES, lambda v: f"{_upcard_label(v)},{_upcard_label(v)}"),
    )
    for title, key, rows, label in sections:
        print(f"\n{title}")
        print(header)
        for row in rows:
            codes = " ".join(f"{_ACTION_CODES[chart[key][(row, u)][0]]:>3}" for u in UPCARD_VALUES)
            print(f"{label(row):>5} {codes}")


if __name__ == "__main__":
    _rules = GameRules()
    print("Dealer outcome distributions (S17):")
    print(f"{'Up':>3} {'17':>7} {'18':>7} {'19':>7} {'20':>7} {'21':>7} {'bust':>7} {'BJ':>7}")
    for _up in UPCARD_VALUES:
        _d = dealer_outcome_distribution(_up, _rules)
        print(
            f"{_upcard_label(_up):>3} {_d.p17:7.4f} {_d.p18:7.4f} {_d.p19:7.4f} "
            f"{_d.p20:7.4f} {_d.p21:7.4f} {_d.bust:7.4f} {_d.natural:7.4f}"
        )
    print_strategy_chart(build_ev_strategy_chart(_rules), _rules)
