"""
Basic-strategy rule table.

The table is an ordered list of ``StrategyRule`` entries, each a predicate
over a ``Situation`` paired with the action it recommends. Evaluation runs
top to bottom and the first rule that matches AND whose action is allowed
wins; a rule whose action is not allowed is skipped, so a blocked Double or
Split falls through to the next applicable rule (a three-card soft 18 vs 4
stands; an 8,8 that may not be split plays as hard 16).

Sections, in priority order:
    1. Surrender   (untouched hard 15/16)
    2. Pairs       (untouched two-card pair; 5s fall through to hard 10)
    3. Soft totals
    4. Hard totals

Dealer upcards are numeric values 2–11 (11 = Ace).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from blackjack_trainer.engine.cards import ACE_VALUE, RANK_ACE, Card
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import Hand, HandCategory, hand_category, hand_total, is_soft
from blackjack_trainer.engine.rules import GameRules

# ─── Situation ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Situation:
    """Everything a rule may look at."""

    total: int
    category: HandCategory
    soft: bool
    pair_rank: str | None
    pair_value: int | None
    two_cards: bool
    dealer: int
    rules: GameRules

    @property
    def hard(self) -> bool:
        return self.category is HandCategory.HARD


def _upcard_value(upcard: Card | int) -> int:
    value = upcard.value if isinstance(upcard, Card) else int(upcard)
    if not 2 <= value <= ACE_VALUE:
        raise ValueError(f"Dealer upcard value must be 2–11, got {value}")
    return value


def _cards_of(hand: Hand | list[Card]) -> list[Card]:
    return hand.cards if isinstance(hand, Hand) else list(hand)


def build_situation(hand: Hand | list[Card], dealer_upcard: Card | int, rules: GameRules) -> Situation:
    cards = _cards_of(hand)
    category = hand_category(cards)
    pair = category is HandCategory.PAIR
    return Situation(
        total=hand_total(cards),
        category=category,
        soft=is_soft(cards),
        pair_rank=cards[0].rank if pair else None,
        pair_value=cards[0].value if pair else None,
        two_cards=len(cards) == 2,
        dealer=_upcard_value(dealer_upcard),
        rules=rules,
    )


def default_allowed(hand: Hand | list[Card], rules: GameRules) -> frozenset[Action]:
    """Actions the table would permit on this hand as the first decision.

    Mirrors ``BlackjackTable.legal_actions`` without the bankroll check:
    Double needs an untouched two-card hand (and DAS on a split hand); Split
    and Surrender need an untouched hand that did not come from a split.
    """
    cards = _cards_of(hand)
    from_split = isinstance(hand, Hand) and hand.from_split
    untouched = len(cards) == 2 and not (isinstance(hand, Hand) and hand.completed)

    allowed = {Action.HIT, Action.STAND}
    if untouched and (not from_split or rules.double_after_split):
        allowed.add(Action.DOUBLE)
    if untouched and not from_split and cards[0].rank == cards[1].rank:
        allowed.add(Action.SPLIT)
    if untouched and not from_split and rules.surrender_allowed:
        allowed.add(Action.SURRENDER)
    return frozenset(allowed)


# ─── Rule table ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StrategyRule:
    name: str
    applies: Callable[[Situation], bool]
    action: Action


def _between(lo: int, hi: int) -> Callable[[int], bool]:
    return lambda d: lo <= d <= hi


def _pair(rank_test: Callable[[Situation], bool]) -> Callable[[Situation], bool]:
    return lambda s: s.two_cards and s.pair_rank is not None and rank_test(s)


def _soft(totals: Iterable[int], dealer: Callable[[int], bool] = lambda d: True):
    totals = frozenset(totals)
    return lambda s: s.soft and s.total in totals and dealer(s.dealer)


def _hard(totals: Iterable[int], dealer: Callable[[int], bool] = lambda d: True):
    totals = frozenset(totals)
    return lambda s: not s.soft and s.total in totals and dealer(s.dealer)


STRATEGY_RULES: tuple[StrategyRule, ...] = (
    # 1. Surrender
    StrategyRule(
        "Surrender hard 16 vs 9, 10, A",
        lambda s: s.two_cards and s.hard and s.total == 16 and s.dealer in (9, 10, 11),
        Action.SURRENDER,
    ),
    StrategyRule(
        "Surrender hard 15 vs 10",
        lambda s: s.two_cards and s.hard and s.total == 15 and s.dealer == 10,
        Action.SURRENDER,
    ),
    # 2. Pairs
    StrategyRule("Split Aces", _pair(lambda s: s.pair_rank == RANK_ACE), Action.SPLIT),
    StrategyRule("Split 8s", _pair(lambda s: s.pair_rank == "8"), Action.SPLIT),
    StrategyRule("Never split tens", _pair(lambda s: s.pair_value == 10), Action.STAND),
    StrategyRule(
        "Split 9s vs 2-6, 8, 9",
        _pair(lambda s: s.pair_rank == "9" and s.dealer not in (7, 10, 11)),
        Action.SPLIT,
    ),
    StrategyRule("Stand 9s vs 7, 10, A", _pair(lambda s: s.pair_rank == "9"), Action.STAND),
    StrategyRule("Split 7s vs 2-7", _pair(lambda s: s.pair_rank == "7" and s.dealer <= 7), Action.SPLIT),
    StrategyRule(
        "Split 6s vs 2-6 (3-6 without DAS)",
        _pair(lambda s: s.pair_rank == "6" and (
            s.dealer <= 6 if s.rules.double_after_split else 3 <= s.dealer <= 6
        )),
        Action.SPLIT,
    ),
    StrategyRule(
        "Split 4s vs 5, 6 with DAS",
        _pair(lambda s: s.pair_rank == "4" and s.rules.double_after_split and s.dealer in (5, 6)),
        Action.SPLIT,
    ),
    StrategyRule(
        "Split 2s/3s vs 2-7 (4-7 without DAS)",
        _pair(lambda s: s.pair_rank in ("2", "3") and (
            s.dealer <= 7 if s.rules.double_after_split else 4 <= s.dealer <= 7
        )),
        Action.SPLIT,
    ),
    # 3. Soft totals
    StrategyRule("Stand soft 20+", _soft(range(20, 22)), Action.STAND),
    StrategyRule(
        "Double soft 19 vs 6 (H17)",
        lambda s: _soft([19], lambda d: d == 6)(s) and s.rules.dealer_hits_soft17,
        Action.DOUBLE,
    ),
    StrategyRule("Stand soft 19", _soft([19]), Action.STAND),
    StrategyRule("Double soft 18 vs 2-6", _soft([18], _between(2, 6)), Action.DOUBLE),
    StrategyRule("Hit soft 18 vs 9, 10, A", _soft([18], lambda d: d >= 9), Action.HIT),
    StrategyRule("Stand soft 18", _soft([18]), Action.STAND),
    StrategyRule("Double soft 17 vs 3-6", _soft([17], _between(3, 6)), Action.DOUBLE),
    StrategyRule("Double soft 15/16 vs 4-6", _soft([15, 16], _between(4, 6)), Action.DOUBLE),
    StrategyRule("Double soft 13/14 vs 5, 6", _soft([13, 14], _between(5, 6)), Action.DOUBLE),
    StrategyRule("Hit soft 12-17", _soft(range(12, 18)), Action.HIT),
    # 4. Hard totals
    StrategyRule("Stand hard 17+", _hard(range(17, 22)), Action.STAND),
    StrategyRule("Stand hard 13-16 vs 2-6", _hard(range(13, 17), _between(2, 6)), Action.STAND),
    StrategyRule("Hit hard 13-16 vs 7+", _hard(range(13, 17)), Action.HIT),
    StrategyRule("Stand hard 12 vs 4-6", _hard([12], _between(4, 6)), Action.STAND),
    StrategyRule("Hit hard 12", _hard([12]), Action.HIT),
    StrategyRule("Double hard 11", _hard([11]), Action.DOUBLE),
    StrategyRule("Double hard 10 vs 2-9", _hard([10], _between(2, 9)), Action.DOUBLE),
    StrategyRule("Double hard 9 vs 3-6", _hard([9], _between(3, 6)), Action.DOUBLE),
    StrategyRule("Hit hard 11 or less", _hard(range(2, 12)), Action.HIT),
)


def matching_rule(
    hand: Hand | list[Card],
    dealer_upcard: Card | int,
    rules: GameRules,
    allowed: Iterable[Action] | None = None,
) -> StrategyRule | None:
    """Return the first rule that matches and whose action is allowed."""
    situation = build_situation(hand, dealer_upcard, rules)
    allowed = frozenset(allowed) if allowed is not None else default_allowed(hand, rules)
    if not rules.surrender_allowed:
        allowed = allowed - {Action.SURRENDER}
    for rule in STRATEGY_RULES:
        if rule.action in allowed and rule.applies(situation):
            return rule
    return None


def recommend_action(
    hand: Hand | list[Card],
    dealer_upcard: Card | int,
    rules: GameRules,
    allowed: Iterable[Action] | None = None,
) -> Action:
    """Recommend the basic-strategy action for a hand.

    Args:
        hand:          A ``Hand`` or a plain list of cards.
        dealer_upcard: The dealer's upcard, or its value (2–11).
        rules:         Table rules.
        allowed:       Actions the caller may take; derived from the hand
                       when None.

    Returns:
        The recommended Action. Falls back to Hit (Stand if Hit is not
        allowed) when no rule applies.

    Examples:
        >>> recommend_action(hand('10H', '6S'), 10, GameRules())
        <Action.SURRENDER: 'SURRENDER'>
        >>> recommend_action(hand('AS', '7D'), 9, GameRules())
        <Action.HIT: 'HIT'>
    """
    rule = matching_rule(hand, dealer_upcard, rules, allowed)
    if rule is not None:
        return rule.action
    if allowed is not None and Action.HIT not in frozenset(allowed):
        return Action.STAND
    return Action.HIT


def chart_hand(category: str, row: int) -> list[Card]:
    """Two-card hand for a strategy-chart cell.

    Args:
        category: ``'hard'`` (row = total 5–20), ``'soft'`` (row = total
                  13–21) or ``'pairs'`` (row = card value 2–11).

    Examples:
        >>> [str(c) for c in chart_hand('hard', 20)]
        ['10♥', 'K♠']
        >>> [str(c) for c in chart_hand('soft', 17)]
        ['A♥', '6♠']
    """
    def rank(value: int) -> str:
        return RANK_ACE if value == ACE_VALUE else str(value)

    if category == "hard":
        if not 5 <= row <= 20:
            raise ValueError(f"Hard chart rows are 5–20, got {row}")
        high = min(10, row - 2)
        low = row - high
        ranks = ("10", "K") if high == low else (str(high), str(low))
    elif category == "soft":
        if not 13 <= row <= 21:
            raise ValueError(f"Soft chart rows are 13–21, got {row}")
        ranks = (RANK_ACE, rank(row - 11))
    elif category == "pairs":
        if not 2 <= row <= ACE_VALUE:
            raise ValueError(f"Pair chart rows are 2–11, got {row}")
        ranks = (rank(row), rank(row))
    else:
        raise ValueError(f"Unknown chart category {category!r}")
    return [Card(ranks[0], "♥"), Card(ranks[1], "♠")]


# ─── Metadata ─────────────────────────────────────────────────────────────────


def strategy_key(hand: Hand | list[Card], dealer_upcard: Card | int) -> str:
    """Chart cell identifier used for practice statistics.

    Examples:
        >>> strategy_key(hand('10H', '6S'), 10)
        'H16-10'
        >>> strategy_key(hand('AS', '7D'), 9)
        'S18-9'
        >>> strategy_key(hand('8S', '8D'), 6)
        '8,8-6'
    """
    cards = _cards_of(hand)
    dealer = _upcard_value(dealer_upcard)
    category = hand_category(cards)
    if category is HandCategory.PAIR:
        return f"{cards[0].rank},{cards[0].rank}-{dealer}"
    prefix = "S" if category is HandCategory.SOFT else "H"
    return f"{prefix}{hand_total(cards)}-{dealer}"


def explain_action(
    hand: Hand | list[Card],
    dealer_upcard: Card | int,
    rules: GameRules,
    action: Action,
) -> str:
    """One-sentence rationale for ``action`` in this situation."""
    s = build_situation(hand, dealer_upcard, rules)
    up = "A" if s.dealer == ACE_VALUE else str(s.dealer)

    if action is Action.SURRENDER:
        return (f"{s.total} against a dealer {up} loses more than half a bet on average; "
                "surrendering gives back 50% of the wager.")

    if action is Action.SPLIT:
        if s.pair_rank == RANK_ACE:
            return "Always split Aces: one soft 12 becomes two hands starting from 11."
        if s.pair_rank == "8":
            return "Always split 8s: 16 is the worst total, two hands starting at 8 are far better."
        if s.pair_rank == "9":
            return "Split 9s against weaker upcards; stand against 7, 10 or an Ace."
        return f"Splitting attacks the dealer's weak {up} with two hands instead of one."

    if action is Action.DOUBLE:
        if s.soft:
            return f"Double: the Ace protects you from busting and the dealer shows a weak {up}."
        if s.total == 11:
            return "Always double 11: a ten-value card makes 21."
        if s.total == 10:
            return "Double 10 against anything below a ten; you are the favourite."
        return f"Double: the dealer {up} is a bust card, get more money on the table."

    if action is Action.STAND:
        if s.pair_value == 10:
            return "Never split tens: 20 already wins most of the time."
        if s.soft:
            return "Soft total is already strong; another card does not help."
        if s.total >= 17:
            return "Always stand on hard 17 or more; the bust risk is too high."
        if s.total >= 12:
            return f"Stand: the dealer's {up} busts often, so don't risk busting first."
        return "Stand to keep the hand."

    if action is Action.HIT:
        if s.soft:
            return "Hit: a soft hand cannot bust on one card and this total rarely wins."
        if s.total == 12 and s.dealer in (2, 3):
            return "Hit 12 against a 2 or 3; the dealer does not bust often enough to stand."
        if s.total >= 12:
            return f"Hit: the dealer's {up} is strong, you have to improve to compete."
        return "Always hit here: no card can bust the hand."

    return "Follow basic strategy to keep the house edge low."


if __name__ == "__main__":
    from blackjack_trainer.engine.cards import str_to_card

    _rules = GameRules()
    for _strs, _up in ((("10H", "6S"), 10), (("AS", "7D"), 9), (("8S", "8D"), 10), (("5C", "6D"), 11)):
        _cards = [str_to_card(c) for c in _strs]
        _action = recommend_action(_cards, _up, _rules)
        print(f"{strategy_key(_cards, _up):>8}  {_action.value:<9}  {explain_action(_cards, _up, _rules, _action)}")
