"""
Hi-Lo counting primitives.

    2-6        -> +1
    7, 8, 9    ->  0
    10-K, A    -> -1

The running count covers every card revealed since the last reshuffle. The
true count normalises it by the estimated decks remaining, which is rounded
to the nearest half deck the way a player eyeballs the discard tray.

Rounding policy: both half-deck estimation and the true count round half
away from zero (2.5 -> 3, -2.5 -> -3).
"""

from __future__ import annotations

import math

from blackjack_trainer.engine.cards import Card

CARDS_PER_DECK: int = 52

HI_LO_VALUES: dict[str, int] = {
    '2': 1, '3': 1, '4': 1, '5': 1, '6': 1,
    '7': 0, '8': 0, '9': 0,
    '10': -1, 'J': -1, 'Q': -1, 'K': -1, 'A': -1,
}


def round_half_away_from_zero(x: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Examples:
        >>> round_half_away_from_zero(2.5)
        3
        >>> round_half_away_from_zero(-2.5)
        -3
        >>> round_half_away_from_zero(1.49)
        1
    """
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def card_count_value(card: Card) -> int:
    """Return the Hi-Lo tag of a card."""
    return HI_LO_VALUES[card.rank]


def delta_running_count(cards: list[Card]) -> int:
    """Sum of Hi-Lo tags over a batch of newly revealed cards."""
    return sum(card_count_value(c) for c in cards)


def decks_remaining(total_decks: int, cards_dealt: int) -> float:
    """Estimate decks left in the shoe, rounded to the nearest half deck.

    Never negative: dealing past the nominal shoe size clamps to 0.

    Examples:
        >>> decks_remaining(6, 0)
        6.0
        >>> decks_remaining(6, 78)     # 4.5 decks left exactly
        4.5
        >>> decks_remaining(1, 60)
        0.0
    """
    cards_left = total_decks * CARDS_PER_DECK - cards_dealt
    if cards_left <= 0:
        return 0.0
    return round_half_away_from_zero(cards_left / CARDS_PER_DECK * 2) / 2


def true_count(running_count: int, decks_left: float) -> int:
    """Running count per deck remaining, rounded half away from zero.

    Returns 0 when no decks remain instead of dividing by zero.

    Examples:
        >>> true_count(5, 2.0)
        3
        >>> true_count(-5, 2.0)
        -3
        >>> true_count(7, 0)
        0
    """
    if decks_left <= 0:
        return 0
    return round_half_away_from_zero(running_count / decks_left)
