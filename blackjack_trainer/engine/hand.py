"""
Hand evaluation: totals, softness, categories, and the player Hand record.

Total rule: sum card values with every Ace at 11, then reduce by 10 per Ace
while the total exceeds 21 and an unreduced Ace remains. A hand is soft when
at least one Ace is still counted as 11 after that reduction.

Hidden cards (the dealer's hole card before reveal) are skipped by every
function here, so totals describe what the player can see. Resolution code
reveals the hole card before asking for a total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from blackjack_trainer.engine.cards import ACE_VALUE, Card


class HandCategory(Enum):
    HARD = "HARD"
    SOFT = "SOFT"
    PAIR = "PAIR"


def _visible(cards: list[Card]) -> list[Card]:
    return [c for c in cards if not c.hidden]


def _total_and_soft(cards: list[Card]) -> tuple[int, bool]:
    total = 0
    aces_as_eleven = 0
    for card in _visible(cards):
        total += card.value
        if card.is_ace:
            aces_as_eleven += 1
    while total > 21 and aces_as_eleven > 0:
        total -= 10
        aces_as_eleven -= 1
    return total, aces_as_eleven > 0


def hand_total(cards: list[Card]) -> int:
    """Return the best total of the visible cards (may exceed 21 when bust).

    Examples:
        >>> hand_total(hand('AS', '7H'))
        18
        >>> hand_total(hand('AS', 'AH', '9D'))
        21
        >>> hand_total(hand('KH', 'QD', '5C'))
        25
    """
    return _total_and_soft(cards)[0]


def is_soft(cards: list[Card]) -> bool:
    """Return True if an Ace is still counted as 11.

    Examples:
        >>> is_soft(hand('AS', '6H'))
        True
        >>> is_soft(hand('AS', '6H', '9D'))   # 16, the ace had to drop to 1
        False
    """
    return _total_and_soft(cards)[1]


def is_bust(total: int) -> bool:
    return total > 21


def is_pair(cards: list[Card]) -> bool:
    """True iff exactly two cards of equal rank (K-Q is not a pair)."""
    return len(cards) == 2 and cards[0].rank == cards[1].rank


def hand_category(cards: list[Card]) -> HandCategory:
    """Classify a hand as PAIR, SOFT or HARD, in that priority order."""
    if is_pair(cards):
        return HandCategory.PAIR
    if is_soft(cards):
        return HandCategory.SOFT
    return HandCategory.HARD


def is_two_card_21(cards: list[Card]) -> bool:
    return len(cards) == 2 and hand_total(cards) == 21


def is_natural(cards: list[Card], from_split: bool = False) -> bool:
    """Blackjack: a two-card 21 on the initial deal, never on a split hand."""
    return not from_split and is_two_card_21(cards)


def add_card_value(total: int, soft: bool, value: int) -> tuple[int, bool]:
    """Apply one drawn card value to an abstract ``(total, soft)`` state.

    Mirrors :func:`hand_total` for solvers that track only the total and
    softness: a new Ace enters as 11 and any Ace still at 11 drops to 1 when
    the total would otherwise bust. An Ace can reduce the total once.

    Examples:
        >>> add_card_value(11, True, 11)   # A + A -> soft 12
        (12, True)
        >>> add_card_value(16, True, 10)   # soft 16 + 10 -> hard 16
        (16, False)
        >>> add_card_value(20, False, 5)
        (25, False)
    """
    aces_as_eleven = int(soft) + int(value == ACE_VALUE)
    total += value
    while total > 21 and aces_as_eleven > 0:
        total -= 10
        aces_as_eleven -= 1
    return total, aces_as_eleven > 0


# ─── Hand record ──────────────────────────────────────────────────────────────

@dataclass
class Hand:
    """A player or dealer hand in a simulated round.

    Invariants maintained by the state machine: ``busted`` implies
    ``completed``; ``surrendered`` implies ``completed``.
    """
    cards: list[Card] = field(default_factory=list)
    bet: float = 0.0
    completed: bool = False
    busted: bool = False
    doubled: bool = False
    surrendered: bool = False
    from_split: bool = False

    @property
    def total(self) -> int:
        return hand_total(self.cards)

    @property
    def soft(self) -> bool:
        return is_soft(self.cards)

    @property
    def is_natural(self) -> bool:
        """Two-card 21 on the initial deal. A split hand never qualifies."""
        return is_natural(self.cards, self.from_split)

    @property
    def untouched(self) -> bool:
        """Two cards and no decision taken on it yet."""
        return len(self.cards) == 2 and not self.completed

    def to_dict(self) -> dict:
        return {
            "cards": [
                {"rank": c.rank, "suit": c.suit, "hidden": c.hidden} for c in self.cards
            ],
            "bet": self.bet,
            "completed": self.completed,
            "busted": self.busted,
            "doubled": self.doubled,
            "surrendered": self.surrendered,
            "from_split": self.from_split,
            "total": self.total,
        }
