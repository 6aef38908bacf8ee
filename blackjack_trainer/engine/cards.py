"""
Card constants, the Card value object, and human-readable I/O helpers.

A card carries its rank and suit plus a ``hidden`` flag used for the dealer's
hole card. Rank determines everything the engines care about:

    rank  2..9  -> value 2..9
    rank  10, J, Q, K -> value 10
    rank  A     -> value 11 (nominal; reduced to 1 by hand arithmetic)

String representations (``'AS'``, ``'10H'``, ``'K♦'``) are used only at I/O
boundaries and in tests.
"""

from __future__ import annotations

from dataclasses import dataclass

RANK_NAMES: list[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
SUIT_NAMES: list[str] = ['♥', '♦', '♣', '♠']

# Letter aliases accepted by str_to_card, mapped to the canonical symbols.
SUIT_LETTERS: dict[str, str] = {'H': '♥', 'D': '♦', 'C': '♣', 'S': '♠'}

RANK_VALUES: dict[str, int] = {
    '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9,
    '10': 10, 'J': 10, 'Q': 10, 'K': 10, 'A': 11,
}

RANK_ACE: str = 'A'
TEN_VALUE_RANKS: frozenset[str] = frozenset({'10', 'J', 'Q', 'K'})

# Distinct point values a drawn card can take, Ace last (nominal 11).
CARD_VALUES: tuple[int, ...] = (2, 3, 4, 5, 6, 7, 8, 9, 10, 11)
ACE_VALUE: int = 11


@dataclass
class Card:
    """A single playing card.

    Rank and suit never change once the card is dealt; ``hidden`` is flipped
    when the dealer's hole card is revealed.
    """
    rank: str
    suit: str
    hidden: bool = False

    def __post_init__(self) -> None:
        if self.rank not in RANK_VALUES:
            raise ValueError(f"Unknown rank {self.rank!r}")
        if self.suit not in SUIT_NAMES:
            raise ValueError(f"Unknown suit {self.suit!r}")

    @property
    def value(self) -> int:
        """Nominal point value: 2-10, 10 for J/Q/K, 11 for an Ace."""
        return RANK_VALUES[self.rank]

    @property
    def is_ace(self) -> bool:
        return self.rank == RANK_ACE

    def __str__(self) -> str:
        return card_to_str(self)


def card_value(rank: str) -> int:
    """Return the nominal point value of a rank.

    Examples:
        >>> card_value('7')
        7
        >>> card_value('Q')
        10
        >>> card_value('A')
        11
    """
    return RANK_VALUES[rank]


def card_to_str(card: Card) -> str:
    """Convert a card to its display string, e.g. ``'A♠'`` or ``'10♥'``."""
    return card.rank + card.suit


def str_to_card(s: str, hidden: bool = False) -> Card:
    """Parse a human-readable card string.

    The format is <rank><suit> where the suit is the last character. Rank is
    '2'-'10', 'J', 'Q', 'K' or 'A' ('T' is accepted for ten). The suit may be
    a symbol or one of the letters H, D, C, S.

    Examples:
        >>> str_to_card('AS')
        Card(rank='A', suit='♠', hidden=False)
        >>> str_to_card('10h').value
        10

    Raises:
        ValueError: If the rank or suit cannot be parsed.
    """
    if len(s) < 2:
        raise ValueError(f"Cannot parse card {s!r}")
    suit_char = s[-1]
    rank_str = s[:-1].upper()
    if rank_str == 'T':
        rank_str = '10'
    suit = SUIT_LETTERS.get(suit_char.upper(), suit_char)
    if rank_str not in RANK_VALUES or suit not in SUIT_NAMES:
        raise ValueError(f"Cannot parse card {s!r}")
    return Card(rank=rank_str, suit=suit, hidden=hidden)


def hand_to_str(cards: list[Card]) -> str:
    """Render a sequence of cards, showing hidden cards as ``'??'``.

    Examples:
        >>> hand_to_str([str_to_card('AS'), str_to_card('KH', hidden=True)])
        'A♠ ??'
    """
    return ' '.join('??' if c.hidden else card_to_str(c) for c in cards)
