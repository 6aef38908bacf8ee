"""
Shoe construction, shuffling, and dealing with counting bookkeeping.

A shoe is a Python list of Card objects; the next card dealt is the LAST
element (``list.pop()``). ``build_shoe`` returns a deterministic ordering;
``shuffle`` is the only source of randomness in the engines and takes an
injectable ``numpy.random.Generator`` so tests and simulations are
reproducible.

The ``Shoe`` object also owns the counting state for its lifetime: the
running count of every revealed card and the number of cards dealt. Both
reset to 0 whenever the shoe is rebuilt and reshuffled.
"""

from __future__ import annotations

import logging

import numpy as np

from blackjack_trainer.engine.cards import RANK_NAMES, SUIT_NAMES, Card
from blackjack_trainer.engine.counting import card_count_value

LOGGER = logging.getLogger(__name__)


def build_shoe(deck_count: int) -> list[Card]:
    """Return ``deck_count`` × 52 cards in a fixed suit-major order.

    Raises:
        ValueError: If deck_count < 1.

    Examples:
        >>> len(build_shoe(6))
        312
    """
    if deck_count < 1:
        raise ValueError(f"deck_count must be >= 1, got {deck_count}")
    return [
        Card(rank=rank, suit=suit)
        for _ in range(deck_count)
        for suit in SUIT_NAMES
        for rank in RANK_NAMES
    ]


def make_rng(seed: int | np.random.Generator | None = None) -> np.random.Generator:
    """Return a Generator, passing an existing one through untouched."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def shuffle(cards: list[Card], rng: np.random.Generator | None = None) -> list[Card]:
    """Return a uniformly random permutation of ``cards`` (input untouched).

    Uses ``Generator.permutation``, which draws every ordering with equal
    probability.

    Args:
        cards: Cards to shuffle.
        rng:   Generator to draw from; a fresh unseeded one when None.
    """
    rng = make_rng(rng)
    order = rng.permutation(len(cards))
    return [cards[i] for i in order]


class Shoe:
    """A multi-deck shoe that tracks cards dealt and the Hi-Lo running count.

    Cards drawn face-up are counted immediately; a card drawn hidden is
    counted when :meth:`reveal` flips it.
    """

    def __init__(
        self,
        deck_count: int = 6,
        rng: int | np.random.Generator | None = None,
    ) -> None:
        self.deck_count = deck_count
        self.rng = make_rng(rng)
        self.cards: list[Card] = []
        self.cards_dealt = 0
        self.running_count = 0
        self.shuffles = 0
        self.reshuffle()

    def reshuffle(self) -> None:
        """Build a fresh shoe, shuffle it, and reset the counting state."""
        self.cards = shuffle(build_shoe(self.deck_count), self.rng)
        self.cards_dealt = 0
        self.running_count = 0
        self.shuffles += 1
        LOGGER.debug("Shoe reshuffled (%d decks, shuffle #%d)", self.deck_count, self.shuffles)

    def remaining(self) -> int:
        return len(self.cards)

    def ensure_minimum(self, min_cards: int) -> bool:
        """Reshuffle when fewer than ``min_cards`` remain. Returns True if it did."""
        if len(self.cards) < min_cards:
            self.reshuffle()
            return True
        return False

    def draw(self, hidden: bool = False) -> Card:
        """Deal the next card, face-down when ``hidden``.

        Raises:
            ValueError: If the shoe is empty.
        """
        if not self.cards:
            raise ValueError("Cannot deal from an empty shoe.")
        card = self.cards.pop()
        card.hidden = hidden
        self.cards_dealt += 1
        if not hidden:
            self.running_count += card_count_value(card)
        return card

    def draw_or_reshuffle(self, hidden: bool = False) -> Card:
        """Deal the next card, rebuilding the shoe first if it has run dry."""
        if not self.cards:
            LOGGER.info("Shoe ran out mid-round, reshuffled a fresh %d-deck shoe", self.deck_count)
            self.reshuffle()
        return self.draw(hidden)

    def reveal(self, card: Card) -> None:
        """Turn a hidden card face-up and add it to the running count."""
        if card.hidden:
            card.hidden = False
            self.running_count += card_count_value(card)

    def stack(self, cards: list[Card]) -> None:
        """Place known cards on top so they are dealt in the given order.

        Used for deterministic scenario setups and tests.
        """
        self.cards.extend(reversed(cards))
