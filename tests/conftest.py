"""
Shared pytest fixtures for blackjack trainer tests.

Provides convenience wrappers around str_to_card for building known hands
and shoes whose next cards are fixed.
"""

from __future__ import annotations

import pytest

from blackjack_trainer.engine.cards import Card, str_to_card
from blackjack_trainer.engine.deck import Shoe
from blackjack_trainer.engine.rules import GameRules, SurrenderPolicy


def hand(*card_strs: str) -> list[Card]:
    """Build a card list from human-readable card strings.

    Examples:
        >>> [str(c) for c in hand('AS', '10H')]
        ['A♠', '10♥']
    """
    return [str_to_card(s) for s in card_strs]


def stacked_shoe(*card_strs: str, deck_count: int = 6, seed: int = 0) -> Shoe:
    """Return a shuffled shoe whose next cards are ``card_strs`` in order.

    The table deals player, dealer, player, dealer(hole) and then draws in
    action order, so a scenario is written out in that sequence.
    """
    shoe = Shoe(deck_count, seed)
    shoe.stack(hand(*card_strs))
    return shoe


@pytest.fixture
def rules() -> GameRules:
    """Default table: 6 decks, S17, DAS, late surrender, 3:2."""
    return GameRules()


@pytest.fixture
def h17_rules() -> GameRules:
    return GameRules(dealer_hits_soft17=True)


@pytest.fixture
def no_surrender_rules() -> GameRules:
    return GameRules(surrender_policy=SurrenderPolicy.NONE)


@pytest.fixture
def h():
    """Expose the hand() helper as a fixture for convenience."""
    return hand
