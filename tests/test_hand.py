"""Tests for blackjack_trainer/engine/hand.py — totals, softness and categories."""

from __future__ import annotations

import pytest

from blackjack_trainer.engine.hand import (
    Hand,
    HandCategory,
    add_card_value,
    hand_category,
    hand_total,
    is_bust,
    is_natural,
    is_pair,
    is_soft,
    is_two_card_21,
)
from tests.conftest import hand


class TestHandTotal:
    def test_simple(self):
        assert hand_total(hand('10C', '9H')) == 19

    def test_face_cards(self):
        assert hand_total(hand('KC', 'QH')) == 20

    def test_ace_as_eleven(self):
        assert hand_total(hand('AS', '7H')) == 18

    def test_ace_drops_to_one(self):
        assert hand_total(hand('AS', '7H', '9D')) == 17

    def test_two_aces(self):
        assert hand_total(hand('AS', 'AH')) == 12

    def test_multiple_aces_reach_21(self):
        assert hand_total(hand('AS', 'AH', '9D')) == 21

    def test_four_aces(self):
        assert hand_total(hand('AS', 'AH', 'AD', 'AC')) == 14

    def test_bust_total_reported(self):
        assert hand_total(hand('KH', 'QD', '5C')) == 25

    def test_hidden_card_ignored(self):
        cards = hand('10S', '9H')
        cards[1].hidden = True
        assert hand_total(cards) == 10

    def test_empty(self):
        assert hand_total([]) == 0


class TestIsSoft:
    def test_soft_hand(self):
        assert is_soft(hand('AS', '6H'))

    def test_hard_after_reduction(self):
        assert not is_soft(hand('AS', '6H', '9D'))

    def test_pair_of_aces_is_soft_12(self):
        assert is_soft(hand('AS', 'AH'))

    def test_no_ace(self):
        assert not is_soft(hand('10S', '7H'))

    def test_soft_21(self):
        assert is_soft(hand('AS', '5H', '5D'))


class TestCategories:
    def test_pair_same_rank(self):
        assert is_pair(hand('8S', '8H'))
        assert hand_category(hand('8S', '8H')) is HandCategory.PAIR

    def test_mixed_tens_not_pair(self):
        assert not is_pair(hand('KS', 'QH'))
        assert hand_category(hand('KS', 'QH')) is HandCategory.HARD

    def test_aces_pair_beats_soft(self):
        assert hand_category(hand('AS', 'AH')) is HandCategory.PAIR

    def test_soft(self):
        assert hand_category(hand('AS', '7H')) is HandCategory.SOFT

    def test_three_card_pair_is_not_pair(self):
        assert not is_pair(hand('4S', '4H', '4D'))

    def test_is_bust(self):
        assert is_bust(22)
        assert not is_bust(21)


class TestNatural:
    def test_ace_ten(self):
        assert is_natural(hand('AS', 'KH'))
        assert is_two_card_21(hand('10S', 'AH'))

    def test_three_card_21_not_natural(self):
        assert not is_natural(hand('7S', '7H', '7D'))

    def test_split_21_not_natural(self):
        assert not is_natural(hand('AS', 'KH'), from_split=True)
        assert not Hand(cards=hand('AS', 'KH'), from_split=True).is_natural

    def test_hand_property(self):
        assert Hand(cards=hand('AS', 'KH')).is_natural


class TestAddCardValue:
    def test_two_aces(self):
        assert add_card_value(11, True, 11) == (12, True)

    def test_soft_becomes_hard(self):
        assert add_card_value(16, True, 10) == (16, False)

    def test_hard_bust(self):
        assert add_card_value(20, False, 5) == (25, False)

    def test_ace_on_hard(self):
        assert add_card_value(9, False, 11) == (20, True)

    def test_ace_on_hard_high(self):
        assert add_card_value(15, False, 11) == (16, False)

    @pytest.mark.parametrize("cards", [('AS', '6H', '9D'), ('AS', 'AH', '9D'), ('5S', 'AH', 'AD', '4C')])
    def test_agrees_with_hand_total(self, cards):
        state = (0, False)
        for card in hand(*cards):
            state = add_card_value(*state, card.value)
        cs = hand(*cards)
        assert state == (hand_total(cs), is_soft(cs))


class TestHandRecord:
    def test_untouched(self):
        h = Hand(cards=hand('9S', '2H'))
        assert h.untouched
        h.completed = True
        assert not h.untouched

    def test_to_dict(self):
        d = Hand(cards=hand('9S', '2H'), bet=10).to_dict()
        assert d["total"] == 11
        assert d["bet"] == 10
        assert d["cards"][0] == {"rank": "9", "suit": "♠", "hidden": False}
