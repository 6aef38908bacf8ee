"""Tests for blackjack_trainer/engine/cards.py — card values and string I/O."""

from __future__ import annotations

import pytest

from blackjack_trainer.engine.cards import (
    CARD_VALUES,
    RANK_NAMES,
    RANK_VALUES,
    SUIT_NAMES,
    TEN_VALUE_RANKS,
    Card,
    card_to_str,
    card_value,
    hand_to_str,
    str_to_card,
)


class TestCardValues:
    def test_thirteen_ranks(self):
        assert len(RANK_NAMES) == 13

    def test_four_suits(self):
        assert len(SUIT_NAMES) == 4

    @pytest.mark.parametrize("rank,value", [('2', 2), ('9', 9), ('10', 10), ('J', 10), ('Q', 10), ('K', 10)])
    def test_numeric_and_face_values(self, rank, value):
        assert card_value(rank) == value

    def test_ace_is_nominal_eleven(self):
        assert Card('A', '♠').value == 11
        assert Card('A', '♠').is_ace

    def test_ten_value_ranks(self):
        assert {r for r, v in RANK_VALUES.items() if v == 10} == TEN_VALUE_RANKS

    def test_card_values_cover_every_rank(self):
        assert set(CARD_VALUES) == set(RANK_VALUES.values())

    def test_unknown_rank_rejected(self):
        with pytest.raises(ValueError):
            Card('1', '♠')

    def test_unknown_suit_rejected(self):
        with pytest.raises(ValueError):
            Card('A', 'X')


class TestStrToCard:
    def test_letter_suit(self):
        card = str_to_card('AS')
        assert card.rank == 'A'
        assert card.suit == '♠'

    def test_symbol_suit(self):
        assert str_to_card('K♦').suit == '♦'

    def test_ten(self):
        assert str_to_card('10H').rank == '10'

    def test_t_alias_for_ten(self):
        assert str_to_card('TC').rank == '10'

    def test_lower_case(self):
        card = str_to_card('qh')
        assert (card.rank, card.suit) == ('Q', '♥')

    def test_hidden_flag(self):
        assert str_to_card('7D', hidden=True).hidden

    @pytest.mark.parametrize("bad", ['', 'A', '11S', 'AX', 'ZZ'])
    def test_unparsable(self, bad):
        with pytest.raises(ValueError):
            str_to_card(bad)


class TestCardToStr:
    def test_round_trip_display(self):
        assert card_to_str(str_to_card('10H')) == '10♥'
        assert str(str_to_card('AS')) == 'A♠'

    def test_hand_to_str_hides_hole_card(self):
        cards = [str_to_card('AS'), str_to_card('KH', hidden=True)]
        assert hand_to_str(cards) == 'A♠ ??'

    def test_hand_to_str_empty(self):
        assert hand_to_str([]) == ''
