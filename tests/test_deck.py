"""Tests for blackjack_trainer/engine/deck.py — shoe building, shuffling, dealing."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest

from blackjack_trainer.engine.deck import Shoe, build_shoe, make_rng, shuffle
from tests.conftest import hand, stacked_shoe


class TestBuildShoe:
    def test_single_deck(self):
        assert len(build_shoe(1)) == 52

    def test_six_decks(self):
        assert len(build_shoe(6)) == 312

    def test_composition(self):
        counts = Counter(c.rank for c in build_shoe(2))
        assert all(n == 8 for n in counts.values())
        assert len(counts) == 13

    def test_zero_decks_rejected(self):
        with pytest.raises(ValueError):
            build_shoe(0)

    def test_deterministic_order(self):
        assert [str(c) for c in build_shoe(1)] == [str(c) for c in build_shoe(1)]


class TestShuffle:
    def test_permutation(self):
        cards = build_shoe(1)
        out = shuffle(cards, make_rng(1))
        assert sorted(map(str, out)) == sorted(map(str, cards))

    def test_input_untouched(self):
        cards = build_shoe(1)
        before = [str(c) for c in cards]
        shuffle(cards, make_rng(1))
        assert [str(c) for c in cards] == before

    def test_seeded_reproducible(self):
        a = shuffle(build_shoe(1), make_rng(7))
        b = shuffle(build_shoe(1), make_rng(7))
        assert list(map(str, a)) == list(map(str, b))

    def test_make_rng_passes_generator_through(self):
        rng = np.random.default_rng(3)
        assert make_rng(rng) is rng


class TestShoe:
    def test_fresh_shoe(self):
        shoe = Shoe(6, 0)
        assert shoe.remaining() == 312
        assert shoe.cards_dealt == 0
        assert shoe.running_count == 0
        assert shoe.shuffles == 1

    def test_draw_counts_face_up(self):
        shoe = stacked_shoe('5S', 'KH')
        shoe.draw()
        assert shoe.running_count == 1
        shoe.draw()
        assert shoe.running_count == 0
        assert shoe.cards_dealt == 2

    def test_hidden_card_counted_on_reveal(self):
        shoe = stacked_shoe('5S')
        card = shoe.draw(hidden=True)
        assert shoe.running_count == 0
        assert shoe.cards_dealt == 1
        shoe.reveal(card)
        assert shoe.running_count == 1
        assert not card.hidden

    def test_reveal_twice_counts_once(self):
        shoe = stacked_shoe('5S')
        card = shoe.draw(hidden=True)
        shoe.reveal(card)
        shoe.reveal(card)
        assert shoe.running_count == 1

    def test_stack_order(self):
        shoe = stacked_shoe('AS', '2H', '3D')
        assert [str(shoe.draw()) for _ in range(3)] == ['A♠', '2♥', '3♦']

    def test_empty_shoe_raises(self):
        shoe = Shoe(1, 0)
        shoe.cards = []
        with pytest.raises(ValueError):
            shoe.draw()

    def test_ensure_minimum_resets_counting_state(self):
        shoe = Shoe(1, 0)
        for _ in range(40):
            shoe.draw()
        assert shoe.ensure_minimum(15)
        assert shoe.remaining() == 52
        assert shoe.cards_dealt == 0
        assert shoe.running_count == 0
        assert shoe.shuffles == 2

    def test_ensure_minimum_boundary(self):
        shoe = Shoe(1, 0)
        for _ in range(37):
            shoe.draw()
        assert shoe.remaining() == 15
        assert not shoe.ensure_minimum(15)
        shoe.draw()
        assert shoe.ensure_minimum(15)

    def test_stack_keeps_card_objects(self):
        cards = hand('AS')
        shoe = Shoe(1, 0)
        shoe.stack(cards)
        assert shoe.draw() is cards[0]

    def test_draw_or_reshuffle_refills_empty_shoe(self):
        shoe = Shoe(1, 0)
        shoe.cards = []
        card = shoe.draw_or_reshuffle(hidden=True)
        assert card.hidden
        assert shoe.shuffles == 2
        assert shoe.remaining() == 51
        assert shoe.cards_dealt == 1

    def test_draw_or_reshuffle_keeps_nonempty_shoe(self):
        shoe = stacked_shoe('AS', deck_count=1)
        assert str(shoe.draw_or_reshuffle()) == 'A♠'
        assert shoe.shuffles == 1
