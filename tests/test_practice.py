"""Tests for blackjack_trainer/analysis/practice.py — decision grading and practice stats."""

from __future__ import annotations

import datetime as dt

import pytest

from blackjack_trainer.analysis.practice import (
    PracticeStats,
    grade_decision,
    random_scenario,
)
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import hand_category, is_two_card_21
from blackjack_trainer.engine.rules import GameRules
from tests.conftest import hand

RULES = GameRules()
DAY = dt.date(2024, 3, 1)


# ─── grade_decision ───────────────────────────────────────────────────────────


class TestGradeDecision:
    def test_wrong_answer(self):
        r = grade_decision(hand('10H', '6S'), 10, RULES, Action.HIT)
        assert not r.correct
        assert r.recommended is Action.SURRENDER
        assert r.chosen is Action.HIT
        assert r.key == 'H16-10'
        assert r.category == 'hard'
        assert r.explanation

    def test_right_answer(self):
        r = grade_decision(hand('8H', '8S'), 6, RULES, Action.SPLIT)
        assert r.correct
        assert r.category == 'pairs'
        assert r.key == '8,8-6'

    def test_soft_category(self):
        r = grade_decision(hand('AS', '7D'), 9, RULES, Action.HIT)
        assert r.correct
        assert r.category == 'soft'


# ─── random_scenario ──────────────────────────────────────────────────────────


class TestRandomScenario:
    def test_shape(self):
        player, upcard = random_scenario(rng=0)
        assert len(player) == 2
        assert not is_two_card_21(player)
        assert 2 <= upcard.value <= 11

    def test_reproducible(self):
        a = random_scenario(rng=5)
        b = random_scenario(rng=5)
        assert [str(c) for c in a[0]] == [str(c) for c in b[0]]
        assert str(a[1]) == str(b[1])

    @pytest.mark.parametrize("category", ["hard", "soft", "pairs"])
    def test_forced_category(self, category):
        for seed in range(5):
            player, _ = random_scenario(rng=seed, category=category)
            assert {"HARD": "hard", "SOFT": "soft", "PAIR": "pairs"}[hand_category(player).value] == category

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            random_scenario(category="blackjack")

    def test_gives_up(self):
        with pytest.raises(RuntimeError):
            random_scenario(rng=0, category="pairs", max_attempts=0)


# ─── PracticeStats ────────────────────────────────────────────────────────────


def _graded(stats: PracticeStats, cards, upcard, chosen, day=DAY):
    stats.record(grade_decision(hand(*cards), upcard, RULES, chosen), day=day)


class TestPracticeStats:
    def test_record_cells(self):
        stats = PracticeStats()
        _graded(stats, ('10H', '6S'), 10, Action.SURRENDER)
        _graded(stats, ('10H', '6S'), 10, Action.HIT)
        cell = stats.hard['H16-10']
        assert (cell.correct, cell.total) == (1, 2)
        assert cell.accuracy == 0.5
        assert stats.soft == {}

    def test_category_accuracy(self):
        stats = PracticeStats()
        assert stats.category_accuracy("pairs") is None
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT)
        _graded(stats, ('9H', '9S'), 7, Action.SPLIT)
        assert stats.category_accuracy("pairs") == 0.5

    def test_streak(self):
        stats = PracticeStats()
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT)
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT)
        assert stats.streak == 2
        _graded(stats, ('8H', '8S'), 6, Action.HIT)
        assert stats.streak == 0

    def test_activity_by_day(self):
        stats = PracticeStats()
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT)
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT, day=dt.date(2024, 3, 2))
        _graded(stats, ('8H', '8S'), 6, Action.SPLIT, day=dt.date(2024, 3, 2))
        assert stats.activity == {"2024-03-01": 1, "2024-03-02": 2}

    def test_weakest_cells(self):
        stats = PracticeStats()
        for _ in range(3):
            _graded(stats, ('10H', '6S'), 10, Action.HIT)
            _graded(stats, ('AS', '7D'), 9, Action.HIT)
        _graded(stats, ('8H', '8S'), 6, Action.HIT)
        weakest = stats.weakest_cells(n=5, min_attempts=3)
        assert weakest == [('H16-10', 0.0), ('S18-9', 1.0)]

    def test_dict_round_trip(self):
        stats = PracticeStats()
        _graded(stats, ('10H', '6S'), 10, Action.SURRENDER)
        _graded(stats, ('AS', '7D'), 9, Action.STAND)
        restored = PracticeStats.from_dict(stats.to_dict())
        assert restored.to_dict() == stats.to_dict()
        assert restored.soft['S18-9'].total == 1
