"""
Strategy practice grading and per-cell accuracy statistics.

``grade_decision`` compares a user's chosen action with the rule table's
recommendation for a two-card scenario. ``PracticeStats`` accumulates the
results per chart cell (keyed by ``strategy_key``), split by hand category,
together with a correct-answer streak and a per-day activity counter.

``random_scenario`` deals a practice hand from a fresh shoe; the category can
be forced to drill only hard, soft or pair hands.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field

import numpy as np

from blackjack_trainer.engine.cards import Card
from blackjack_trainer.engine.deck import build_shoe, make_rng, shuffle
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import HandCategory, hand_category, is_two_card_21
from blackjack_trainer.engine.rules import GameRules
from blackjack_trainer.solvers.basic_strategy import explain_action, recommend_action, strategy_key

CATEGORY_KEYS: dict[HandCategory, str] = {
    HandCategory.HARD: "hard",
    HandCategory.SOFT: "soft",
    HandCategory.PAIR: "pairs",
}


@dataclass
class PracticeResult:
    """Outcome of one graded decision."""

    correct: bool
    chosen: Action
    recommended: Action
    key: str
    category: str
    explanation: str


def grade_decision(
    cards: list[Card],
    dealer_upcard: Card | int,
    rules: GameRules,
    chosen: Action,
) -> PracticeResult:
    """Grade ``chosen`` against the basic-strategy recommendation.

    Examples:
        >>> r = grade_decision(hand('10H', '6S'), 10, GameRules(), Action.HIT)
        >>> r.correct, r.recommended
        (False, <Action.SURRENDER: 'SURRENDER'>)
    """
    recommended = recommend_action(cards, dealer_upcard, rules)
    return PracticeResult(
        correct=chosen is recommended,
        chosen=chosen,
        recommended=recommended,
        key=strategy_key(cards, dealer_upcard),
        category=CATEGORY_KEYS[hand_category(cards)],
        explanation=explain_action(cards, dealer_upcard, rules, recommended),
    )


def random_scenario(
    rng: int | np.random.Generator | None = None,
    category: str | None = None,
    max_attempts: int = 1000,
) -> tuple[list[Card], Card]:
    """Deal a two-card practice hand and a dealer upcard.

    Naturals are skipped (there is no decision to make).

    Args:
        rng:          Seed or Generator.
        category:     Restrict to ``'hard'``, ``'soft'`` or ``'pairs'``.
        max_attempts: Re-deal limit when a category is forced.

    Raises:
        ValueError: If ``category`` is unknown.
        RuntimeError: If no matching hand was dealt within ``max_attempts``.
    """
    if category is not None and category not in CATEGORY_KEYS.values():
        raise ValueError(f"Unknown practice category {category!r}")
    rng = make_rng(rng)
    for _ in range(max_attempts):
        cards = shuffle(build_shoe(1), rng)[:3]
        player, upcard = cards[:2], cards[2]
        if is_two_card_21(player):
            continue
        if category is None or CATEGORY_KEYS[hand_category(player)] == category:
            return player, upcard
    raise RuntimeError(f"No {category} hand dealt in {max_attempts} attempts")


@dataclass
class CellStats:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float | None:
        return self.correct / self.total if self.total else None


@dataclass
class PracticeStats:
    """Per-cell practice accuracy, streak and daily activity.

    Attributes:
        hard / soft / pairs: ``{strategy_key: CellStats}``.
        activity:            ``{ISO date: decisions graded that day}``.
        streak:              Consecutive correct answers.
    """

    hard: dict[str, CellStats] = field(default_factory=dict)
    soft: dict[str, CellStats] = field(default_factory=dict)
    pairs: dict[str, CellStats] = field(default_factory=dict)
    activity: dict[str, int] = field(default_factory=dict)
    streak: int = 0

    def record(self, result: PracticeResult, day: dt.date | None = None) -> None:
        cells: dict[str, CellStats] = getattr(self, result.category)
        cell = cells.setdefault(result.key, CellStats())
        cell.total += 1
        if result.correct:
            cell.correct += 1
        self.streak = self.streak + 1 if result.correct else 0
        day_key = (day or dt.date.today()).isoformat()
        self.activity[day_key] = self.activity.get(day_key, 0) + 1

    def category_accuracy(self, category: str) -> float | None:
        cells: dict[str, CellStats] = getattr(self, category)
        total = sum(c.total for c in cells.values())
        return sum(c.correct for c in cells.values()) / total if total else None

    def weakest_cells(self, n: int = 5, min_attempts: int = 3) -> list[tuple[str, float]]:
        """Lowest-accuracy cells with at least ``min_attempts`` attempts."""
        scored = [
            (key, cell.accuracy)
            for cells in (self.hard, self.soft, self.pairs)
            for key, cell in cells.items()
            if cell.total >= min_attempts
        ]
        return sorted(scored, key=lambda kv: kv[1])[:n]

    def to_dict(self) -> dict:
        def cells(d: dict[str, CellStats]) -> dict:
            return {k: {"correct": c.correct, "total": c.total} for k, c in d.items()}

        return {
            "hard": cells(self.hard),
            "soft": cells(self.soft),
            "pairs": cells(self.pairs),
            "activity": dict(self.activity),
            "streak": self.streak,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PracticeStats:
        def cells(d: dict) -> dict[str, CellStats]:
            return {k: CellStats(v.get("correct", 0), v.get("total", 0)) for k, v in d.items()}

        return cls(
            hard=cells(data.get("hard", {})),
            soft=cells(data.get("soft", {})),
            pairs=cells(data.get("pairs", {})),
            activity=dict(data.get("activity", {})),
            streak=data.get("streak", 0),
        )
