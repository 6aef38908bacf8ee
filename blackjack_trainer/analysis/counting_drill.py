"""
Hi-Lo counting drill.

Each drill round auto-plays a full blackjack round for ``num_players`` seats
from a shared shoe using the basic-strategy rule table, reveals every card,
and then scores the user's count entries against the correct values:

    decks_remaining  decks left after the round (half-deck granularity)
    rc_before        running count before the round
    delta_rc         Hi-Lo sum of every card shown this round
    rc_after         rc_before + delta_rc
    true_count       rc_after / decks_remaining, rounded half away from zero

Only fields in ``FieldMode.INPUT`` are scored; ``COMPUTED`` fields are shown
to the user as given. The shoe is rebuilt below 52 cards, which resets the
running count and the cards-dealt counter to 0.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from blackjack_trainer.engine.cards import Card
from blackjack_trainer.engine.counting import decks_remaining, delta_running_count, true_count
from blackjack_trainer.engine.deck import Shoe
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import Hand
from blackjack_trainer.engine.rules import GameRules, dealer_must_draw
from blackjack_trainer.solvers.basic_strategy import recommend_action

LOGGER = logging.getLogger(__name__)

COUNTING_RESHUFFLE_THRESHOLD: int = 52
MAX_ENTRY_TIMES: int = 10

FIELDS: tuple[str, ...] = ("decks_remaining", "rc_before", "delta_rc", "rc_after", "true_count")


class FieldMode(Enum):
    INPUT = "input"
    COMPUTED = "computed"


DEFAULT_FIELD_MODES: dict[str, FieldMode] = {
    "decks_remaining": FieldMode.COMPUTED,
    "rc_before": FieldMode.COMPUTED,
    "delta_rc": FieldMode.INPUT,
    "rc_after": FieldMode.COMPUTED,
    "true_count": FieldMode.INPUT,
}

_ERROR_TYPES: dict[str, str] = {
    "delta_rc": "delta-sum",
    "rc_before": "rc-update",
    "rc_after": "rc-update",
    "true_count": "tc-conversion",
    "decks_remaining": "mapping",
}


# ─── Records ──────────────────────────────────────────────────────────────────


@dataclass
class CountingRound:
    """Cards shown in one drill round and the correct count values."""

    round_number: int
    dealer_cards: list[Card]
    player_hands: list[list[Hand]]
    correct: dict[str, float]
    reshuffled: bool = False

    @property
    def all_cards(self) -> list[Card]:
        cards = list(self.dealer_cards)
        for seat in self.player_hands:
            for hand in seat:
                cards.extend(hand.cards)
        return cards


@dataclass
class CountingError:
    field: str
    user_value: float | None
    correct_value: float
    error_type: str


@dataclass
class CountingFeedback:
    is_correct: bool
    errors: list[CountingError]
    correct: dict[str, float]
    entry_time: float | None = None


@dataclass
class CountingStats:
    """Accumulated drill performance."""

    total_rounds: int = 0
    correct_rounds: int = 0
    current_streak: int = 0
    best_streak: int = 0
    entry_times: deque = field(default_factory=lambda: deque(maxlen=MAX_ENTRY_TIMES))

    def record(self, is_correct: bool, entry_time: float | None = None) -> None:
        self.total_rounds += 1
        if is_correct:
            self.correct_rounds += 1
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
        else:
            self.current_streak = 0
        if entry_time is not None:
            self.entry_times.append(entry_time)

    @property
    def accuracy(self) -> float | None:
        if self.total_rounds == 0:
            return None
        return self.correct_rounds / self.total_rounds

    @property
    def average_entry_time(self) -> float | None:
        """Mean of the last ``MAX_ENTRY_TIMES`` entry times, in seconds."""
        if not self.entry_times:
            return None
        return sum(self.entry_times) / len(self.entry_times)

    def to_dict(self) -> dict:
        return {
            "total_rounds": self.total_rounds,
            "correct_rounds": self.correct_rounds,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "entry_times": list(self.entry_times),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CountingStats:
        return cls(
            total_rounds=data.get("total_rounds", 0),
            correct_rounds=data.get("correct_rounds", 0),
            current_streak=data.get("current_streak", 0),
            best_streak=data.get("best_streak", 0),
            entry_times=deque(data.get("entry_times", []), maxlen=MAX_ENTRY_TIMES),
        )


# ─── Drill ────────────────────────────────────────────────────────────────────


class CountingDrill:
    """A counting practice session over one continuing shoe.

    Args:
        rules:        Table rules (deck count, dealer rule, DAS, surrender).
        num_players:  Seats auto-played each round.
        field_modes:  Which fields the user enters; defaults to delta_rc and
                      true_count.
        rng:          Seed or Generator for the shoe.
        shoe:         Pre-built shoe (for deterministic drills).
    """

    def __init__(
        self,
        rules: GameRules,
        num_players: int = 1,
        field_modes: dict[str, FieldMode] | None = None,
        rng: int | np.random.Generator | None = None,
        shoe: Shoe | None = None,
    ) -> None:
        if num_players < 1:
            raise ValueError(f"num_players must be >= 1, got {num_players}")
        modes = dict(DEFAULT_FIELD_MODES)
        if field_modes:
            unknown = set(field_modes) - set(FIELDS)
            if unknown:
                raise ValueError(f"Unknown counting fields: {sorted(unknown)}")
            modes.update(field_modes)
        self.rules = rules
        self.num_players = num_players
        self.field_modes = modes
        self.shoe = shoe if shoe is not None else Shoe(rules.deck_count, rng)
        self.stats = CountingStats()
        self.round_number = 0
        self.current_round: CountingRound | None = None

    @property
    def input_fields(self) -> list[str]:
        return [f for f in FIELDS if self.field_modes[f] is FieldMode.INPUT]

    def play_round(self) -> CountingRound:
        """Deal and auto-play one round, returning the cards and the answers."""
        reshuffled = self.shoe.ensure_minimum(COUNTING_RESHUFFLE_THRESHOLD)
        if reshuffled:
            LOGGER.info("Counting shoe reshuffled; running count reset")
        rc_before = self.shoe.running_count

        seats: list[list[Hand]] = [[Hand()] for _ in range(self.num_players)]
        dealer = Hand()
        for i in range(2):
            for seat in seats:
                seat[0].cards.append(self.shoe.draw())
            dealer.cards.append(self.shoe.draw(hidden=i == 1))

        upcard = dealer.cards[0]
        for seat in seats:
            self._play_seat(seat, upcard)

        for card in dealer.cards:
            self.shoe.reveal(card)
        while dealer_must_draw(dealer.cards, self.rules):
            dealer.cards.append(self.shoe.draw())

        self.round_number += 1
        round_ = CountingRound(
            round_number=self.round_number,
            dealer_cards=dealer.cards,
            player_hands=seats,
            correct={},
            reshuffled=reshuffled,
        )
        delta = delta_running_count(round_.all_cards)
        decks = decks_remaining(self.rules.deck_count, self.shoe.cards_dealt)
        round_.correct = {
            "decks_remaining": decks,
            "rc_before": rc_before,
            "delta_rc": delta,
            "rc_after": rc_before + delta,
            "true_count": true_count(rc_before + delta, decks),
        }
        self.current_round = round_
        return round_

    def _play_seat(self, seat: list[Hand], upcard: Card) -> None:
        i = 0
        while i < len(seat):
            hand = seat[i]
            if len(hand.cards) == 1:
                hand.cards.append(self.shoe.draw())
            while not hand.completed and hand.total < 21 and not hand.is_natural:
                action = recommend_action(hand, upcard, self.rules)
                if action is Action.HIT:
                    hand.cards.append(self.shoe.draw())
                elif action is Action.DOUBLE:
                    hand.cards.append(self.shoe.draw())
                    hand.doubled = True
                    hand.completed = True
                elif action is Action.SPLIT:
                    second = Hand(cards=[hand.cards.pop()], from_split=True)
                    hand.from_split = True
                    hand.cards.append(self.shoe.draw())
                    seat.insert(i + 1, second)
                else:
                    hand.surrendered = action is Action.SURRENDER
                    hand.completed = True
            hand.completed = True
            hand.busted = hand.total > 21
            i += 1

    def submit(self, inputs: dict[str, float], entry_time: float | None = None) -> CountingFeedback:
        """Score the user's entries for the current round and record stats.

        Raises:
            RuntimeError: If no round has been played yet.
        """
        if self.current_round is None:
            raise RuntimeError("No counting round to score; call play_round() first.")
        correct = self.current_round.correct
        errors = []
        for name in self.input_fields:
            user_value = inputs.get(name)
            if user_value is None or user_value != correct[name]:
                errors.append(CountingError(name, user_value, correct[name], _ERROR_TYPES[name]))
        feedback = CountingFeedback(
            is_correct=not errors,
            errors=errors,
            correct=dict(correct),
            entry_time=entry_time,
        )
        self.stats.record(feedback.is_correct, entry_time)
        return feedback
