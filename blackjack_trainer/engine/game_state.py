"""
Round/shoe state machine for the bankroll simulation.

Implements the full round flow:
    SETUP → BETTING → DEALING → (INSURANCE) → PLAYER_TURN → DEALER_TURN →
    RESOLVING → BETTING ...

Every transition runs synchronously to completion inside the call that
triggers it; pacing between steps (pauses before revealing the hole card,
before clearing the table) belongs to the caller, which decides when to call
the next method. The table never sleeps or schedules anything.

Rejections are not exceptions: ``place_bet``, ``act``, ``decide_insurance``
and friends return False and leave the table untouched when a request is
illegal. ``legal_actions()`` exposes what the active hand may do.

Key round rules modelled here:
    - The bet leaves the bankroll when placed, before the outcome is known.
    - The second dealer card is dealt face-down; an Ace upcard offers
      insurance / even money, followed by a peek for dealer blackjack.
    - One split per round (no re-split); no surrender after a split;
      doubling a split hand requires double-after-split.
    - When every hand busted or surrendered the hole card is shown but the
      dealer does not draw.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from blackjack_trainer.engine.cards import hand_to_str
from blackjack_trainer.engine.deck import Shoe
from blackjack_trainer.engine.hand import Hand, hand_total
from blackjack_trainer.engine.rules import GameRules, Outcome, dealer_must_draw, settle_hand, settle_insurance

LOGGER = logging.getLogger(__name__)

DEAL_RESHUFFLE_THRESHOLD: int = 15
"""Reshuffle before dealing when fewer cards remain (room for a split round)."""

DEFAULT_ALL_IN_THRESHOLD: float = 100.0


# ─── Enumerations ─────────────────────────────────────────────────────────────

class Phase(Enum):
    SETUP = "SETUP"
    BETTING = "BETTING"
    DEALING = "DEALING"
    INSURANCE = "INSURANCE"
    PLAYER_TURN = "PLAYER_TURN"
    DEALER_TURN = "DEALER_TURN"
    RESOLVING = "RESOLVING"


class Action(Enum):
    HIT = "HIT"
    STAND = "STAND"
    DOUBLE = "DOUBLE"
    SPLIT = "SPLIT"
    SURRENDER = "SURRENDER"


class InsuranceChoice(Enum):
    INSURE = "insure"
    EVEN_MONEY = "even"
    DECLINE = "decline"


# ─── Round records ────────────────────────────────────────────────────────────

@dataclass
class RoundFlags:
    """Round-scoped achievement flags for downstream statistics."""
    blackjack: bool = False
    all_in: bool = False
    split: bool = False
    das: bool = False


@dataclass
class HandResult:
    outcome: Outcome
    bet: float
    returned: float
    total: int


@dataclass
class RoundResult:
    """Money summary of a resolved round.

    Attributes:
        payout:       Total returned to the bankroll (stakes included).
        delta:        Bankroll change over the whole round (after − before bet).
        bankroll:     Bankroll after settlement.
        drawdown:     Fractional drop from the session peak, in [0, 1].
        hands:        Per-hand results in table order.
        insurance:    Amount returned by the insurance side bet.
        achievements: Labels of round flags that fired.
    """
    payout: float
    delta: float
    bankroll: float
    drawdown: float
    hands: list[HandResult]
    insurance: float = 0.0
    achievements: list[str] = field(default_factory=list)


@dataclass
class TableSnapshot:
    """Plain observable state handed back to callers after each transition."""
    phase: Phase
    bankroll: float
    initial_bankroll: float | None
    peak_bankroll: float | None
    player_hands: list[Hand]
    active_hand_index: int
    dealer_hand: Hand
    insurance_bet: float
    even_money_taken: bool
    round_result: RoundResult | None
    cards_remaining: int
    running_count: int
    cards_dealt: int

    def to_dict(self) -> dict:
        """Serialise to JSON-friendly plain data for an external store."""
        result = None
        if self.round_result is not None:
            r = self.round_result
            result = {
                "payout": r.payout,
                "delta": r.delta,
                "bankroll": r.bankroll,
                "drawdown": r.drawdown,
                "insurance": r.insurance,
                "achievements": list(r.achievements),
                "hands": [
                    {"outcome": h.outcome.name, "bet": h.bet, "returned": h.returned, "total": h.total}
                    for h in r.hands
                ],
            }
        return {
            "phase": self.phase.value,
            "bankroll": self.bankroll,
            "initial_bankroll": self.initial_bankroll,
            "peak_bankroll": self.peak_bankroll,
            "player_hands": [h.to_dict() for h in self.player_hands],
            "active_hand_index": self.active_hand_index,
            "dealer_hand": self.dealer_hand.to_dict(),
            "insurance_bet": self.insurance_bet,
            "even_money_taken": self.even_money_taken,
            "round_result": result,
            "cards_remaining": self.cards_remaining,
            "running_count": self.running_count,
            "cards_dealt": self.cards_dealt,
        }


def _money(x: float) -> float:
    return round(x, 2)


# ─── State machine ────────────────────────────────────────────────────────────

class BlackjackTable:
    """One player's seat at a simulated table, from entry to leaving.

    Args:
        rules:            Table rules; fixed for the life of the table.
        bankroll:         Starting bankroll.
        all_in_threshold: Minimum pre-bet bankroll for a max bet to count as
                          an "all-in" achievement.
        rng:              Seed or Generator for the shoe's shuffles.
        shoe:             Pre-built shoe (for deterministic setups).
    """

    def __init__(
        self,
        rules: GameRules,
        bankroll: float = 100.0,
        all_in_threshold: float = DEFAULT_ALL_IN_THRESHOLD,
        rng: int | np.random.Generator | None = None,
        shoe: Shoe | None = None,
    ) -> None:
        self.rules = rules
        self.bankroll = float(bankroll)
        self.all_in_threshold = all_in_threshold
        self.shoe = shoe if shoe is not None else Shoe(rules.deck_count, rng)

        self.phase = Phase.SETUP
        self.initial_bankroll: float | None = None
        self.peak_bankroll: float | None = None
        self.rounds_played = 0
        self.session_achievements: set[str] = set()
        self._clear_round()
        self.round_result: RoundResult | None = None

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def start_game(self) -> bool:
        """SETUP → BETTING. Records the session's starting bankroll."""
        if self.phase is not Phase.SETUP:
            return False
        self.initial_bankroll = self.bankroll
        self.peak_bankroll = self.bankroll
        self.rounds_played = 0
        self.session_achievements = set()
        self.round_result = None
        self._set_phase(Phase.BETTING)
        return True

    def next_round(self) -> bool:
        """RESOLVING → BETTING, clearing per-round hand and insurance state."""
        if self.phase is not Phase.RESOLVING:
            return False
        self._clear_round()
        self._set_phase(Phase.BETTING)
        return True

    def leave_table(self) -> None:
        """Return to SETUP from any phase, dropping the round in progress."""
        self._clear_round()
        self.round_result = None
        self._set_phase(Phase.SETUP)

    # ── Betting and dealing ──────────────────────────────────────────────────

    def place_bet(self, amount: float) -> bool:
        """BETTING → DEALING → (INSURANCE | PLAYER_TURN | RESOLVING).

        Also accepted straight from RESOLVING, which clears the finished
        round first. A bet below the table minimum or above the bankroll is
        rejected with no state change.
        """
        if self.phase is Phase.RESOLVING:
            if not self._bet_is_valid(amount):
                LOGGER.info("Bet %.2f rejected (bankroll %.2f)", amount, self.bankroll)
                return False
            self.next_round()
        if self.phase is not Phase.BETTING:
            return False
        if not self._bet_is_valid(amount):
            LOGGER.info("Bet %.2f rejected (bankroll %.2f)", amount, self.bankroll)
            return False

        pre_bet = self.bankroll
        self.flags = RoundFlags(
            all_in=pre_bet > 0 and amount >= pre_bet and pre_bet >= self.all_in_threshold,
        )
        self.round_start_bankroll = pre_bet
        self.round_result = None
        self.bankroll = _money(self.bankroll - amount)
        self._set_phase(Phase.DEALING)

        if self.shoe.ensure_minimum(DEAL_RESHUFFLE_THRESHOLD):
            LOGGER.info("Shoe below %d cards, reshuffled before dealing", DEAL_RESHUFFLE_THRESHOLD)

        p1 = self.shoe.draw()
        d1 = self.shoe.draw()
        p2 = self.shoe.draw()
        d2 = self.shoe.draw(hidden=True)
        self.player_hands = [Hand(cards=[p1, p2], bet=float(amount))]
        self.active_hand_index = 0
        self.dealer_hand = Hand(cards=[d1, d2])
        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "Dealt player %s vs dealer %s",
                hand_to_str(self.player_hands[0].cards),
                hand_to_str(self.dealer_hand.cards),
            )

        player_natural = self.player_hands[0].is_natural
        if player_natural:
            self.flags.blackjack = True

        if d1.is_ace and self.rules.insurance_allowed:
            self.insurance_offered = True
            self._set_phase(Phase.INSURANCE)
            return True

        # Peek: a dealer natural (ten or Ace up) ends the round at once.
        if player_natural or self._dealer_has_natural():
            self._reveal_hole_card()
            self._resolve()
            return True

        self._set_phase(Phase.PLAYER_TURN)
        return True

    def decide_insurance(self, choice: InsuranceChoice) -> bool:
        """INSURANCE → (PLAYER_TURN | RESOLVING).

        INSURE places half the main bet (capped by the bankroll) as a side
        bet. EVEN_MONEY is only valid on a player natural and locks in a 1:1
        payout. After the choice the dealer peeks for blackjack; a player
        natural settles at once.
        """
        if self.phase is not Phase.INSURANCE or not self.insurance_offered:
            return False

        main_bet = self.player_hands[0].bet
        if choice is InsuranceChoice.EVEN_MONEY:
            if not self.rules.even_money_allowed:
                LOGGER.info("Even money rejected: not allowed by the table rules")
                return False
            if not self.player_hands[0].is_natural:
                LOGGER.info("Even money rejected: no player natural")
                return False
            self.even_money_taken = True
        elif choice is InsuranceChoice.INSURE:
            placed = _money(min(main_bet / 2, self.bankroll))
            if placed > 0:
                self.insurance_bet = placed
                self.bankroll = _money(self.bankroll - placed)

        self.insurance_offered = False

        if self._dealer_has_natural() or self.player_hands[0].is_natural:
            self._reveal_hole_card()
            self._resolve()
            return True

        self._set_phase(Phase.PLAYER_TURN)
        return True

    # ── Player turn ──────────────────────────────────────────────────────────

    @property
    def active_hand(self) -> Hand | None:
        if 0 <= self.active_hand_index < len(self.player_hands):
            return self.player_hands[self.active_hand_index]
        return None

    def legal_actions(self) -> list[Action]:
        """Actions the active hand may take right now, in display order."""
        hand = self.active_hand
        if self.phase is not Phase.PLAYER_TURN or hand is None or hand.completed:
            return []
        if hand.is_natural:
            return [Action.STAND]

        actions = [Action.HIT, Action.STAND]
        can_afford = self.bankroll >= hand.bet
        if hand.untouched and can_afford and (
            not hand.from_split or self.rules.double_after_split
        ):
            actions.append(Action.DOUBLE)
        if (
            hand.untouched
            and can_afford
            and not self.flags.split
            and hand.cards[0].rank == hand.cards[1].rank
        ):
            actions.append(Action.SPLIT)
        if hand.untouched and self.rules.surrender_allowed and not self.flags.split:
            actions.append(Action.SURRENDER)
        return actions

    def act(self, action: Action) -> bool:
        """Apply a player action to the active hand. Illegal requests are no-ops."""
        if action not in self.legal_actions():
            LOGGER.info("Illegal action %s rejected in phase %s", action.name, self.phase.name)
            return False

        hand = self.player_hands[self.active_hand_index]

        if action is Action.HIT:
            hand.cards.append(self.shoe.draw_or_reshuffle())
            if hand.total > 21:
                hand.busted = True
                hand.completed = True
        elif action is Action.STAND:
            hand.completed = True
        elif action is Action.DOUBLE:
            self.bankroll = _money(self.bankroll - hand.bet)
            hand.bet *= 2
            hand.cards.append(self.shoe.draw_or_reshuffle())
            hand.doubled = True
            hand.completed = True
            hand.busted = hand.total > 21
            if hand.from_split:
                self.flags.das = True
        elif action is Action.SPLIT:
            self._split(hand)
            return True
        elif action is Action.SURRENDER:
            hand.surrendered = True
            hand.completed = True

        if hand.completed:
            self._advance()
        return True

    def _split(self, hand: Hand) -> None:
        self.bankroll = _money(self.bankroll - hand.bet)
        self.flags.split = True
        first, second = hand.cards
        hand_a = Hand(cards=[first, self.shoe.draw_or_reshuffle()], bet=hand.bet, from_split=True)
        hand_b = Hand(cards=[second, self.shoe.draw_or_reshuffle()], bet=hand.bet, from_split=True)
        i = self.active_hand_index
        self.player_hands[i:i + 1] = [hand_a, hand_b]

    def _advance(self) -> None:
        for i in range(self.active_hand_index + 1, len(self.player_hands)):
            if not self.player_hands[i].completed:
                self.active_hand_index = i
                return

        if all(h.busted or h.surrendered for h in self.player_hands):
            # Show the hole card for feedback; the dealer does not draw.
            self._reveal_hole_card()
            self._resolve()
            return
        self._play_dealer()

    # ── Dealer turn and resolution ───────────────────────────────────────────

    def _play_dealer(self) -> None:
        self._set_phase(Phase.DEALER_TURN)
        self._reveal_hole_card()
        while dealer_must_draw(self.dealer_hand.cards, self.rules):
            self.dealer_hand.cards.append(self.shoe.draw_or_reshuffle())
        self.dealer_hand.completed = True
        self.dealer_hand.busted = self.dealer_hand.total > 21
        self._resolve()

    def _reveal_hole_card(self) -> None:
        for card in self.dealer_hand.cards:
            self.shoe.reveal(card)

    def _dealer_has_natural(self) -> bool:
        cards = self.dealer_hand.cards
        return len(cards) == 2 and cards[0].value + cards[1].value == 21

    def _resolve(self) -> None:
        self._set_phase(Phase.RESOLVING)
        dealer_cards = self.dealer_hand.cards
        trace = LOGGER.isEnabledFor(logging.DEBUG)
        if trace:
            LOGGER.debug(
                "Resolving: dealer %s (%d)", hand_to_str(dealer_cards), hand_total(dealer_cards)
            )

        payout = 0.0
        hand_results: list[HandResult] = []
        for idx, hand in enumerate(self.player_hands):
            outcome, returned = settle_hand(hand, dealer_cards, self.rules, self.even_money_taken)
            payout += returned
            hand_results.append(HandResult(outcome, hand.bet, returned, hand.total))
            if trace:
                LOGGER.debug(
                    "  hand %d %s total=%d bet=%.2f → %s returns %.2f",
                    idx + 1, hand_to_str(hand.cards), hand.total, hand.bet, outcome.name, returned,
                )

        insurance_return = settle_insurance(self.insurance_bet, dealer_cards)
        payout += insurance_return

        self.bankroll = _money(self.bankroll + payout)
        if self.peak_bankroll is None or self.bankroll > self.peak_bankroll:
            self.peak_bankroll = self.bankroll
        peak = self.peak_bankroll
        drawdown = max(0.0, (peak - self.bankroll) / peak) if peak > 0 else 0.0

        achievements = self._achievements()
        self.session_achievements.update(achievements)
        self.rounds_played += 1
        self.round_result = RoundResult(
            payout=_money(payout),
            delta=_money(self.bankroll - self.round_start_bankroll),
            bankroll=self.bankroll,
            drawdown=drawdown,
            hands=hand_results,
            insurance=insurance_return,
            achievements=achievements,
        )
        LOGGER.debug("Round payout %.2f, bankroll %.2f", payout, self.bankroll)

    def _achievements(self) -> list[str]:
        labels = []
        if self.flags.blackjack:
            labels.append("Blackjack")
        if self.flags.all_in:
            labels.append(f"All-In (>={self.all_in_threshold:g})")
        if self.flags.split:
            labels.append("Split")
        if self.flags.das:
            labels.append("DAS")
        return labels

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _bet_is_valid(self, amount: float) -> bool:
        return self.rules.minimum_bet <= amount <= self.bankroll and amount > 0

    def _clear_round(self) -> None:
        self.player_hands: list[Hand] = []
        self.active_hand_index = 0
        self.dealer_hand = Hand()
        self.insurance_bet = 0.0
        self.insurance_offered = False
        self.even_money_taken = False
        self.flags = RoundFlags()
        self.round_start_bankroll = self.bankroll

    def _set_phase(self, phase: Phase) -> None:
        LOGGER.debug("Phase %s → %s", self.phase.name, phase.name)
        self.phase = phase

    def snapshot(self) -> TableSnapshot:
        """Copy of the current state; later actions do not change it."""
        return TableSnapshot(
            phase=self.phase,
            bankroll=self.bankroll,
            initial_bankroll=self.initial_bankroll,
            peak_bankroll=self.peak_bankroll,
            player_hands=copy.deepcopy(self.player_hands),
            active_hand_index=self.active_hand_index,
            dealer_hand=copy.deepcopy(self.dealer_hand),
            insurance_bet=self.insurance_bet,
            even_money_taken=self.even_money_taken,
            round_result=self.round_result,
            cards_remaining=self.shoe.remaining(),
            running_count=self.shoe.running_count,
            cards_dealt=self.shoe.cards_dealt,
        )
