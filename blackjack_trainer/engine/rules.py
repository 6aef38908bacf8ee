"""
House rules, dealer drawing rule, and per-hand settlement.

Settlement priority for one player hand (first match wins):
    1. Surrendered                         → return 0.5 × bet
    2. Busted                              → return 0
    3. Player natural vs dealer natural    → push (1 × bet), 2 × bet with even money
    4. Player natural, no dealer natural   → bet × (1 + payout ratio), 2 × bet with even money
    5. Dealer natural                      → return 0
    6. Dealer bust                         → return 2 × bet
    7. Total comparison                    → 2 × bet / 1 × bet / 0

Amounts are RETURNS (stake included), not net profit: the stake was already
removed from the bankroll when the bet was placed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto

from blackjack_trainer.engine.cards import Card
from blackjack_trainer.engine.hand import Hand, hand_total, is_soft, is_two_card_21


class SurrenderPolicy(Enum):
    NONE = "none"
    LATE = "late"
    EARLY = "early"


class Outcome(Enum):
    WIN = auto()
    BLACKJACK = auto()
    EVEN_MONEY = auto()
    PUSH = auto()
    LOSS = auto()
    BUST = auto()
    SURRENDER = auto()


ALLOWED_PAYOUT_RATIOS: tuple[float, ...] = (1.5, 1.2)


@dataclass(frozen=True)
class GameRules:
    """Table rules. A value object: every engine call takes one explicitly."""
    deck_count: int = 6
    dealer_hits_soft17: bool = False
    double_after_split: bool = True
    surrender_policy: SurrenderPolicy = SurrenderPolicy.LATE
    blackjack_payout_ratio: float = 1.5
    insurance_allowed: bool = True
    even_money_allowed: bool = True
    minimum_bet: float = 5.0

    def __post_init__(self) -> None:
        if self.deck_count < 1:
            raise ValueError(f"deck_count must be >= 1, got {self.deck_count}")
        if self.blackjack_payout_ratio not in ALLOWED_PAYOUT_RATIOS:
            raise ValueError(
                f"blackjack_payout_ratio must be one of {ALLOWED_PAYOUT_RATIOS}, "
                f"got {self.blackjack_payout_ratio}"
            )
        if self.minimum_bet < 0:
            raise ValueError(f"minimum_bet must be >= 0, got {self.minimum_bet}")
        if not isinstance(self.surrender_policy, SurrenderPolicy):
            raise ValueError(f"Unknown surrender policy {self.surrender_policy!r}")

    @property
    def surrender_allowed(self) -> bool:
        return self.surrender_policy is not SurrenderPolicy.NONE

    @property
    def dealer_key(self) -> str:
        """The part of the rules that changes dealer play: ``'H17'`` or ``'S17'``."""
        return "H17" if self.dealer_hits_soft17 else "S17"

    def replace(self, **changes) -> GameRules:
        return replace(self, **changes)


def dealer_should_hit(total: int, soft: bool, rules: GameRules) -> bool:
    """Dealer draws below 17, and on soft 17 under H17."""
    if total < 17:
        return True
    return total == 17 and soft and rules.dealer_hits_soft17


def dealer_must_draw(cards: list[Card], rules: GameRules) -> bool:
    return dealer_should_hit(hand_total(cards), is_soft(cards), rules)


# ─── Settlement ───────────────────────────────────────────────────────────────

def settle_hand(
    hand: Hand,
    dealer_cards: list[Card],
    rules: GameRules,
    even_money: bool = False,
) -> tuple[Outcome, float]:
    """Settle one completed player hand against the dealer's final hand.

    Args:
        hand:         The player's hand (bet already deducted from bankroll).
        dealer_cards: The dealer's final cards, all revealed.
        rules:        Table rules (blackjack payout ratio).
        even_money:   True if the player took even money on a natural.

    Returns:
        (Outcome, amount returned to the bankroll).

    Examples:
        >>> settle_hand(Hand(hand('10C', '9H'), bet=25), hand('10D', '7S'), GameRules())
        (<Outcome.WIN: 1>, 50.0)
    """
    bet = hand.bet

    if hand.surrendered:
        return Outcome.SURRENDER, bet * 0.5
    if hand.busted or hand.total > 21:
        return Outcome.BUST, 0.0

    dealer_total = hand_total(dealer_cards)
    dealer_natural = is_two_card_21(dealer_cards)

    if hand.is_natural:
        if even_money:
            return Outcome.EVEN_MONEY, bet * 2
        if dealer_natural:
            return Outcome.PUSH, float(bet)
        return Outcome.BLACKJACK, bet * (1 + rules.blackjack_payout_ratio)

    if dealer_natural:
        return Outcome.LOSS, 0.0
    if dealer_total > 21:
        return Outcome.WIN, bet * 2

    player_total = hand.total
    if player_total > dealer_total:
        return Outcome.WIN, bet * 2
    if player_total == dealer_total:
        return Outcome.PUSH, float(bet)
    return Outcome.LOSS, 0.0


def settle_insurance(insurance_bet: float, dealer_cards: list[Card]) -> float:
    """Insurance pays 2:1 plus the stake back when the dealer has a natural."""
    if insurance_bet > 0 and is_two_card_21(dealer_cards):
        return insurance_bet * 3
    return 0.0
