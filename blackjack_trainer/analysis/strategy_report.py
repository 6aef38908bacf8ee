"""Strategy report: the basic-strategy rule table next to the EV solver.

The rule table is a hand-authored approximation; the EV solver's argmax is
the numeric authority. These functions make the differences visible.

    compare_with_basic_strategy(rules)   — cells where the table and the argmax differ
    print_disagreements(rows)            — table of those cells with the EV cost
    print_basic_strategy_chart(rules)    — rule-table chart as S/H/D/R/P grids
    print_action_evs(...)                — every action's EV for one scenario
"""

from __future__ import annotations

from dataclasses import dataclass

from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.hand import hand_total, is_soft
from blackjack_trainer.engine.rules import GameRules
from blackjack_trainer.solvers.basic_strategy import chart_hand, recommend_action
from blackjack_trainer.solvers.ev_solver import (
    HARD_CHART_TOTALS,
    PAIR_CHART_VALUES,
    SOFT_CHART_TOTALS,
    UPCARD_VALUES,
    all_action_evs,
    print_strategy_chart,
)

CHART_ROWS: dict[str, tuple[int, ...]] = {
    "hard": HARD_CHART_TOTALS,
    "soft": SOFT_CHART_TOTALS,
    "pairs": PAIR_CHART_VALUES,
}


@dataclass
class StrategyDisagreement:
    """One chart cell where the rule table differs from the EV argmax.

    Attributes:
        category:     'hard', 'soft' or 'pairs'.
        row:          Player total (hard/soft) or pair card value.
        upcard:       Dealer upcard value (11 = Ace).
        table_action: Rule-table recommendation.
        ev_action:    EV-maximising action.
        ev_cost:      EV(argmax) − EV(table action), in bet units (>= 0).
    """

    category: str
    row: int
    upcard: int
    table_action: Action
    ev_action: Action
    ev_cost: float


def _cell_evs(category: str, row: int, upcard: int, rules: GameRules) -> dict[Action, float]:
    cards = chart_hand(category, row)
    is_pair = category == "pairs"
    evs = all_action_evs(
        hand_total(cards),
        is_soft(cards),
        is_pair,
        cards[0].value if is_pair else None,
        upcard,
        rules,
    )
    return {r.action: r.ev for r in evs}


def build_basic_strategy_chart(rules: GameRules) -> dict[str, dict[tuple[int, int], Action]]:
    """Rule-table action for every chart cell, keyed like the EV chart."""
    return {
        category: {
            (row, upcard): recommend_action(chart_hand(category, row), upcard, rules)
            for row in rows
            for upcard in UPCARD_VALUES
        }
        for category, rows in CHART_ROWS.items()
    }


def compare_with_basic_strategy(
    rules: GameRules,
    tolerance: float = 1e-9,
) -> list[StrategyDisagreement]:
    """List every chart cell where the rule table is not the EV argmax.

    Cells whose EV difference is within ``tolerance`` count as agreement.

    Returns:
        Disagreements ordered by category, row, upcard.
    """
    rows_out: list[StrategyDisagreement] = []
    table = build_basic_strategy_chart(rules)
    for category, rows in CHART_ROWS.items():
        for row in rows:
            for upcard in UPCARD_VALUES:
                evs = _cell_evs(category, row, upcard, rules)
                best_action = max(evs, key=evs.get)
                table_action = table[category][(row, upcard)]
                cost = evs[best_action] - evs[table_action]
                if table_action is not best_action and cost > tolerance:
                    rows_out.append(
                        StrategyDisagreement(category, row, upcard, table_action, best_action, cost)
                    )
    return rows_out


# ─── Printing ─────────────────────────────────────────────────────────────────


def _row_label(category: str, row: int) -> str:
    ace = lambda v: "A" if v == 11 else str(v)  # noqa: E731
    if category == "soft":
        return f"A,{row - 11}"
    if category == "pairs":
        return f"{ace(row)},{ace(row)}"
    return str(row)


def print_disagreements(rows: list[StrategyDisagreement]) -> None:
    """Print rule-table vs EV-argmax disagreements."""
    print("=" * 60)
    print("Rule table vs EV argmax")
    print("=" * 60)
    if not rows:
        print("  (rule table matches the EV argmax in every cell)")
        print()
        return
    print(f"  {'Hand':>6}  {'Up':>3}  {'Table':>10}  {'EV best':>10}  {'EV cost':>8}")
    print(f"  {'-' * 6}  {'-' * 3}  {'-' * 10}  {'-' * 10}  {'-' * 8}")
    for d in rows:
        up = "A" if d.upcard == 11 else str(d.upcard)
        print(
            f"  {_row_label(d.category, d.row):>6}  {up:>3}  "
            f"{d.table_action.value:>10}  {d.ev_action.value:>10}  {d.ev_cost:>8.4f}"
        )
    total_cost = sum(d.ev_cost for d in rows)
    print(f"\n  {len(rows)} cells differ; summed EV cost {total_cost:.4f} bet units")
    print()


def print_basic_strategy_chart(rules: GameRules) -> None:
    """Print the rule-table chart in the same layout as the EV chart."""
    table = build_basic_strategy_chart(rules)
    chart = {
        category: {cell: (action, 0.0) for cell, action in cells.items()}
        for category, cells in table.items()
    }
    print_strategy_chart(chart, rules, title="Basic strategy (rule table)")


def print_action_evs(
    total: int,
    is_soft: bool,
    is_pair: bool,
    pair_rank: int | None,
    dealer_upcard_value: int,
    rules: GameRules,
) -> None:
    """Print every action's EV for a single scenario, best first."""
    kind = "pair" if is_pair else ("soft" if is_soft else "hard")
    up = "A" if dealer_upcard_value == 11 else str(dealer_upcard_value)
    print(f"{kind} {total} vs {up}:")
    for result in all_action_evs(total, is_soft, is_pair, pair_rank, dealer_upcard_value, rules):
        print(f"  {result.action.value:<10} {result.ev:+.4f}")


if __name__ == "__main__":
    _rules = GameRules()
    print_basic_strategy_chart(_rules)
    print()
    print_disagreements(compare_with_basic_strategy(_rules))
    print_action_evs(16, False, False, None, 10, _rules)
    print_action_evs(16, False, True, 8, 10, _rules)
