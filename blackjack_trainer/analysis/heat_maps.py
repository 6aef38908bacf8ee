"""Strategy heat maps for the blackjack trainer.

Two public data-builder functions return NumPy matrices that can be used
programmatically or passed to the plot helpers:

    build_basic_strategy_matrices(rules)  — action-index matrices from the rule table
    build_ev_matrices(rules)              — (action-index, EV) matrices from the EV solver

Four public plot functions render matplotlib figures:

    plot_strategy_chart(matrices, title, ...)  — 1×3 figure (hard, soft, pairs)
    plot_basic_strategy_chart(rules, ...)      — convenience rule-table wrapper
    plot_ev_chart(rules, ...)                  — convenience EV wrapper (EV colours)
    plot_strategy_comparison(rules, ...)       — 2×3 rule table vs EV argmax

Matrix convention (all builders):
    Keys   : 'hard', 'soft', 'pairs'
    Shape  : (rows, 10) — rows = hard totals 5–20 / soft totals 13–20 /
             pair values 2–11; cols = dealer upcards 2–10, A
    Values : ACTION_INDEX code (action matrices) or EV in bet units
"""

from __future__ import annotations

import matplotlib
import matplotlib.axes
import matplotlib.colors
import matplotlib.figure
import matplotlib.image
import matplotlib.patches
import matplotlib.pyplot as plt
import numpy as np

from blackjack_trainer.analysis.strategy_report import build_basic_strategy_chart
from blackjack_trainer.engine.game_state import Action
from blackjack_trainer.engine.rules import GameRules
from blackjack_trainer.solvers.ev_solver import (
    HARD_CHART_TOTALS,
    PAIR_CHART_VALUES,
    SOFT_CHART_TOTALS,
    UPCARD_VALUES,
    build_ev_strategy_chart,
)

# ─── Constants ────────────────────────────────────────────────────────────────

ACTION_INDEX: dict[Action, int] = {
    Action.STAND: 0,
    Action.HIT: 1,
    Action.DOUBLE: 2,
    Action.SURRENDER: 3,
    Action.SPLIT: 4,
}
_ACTION_LETTERS: list[str] = ["S", "H", "D", "R", "P"]
_ACTION_COLORS: list[str] = ["#d62728", "#2ca02c", "#1f77b4", "#7f7f7f", "#ff7f0e"]

_ROWS: dict[str, tuple[int, ...]] = {
    "hard": HARD_CHART_TOTALS,
    "soft": SOFT_CHART_TOTALS,
    "pairs": PAIR_CHART_VALUES,
}
_PANEL_TITLES: dict[str, str] = {"hard": "Hard totals", "soft": "Soft totals", "pairs": "Pairs"}
_COL_LABELS: list[str] = ["A" if u == 11 else str(u) for u in UPCARD_VALUES]
_NAN_COLOR: str = "#cccccc"
_EV_LIMIT: float = 1.0


def _row_labels(category: str) -> list[str]:
    rows = _ROWS[category]
    if category == "soft":
        return [f"A,{t - 11}" for t in rows]
    if category == "pairs":
        return [f"{'A' if v == 11 else v},{'A' if v == 11 else v}" for v in rows]
    return [str(t) for t in rows]


# ─── Colormaps ────────────────────────────────────────────────────────────────


def _make_action_cmap() -> matplotlib.colors.ListedColormap:
    """One colour per action code, grey for NaN."""
    return matplotlib.colors.ListedColormap(_ACTION_COLORS).with_extremes(bad=_NAN_COLOR)


def _make_ev_cmap() -> matplotlib.colors.Colormap:
    """RdYlGn gradient: red = losing EV, green = winning EV."""
    return matplotlib.colormaps["RdYlGn"].with_extremes(bad=_NAN_COLOR)


_ACTION_CMAP: matplotlib.colors.Colormap = _make_action_cmap()
_EV_CMAP: matplotlib.colors.Colormap = _make_ev_cmap()


# ─── Data builders ────────────────────────────────────────────────────────────


def _empty_matrices() -> dict[str, np.ndarray]:
    return {k: np.full((len(rows), len(UPCARD_VALUES)), np.nan) for k, rows in _ROWS.items()}


def build_basic_strategy_matrices(rules: GameRules) -> dict[str, np.ndarray]:
    """Return action-index matrices for the basic-strategy rule table.

    Args:
        rules: Table rules (dealer rule, DAS, surrender).

    Returns:
        ``{'hard', 'soft', 'pairs'}`` → float64 matrices of ACTION_INDEX codes.
    """
    table = build_basic_strategy_chart(rules)
    matrices = _empty_matrices()
    for category, rows in _ROWS.items():
        for r, row in enumerate(rows):
            for c, upcard in enumerate(UPCARD_VALUES):
                matrices[category][r, c] = ACTION_INDEX[table[category][(row, upcard)]]
    return matrices


def build_ev_matrices(rules: GameRules) -> tuple[dict[str, np.ndarray], dict[str, np.ndarray]]:
    """Return (action-index matrices, EV matrices) for the EV argmax.

    Args:
        rules: Table rules.

    Returns:
        Two dicts keyed like ``build_basic_strategy_matrices``; the second
        holds the argmax EV of each cell in bet units.
    """
    chart = build_ev_strategy_chart(rules)
    actions = _empty_matrices()
    evs = _empty_matrices()
    for category, rows in _ROWS.items():
        for r, row in enumerate(rows):
            for c, upcard in enumerate(UPCARD_VALUES):
                action, ev = chart[category][(row, upcard)]
                actions[category][r, c] = ACTION_INDEX[action]
                evs[category][r, c] = ev
    return actions, evs


# ─── Rendering helper ─────────────────────────────────────────────────────────


def _render_panel(
    ax: matplotlib.axes.Axes,
    category: str,
    actions: np.ndarray,
    evs: np.ndarray | None = None,
) -> matplotlib.image.AxesImage:
    """Render one chart panel onto *ax* and return the AxesImage.

    Cells are coloured by action, or by EV when *evs* is given; the action
    letter is always drawn in the cell. The caller sets title and labels.
    """
    if evs is None:
        im = ax.imshow(
            np.ma.masked_invalid(actions),
            cmap=_ACTION_CMAP,
            vmin=-0.5,
            vmax=len(_ACTION_LETTERS) - 0.5,
            aspect="auto",
        )
    else:
        im = ax.imshow(
            np.ma.masked_invalid(evs),
            cmap=_EV_CMAP,
            vmin=-_EV_LIMIT,
            vmax=_EV_LIMIT,
            aspect="auto",
        )

    ax.set_xticks(range(len(UPCARD_VALUES)))
    ax.set_xticklabels(_COL_LABELS, fontsize=8)
    labels = _row_labels(category)
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels, fontsize=8)

    for r in range(actions.shape[0]):
        for c in range(actions.shape[1]):
            val = actions[r, c]
            if np.isnan(val):
                continue
            ax.text(
                c,
                r,
                _ACTION_LETTERS[int(val)],
                ha="center",
                va="center",
                fontsize=8,
                color="white" if evs is None else "black",
                fontweight="bold",
            )

    return im


def _finish(fig: matplotlib.figure.Figure, show: bool, save_path: str | None) -> None:
    plt.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()


# ─── Public plot functions ────────────────────────────────────────────────────


def plot_strategy_chart(
    actions: dict[str, np.ndarray],
    title: str,
    *,
    evs: dict[str, np.ndarray] | None = None,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot hard, soft and pair strategy panels as a 1×3 figure.

    Args:
        actions:   Action-index matrices keyed 'hard', 'soft', 'pairs'.
        title:     Figure suptitle.
        evs:       Optional EV matrices; when given, cells are coloured by EV
                   and a colorbar is added.
        show:      If True, call plt.show() after rendering.
        save_path: If not None, save the figure to this path before showing.

    Returns:
        matplotlib.figure.Figure.
    """
    fig, axes = plt.subplots(1, 3, figsize=(15, 6))
    fig.suptitle(title, fontsize=13, fontweight="bold")

    for ax, category in zip(axes, _ROWS):
        im = _render_panel(ax, category, actions[category], None if evs is None else evs[category])
        ax.set_title(_PANEL_TITLES[category], fontsize=10)
        ax.set_xlabel("Dealer upcard", fontsize=9)
        if evs is not None:
            plt.colorbar(im, ax=ax, label="EV", fraction=0.046, pad=0.04)
    axes[0].set_ylabel("Player hand", fontsize=9)

    _finish(fig, show, save_path)
    return fig


def plot_basic_strategy_chart(
    rules: GameRules,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Convenience: build rule-table matrices and render them by action."""
    return plot_strategy_chart(
        build_basic_strategy_matrices(rules),
        f"Basic strategy  ({rules.deck_count} decks, {rules.dealer_key})",
        show=show,
        save_path=save_path,
    )


def plot_ev_chart(
    rules: GameRules,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Convenience: build EV matrices and render argmax letters over EV colours."""
    actions, evs = build_ev_matrices(rules)
    return plot_strategy_chart(
        actions,
        f"EV-optimal strategy  ({rules.dealer_key})",
        evs=evs,
        show=show,
        save_path=save_path,
    )


def plot_strategy_comparison(
    rules: GameRules,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Side-by-side comparison: rule table vs EV argmax.

    Produces a 2×3 figure:
        Row 0 = rule-table actions.
        Row 1 = EV-argmax actions; cells that differ from row 0 are outlined.
        Cols  = hard, soft, pairs.

    Returns:
        matplotlib.figure.Figure with 6 subplot axes.
    """
    table = build_basic_strategy_matrices(rules)
    ev_actions, _ = build_ev_matrices(rules)

    fig, axes = plt.subplots(2, 3, figsize=(15, 10))
    fig.suptitle(f"Rule table vs EV argmax  ({rules.dealer_key})", fontsize=14, fontweight="bold")

    row_names = ["Rule table", "EV argmax"]
    for col, category in enumerate(_ROWS):
        for row, matrices in enumerate((table, ev_actions)):
            ax = axes[row, col]
            _render_panel(ax, category, matrices[category])
            if row == 0:
                ax.set_title(_PANEL_TITLES[category], fontsize=10, fontweight="bold")
            if col == 0:
                ax.set_ylabel(f"{row_names[row]}\nPlayer hand", fontsize=9)
            if row == 1:
                ax.set_xlabel("Dealer upcard", fontsize=9)

        diff_r, diff_c = np.nonzero(table[category] != ev_actions[category])
        for r, c in zip(diff_r, diff_c):
            axes[1, col].add_patch(
                matplotlib.patches.Rectangle(
                    (c - 0.5, r - 0.5), 1, 1, fill=False, edgecolor="black", linewidth=2
                )
            )

    _finish(fig, show, save_path)
    return fig


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    _rules = GameRules()
    print("Generating strategy heat maps …")
    plot_basic_strategy_chart(_rules, show=False, save_path="basic_strategy.png")
    plot_ev_chart(_rules, show=False, save_path="ev_strategy.png")
    plot_strategy_comparison(_rules, show=False, save_path="strategy_comparison.png")
    print("Saved: basic_strategy.png, ev_strategy.png, strategy_comparison.png")
