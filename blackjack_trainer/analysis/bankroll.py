"""Variance and bankroll analysis for blackjack sessions.

Provides:
- Distribution statistics of per-round results (mean, std, skewness, kurtosis, percentiles)
- Risk of ruin: the infinite-horizon gambler's-ruin approximation and a
  finite-session version for negative-edge play
- Required bankroll for a target survival probability
- Horizon projections via CLT (expected result + confidence intervals)
- Drawdown of an observed bankroll trajectory and bootstrap drawdown stats

All amounts are in base-bet units unless stated otherwise.

Usage (standalone report):
    python -m blackjack_trainer.analysis.bankroll 20000
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy import stats

# ─── Dataclasses ──────────────────────────────────────────────────────────────


@dataclass
class VarianceStats:
    """Descriptive statistics for a per-round net distribution.

    Attributes:
        mean:        Mean net per round (units).
        std:         Sample standard deviation.
        variance:    Sample variance (std**2).
        skewness:    Fisher skewness.
        kurtosis:    Excess kurtosis (normal = 0).
        percentiles: Keys 'p1', 'p5', 'p25', 'p50', 'p75', 'p95', 'p99'.
        n_rounds:    Sample size.
    """

    mean: float
    std: float
    variance: float
    skewness: float
    kurtosis: float
    percentiles: dict[str, float]
    n_rounds: int


@dataclass
class BankrollRequirement:
    """Bankroll needed to survive indefinitely with a given probability."""

    survival_prob: float
    required_bankroll: float
    edge: float
    std: float
    method: str = "gambler_ruin_approx"


@dataclass
class HorizonProjection:
    """Expected result and uncertainty after ``n_rounds`` rounds.

    Attributes:
        n_rounds:        Rounds in this horizon.
        expected_profit: n_rounds * edge (units).
        ci_low:          Lower confidence bound (units).
        ci_high:         Upper confidence bound (units).
        prob_positive:   P(cumulative result > 0) under the CLT.
    """

    n_rounds: int
    expected_profit: float
    ci_low: float
    ci_high: float
    prob_positive: float


@dataclass
class Drawdown:
    """Largest peak-to-trough drop of one bankroll trajectory.

    Attributes:
        amount:   Largest drop (same units as the trajectory).
        fraction: Drop as a fraction of the peak it fell from (0 if peak <= 0).
        peak_index:   Index of the peak.
        trough_index: Index of the trough.
    """

    amount: float
    fraction: float
    peak_index: int
    trough_index: int


@dataclass
class DrawdownStats:
    """Max-drawdown distribution from bootstrapped trajectories (units)."""

    mean_max_drawdown: float
    median_max_drawdown: float
    p95_max_drawdown: float
    n_trajectories: int


# ─── Computation functions ────────────────────────────────────────────────────


def compute_variance_stats(nets: np.ndarray) -> VarianceStats:
    """Summarise a 1-D array of per-round nets."""
    pct_values = np.percentile(nets, [1, 5, 25, 50, 75, 95, 99])
    labels = ("p1", "p5", "p25", "p50", "p75", "p95", "p99")
    std = float(np.std(nets, ddof=1))
    return VarianceStats(
        mean=float(np.mean(nets)),
        std=std,
        variance=std**2,
        skewness=float(stats.skew(nets)),
        kurtosis=float(stats.kurtosis(nets)),
        percentiles={k: float(v) for k, v in zip(labels, pct_values)},
        n_rounds=len(nets),
    )


def risk_of_ruin(bankroll: float, edge: float, std: float) -> float:
    """Probability of eventually losing ``bankroll`` when playing forever.

    Gambler's ruin approximation for a drifting random walk:
        RoR = exp(-2 * edge * bankroll / variance)

    Returns 1.0 when edge <= 0: without an advantage ruin is certain.

    Examples:
        >>> risk_of_ruin(100, -0.005, 1.15)
        1.0
    """
    if edge <= 0:
        return 1.0
    return float(math.exp(-2.0 * edge * bankroll / std**2))


def session_risk_of_ruin(bankroll: float, edge: float, std: float, n_rounds: int) -> float:
    """Probability of touching zero within ``n_rounds`` rounds.

    Uses the first-passage probability of Brownian motion with drift
    ``edge`` and volatility ``std`` through the barrier ``-bankroll``:

        P = Φ((-B - μT) / (σ√T)) + exp(-2μB/σ²) · Φ((-B + μT) / (σ√T))

    Meaningful for both positive and negative edges, unlike
    :func:`risk_of_ruin`.

    Args:
        bankroll: Starting bankroll in units (> 0).
        edge:     Mean net per round.
        std:      Per-round standard deviation (> 0).
        n_rounds: Session length in rounds.

    Returns:
        Probability in [0, 1].
    """
    if bankroll <= 0:
        return 1.0
    if n_rounds <= 0:
        return 0.0
    scale = std * math.sqrt(n_rounds)
    drift = edge * n_rounds
    first = stats.norm.cdf((-bankroll - drift) / scale)
    # Mirror term; logs keep exp() finite for large negative edges.
    log_weight = -2.0 * edge * bankroll / std**2
    log_tail = stats.norm.logcdf((-bankroll + drift) / scale)
    second = math.exp(log_weight + log_tail) if log_weight + log_tail > -745 else 0.0
    return float(min(1.0, max(0.0, first + second)))


def required_bankroll(
    edge: float,
    std: float,
    survival_prob: float,
) -> BankrollRequirement:
    """Bankroll for which the infinite-horizon ruin probability is 1 - survival_prob.

    Solves exp(-2*edge*B/variance) = 1 - survival_prob for B.

    Raises:
        ValueError: If edge <= 0 (no finite bankroll survives forever).
    """
    if edge <= 0:
        raise ValueError(
            f"required_bankroll() requires a positive edge; got edge={edge:.6f}. "
            "Without an advantage no finite bankroll survives indefinitely."
        )
    b = -(std**2) * math.log(1.0 - survival_prob) / (2.0 * edge)
    return BankrollRequirement(
        survival_prob=survival_prob,
        required_bankroll=b,
        edge=edge,
        std=std,
    )


def compute_horizon_projections(
    edge: float,
    std: float,
    horizons: list[int] | None = None,
    confidence: float = 0.95,
) -> list[HorizonProjection]:
    """CLT projections: the cumulative result after N rounds ~ N(N*edge, N*std²).

    Args:
        edge:       Mean net per round.
        std:        Per-round standard deviation.
        horizons:   Round counts; defaults to [100, 500, 1000, 5000, 10000].
        confidence: Two-sided interval level.
    """
    if horizons is None:
        horizons = [100, 500, 1000, 5000, 10_000]

    z = stats.norm.ppf((1.0 + confidence) / 2.0)
    projections = []
    for n in horizons:
        expected = n * edge
        margin = z * std * math.sqrt(n)
        if std > 0:
            prob_pos = float(stats.norm.cdf(math.sqrt(n) * edge / std))
        else:
            prob_pos = 1.0 if edge > 0 else 0.0
        projections.append(
            HorizonProjection(
                n_rounds=n,
                expected_profit=expected,
                ci_low=expected - margin,
                ci_high=expected + margin,
                prob_positive=prob_pos,
            )
        )
    return projections


def max_drawdown(trajectory: np.ndarray) -> Drawdown:
    """Largest peak-to-trough drop of a bankroll trajectory.

    Examples:
        >>> dd = max_drawdown(np.array([100.0, 120.0, 90.0, 130.0, 125.0]))
        >>> dd.amount, round(dd.fraction, 2)
        (30.0, 0.25)
    """
    trajectory = np.asarray(trajectory, dtype=np.float64)
    if trajectory.size == 0:
        return Drawdown(0.0, 0.0, 0, 0)
    running_max = np.maximum.accumulate(trajectory)
    drops = running_max - trajectory
    trough = int(np.argmax(drops))
    amount = float(drops[trough])
    peak = int(np.argmax(trajectory[: trough + 1])) if amount > 0 else trough
    peak_value = float(trajectory[peak])
    fraction = amount / peak_value if peak_value > 0 else 0.0
    return Drawdown(amount=amount, fraction=fraction, peak_index=peak, trough_index=trough)


def compute_drawdown_stats(
    nets: np.ndarray,
    n_trajectories: int = 1000,
    trajectory_length: int = 500,
    seed: int = 0,
) -> DrawdownStats:
    """Bootstrap-resample sessions from observed nets and measure max drawdown.

    Args:
        nets:              Observed per-round nets (1-D).
        n_trajectories:    Number of resampled sessions.
        trajectory_length: Rounds per session.
        seed:              Seed for the resampling generator.
    """
    rng = np.random.default_rng(seed)
    samples = rng.choice(nets, size=(n_trajectories, trajectory_length), replace=True)
    cumsum = np.cumsum(samples, axis=1)
    # Sessions start at 0, so a losing first round counts as a drop.
    running_max = np.maximum.accumulate(np.maximum(cumsum, 0.0), axis=1)
    max_drawdowns = np.max(running_max - cumsum, axis=1)

    return DrawdownStats(
        mean_max_drawdown=float(np.mean(max_drawdowns)),
        median_max_drawdown=float(np.median(max_drawdowns)),
        p95_max_drawdown=float(np.percentile(max_drawdowns, 95)),
        n_trajectories=n_trajectories,
    )


# ─── Output functions ─────────────────────────────────────────────────────────


def print_variance_report(
    vstats: VarianceStats,
    bankroll_reqs: list[BankrollRequirement],
    projections: list[HorizonProjection],
    drawdown: DrawdownStats,
    *,
    session_ruin: dict[int, float] | None = None,
    label: str = "",
) -> str:
    """Format and print a variance and bankroll report.

    Args:
        vstats:        From compute_variance_stats().
        bankroll_reqs: Requirements at several survival probabilities (may be empty).
        projections:   From compute_horizon_projections().
        drawdown:      From compute_drawdown_stats().
        session_ruin:  Optional ``{bankroll_units: P(ruin)}`` for a fixed session.
        label:         Header suffix (e.g. the strategy name).

    Returns:
        The report string (also printed to stdout).
    """
    header = f"Variance & Bankroll Report{' — ' + label if label else ''}"
    pct = vstats.percentiles
    lines = [
        "=" * 70,
        header,
        "=" * 70,
        "",
        "── Distribution Statistics ─────────────────────────────────────────",
        f"  Rounds simulated : {vstats.n_rounds:>10,}",
        f"  Mean net / round : {vstats.mean:>+10.4f} units  ({vstats.mean * 100:+.2f}%)",
        f"  Std deviation    : {vstats.std:>10.4f} units",
        f"  Skewness         : {vstats.skewness:>10.4f}",
        f"  Excess kurtosis  : {vstats.kurtosis:>10.4f}",
        "",
        "  Percentiles (units): " + "  ".join(f"{k}={v:.2f}" for k, v in pct.items()),
        "",
        "── Bankroll Requirements ────────────────────────────────────────────",
    ]
    if not bankroll_reqs:
        lines.append("  (Edge ≤ 0: ruin is certain over an unlimited session)")
    for req in bankroll_reqs:
        lines.append(
            f"  Survival {req.survival_prob * 100:.0f}%   : "
            f"{req.required_bankroll:>8.1f} units  ({req.method})"
        )
    if session_ruin:
        lines.append("")
        for units, prob in session_ruin.items():
            lines.append(f"  P(ruin) with {units:>5,} units : {prob:6.1%}")
    lines += [
        "",
        "── Horizon Projections (CLT, 95% CI) ───────────────────────────────",
        f"  {'Rounds':>8}  {'E[result]':>10}  {'CI low':>10}  {'CI high':>10}  {'P(+)':>6}",
    ]
    for p in projections:
        lines.append(
            f"  {p.n_rounds:>8,}  {p.expected_profit:>+10.2f}  "
            f"{p.ci_low:>+10.2f}  {p.ci_high:>+10.2f}  {p.prob_positive:>5.1%}"
        )
    lines += [
        "",
        "── Drawdown Analysis (bootstrap) ────────────────────────────────────",
        f"  Trajectories    : {drawdown.n_trajectories:,}",
        f"  Mean max DD     : {drawdown.mean_max_drawdown:.2f} units",
        f"  Median max DD   : {drawdown.median_max_drawdown:.2f} units",
        f"  p95 max DD      : {drawdown.p95_max_drawdown:.2f} units",
        "",
    ]
    report = "\n".join(lines)
    print(report)
    return report


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from blackjack_trainer.analysis.simulator import make_basic_strategy_player, simulate_rounds
    from blackjack_trainer.engine.rules import GameRules

    n_rounds = int(sys.argv[1]) if len(sys.argv) > 1 else 10_000
    rules = GameRules()
    print(f"Blackjack Variance & Bankroll Analysis — {n_rounds:,} rounds\n")

    result = simulate_rounds(
        rules, make_basic_strategy_player(rules), n_rounds=n_rounds, seed=42, return_nets=True
    )
    vs = compute_variance_stats(result.nets)
    reqs = [required_bankroll(vs.mean, vs.std, sp) for sp in (0.90, 0.95, 0.99)] if vs.mean > 0 else []
    ruin = {b: session_risk_of_ruin(b, vs.mean, vs.std, 1000) for b in (20, 50, 100)}
    print_variance_report(
        vs,
        reqs,
        compute_horizon_projections(vs.mean, vs.std),
        compute_drawdown_stats(result.nets, n_trajectories=500),
        session_ruin=ruin,
        label="basic strategy",
    )
