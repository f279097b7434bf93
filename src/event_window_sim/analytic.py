from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .models import WeightTable
from .sim import RunConfig


STATIONARY_TOL = 1e-12
STATIONARY_MAX_ITER = 10000


@dataclass(frozen=True)
class StationaryResult:
    probabilities: np.ndarray  # aligned with table order
    iterations: int
    converged: bool
    max_diff: float


def no_repeat_transition_matrix(base: Sequence[float]) -> np.ndarray:
    """Row-stochastic matrix of the no-immediate-repeat chain.

    P[j, i] = p_i / (1 - p_j) for i != j, P[j, j] = 0.
    Rows with 1 - p_j <= 0 are left at zero (no outgoing mass).
    """
    p = np.asarray(base, dtype=float)
    den = 1.0 - p
    P = np.zeros((p.size, p.size), dtype=float)
    ok = den > 0
    P[ok, :] = p[None, :] / den[ok, None]
    np.fill_diagonal(P, 0.0)
    return P


def stationary_no_repeat(
    base: Sequence[float],
    *,
    tol: float = STATIONARY_TOL,
    max_iter: int = STATIONARY_MAX_ITER,
) -> StationaryResult:
    """Long-run event shares when an event never follows itself.

    Power iteration from the base distribution, renormalized every step,
    stopping when max |delta| < tol or after max_iter steps.

    Each step applies the lazy operator (pi + pi P) / 2. Its fixed point is the
    stationary vector of P, but unlike P it is aperiodic: with two events P
    just swaps the two shares forever.

    A row with p_j == 1 has no outgoing mass; the result for such a table is an
    approximation, not the absorbing-chain answer.
    """
    p = np.asarray(base, dtype=float)
    n = p.size
    if n <= 1:
        return StationaryResult(probabilities=p.copy(), iterations=0, converged=True, max_diff=0.0)

    P = no_repeat_transition_matrix(p)
    pi = p.copy()
    max_diff = float("inf")

    for it in range(1, int(max_iter) + 1):
        step = pi @ P
        if float(step.sum()) == 0.0:
            return StationaryResult(probabilities=pi, iterations=it, converged=False, max_diff=max_diff)

        nxt = 0.5 * (pi + step)
        nxt = nxt / nxt.sum()

        max_diff = float(np.max(np.abs(nxt - pi)))
        pi = nxt
        if max_diff < tol:
            return StationaryResult(probabilities=pi, iterations=it, converged=True, max_diff=max_diff)

    return StationaryResult(probabilities=pi, iterations=int(max_iter), converged=False, max_diff=max_diff)


def expected_events_per_window(cfg: RunConfig) -> float:
    """window_seconds / mean delay, with mean delay = (event_min + event_max) / 2."""
    return float(cfg.window_seconds) / cfg.mean_delay


def analytic_table(
    table: WeightTable,
    cfg: RunConfig,
    *,
    no_repeat: Optional[bool] = None,
) -> pd.DataFrame:
    """Expected per-window / per-day counts for every configured event.

    Columns: event, bucket, probability, perWindow, perDay (configuration order).
    `probability` is the no-repeat stationary share when repeats are forbidden
    (default: cfg.forbid_immediate_repeat), the plain selection share otherwise.
    """
    if no_repeat is None:
        no_repeat = bool(cfg.forbid_immediate_repeat)

    base = table.selection_probabilities(cfg.policy)
    probs = stationary_no_repeat(base).probabilities if no_repeat else base

    per_window = expected_events_per_window(cfg)
    rows = []
    for ev, pr in zip(table, probs):
        rows.append({
            "event": ev.name,
            "bucket": int(ev.bucket),
            "probability": float(pr),
            "perWindow": float(pr) * per_window,
            "perDay": float(pr) * per_window * int(cfg.restarts_per_day),
        })
    return pd.DataFrame(rows, columns=["event", "bucket", "probability", "perWindow", "perDay"])
