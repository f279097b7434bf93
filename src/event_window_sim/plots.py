from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from .errors import ExportError


def _ordered_events(
    keys: Sequence[str],
    event_order: Optional[Sequence[str]] = None,
) -> List[str]:
    if not event_order:
        return list(keys)
    order = [e for e in event_order if e in keys]
    rest = [e for e in keys if e not in order]
    return order + rest


def _expected_per_day(analytic: Optional[pd.DataFrame]) -> Dict[str, float]:
    if analytic is None or analytic.empty:
        return {}
    grouped = analytic.groupby("event", sort=False)["perDay"].sum()
    return {str(k): float(v) for k, v in grouped.items()}


def _save(outpath: str) -> None:
    try:
        plt.savefig(outpath)
    except OSError as e:
        raise ExportError(f"Cannot write figure {outpath}: {e}") from e
    finally:
        plt.close()


# ---------------------------- Figures ----------------------------

def plot_running_average(
    running: pd.DataFrame,
    outpath: str,
    title: str = "",
    *,
    analytic: Optional[pd.DataFrame] = None,
    event_order: Optional[Sequence[str]] = None,
) -> None:
    """
    Plot the cumulative per-day average of every event against the day index.

    If an analytic table is given, each event's expected per-day count is drawn
    as a dashed horizontal line in the same colour; the simulated curves should
    settle onto them as days accumulate.
    """
    plt.figure(figsize=(6.2, 3.9))

    expected = _expected_per_day(analytic)
    events = [c for c in running.columns if c != "day"]

    for ev in _ordered_events(events, event_order):
        x = np.asarray(running["day"], dtype=float)
        y = np.asarray(running[ev], dtype=float)
        if x.size == 0:
            continue
        (line,) = plt.plot(x, y, label=str(ev))
        if ev in expected:
            plt.axhline(expected[ev], linestyle="--", linewidth=0.9, color=line.get_color(), alpha=0.8)

    plt.xlabel("Day")
    plt.ylabel("Running average (events/day)")
    if title:
        plt.title(title)

    plt.grid(True, alpha=0.3)
    if events:
        plt.legend()
    plt.tight_layout()
    _save(outpath)


def plot_sim_vs_analytic(
    summary: pd.DataFrame,
    analytic: pd.DataFrame,
    outpath: str,
    title: str = "",
    *,
    event_order: Optional[Sequence[str]] = None,
) -> None:
    """
    Grouped bars per event: simulated average per day next to the analytic
    expectation, with min/max per day as an error bar on the simulated bar.
    """
    plt.figure(figsize=(6.2, 3.9))

    expected = _expected_per_day(analytic)
    sim = summary.set_index("event")
    events = _ordered_events(list(sim.index), event_order)

    x = np.arange(len(events), dtype=float)
    width = 0.38

    avg = np.asarray([float(sim.loc[e, "avgPerDay"]) for e in events], dtype=float)
    lo = np.asarray([float(sim.loc[e, "minPerDay"]) for e in events], dtype=float)
    hi = np.asarray([float(sim.loc[e, "maxPerDay"]) for e in events], dtype=float)
    exp = np.asarray([expected.get(e, np.nan) for e in events], dtype=float)

    yerr = np.vstack([np.clip(avg - lo, 0.0, None), np.clip(hi - avg, 0.0, None)])
    plt.bar(x - width / 2, avg, width, yerr=yerr, capsize=3, label="Simulated (min/max)")
    plt.bar(x + width / 2, exp, width, label="Analytic")

    plt.xticks(x, events, rotation=30, ha="right")
    plt.ylabel("Events per day")
    if title:
        plt.title(title)

    plt.grid(True, axis="y", alpha=0.3)
    plt.legend()
    plt.tight_layout()
    _save(outpath)
