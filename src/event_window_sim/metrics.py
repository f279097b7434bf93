from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .errors import ExportError
from .models import DayResult, WeightTable


SUMMARY_COLUMNS = ["event", "avgPerDay", "avgPerWindow", "minPerDay", "maxPerDay"]

# Display precision per field (applied only when reporting)
DISPLAY_DECIMALS: Dict[str, int] = {
    "avgPerDay": 3,
    "avgPerWindow": 4,
    "probability": 6,
    "perWindow": 3,
    "perDay": 3,
    "avg_total_per_day": 3,
}


# ---------------------------- aggregator ---------------------------------


class DailyStats:
    """Per-day counts of one run, reduced to average/min/max per event.

    Each run owns a fresh instance; nothing is shared between runs.
    """

    def __init__(self, table: WeightTable, restarts_per_day: int):
        self.table = table
        self.restarts_per_day = int(restarts_per_day)
        self.names: List[str] = table.distinct_names()
        self._days: List[int] = []
        self._rows: List[List[int]] = []

    def add(self, result: DayResult) -> None:
        self._days.append(int(result.day))
        self._rows.append([int(result.counts.get(n, 0)) for n in self.names])

    def extend(self, results: Iterable[DayResult]) -> None:
        for r in results:
            self.add(r)

    @property
    def n_days(self) -> int:
        return len(self._rows)

    def _matrix(self) -> np.ndarray:
        if not self._rows:
            return np.zeros((0, len(self.names)), dtype=int)
        return np.asarray(self._rows, dtype=int)

    @property
    def avg_total_per_day(self) -> float:
        """Mean number of events per day, all events together (0 with no days)."""
        m = self._matrix()
        if m.shape[0] == 0:
            return 0.0
        return float(m.sum(axis=1).mean())

    def summary(self) -> pd.DataFrame:
        """event, avgPerDay, avgPerWindow, minPerDay, maxPerDay; sorted by event name."""
        m = self._matrix()
        rows = []
        for k, name in enumerate(self.names):
            if m.shape[0] == 0:
                avg, lo, hi = 0.0, 0, 0
            else:
                col = m[:, k]
                avg, lo, hi = float(col.mean()), int(col.min()), int(col.max())
            rows.append({
                "event": name,
                "avgPerDay": avg,
                "avgPerWindow": avg / self.restarts_per_day,
                "minPerDay": lo,
                "maxPerDay": hi,
            })
        df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
        return df.sort_values("event", kind="mergesort").reset_index(drop=True)

    def per_day_frame(self) -> pd.DataFrame:
        """Wide per-day record: day, then one count column per event in configuration order."""
        df = pd.DataFrame(self._matrix(), columns=self.names)
        df.insert(0, "day", np.asarray(self._days, dtype=int))
        return df

    def running_average(self) -> pd.DataFrame:
        """Cumulative per-event mean after each day (the convergence trace)."""
        m = self._matrix().astype(float)
        if m.shape[0] == 0:
            return pd.DataFrame(columns=["day"] + self.names)
        denom = np.arange(1, m.shape[0] + 1, dtype=float)[:, None]
        df = pd.DataFrame(np.cumsum(m, axis=0) / denom, columns=self.names)
        df.insert(0, "day", np.asarray(self._days, dtype=int))
        return df


def summarize_days(
    table: WeightTable,
    results: Iterable[DayResult],
    restarts_per_day: int,
) -> DailyStats:
    stats = DailyStats(table, restarts_per_day)
    stats.extend(results)
    return stats


def compare_with_analytic(summary: pd.DataFrame, analytic: pd.DataFrame) -> pd.DataFrame:
    """Join simulated averages with analytic expectations per event.

    Duplicate event names in the analytic table are summed first.
    """
    exp = analytic.groupby("event", sort=False, as_index=False)[["perDay"]].sum()
    out = summary[["event", "avgPerDay"]].merge(exp, on="event", how="left")
    out["diff"] = out["avgPerDay"] - out["perDay"]
    out["relDiff"] = out["diff"] / out["perDay"].where(out["perDay"] > 0)
    return out


# ---------------------------- reporting ---------------------------------


def round_for_display(df: pd.DataFrame, decimals: Optional[Dict[str, int]] = None) -> pd.DataFrame:
    """Round known numeric columns to their display precision (copy)."""
    decimals = dict(DISPLAY_DECIMALS if decimals is None else decimals)
    out = df.copy()
    for col, d in decimals.items():
        if col in out.columns:
            out[col] = out[col].astype(float).round(int(d))
    return out


def export_table_csv(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a table to CSV (no index). Raises ExportError if the destination is unwritable."""
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(p, index=False)
    except OSError as e:
        raise ExportError(f"Cannot write {p}: {e}") from e
    return p


def export_per_day_csv(stats: DailyStats, path: Union[str, Path]) -> Path:
    return export_table_csv(stats.per_day_frame(), path)
