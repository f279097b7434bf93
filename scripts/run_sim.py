#!/usr/bin/env python
from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import List, Optional

# Allow running without installing the package:
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

import numpy as np
import pandas as pd

from event_window_sim.errors import ConfigError, ExportError
from event_window_sim.config import load_config, build_run_config
from event_window_sim.sim import iter_days, REPEAT_MEMORY_SCOPES
from event_window_sim.policies import POLICY_NAMES
from event_window_sim.analytic import analytic_table
from event_window_sim.metrics import (
    DailyStats,
    compare_with_analytic,
    export_per_day_csv,
    export_table_csv,
    round_for_display,
)
from event_window_sim.plots import plot_running_average, plot_sim_vs_analytic


def _parse_seeds_arg(s: str) -> List[int]:
    s = (s or "").strip()
    if not s:
        return []
    parts = [p.strip() for p in s.split(",") if p.strip()]
    seeds = []
    for p in parts:
        if "-" in p:
            a, b = p.split("-", 1)
            a_i = int(a.strip())
            b_i = int(b.strip())
            if b_i < a_i:
                raise ConfigError(f"Bad seed range '{p}' (end < start).")
            seeds.extend(list(range(a_i, b_i + 1)))
        else:
            seeds.append(int(p))
    # de-dup while preserving order
    out = []
    seen = set()
    for x in seeds:
        if x not in seen:
            out.append(x)
            seen.add(x)
    return out


def _resolve_seeds(cfg_seed: Optional[int], args) -> List[Optional[int]]:
    # CLI --seeds > CLI --seed / config seed > unseeded
    if args.seeds:
        try:
            seeds = _parse_seeds_arg(args.seeds)
        except ValueError as e:
            raise ConfigError(f"Bad --seeds value {args.seeds!r}: {e}") from None
        if not seeds:
            raise ConfigError("--seeds provided but parsed empty.")
        return seeds
    return [cfg_seed]


def build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Simulate weighted random events over restart windows and compare with the no-repeat analytic expectation."
    )
    ap.add_argument("--config", type=str, required=True,
                    help="Events file (.json or .yaml): a list of {Name, Chance} or {EventMin, EventMax, Events: [...]}")
    ap.add_argument("--days", type=int, default=None, help="Days to simulate (overrides config).")
    ap.add_argument("--restarts", type=int, default=None, help="Restart windows per day (overrides config).")
    ap.add_argument("--event-min", type=float, default=None, help="Minimum inter-event delay in seconds.")
    ap.add_argument("--event-max", type=float, default=None, help="Maximum inter-event delay in seconds.")
    ap.add_argument("--policy", choices=POLICY_NAMES, default=None, help="Selection policy.")
    ap.add_argument("--allow-repeat", action="store_true",
                    help="Allow the same event twice in a row (default: forbidden).")
    ap.add_argument("--repeat-memory", choices=REPEAT_MEMORY_SCOPES, default=None,
                    help="When the no-repeat memory resets: every day (default), every window, or never.")
    ap.add_argument("--seed", type=int, default=None, help="Random seed (overrides config).")
    ap.add_argument("--seeds", type=str, default=None,
                    help="Seeds as CSV or ranges, e.g. '42,43,44' or '1-30'. One run per seed.")
    ap.add_argument("--csv", type=str, default=None,
                    help="Write the per-day table (day, <events>) of the first seed to this CSV.")
    ap.add_argument("--outdir", type=str, default=None,
                    help="Directory for tables and figures. Default: results/<config stem>.")
    ap.add_argument("--no_plots", action="store_true", help="Disable figure generation.")
    return ap


def run(args) -> int:
    cfg_path = Path(args.config)
    table, overrides = load_config(cfg_path)

    cfg = build_run_config(
        overrides,
        days=args.days,
        restarts_per_day=args.restarts,
        event_min=args.event_min,
        event_max=args.event_max,
        policy=args.policy,
        forbid_immediate_repeat=(False if args.allow_repeat else None),
        repeat_memory=args.repeat_memory,
        seed=args.seed,
    )
    seeds = _resolve_seeds(cfg.seed, args)

    outdir = Path(args.outdir) if args.outdir else ROOT / "results" / cfg_path.stem

    print(f"[INFO] Config: {cfg_path} | events={len(table)} | days={cfg.days} | "
          f"restarts/day={cfg.restarts_per_day} | window={cfg.window_seconds}s")
    print(f"[INFO] Delay U[{cfg.event_min:g}, {cfg.event_max:g}]s | policy={cfg.policy} | "
          f"no-repeat={cfg.forbid_immediate_repeat} (memory={cfg.repeat_memory}) | seeds={seeds}")

    # ===== analytic (computed once) =====
    analytic = analytic_table(table, cfg)
    label = "stationary, no immediate repeat" if cfg.forbid_immediate_repeat else "independent draws"
    print(f"\nAnalytic ({label}):")
    print(round_for_display(analytic).to_string(index=False))

    # ===== simulation (one run per seed) =====
    runs: List[DailyStats] = []
    per_seed: List[pd.DataFrame] = []

    for seed in seeds:
        run_cfg = replace(cfg, seed=seed)
        rng = np.random.default_rng(seed)
        stats = DailyStats(table, run_cfg.restarts_per_day)
        for day in iter_days(table, run_cfg, rng):
            stats.add(day)
        runs.append(stats)

        s = stats.summary()
        s["seed"] = seed
        per_seed.append(s)

        if len(seeds) > 1:
            print(f"[INFO] Seed {seed}: avg total/day={stats.avg_total_per_day:.3f}")

    first_stats = runs[0]
    summary = first_stats.summary()

    print(f"\nSimulation ({first_stats.n_days} days, seed={seeds[0]}):")
    print(round_for_display(summary).to_string(index=False))
    print(f"Average total per day: {first_stats.avg_total_per_day:.3f}")

    print("\nSimulated vs analytic (per day):")
    print(round_for_display(compare_with_analytic(summary, analytic),
                            {"avgPerDay": 3, "perDay": 3, "diff": 3, "relDiff": 4}).to_string(index=False))

    if len(seeds) > 1:
        by_seed = pd.concat(per_seed, ignore_index=True)
        agg = (
            by_seed.groupby("event")["avgPerDay"]
            .agg(["mean", "min", "max"])
            .reset_index()
            .rename(columns={"mean": "avgPerDay_mean", "min": "avgPerDay_lo", "max": "avgPerDay_hi"})
        )
        print(f"\nAcross {len(seeds)} seeds (avgPerDay):")
        print(agg.round(3).to_string(index=False))

    # ===== exports (failures do not invalidate the statistics above) =====
    status = 0
    try:
        if args.csv:
            p = export_per_day_csv(first_stats, args.csv)
            print(f"[OK] Wrote per-day counts: {p}")

        export_table_csv(analytic, outdir / "analytic.csv")
        export_table_csv(summary, outdir / "summary.csv")
        if len(seeds) > 1:
            export_table_csv(pd.concat(per_seed, ignore_index=True), outdir / "summary_by_seed.csv")
        print(f"[OK] Wrote tables into {outdir}")

        if not args.no_plots:
            plot_running_average(
                first_stats.running_average(),
                str(outdir / "fig_running_average.pdf"),
                title="Running average per day vs analytic",
                analytic=analytic,
                event_order=table.distinct_names(),
            )
            plot_sim_vs_analytic(
                summary,
                analytic,
                str(outdir / "fig_sim_vs_analytic.pdf"),
                title=f"{first_stats.n_days} days, {cfg.restarts_per_day} windows/day",
                event_order=table.distinct_names(),
            )
            print(f"[OK] Figures written into {outdir}")
    except ExportError as e:
        print(f"[ERROR] Export failed: {e}")
        status = 1

    return status


def main() -> None:
    args = build_argparser().parse_args()
    try:
        status = run(args)
    except ConfigError as e:
        print(f"[ERROR] {e}")
        sys.exit(2)
    sys.exit(status)


if __name__ == "__main__":
    main()
