"""
Smoke tests for the figures.
"""

import matplotlib

matplotlib.use("Agg")

import pytest

from event_window_sim import (
    ExportError,
    RunConfig,
    WeightTable,
    analytic_table,
    plot_running_average,
    plot_sim_vs_analytic,
    simulate_days,
    summarize_days,
)


@pytest.fixture
def run():
    table = WeightTable.from_pairs([("Clear", 0.5), ("Rain", 0.3), ("Fog", 0.2)])
    cfg = RunConfig(days=15, seed=8)
    stats = summarize_days(table, simulate_days(table, cfg), cfg.restarts_per_day)
    return table, stats, analytic_table(table, cfg)


def test_running_average_figure(run, tmp_path):
    table, stats, analytic = run
    out = tmp_path / "running.pdf"
    plot_running_average(stats.running_average(), str(out), title="t", analytic=analytic,
                         event_order=table.distinct_names())
    assert out.exists() and out.stat().st_size > 0


def test_sim_vs_analytic_figure(run, tmp_path):
    _, stats, analytic = run
    out = tmp_path / "bars.png"
    plot_sim_vs_analytic(stats.summary(), analytic, str(out))
    assert out.exists() and out.stat().st_size > 0


def test_unwritable_figure(run, tmp_path):
    _, stats, analytic = run
    with pytest.raises(ExportError):
        plot_sim_vs_analytic(stats.summary(), analytic, str(tmp_path / "missing" / "bars.png"))
