"""
End-to-end tests for scripts/run_sim.py.
"""

import importlib.util
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from event_window_sim import ConfigError


ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="module")
def run_sim():
    spec = importlib.util.spec_from_file_location("run_sim", ROOT / "scripts" / "run_sim.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def _args(run_sim, *argv):
    return run_sim.build_argparser().parse_args(list(argv))


def test_parse_seeds(run_sim):
    assert run_sim._parse_seeds_arg("1-3,7,2") == [1, 2, 3, 7]
    assert run_sim._parse_seeds_arg("") == []
    with pytest.raises(ConfigError):
        run_sim._parse_seeds_arg("5-1")


def test_single_seed_run(run_sim, tmp_path, capsys):
    csv = tmp_path / "days.csv"
    args = _args(
        run_sim,
        "--config", str(ROOT / "configs" / "events.json"),
        "--days", "6",
        "--seed", "3",
        "--csv", str(csv),
        "--outdir", str(tmp_path / "out"),
        "--no_plots",
    )
    assert run_sim.run(args) == 0

    out = capsys.readouterr().out
    assert "Analytic (stationary, no immediate repeat)" in out
    assert "avgPerDay" in out

    days = pd.read_csv(csv)
    assert list(days.columns) == ["day", "Aurora", "Blizzard"]
    assert len(days) == 6

    analytic = pd.read_csv(tmp_path / "out" / "analytic.csv")
    assert list(analytic.columns) == ["event", "bucket", "probability", "perWindow", "perDay"]
    summary = pd.read_csv(tmp_path / "out" / "summary.csv")
    assert list(summary.columns) == ["event", "avgPerDay", "avgPerWindow", "minPerDay", "maxPerDay"]


def test_multi_seed_run_with_plots(run_sim, tmp_path, capsys):
    args = _args(
        run_sim,
        "--config", str(ROOT / "configs" / "weather.yaml"),
        "--days", "4",
        "--seeds", "1-3",
        "--policy", "weighted",
        "--outdir", str(tmp_path),
    )
    assert run_sim.run(args) == 0

    out = capsys.readouterr().out
    assert "Across 3 seeds" in out
    by_seed = pd.read_csv(tmp_path / "summary_by_seed.csv")
    assert sorted(by_seed["seed"].unique().tolist()) == [1, 2, 3]
    assert (tmp_path / "fig_running_average.pdf").exists()
    assert (tmp_path / "fig_sim_vs_analytic.pdf").exists()


def test_export_failure_keeps_statistics(run_sim, tmp_path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    args = _args(
        run_sim,
        "--config", str(ROOT / "configs" / "events.json"),
        "--days", "2",
        "--outdir", str(blocker / "sub"),
        "--no_plots",
    )
    assert run_sim.run(args) == 1
    out = capsys.readouterr().out
    assert "Simulation (2 days" in out
    assert "[ERROR] Export failed" in out


def test_bad_config_raises(run_sim, tmp_path):
    p = tmp_path / "bad.json"
    p.write_text("{}", encoding="utf-8")
    with pytest.raises(ConfigError):
        run_sim.run(_args(run_sim, "--config", str(p), "--no_plots"))


def test_allow_repeat_flag(run_sim, tmp_path, capsys):
    args = _args(
        run_sim,
        "--config", str(ROOT / "configs" / "events.json"),
        "--days", "2",
        "--allow-repeat",
        "--outdir", str(tmp_path),
        "--no_plots",
    )
    assert run_sim.run(args) == 0
    assert "Analytic (independent draws)" in capsys.readouterr().out


def test_non_finite_delay_is_a_config_error(run_sim, tmp_path, capsys):
    args = _args(
        run_sim,
        "--config", str(ROOT / "configs" / "events.json"),
        "--event-min", "nan",
        "--outdir", str(tmp_path),
        "--no_plots",
    )
    with pytest.raises(ConfigError):
        run_sim.run(args)
    assert "Analytic" not in capsys.readouterr().out
