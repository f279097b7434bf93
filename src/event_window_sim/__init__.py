"""event_window_sim

Monte-Carlo simulation of randomly-timed, weighted events (e.g. weather
phenomena) across simulated days split into fixed-length restart windows,
together with the closed-form expectation it should converge to.

Model:
- Each restart window advances a clock by U[EventMin, EventMax] delays; every
  tick that lands strictly inside the window fires one event.
- The event is drawn from a weight table, either by bucket expansion
  (ceil(chance*100) tickets per event) or by exact weighted accumulation.
- Optionally an event may not follow itself (bounded redraws).
- The analytic side computes the stationary distribution of that
  no-immediate-repeat chain and scales it by window length / mean delay.

Dependencies: numpy, pandas, PyYAML, matplotlib.
"""

from .errors import ConfigError, ExportError, SelectionExhausted

# Weight table / records
from .models import EventSpec, WeightTable, RestartWindow, DayResult

# Selection
from .policies import (
    PolicyName,
    BucketExpansion,
    WeightedAccumulation,
    NoRepeatSelector,
    PlainSelector,
    make_selector,
)

# Simulation + configs
from .sim import (
    RunConfig,
    run_window,
    simulate_day,
    iter_days,
    simulate_days,
)
from .config import parse_config, load_config, build_run_config

# Analytic + statistics + plots
from .analytic import StationaryResult, stationary_no_repeat, analytic_table
from .metrics import DailyStats, summarize_days, round_for_display, export_per_day_csv, export_table_csv
from .plots import plot_running_average, plot_sim_vs_analytic


__all__ = [
    # errors
    "ConfigError",
    "ExportError",
    "SelectionExhausted",
    # model
    "EventSpec",
    "WeightTable",
    "RestartWindow",
    "DayResult",
    # selection
    "PolicyName",
    "BucketExpansion",
    "WeightedAccumulation",
    "NoRepeatSelector",
    "PlainSelector",
    "make_selector",
    # configs / simulation
    "RunConfig",
    "parse_config",
    "load_config",
    "build_run_config",
    "run_window",
    "simulate_day",
    "iter_days",
    "simulate_days",
    # analytic
    "StationaryResult",
    "stationary_no_repeat",
    "analytic_table",
    # outputs
    "DailyStats",
    "summarize_days",
    "round_for_display",
    "export_per_day_csv",
    "export_table_csv",
    "plot_running_average",
    "plot_sim_vs_analytic",
]
