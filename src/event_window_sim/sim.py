from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterator, List, Literal, Optional

import numpy as np

from .errors import ConfigError
from .models import DAY_SECONDS, DayResult, RestartWindow, WeightTable
from .policies import (
    DEFAULT_MAX_ATTEMPTS,
    POLICY_NAMES,
    PolicyName,
    make_selector,
)


# Scope of the selector's "last drawn" memory
RepeatMemory = Literal["day", "window", "run"]
REPEAT_MEMORY_SCOPES = ("day", "window", "run")


# ------------------------------ Config ------------------------------

@dataclass(frozen=True)
class RunConfig:
    """Run parameters. Times are seconds.

    window_seconds is derived: floor(86400 / restarts_per_day).

    repeat_memory controls when the no-repeat selector forgets its last draw:
      - "day":    reset at the start of every day (memory spans the windows of a day)
      - "window": reset at the start of every restart window
      - "run":    never reset during the run
    """
    days: int = 7
    restarts_per_day: int = 4
    event_min: float = 1800.0
    event_max: float = 2100.0
    policy: PolicyName = "bucket"
    forbid_immediate_repeat: bool = True
    repeat_memory: RepeatMemory = "day"
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    seed: Optional[int] = None

    @property
    def window_seconds(self) -> int:
        return DAY_SECONDS // int(self.restarts_per_day)

    @property
    def mean_delay(self) -> float:
        return (float(self.event_min) + float(self.event_max)) / 2.0

    def validate(self) -> None:
        if int(self.days) < 1:
            raise ConfigError(f"days must be >= 1 (got {self.days}).")
        if int(self.restarts_per_day) < 1:
            raise ConfigError(f"restarts_per_day must be >= 1 (got {self.restarts_per_day}).")
        if int(self.restarts_per_day) > DAY_SECONDS:
            raise ConfigError("restarts_per_day must leave windows of at least one second.")
        if not (math.isfinite(float(self.event_min)) and math.isfinite(float(self.event_max))):
            raise ConfigError(f"event_min and event_max must be finite (got {self.event_min}, {self.event_max}).")
        if float(self.event_min) < 0:
            raise ConfigError("event_min must be >= 0.")
        if float(self.event_max) <= 0:
            raise ConfigError("event_max must be > 0.")
        if float(self.event_min) > float(self.event_max):
            raise ConfigError(f"event_min ({self.event_min}) must be <= event_max ({self.event_max}).")
        if self.policy not in POLICY_NAMES:
            raise ConfigError(f"Unknown selection policy: {self.policy!r} (expected one of {POLICY_NAMES}).")
        if self.repeat_memory not in REPEAT_MEMORY_SCOPES:
            raise ConfigError(
                f"Unknown repeat memory scope: {self.repeat_memory!r} (expected one of {REPEAT_MEMORY_SCOPES})."
            )
        if int(self.max_attempts) < 1:
            raise ConfigError("max_attempts must be >= 1.")


# ------------------------------ Scheduler ------------------------------

def sample_delay(rng: np.random.Generator, event_min: float, event_max: float) -> float:
    """Inter-event delay ~ U[event_min, event_max]."""
    if event_max == event_min:
        return float(event_min)
    return float(rng.uniform(float(event_min), float(event_max)))


def run_window(
    selector,
    cfg: RunConfig,
    rng: np.random.Generator,
    idx: int = 0,
) -> RestartWindow:
    """Advance a clock through one restart window, drawing an event at every tick.

    elapsed starts at 0; each step adds a random delay. An event fires only
    while elapsed < window_seconds (strict); the delay that crosses the
    boundary ends the window and records nothing.
    """
    length = float(cfg.window_seconds)
    w = RestartWindow(idx=int(idx), start_s=float(idx) * length, length_s=length)

    elapsed = 0.0
    while True:
        elapsed += sample_delay(rng, cfg.event_min, cfg.event_max)
        if elapsed >= length:
            break
        w.record(elapsed, selector.draw(rng))
    return w


# ------------------------------ Day runner ------------------------------

def simulate_day(
    table: WeightTable,
    cfg: RunConfig,
    rng: np.random.Generator,
    selector=None,
    day: int = 1,
    *,
    keep_windows: bool = False,
) -> DayResult:
    """Run all restart windows of one day and sum their counters."""
    if selector is None:
        selector = make_selector(
            table,
            cfg.policy,
            forbid_immediate_repeat=cfg.forbid_immediate_repeat,
            max_attempts=cfg.max_attempts,
        )
    if cfg.repeat_memory == "day":
        selector.reset()

    counts = table.zero_counts()
    windows: List[RestartWindow] = []
    for r in range(int(cfg.restarts_per_day)):
        if cfg.repeat_memory == "window":
            selector.reset()
        w = run_window(selector, cfg, rng, idx=r)
        for name, n in w.counts().items():
            counts[name] += n
        if keep_windows:
            windows.append(w)

    return DayResult(day=int(day), counts=counts, windows=windows)


def iter_days(
    table: WeightTable,
    cfg: RunConfig,
    rng: Optional[np.random.Generator] = None,
    *,
    limit: Optional[int] = None,
    start_day: int = 1,
) -> Iterator[DayResult]:
    """Yield simulated days one at a time.

    Stops after `limit` days (default cfg.days); limit=0 keeps going until the
    consumer stops iterating. Every day is complete before it is yielded.
    """
    cfg.validate()
    if rng is None:
        rng = np.random.default_rng(cfg.seed)
    if limit is None:
        limit = int(cfg.days)

    selector = make_selector(
        table,
        cfg.policy,
        forbid_immediate_repeat=cfg.forbid_immediate_repeat,
        max_attempts=cfg.max_attempts,
    )

    day = int(start_day)
    produced = 0
    while limit == 0 or produced < limit:
        yield simulate_day(table, cfg, rng, selector, day=day)
        day += 1
        produced += 1


def simulate_days(
    table: WeightTable,
    cfg: RunConfig,
    rng: Optional[np.random.Generator] = None,
) -> List[DayResult]:
    """Simulate cfg.days days with one random stream (seeded by cfg.seed unless rng is given)."""
    return list(iter_days(table, cfg, rng))
