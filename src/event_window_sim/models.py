from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple
import math

import numpy as np

from .errors import ConfigError


# Seconds in one simulated day; restart windows partition it.
DAY_SECONDS = 24 * 60 * 60

# Discretization factor for BucketExpansion: chance 0.85 -> 85 tickets.
BUCKET_SCALE = 100


# ---------------------------- EventSpec ---------------------------------


@dataclass(frozen=True)
class EventSpec:
    """A named event with a relative weight (`chance`).

    Chances are relative, they do not need to sum to 1.
    """
    name: str
    chance: float

    @property
    def bucket(self) -> int:
        """Number of tickets this event contributes under BucketExpansion."""
        return int(math.ceil(float(self.chance) * BUCKET_SCALE))


# ---------------------------- WeightTable ---------------------------------


class WeightTable:
    """Ordered, immutable collection of EventSpec.

    Order is significant: it fixes the bucket-expansion layout, the cumulative
    order of weighted draws, the first-event fallback, and the column order of
    per-day exports. Duplicate names are allowed; they add up under one name
    in count maps.
    """

    def __init__(self, events: Sequence[EventSpec]):
        events = tuple(events)
        if not events:
            raise ConfigError("Event list must contain at least one event.")
        for ev in events:
            c = float(ev.chance)
            if not math.isfinite(c) or c < 0:
                raise ConfigError(f"Event {ev.name!r}: chance must be a finite number >= 0 (got {ev.chance}).")
        self._events: Tuple[EventSpec, ...] = events

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, float]]) -> "WeightTable":
        return cls([EventSpec(name=str(n), chance=float(c)) for n, c in pairs])

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def __getitem__(self, i: int) -> EventSpec:
        return self._events[i]

    def __repr__(self) -> str:
        body = ", ".join(f"{e.name}={e.chance}" for e in self._events)
        return f"WeightTable({body})"

    @property
    def events(self) -> Tuple[EventSpec, ...]:
        return self._events

    @property
    def names(self) -> List[str]:
        return [e.name for e in self._events]

    @property
    def chances(self) -> List[float]:
        return [float(e.chance) for e in self._events]

    @property
    def total_chance(self) -> float:
        return float(sum(self.chances))

    def distinct_names(self) -> List[str]:
        """Names in first-occurrence order, duplicates removed."""
        return list(dict.fromkeys(self.names))

    def buckets(self) -> List[int]:
        """bucket_i = ceil(chance_i * 100), in table order."""
        return [e.bucket for e in self._events]

    def base_probabilities(self) -> np.ndarray:
        """Per-entry selection probability with the three-tier fallback.

        1. bucket share, if any bucket is non-zero;
        2. raw chance share, if the chances sum to something positive;
        3. uniform 1/n otherwise.
        """
        n = len(self._events)
        b = np.asarray(self.buckets(), dtype=float)
        if b.sum() > 0:
            return b / b.sum()
        c = np.asarray(self.chances, dtype=float)
        if c.sum() > 0:
            return c / c.sum()
        return np.full(n, 1.0 / n, dtype=float)

    def selection_probabilities(self, policy: str) -> np.ndarray:
        """Distribution followed by one draw of `policy` ("bucket" or "weighted")."""
        if policy == "bucket":
            return self.base_probabilities()
        if policy == "weighted":
            total = self.total_chance
            if total <= 0:
                return self.base_probabilities()
            return np.asarray(self.chances, dtype=float) / total
        raise ConfigError(f"Unknown selection policy: {policy!r}")

    def zero_counts(self) -> Dict[str, int]:
        return {name: 0 for name in self.distinct_names()}


# ---------------------------- RestartWindow ---------------------------------


@dataclass
class RestartWindow:
    """One restart window of a simulated day.

    Times are seconds. `start_s` is the window's offset inside the day
    (windows are contiguous: idx * length_s). The event log stores offsets
    relative to the window start.
    """
    idx: int
    start_s: float
    length_s: float

    # (offset_s, event name) for every event that fired inside the window
    events: List[Tuple[float, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.length_s <= 0:
            raise ValueError("length_s must be > 0")

    @property
    def end_s(self) -> float:
        return float(self.start_s + self.length_s)

    def record(self, offset_s: float, name: str) -> None:
        self.events.append((float(offset_s), str(name)))

    def counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for _, name in self.events:
            out[name] = out.get(name, 0) + 1
        return out

    def __len__(self) -> int:
        return len(self.events)


# ---------------------------- DayResult ---------------------------------


@dataclass
class DayResult:
    """Per-event counts for one simulated day (day numbers start at 1)."""
    day: int
    counts: Dict[str, int]
    windows: List[RestartWindow] = field(default_factory=list, repr=False)

    @property
    def total(self) -> int:
        return int(sum(self.counts.values()))
