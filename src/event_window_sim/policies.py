from __future__ import annotations

from typing import List, Literal, Optional

import numpy as np

from .errors import ConfigError, SelectionExhausted
from .models import WeightTable


# Selection policy names (used in configs and on the command line)
PolicyName = Literal["bucket", "weighted"]
POLICY_NAMES = ("bucket", "weighted")

# Redraws allowed before a no-repeat selector gives up and accepts the repeat
DEFAULT_MAX_ATTEMPTS = 100


# ---------------------------------------------------------------------
# Primitive selectors
# ---------------------------------------------------------------------

class BucketExpansion:
    """Quantized draw: event i owns bucket_i tickets; pick one ticket uniformly.

    The ticket list is laid out in table order and built once.
    """

    def __init__(self, table: WeightTable):
        self.table = table
        expanded: List[str] = []
        for ev in table:
            expanded.extend([ev.name] * max(0, ev.bucket))
        self._expanded = expanded

    def __len__(self) -> int:
        return len(self._expanded)

    def draw(self, rng: np.random.Generator) -> str:
        if not self._expanded:
            # all buckets zero
            return self.table[0].name
        k = int(rng.random() * len(self._expanded))
        return self._expanded[k]


class WeightedAccumulation:
    """Exact draw: r ~ U[0, total); first event whose cumulative weight exceeds r."""

    def __init__(self, table: WeightTable):
        self.table = table
        self._cum = np.cumsum(np.asarray(table.chances, dtype=float))
        self._total = float(self._cum[-1])

    def draw(self, rng: np.random.Generator) -> str:
        if self._total <= 0:
            return self.table[0].name
        r = float(rng.random()) * self._total
        for ev, acc in zip(self.table, self._cum):
            if acc > r:
                return ev.name
        # round-off let r pass every cumulative weight
        return self.table[len(self.table) - 1].name


# ---------------------------------------------------------------------
# No-immediate-repeat combinator
# ---------------------------------------------------------------------

class NoRepeatSelector:
    """Wraps a primitive selector and avoids drawing the previous name twice in a row.

    Avoidance is bounded: at most `max_attempts` redraws follow the first draw.
    When every redraw returned the previous name, the repeat is accepted
    (accept_on_exhaustion=True, the default) or SelectionExhausted is raised.
    `exhausted` counts the accepted repeats. With a single distinct name there
    is nothing to avoid and the first draw is returned.
    """

    def __init__(
        self,
        inner,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        accept_on_exhaustion: bool = True,
    ):
        if max_attempts < 1:
            raise ConfigError("max_attempts must be >= 1.")
        self.inner = inner
        self.max_attempts = int(max_attempts)
        self.accept_on_exhaustion = bool(accept_on_exhaustion)
        self.last: Optional[str] = None
        self.exhausted = 0
        self._avoidable = len(inner.table.distinct_names()) > 1

    @property
    def table(self) -> WeightTable:
        return self.inner.table

    def reset(self) -> None:
        """Forget the previous draw (start of an independent stream)."""
        self.last = None

    def draw(self, rng: np.random.Generator) -> str:
        name = self.inner.draw(rng)
        if self._avoidable and self.last is not None:
            attempts = 0
            while name == self.last and attempts < self.max_attempts:
                name = self.inner.draw(rng)
                attempts += 1
            if name == self.last:
                if not self.accept_on_exhaustion:
                    raise SelectionExhausted(
                        f"Redrew {name!r} {self.max_attempts} times right after {name!r}."
                    )
                self.exhausted += 1
        self.last = name
        return name


class PlainSelector:
    """Primitive selector with the same reset()/last interface as NoRepeatSelector."""

    def __init__(self, inner):
        self.inner = inner
        self.last: Optional[str] = None
        self.exhausted = 0

    @property
    def table(self) -> WeightTable:
        return self.inner.table

    def reset(self) -> None:
        self.last = None

    def draw(self, rng: np.random.Generator) -> str:
        self.last = self.inner.draw(rng)
        return self.last


def make_selector(
    table: WeightTable,
    policy: PolicyName = "bucket",
    *,
    forbid_immediate_repeat: bool = True,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
):
    """Build the selector stack for a run."""
    if policy == "bucket":
        inner = BucketExpansion(table)
    elif policy == "weighted":
        inner = WeightedAccumulation(table)
    else:
        raise ConfigError(f"Unknown selection policy: {policy!r} (expected one of {POLICY_NAMES}).")

    if forbid_immediate_repeat:
        return NoRepeatSelector(inner, max_attempts=max_attempts)
    return PlainSelector(inner)
