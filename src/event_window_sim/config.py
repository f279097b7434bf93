from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .errors import ConfigError
from .models import EventSpec, WeightTable
from .sim import RunConfig


# Accepted spellings for every setting (first match wins)
_KEYS: Dict[str, Tuple[str, ...]] = {
    "event_min": ("EventMin", "eventMin", "event_min"),
    "event_max": ("EventMax", "eventMax", "event_max"),
    "days": ("Days", "days"),
    "restarts_per_day": ("RestartsPerDay", "restartsPerDay", "restarts_per_day"),
    "policy": ("SelectionPolicy", "selectionPolicy", "selection_policy", "policy"),
    "forbid_immediate_repeat": ("ForbidImmediateRepeat", "forbidImmediateRepeat", "forbid_immediate_repeat"),
    "repeat_memory": ("RepeatMemory", "repeatMemory", "repeat_memory"),
    "max_attempts": ("MaxAttempts", "maxAttempts", "max_attempts"),
    "seed": ("Seed", "seed"),
}
_EVENTS_KEYS = ("Events", "events")
_NAME_KEYS = ("Name", "name")
_CHANCE_KEYS = ("Chance", "chance", "Weight", "weight")


def _as_int(v: Any) -> int:
    # no truncation: 1.5 and true are rejected, 3.0 and "3" are accepted
    if isinstance(v, bool) or (isinstance(v, float) and not v.is_integer()):
        raise ConfigError(f"Expected a whole number, got {v!r}.")
    return int(v)


_CASTS = {
    "event_min": float,
    "event_max": float,
    "days": _as_int,
    "restarts_per_day": _as_int,
    "policy": str,
    "repeat_memory": str,
    "max_attempts": _as_int,
    "seed": _as_int,
}

# Historical policy spellings
_POLICY_ALIASES = {
    "bucket": "bucket",
    "bucketexpansion": "bucket",
    "buckets": "bucket",
    "weighted": "weighted",
    "weightedaccumulation": "weighted",
    "accumulation": "weighted",
}


def _get(d: Mapping[str, Any], keys: Tuple[str, ...], default=None):
    for k in keys:
        if k in d:
            return d[k]
    return default


def _as_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    s = str(v).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Expected a boolean, got {v!r}.")


def normalize_policy(v: Any) -> str:
    key = str(v).strip().lower().replace("_", "").replace("-", "")
    if key not in _POLICY_ALIASES:
        raise ConfigError(f"Unknown selection policy: {v!r}")
    return _POLICY_ALIASES[key]


def _parse_event(i: int, item: Any) -> EventSpec:
    if not isinstance(item, Mapping):
        raise ConfigError(f"Event #{i}: expected an object with Name and Chance, got {type(item).__name__}.")
    name = _get(item, _NAME_KEYS)
    chance = _get(item, _CHANCE_KEYS)
    if name is None or str(name).strip() == "":
        raise ConfigError(f"Event #{i}: missing Name.")
    if chance is None:
        raise ConfigError(f"Event #{i} ({name}): missing Chance.")
    try:
        c = float(chance)
    except (TypeError, ValueError):
        raise ConfigError(f"Event #{i} ({name}): Chance is not a number ({chance!r}).") from None
    return EventSpec(name=str(name), chance=c)


def parse_config(data: Any) -> Tuple[WeightTable, Dict[str, Any]]:
    """Normalize a decoded config into (WeightTable, overrides).

    Two shapes are accepted:
      - a bare list of event objects: [{"Name": ..., "Chance": ...}, ...]
      - an object {"EventMin"?, "EventMax"?, "Events": [...]} that may also carry
        Days, RestartsPerDay, SelectionPolicy, ForbidImmediateRepeat, RepeatMemory,
        MaxAttempts and Seed.

    `overrides` only holds the settings present in the input (RunConfig field names).
    """
    overrides: Dict[str, Any] = {}

    if isinstance(data, list):
        raw_events = data
    elif isinstance(data, Mapping):
        raw_events = _get(data, _EVENTS_KEYS)
        if raw_events is None:
            raise ConfigError("Config object has no 'Events' list.")
        if not isinstance(raw_events, list):
            raise ConfigError("'Events' must be a list of event objects.")

        for field_name, keys in _KEYS.items():
            v = _get(data, keys)
            if v is None:
                continue
            try:
                if field_name == "forbid_immediate_repeat":
                    overrides[field_name] = _as_bool(v)
                elif field_name == "policy":
                    overrides[field_name] = normalize_policy(v)
                else:
                    overrides[field_name] = _CASTS[field_name](v)
            except ConfigError:
                raise
            except (TypeError, ValueError):
                raise ConfigError(f"Bad value for {keys[0]}: {v!r}") from None
    else:
        raise ConfigError(
            f"Unrecognized config shape ({type(data).__name__}); expected a list of events or an object with 'Events'."
        )

    if not raw_events:
        raise ConfigError("Event list is empty.")

    table = WeightTable([_parse_event(i, item) for i, item in enumerate(raw_events)])
    return table, overrides


def load_config(path: Union[str, Path]) -> Tuple[WeightTable, Dict[str, Any]]:
    """Read a .json or .yaml/.yml config file and normalize it (see parse_config)."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config {p}: {e}") from e

    try:
        if p.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse config {p}: {e}") from e

    if data is None:
        raise ConfigError(f"Config {p} is empty.")
    return parse_config(data)


def build_run_config(overrides: Optional[Mapping[str, Any]] = None, **cli: Any) -> RunConfig:
    """Merge settings (CLI > file > RunConfig defaults) and validate.

    CLI values of None are ignored.
    """
    known = {f.name for f in fields(RunConfig)}
    merged: Dict[str, Any] = {}
    for src in (overrides or {}, cli):
        for k, v in src.items():
            if v is None:
                continue
            if k not in known:
                raise ConfigError(f"Unknown run setting: {k!r}")
            merged[k] = v
    if "policy" in merged:
        merged["policy"] = normalize_policy(merged["policy"])

    cfg = RunConfig(**merged)
    cfg.validate()
    return cfg
