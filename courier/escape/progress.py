# courier/escape/progress.py
# -*- coding: utf-8 -*-
"""
Progress Record: the single persisted state of one participant.

The record is immutable; transitions build a new one with `evolve()`.
On load the persisted blob is shallow-merged over the defaults, so fields
added later simply take their default value. Keys this version does not
know about are carried in `extras` and written back untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .catalog import FINAL_PHASE, FIRST_PHASE, SHARD_LETTERS, SUB_CHECKPOINTS, Checkpoint

logger = logging.getLogger(__name__)

LOG_CAPACITY = 12


def default_hint_tiers() -> Dict[str, int]:
    return {cp.value: 0 for cp in Checkpoint}


def default_sub_checkpoints() -> Dict[str, bool]:
    return {cp.value: False for cp in SUB_CHECKPOINTS}


def default_decoded_shards() -> Dict[str, str]:
    return {letter: "" for letter in SHARD_LETTERS}


@dataclass(frozen=True)
class ActivityEntry:
    time: str
    message: str
    category: str

    def to_json(self) -> Dict[str, str]:
        return {"time": self.time, "message": self.message, "category": self.category}


@dataclass(frozen=True)
class ProgressRecord:
    authenticated: bool = False
    current_phase: int = FIRST_PHASE
    completed_phases: Tuple[int, ...] = ()
    hint_tiers: Mapping[str, int] = field(default_factory=default_hint_tiers)
    activity_log: Tuple[ActivityEntry, ...] = ()
    unlocked_tools: Tuple[str, ...] = ()
    sub_checkpoints: Mapping[str, bool] = field(default_factory=default_sub_checkpoints)
    decoded_shard_values: Mapping[str, str] = field(default_factory=default_decoded_shards)
    final_sequence_revealed: bool = False
    timestamps: Mapping[str, str] = field(default_factory=dict)
    attempts: Mapping[str, int] = field(default_factory=dict)
    extras: Mapping[str, Any] = field(default_factory=dict)

    # ---- reads ----

    def is_completed(self, phase_id: int) -> bool:
        return phase_id in self.completed_phases

    def hint_tier(self, checkpoint: Checkpoint) -> int:
        return int(self.hint_tiers.get(checkpoint.value, 0) or 0)

    def is_verified(self, checkpoint: Checkpoint) -> bool:
        return bool(self.sub_checkpoints.get(checkpoint.value, False))

    def decoded_shard(self, letter: str) -> str:
        return self.decoded_shard_values.get(letter, "") or ""

    def evolve(self, **changes: Any) -> "ProgressRecord":
        return replace(self, **changes)

    # ---- serialization ----

    def to_blob(self) -> Dict[str, Any]:
        blob: Dict[str, Any] = dict(self.extras)
        blob.update({
            "authenticated": self.authenticated,
            "currentPhase": self.current_phase,
            "completedPhases": list(self.completed_phases),
            "hintTiers": dict(self.hint_tiers),
            "activityLog": [e.to_json() for e in self.activity_log],
            "unlockedTools": list(self.unlocked_tools),
            "subCheckpoints": dict(self.sub_checkpoints),
            "decodedShardValues": dict(self.decoded_shard_values),
            "finalSequenceRevealed": self.final_sequence_revealed,
            "timestamps": dict(self.timestamps),
            "attempts": dict(self.attempts),
        })
        return blob

    def dumps(self) -> str:
        return json.dumps(self.to_blob(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_blob(cls, blob: Mapping[str, Any]) -> "ProgressRecord":
        """Shallow-merge a persisted blob over the defaults."""
        defaults = cls()
        merged: Dict[str, Any] = {**defaults.to_blob(), **dict(blob)}
        extras = {k: v for k, v in merged.items() if k not in _KNOWN_KEYS}

        def take(key: str, coerce, default):
            try:
                return coerce(merged[key])
            except (TypeError, ValueError, AttributeError, KeyError) as e:
                logger.warning("progress field %s malformed (%s); using default", key, e)
                return default

        return cls(
            authenticated=take("authenticated", _as_bool, defaults.authenticated),
            current_phase=take("currentPhase", _as_phase, defaults.current_phase),
            completed_phases=take("completedPhases", _as_phase_tuple, defaults.completed_phases),
            hint_tiers=take("hintTiers", _as_int_map, defaults.hint_tiers),
            activity_log=take("activityLog", _as_log, defaults.activity_log),
            unlocked_tools=take("unlockedTools", _as_str_tuple, defaults.unlocked_tools),
            sub_checkpoints=take("subCheckpoints", _as_bool_map, defaults.sub_checkpoints),
            decoded_shard_values=take("decodedShardValues", _as_str_map, defaults.decoded_shard_values),
            final_sequence_revealed=take("finalSequenceRevealed", _as_bool, defaults.final_sequence_revealed),
            timestamps=take("timestamps", _as_str_map, defaults.timestamps),
            attempts=take("attempts", _as_int_map, defaults.attempts),
            extras=extras,
        )

    @classmethod
    def loads(cls, text: Optional[str]) -> "ProgressRecord":
        """Parse a stored blob; raises ValueError if it is not a JSON object."""
        data = json.loads(text or "")
        if not isinstance(data, dict):
            raise ValueError(f"persisted progress is {type(data).__name__}, not an object")
        return cls.from_blob(data)


_KNOWN_KEYS = frozenset({
    "authenticated", "currentPhase", "completedPhases", "hintTiers", "activityLog",
    "unlockedTools", "subCheckpoints", "decodedShardValues", "finalSequenceRevealed",
    "timestamps", "attempts",
})


# ---- field coercion (raise to fall back to the default) ----

def _as_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    raise TypeError(f"expected bool, got {type(v).__name__}")


def _as_phase(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"expected int, got {type(v).__name__}")
    return max(FIRST_PHASE, min(FINAL_PHASE, v))


def _as_phase_tuple(v: Any) -> Tuple[int, ...]:
    if not isinstance(v, list):
        raise TypeError("expected list")
    out = []
    for x in v:
        if isinstance(x, int) and not isinstance(x, bool) and FIRST_PHASE <= x <= FINAL_PHASE and x not in out:
            out.append(x)
    return tuple(out)


def _as_str_tuple(v: Any) -> Tuple[str, ...]:
    if not isinstance(v, list):
        raise TypeError("expected list")
    out = []
    for x in v:
        if isinstance(x, str) and x not in out:
            out.append(x)
    return tuple(out)


def _as_int_map(v: Any) -> Dict[str, int]:
    if not isinstance(v, dict):
        raise TypeError("expected object")
    return {str(k): int(x) for k, x in v.items() if not isinstance(x, bool)}


def _as_bool_map(v: Any) -> Dict[str, bool]:
    if not isinstance(v, dict):
        raise TypeError("expected object")
    return {str(k): bool(x) for k, x in v.items()}


def _as_str_map(v: Any) -> Dict[str, str]:
    if not isinstance(v, dict):
        raise TypeError("expected object")
    return {str(k): "" if x is None else str(x) for k, x in v.items()}


def _as_log(v: Any) -> Tuple[ActivityEntry, ...]:
    if not isinstance(v, list):
        raise TypeError("expected list")
    entries = []
    for item in v[:LOG_CAPACITY]:
        if not isinstance(item, dict):
            continue
        entries.append(ActivityEntry(
            time=str(item.get("time") or ""),
            message=str(item.get("message") or ""),
            category=str(item.get("category") or item.get("type") or "system"),
        ))
    return tuple(entries)
