# courier/escape/settings.py
# -*- coding: utf-8 -*-
"""
Deployment constants for one escape run.

Everything here is fixed for a deployment and never edited at runtime.
`EscapeSettings.from_mapping()` reads the ESCAPE_* keys from a Flask config
(or any mapping) and parses the deadline once.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Mapping

import pytz


@dataclass(frozen=True)
class EscapeSettings:
    deadline: dt.datetime
    timezone: str = "America/Denver"
    operator_id: str = "Ezra"
    session_key: str = "RCP-2025-XMAS-COURIER"
    phase1_answer: str = "B"
    phase2_answer: str = "spawn"
    phase3a_answer: str = "B"
    phase3b_answer: str = "byte"
    phase3c_answer: str = "A"
    world_link: str = "https://example.com/redstone-courier-world.zip"
    binding_code: str = "OBSIDIAN-FLUX-7742"
    shard_a: str = "1Z"
    shard_b: str = "09X43G03"
    shard_c: str = "08186005"
    ordering_answer: str = "C"
    tracking_number: str = "1Z09X43G0308186005"
    storage_key: str = "rcp_state"
    admin_reset_enabled: bool = True

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    @property
    def shards(self) -> Mapping[str, str]:
        return {"A": self.shard_a, "B": self.shard_b, "C": self.shard_c}

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "EscapeSettings":
        def get(key: str, default: Any) -> Any:
            value = cfg.get(key)
            return default if value is None else value

        defaults = cls(deadline=parse_deadline("2025-12-27T13:00:00-07:00"))
        return cls(
            deadline=parse_deadline(get("ESCAPE_DEADLINE", defaults.deadline)),
            timezone=get("ESCAPE_TZ", defaults.timezone),
            operator_id=get("ESCAPE_OPERATOR_ID", defaults.operator_id),
            session_key=get("ESCAPE_SESSION_KEY", defaults.session_key),
            phase1_answer=get("ESCAPE_PHASE1_ANSWER", defaults.phase1_answer),
            phase2_answer=get("ESCAPE_PHASE2_ANSWER", defaults.phase2_answer),
            phase3a_answer=get("ESCAPE_PHASE3A_ANSWER", defaults.phase3a_answer),
            phase3b_answer=get("ESCAPE_PHASE3B_ANSWER", defaults.phase3b_answer),
            phase3c_answer=get("ESCAPE_PHASE3C_ANSWER", defaults.phase3c_answer),
            world_link=get("ESCAPE_WORLD_LINK", defaults.world_link),
            binding_code=get("ESCAPE_BINDING_CODE", defaults.binding_code),
            shard_a=get("ESCAPE_SHARD_A", defaults.shard_a),
            shard_b=get("ESCAPE_SHARD_B", defaults.shard_b),
            shard_c=get("ESCAPE_SHARD_C", defaults.shard_c),
            ordering_answer=get("ESCAPE_ORDERING_ANSWER", defaults.ordering_answer),
            tracking_number=get("ESCAPE_TRACKING_NUMBER", defaults.tracking_number),
            storage_key=get("ESCAPE_STORAGE_KEY", defaults.storage_key),
            admin_reset_enabled=bool(get("ESCAPE_ADMIN_RESET_ENABLED", defaults.admin_reset_enabled)),
        )


def parse_deadline(value: Any) -> dt.datetime:
    """ISO-8601 string (or datetime) -> aware UTC datetime. Naive values are read as UTC."""
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        try:
            parsed = dt.datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"ESCAPE_DEADLINE is not an ISO-8601 instant: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed.astimezone(pytz.utc)
