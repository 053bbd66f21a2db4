# courier/escape/activity.py
"""Activity Log: newest-first, capped at LOG_CAPACITY entries."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from .progress import LOG_CAPACITY, ActivityEntry, ProgressRecord


class LogCategory(str, Enum):
    SYSTEM = "system"
    SUCCESS = "success"
    HINT = "hint"
    WARNING = "warning"


def log_time(now: dt.datetime, tz) -> str:
    """24h HH:MM in the deployment's display zone."""
    return now.astimezone(tz).strftime("%H:%M")


def append_entry(record: ProgressRecord, message: str, category: LogCategory,
                 now: dt.datetime, tz) -> ProgressRecord:
    entry = ActivityEntry(time=log_time(now, tz), message=message, category=LogCategory(category).value)
    # oldest entries fall off the end
    return record.evolve(activity_log=((entry,) + tuple(record.activity_log))[:LOG_CAPACITY])
