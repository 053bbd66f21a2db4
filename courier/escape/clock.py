# courier/escape/clock.py
# -*- coding: utf-8 -*-
"""Clock Source: current time, deadline comparisons, urgency level."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import pytz


def utcnow() -> dt.datetime:
    return dt.datetime.now(pytz.utc)


class Clock:
    """Anything with a now() that returns an aware datetime."""

    def now(self) -> dt.datetime:  # pragma: no cover - interface
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> dt.datetime:
        return utcnow()


class VirtualClock(Clock):
    """Manually advanced clock for tests and replay."""

    def __init__(self, start: Optional[dt.datetime] = None):
        start = start or utcnow()
        if start.tzinfo is None:
            start = pytz.utc.localize(start)
        self._now = start

    def now(self) -> dt.datetime:
        return self._now

    def set(self, when: dt.datetime) -> None:
        if when.tzinfo is None:
            when = pytz.utc.localize(when)
        self._now = when

    def advance(self, seconds: float = 0.0, *, ms: float = 0.0) -> dt.datetime:
        self._now = self._now + dt.timedelta(seconds=seconds, milliseconds=ms)
        return self._now


class Urgency(str, Enum):
    FULL = "full"          # more than 48h left
    WARNING = "warning"    # 12h - 48h
    CRITICAL = "critical"  # under 12h


_HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class TimeRemaining:
    expired: bool
    days: int
    hours: int
    minutes: int
    seconds: int
    total_ms: int

    @property
    def urgency(self) -> Urgency:
        hours_left = self.total_ms / _HOUR_MS
        if hours_left > 48:
            return Urgency.FULL
        if hours_left > 12:
            return Urgency.WARNING
        return Urgency.CRITICAL

    def to_json(self) -> Dict[str, Any]:
        return {
            "expired": self.expired,
            "days": self.days,
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
            "total_ms": self.total_ms,
            "urgency": self.urgency.value,
        }


def time_remaining(now: dt.datetime, deadline: dt.datetime) -> TimeRemaining:
    total = int((deadline - now).total_seconds() * 1000)
    if total <= 0:
        return TimeRemaining(True, 0, 0, 0, 0, 0)
    secs = total // 1000
    return TimeRemaining(
        expired=False,
        days=secs // 86400,
        hours=(secs % 86400) // 3600,
        minutes=(secs % 3600) // 60,
        seconds=secs % 60,
        total_ms=total,
    )


def is_expired(now: dt.datetime, deadline: dt.datetime) -> bool:
    return now >= deadline


def urgency(now: dt.datetime, deadline: dt.datetime) -> Urgency:
    return time_remaining(now, deadline).urgency
