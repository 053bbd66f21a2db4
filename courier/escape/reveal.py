# courier/escape/reveal.py
# -*- coding: utf-8 -*-
"""
Terminal reveal sequence.

The decrypt animation is a fixed timeline of frames computed up front:

  start delay -> labeled steps -> progress sweep 0..100% -> one character of
  the tracking value at a time -> complete

A single driver calls advance(now) (the same one-second ticker that checks
the deadline); every frame whose offset has elapsed is emitted once, in
order. With a VirtualClock the whole sequence runs without real waiting.
The sequence lives in memory only: a reload mid-sequence does not resume it.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

START_DELAY_MS = 1000
STEPS: Tuple[Tuple[str, int], ...] = (
    ("Initializing decryptor...", 800),
    ("Verifying shard integrity...", 1200),
    ("Reconstructing payload ID...", 1000),
    ("Decrypting transmission...", 800),
)
PROGRESS_STEP = 2
PROGRESS_INTERVAL_MS = 50
CHAR_INTERVAL_MS = 200
SETTLE_MS = 500


class FrameKind(str, Enum):
    STEP = "step"
    PROGRESS = "progress"
    CHAR = "char"
    COMPLETE = "complete"


@dataclass(frozen=True)
class RevealFrame:
    at_ms: int
    kind: FrameKind
    label: str = ""
    percent: int = 0
    revealed: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "at_ms": self.at_ms,
            "kind": self.kind.value,
            "label": self.label,
            "percent": self.percent,
            "revealed": self.revealed,
        }


def build_timeline(secret: str) -> List[RevealFrame]:
    frames: List[RevealFrame] = []
    t = START_DELAY_MS
    for label, delay in STEPS:
        frames.append(RevealFrame(t, FrameKind.STEP, label=label))
        t += delay

    percent = 0
    while percent < 100:
        percent += PROGRESS_STEP
        t += PROGRESS_INTERVAL_MS
        frames.append(RevealFrame(t, FrameKind.PROGRESS, percent=min(percent, 100)))

    for i in range(len(secret)):
        t += CHAR_INTERVAL_MS
        frames.append(RevealFrame(t, FrameKind.CHAR, percent=100, revealed=secret[:i + 1]))

    frames.append(RevealFrame(t + SETTLE_MS, FrameKind.COMPLETE, percent=100, revealed=secret))
    return frames


class RevealSequence:
    def __init__(self, secret: str, started_at: dt.datetime):
        self.started_at = started_at
        self.timeline = build_timeline(secret)
        self._cursor = 0

    @property
    def emitted(self) -> List[RevealFrame]:
        return self.timeline[:self._cursor]

    @property
    def done(self) -> bool:
        return self._cursor >= len(self.timeline)

    @property
    def duration_ms(self) -> int:
        return self.timeline[-1].at_ms

    def advance(self, now: dt.datetime) -> List[RevealFrame]:
        """Emit every frame that has come due since the last call."""
        elapsed = int((now - self.started_at).total_seconds() * 1000)
        due: List[RevealFrame] = []
        while self._cursor < len(self.timeline) and self.timeline[self._cursor].at_ms <= elapsed:
            due.append(self.timeline[self._cursor])
            self._cursor += 1
        return due

    def to_json(self) -> Dict[str, Any]:
        shown = self.emitted
        last = shown[-1] if shown else None
        return {
            "running": not self.done,
            "done": self.done,
            "started_at": self.started_at.isoformat(),
            "percent": last.percent if last else 0,
            "revealed": last.revealed if last else "",
            "steps": [f.label for f in shown if f.kind is FrameKind.STEP],
            "frames": len(shown),
        }
