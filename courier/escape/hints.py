# courier/escape/hints.py
# -*- coding: utf-8 -*-
"""
Hint Ledger.

Each checkpoint owns a fixed, ordered list of hints and a tier counter in
the Progress Record. Issuing a hint moves the counter up by one; it never
moves down (only a full reset clears it). Past the last tier nothing is
issued and the record is returned unchanged.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .activity import LogCategory, append_entry
from .catalog import Checkpoint
from .progress import ProgressRecord


@dataclass(frozen=True)
class Hint:
    tier: int
    text: str

    def to_json(self) -> Dict[str, object]:
        return {"tier": self.tier, "text": self.text}


def issue_hint(record: ProgressRecord, checkpoint: Checkpoint,
               hints: Mapping[Checkpoint, Sequence[str]],
               now: dt.datetime, tz) -> Tuple[ProgressRecord, Optional[Hint]]:
    tiers = hints.get(checkpoint) or ()
    tier = record.hint_tier(checkpoint)
    if tier >= len(tiers):
        return record, None

    hint = Hint(tier=tier + 1, text=tiers[tier])
    updated = dict(record.hint_tiers)
    updated[checkpoint.value] = hint.tier
    record = record.evolve(hint_tiers=updated)
    record = append_entry(record, f"Hint Tier {hint.tier} issued", LogCategory.HINT, now, tz)
    return record, hint


def issued_hints(record: ProgressRecord, checkpoint: Checkpoint,
                 hints: Mapping[Checkpoint, Sequence[str]]) -> List[Hint]:
    """Hints already granted for a checkpoint, lowest tier first."""
    tiers = hints.get(checkpoint) or ()
    granted = min(record.hint_tier(checkpoint), len(tiers))
    return [Hint(tier=i + 1, text=tiers[i]) for i in range(granted)]
