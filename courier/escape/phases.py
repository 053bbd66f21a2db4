# courier/escape/phases.py
# -*- coding: utf-8 -*-
"""
Phase Graph.

A phase is Completed once it is in completedPhases, Active when it is the
current phase, Locked otherwise. complete_phase() is the only forward
transition and is idempotent:

  1. add the phase to completedPhases (with a timestamp) if missing
  2. if it was the current phase and not the last one, current += 1
  3. write one activity entry describing what changed

Nothing here ever lowers currentPhase or removes a completed phase.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Dict, List

from .activity import LogCategory, append_entry
from .catalog import (
    FINAL_PHASE,
    MACHINE_LANGUAGE_CHECKPOINTS,
    PHASES,
    Checkpoint,
    get_phase,
)
from .progress import ProgressRecord


class PhaseState(str, Enum):
    LOCKED = "locked"
    ACTIVE = "active"
    COMPLETED = "completed"


class CheckpointStatus(str, Enum):
    LOCKED = "locked"
    OPEN = "open"
    VERIFIED = "verified"


def phase_state(record: ProgressRecord, phase_id: int) -> PhaseState:
    get_phase(phase_id)
    if record.is_completed(phase_id):
        return PhaseState.COMPLETED
    if phase_id > record.current_phase:
        return PhaseState.LOCKED
    return PhaseState.ACTIVE


def is_viewable(record: ProgressRecord, phase_id: int) -> bool:
    return phase_state(record, phase_id) is not PhaseState.LOCKED


def complete_phase(record: ProgressRecord, phase_id: int, now: dt.datetime, tz) -> ProgressRecord:
    get_phase(phase_id)
    messages: List[str] = []

    if not record.is_completed(phase_id):
        stamps = dict(record.timestamps)
        stamps[f"phase{phase_id}"] = now.isoformat()
        record = record.evolve(
            completed_phases=tuple(record.completed_phases) + (phase_id,),
            timestamps=stamps,
        )
        messages.append(f"Phase {phase_id} completed")

    if phase_id == record.current_phase and phase_id < FINAL_PHASE:
        record = record.evolve(current_phase=phase_id + 1)
        messages.append(f"Phase {phase_id + 1} unlocked")

    if messages:
        record = append_entry(record, " / ".join(messages), LogCategory.SUCCESS, now, tz)
    return record


def checkpoint_status(record: ProgressRecord, checkpoint: Checkpoint) -> CheckpointStatus:
    """Status of one checkpoint inside its phase (the login checkpoint is always open)."""
    if checkpoint.phase is None:
        return CheckpointStatus.VERIFIED if record.authenticated else CheckpointStatus.OPEN

    state = phase_state(record, checkpoint.phase)
    if state is PhaseState.LOCKED:
        return CheckpointStatus.LOCKED
    if not checkpoint.is_sub_checkpoint:
        return CheckpointStatus.VERIFIED if state is PhaseState.COMPLETED else CheckpointStatus.OPEN

    if record.is_verified(checkpoint):
        return CheckpointStatus.VERIFIED
    if state is PhaseState.COMPLETED:
        # completed phase with an unverified sub-checkpoint (legacy blob): read-only
        return CheckpointStatus.VERIFIED
    phase = get_phase(checkpoint.phase)
    if phase.sequential:
        index = phase.checkpoints.index(checkpoint)
        if index > 0 and not record.is_verified(phase.checkpoints[index - 1]):
            return CheckpointStatus.LOCKED
    return CheckpointStatus.OPEN


def mark_verified(record: ProgressRecord, checkpoint: Checkpoint) -> ProgressRecord:
    if not checkpoint.is_sub_checkpoint or record.is_verified(checkpoint):
        return record
    subs = dict(record.sub_checkpoints)
    subs[checkpoint.value] = True
    return record.evolve(sub_checkpoints=subs)


def record_decoded_shard(record: ProgressRecord, letter: str, value: str) -> ProgressRecord:
    """Write-once: a shard's decoded text is kept from its first acceptance."""
    if record.decoded_shard(letter):
        return record
    decoded = dict(record.decoded_shard_values)
    decoded[letter] = value
    return record.evolve(decoded_shard_values=decoded)


def machine_language_done(record: ProgressRecord) -> bool:
    return all(record.is_verified(cp) for cp in MACHINE_LANGUAGE_CHECKPOINTS)


def navigation(record: ProgressRecord) -> List[Dict[str, Any]]:
    out = []
    for phase in PHASES:
        state = phase_state(record, phase.id)
        out.append({
            "id": phase.id,
            "name": phase.name,
            "state": state.value,
            "viewable": state is not PhaseState.LOCKED,
        })
    return out
