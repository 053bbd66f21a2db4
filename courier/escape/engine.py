# courier/escape/engine.py
# -*- coding: utf-8 -*-
"""
EscapeEngine: the one object the presentation layer talks to.

Every public handler runs under one re-entrant lock and follows the same
shape: read the current record, run pure transitions, persist, notify
subscribers. The deadline check runs first in every handler, so the freeze
takes effect even between ticks.

Collaborator surface:
    authenticate(operator, session_key)  -> Verdict
    get_phase_state(phase_id)            -> PhaseState
    submit_answer(checkpoint, answer)    -> Verdict
    request_hint(checkpoint)             -> Hint | None
    get_progress_snapshot()              -> dict (a copy)
    reset_progress(credential)           -> bool
    is_frozen()                          -> bool
    tick()                               -> drives deadline + reveal
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .activity import LogCategory, append_entry
from .catalog import (
    FINAL_PHASE,
    MACHINE_LANGUAGE_PHASE,
    SHARD_CHECKPOINTS,
    SHARD_ENCODINGS,
    SHARD_LOCATIONS,
    SHARD_PHASE,
    AnswerKind,
    Checkpoint,
    build_hint_table,
    get_phase,
)
from .clock import Clock, SystemClock, time_remaining
from .deadline import FreezeMonitor
from .hints import Hint, issue_hint, issued_hints
from .phases import (
    CheckpointStatus,
    PhaseState,
    checkpoint_status,
    complete_phase,
    machine_language_done,
    mark_verified,
    navigation,
    phase_state,
    record_decoded_shard,
)
from .progress import ProgressRecord
from .reveal import FrameKind, RevealSequence
from .settings import EscapeSettings
from .storage import ProgressStore
from .tools import apply_tool_gate, is_tool_unlocked, run_tool, tool_listing
from .validation import (
    AnswerTable,
    FinalAssembly,
    RejectReason,
    Verdict,
    normalize,
    validate,
    validate_credentials,
    validate_final_assembly,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]
Answer = Union[str, FinalAssembly, Mapping[str, Any], None]


class ToolLocked(Exception):
    pass


class EscapeEngine:
    def __init__(self, settings: EscapeSettings, store: ProgressStore, clock: Optional[Clock] = None):
        self.settings = settings
        self.store = store
        self.clock = clock or SystemClock()
        self.tz = settings.tz
        self.answers = AnswerTable.from_settings(settings)
        self.hints = build_hint_table(settings)
        self.freeze = FreezeMonitor(settings.deadline)
        self.reveal: Optional[RevealSequence] = None
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self.record: ProgressRecord = store.load()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener(snapshot) after every committed change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, record: ProgressRecord) -> None:
        self.record = record
        if not self.store.save(record):
            logger.warning("[escape] progress kept in memory only; it will be lost on reload")
        snapshot = record.to_blob()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("[escape] progress listener failed")

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def _poll_deadline(self, now: dt.datetime) -> None:
        record, changed = self.freeze.poll(self.record, now, self.tz)
        if changed:
            self._commit(record)

    def tick(self) -> None:
        with self._lock:
            now = self.clock.now()
            self._poll_deadline(now)
            self._advance_reveal(now)

    def is_frozen(self) -> bool:
        with self._lock:
            self._poll_deadline(self.clock.now())
            return self.freeze.frozen

    def time_remaining(self):
        return time_remaining(self.clock.now(), self.settings.deadline)

    # ------------------------------------------------------------------
    # Login / reset
    # ------------------------------------------------------------------

    def authenticate(self, operator: Any, session_key: Any) -> Verdict:
        with self._lock:
            now = self.clock.now()
            self._poll_deadline(now)
            if self.record.authenticated:
                return Verdict.accept(Checkpoint.LOGIN.accepted_message)

            verdict = validate_credentials(operator, session_key, self.answers)
            if verdict.reason is RejectReason.EMPTY_INPUT:
                return verdict

            logger.info("[escape] login attempt -> %s", verdict.outcome.value)
            record = self._count_attempt(self.record, Checkpoint.LOGIN)
            if verdict.accepted:
                record = record.evolve(authenticated=True)
                record = append_entry(record, "Session initialized", LogCategory.SYSTEM, now, self.tz)
            else:
                record, hint = issue_hint(record, Checkpoint.LOGIN, self.hints, now, self.tz)
                verdict = replace(verdict, hint=hint)
            self._commit(record)
            return verdict

    def reset_progress(self, credential: Any) -> bool:
        if not self.settings.admin_reset_enabled:
            logger.warning("[escape] reset requested but disabled")
            return False
        if ("" if credential is None else str(credential).strip()) != self.settings.session_key:
            logger.warning("[escape] reset rejected: wrong key")
            return False
        with self._lock:
            self.reveal = None
            self._commit(ProgressRecord())
            logger.info("[escape] progress reset")
            return True

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def get_phase_state(self, phase_id: int) -> PhaseState:
        with self._lock:
            return phase_state(self.record, phase_id)

    def checkpoint_status(self, checkpoint: Union[Checkpoint, str]) -> CheckpointStatus:
        with self._lock:
            return checkpoint_status(self.record, _as_checkpoint(checkpoint))

    def submit_answer(self, checkpoint: Union[Checkpoint, str], answer: Answer) -> Verdict:
        cp = _as_checkpoint(checkpoint)
        if cp is Checkpoint.LOGIN:
            raise ValueError("use authenticate() for the login checkpoint")

        with self._lock:
            now = self.clock.now()
            self._poll_deadline(now)

            blocked = self._blocked(cp)
            if blocked is not None:
                return blocked

            if cp.kind is AnswerKind.ASSEMBLY:
                verdict = validate_final_assembly(_as_assembly(answer), self.answers)
            else:
                if not isinstance(answer, (str, type(None))):
                    raise ValueError(f"{cp.value} expects a text answer")
                verdict = validate(cp, answer, self.answers)
            if verdict.reason is RejectReason.EMPTY_INPUT:
                return verdict

            logger.info("[escape] %s attempt -> %s", cp.value, verdict.reason.value if verdict.reason else "accepted")
            record = self._count_attempt(self.record, cp)
            if verdict.accepted:
                record = self._accept(record, cp, answer, now)
            elif verdict.earns_hint:
                record, hint = issue_hint(record, cp, self.hints, now, self.tz)
                verdict = replace(verdict, hint=hint)
            self._commit(record)

            if verdict.accepted and cp is Checkpoint.PHASE6:
                self._start_reveal(now)
            return verdict

    def _blocked(self, cp: Checkpoint) -> Optional[Verdict]:
        if not self.record.authenticated:
            return Verdict.reject(RejectReason.UNAUTHENTICATED, "Authentication required.")
        if self.freeze.frozen:
            return Verdict.reject(RejectReason.FROZEN, "AUTHORIZATION WINDOW CLOSED. Submissions are read-only.")
        status = checkpoint_status(self.record, cp)
        if status is CheckpointStatus.LOCKED:
            if cp in SHARD_CHECKPOINTS[1:] and phase_state(self.record, SHARD_PHASE) is not PhaseState.LOCKED:
                previous = SHARD_CHECKPOINTS[SHARD_CHECKPOINTS.index(cp) - 1]
                return Verdict.reject(
                    RejectReason.LOCKED,
                    f"Verify Shard {previous.shard} to unlock the next location.",
                )
            return Verdict.reject(RejectReason.LOCKED, f"Phase {cp.phase} is locked.")
        if status is CheckpointStatus.VERIFIED:
            return Verdict.reject(RejectReason.READ_ONLY, "Already verified. Read-only.")
        return None

    def _count_attempt(self, record: ProgressRecord, cp: Checkpoint) -> ProgressRecord:
        attempts = dict(record.attempts)
        attempts[cp.value] = int(attempts.get(cp.value, 0)) + 1
        return record.evolve(attempts=attempts)

    def _accept(self, record: ProgressRecord, cp: Checkpoint, answer: Answer, now: dt.datetime) -> ProgressRecord:
        if cp.phase == MACHINE_LANGUAGE_PHASE:
            record = mark_verified(record, cp)
            if machine_language_done(record):
                record = complete_phase(record, MACHINE_LANGUAGE_PHASE, now, self.tz)
        elif cp.shard is not None:
            record = mark_verified(record, cp)
            record = record_decoded_shard(record, cp.shard, normalize(AnswerKind.DECODED, answer))
            if all(record.is_verified(s) for s in SHARD_CHECKPOINTS):
                record = complete_phase(record, SHARD_PHASE, now, self.tz)
        elif cp.phase is not None:
            record = complete_phase(record, cp.phase, now, self.tz)
        else:
            raise ValueError(f"unhandled checkpoint {cp.value}")
        return apply_tool_gate(record, now, self.tz)

    # ------------------------------------------------------------------
    # Hints
    # ------------------------------------------------------------------

    def request_hint(self, checkpoint: Union[Checkpoint, str]) -> Optional[Hint]:
        cp = _as_checkpoint(checkpoint)
        with self._lock:
            now = self.clock.now()
            self._poll_deadline(now)
            # hints are refused wherever a submission would be
            if self.freeze.frozen:
                return None
            if cp is not Checkpoint.LOGIN and not self.record.authenticated:
                return None
            if checkpoint_status(self.record, cp) in (CheckpointStatus.LOCKED, CheckpointStatus.VERIFIED):
                return None
            record, hint = issue_hint(self.record, cp, self.hints, now, self.tz)
            if hint is not None:
                self._commit(record)
            return hint

    def issued_hints(self, checkpoint: Union[Checkpoint, str]) -> List[Hint]:
        with self._lock:
            return issued_hints(self.record, _as_checkpoint(checkpoint), self.hints)

    # ------------------------------------------------------------------
    # Reveal
    # ------------------------------------------------------------------

    def _start_reveal(self, now: dt.datetime) -> None:
        if self.record.final_sequence_revealed or self.reveal is not None:
            return
        self.reveal = RevealSequence(self.settings.tracking_number, now)
        logger.info("[escape] decryption sequence started")
        self._commit(append_entry(self.record, "Decryption sequence initiated", LogCategory.SYSTEM, now, self.tz))

    def _advance_reveal(self, now: dt.datetime) -> None:
        # runs even when frozen: a sequence already under way always finishes
        if self.reveal is None or self.reveal.done:
            return
        frames = self.reveal.advance(now)
        if any(f.kind is FrameKind.COMPLETE for f in frames) and not self.record.final_sequence_revealed:
            record = self.record.evolve(final_sequence_revealed=True)
            record = append_entry(record, "Courier path decrypted", LogCategory.SUCCESS, now, self.tz)
            logger.info("[escape] decryption sequence complete")
            self._commit(record)

    def reveal_status(self) -> Dict[str, Any]:
        self.tick()
        with self._lock:
            if self.reveal is None:
                return {
                    "running": False,
                    "done": self.record.final_sequence_revealed,
                    "percent": 100 if self.record.final_sequence_revealed else 0,
                    "revealed": "",
                    "steps": [],
                    "frames": 0,
                }
            return self.reveal.to_json()

    def final_screen(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if not self.record.final_sequence_revealed:
                return None
            tracking = self.settings.tracking_number
            return {
                "operator": self.settings.operator_id,
                "tracking_number": tracking,
                "tracking_url": f"https://www.ups.com/track?tracknum={tracking}",
                "completed_at": self.record.timestamps.get(f"phase{FINAL_PHASE}"),
            }

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def get_progress_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.record.to_blob()

    def navigation(self) -> List[Dict[str, Any]]:
        with self._lock:
            return navigation(self.record)

    def view_phase(self, phase_id: int) -> Optional[Dict[str, Any]]:
        """Render data for one phase, or None while it is locked."""
        phase = get_phase(phase_id)
        frozen = self.is_frozen()
        with self._lock:
            state = phase_state(self.record, phase.id)
            if state is PhaseState.LOCKED:
                return None
            checkpoints = []
            for cp in phase.checkpoints:
                status = checkpoint_status(self.record, cp)
                entry: Dict[str, Any] = {
                    "key": cp.value,
                    "kind": cp.kind.value,
                    "status": status.value,
                    "hints": [h.to_json() for h in issued_hints(self.record, cp, self.hints)],
                    "attempts": int(self.record.attempts.get(cp.value, 0)),
                }
                if cp.shard is not None:
                    entry["encoding"] = SHARD_ENCODINGS[cp.shard]
                    entry["location"] = SHARD_LOCATIONS[cp.shard] if status is not CheckpointStatus.LOCKED else None
                    entry["decoded"] = self.record.decoded_shard(cp.shard) or None
                checkpoints.append(entry)

            view: Dict[str, Any] = {
                "id": phase.id,
                "name": phase.name,
                "briefing": phase.briefing,
                "objective": phase.objective,
                "state": state.value,
                "read_only": state is PhaseState.COMPLETED or frozen,
                "checkpoints": checkpoints,
            }
            if phase.id == 4:
                view["world_link"] = self.settings.world_link
            if phase.id == FINAL_PHASE:
                view["prior_shards"] = dict(self.record.decoded_shard_values)
            return view

    # ------------------------------------------------------------------
    # Workbench
    # ------------------------------------------------------------------

    def tools(self) -> List[Dict[str, Any]]:
        with self._lock:
            return tool_listing(self.record)

    def run_tool(self, tool_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        with self._lock:
            unlocked = self.record.authenticated and is_tool_unlocked(self.record, tool_id)
        if not unlocked:
            raise ToolLocked(tool_id)
        return run_tool(tool_id, dict(payload))


def _as_checkpoint(value: Union[Checkpoint, str]) -> Checkpoint:
    return value if isinstance(value, Checkpoint) else Checkpoint.parse(value)


def _as_assembly(answer: Answer) -> FinalAssembly:
    if isinstance(answer, FinalAssembly):
        return answer
    if isinstance(answer, Mapping):
        return FinalAssembly.from_json(answer)
    raise ValueError("final assembly expects shards A, B, C and an ordering letter")
