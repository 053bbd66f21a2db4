# courier/escape/validation.py
# -*- coding: utf-8 -*-
"""
Validation Engine: pure answer checks against a fixed answer table.

Normalization before comparing:
- choice:  trim + uppercase, compared to one letter
- text:    trim + lowercase, exact match (no fuzzy matching)
- decoded: trim only, case-sensitive
- final assembly: all three shards (re-checked here, not trusted from
  earlier verification) AND the ordering letter. A shard mismatch is
  reported before an ordering mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .catalog import ORDERING_REJECTED_MESSAGE, SHARD_LETTERS, AnswerKind, Checkpoint
from .hints import Hint
from .settings import EscapeSettings


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectReason(str, Enum):
    WRONG_ANSWER = "wrong_answer"
    SHARD_MISMATCH = "shard_mismatch"
    ORDERING_MISMATCH = "ordering_mismatch"
    EMPTY_INPUT = "empty_input"
    LOCKED = "locked"
    READ_ONLY = "read_only"
    FROZEN = "frozen"
    UNAUTHENTICATED = "unauthenticated"


# Only a judged-wrong answer earns a hint.
HINT_REASONS = frozenset({
    RejectReason.WRONG_ANSWER,
    RejectReason.SHARD_MISMATCH,
    RejectReason.ORDERING_MISMATCH,
})


@dataclass(frozen=True)
class Verdict:
    outcome: Outcome
    message: str
    reason: Optional[RejectReason] = None
    hint: Optional[Hint] = None  # the tier this rejection issued, if any

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPTED

    @property
    def earns_hint(self) -> bool:
        return self.reason in HINT_REASONS

    @classmethod
    def accept(cls, message: str) -> "Verdict":
        return cls(Outcome.ACCEPTED, message)

    @classmethod
    def reject(cls, reason: RejectReason, message: str) -> "Verdict":
        return cls(Outcome.REJECTED, message, reason)

    def to_json(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "outcome": self.outcome.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }


@dataclass(frozen=True)
class FinalAssembly:
    shards: Mapping[str, str]
    ordering: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "FinalAssembly":
        shards = data.get("shards") or {}
        if not isinstance(shards, Mapping):
            raise ValueError("shards must be an object with A, B and C")
        return cls(
            shards={k: str(shards.get(k) or "") for k in SHARD_LETTERS},
            ordering=str(data.get("ordering") or ""),
        )


@dataclass(frozen=True)
class AnswerTable:
    expected: Mapping[Checkpoint, str]
    shards: Mapping[str, str]
    ordering: str
    operator_id: str
    session_key: str

    @classmethod
    def from_settings(cls, settings: EscapeSettings) -> "AnswerTable":
        return cls(
            expected={
                Checkpoint.PHASE1: settings.phase1_answer,
                Checkpoint.PHASE2: settings.phase2_answer,
                Checkpoint.PHASE3A: settings.phase3a_answer,
                Checkpoint.PHASE3B: settings.phase3b_answer,
                Checkpoint.PHASE3C: settings.phase3c_answer,
                Checkpoint.PHASE4: settings.binding_code,
                Checkpoint.SHARD_A: settings.shard_a,
                Checkpoint.SHARD_B: settings.shard_b,
                Checkpoint.SHARD_C: settings.shard_c,
            },
            shards=dict(settings.shards),
            ordering=settings.ordering_answer,
            operator_id=settings.operator_id,
            session_key=settings.session_key,
        )


def normalize(kind: AnswerKind, raw: Any) -> str:
    text = "" if raw is None else str(raw).strip()
    if kind is AnswerKind.CHOICE:
        return text.upper()
    if kind is AnswerKind.TEXT:
        return text.lower()
    if kind is AnswerKind.DECODED:
        return text
    raise ValueError(f"{kind.value} answers are not single values")


def validate(checkpoint: Checkpoint, raw: Any, answers: AnswerTable) -> Verdict:
    """Judge one single-value checkpoint answer."""
    kind = checkpoint.kind
    if kind in (AnswerKind.CREDENTIALS, AnswerKind.ASSEMBLY):
        raise ValueError(f"{checkpoint.value} is not a single-value checkpoint")

    got = normalize(kind, raw)
    if not got:
        return Verdict.reject(RejectReason.EMPTY_INPUT, _empty_message(kind))

    want = normalize(kind, answers.expected[checkpoint])
    if got == want:
        return Verdict.accept(checkpoint.accepted_message)
    return Verdict.reject(RejectReason.WRONG_ANSWER, checkpoint.rejected_message)


def validate_final_assembly(submission: FinalAssembly, answers: AnswerTable) -> Verdict:
    shards = {k: (submission.shards.get(k) or "").strip() for k in SHARD_LETTERS}
    ordering = normalize(AnswerKind.CHOICE, submission.ordering)

    if not all(shards.values()):
        return Verdict.reject(RejectReason.EMPTY_INPUT, "All shard values are required.")
    if not ordering:
        return Verdict.reject(RejectReason.EMPTY_INPUT, "Ordering rule selection required.")

    if any(shards[k] != answers.shards[k] for k in SHARD_LETTERS):
        return Verdict.reject(RejectReason.SHARD_MISMATCH, Checkpoint.PHASE6.rejected_message)
    if ordering != normalize(AnswerKind.CHOICE, answers.ordering):
        return Verdict.reject(RejectReason.ORDERING_MISMATCH, ORDERING_REJECTED_MESSAGE)
    return Verdict.accept(Checkpoint.PHASE6.accepted_message)


def validate_credentials(operator: Any, session_key: Any, answers: AnswerTable) -> Verdict:
    op = "" if operator is None else str(operator).strip()
    key = "" if session_key is None else str(session_key).strip()
    if not op or not key:
        return Verdict.reject(RejectReason.EMPTY_INPUT, "Both fields are required.")
    if op.lower() == answers.operator_id.lower() and key == answers.session_key:
        return Verdict.accept(Checkpoint.LOGIN.accepted_message)
    return Verdict.reject(RejectReason.WRONG_ANSWER, Checkpoint.LOGIN.rejected_message)


def _empty_message(kind: AnswerKind) -> str:
    if kind is AnswerKind.CHOICE:
        return "No selection made."
    if kind is AnswerKind.DECODED:
        return "Decoded value required."
    return "No input provided."
