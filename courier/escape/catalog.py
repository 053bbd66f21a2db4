# courier/escape/catalog.py
# -*- coding: utf-8 -*-
"""
Static catalog for the courier escape run.

- Checkpoint: every answerable unit, tagged with its phase and answer kind.
- PHASES: the six top-level phases, in order.
- build_hint_table(): ordered hint tiers per checkpoint (last tier may spell
  out the answer on purpose).
- TOOLS: workbench tools and the phase whose completion unlocks each one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .settings import EscapeSettings

FIRST_PHASE = 1
FINAL_PHASE = 6
MACHINE_LANGUAGE_PHASE = 3
SHARD_PHASE = 5
SHARD_LETTERS = ("A", "B", "C")


class AnswerKind(str, Enum):
    CREDENTIALS = "credentials"
    CHOICE = "choice"          # trim + uppercase
    TEXT = "text"              # trim + lowercase
    DECODED = "decoded"        # trim only, case-sensitive
    ASSEMBLY = "assembly"      # three shards + ordering letter


class Checkpoint(str, Enum):
    LOGIN = "login"
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    PHASE3A = "phase3A"
    PHASE3B = "phase3B"
    PHASE3C = "phase3C"
    PHASE4 = "phase4"
    SHARD_A = "phase5A"
    SHARD_B = "phase5B"
    SHARD_C = "phase5C"
    PHASE6 = "phase6"

    @property
    def phase(self) -> Optional[int]:
        return _CHECKPOINT_INFO[self].phase

    @property
    def kind(self) -> AnswerKind:
        return _CHECKPOINT_INFO[self].kind

    @property
    def accepted_message(self) -> str:
        return _CHECKPOINT_INFO[self].accepted

    @property
    def rejected_message(self) -> str:
        return _CHECKPOINT_INFO[self].rejected

    @property
    def shard(self) -> Optional[str]:
        """Shard letter for the three shard checkpoints, else None."""
        return _SHARD_OF.get(self)

    @property
    def is_sub_checkpoint(self) -> bool:
        return self in SUB_CHECKPOINTS

    @classmethod
    def parse(cls, raw: str) -> "Checkpoint":
        """Look up by persisted key (e.g. 'phase5A'); raises ValueError when unknown."""
        key = (raw or "").strip()
        for cp in cls:
            if cp.value == key or cp.value.lower() == key.lower():
                return cp
        raise ValueError(f"unknown checkpoint: {raw!r}")


@dataclass(frozen=True)
class CheckpointInfo:
    phase: Optional[int]
    kind: AnswerKind
    accepted: str
    rejected: str


_CHECKPOINT_INFO: Dict[Checkpoint, CheckpointInfo] = {
    Checkpoint.LOGIN: CheckpointInfo(
        None, AnswerKind.CREDENTIALS,
        "AUTHENTICATION SUCCESSFUL. Loading protocol...",
        "AUTHENTICATION FAILED. Credentials do not match whitelist.",
    ),
    Checkpoint.PHASE1: CheckpointInfo(
        1, AnswerKind.CHOICE,
        "ACCEPTED. Whitelist protocol confirmed.",
        "REJECTED. Selection does not match expected value.",
    ),
    Checkpoint.PHASE2: CheckpointInfo(
        2, AnswerKind.TEXT,
        "ACCEPTED. Origin assertion verified.",
        "REJECTED. Term does not match system records.",
    ),
    Checkpoint.PHASE3A: CheckpointInfo(
        3, AnswerKind.CHOICE,
        "ACCEPTED. Checkpoint 3A verified.",
        "REJECTED. Incorrect interpretation.",
    ),
    Checkpoint.PHASE3B: CheckpointInfo(
        3, AnswerKind.TEXT,
        "ACCEPTED. Checkpoint 3B verified.",
        "REJECTED. Term unrecognized.",
    ),
    Checkpoint.PHASE3C: CheckpointInfo(
        3, AnswerKind.CHOICE,
        "ACCEPTED. Checkpoint 3C verified.",
        "REJECTED. Base mismatch.",
    ),
    Checkpoint.PHASE4: CheckpointInfo(
        4, AnswerKind.TEXT,
        "ACCEPTED. World link established. Physical artifact confirmed.",
        "REJECTED. Binding code does not match registered artifact.",
    ),
    Checkpoint.SHARD_A: CheckpointInfo(
        5, AnswerKind.DECODED,
        "SHARD A VERIFIED. Location for Shard B unlocked.",
        "REJECTED. Decoded value incorrect.",
    ),
    Checkpoint.SHARD_B: CheckpointInfo(
        5, AnswerKind.DECODED,
        "SHARD B VERIFIED. Location for Shard C unlocked.",
        "REJECTED. Decoded value incorrect.",
    ),
    Checkpoint.SHARD_C: CheckpointInfo(
        5, AnswerKind.DECODED,
        "SHARD C VERIFIED. All shards collected. Proceed to final assembly.",
        "REJECTED. Decoded value incorrect.",
    ),
    Checkpoint.PHASE6: CheckpointInfo(
        6, AnswerKind.ASSEMBLY,
        "ACCEPTED. Initiating decryption sequence...",
        "REJECTED. Shard values do not match verified fragments.",
    ),
}

_SHARD_OF = {Checkpoint.SHARD_A: "A", Checkpoint.SHARD_B: "B", Checkpoint.SHARD_C: "C"}

MACHINE_LANGUAGE_CHECKPOINTS = (Checkpoint.PHASE3A, Checkpoint.PHASE3B, Checkpoint.PHASE3C)
SHARD_CHECKPOINTS = (Checkpoint.SHARD_A, Checkpoint.SHARD_B, Checkpoint.SHARD_C)
SUB_CHECKPOINTS = MACHINE_LANGUAGE_CHECKPOINTS + SHARD_CHECKPOINTS

ORDERING_REJECTED_MESSAGE = "REJECTED. Ordering rule incorrect."


# --------------------------------------------------------------------
# Phases
# --------------------------------------------------------------------

@dataclass(frozen=True)
class Phase:
    id: int
    name: str
    briefing: str
    objective: str
    checkpoints: Tuple[Checkpoint, ...]
    sequential: bool = False  # sub-checkpoints unlock strictly in order


PHASES: Tuple[Phase, ...] = (
    Phase(
        1, "WHITELIST PROTOCOL",
        "Before a courier can operate, they must prove they understand the foundational "
        "principles of the realm. This is not a test of skill, but of awareness.",
        "In every Minecraft world, there is a concept that exists even before you move. "
        "The system anchors everything to it. What is it?",
        (Checkpoint.PHASE1,),
    ),
    Phase(
        2, "ORIGIN ASSERTION",
        "Every world has a center. A point from which all journeys begin. Without naming "
        "coordinates, the system recognizes this place by a universal term.",
        "Name the place every world agrees on, even when terrain is chaos.",
        (Checkpoint.PHASE2,),
    ),
    Phase(
        3, "LANGUAGE OF MACHINES",
        "The courier network speaks in a language older than words. To decode the final "
        "payload, you must first understand how machines think.",
        "Complete all three checkpoints to prove fluency in the machine tongue.",
        MACHINE_LANGUAGE_CHECKPOINTS,
    ),
    Phase(
        4, "WORLD LINK ESTABLISHED",
        "A physical artifact has been prepared. Within a Minecraft world, at spawn, a binding "
        "code awaits. This code proves your connection to the physical delivery.",
        "Download the world file, locate the binding code at spawn, and return it here.",
        (Checkpoint.PHASE4,),
    ),
    Phase(
        5, "THREE SHARDS",
        "The tracking number is fragmented across three shards hidden in the world. Each "
        "encoded differently: binary, Base64, and crafter counting.",
        "Explore the world, find each shard location, decode all three shards to "
        "reconstruct the courier identifier.",
        SHARD_CHECKPOINTS,
        sequential=True,
    ),
    Phase(
        6, "COURIER VISION",
        "You have all three shards. The throne room marked the assembly order. Only the "
        "correct sequence will unlock the final transmission.",
        "Assemble the shards in the correct order and select the ordering rule.",
        (Checkpoint.PHASE6,),
    ),
)

PHASES_BY_ID: Dict[int, Phase] = {p.id: p for p in PHASES}


def get_phase(phase_id: int) -> Phase:
    try:
        return PHASES_BY_ID[int(phase_id)]
    except (KeyError, TypeError, ValueError):
        raise KeyError(f"unknown phase: {phase_id!r}") from None


# Where each shard is hidden; only shown once the shard before it is verified.
SHARD_LOCATIONS: Dict[str, str] = {
    "A": "From spawn, fly down and follow the path heading South to the Mill. "
         "The first shard is in the large chest in the back room.",
    "B": "Continue South from the Mill to the Village. The second shard is hidden "
         "in the fountain at its center.",
    "C": "Leave the Village heading North-East, cross the bridge to the Castle and "
         "find the Throne Room. The final shard and the assembly clue are there.",
}

SHARD_ENCODINGS: Dict[str, str] = {"A": "BINARY", "B": "BASE64", "C": "CRAFTER ENCODING"}


# --------------------------------------------------------------------
# Hints
# --------------------------------------------------------------------

def build_hint_table(settings: EscapeSettings) -> Dict[Checkpoint, Tuple[str, ...]]:
    """Ordered hint tiers per checkpoint. Later tiers reveal more."""
    return {
        Checkpoint.LOGIN: (
            "Operator ID must match whitelist.",
            "Operator ID is printed on the card.",
            f"Operator ID: {settings.operator_id}. Session Key: {settings.session_key}",
        ),
        Checkpoint.PHASE1: (
            "It is not something you craft or find.",
            "It is where your first step begins.",
            f"Choose option {settings.phase1_answer}.",
        ),
        Checkpoint.PHASE2: (
            "Minecraft uses this word constantly.",
            "It is where you appear.",
            f"Type: {settings.phase2_answer}",
        ),
        Checkpoint.PHASE3A: ("Not physical.", "Interprets the value.", f"Choose {settings.phase3a_answer}."),
        Checkpoint.PHASE3B: ("Small chunk.", "Eight bits.", f"Type: {settings.phase3b_answer}"),
        Checkpoint.PHASE3C: ("Two symbols.", "0 and 1.", f"Choose {settings.phase3c_answer}."),
        Checkpoint.PHASE4: (
            "It is visible at spawn.",
            "It is labeled BINDING CODE.",
            f"Enter exactly: {settings.binding_code}",
        ),
        Checkpoint.SHARD_A: (
            "Two symbols.",
            "Binary to digits.",
            f"Decoded shard A must be: {settings.shard_a}",
        ),
        Checkpoint.SHARD_B: (
            "Too clean to be natural.",
            "Moves data safely through systems.",
            f"This is Base64. Decoded shard B must be: {settings.shard_b}",
        ),
        Checkpoint.SHARD_C: (
            "Count like a crafter.",
            "Grouping and stacks matter.",
            f"Decoded shard C must be: {settings.shard_c}",
        ),
        Checkpoint.PHASE6: (
            "It is not random.",
            "One shard clearly belongs at the start.",
            f"Choose option {settings.ordering_answer}.",
        ),
    }


# --------------------------------------------------------------------
# Workbench tools
# --------------------------------------------------------------------

@dataclass(frozen=True)
class Tool:
    id: str
    name: str
    unlock_phase: int
    icon: str
    description: str


TOOLS: Tuple[Tool, ...] = (
    Tool("byte-grouper", "Byte Grouper", 3, "[]", "Format binary into 8-bit groups"),
    Tool("integrity-check", "Artifact Integrity", 4, "?!", "Validate binary structure"),
    Tool("base-reference", "Base Reference", 4, "#", "Number base cheat sheet"),
    Tool("symbol-counter", "Symbol Counter", 5, "+", "Character frequency analysis"),
)

TOOLS_BY_ID: Dict[str, Tool] = {t.id: t for t in TOOLS}
