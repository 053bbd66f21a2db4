from courier.escape.catalog import Checkpoint, build_hint_table
from courier.escape.hints import issue_hint, issued_hints
from courier.escape.phases import (
    CheckpointStatus,
    PhaseState,
    checkpoint_status,
    complete_phase,
    mark_verified,
    navigation,
    phase_state,
    record_decoded_shard,
)
from courier.escape.progress import ProgressRecord


def test_fresh_record_states():
    record = ProgressRecord()
    assert phase_state(record, 1) is PhaseState.ACTIVE
    assert phase_state(record, 2) is PhaseState.LOCKED
    assert [n["viewable"] for n in navigation(record)] == [True, False, False, False, False, False]


def test_complete_phase_advances_once(clock, settings):
    record = complete_phase(ProgressRecord(), 1, clock.now(), settings.tz)
    assert record.current_phase == 2
    assert record.completed_phases == (1,)
    assert len(record.activity_log) == 1
    assert record.activity_log[0].message == "Phase 1 completed / Phase 2 unlocked"
    assert "phase1" in record.timestamps

    again = complete_phase(record, 1, clock.now(), settings.tz)
    assert again == record


def test_final_phase_does_not_advance(clock, settings):
    record = ProgressRecord(current_phase=6, completed_phases=(1, 2, 3, 4, 5))
    record = complete_phase(record, 6, clock.now(), settings.tz)
    assert record.current_phase == 6
    assert record.is_completed(6)


def test_shards_unlock_in_order():
    record = ProgressRecord(current_phase=5, completed_phases=(1, 2, 3, 4))
    assert checkpoint_status(record, Checkpoint.SHARD_A) is CheckpointStatus.OPEN
    assert checkpoint_status(record, Checkpoint.SHARD_B) is CheckpointStatus.LOCKED
    record = mark_verified(record, Checkpoint.SHARD_A)
    assert checkpoint_status(record, Checkpoint.SHARD_A) is CheckpointStatus.VERIFIED
    assert checkpoint_status(record, Checkpoint.SHARD_B) is CheckpointStatus.OPEN
    assert checkpoint_status(record, Checkpoint.SHARD_C) is CheckpointStatus.LOCKED


def test_machine_language_checkpoints_open_together():
    record = ProgressRecord(current_phase=3, completed_phases=(1, 2))
    for cp in (Checkpoint.PHASE3A, Checkpoint.PHASE3B, Checkpoint.PHASE3C):
        assert checkpoint_status(record, cp) is CheckpointStatus.OPEN


def test_decoded_shard_is_write_once():
    record = record_decoded_shard(ProgressRecord(), "A", "1Z")
    record = record_decoded_shard(record, "A", "other")
    assert record.decoded_shard("A") == "1Z"


def test_hint_ladder_stops_at_last_tier(clock, settings):
    hints = build_hint_table(settings)
    record = ProgressRecord()
    texts = []
    for _ in range(3):
        record, hint = issue_hint(record, Checkpoint.PHASE2, hints, clock.now(), settings.tz)
        texts.append(hint.text)
    assert texts[-1] == "Type: spawn"
    assert record.hint_tier(Checkpoint.PHASE2) == 3

    same, hint = issue_hint(record, Checkpoint.PHASE2, hints, clock.now(), settings.tz)
    assert hint is None
    assert same is record
    assert [h.tier for h in issued_hints(record, Checkpoint.PHASE2, hints)] == [1, 2, 3]
