import datetime as dt

import pytest

from courier.escape.catalog import Checkpoint
from courier.escape.clock import VirtualClock
from courier.escape.engine import EscapeEngine, ToolLocked
from courier.escape.phases import PhaseState
from courier.escape.storage import MemoryStorage, ProgressStore
from courier.escape.validation import FinalAssembly, RejectReason


def test_nothing_is_reachable_before_login(engine):
    verdict = engine.submit_answer("phase1", "B")
    assert verdict.reason is RejectReason.UNAUTHENTICATED
    assert engine.get_progress_snapshot()["currentPhase"] == 1
    assert engine.request_hint("phase1") is None


def test_failed_login_issues_login_hint(engine):
    verdict = engine.authenticate("Ezra", "wrong")
    assert not verdict.accepted
    assert engine.get_progress_snapshot()["hintTiers"]["login"] == 1
    assert engine.authenticate("EZRA", "RCP-2025-XMAS-COURIER").accepted
    log = engine.get_progress_snapshot()["activityLog"]
    assert log[0]["message"] == "Session initialized"


def test_phase1_accept_appends_one_entry(logged_in):
    before = len(logged_in.get_progress_snapshot()["activityLog"])
    verdict = logged_in.submit_answer(Checkpoint.PHASE1, "B")
    assert verdict.accepted
    snap = logged_in.get_progress_snapshot()
    assert snap["currentPhase"] == 2
    assert snap["completedPhases"] == [1]
    assert len(snap["activityLog"]) == before + 1


def test_phase2_free_text_is_normalised(logged_in, solve):
    solve(logged_in, 1)
    assert logged_in.submit_answer("phase2", "  SPAWN  ").accepted


def test_wrong_answers_climb_the_ladder_then_stop(logged_in):
    for expected_tier in (1, 2, 3, 3, 3):
        verdict = logged_in.submit_answer("phase1", "A")
        assert verdict.reason is RejectReason.WRONG_ANSWER
        assert logged_in.get_progress_snapshot()["hintTiers"]["phase1"] == expected_tier
    assert logged_in.get_progress_snapshot()["attempts"]["phase1"] == 5

    before = logged_in.get_progress_snapshot()
    assert logged_in.request_hint("phase1") is None
    assert logged_in.get_progress_snapshot() == before


def test_empty_input_costs_nothing(logged_in):
    before = logged_in.get_progress_snapshot()
    verdict = logged_in.submit_answer("phase1", "   ")
    assert verdict.reason is RejectReason.EMPTY_INPUT
    assert logged_in.get_progress_snapshot() == before


def test_locked_and_completed_phases_refuse_submissions(logged_in, solve):
    assert logged_in.submit_answer("phase2", "spawn").reason is RejectReason.LOCKED
    solve(logged_in, 1)
    assert logged_in.submit_answer("phase1", "B").reason is RejectReason.READ_ONLY
    assert logged_in.get_phase_state(1) is PhaseState.COMPLETED


def test_machine_language_needs_all_three(logged_in, solve):
    solve(logged_in, 2)
    assert logged_in.submit_answer("phase3A", "B").accepted
    assert logged_in.submit_answer("phase3B", "BYTE").accepted
    assert logged_in.get_phase_state(3) is PhaseState.ACTIVE
    assert logged_in.submit_answer("phase3A", "B").reason is RejectReason.READ_ONLY
    assert logged_in.submit_answer("phase3C", "a").accepted
    snap = logged_in.get_progress_snapshot()
    assert snap["currentPhase"] == 4
    assert snap["unlockedTools"] == ["byte-grouper"]


@pytest.mark.parametrize("value", ["09X43G03", "", "anything"])
def test_shard_b_locked_until_a(logged_in, solve, value):
    solve(logged_in, 4)
    verdict = logged_in.submit_answer("phase5B", value)
    assert not verdict.accepted
    assert verdict.reason is RejectReason.LOCKED
    assert verdict.message == "Verify Shard A to unlock the next location."


def test_shards_record_decoded_values(logged_in, solve):
    solve(logged_in, 5)
    snap = logged_in.get_progress_snapshot()
    assert snap["decodedShardValues"] == {"A": "1Z", "B": "09X43G03", "C": "08186005"}
    assert snap["currentPhase"] == 6
    assert "symbol-counter" in snap["unlockedTools"]


def test_final_assembly_rejections_feed_phase6_hints(logged_in, solve):
    solve(logged_in, 5)
    shards = {"A": "1Z", "B": "09X43G03", "C": "08186005"}
    wrong_order = logged_in.submit_answer("phase6", FinalAssembly(shards=shards, ordering="B"))
    assert wrong_order.reason is RejectReason.ORDERING_MISMATCH
    both = logged_in.submit_answer("phase6", {"shards": {**shards, "A": "1z"}, "ordering": "B"})
    assert both.reason is RejectReason.SHARD_MISMATCH
    assert logged_in.get_progress_snapshot()["hintTiers"]["phase6"] == 2


def test_final_acceptance_runs_reveal_once(logged_in, solve, clock):
    solve(logged_in, 6)
    assert logged_in.get_phase_state(6) is PhaseState.COMPLETED
    assert logged_in.final_screen() is None
    assert logged_in.submit_answer(
        "phase6", {"shards": {"A": "1Z", "B": "09X43G03", "C": "08186005"}, "ordering": "C"}
    ).reason is RejectReason.READ_ONLY

    clock.advance(5)
    logged_in.tick()
    assert logged_in.reveal_status()["running"]

    clock.advance(10)
    logged_in.tick()
    logged_in.tick()
    snap = logged_in.get_progress_snapshot()
    assert snap["finalSequenceRevealed"] is True
    messages = [e["message"] for e in snap["activityLog"]]
    assert messages.count("Courier path decrypted") == 1
    assert messages.count("Decryption sequence initiated") == 1

    screen = logged_in.final_screen()
    assert screen["tracking_number"] == "1Z09X43G0308186005"
    assert screen["tracking_url"] == "https://www.ups.com/track?tracknum=1Z09X43G0308186005"
    assert screen["operator"] == "Ezra"


def test_expired_at_load_freezes_once(settings, storage):
    clock = VirtualClock(settings.deadline + dt.timedelta(hours=1))
    engine = EscapeEngine(settings, ProgressStore(storage), clock=clock)
    engine.tick()
    assert engine.is_frozen()
    log = engine.get_progress_snapshot()["activityLog"]
    assert [e["message"] for e in log] == ["AUTHORIZATION WINDOW CLOSED"]

    clock.advance(30)
    engine.tick()
    assert len(engine.get_progress_snapshot()["activityLog"]) == 1


def test_freeze_blocks_submissions_but_keeps_progress(logged_in, solve, clock):
    solve(logged_in, 2)
    clock.set(logged_in.settings.deadline)
    verdict = logged_in.submit_answer("phase3A", "B")
    assert verdict.reason is RejectReason.FROZEN
    snap = logged_in.get_progress_snapshot()
    assert snap["completedPhases"] == [1, 2]
    assert logged_in.view_phase(1)["read_only"]


def test_reveal_finishes_after_deadline(logged_in, solve, clock):
    solve(logged_in, 6)
    clock.set(logged_in.settings.deadline + dt.timedelta(seconds=30))
    logged_in.tick()
    assert logged_in.is_frozen()
    assert logged_in.get_progress_snapshot()["finalSequenceRevealed"] is True


def test_progress_survives_reload(logged_in, solve, settings, storage, clock):
    solve(logged_in, 3)
    reloaded = EscapeEngine(settings, ProgressStore(storage, key=settings.storage_key), clock=clock)
    assert reloaded.get_progress_snapshot() == logged_in.get_progress_snapshot()


def test_reset_requires_session_key(logged_in, solve):
    solve(logged_in, 2)
    assert logged_in.reset_progress("nope") is False
    assert logged_in.get_progress_snapshot()["currentPhase"] == 3
    assert logged_in.reset_progress(" RCP-2025-XMAS-COURIER ") is True
    snap = logged_in.get_progress_snapshot()
    assert snap["currentPhase"] == 1 and snap["authenticated"] is False


def test_subscribers_see_every_commit(logged_in):
    seen = []
    unsubscribe = logged_in.subscribe(seen.append)
    logged_in.submit_answer("phase1", "B")
    assert seen and seen[-1]["currentPhase"] == 2
    unsubscribe()
    logged_in.request_hint("phase2")
    assert len(seen) == 1


def test_broken_subscriber_does_not_block(logged_in):
    def boom(snapshot):
        raise RuntimeError("listener bug")

    logged_in.subscribe(boom)
    assert logged_in.submit_answer("phase1", "B").accepted
    assert logged_in.get_progress_snapshot()["currentPhase"] == 2


def test_save_failure_keeps_memory_state(settings, clock):
    class ReadOnlyStorage(MemoryStorage):
        def set_item(self, key, value):
            raise OSError("disk full")

    engine = EscapeEngine(settings, ProgressStore(ReadOnlyStorage()), clock=clock)
    assert engine.authenticate("Ezra", "RCP-2025-XMAS-COURIER").accepted
    assert engine.submit_answer("phase1", "B").accepted
    assert engine.get_progress_snapshot()["currentPhase"] == 2


def test_tools_gate_on_unlock(logged_in, solve):
    with pytest.raises(ToolLocked):
        logged_in.run_tool("byte-grouper", {"text": "01000001"})
    solve(logged_in, 3)
    assert logged_in.run_tool("byte-grouper", {"text": "01000001"})["result"] == "01000001"


def test_view_phase_hides_locked_and_shard_locations(logged_in, solve):
    assert logged_in.view_phase(2) is None
    solve(logged_in, 4)
    view = logged_in.view_phase(5)
    locations = {c["key"]: c["location"] for c in view["checkpoints"]}
    assert locations["phase5A"] is not None
    assert locations["phase5B"] is None
    assert logged_in.view_phase(4)["world_link"].startswith("https://")


def test_no_hints_for_read_only_checkpoints(logged_in, solve):
    solve(logged_in, 1)
    before = logged_in.get_progress_snapshot()
    assert logged_in.request_hint("phase1") is None
    assert logged_in.request_hint("login") is None
    assert logged_in.get_progress_snapshot() == before


def test_no_hints_once_frozen(logged_in, solve, clock):
    solve(logged_in, 1)
    clock.set(logged_in.settings.deadline + dt.timedelta(seconds=1))
    logged_in.tick()
    before = logged_in.get_progress_snapshot()
    assert logged_in.request_hint("phase2") is None
    assert logged_in.get_progress_snapshot() == before
    assert before["activityLog"][0]["message"] == "AUTHORIZATION WINDOW CLOSED"


def test_rejection_carries_only_the_hint_it_issued(logged_in):
    tiers = [getattr(logged_in.submit_answer("phase1", "A").hint, "tier", None) for _ in range(4)]
    assert tiers == [1, 2, 3, None]


def test_shard_c_locked_until_b(logged_in, solve):
    solve(logged_in, 4)
    assert logged_in.submit_answer("phase5A", "1Z").accepted
    before = logged_in.get_progress_snapshot()
    verdict = logged_in.submit_answer("phase5C", "08186005")
    assert verdict.reason is RejectReason.LOCKED
    assert verdict.message == "Verify Shard B to unlock the next location."
    assert logged_in.get_progress_snapshot() == before
