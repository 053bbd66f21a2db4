import pytest

from courier.escape.catalog import AnswerKind, Checkpoint
from courier.escape.validation import (
    AnswerTable,
    FinalAssembly,
    RejectReason,
    normalize,
    validate,
    validate_credentials,
    validate_final_assembly,
)


@pytest.fixture
def answers(settings):
    return AnswerTable.from_settings(settings)


def test_choice_is_trimmed_and_uppercased(answers):
    assert validate(Checkpoint.PHASE1, "  b ", answers).accepted
    verdict = validate(Checkpoint.PHASE1, "A", answers)
    assert not verdict.accepted
    assert verdict.reason is RejectReason.WRONG_ANSWER
    assert verdict.message == "REJECTED. Selection does not match expected value."


def test_text_is_case_insensitive_but_exact(answers):
    assert validate(Checkpoint.PHASE2, "SPAWN", answers).accepted
    assert validate(Checkpoint.PHASE2, " Spawn\n", answers).accepted
    assert not validate(Checkpoint.PHASE2, "spawn point", answers).accepted
    assert validate(Checkpoint.PHASE4, "obsidian-flux-7742", answers).accepted


def test_decoded_shards_are_case_sensitive(answers):
    assert validate(Checkpoint.SHARD_A, " 1Z ", answers).accepted
    verdict = validate(Checkpoint.SHARD_A, "1z", answers)
    assert verdict.reason is RejectReason.WRONG_ANSWER
    assert verdict.earns_hint


@pytest.mark.parametrize("checkpoint,message", [
    (Checkpoint.PHASE1, "No selection made."),
    (Checkpoint.PHASE2, "No input provided."),
    (Checkpoint.SHARD_B, "Decoded value required."),
])
def test_empty_input_is_not_a_wrong_answer(answers, checkpoint, message):
    verdict = validate(checkpoint, "   ", answers)
    assert verdict.reason is RejectReason.EMPTY_INPUT
    assert verdict.message == message
    assert not verdict.earns_hint


def test_assembly_checks_shards_before_ordering(answers):
    wrong_both = FinalAssembly(shards={"A": "1Z", "B": "nope", "C": "08186005"}, ordering="A")
    assert validate_final_assembly(wrong_both, answers).reason is RejectReason.SHARD_MISMATCH

    wrong_order = FinalAssembly(shards={"A": "1Z", "B": "09X43G03", "C": "08186005"}, ordering="A")
    verdict = validate_final_assembly(wrong_order, answers)
    assert verdict.reason is RejectReason.ORDERING_MISMATCH
    assert verdict.message == "REJECTED. Ordering rule incorrect."

    good = FinalAssembly.from_json({"shards": {"A": "1Z", "B": "09X43G03", "C": "08186005"}, "ordering": "c"})
    assert validate_final_assembly(good, answers).accepted


def test_assembly_requires_every_field(answers):
    missing = FinalAssembly.from_json({"shards": {"A": "1Z", "B": "09X43G03"}, "ordering": "C"})
    assert validate_final_assembly(missing, answers).reason is RejectReason.EMPTY_INPUT
    no_order = FinalAssembly.from_json({"shards": {"A": "1Z", "B": "09X43G03", "C": "08186005"}})
    assert validate_final_assembly(no_order, answers).reason is RejectReason.EMPTY_INPUT


def test_assembly_rejects_non_object_shards():
    with pytest.raises(ValueError):
        FinalAssembly.from_json({"shards": ["1Z"], "ordering": "C"})


def test_credentials(answers):
    assert validate_credentials("ezra", "RCP-2025-XMAS-COURIER", answers).accepted
    assert validate_credentials("Ezra", "rcp-2025-xmas-courier", answers).reason is RejectReason.WRONG_ANSWER
    assert validate_credentials("", "x", answers).reason is RejectReason.EMPTY_INPUT


def test_normalize_refuses_composite_kinds():
    with pytest.raises(ValueError):
        normalize(AnswerKind.ASSEMBLY, "C")


@pytest.mark.parametrize("field,wrong,reason", [
    ("A", "1Y", RejectReason.SHARD_MISMATCH),
    ("B", "09X43G04", RejectReason.SHARD_MISMATCH),
    ("C", "08186006", RejectReason.SHARD_MISMATCH),
    ("ordering", "B", RejectReason.ORDERING_MISMATCH),
])
def test_any_single_wrong_assembly_input_rejects(answers, field, wrong, reason):
    shards = {"A": "1Z", "B": "09X43G03", "C": "08186005"}
    ordering = "C"
    if field == "ordering":
        ordering = wrong
    else:
        shards[field] = wrong
    verdict = validate_final_assembly(FinalAssembly(shards=shards, ordering=ordering), answers)
    assert not verdict.accepted
    assert verdict.reason is reason
