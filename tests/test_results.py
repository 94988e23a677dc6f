"""Test operation results and validation rules."""
from patterns.results import (
    OperationResult,
    Outcome,
    RejectReason,
    is_blank,
    normalize_optional_text,
    not_found,
    require_text,
)


def test_ok_result_is_truthy():
    result = OperationResult.ok("add_task", value=42, emitted=["m1"])
    assert result
    assert result.applied and not result.rejected
    assert result.outcome == Outcome.APPLIED
    assert result.value == 42
    assert result.emitted == ["m1"]


def test_rejected_result_is_falsy():
    result = OperationResult.reject("add_task", RejectReason.VALIDATION_FAILURE, "title must not be empty")
    assert not result
    assert result.rejected
    assert result.value is None
    assert result.emitted == []


def test_blank_detection():
    assert is_blank(None)
    assert is_blank("")
    assert is_blank("   \n\t")
    assert not is_blank(" x ")


def test_require_text():
    assert require_text("op", "title", "Paint") is None
    rejection = require_text("op", "title", "  ")
    assert rejection.reason == RejectReason.VALIDATION_FAILURE
    assert "title" in rejection.message


def test_not_found_message():
    result = not_found("delete_task", "task", "abc")
    assert result.reason == RejectReason.NOT_FOUND
    assert result.message == "task not found: abc"


def test_normalize_optional_text():
    assert normalize_optional_text(None) is None
    assert normalize_optional_text("   ") is None
    assert normalize_optional_text("  note ") == "note"


def test_to_dict():
    data = OperationResult.reject("remove_member", RejectReason.NOT_AUTHORIZED, "nope").to_dict()
    assert data == {
        "operation": "remove_member",
        "outcome": "rejected",
        "reason": "not_authorized",
        "message": "nope",
        "emitted": 0,
    }
