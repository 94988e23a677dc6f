"""Explicit mutation results.

Every command either applies or is rejected with a reason. Rejections are
values, not exceptions: callers (and tests) can tell "nothing happened
because the input was invalid" apart from "the change went through".

Results are truthy when applied::

    result = add_task(project, "Paint fence", actor=alice)
    if result:
        task = result.value
    elif result.reason == RejectReason.VALIDATION_FAILURE:
        show_hint(result.message)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class Outcome(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"


class RejectReason(str, Enum):
    VALIDATION_FAILURE = "validation_failure"  # empty required text field
    NOT_FOUND = "not_found"                    # target id absent from its parent
    NOT_AUTHORIZED = "not_authorized"          # acting user lacks admin rights


@dataclass
class OperationResult:
    """Outcome of a single command."""

    operation: str
    outcome: Outcome
    value: Any = None
    reason: Optional[RejectReason] = None
    message: str = ""
    emitted: list[Any] = field(default_factory=list)

    @classmethod
    def ok(cls, operation: str, value: Any = None, emitted: list[Any] | None = None) -> "OperationResult":
        return cls(
            operation=operation,
            outcome=Outcome.APPLIED,
            value=value,
            emitted=list(emitted or []),
        )

    @classmethod
    def reject(cls, operation: str, reason: RejectReason, message: str) -> "OperationResult":
        return cls(
            operation=operation,
            outcome=Outcome.REJECTED,
            reason=reason,
            message=message,
        )

    @property
    def applied(self) -> bool:
        return self.outcome == Outcome.APPLIED

    @property
    def rejected(self) -> bool:
        return self.outcome == Outcome.REJECTED

    def __bool__(self) -> bool:
        return self.applied

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "outcome": self.outcome.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "emitted": len(self.emitted),
        }


# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------

def is_blank(text: Optional[str]) -> bool:
    """True for None, empty, or whitespace-only text."""
    return text is None or not text.strip()


def require_text(operation: str, field_name: str, text: Optional[str]) -> OperationResult | None:
    """Reject blank required text.

    Pure function: returns a rejection, or None when the field is usable.
    """
    if is_blank(text):
        return OperationResult.reject(
            operation,
            RejectReason.VALIDATION_FAILURE,
            f"{field_name} must not be empty",
        )
    return None


def not_found(operation: str, kind: str, item_id: Any) -> OperationResult:
    """Rejection for a target id missing from its parent collection."""
    return OperationResult.reject(
        operation,
        RejectReason.NOT_FOUND,
        f"{kind} not found: {item_id}",
    )


def not_authorized(operation: str, detail: str) -> OperationResult:
    return OperationResult.reject(operation, RejectReason.NOT_AUTHORIZED, detail)


def normalize_optional_text(text: Optional[str]) -> Optional[str]:
    """Trim optional text; blank becomes None."""
    if text is None:
        return None
    trimmed = text.strip()
    return trimmed or None
