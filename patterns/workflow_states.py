"""Enum-based task status state machine.

Defines task states as a Python enum with explicit transition validation.
The task lifecycle is a two-state toggle: every state is reachable from
the other and there is no terminal state.
"""

from enum import Enum


# ---------------------------------------------------------------------------
# State definitions
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Task lifecycle states."""

    PENDING = "pending"
    DONE = "done"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ---------------------------------------------------------------------------
# Transition rules
# ---------------------------------------------------------------------------

# Allowed transitions: {current_state: [allowed_next_states]}
_TASK_TRANSITIONS: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.PENDING: [TaskStatus.DONE],
    TaskStatus.DONE: [TaskStatus.PENDING],
}


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

def can_transition(from_state: TaskStatus, to_state: TaskStatus) -> bool:
    """Check if a transition is allowed from the current state."""
    return to_state in _TASK_TRANSITIONS.get(from_state, [])


def transition(from_state: TaskStatus, to_state: TaskStatus) -> TaskStatus:
    """Validate and return the next state.

    Raises ValueError if the transition is not allowed.
    """
    if not can_transition(from_state, to_state):
        allowed = [s.value for s in _TASK_TRANSITIONS.get(from_state, [])]
        raise ValueError(
            f"Cannot transition from {from_state.value} to {to_state.value}. "
            f"Allowed: {allowed}"
        )
    return to_state


def toggled(status: TaskStatus) -> TaskStatus:
    """The state a toggle moves to: pending becomes done and back."""
    target = TaskStatus.DONE if status == TaskStatus.PENDING else TaskStatus.PENDING
    return transition(status, target)


def is_terminal(status: TaskStatus) -> bool:
    """Check if a state has no outgoing transitions."""
    return len(_TASK_TRANSITIONS.get(status, [])) == 0
