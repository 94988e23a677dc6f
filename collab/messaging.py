"""Chat messaging: composer staging and message commands.

A thread is the ``messages`` list of a Project or a Task. Messages are
appended, never edited.

The composer holds at most one preview for the next outgoing message:
a quoted message, a task reference, or a task+subtask reference pair.
Staging one clears the others; sending consumes whatever is staged.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from collab.models.entities import (
    Contact,
    Message,
    Project,
    QuotedMessage,
    Subtask,
    SubtaskReference,
    Task,
    TaskReference,
    User,
)
from core.models.base import utcnow
from patterns.results import OperationResult, require_text

Thread = Union[Project, Task]


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------

@dataclass
class Composer:
    """Staged reference/quote for one sender in one thread."""

    referenced_task: Optional[TaskReference] = None
    referenced_subtask: Optional[SubtaskReference] = None
    quoted_message: Optional[QuotedMessage] = None

    def quote_message(self, message: Message) -> QuotedMessage:
        self.clear()
        self.quoted_message = QuotedMessage.from_message(message)
        return self.quoted_message

    def reference_task(self, task: Task) -> TaskReference:
        self.clear()
        self.referenced_task = TaskReference.from_task(task)
        return self.referenced_task

    def reference_subtask(self, task: Task, subtask: Subtask) -> SubtaskReference:
        self.clear()
        self.referenced_task = TaskReference.from_task(task)
        self.referenced_subtask = SubtaskReference.from_subtask(subtask)
        return self.referenced_subtask

    def clear(self) -> None:
        self.referenced_task = None
        self.referenced_subtask = None
        self.quoted_message = None

    @property
    def active_preview(self) -> Optional[str]:
        if self.quoted_message is not None:
            return "quote"
        if self.referenced_subtask is not None:
            return "subtask"
        if self.referenced_task is not None:
            return "task"
        return None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _record_activity(thread: Thread, preview: str, now: datetime) -> None:
    if isinstance(thread, Project):
        thread.touch(preview, now)
    else:
        thread.last_activity = now


def send_message(
    thread: Thread,
    content: str,
    *,
    sender: User,
    composer: Optional[Composer] = None,
    referenced_task: Optional[TaskReference] = None,
    referenced_subtask: Optional[SubtaskReference] = None,
    quoted_message: Optional[QuotedMessage] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Append a regular message.

    Explicit references replace anything staged on the composer. A blank
    message is rejected and leaves the composer as it was.
    """
    operation = "send_message"
    rejection = require_text(operation, "content", content)
    if rejection:
        return rejection

    explicit = any(x is not None for x in (referenced_task, referenced_subtask, quoted_message))
    if not explicit and composer is not None:
        referenced_task = composer.referenced_task
        referenced_subtask = composer.referenced_subtask
        quoted_message = composer.quoted_message

    now = now or utcnow()
    message = Message(
        content=content,
        sender=sender,
        timestamp=now,
        is_from_current_user=True,
        referenced_task=referenced_task,
        referenced_subtask=referenced_subtask,
        quoted_message=quoted_message,
    )
    thread.messages.append(message)
    if composer is not None:
        composer.clear()

    _record_activity(thread, f"{sender.display_first_name}: {content}", now)
    return OperationResult.ok(operation, value=message)


def send_contact_message(
    thread: Thread,
    contact: Contact,
    *,
    sender: User,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Share a phone-book contact as a plain message."""
    now = now or utcnow()
    message = Message(
        content=f"Shared contact: {contact.name}\n{contact.phone_number}",
        sender=sender,
        timestamp=now,
        is_from_current_user=True,
    )
    thread.messages.append(message)
    _record_activity(thread, f"{sender.display_first_name}: shared a contact", now)
    return OperationResult.ok("send_contact_message", value=message)


def find_message(thread: Thread, message_id: UUID) -> Optional[Message]:
    return next((m for m in thread.messages if m.id == message_id), None)


def messages_in_order(thread: Thread) -> list[Message]:
    """Thread sorted oldest first; ties keep append order."""
    return sorted(thread.messages, key=lambda m: m.timestamp)
