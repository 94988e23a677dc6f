"""Domain entities: users, projects, tasks, subtasks, attachments, messages.

Aggregates (Project, Task) are mutable and owned by the repository; they
are only changed by the command functions in ``collab``. Values that are
copied into chat (references, quotes) and chat messages themselves are
frozen.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator, model_validator

from core.models.base import Entity, Snapshot, as_utc, utcnow
from patterns.workflow_states import TaskStatus


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AttachmentType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    CONTACT = "contact"


class AttachmentCategory(str, Enum):
    REFERENCE = "reference"  # instructions from the task creator
    WORK = "work"            # deliverables uploaded by the team


class MessageType(str, Enum):
    REGULAR = "regular"
    SUBTASK_COMPLETED = "subtask_completed"
    SUBTASK_REOPENED = "subtask_reopened"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def initials_for(name: str) -> str:
    parts = name.split()
    if len(parts) >= 2:
        return (parts[0][:1] + parts[1][:1]).upper()
    return name[:2].upper()


def unique_by_id(items: list) -> list:
    """Drop later duplicates by ``id``, keeping order."""
    seen: set[UUID] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def format_file_size(num_bytes: int) -> str:
    """Decimal file size: ``512 bytes``, ``245 KB``, ``1.2 MB``."""
    if num_bytes < 1000:
        return f"{num_bytes} bytes"
    size = float(num_bytes)
    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1000
        if size < 1000 or unit == "TB":
            break
    if unit == "KB":
        return f"{round(size)} KB"
    return f"{size:.1f} {unit}"


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------

class User(Entity):
    """Identity of someone who can be assigned work or send messages."""

    model_config = ConfigDict(frozen=True)

    name: str
    phone_number: str = ""

    @property
    def avatar_initials(self) -> str:
        return initials_for(self.name)

    @property
    def display_first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else self.name

    def display_name_for(self, viewer_id: Optional[UUID]) -> str:
        """``Me`` when the viewer is this user, otherwise the full name."""
        return "Me" if viewer_id == self.id else self.name

    def display_first_name_for(self, viewer_id: Optional[UUID]) -> str:
        return "Me" if viewer_id == self.id else self.display_first_name


class Contact(Snapshot):
    """Phone-book entry; may or may not belong to a registered user."""

    name: str
    phone_number: str
    is_on_app: bool = False

    @property
    def initials(self) -> str:
        return initials_for(self.name)


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------

class Attachment(Entity):
    """File metadata attached to a task, optionally linked to a subtask.

    ``linked_subtask_id`` is a weak reference: lookup only, it is not
    cleared when the subtask goes away.
    """

    model_config = ConfigDict(frozen=True)

    type: AttachmentType
    category: AttachmentCategory = AttachmentCategory.REFERENCE
    file_name: str
    file_size: int = Field(0, ge=0)
    uploaded_by: User
    uploaded_at: datetime = Field(default_factory=utcnow)
    linked_subtask_id: Optional[UUID] = None
    caption: Optional[str] = None

    @property
    def is_media(self) -> bool:
        return self.type in (AttachmentType.IMAGE, AttachmentType.VIDEO)

    @property
    def is_instruction(self) -> bool:
        return self.category == AttachmentCategory.REFERENCE

    @property
    def is_deliverable(self) -> bool:
        return self.category == AttachmentCategory.WORK

    @property
    def file_extension(self) -> str:
        _, dot, ext = self.file_name.rpartition(".")
        return ext.lower() if dot else ""

    @property
    def file_size_formatted(self) -> str:
        return format_file_size(self.file_size)


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------

class Subtask(Entity):
    """Checklist item owned by exactly one task."""

    title: str
    description: Optional[str] = None
    is_done: bool = False
    assignees: list[User] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    created_by: Optional[User] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def assignee(self) -> Optional[User]:
        return self.assignees[0] if self.assignees else None

    def is_assigned(self, user_id: UUID) -> bool:
        return any(u.id == user_id for u in self.assignees)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.is_done:
            return False
        return self.due_date < (now or utcnow())


# ---------------------------------------------------------------------------
# Snapshot references
# ---------------------------------------------------------------------------

class TaskReference(Snapshot):
    """Task id and title as they were when the reference was taken."""

    task_id: UUID
    task_title: str

    @classmethod
    def from_task(cls, task: "Task") -> "TaskReference":
        return cls(task_id=task.id, task_title=task.title)


class SubtaskReference(Snapshot):
    subtask_id: UUID
    subtask_title: str

    @classmethod
    def from_subtask(cls, subtask: Subtask) -> "SubtaskReference":
        return cls(subtask_id=subtask.id, subtask_title=subtask.title)


class QuotedMessage(Snapshot):
    """Copy of the quoted message's sender and text, not a live link."""

    message_id: UUID
    sender_name: str
    content: str

    @classmethod
    def from_message(cls, message: "Message") -> "QuotedMessage":
        return cls(
            message_id=message.id,
            sender_name=message.sender.display_first_name,
            content=message.content,
        )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class Message(Entity):
    """Chat entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    content: str
    sender: User
    timestamp: datetime = Field(default_factory=utcnow)
    is_from_current_user: bool = False
    quoted_message: Optional[QuotedMessage] = None
    referenced_task: Optional[TaskReference] = None
    referenced_subtask: Optional[SubtaskReference] = None
    message_type: MessageType = MessageType.REGULAR

    @model_validator(mode="after")
    def _status_messages_carry_subtask(self) -> "Message":
        if self.message_type != MessageType.REGULAR and self.referenced_subtask is None:
            raise ValueError(f"{self.message_type.value} message requires referenced_subtask")
        return self

    @property
    def is_system(self) -> bool:
        return self.message_type != MessageType.REGULAR

    @property
    def status_reference(self) -> Optional[SubtaskReference]:
        """The subtask a completed/reopened narration is about."""
        return self.referenced_subtask if self.is_system else None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class Task(Entity):
    """Unit of work. Owns its subtasks, attachments and chat thread."""

    title: str
    status: TaskStatus = TaskStatus.PENDING
    assignees: list[User] = Field(default_factory=list)
    subtasks: list[Subtask] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: Optional[User] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: Optional[datetime] = None
    acknowledged_by: set[UUID] = Field(default_factory=set)

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @model_validator(mode="after")
    def _normalize(self) -> "Task":
        self.assignees = unique_by_id(self.assignees)
        if self.last_activity is None:
            self.last_activity = self.created_at
        return self

    @property
    def assignee(self) -> Optional[User]:
        return self.assignees[0] if self.assignees else None

    def is_assigned(self, user_id: UUID) -> bool:
        return any(u.id == user_id for u in self.assignees)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.status != TaskStatus.PENDING:
            return False
        return self.due_date < (now or utcnow())

    def is_due_today(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None:
            return False
        return self.due_date.date() == (now or utcnow()).date()

    def is_acknowledged_by(self, user_id: UUID) -> bool:
        return user_id in self.acknowledged_by

    def is_new_for(self, user_id: UUID) -> bool:
        """Assigned to the user and not yet accepted by them."""
        return self.is_assigned(user_id) and user_id not in self.acknowledged_by

    def find_subtask(self, subtask_id: UUID) -> Optional[Subtask]:
        return next((s for s in self.subtasks if s.id == subtask_id), None)

    def find_attachment(self, attachment_id: UUID) -> Optional[Attachment]:
        return next((a for a in self.attachments if a.id == attachment_id), None)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class Project(Entity):
    """Aggregate root: members, tasks and the project chat thread."""

    name: str
    description: Optional[str] = None
    members: list[User] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    unread_task_ids: dict[UUID, set[UUID]] = Field(default_factory=dict)
    last_activity: Optional[datetime] = None
    last_activity_preview: Optional[str] = None

    @model_validator(mode="after")
    def _unique_members(self) -> "Project":
        self.members = unique_by_id(self.members)
        return self

    @property
    def pending_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == TaskStatus.PENDING)

    @property
    def completed_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == TaskStatus.DONE)

    def overdue_task_count(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return sum(1 for t in self.tasks if t.is_overdue(now))

    @property
    def initials(self) -> str:
        return initials_for(self.name)

    @property
    def last_message(self) -> Optional[Message]:
        if not self.messages:
            return None
        return max(self.messages, key=lambda m: m.timestamp)

    def has_member(self, user_id: UUID) -> bool:
        return any(u.id == user_id for u in self.members)

    def find_member(self, user_id: UUID) -> Optional[User]:
        return next((u for u in self.members if u.id == user_id), None)

    def find_task(self, task_id: UUID) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    # -- Unread tracking --

    def unread_count_for(self, user_id: UUID) -> int:
        return len(self.unread_task_ids.get(user_id, set()))

    def is_task_unread(self, task_id: UUID, user_id: UUID) -> bool:
        return task_id in self.unread_task_ids.get(user_id, set())

    def add_unread_task(self, task_id: UUID, user_id: UUID) -> None:
        self.unread_task_ids.setdefault(user_id, set()).add(task_id)

    def mark_task_read(self, task_id: UUID, user_id: UUID) -> None:
        self.unread_task_ids.get(user_id, set()).discard(task_id)

    def touch(self, preview: str, now: Optional[datetime] = None) -> None:
        """Record the latest activity shown in the project list."""
        self.last_activity = now or utcnow()
        self.last_activity_preview = preview
