"""Attachment commands and partitions for a Task."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from collab.models.entities import Attachment, AttachmentType, Task
from core.models.base import utcnow
from patterns.results import OperationResult, not_found


def add_attachment(task: Task, attachment: Attachment, *, now: Optional[datetime] = None) -> OperationResult:
    task.attachments.append(attachment)
    task.last_activity = now or utcnow()
    return OperationResult.ok("add_attachment", value=attachment)


def remove_attachment(task: Task, attachment_id: UUID) -> OperationResult:
    operation = "remove_attachment"
    for index, attachment in enumerate(task.attachments):
        if attachment.id == attachment_id:
            del task.attachments[index]
            return OperationResult.ok(operation, value=attachment)
    return not_found(operation, "attachment", attachment_id)


def media_attachments(task: Task) -> list[Attachment]:
    return [a for a in task.attachments if a.type in (AttachmentType.IMAGE, AttachmentType.VIDEO)]


def doc_attachments(task: Task) -> list[Attachment]:
    return [a for a in task.attachments if a.type == AttachmentType.DOCUMENT]


def attachments_for_subtask(task: Task, subtask_id: Optional[UUID]) -> list[Attachment]:
    """Attachments linked to a subtask; ``None`` selects the unlinked ones."""
    return [a for a in task.attachments if a.linked_subtask_id == subtask_id]


def instruction_attachments(task: Task) -> list[Attachment]:
    return [a for a in task.attachments if a.is_instruction]


def deliverable_attachments(task: Task) -> list[Attachment]:
    return [a for a in task.attachments if a.is_deliverable]


def subtask_name(task: Task, subtask_id: UUID) -> Optional[str]:
    subtask = task.find_subtask(subtask_id)
    return subtask.title if subtask else None
