"""Subtask commands over a Task.

Toggling a subtask is the one command with a cross-entity effect: every
applied toggle posts exactly one completed/reopened narration into a chat
thread.
"""

from datetime import datetime
from typing import Iterable, Optional, Union
from uuid import UUID

from collab.models.entities import (
    Message,
    MessageType,
    Project,
    Subtask,
    SubtaskReference,
    Task,
    TaskReference,
    User,
    unique_by_id,
)
from core.models.base import utcnow
from patterns.results import (
    OperationResult,
    normalize_optional_text,
    not_found,
    require_text,
)

Thread = Union[Project, Task]


def add_subtask(
    task: Task,
    title: str,
    *,
    created_by: User,
    description: Optional[str] = None,
    assignees: Iterable[User] = (),
    due_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    operation = "add_subtask"
    rejection = require_text(operation, "title", title)
    if rejection:
        return rejection

    now = now or utcnow()
    subtask = Subtask(
        title=title,
        description=normalize_optional_text(description),
        assignees=unique_by_id(list(assignees)),
        due_date=due_date,
        created_by=created_by,
        created_at=now,
    )
    task.subtasks.append(subtask)
    task.last_activity = now
    return OperationResult.ok(operation, value=subtask)


def toggle_subtask(
    task: Task,
    subtask_id: UUID,
    *,
    actor: User,
    thread: Optional[Thread] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Flip ``is_done`` and narrate it in ``thread`` (the task's own by default).

    Narration posted outside the task's thread also carries a task
    reference so readers know which task the subtask belongs to.
    """
    operation = "toggle_subtask"
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return not_found(operation, "subtask", subtask_id)

    now = now or utcnow()
    target = task if thread is None else thread

    subtask.is_done = not subtask.is_done
    if subtask.is_done:
        verb, message_type = "completed", MessageType.SUBTASK_COMPLETED
    else:
        verb, message_type = "reopened", MessageType.SUBTASK_REOPENED

    message = Message(
        content=f'{verb} "{subtask.title}"',
        sender=actor,
        timestamp=now,
        is_from_current_user=True,
        referenced_task=None if target is task else TaskReference.from_task(task),
        referenced_subtask=SubtaskReference.from_subtask(subtask),
        message_type=message_type,
    )
    target.messages.append(message)

    task.last_activity = now
    if isinstance(target, Project):
        target.touch(f"{verb.capitalize()}: {subtask.title}", now)

    return OperationResult.ok(operation, value=subtask, emitted=[message])


def delete_subtask(task: Task, subtask_id: UUID, *, cascade: bool = False) -> OperationResult:
    """Remove a subtask.

    Attachments linked to it keep their ``linked_subtask_id`` unless
    ``cascade`` is set, in which case the link is cleared.
    """
    operation = "delete_subtask"
    for index, subtask in enumerate(task.subtasks):
        if subtask.id == subtask_id:
            del task.subtasks[index]
            if cascade:
                task.attachments[:] = [
                    a.model_copy(update={"linked_subtask_id": None})
                    if a.linked_subtask_id == subtask_id else a
                    for a in task.attachments
                ]
            return OperationResult.ok(operation, value=subtask)
    return not_found(operation, "subtask", subtask_id)


def update_subtask(task: Task, subtask_id: UUID, title: str) -> OperationResult:
    operation = "update_subtask"
    rejection = require_text(operation, "title", title)
    if rejection:
        return rejection
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return not_found(operation, "subtask", subtask_id)
    subtask.title = title
    return OperationResult.ok(operation, value=subtask)


def update_subtask_description(task: Task, subtask_id: UUID, description: Optional[str]) -> OperationResult:
    operation = "update_subtask_description"
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return not_found(operation, "subtask", subtask_id)
    subtask.description = normalize_optional_text(description)
    return OperationResult.ok(operation, value=subtask)


def update_subtask_assignees(task: Task, subtask_id: UUID, assignees: Iterable[User]) -> OperationResult:
    operation = "update_subtask_assignees"
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return not_found(operation, "subtask", subtask_id)
    subtask.assignees = unique_by_id(list(assignees))
    return OperationResult.ok(operation, value=subtask)


def toggle_subtask_assignee(task: Task, subtask_id: UUID, member: User) -> OperationResult:
    operation = "toggle_subtask_assignee"
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        return not_found(operation, "subtask", subtask_id)

    for index, assignee in enumerate(subtask.assignees):
        if assignee.id == member.id:
            del subtask.assignees[index]
            break
    else:
        subtask.assignees.append(member)
    return OperationResult.ok(operation, value=subtask)
