"""Task commands over a Project aggregate.

Each command takes the owning project, mutates it, and returns an
OperationResult. Unknown task ids and blank titles are rejections, never
exceptions. Callers hold the project's aggregate lock.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from collab.models.entities import (
    Attachment,
    Message,
    Project,
    Subtask,
    Task,
    TaskReference,
    User,
    unique_by_id,
)
from core.models.base import utcnow
from patterns.results import (
    OperationResult,
    RejectReason,
    is_blank,
    normalize_optional_text,
    not_found,
    require_text,
)
from patterns.workflow_states import TaskStatus, toggled


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def reject_outsiders(operation: str, project: Project, users: Iterable[User]) -> OperationResult | None:
    """Reject assignees that are not project members."""
    outsiders = [u.name for u in users if not project.has_member(u.id)]
    if outsiders:
        return OperationResult.reject(
            operation,
            RejectReason.VALIDATION_FAILURE,
            f"Not project members: {', '.join(outsiders)}",
        )
    return None


def notify_members(project: Project, task_id: UUID, actor: User) -> None:
    """Mark the task unread for every member except the actor."""
    for member in project.members:
        if member.id != actor.id:
            project.add_unread_task(task_id, member.id)


def opening_messages(task: Task, viewer_id: UUID) -> list[Message]:
    """First messages of a freshly created task's thread.

    The creator's notes come first, then a short note about files added
    at creation time.
    """
    creator = task.created_by
    if creator is None:
        return []

    from_viewer = creator.id == viewer_id
    messages = []
    if task.notes:
        messages.append(Message(
            content=task.notes,
            sender=creator,
            timestamp=task.created_at,
            is_from_current_user=from_viewer,
        ))
    if task.attachments:
        count = len(task.attachments)
        messages.append(Message(
            content="Attached 1 file" if count == 1 else f"Attached {count} files",
            sender=creator,
            timestamp=task.created_at + timedelta(seconds=1),
            is_from_current_user=from_viewer,
        ))
    return messages


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def add_task(
    project: Project,
    title: str,
    *,
    actor: User,
    assignees: Iterable[User] = (),
    subtasks: Iterable[Subtask] = (),
    due_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    attachments: Iterable[Attachment] = (),
    now: Optional[datetime] = None,
    track_unread: bool = True,
    enforce_membership: bool = False,
) -> OperationResult:
    """Append a new pending task created by ``actor``."""
    operation = "add_task"
    rejection = require_text(operation, "title", title)
    if rejection:
        return rejection

    assignees = unique_by_id(list(assignees))
    if enforce_membership:
        rejection = reject_outsiders(operation, project, assignees)
        if rejection:
            return rejection

    now = now or utcnow()
    task = Task(
        title=title,
        status=TaskStatus.PENDING,
        assignees=assignees,
        subtasks=list(subtasks),
        attachments=list(attachments),
        due_date=due_date,
        notes=normalize_optional_text(notes),
        created_by=actor,
        created_at=now,
    )
    intro = opening_messages(task, actor.id)
    task.messages.extend(intro)

    project.tasks.append(task)
    project.touch(f"New task: {title}", now)
    if track_unread:
        notify_members(project, task.id, actor)

    return OperationResult.ok(operation, value=task, emitted=intro)


def toggle_task_status(
    project: Project,
    task_id: UUID,
    *,
    actor: User,
    now: Optional[datetime] = None,
    track_unread: bool = True,
) -> OperationResult:
    """Flip pending/done. Posts nothing to chat."""
    operation = "toggle_task_status"
    task = project.find_task(task_id)
    if task is None:
        return not_found(operation, "task", task_id)

    now = now or utcnow()
    task.status = toggled(task.status)
    task.last_activity = now

    verb = "Completed" if task.status == TaskStatus.DONE else "Reopened"
    project.touch(f"{verb}: {task.title}", now)
    if track_unread:
        notify_members(project, task.id, actor)

    return OperationResult.ok(operation, value=task)


def delete_task(project: Project, task_id: UUID) -> OperationResult:
    """Remove a task.

    Attachments and chat messages that reference it are left alone.
    """
    operation = "delete_task"
    for index, task in enumerate(project.tasks):
        if task.id == task_id:
            del project.tasks[index]
            for unread in project.unread_task_ids.values():
                unread.discard(task_id)
            return OperationResult.ok(operation, value=task)
    return not_found(operation, "task", task_id)


def toggle_assignee(
    project: Project,
    task_id: UUID,
    user: User,
    *,
    enforce_membership: bool = False,
) -> OperationResult:
    """Assign the user if absent, unassign if present."""
    operation = "toggle_assignee"
    task = project.find_task(task_id)
    if task is None:
        return not_found(operation, "task", task_id)

    for index, assignee in enumerate(task.assignees):
        if assignee.id == user.id:
            del task.assignees[index]
            return OperationResult.ok(operation, value=task)

    if enforce_membership:
        rejection = reject_outsiders(operation, project, [user])
        if rejection:
            return rejection
    task.assignees.append(user)
    return OperationResult.ok(operation, value=task)


def clear_assignees(project: Project, task_id: UUID) -> OperationResult:
    operation = "clear_assignees"
    task = project.find_task(task_id)
    if task is None:
        return not_found(operation, "task", task_id)
    task.assignees.clear()
    return OperationResult.ok(operation, value=task)


def _post_task_reply(project: Project, task: Task, content: str, actor: User, now: datetime) -> Message:
    message = Message(
        content=content,
        sender=actor,
        timestamp=now,
        is_from_current_user=True,
        referenced_task=TaskReference.from_task(task),
    )
    project.messages.append(message)
    return message


def acknowledge_task(
    project: Project,
    task_id: UUID,
    *,
    actor: User,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Accept an assignment and tell the project chat."""
    operation = "acknowledge_task"
    task = project.find_task(task_id)
    if task is None:
        return not_found(operation, "task", task_id)

    now = now or utcnow()
    task.acknowledged_by.add(actor.id)
    suffix = "" if is_blank(note) else f": {note}"
    message = _post_task_reply(project, task, f"✓ Accepted{suffix}", actor, now)
    return OperationResult.ok(operation, value=task, emitted=[message])


def decline_task(
    project: Project,
    task_id: UUID,
    *,
    actor: User,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Turn down an assignment: tell the project chat, then unassign."""
    operation = "decline_task"
    task = project.find_task(task_id)
    if task is None:
        return not_found(operation, "task", task_id)

    now = now or utcnow()
    suffix = "" if is_blank(reason) else f": {reason}"
    message = _post_task_reply(project, task, f"✗ Declined{suffix}", actor, now)
    task.assignees[:] = [u for u in task.assignees if u.id != actor.id]
    return OperationResult.ok(operation, value=task, emitted=[message])


def mark_task_read(project: Project, task_id: UUID, user_id: UUID) -> OperationResult:
    operation = "mark_task_read"
    if project.find_task(task_id) is None:
        return not_found(operation, "task", task_id)
    project.mark_task_read(task_id, user_id)
    return OperationResult.ok(operation, value=task_id)
