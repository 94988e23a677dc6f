"""Membership commands, gated on admin rights.

A collaboration context is a project, optionally narrowed to one task.
Inside a task the task admin rule applies, otherwise the project admin
rule. Removing a member strips them from every assignee list in the
project so assignees stay a subset of members.
"""

from typing import Optional
from uuid import UUID

from collab.models.entities import Project, User
from collab.rules import is_project_admin, is_task_admin
from patterns.results import OperationResult, not_authorized, not_found


def check_admin(
    operation: str,
    project: Project,
    actor: User,
    task_id: Optional[UUID] = None,
) -> OperationResult | None:
    """Return a rejection unless ``actor`` administers the context."""
    if task_id is not None:
        task = project.find_task(task_id)
        if task is None:
            return not_found(operation, "task", task_id)
        if not is_task_admin(task, actor):
            return not_authorized(operation, f"{actor.name} is not admin of task {task.title!r}")
        return None

    if not is_project_admin(project, actor):
        return not_authorized(operation, f"{actor.name} is not admin of project {project.name!r}")
    return None


def add_member(
    project: Project,
    user: User,
    *,
    actor: User,
    task_id: Optional[UUID] = None,
) -> OperationResult:
    operation = "add_member"
    rejection = check_admin(operation, project, actor, task_id)
    if rejection:
        return rejection

    if not project.has_member(user.id):
        project.members.append(user)
    return OperationResult.ok(operation, value=user)


def remove_member(
    project: Project,
    user_id: UUID,
    *,
    actor: User,
    task_id: Optional[UUID] = None,
) -> OperationResult:
    operation = "remove_member"
    rejection = check_admin(operation, project, actor, task_id)
    if rejection:
        return rejection

    member = project.find_member(user_id)
    if member is None:
        return not_found(operation, "member", user_id)

    project.members[:] = [u for u in project.members if u.id != user_id]
    for task in project.tasks:
        task.assignees[:] = [u for u in task.assignees if u.id != user_id]
        for subtask in task.subtasks:
            subtask.assignees[:] = [u for u in subtask.assignees if u.id != user_id]
    project.unread_task_ids.pop(user_id, None)

    return OperationResult.ok(operation, value=member)


def available_members_to_add(project: Project, candidates: list[User]) -> list[User]:
    """Candidates not yet in the project, in candidate order."""
    return [u for u in candidates if not project.has_member(u.id)]
