"""Permission rules as pure functions.

Rules take entities and the acting user and return a bool. No lookups,
no side effects, so commands and the HTTP layer can share them.
"""

from collab.models.entities import Project, Subtask, Task, User


def is_task_admin(task: Task, user: User) -> bool:
    """Task creator is admin.

    Without a recorded creator, the first assignee is admin, and anyone is
    when nobody is assigned. With several assignees and no creator only the
    first one qualifies.
    """
    if task.created_by is not None:
        return task.created_by.id == user.id
    if not task.assignees:
        return True
    return task.assignees[0].id == user.id


def is_project_admin(project: Project, user: User) -> bool:
    """First member is the project admin."""
    return bool(project.members) and project.members[0].id == user.id


def can_edit_subtask(subtask: Subtask, actor: User, is_admin: bool) -> bool:
    # No creator means a legacy item anyone may edit
    if subtask.created_by is None:
        return True
    return subtask.created_by.id == actor.id or is_admin


def can_edit_task(task: Task, actor: User, is_admin: bool) -> bool:
    if task.created_by is None:
        return True
    return task.created_by.id == actor.id or is_admin


def can_toggle_subtask(subtask: Subtask, actor: User) -> bool:
    """Unassigned subtasks are open to everyone, otherwise assignees only."""
    if not subtask.assignees:
        return True
    return subtask.is_assigned(actor.id)
