"""Read-only views derived from projects and tasks."""

from datetime import datetime, timezone
from typing import NamedTuple, Optional
from uuid import UUID

from collab.models.entities import Project, Task
from patterns.workflow_states import TaskStatus

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


class SubtaskProgress(NamedTuple):
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 0.0


def subtask_progress(task: Task) -> SubtaskProgress:
    completed = sum(1 for s in task.subtasks if s.is_done)
    return SubtaskProgress(completed=completed, total=len(task.subtasks))


def pending_tasks(project: Project) -> list[Task]:
    """Pending tasks in insertion order."""
    return [t for t in project.tasks if t.status == TaskStatus.PENDING]


def completed_tasks(project: Project) -> list[Task]:
    """Done tasks in insertion order."""
    return [t for t in project.tasks if t.status == TaskStatus.DONE]


def tasks_by_activity(project: Project) -> list[Task]:
    """Pending first, then done; most recent activity first within each."""
    def recent_first(tasks: list[Task]) -> list[Task]:
        return sorted(tasks, key=lambda t: t.last_activity or _NEVER, reverse=True)

    return recent_first(pending_tasks(project)) + recent_first(completed_tasks(project))


def tasks_assigned_to(project: Project, user_id: UUID) -> list[Task]:
    return [t for t in project.tasks if t.is_assigned(user_id)]


def sort_by_activity(projects: list[Project], search: Optional[str] = None) -> list[Project]:
    """Newest activity first, optionally filtered by a case-insensitive name match."""
    ordered = sorted(projects, key=lambda p: p.last_activity or _NEVER, reverse=True)
    if not search:
        return ordered
    needle = search.casefold()
    return [p for p in ordered if needle in p.name.casefold()]
