"""Collab repositories: in-memory aggregate storage.

Extends InMemoryRepository with a task index (task id → owning project id)
so task lookups don't scan every project, and a user registry with phone
number lookup.
"""

from typing import Iterable, Optional
from uuid import UUID

from collab.models.entities import Project, Task, User
from patterns.repository import InMemoryRepository


# ---------------------------------------------------------------------------
# Project repository
# ---------------------------------------------------------------------------

class ProjectRepository(InMemoryRepository[Project]):
    """Projects keyed by id, plus an index of the tasks they own."""

    def __init__(self, items: list[Project] | None = None):
        self._task_index: dict[UUID, UUID] = {}
        super().__init__(items)

    def add(self, item: Project, first: bool = False) -> Project:
        super().add(item, first=first)
        self.reindex(item)
        return item

    def delete(self, item_id: UUID) -> bool:
        removed = super().delete(item_id)
        if removed:
            self._drop_index(item_id)
        return removed

    def reindex(self, project: Project) -> None:
        """Rebuild index entries after the project's task list changed."""
        self._drop_index(project.id)
        for task in project.tasks:
            self._task_index[task.id] = project.id

    def _drop_index(self, project_id: UUID) -> None:
        stale = [tid for tid, pid in self._task_index.items() if pid == project_id]
        for task_id in stale:
            del self._task_index[task_id]

    def find_task(self, task_id: UUID) -> Optional[tuple[Project, Task]]:
        """Locate a task and its owning project."""
        project = self.get(self._task_index.get(task_id))
        if project is not None:
            task = project.find_task(task_id)
            if task is not None:
                return project, task

        # Index miss: the project was changed without a reindex
        for project in self:
            task = project.find_task(task_id)
            if task is not None:
                self._task_index[task_id] = project.id
                return project, task
        self._task_index.pop(task_id, None)
        return None

    def search(self, query: str) -> list[Project]:
        needle = query.casefold()
        return [p for p in self if needle in p.name.casefold()]


# ---------------------------------------------------------------------------
# User repository
# ---------------------------------------------------------------------------

class UserRepository(InMemoryRepository[User]):
    """Registry of everyone who can be a member, assignee or sender."""

    def find_by_phone(self, phone_number: str) -> Optional[User]:
        return next((u for u in self if u.phone_number == phone_number), None)

    def resolve(self, user_ids: Iterable[UUID]) -> list[User]:
        """Users for the given ids in the given order; unknown ids are skipped."""
        found = (self.get(uid) for uid in user_ids)
        return [u for u in found if u is not None]
