"""Workspace commands: creating, deleting and listing projects."""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from collab.models.entities import Contact, Project, User, unique_by_id
from collab.queries import sort_by_activity
from collab.repository import ProjectRepository, UserRepository
from core.models.base import utcnow
from patterns.results import OperationResult, normalize_optional_text, not_found, require_text


def create_project(
    projects: ProjectRepository,
    name: str,
    *,
    actor: User,
    description: Optional[str] = None,
    members: Iterable[User] = (),
    contacts: Iterable[Contact] = (),
    users: Optional[UserRepository] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Create a project with the actor as first member (and admin).

    Contacts already on the app join as members when a user with the same
    phone number is registered; the rest would need an invite.
    """
    operation = "create_project"
    rejection = require_text(operation, "name", name)
    if rejection:
        return rejection

    joined = [actor, *members]
    if users is not None:
        for contact in contacts:
            if not contact.is_on_app:
                continue
            user = users.find_by_phone(contact.phone_number)
            if user is not None:
                joined.append(user)

    now = now or utcnow()
    project = Project(
        name=name,
        description=normalize_optional_text(description),
        members=unique_by_id(joined),
        last_activity=now,
        last_activity_preview="Project created",
    )
    projects.add(project, first=True)
    return OperationResult.ok(operation, value=project)


def delete_project(projects: ProjectRepository, project_id: UUID) -> OperationResult:
    operation = "delete_project"
    project = projects.get(project_id)
    if project is None or not projects.delete(project_id):
        return not_found(operation, "project", project_id)
    return OperationResult.ok(operation, value=project)


def filtered_projects(projects: ProjectRepository, search: str = "") -> list[Project]:
    return sort_by_activity(list(projects), search.strip() or None)


def total_unread_count(projects: ProjectRepository, user_id: UUID) -> int:
    return sum(p.unread_count_for(user_id) for p in projects)
