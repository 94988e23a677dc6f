"""Collaboration API: the mutation and query surface over projects.

Every mutating call:
1. resolves its aggregate by id (project, then task through the index)
2. holds that project's aggregate lock while the command runs
3. logs the outcome and returns the OperationResult unchanged

Queries return ``None`` when the project or task does not exist.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog

from collab import attachments as attachment_cmds
from collab import members as member_cmds
from collab import messaging
from collab import projects as project_cmds
from collab import queries
from collab import subtasks as subtask_cmds
from collab import tasks as task_cmds
from collab.messaging import Composer
from collab.models.entities import (
    Attachment,
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
from collab.repository import ProjectRepository, UserRepository
from collab.rules import can_edit_subtask, can_edit_task, can_toggle_subtask, is_task_admin
from core.concurrency.aggregate_lock import AggregateLockRegistry
from core.models.base import utcnow
from patterns.domain_config import CollabConfig
from patterns.results import OperationResult, not_found

logger = structlog.get_logger()


class CollaborationService:
    """Commands and queries for one in-memory workspace.

    Usage::

        service = CollaborationService(projects, users)
        result = service.add_task(project.id, "Paint fence", actor=alice, assignees=[bob])
        service.toggle_task_status(project.id, result.value.id, actor=alice)
    """

    def __init__(
        self,
        projects: ProjectRepository | None = None,
        users: UserRepository | None = None,
        config: CollabConfig | None = None,
        locks: AggregateLockRegistry | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.projects = projects if projects is not None else ProjectRepository()
        self.users = users if users is not None else UserRepository()
        self.config = config or CollabConfig.default()
        self.locks = locks or AggregateLockRegistry()
        self.clock = clock
        self.current_user: Optional[User] = None
        self._composers: dict[tuple[UUID, UUID], Composer] = {}

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _finish(self, result: OperationResult, **ids) -> OperationResult:
        fields = {k: str(v) for k, v in ids.items() if v is not None}
        if result.applied:
            logger.info(result.operation, emitted=len(result.emitted), **fields)
        else:
            logger.info(
                "operation_rejected",
                operation=result.operation,
                reason=result.reason.value,
                detail=result.message,
                **fields,
            )
        return result

    def _in_project(
        self,
        operation: str,
        project_id: UUID,
        command: Callable[[Project], OperationResult],
        **ids,
    ) -> OperationResult:
        project = self.projects.get(project_id)
        if project is None:
            return self._finish(not_found(operation, "project", project_id), project_id=project_id, **ids)
        with self.locks.hold(project.id):
            result = command(project)
        return self._finish(result, project_id=project_id, **ids)

    def _in_task(
        self,
        operation: str,
        project_id: UUID,
        task_id: UUID,
        command: Callable[[Project, Task], OperationResult],
        **ids,
    ) -> OperationResult:
        def run(project: Project) -> OperationResult:
            located = self.projects.find_task(task_id)
            if located is None or located[0].id != project.id:
                return not_found(operation, "task", task_id)
            return command(project, located[1])

        return self._in_project(operation, project_id, run, task_id=task_id, **ids)

    def _task(self, project_id: UUID, task_id: UUID) -> Optional[Task]:
        located = self.projects.find_task(task_id)
        if located is None or located[0].id != project_id:
            return None
        return located[1]

    def _thread(self, project: Project, task_id: Optional[UUID]) -> Optional[Project | Task]:
        if task_id is None:
            return project
        return project.find_task(task_id)

    def composer_for(self, actor_id: UUID, thread_id: UUID) -> Composer:
        """The actor's composer for a project or task thread."""
        key = (actor_id, thread_id)
        composer = self._composers.get(key)
        if composer is None:
            composer = self._composers[key] = Composer()
        return composer

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_project(self, project_id: UUID) -> Optional[Project]:
        return self.projects.get(project_id)

    def get_task(self, project_id: UUID, task_id: UUID) -> Optional[Task]:
        return self._task(project_id, task_id)

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.users.get(user_id)

    def register_user(self, user: User) -> User:
        return self.users.add(user)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(
        self,
        name: str,
        *,
        actor: User,
        description: Optional[str] = None,
        members: Iterable[User] = (),
        contacts: Iterable[Contact] = (),
    ) -> OperationResult:
        result = project_cmds.create_project(
            self.projects,
            name,
            actor=actor,
            description=description,
            members=members,
            contacts=contacts,
            users=self.users,
            now=self.clock(),
        )
        return self._finish(result, project_id=result.value.id if result else None)

    def delete_project(self, project_id: UUID, *, actor: User) -> OperationResult:
        with self.locks.hold(project_id):
            result = project_cmds.delete_project(self.projects, project_id)
        self.locks.discard(project_id)
        if result:
            self._composers = {k: v for k, v in self._composers.items() if k[1] != project_id}
        return self._finish(result, project_id=project_id, actor_id=actor.id)

    def filtered_projects(self, search: str = "") -> list[Project]:
        return project_cmds.filtered_projects(self.projects, search)

    def total_unread_count(self, user_id: UUID) -> int:
        return project_cmds.total_unread_count(self.projects, user_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(
        self,
        project_id: UUID,
        title: str,
        *,
        actor: User,
        assignees: Iterable[User] = (),
        subtasks: Iterable[Subtask] = (),
        due_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        attachments: Iterable[Attachment] = (),
    ) -> OperationResult:
        def command(project: Project) -> OperationResult:
            result = task_cmds.add_task(
                project,
                title,
                actor=actor,
                assignees=assignees,
                subtasks=subtasks,
                due_date=due_date,
                notes=notes,
                attachments=attachments,
                now=self.clock(),
                track_unread=self.config.activity.track_unread,
                enforce_membership=self.config.membership.enforce_assignee_membership,
            )
            if result:
                self.projects.reindex(project)
            return result

        return self._in_project("add_task", project_id, command)

    def toggle_task_status(self, project_id: UUID, task_id: UUID, *, actor: User) -> OperationResult:
        return self._in_task(
            "toggle_task_status", project_id, task_id,
            lambda project, task: task_cmds.toggle_task_status(
                project, task.id, actor=actor, now=self.clock(),
                track_unread=self.config.activity.track_unread,
            ),
        )

    def delete_task(self, project_id: UUID, task_id: UUID, *, actor: User) -> OperationResult:
        def command(project: Project) -> OperationResult:
            result = task_cmds.delete_task(project, task_id)
            if result:
                self.projects.reindex(project)
                self._composers = {k: v for k, v in self._composers.items() if k[1] != task_id}
            return result

        return self._in_project("delete_task", project_id, command, task_id=task_id, actor_id=actor.id)

    def toggle_assignee(self, project_id: UUID, task_id: UUID, user: User, *, actor: User) -> OperationResult:
        return self._in_task(
            "toggle_assignee", project_id, task_id,
            lambda project, task: task_cmds.toggle_assignee(
                project, task.id, user,
                enforce_membership=self.config.membership.enforce_assignee_membership,
            ),
            user_id=user.id,
        )

    def clear_assignees(self, project_id: UUID, task_id: UUID, *, actor: User) -> OperationResult:
        return self._in_task(
            "clear_assignees", project_id, task_id,
            lambda project, task: task_cmds.clear_assignees(project, task.id),
        )

    def acknowledge_task(
        self, project_id: UUID, task_id: UUID, *, actor: User, note: Optional[str] = None
    ) -> OperationResult:
        return self._in_task(
            "acknowledge_task", project_id, task_id,
            lambda project, task: task_cmds.acknowledge_task(
                project, task.id, actor=actor, note=note, now=self.clock()
            ),
        )

    def decline_task(
        self, project_id: UUID, task_id: UUID, *, actor: User, reason: Optional[str] = None
    ) -> OperationResult:
        return self._in_task(
            "decline_task", project_id, task_id,
            lambda project, task: task_cmds.decline_task(
                project, task.id, actor=actor, reason=reason, now=self.clock()
            ),
        )

    def mark_task_read(self, project_id: UUID, task_id: UUID, *, actor: User) -> OperationResult:
        return self._in_task(
            "mark_task_read", project_id, task_id,
            lambda project, task: task_cmds.mark_task_read(project, task.id, actor.id),
        )

    # -- Task queries --

    def pending_tasks(self, project_id: UUID) -> Optional[list[Task]]:
        project = self.projects.get(project_id)
        return queries.pending_tasks(project) if project else None

    def completed_tasks(self, project_id: UUID) -> Optional[list[Task]]:
        project = self.projects.get(project_id)
        return queries.completed_tasks(project) if project else None

    def tasks_by_activity(self, project_id: UUID) -> Optional[list[Task]]:
        project = self.projects.get(project_id)
        return queries.tasks_by_activity(project) if project else None

    def subtask_progress(self, project_id: UUID, task_id: UUID) -> Optional[queries.SubtaskProgress]:
        task = self._task(project_id, task_id)
        return queries.subtask_progress(task) if task else None

    # ------------------------------------------------------------------
    # Subtasks
    # ------------------------------------------------------------------

    def add_subtask(
        self,
        project_id: UUID,
        task_id: UUID,
        title: str,
        *,
        actor: User,
        description: Optional[str] = None,
        assignees: Iterable[User] = (),
        due_date: Optional[datetime] = None,
    ) -> OperationResult:
        return self._in_task(
            "add_subtask", project_id, task_id,
            lambda project, task: subtask_cmds.add_subtask(
                task, title,
                created_by=actor,
                description=description,
                assignees=assignees,
                due_date=due_date,
                now=self.clock(),
            ),
        )

    def toggle_subtask(
        self,
        project_id: UUID,
        task_id: UUID,
        subtask_id: UUID,
        *,
        actor: User,
        in_project_thread: bool = False,
    ) -> OperationResult:
        """Toggle and narrate in the task thread, or the project thread when asked."""
        return self._in_task(
            "toggle_subtask", project_id, task_id,
            lambda project, task: subtask_cmds.toggle_subtask(
                task, subtask_id,
                actor=actor,
                thread=project if in_project_thread else task,
                now=self.clock(),
            ),
            subtask_id=subtask_id,
        )

    def delete_subtask(self, project_id: UUID, task_id: UUID, subtask_id: UUID, *, actor: User) -> OperationResult:
        return self._in_task(
            "delete_subtask", project_id, task_id,
            lambda project, task: subtask_cmds.delete_subtask(
                task, subtask_id, cascade=self.config.membership.cascade_deletes
            ),
            subtask_id=subtask_id,
        )

    def update_subtask(
        self, project_id: UUID, task_id: UUID, subtask_id: UUID, title: str, *, actor: User
    ) -> OperationResult:
        return self._in_task(
            "update_subtask", project_id, task_id,
            lambda project, task: subtask_cmds.update_subtask(task, subtask_id, title),
            subtask_id=subtask_id,
        )

    def update_subtask_description(
        self, project_id: UUID, task_id: UUID, subtask_id: UUID, description: Optional[str], *, actor: User
    ) -> OperationResult:
        return self._in_task(
            "update_subtask_description", project_id, task_id,
            lambda project, task: subtask_cmds.update_subtask_description(task, subtask_id, description),
            subtask_id=subtask_id,
        )

    def update_subtask_assignees(
        self, project_id: UUID, task_id: UUID, subtask_id: UUID, assignees: Iterable[User], *, actor: User
    ) -> OperationResult:
        return self._in_task(
            "update_subtask_assignees", project_id, task_id,
            lambda project, task: subtask_cmds.update_subtask_assignees(task, subtask_id, assignees),
            subtask_id=subtask_id,
        )

    def toggle_subtask_assignee(
        self, project_id: UUID, task_id: UUID, subtask_id: UUID, member: User, *, actor: User
    ) -> OperationResult:
        return self._in_task(
            "toggle_subtask_assignee", project_id, task_id,
            lambda project, task: subtask_cmds.toggle_subtask_assignee(task, subtask_id, member),
            subtask_id=subtask_id,
        )

    # ------------------------------------------------------------------
    # Membership & permissions
    # ------------------------------------------------------------------

    def add_member(
        self, project_id: UUID, user: User, *, actor: User, task_id: Optional[UUID] = None
    ) -> OperationResult:
        return self._in_project(
            "add_member", project_id,
            lambda project: member_cmds.add_member(project, user, actor=actor, task_id=task_id),
            user_id=user.id,
        )

    def remove_member(
        self, project_id: UUID, user_id: UUID, *, actor: User, task_id: Optional[UUID] = None
    ) -> OperationResult:
        return self._in_project(
            "remove_member", project_id,
            lambda project: member_cmds.remove_member(project, user_id, actor=actor, task_id=task_id),
            user_id=user_id,
        )

    def available_members_to_add(self, project_id: UUID) -> Optional[list[User]]:
        project = self.projects.get(project_id)
        if project is None:
            return None
        return member_cmds.available_members_to_add(project, list(self.users))

    def is_admin(self, project_id: UUID, task_id: UUID, user: User) -> bool:
        task = self._task(project_id, task_id)
        return task is not None and is_task_admin(task, user)

    def can_edit_task(self, project_id: UUID, task_id: UUID, actor: User) -> bool:
        task = self._task(project_id, task_id)
        return task is not None and can_edit_task(task, actor, is_task_admin(task, actor))

    def can_edit_subtask(self, project_id: UUID, task_id: UUID, subtask_id: UUID, actor: User) -> bool:
        task = self._task(project_id, task_id)
        subtask = task.find_subtask(subtask_id) if task else None
        if subtask is None:
            return False
        return can_edit_subtask(subtask, actor, is_task_admin(task, actor))

    def can_toggle_subtask(self, project_id: UUID, task_id: UUID, subtask_id: UUID, actor: User) -> bool:
        task = self._task(project_id, task_id)
        subtask = task.find_subtask(subtask_id) if task else None
        return subtask is not None and can_toggle_subtask(subtask, actor)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def _in_thread(
        self,
        operation: str,
        project_id: UUID,
        task_id: Optional[UUID],
        command: Callable[[Project, Project | Task], OperationResult],
    ) -> OperationResult:
        def run(project: Project) -> OperationResult:
            thread = self._thread(project, task_id)
            if thread is None:
                return not_found(operation, "task", task_id)
            return command(project, thread)

        return self._in_project(operation, project_id, run, task_id=task_id)

    def send_message(
        self,
        project_id: UUID,
        content: str,
        *,
        actor: User,
        task_id: Optional[UUID] = None,
        referenced_task: Optional[TaskReference] = None,
        referenced_subtask: Optional[SubtaskReference] = None,
        quoted_message: Optional[QuotedMessage] = None,
    ) -> OperationResult:
        """Post to the project thread, or to a task thread when ``task_id`` is given."""
        return self._in_thread(
            "send_message", project_id, task_id,
            lambda project, thread: messaging.send_message(
                thread, content,
                sender=actor,
                composer=self.composer_for(actor.id, thread.id),
                referenced_task=referenced_task,
                referenced_subtask=referenced_subtask,
                quoted_message=quoted_message,
                now=self.clock(),
            ),
        )

    def send_contact_message(
        self, project_id: UUID, contact: Contact, *, actor: User, task_id: Optional[UUID] = None
    ) -> OperationResult:
        return self._in_thread(
            "send_contact_message", project_id, task_id,
            lambda project, thread: messaging.send_contact_message(
                thread, contact, sender=actor, now=self.clock()
            ),
        )

    def quote_message(
        self, project_id: UUID, message_id: UUID, *, actor: User, task_id: Optional[UUID] = None
    ) -> OperationResult:
        """Stage a quote of a message from the same thread."""
        def command(project: Project, thread: Project | Task) -> OperationResult:
            message = messaging.find_message(thread, message_id)
            if message is None:
                return not_found("quote_message", "message", message_id)
            quote = self.composer_for(actor.id, thread.id).quote_message(message)
            return OperationResult.ok("quote_message", value=quote)

        return self._in_thread("quote_message", project_id, task_id, command)

    def reference_task(
        self, project_id: UUID, referenced_task_id: UUID, *, actor: User, task_id: Optional[UUID] = None
    ) -> OperationResult:
        """Stage a reference to one of the project's tasks."""
        def command(project: Project, thread: Project | Task) -> OperationResult:
            task = project.find_task(referenced_task_id)
            if task is None:
                return not_found("reference_task", "task", referenced_task_id)
            ref = self.composer_for(actor.id, thread.id).reference_task(task)
            return OperationResult.ok("reference_task", value=ref)

        return self._in_thread("reference_task", project_id, task_id, command)

    def reference_subtask(
        self,
        project_id: UUID,
        referenced_task_id: UUID,
        subtask_id: UUID,
        *,
        actor: User,
        task_id: Optional[UUID] = None,
    ) -> OperationResult:
        def command(project: Project, thread: Project | Task) -> OperationResult:
            task = project.find_task(referenced_task_id)
            if task is None:
                return not_found("reference_subtask", "task", referenced_task_id)
            subtask = task.find_subtask(subtask_id)
            if subtask is None:
                return not_found("reference_subtask", "subtask", subtask_id)
            ref = self.composer_for(actor.id, thread.id).reference_subtask(task, subtask)
            return OperationResult.ok("reference_subtask", value=ref)

        return self._in_thread("reference_subtask", project_id, task_id, command)

    def clear_references(self, project_id: UUID, *, actor: User, task_id: Optional[UUID] = None) -> OperationResult:
        def command(project: Project, thread: Project | Task) -> OperationResult:
            self.composer_for(actor.id, thread.id).clear()
            return OperationResult.ok("clear_references")

        return self._in_thread("clear_references", project_id, task_id, command)

    def messages(self, project_id: UUID, task_id: Optional[UUID] = None) -> Optional[list[Message]]:
        project = self.projects.get(project_id)
        if project is None:
            return None
        thread = self._thread(project, task_id)
        return messaging.messages_in_order(thread) if thread is not None else None

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def add_attachment(self, project_id: UUID, task_id: UUID, attachment: Attachment, *, actor: User) -> OperationResult:
        return self._in_task(
            "add_attachment", project_id, task_id,
            lambda project, task: attachment_cmds.add_attachment(task, attachment, now=self.clock()),
            attachment_id=attachment.id,
        )

    def remove_attachment(
        self, project_id: UUID, task_id: UUID, attachment_id: UUID, *, actor: User
    ) -> OperationResult:
        return self._in_task(
            "remove_attachment", project_id, task_id,
            lambda project, task: attachment_cmds.remove_attachment(task, attachment_id),
            attachment_id=attachment_id,
        )

    def media_attachments(self, project_id: UUID, task_id: UUID) -> Optional[list[Attachment]]:
        task = self._task(project_id, task_id)
        return attachment_cmds.media_attachments(task) if task else None

    def doc_attachments(self, project_id: UUID, task_id: UUID) -> Optional[list[Attachment]]:
        task = self._task(project_id, task_id)
        return attachment_cmds.doc_attachments(task) if task else None

    def attachments_for_subtask(
        self, project_id: UUID, task_id: UUID, subtask_id: Optional[UUID]
    ) -> Optional[list[Attachment]]:
        task = self._task(project_id, task_id)
        return attachment_cmds.attachments_for_subtask(task, subtask_id) if task else None
