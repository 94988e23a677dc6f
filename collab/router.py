"""Collaboration API router: projects, tasks, subtasks, chat, attachments.

Standard router pattern:
- Service injection via FastAPI Depends (``app.state.service``)
- Acting user from the X-User-ID middleware, else the workspace's current user
- Rejected commands become HTTP errors:
  validation_failure → 422, not_found → 404, not_authorized → 403
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.middleware import get_current_user_id
from collab import attachments as attachment_views
from collab.models.entities import Attachment, Contact, Subtask, User
from collab.models.schemas import (
    AttachmentCreate,
    ContactShare,
    MemberAdd,
    MessageCreate,
    ProgressResponse,
    ProjectCreate,
    ProjectSummary,
    RejectionResponse,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskReply,
)
from collab.queries import tasks_assigned_to
from collab.service import CollaborationService
from patterns.results import OperationResult, RejectReason, is_blank, normalize_optional_text

router = APIRouter()

_STATUS_FOR_REASON = {
    RejectReason.VALIDATION_FAILURE: 422,
    RejectReason.NOT_FOUND: 404,
    RejectReason.NOT_AUTHORIZED: 403,
}


# ============================================================================
# Dependencies & helpers
# ============================================================================

def get_service(request: Request) -> CollaborationService:
    return request.app.state.service


def get_actor(service: CollaborationService = Depends(get_service)) -> User:
    """Resolve the acting user for this request."""
    raw = get_current_user_id()
    if raw is None:
        if service.current_user is None:
            raise HTTPException(status_code=401, detail="X-User-ID header required")
        return service.current_user
    try:
        user_id = UUID(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-ID must be a UUID")
    user = service.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _unwrap(result: OperationResult):
    """Return the result's value, or raise the matching HTTP error."""
    if result.rejected:
        detail = RejectionResponse(
            operation=result.operation,
            reason=result.reason.value,
            message=result.message,
        )
        raise HTTPException(status_code=_STATUS_FOR_REASON[result.reason], detail=detail.model_dump())
    return result.value


def _user(service: CollaborationService, user_id: UUID) -> User:
    user = service.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _users(service: CollaborationService, user_ids: list[UUID]) -> list[User]:
    users = service.users.resolve(user_ids)
    if len(users) != len(user_ids):
        raise HTTPException(status_code=404, detail="User not found")
    return users


def _project(service: CollaborationService, project_id: UUID):
    project = service.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _task(service: CollaborationService, project_id: UUID, task_id: UUID):
    _project(service, project_id)
    task = service.get_task(project_id, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# ============================================================================
# Users
# ============================================================================

@router.get("/users")
def list_users(service: CollaborationService = Depends(get_service)):
    users = list(service.users)
    return {"data": users, "count": len(users)}


@router.get("/me")
def whoami(actor: User = Depends(get_actor)):
    return {"user": actor, "initials": actor.avatar_initials}


# ============================================================================
# Project Endpoints
# ============================================================================

@router.get("/projects")
def list_projects(
    search: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Projects sorted by latest activity, filtered by name."""
    projects = service.filtered_projects(search)
    limit = min(limit, service.config.max_page_size)
    total = len(projects)
    offset = (page - 1) * limit
    now = service.clock()
    return {
        "data": [ProjectSummary.from_project(p, actor.id, now) for p in projects[offset:offset + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit,
        },
    }


@router.post("/projects", status_code=201)
def create_project(
    request: ProjectCreate,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Create a project; the actor becomes its first member."""
    contacts = [Contact(**c.model_dump()) for c in request.contacts]
    return _unwrap(service.create_project(
        request.name,
        actor=actor,
        description=request.description,
        members=_users(service, request.member_ids),
        contacts=contacts,
    ))


@router.get("/projects/{project_id}")
def get_project(
    project_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    project = _project(service, project_id)
    return {
        "summary": ProjectSummary.from_project(project, actor.id, service.clock()),
        "members": project.members,
        "tasks": service.tasks_by_activity(project_id),
    }


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(
    project_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.delete_project(project_id, actor=actor))


@router.get("/unread")
def unread_count(
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return {"total": service.total_unread_count(actor.id)}


# ============================================================================
# Member Endpoints
# ============================================================================

@router.post("/projects/{project_id}/members", status_code=201)
def add_member(
    project_id: UUID,
    request: MemberAdd,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    user = _user(service, request.user_id)
    return _unwrap(service.add_member(project_id, user, actor=actor, task_id=request.task_id))


@router.delete("/projects/{project_id}/members/{user_id}", status_code=204)
def remove_member(
    project_id: UUID,
    user_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.remove_member(project_id, user_id, actor=actor, task_id=task_id))


@router.get("/projects/{project_id}/members/available")
def available_members(project_id: UUID, service: CollaborationService = Depends(get_service)):
    users = service.available_members_to_add(project_id)
    if users is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"data": users, "count": len(users)}


# ============================================================================
# Task Endpoints
# ============================================================================

@router.get("/projects/{project_id}/tasks")
def list_tasks(
    project_id: UUID,
    view: str = Query("all", pattern="^(all|pending|completed|activity)$"),
    assigned_to: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
):
    """List tasks. ``pending``/``completed`` keep insertion order."""
    project = _project(service, project_id)
    if view == "pending":
        tasks = service.pending_tasks(project_id)
    elif view == "completed":
        tasks = service.completed_tasks(project_id)
    elif view == "activity":
        tasks = service.tasks_by_activity(project_id)
    else:
        tasks = list(project.tasks)
    if assigned_to is not None:
        mine = {t.id for t in tasks_assigned_to(project, assigned_to)}
        tasks = [t for t in tasks if t.id in mine]
    return {"data": tasks, "count": len(tasks)}


@router.post("/projects/{project_id}/tasks", status_code=201)
def create_task(
    project_id: UUID,
    request: TaskCreate,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Create a task; blank subtask drafts are skipped."""
    now = service.clock()
    subtasks = [
        Subtask(
            title=draft.title,
            description=normalize_optional_text(draft.description),
            assignees=_users(service, draft.assignee_ids),
            due_date=draft.due_date,
            created_by=actor,
        )
        for draft in request.subtasks
        if not is_blank(draft.title)
    ]
    attachments = [
        Attachment(uploaded_by=actor, uploaded_at=now, **item.model_dump())
        for item in request.attachments
    ]
    return _unwrap(service.add_task(
        project_id,
        request.title,
        actor=actor,
        assignees=_users(service, request.assignee_ids),
        subtasks=subtasks,
        due_date=request.due_date,
        notes=request.notes,
        attachments=attachments,
    ))


@router.get("/projects/{project_id}/tasks/{task_id}")
def get_task(
    project_id: UUID,
    task_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    task = _task(service, project_id, task_id)
    return {
        "task": task,
        "progress": ProgressResponse.from_progress(service.subtask_progress(project_id, task_id)),
        "is_admin": service.is_admin(project_id, task_id, actor),
        "can_edit": service.can_edit_task(project_id, task_id, actor),
        "is_new": task.is_new_for(actor.id),
    }


@router.delete("/projects/{project_id}/tasks/{task_id}", status_code=204)
def delete_task(
    project_id: UUID,
    task_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.delete_task(project_id, task_id, actor=actor))


@router.post("/projects/{project_id}/tasks/{task_id}/toggle")
def toggle_task(
    project_id: UUID,
    task_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.toggle_task_status(project_id, task_id, actor=actor))


@router.get("/projects/{project_id}/tasks/{task_id}/progress", response_model=ProgressResponse)
def task_progress(project_id: UUID, task_id: UUID, service: CollaborationService = Depends(get_service)):
    progress = service.subtask_progress(project_id, task_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return ProgressResponse.from_progress(progress)


@router.post("/projects/{project_id}/tasks/{task_id}/assignees/{user_id}/toggle")
def toggle_task_assignee(
    project_id: UUID,
    task_id: UUID,
    user_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    user = _user(service, user_id)
    return _unwrap(service.toggle_assignee(project_id, task_id, user, actor=actor))


@router.delete("/projects/{project_id}/tasks/{task_id}/assignees")
def clear_task_assignees(
    project_id: UUID,
    task_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.clear_assignees(project_id, task_id, actor=actor))


@router.post("/projects/{project_id}/tasks/{task_id}/acknowledge")
def acknowledge_task(
    project_id: UUID,
    task_id: UUID,
    request: TaskReply,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.acknowledge_task(project_id, task_id, actor=actor, note=request.text))


@router.post("/projects/{project_id}/tasks/{task_id}/decline")
def decline_task(
    project_id: UUID,
    task_id: UUID,
    request: TaskReply,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.decline_task(project_id, task_id, actor=actor, reason=request.text))


@router.post("/projects/{project_id}/tasks/{task_id}/read", status_code=204)
def mark_task_read(
    project_id: UUID,
    task_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.mark_task_read(project_id, task_id, actor=actor))


# ============================================================================
# Subtask Endpoints
# ============================================================================

@router.post("/projects/{project_id}/tasks/{task_id}/subtasks", status_code=201)
def create_subtask(
    project_id: UUID,
    task_id: UUID,
    request: SubtaskCreate,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.add_subtask(
        project_id,
        task_id,
        request.title,
        actor=actor,
        description=request.description,
        assignees=_users(service, request.assignee_ids),
        due_date=request.due_date,
    ))


@router.post("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}/toggle")
def toggle_subtask(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    thread: str = Query("task", pattern="^(task|project)$"),
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Flip a subtask and return the narration message."""
    result = service.toggle_subtask(
        project_id, task_id, subtask_id, actor=actor, in_project_thread=thread == "project"
    )
    subtask = _unwrap(result)
    return {"subtask": subtask, "message": result.emitted[0]}


@router.patch("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}")
def update_subtask(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    request: SubtaskUpdate,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Update title, description and/or assignees."""
    task = _task(service, project_id, task_id)
    subtask = task.find_subtask(subtask_id)
    if subtask is None:
        raise HTTPException(status_code=404, detail="Subtask not found")

    updates = request.model_dump(exclude_unset=True)
    if "title" in updates:
        subtask = _unwrap(service.update_subtask(project_id, task_id, subtask_id, request.title or "", actor=actor))
    if "description" in updates:
        subtask = _unwrap(service.update_subtask_description(
            project_id, task_id, subtask_id, request.description, actor=actor
        ))
    if "assignee_ids" in updates:
        subtask = _unwrap(service.update_subtask_assignees(
            project_id, task_id, subtask_id, _users(service, request.assignee_ids or []), actor=actor
        ))
    return subtask


@router.delete("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}", status_code=204)
def delete_subtask(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.delete_subtask(project_id, task_id, subtask_id, actor=actor))


@router.post("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}/assignees/{user_id}/toggle")
def toggle_subtask_assignee(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    user_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    member = _user(service, user_id)
    return _unwrap(service.toggle_subtask_assignee(project_id, task_id, subtask_id, member, actor=actor))


@router.get("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}/permissions")
def subtask_permissions(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    task = _task(service, project_id, task_id)
    if task.find_subtask(subtask_id) is None:
        raise HTTPException(status_code=404, detail="Subtask not found")
    return {
        "can_edit": service.can_edit_subtask(project_id, task_id, subtask_id, actor),
        "can_toggle": service.can_toggle_subtask(project_id, task_id, subtask_id, actor),
    }


# ============================================================================
# Chat Endpoints
# ============================================================================
# Every chat route targets the project thread, or a task thread when the
# ``task_id`` query parameter is given.

@router.get("/projects/{project_id}/messages")
def list_messages(
    project_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
):
    messages = service.messages(project_id, task_id)
    if messages is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    return {"data": messages, "count": len(messages)}


@router.post("/projects/{project_id}/messages", status_code=201)
def send_message(
    project_id: UUID,
    request: MessageCreate,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Send a message, consuming whatever the actor has staged."""
    return _unwrap(service.send_message(project_id, request.content, actor=actor, task_id=task_id))


@router.post("/projects/{project_id}/messages/contact", status_code=201)
def share_contact(
    project_id: UUID,
    request: ContactShare,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    contact = Contact(**request.model_dump())
    return _unwrap(service.send_contact_message(project_id, contact, actor=actor, task_id=task_id))


@router.get("/projects/{project_id}/composer")
def get_composer(
    project_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _project(service, project_id)
    composer = service.composer_for(actor.id, task_id or project_id)
    return {
        "active_preview": composer.active_preview,
        "quoted_message": composer.quoted_message,
        "referenced_task": composer.referenced_task,
        "referenced_subtask": composer.referenced_subtask,
    }


@router.post("/projects/{project_id}/composer/quote/{message_id}")
def stage_quote(
    project_id: UUID,
    message_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.quote_message(project_id, message_id, actor=actor, task_id=task_id))


@router.post("/projects/{project_id}/composer/task/{referenced_task_id}")
def stage_task_reference(
    project_id: UUID,
    referenced_task_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.reference_task(project_id, referenced_task_id, actor=actor, task_id=task_id))


@router.post("/projects/{project_id}/composer/subtask/{referenced_task_id}/{subtask_id}")
def stage_subtask_reference(
    project_id: UUID,
    referenced_task_id: UUID,
    subtask_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    return _unwrap(service.reference_subtask(
        project_id, referenced_task_id, subtask_id, actor=actor, task_id=task_id
    ))


@router.delete("/projects/{project_id}/composer", status_code=204)
def clear_composer(
    project_id: UUID,
    task_id: Optional[UUID] = None,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.clear_references(project_id, actor=actor, task_id=task_id))


# ============================================================================
# Attachment Endpoints
# ============================================================================

@router.get("/projects/{project_id}/tasks/{task_id}/attachments")
def list_attachments(
    project_id: UUID,
    task_id: UUID,
    kind: str = Query("all", pattern="^(all|media|docs|instructions|deliverables|unlinked)$"),
    service: CollaborationService = Depends(get_service),
):
    task = _task(service, project_id, task_id)
    if kind == "media":
        items = service.media_attachments(project_id, task_id)
    elif kind == "docs":
        items = service.doc_attachments(project_id, task_id)
    elif kind == "instructions":
        items = attachment_views.instruction_attachments(task)
    elif kind == "deliverables":
        items = attachment_views.deliverable_attachments(task)
    elif kind == "unlinked":
        items = service.attachments_for_subtask(project_id, task_id, None)
    else:
        items = list(task.attachments)
    return {"data": items, "count": len(items)}


@router.get("/projects/{project_id}/tasks/{task_id}/subtasks/{subtask_id}/attachments")
def subtask_attachments(
    project_id: UUID,
    task_id: UUID,
    subtask_id: UUID,
    service: CollaborationService = Depends(get_service),
):
    task = _task(service, project_id, task_id)
    items = service.attachments_for_subtask(project_id, task_id, subtask_id)
    return {
        "subtask_name": attachment_views.subtask_name(task, subtask_id),
        "data": items,
        "count": len(items),
    }


@router.post("/projects/{project_id}/tasks/{task_id}/attachments", status_code=201)
def upload_attachment(
    project_id: UUID,
    task_id: UUID,
    request: AttachmentCreate,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    """Record attachment metadata; file bytes live elsewhere."""
    attachment = Attachment(uploaded_by=actor, uploaded_at=service.clock(), **request.model_dump())
    return _unwrap(service.add_attachment(project_id, task_id, attachment, actor=actor))


@router.delete("/projects/{project_id}/tasks/{task_id}/attachments/{attachment_id}", status_code=204)
def delete_attachment(
    project_id: UUID,
    task_id: UUID,
    attachment_id: UUID,
    service: CollaborationService = Depends(get_service),
    actor: User = Depends(get_actor),
):
    _unwrap(service.remove_attachment(project_id, task_id, attachment_id, actor=actor))
