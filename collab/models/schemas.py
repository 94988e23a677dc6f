"""Pydantic schemas for API request/response validation.

Required text fields carry no ``min_length``: blank titles and messages
reach the collaboration core and come back as validation rejections.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from collab.models.entities import AttachmentCategory, AttachmentType, Project
from collab.queries import SubtaskProgress


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class SubtaskDraft(BaseModel):
    title: str
    description: Optional[str] = None
    assignee_ids: list[UUID] = Field(default_factory=list)
    due_date: Optional[datetime] = None


class AttachmentCreate(BaseModel):
    type: AttachmentType
    category: AttachmentCategory = AttachmentCategory.REFERENCE
    file_name: str
    file_size: int = Field(0, ge=0)
    linked_subtask_id: Optional[UUID] = None
    caption: Optional[str] = None


class TaskCreate(BaseModel):
    title: str
    assignee_ids: list[UUID] = Field(default_factory=list)
    subtasks: list[SubtaskDraft] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    attachments: list[AttachmentCreate] = Field(default_factory=list)


class SubtaskCreate(SubtaskDraft):
    pass


class SubtaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assignee_ids: Optional[list[UUID]] = None


class TaskReply(BaseModel):
    """Body for accepting or declining an assignment."""

    text: Optional[str] = None


class MessageCreate(BaseModel):
    content: str


class ContactShare(BaseModel):
    name: str
    phone_number: str
    is_on_app: bool = False


class MemberAdd(BaseModel):
    user_id: UUID
    task_id: Optional[UUID] = None


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: list[UUID] = Field(default_factory=list)
    contacts: list[ContactShare] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class ProgressResponse(BaseModel):
    completed: int
    total: int
    fraction: float

    @classmethod
    def from_progress(cls, progress: SubtaskProgress) -> "ProgressResponse":
        return cls(completed=progress.completed, total=progress.total, fraction=progress.fraction)


class ProjectSummary(BaseModel):
    """One row of the project list, as seen by ``viewer_id``."""

    id: UUID
    name: str
    description: Optional[str] = None
    initials: str
    member_count: int
    pending_task_count: int
    completed_task_count: int
    overdue_task_count: int
    unread_count: int
    last_activity: Optional[datetime] = None
    last_activity_preview: Optional[str] = None

    @classmethod
    def from_project(cls, project: Project, viewer_id: UUID, now: datetime) -> "ProjectSummary":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            initials=project.initials,
            member_count=len(project.members),
            pending_task_count=project.pending_task_count,
            completed_task_count=project.completed_task_count,
            overdue_task_count=project.overdue_task_count(now),
            unread_count=project.unread_count_for(viewer_id),
            last_activity=project.last_activity,
            last_activity_preview=project.last_activity_preview,
        )


class RejectionResponse(BaseModel):
    operation: str
    reason: str
    message: str
