"""Mock data provider: starting users and projects for a fresh workspace.

``build_service`` wires repositories, config and locks into a
CollaborationService. With ``config.seed.enabled`` the workspace starts
with five users and three construction projects; the current user is
picked by ``config.seed.current_user_index``.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from collab.models.entities import (
    Attachment,
    AttachmentCategory,
    AttachmentType,
    Message,
    Project,
    Subtask,
    Task,
    User,
)
from collab.repository import ProjectRepository, UserRepository
from collab.service import CollaborationService
from collab.tasks import opening_messages
from core.concurrency.aggregate_lock import AggregateLockRegistry
from core.models.base import utcnow
from patterns.domain_config import CollabConfig
from patterns.workflow_states import TaskStatus

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def seed_users() -> list[User]:
    return [
        User(name="Alex Johnson", phone_number="+1 555-0100"),
        User(name="Maria Garcia", phone_number="+1 555-0101"),
        User(name="James Wilson", phone_number="+1 555-0102"),
        User(name="Sarah Chen", phone_number="+1 555-0103"),
        User(name="Mike Thompson", phone_number="+1 555-0104"),
    ]


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

KITCHEN_NOTES = """Contact: HomeDepot Pro Desk
Phone: (555) 123-4567
Account #: PRO-2847593

Materials needed:
- 24 sq ft ceramic tiles (Tuscany Beige)
- 3 bags thin-set mortar
- Grout (Sandstone color)
- Tile spacers 1/4"

Delivery address:
742 Maple Street, Downtown"""

WALKTHROUGH_NOTES = """Property: Smith Residence
Address: 1847 Oak Avenue, Riverside

Client contact: Mr. & Mrs. Smith
Phone: (555) 456-7890

Take photos of any issues found!"""


def _chat(sender: User, content: str, at: datetime, viewer: User) -> Message:
    return Message(content=content, sender=sender, timestamp=at, is_from_current_user=sender.id == viewer.id)


def _doc(name: str, size: int, by: User, category=AttachmentCategory.REFERENCE, caption=None) -> Attachment:
    kind = AttachmentType.IMAGE if name.lower().endswith(".jpg") else AttachmentType.DOCUMENT
    return Attachment(type=kind, category=category, file_name=name, file_size=size, uploaded_by=by, caption=caption)


def seed_projects(users: list[User], now: datetime, viewer: Optional[User] = None) -> list[Project]:
    """Three projects, most recent activity first.

    Seeded task threads open with the creator's notes, the same way a
    freshly created task does.
    """
    alex, maria, james, sarah, mike = users
    viewer = viewer or alex
    yesterday = now - timedelta(days=1)
    tomorrow = now + timedelta(days=1)
    next_week = now + timedelta(days=5)

    # -- Downtown Renovation --

    kitchen = Task(
        title="Order materials for kitchen",
        assignees=[maria],
        due_date=now,
        subtasks=[
            Subtask(title="Get quotes from 3 suppliers", is_done=True, assignees=[maria], created_by=james),
            Subtask(title="Compare prices and quality", is_done=True, assignees=[maria, james], created_by=james),
            Subtask(title="Place order with selected vendor", assignees=[maria], created_by=james),
            Subtask(title="Confirm delivery date", created_by=james),
        ],
        attachments=[
            _doc("Kitchen_Materials_List.pdf", 245_000, james),
            _doc("Kitchen_Blueprint.jpg", 1_200_000, james),
        ],
        notes=KITCHEN_NOTES,
        created_by=james,
        created_at=now - timedelta(days=2),
    )
    inspection = Task(
        title="Schedule electrical inspection",
        assignees=[alex],
        due_date=tomorrow,
        subtasks=[
            Subtask(title="Call inspector office", is_done=True, assignees=[alex], created_by=maria),
            Subtask(title="Prepare documentation", assignees=[james, alex], created_by=maria),
            Subtask(title="Clear access to electrical panel", created_by=maria),
        ],
        notes="Inspector: City of Downtown Building Dept\nPermit #: EL-2024-1187",
        created_by=maria,
        created_at=now - timedelta(days=1),
    )
    tiling = Task(title="Complete bathroom tiling", assignees=[james], status=TaskStatus.DONE, created_by=alex)
    paint = Task(
        title="Paint living room walls",
        assignees=[alex, james],
        due_date=tomorrow,
        subtasks=[
            Subtask(title="Buy paint supplies", is_done=True, assignees=[james], created_by=maria),
            Subtask(title="Prep walls and tape edges", assignees=[alex], created_by=maria),
            Subtask(title="Apply first coat", assignees=[alex, james], created_by=maria),
            Subtask(title="Apply second coat", created_by=maria),
        ],
        notes="Color: Benjamin Moore Cloud White OC-130\n2 gallons needed",
        created_by=maria,
    )
    windows = Task(
        title="Install new windows",
        assignees=[alex],
        due_date=next_week,
        subtasks=[
            Subtask(title="Measure all window frames", assignees=[james], created_by=james),
            Subtask(title="Order custom windows", assignees=[maria, alex], created_by=james),
            Subtask(title="Remove old windows", created_by=james),
            Subtask(title="Install new windows", created_by=james),
            Subtask(title="Seal and insulate", created_by=james),
        ],
        attachments=[
            _doc("Window_Specifications.pdf", 320_000, james),
            _doc("Old_Window_Removed.jpg", 1_800_000, alex, AttachmentCategory.WORK, "Living room window out"),
        ],
        created_by=james,
    )
    downtown = Project(
        name="Downtown Renovation",
        members=[alex, maria, james],
        tasks=[kitchen, inspection, tiling, paint, windows],
        messages=[
            _chat(alex, "Let's start ordering the kitchen materials this week", now - timedelta(hours=5), viewer),
            _chat(maria, "I'll get the quotes from suppliers today", now - timedelta(hours=4), viewer),
            _chat(maria, "Can you check the measurements?", now - timedelta(minutes=30), viewer),
        ],
        unread_task_ids={
            alex.id: {kitchen.id, tiling.id},
            maria.id: {inspection.id},
            james.id: {kitchen.id, inspection.id},
        },
        last_activity=now,
        last_activity_preview="Maria: Can you check the measurements?",
    )

    # -- Smith Residence --

    walkthrough = Task(
        title="Final walkthrough",
        assignees=[alex],
        due_date=yesterday,
        subtasks=[
            Subtask(title="Check all rooms", is_done=True, assignees=[alex], created_by=sarah),
            Subtask(title="Test electrical outlets", is_done=True, created_by=sarah),
            Subtask(title="Test plumbing", assignees=[alex, sarah], created_by=sarah),
            Subtask(title="Document any issues", assignees=[sarah], created_by=sarah),
        ],
        attachments=[
            _doc("Walkthrough_Checklist.pdf", 156_000, sarah),
            _doc("Living_Room_Complete.jpg", 2_100_000, alex, AttachmentCategory.WORK, "Living room inspection passed"),
            _doc("Kitchen_Outlets_Test.jpg", 1_900_000, alex, AttachmentCategory.WORK, "All kitchen outlets working"),
        ],
        notes=WALKTHROUGH_NOTES,
        created_by=sarah,
        acknowledged_by={alex.id},
    )
    garage = Task(title="Fix garage door", assignees=[sarah], status=TaskStatus.DONE, created_by=alex)
    hallway = Task(
        title="Touch up paint in hallway",
        assignees=[alex],
        due_date=now,
        notes="Small scuffs near front door. Paint code: SW7015 Repose Gray",
        created_by=sarah,
    )
    detectors = Task(
        title="Replace smoke detector batteries",
        assignees=[alex, sarah],
        subtasks=[
            Subtask(title="Check upstairs detectors", assignees=[alex], created_by=sarah),
            Subtask(title="Check downstairs detectors", assignees=[sarah], created_by=sarah),
            Subtask(title="Test all alarms", created_by=sarah),
        ],
        created_by=sarah,
    )
    smith = Project(
        name="Smith Residence",
        members=[alex, sarah],
        tasks=[walkthrough, garage, hallway, detectors],
        messages=[
            _chat(alex, "Final walkthrough scheduled for tomorrow", now - timedelta(hours=3), viewer),
            _chat(sarah, "I'll prepare the checklist", now - timedelta(hours=2), viewer),
        ],
        last_activity=now - timedelta(hours=2),
        last_activity_preview="Completed: Fix garage door",
    )

    # -- Office Building - Phase 2 --

    blueprints = Task(
        title="Review blueprints",
        assignees=[mike],
        due_date=now,
        subtasks=[
            Subtask(title="Review structural plans", is_done=True, assignees=[mike], created_by=alex),
            Subtask(title="Check electrical layout", assignees=[alex, mike], created_by=alex),
            Subtask(title="Verify plumbing routes", assignees=[maria], created_by=alex),
        ],
        created_by=alex,
    )
    hvac = Task(
        title="Order HVAC units",
        assignees=[maria, alex],
        due_date=next_week,
        notes="3 rooftop units, 10 ton each. Quote from ClimateControl expires Friday.",
        created_by=mike,
    )
    city = Task(
        title="Coordinate with city inspector",
        assignees=[alex],
        notes="Permit BLD-2024-0293. Framing inspection needed before drywall.",
        created_by=maria,
    )
    foundation = Task(title="Complete foundation work", assignees=[mike], status=TaskStatus.DONE, created_by=alex)
    plumbing = Task(title="Install plumbing rough-in", assignees=[alex], due_date=tomorrow, created_by=mike)
    office = Project(
        name="Office Building - Phase 2",
        members=[alex, maria, mike],
        tasks=[blueprints, hvac, city, foundation, plumbing],
        messages=[
            _chat(mike, "HVAC units need to be ordered by Friday", now - timedelta(days=1), viewer),
            _chat(alex, "Got it, I'll coordinate with the supplier", now - timedelta(hours=6), viewer),
            _chat(maria, "Blueprints review meeting tomorrow at 10am", now - timedelta(minutes=45), viewer),
        ],
        unread_task_ids={
            alex.id: {blueprints.id, hvac.id, foundation.id, plumbing.id},
            maria.id: {blueprints.id, city.id, foundation.id},
            mike.id: {hvac.id, city.id, plumbing.id},
        },
        last_activity=now - timedelta(minutes=30),
        last_activity_preview="New task: Install plumbing rough-in",
    )

    projects = [downtown, smith, office]
    for project in projects:
        for task in project.tasks:
            task.messages.extend(opening_messages(task, viewer.id))
    return projects


# ---------------------------------------------------------------------------
# Service factory
# ---------------------------------------------------------------------------

def build_service(
    config: CollabConfig | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> CollaborationService:
    """Create a service, seeded unless ``config.seed.enabled`` is off."""
    config = config or CollabConfig.default()
    users = UserRepository()
    projects = ProjectRepository()
    service = CollaborationService(projects, users, config, AggregateLockRegistry(), clock=clock)

    if not config.seed.enabled:
        return service

    people = seed_users()
    for user in people:
        users.add(user)
    index = min(max(config.seed.current_user_index, 0), len(people) - 1)
    service.current_user = people[index]

    for project in seed_projects(people, clock(), viewer=service.current_user):
        projects.add(project)

    logger.info(
        "workspace_seeded",
        users=len(users),
        projects=len(projects),
        current_user=service.current_user.name,
    )
    return service
