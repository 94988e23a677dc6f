"""Test domain entities and their derived properties."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from collab.models.entities import (
    Attachment,
    AttachmentCategory,
    AttachmentType,
    Contact,
    Message,
    MessageType,
    Project,
    QuotedMessage,
    Subtask,
    SubtaskReference,
    Task,
    TaskReference,
    User,
    format_file_size,
)
from patterns.workflow_states import TaskStatus

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def test_user_initials_and_names():
    maria = User(name="Maria Garcia")
    assert maria.avatar_initials == "MG"
    assert maria.display_first_name == "Maria"
    assert User(name="cher").avatar_initials == "CH"
    assert maria.display_name_for(maria.id) == "Me"
    assert maria.display_name_for(User(name="x").id) == "Maria Garcia"
    assert maria.display_first_name_for(None) == "Maria"


def test_user_is_immutable():
    alice = User(name="Alice")
    with pytest.raises(ValidationError):
        alice.name = "Bob"


def test_contact_initials():
    assert Contact(name="Sarah Chen", phone_number="+1 555-0103").initials == "SC"


def test_file_size_formatting():
    assert format_file_size(512) == "512 bytes"
    assert format_file_size(245_000) == "245 KB"
    assert format_file_size(1_200_000) == "1.2 MB"
    assert format_file_size(3_400_000_000) == "3.4 GB"


def test_attachment_properties():
    james = User(name="James Wilson")
    pdf = Attachment(type=AttachmentType.DOCUMENT, file_name="Kitchen_Materials_List.PDF", file_size=245_000, uploaded_by=james)
    photo = Attachment(type=AttachmentType.IMAGE, category=AttachmentCategory.WORK, file_name="done.jpg", uploaded_by=james)
    assert pdf.is_instruction and not pdf.is_deliverable
    assert photo.is_deliverable and photo.is_media
    assert pdf.file_extension == "pdf"
    assert Attachment(type=AttachmentType.DOCUMENT, file_name="README", uploaded_by=james).file_extension == ""
    assert pdf.file_size_formatted == "245 KB"


def test_attachment_rejects_negative_size():
    with pytest.raises(ValidationError):
        Attachment(type=AttachmentType.DOCUMENT, file_name="x.pdf", file_size=-1, uploaded_by=User(name="A"))


def test_status_message_requires_subtask_reference():
    alice = User(name="Alice")
    with pytest.raises(ValidationError):
        Message(content='completed "Buy paint"', sender=alice, message_type=MessageType.SUBTASK_COMPLETED)

    ref = SubtaskReference(subtask_id=Subtask(title="Buy paint").id, subtask_title="Buy paint")
    message = Message(
        content='completed "Buy paint"',
        sender=alice,
        referenced_subtask=ref,
        message_type=MessageType.SUBTASK_COMPLETED,
    )
    assert message.is_system
    assert message.status_reference == ref


def test_regular_message_has_no_status_reference():
    alice = User(name="Alice")
    ref = SubtaskReference(subtask_id=Subtask(title="x").id, subtask_title="x")
    message = Message(content="hi", sender=alice, referenced_subtask=ref)
    assert not message.is_system
    assert message.status_reference is None


def test_snapshots_are_copies():
    task = Task(title="Paint fence")
    ref = TaskReference.from_task(task)
    task.title = "Paint garage"
    assert ref.task_title == "Paint fence"

    message = Message(content="hello", sender=User(name="Maria Garcia"))
    quote = QuotedMessage.from_message(message)
    assert quote.sender_name == "Maria"
    assert quote.content == "hello"


def test_task_dedupes_assignees_and_defaults_activity():
    bob = User(name="Bob")
    task = Task(title="T", assignees=[bob, bob], created_at=NOW)
    assert task.assignees == [bob]
    assert task.assignee is bob
    assert task.last_activity == NOW


def test_task_overdue_only_when_pending_and_past_due():
    task = Task(title="T", due_date=NOW - timedelta(minutes=1))
    assert task.is_overdue(NOW)
    task.status = TaskStatus.DONE
    assert not task.is_overdue(NOW)
    assert not Task(title="T").is_overdue(NOW)
    assert not Task(title="T", due_date=NOW + timedelta(hours=1)).is_overdue(NOW)


def test_task_due_today():
    assert Task(title="T", due_date=NOW.replace(hour=23)).is_due_today(NOW)
    assert not Task(title="T", due_date=NOW + timedelta(days=1)).is_due_today(NOW)


def test_task_acknowledgement():
    bob = User(name="Bob")
    task = Task(title="T", assignees=[bob])
    assert task.is_new_for(bob.id)
    task.acknowledged_by.add(bob.id)
    assert task.is_acknowledged_by(bob.id)
    assert not task.is_new_for(bob.id)


def test_subtask_overdue():
    sub = Subtask(title="S", due_date=NOW - timedelta(days=1))
    assert sub.is_overdue(NOW)
    sub.is_done = True
    assert not sub.is_overdue(NOW)


def test_naive_due_dates_are_read_as_utc():
    task = Task(title="T", due_date=datetime(2020, 1, 1))
    assert task.due_date == datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert task.is_overdue(NOW)
    sub = Subtask(title="S", due_date=datetime(2020, 1, 1))
    assert sub.due_date.tzinfo is timezone.utc
    assert sub.is_overdue(NOW)


def test_project_counts_and_initials():
    project = Project(
        name="Downtown Renovation",
        tasks=[
            Task(title="a"),
            Task(title="b", status=TaskStatus.DONE),
            Task(title="c", due_date=NOW - timedelta(days=1)),
        ],
    )
    assert project.pending_task_count == 2
    assert project.completed_task_count == 1
    assert project.overdue_task_count(NOW) == 1
    assert project.initials == "DR"


def test_project_dedupes_members():
    alice = User(name="Alice")
    project = Project(name="P", members=[alice, User(name="Bob"), alice])
    assert len(project.members) == 2
    assert project.members[0] is alice


def test_project_last_message_is_latest_by_time():
    alice = User(name="Alice")
    late = Message(content="late", sender=alice, timestamp=NOW)
    early = Message(content="early", sender=alice, timestamp=NOW - timedelta(hours=1))
    project = Project(name="P", messages=[late, early])
    assert project.last_message is late
    assert Project(name="Empty").last_message is None


def test_project_unread_tracking():
    alice = User(name="Alice")
    task = Task(title="T")
    project = Project(name="P", tasks=[task])
    project.add_unread_task(task.id, alice.id)
    assert project.unread_count_for(alice.id) == 1
    assert project.is_task_unread(task.id, alice.id)
    project.mark_task_read(task.id, alice.id)
    assert project.unread_count_for(alice.id) == 0
    project.mark_task_read(task.id, User(name="x").id)
