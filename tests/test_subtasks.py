"""Test subtask commands and toggle narration."""
from datetime import datetime, timezone

from collab.models.entities import (
    Attachment,
    AttachmentType,
    MessageType,
    Project,
    Subtask,
    Task,
    User,
)
from collab.queries import subtask_progress
from collab.subtasks import (
    add_subtask,
    delete_subtask,
    toggle_subtask,
    toggle_subtask_assignee,
    update_subtask,
    update_subtask_assignees,
    update_subtask_description,
)
from patterns.results import RejectReason

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _task_with_paint():
    alice = User(name="Alice Adams")
    paint = Subtask(title="Buy paint")
    task = Task(title="Paint fence", subtasks=[paint], created_by=alice)
    return alice, task, paint


def test_toggle_buy_paint_completes_and_narrates():
    alice, task, paint = _task_with_paint()
    result = toggle_subtask(task, paint.id, actor=alice, now=NOW)
    assert paint.is_done
    assert len(task.messages) == 1
    message = task.messages[0]
    assert message.message_type == MessageType.SUBTASK_COMPLETED
    assert message.content == 'completed "Buy paint"'
    assert message.sender == alice
    assert message.is_from_current_user
    assert message.referenced_subtask.subtask_id == paint.id
    assert message.referenced_task is None
    assert result.emitted == [message]


def test_toggle_twice_restores_state_with_two_ordered_messages():
    alice, task, paint = _task_with_paint()
    toggle_subtask(task, paint.id, actor=alice)
    toggle_subtask(task, paint.id, actor=alice)
    assert not paint.is_done
    assert [m.message_type for m in task.messages] == [
        MessageType.SUBTASK_COMPLETED,
        MessageType.SUBTASK_REOPENED,
    ]
    assert task.messages[1].content == 'reopened "Buy paint"'


def test_toggle_into_project_thread_carries_task_reference():
    alice, task, paint = _task_with_paint()
    project = Project(name="Home", members=[alice], tasks=[task])
    toggle_subtask(task, paint.id, actor=alice, thread=project, now=NOW)
    assert task.messages == []
    message = project.messages[0]
    assert message.referenced_task.task_id == task.id
    assert message.referenced_subtask.subtask_title == "Buy paint"
    assert project.last_activity_preview == "Completed: Buy paint"
    assert project.last_activity == NOW


def test_toggle_unknown_subtask_emits_nothing():
    alice, task, _ = _task_with_paint()
    result = toggle_subtask(task, Subtask(title="ghost").id, actor=alice)
    assert result.reason == RejectReason.NOT_FOUND
    assert result.emitted == []
    assert task.messages == []


def test_reference_in_narration_is_a_snapshot():
    alice, task, paint = _task_with_paint()
    toggle_subtask(task, paint.id, actor=alice)
    update_subtask(task, paint.id, "Buy primer")
    assert task.messages[0].referenced_subtask.subtask_title == "Buy paint"
    assert paint.title == "Buy primer"


def test_progress_counts_done_subtasks():
    alice, task, paint = _task_with_paint()
    add_subtask(task, "Sand boards", created_by=alice)
    add_subtask(task, "Apply coat", created_by=alice)
    toggle_subtask(task, paint.id, actor=alice)
    progress = subtask_progress(task)
    assert (progress.completed, progress.total) == (1, 3)
    assert progress.fraction == 1 / 3


def test_add_subtask_appends_with_creator():
    alice, task, paint = _task_with_paint()
    result = add_subtask(task, "Sand boards", created_by=alice, description="  ", now=NOW)
    subtask = result.value
    assert task.subtasks == [paint, subtask]
    assert subtask.created_by == alice
    assert subtask.description is None
    assert task.last_activity == NOW


def test_add_subtask_blank_title_rejected():
    alice, task, _ = _task_with_paint()
    assert add_subtask(task, "  ", created_by=alice).reason == RejectReason.VALIDATION_FAILURE
    assert len(task.subtasks) == 1


def test_update_subtask_title():
    _, task, paint = _task_with_paint()
    assert update_subtask(task, paint.id, "Buy primer")
    assert paint.title == "Buy primer"
    assert update_subtask(task, paint.id, " ").reason == RejectReason.VALIDATION_FAILURE
    assert paint.title == "Buy primer"
    assert update_subtask(task, Subtask(title="x").id, "y").reason == RejectReason.NOT_FOUND


def test_update_subtask_description():
    _, task, paint = _task_with_paint()
    update_subtask_description(task, paint.id, " White, satin ")
    assert paint.description == "White, satin"
    update_subtask_description(task, paint.id, "")
    assert paint.description is None


def test_update_and_toggle_subtask_assignees():
    alice, task, paint = _task_with_paint()
    bob = User(name="Bob")
    update_subtask_assignees(task, paint.id, [bob, bob, alice])
    assert paint.assignees == [bob, alice]
    toggle_subtask_assignee(task, paint.id, bob)
    assert paint.assignees == [alice]
    toggle_subtask_assignee(task, paint.id, bob)
    assert paint.assignees == [alice, bob]


def test_delete_subtask_keeps_attachment_links_by_default():
    alice, task, paint = _task_with_paint()
    receipt = Attachment(
        type=AttachmentType.IMAGE, file_name="receipt.jpg", uploaded_by=alice, linked_subtask_id=paint.id
    )
    task.attachments.append(receipt)
    assert delete_subtask(task, paint.id)
    assert task.subtasks == []
    assert task.attachments[0].linked_subtask_id == paint.id
    assert delete_subtask(task, paint.id).reason == RejectReason.NOT_FOUND


def test_delete_subtask_cascade_unlinks_attachments():
    alice, task, paint = _task_with_paint()
    linked = Attachment(type=AttachmentType.IMAGE, file_name="a.jpg", uploaded_by=alice, linked_subtask_id=paint.id)
    other = Attachment(type=AttachmentType.IMAGE, file_name="b.jpg", uploaded_by=alice)
    task.attachments.extend([linked, other])
    delete_subtask(task, paint.id, cascade=True)
    assert [a.linked_subtask_id for a in task.attachments] == [None, None]
    assert task.attachments[0].id == linked.id
    assert task.attachments[1] is other
