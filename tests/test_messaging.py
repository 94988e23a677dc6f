"""Test chat messaging and composer staging."""
from datetime import datetime, timedelta, timezone

from collab.messaging import Composer, find_message, messages_in_order, send_contact_message, send_message
from collab.models.entities import Contact, Message, Project, QuotedMessage, Subtask, Task, TaskReference, User
from patterns.results import RejectReason

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _thread():
    maria = User(name="Maria Garcia")
    project = Project(name="Downtown", members=[maria])
    return maria, project


def test_send_hi_appends_one_message():
    maria, project = _thread()
    result = send_message(project, "Hi", sender=maria, now=NOW)
    assert result
    assert len(project.messages) == 1
    message = project.messages[0]
    assert message.content == "Hi"
    assert message.is_from_current_user
    assert message.sender == maria
    assert project.last_activity_preview == "Maria: Hi"
    assert project.last_activity == NOW


def test_blank_message_rejected_and_composer_kept():
    maria, project = _thread()
    task = Task(title="Paint fence")
    composer = Composer()
    composer.reference_task(task)
    for content in ("", "   "):
        result = send_message(project, content, sender=maria, composer=composer)
        assert result.reason == RejectReason.VALIDATION_FAILURE
    assert project.messages == []
    assert composer.active_preview == "task"


def test_send_consumes_staged_reference():
    maria, project = _thread()
    task = Task(title="Paint fence")
    composer = Composer()
    composer.reference_task(task)
    message = send_message(project, "Look at this", sender=maria, composer=composer).value
    assert message.referenced_task == TaskReference(task_id=task.id, task_title="Paint fence")
    assert composer.active_preview is None


def test_explicit_arguments_win_over_staged():
    maria, project = _thread()
    original = Message(content="Can you check the measurements?", sender=maria)
    composer = Composer()
    composer.quote_message(original)
    explicit = TaskReference(task_id=Task(title="x").id, task_title="x")

    message = send_message(project, "ok", sender=maria, composer=composer, referenced_task=explicit).value
    assert message.referenced_task == explicit
    assert message.quoted_message is None
    assert composer.active_preview is None


def test_message_on_task_thread_touches_task():
    maria, _ = _thread()
    task = Task(title="T", created_at=NOW - timedelta(days=1))
    send_message(task, "done soon", sender=maria, now=NOW)
    assert task.last_activity == NOW
    assert task.messages[0].content == "done soon"


def test_composer_keeps_one_preview():
    maria, _ = _thread()
    sub = Subtask(title="Buy paint")
    task = Task(title="Paint fence", subtasks=[sub])
    composer = Composer()

    composer.quote_message(Message(content="hello", sender=maria))
    assert composer.active_preview == "quote"

    composer.reference_subtask(task, sub)
    assert composer.active_preview == "subtask"
    assert composer.quoted_message is None
    assert composer.referenced_task.task_id == task.id

    composer.reference_task(task)
    assert composer.active_preview == "task"
    assert composer.referenced_subtask is None

    composer.clear()
    assert composer.active_preview is None


def test_quote_is_a_snapshot():
    maria, project = _thread()
    original = send_message(project, "first", sender=maria).value
    composer = Composer()
    quote = composer.quote_message(original)
    assert quote == QuotedMessage(message_id=original.id, sender_name="Maria", content="first")
    reply = send_message(project, "reply", sender=maria, composer=composer).value
    assert reply.quoted_message.content == "first"


def test_contact_message():
    maria, project = _thread()
    contact = Contact(name="Bob Plumber", phone_number="+1 555-0199")
    message = send_contact_message(project, contact, sender=maria).value
    assert message.content == "Shared contact: Bob Plumber\n+1 555-0199"
    assert not message.is_system
    assert project.last_activity_preview == "Maria: shared a contact"


def test_find_and_order_messages():
    maria, project = _thread()
    late = send_message(project, "late", sender=maria, now=NOW).value
    early = send_message(project, "early", sender=maria, now=NOW - timedelta(minutes=5)).value
    assert find_message(project, late.id) is late
    assert find_message(project, Task(title="x").id) is None
    assert messages_in_order(project) == [early, late]
