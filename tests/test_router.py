"""Test the HTTP surface with FastAPI's TestClient."""
from fastapi.testclient import TestClient

from api.main import create_app
from collab.seed import build_service
from patterns.domain_config import CollabConfig


def _client():
    service = build_service(CollabConfig.default())
    return TestClient(create_app(service=service)), service


def _as(user):
    return {"X-User-ID": str(user.id)}


def _downtown(service):
    return next(p for p in service.projects if p.name == "Downtown Renovation")


def test_health():
    client, _ = _client()
    with client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_whoami_defaults_to_current_user():
    client, service = _client()
    assert client.get("/api/collab/me").json()["user"]["name"] == "Alex Johnson"
    maria = service.users.find_by_phone("+1 555-0101")
    assert client.get("/api/collab/me", headers=_as(maria)).json()["initials"] == "MG"


def test_bad_user_header():
    client, _ = _client()
    assert client.get("/api/collab/me", headers={"X-User-ID": "nope"}).status_code == 400
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get("/api/collab/me", headers={"X-User-ID": missing}).status_code == 404


def test_list_projects_with_search_and_unread():
    client, _ = _client()
    body = client.get("/api/collab/projects").json()
    assert body["pagination"]["total"] == 3
    first = body["data"][0]
    assert first["name"] == "Downtown Renovation"
    assert first["unread_count"] == 2
    assert first["initials"] == "DR"

    found = client.get("/api/collab/projects", params={"search": "smith"}).json()["data"]
    assert [p["name"] for p in found] == ["Smith Residence"]
    assert client.get("/api/collab/unread").json() == {"total": 6}


def test_create_task_and_toggle():
    client, service = _client()
    project = _downtown(service)
    maria = project.members[1]

    response = client.post(
        f"/api/collab/projects/{project.id}/tasks",
        json={
            "title": "Paint fence",
            "assignee_ids": [str(maria.id)],
            "subtasks": [{"title": "Buy paint"}, {"title": "  "}],
            "notes": "White",
        },
    )
    assert response.status_code == 201
    task = response.json()
    assert task["status"] == "pending"
    assert [s["title"] for s in task["subtasks"]] == ["Buy paint"]
    assert task["created_by"]["name"] == "Alex Johnson"

    toggled = client.post(f"/api/collab/projects/{project.id}/tasks/{task['id']}/toggle")
    assert toggled.json()["status"] == "done"

    detail = client.get(f"/api/collab/projects/{project.id}/tasks/{task['id']}").json()
    assert detail["progress"] == {"completed": 0, "total": 1, "fraction": 0.0}
    assert detail["is_admin"] is True


def test_blank_title_is_422_with_reason():
    client, service = _client()
    project = _downtown(service)
    response = client.post(f"/api/collab/projects/{project.id}/tasks", json={"title": "   "})
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["reason"] == "validation_failure"
    assert detail["operation"] == "add_task"


def test_delete_task_twice_is_404():
    client, service = _client()
    project = _downtown(service)
    task = project.tasks[0]
    url = f"/api/collab/projects/{project.id}/tasks/{task.id}"
    assert client.delete(url).status_code == 204
    assert client.delete(url).status_code == 404


def test_toggle_subtask_in_project_thread():
    client, service = _client()
    project = _downtown(service)
    paint = next(t for t in project.tasks if t.title == "Paint living room walls")
    buy = paint.subtasks[0]

    response = client.post(
        f"/api/collab/projects/{project.id}/tasks/{paint.id}/subtasks/{buy.id}/toggle",
        params={"thread": "project"},
    )
    body = response.json()
    assert body["subtask"]["is_done"] is False
    assert body["message"]["message_type"] == "subtask_reopened"
    assert body["message"]["content"] == 'reopened "Buy paint supplies"'
    assert body["message"]["referenced_task"]["task_title"] == "Paint living room walls"


def test_update_subtask_fields():
    client, service = _client()
    project = _downtown(service)
    paint = next(t for t in project.tasks if t.title == "Paint living room walls")
    sub = paint.subtasks[1]
    url = f"/api/collab/projects/{project.id}/tasks/{paint.id}/subtasks/{sub.id}"

    response = client.patch(url, json={"title": "Prep walls", "description": "Use blue tape"})
    assert response.status_code == 200
    assert response.json()["title"] == "Prep walls"
    assert response.json()["description"] == "Use blue tape"
    assert client.patch(url, json={"title": ""}).status_code == 422


def test_member_removal_requires_admin():
    client, service = _client()
    project = _downtown(service)
    alex, maria, james = project.members
    url = f"/api/collab/projects/{project.id}/members/{james.id}"

    assert client.delete(url, headers=_as(maria)).status_code == 403
    assert client.delete(url, headers=_as(alex)).status_code == 204
    assert not project.has_member(james.id)
    assert all(not t.is_assigned(james.id) for t in project.tasks)


def test_add_member():
    client, service = _client()
    project = _downtown(service)
    sarah = service.users.find_by_phone("+1 555-0103")
    available = client.get(f"/api/collab/projects/{project.id}/members/available").json()
    assert sarah.name in [u["name"] for u in available["data"]]

    response = client.post(f"/api/collab/projects/{project.id}/members", json={"user_id": str(sarah.id)})
    assert response.status_code == 201
    assert project.has_member(sarah.id)


def test_chat_with_staged_reference():
    client, service = _client()
    project = _downtown(service)
    task = project.tasks[0]
    base = f"/api/collab/projects/{project.id}"

    assert client.post(f"{base}/composer/task/{task.id}").status_code == 200
    assert client.get(f"{base}/composer").json()["active_preview"] == "task"

    assert client.post(f"{base}/messages", json={"content": ""}).status_code == 422
    sent = client.post(f"{base}/messages", json={"content": "Status?"})
    assert sent.status_code == 201
    assert sent.json()["referenced_task"]["task_id"] == str(task.id)
    assert client.get(f"{base}/composer").json()["active_preview"] is None

    thread = client.get(f"{base}/messages").json()
    assert thread["data"][-1]["content"] == "Status?"


def test_task_thread_and_contact_share():
    client, service = _client()
    project = _downtown(service)
    task = project.tasks[0]
    base = f"/api/collab/projects/{project.id}"

    shared = client.post(
        f"{base}/messages/contact",
        params={"task_id": str(task.id)},
        json={"name": "Bob Plumber", "phone_number": "+1 555-0199"},
    )
    assert shared.status_code == 201
    thread = client.get(f"{base}/messages", params={"task_id": str(task.id)}).json()["data"]
    assert thread[-1]["content"] == "Shared contact: Bob Plumber\n+1 555-0199"


def test_attachments_endpoints():
    client, service = _client()
    project = _downtown(service)
    kitchen = project.tasks[0]
    base = f"/api/collab/projects/{project.id}/tasks/{kitchen.id}/attachments"

    media = client.get(base, params={"kind": "media"}).json()
    assert [a["file_name"] for a in media["data"]] == ["Kitchen_Blueprint.jpg"]

    created = client.post(base, json={"type": "document", "file_name": "Receipt.pdf", "file_size": 12_000})
    assert created.status_code == 201
    attachment_id = created.json()["id"]
    assert client.get(base, params={"kind": "docs"}).json()["count"] == 2

    assert client.delete(f"{base}/{attachment_id}").status_code == 204
    assert client.delete(f"{base}/{attachment_id}").status_code == 404


def test_acknowledge_endpoint():
    client, service = _client()
    project = _downtown(service)
    inspection = next(t for t in project.tasks if t.title == "Schedule electrical inspection")
    url = f"/api/collab/projects/{project.id}/tasks/{inspection.id}/acknowledge"
    response = client.post(url, json={"text": "Calling today"})
    assert response.status_code == 200
    assert project.messages[-1].content == "✓ Accepted: Calling today"


def test_create_and_delete_project():
    client, service = _client()
    sarah = service.users.find_by_phone("+1 555-0103")
    response = client.post(
        "/api/collab/projects",
        json={"name": "New site", "contacts": [{"name": "Sarah", "phone_number": sarah.phone_number, "is_on_app": True}]},
    )
    assert response.status_code == 201
    project = response.json()
    assert [m["name"] for m in project["members"]] == ["Alex Johnson", "Sarah Chen"]

    listed = client.get("/api/collab/projects").json()["data"]
    assert listed[0]["name"] == "New site"

    assert client.delete(f"/api/collab/projects/{project['id']}").status_code == 204
    assert client.get(f"/api/collab/projects/{project['id']}").status_code == 404


def test_naive_due_date_keeps_project_list_working():
    client, service = _client()
    project = _downtown(service)
    response = client.post(
        f"/api/collab/projects/{project.id}/tasks",
        json={
            "title": "Order skip",
            "due_date": "2020-01-01T00:00:00",
            "subtasks": [{"title": "Call depot", "due_date": "2020-01-01T08:00:00"}],
        },
    )
    assert response.status_code == 201

    listing = client.get("/api/collab/projects")
    assert listing.status_code == 200
    row = next(p for p in listing.json()["data"] if p["name"] == "Downtown Renovation")
    assert row["overdue_task_count"] >= 1
    assert client.get(f"/api/collab/projects/{project.id}").status_code == 200


def test_create_task_with_attachments_posts_opening_message():
    client, service = _client()
    project = _downtown(service)
    response = client.post(
        f"/api/collab/projects/{project.id}/tasks",
        json={
            "title": "Fit skirting",
            "attachments": [
                {"type": "image", "file_name": "wall.jpg", "file_size": 2048},
                {"type": "document", "file_name": "spec.pdf"},
            ],
        },
    )
    assert response.status_code == 201
    task = response.json()
    assert [a["file_name"] for a in task["attachments"]] == ["wall.jpg", "spec.pdf"]
    assert task["attachments"][0]["uploaded_by"]["name"] == "Alex Johnson"
    assert "Attached 2 files" in [m["content"] for m in task["messages"]]


def test_unknown_assignee_on_task_creation_is_404():
    client, service = _client()
    project = _downtown(service)
    response = client.post(
        f"/api/collab/projects/{project.id}/tasks",
        json={"title": "Sweep", "assignee_ids": ["00000000-0000-0000-0000-000000000000"]},
    )
    assert response.status_code == 404
