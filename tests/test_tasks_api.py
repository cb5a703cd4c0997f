import logging
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from tasktracker.config import CORS_ORIGINS
from tasktracker.main import app
from tasktracker.store import TaskStore


def _create(client, **overrides):
    payload = {
        "title": "New Test Task",
        "description": "New Description",
        "status": "New",
        "priority": "Medium",
        "dueDate": (datetime.now(timezone.utc) + timedelta(days=14)).isoformat(),
    }
    payload.update(overrides)
    response = client.post("/api/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _instant(text):
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _assert_problem(response, status_code):
    assert response.status_code == status_code
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["status"] == status_code
    for key in ("type", "title", "detail", "instance", "requestId", "timestamp"):
        assert key in body
    return body


def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json() == {"message": "Task Tracker API"}


def test_create_returns_201_with_location(client):
    response = client.post("/api/tasks", json={
        "title": "New Test Task",
        "status": "New",
        "priority": "Medium",
    })

    assert response.status_code == 201
    body = response.json()
    assert response.headers["location"] == f"/api/tasks/{body['id']}"
    assert body["status"] == "New"
    assert body["isCompleted"] is False
    assert body["updatedAt"] is None
    assert "createdAt" in body
    assert "version" not in body

    fetched = client.get(response.headers["location"])
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "New Test Task"


def test_create_with_invalid_fields_returns_problem_with_errors(client):
    response = client.post("/api/tasks", json={
        "title": "",
        "description": "x" * 1001,
        "status": "New",
        "priority": "Urgent",
    })

    body = _assert_problem(response, 400)
    assert body["instance"] == "/api/tasks"
    assert body["errors"] == {
        "title": ["Title must be between 1 and 200 characters"],
        "description": ["Description cannot exceed 1000 characters"],
        "priority": ["Priority must be one of: Low, Medium, High"],
    }


def test_create_missing_required_fields(client):
    response = client.post("/api/tasks", json={"description": "no title"})

    body = _assert_problem(response, 400)
    assert body["errors"]["title"] == ["Title is required"]
    assert body["errors"]["status"] == ["Status is required"]
    assert body["errors"]["priority"] == ["Priority is required"]


def test_malformed_json_body_is_reported_under_body(client):
    response = client.post(
        "/api/tasks",
        content=b'{"title": "Broken" "status": "New"}',
        headers={"Content-Type": "application/json"},
    )

    body = _assert_problem(response, 400)
    assert body["errors"] == {"body": ["The request body must be valid JSON"]}


def test_due_date_offset_round_trips_as_utc(client):
    task = _create(client, dueDate="2030-01-01T10:00:00+05:00")

    fetched = client.get(f"/api/tasks/{task['id']}").json()

    assert _instant(fetched["dueDate"]) == datetime(2030, 1, 1, 5, 0, tzinfo=timezone.utc)
    assert _instant(fetched["createdAt"]).utcoffset() == timedelta(0)


def test_get_missing_task_returns_404_problem(client):
    body = _assert_problem(client.get("/api/tasks/999"), 404)

    assert body["title"] == "Task not found"
    assert body["detail"] == "Task with ID 999 was not found"
    assert body["instance"] == "/api/tasks/999"
    assert "errors" not in body


def test_non_integer_id_is_a_bad_request(client):
    body = _assert_problem(client.get("/api/tasks/abc"), 400)

    assert "task_id" in body["errors"]


def test_list_search_and_sort(client):
    for title in ("Test Task 1", "Another Task", "Test Task 2"):
        _create(client, title=title)

    by_title = client.get("/api/tasks", params={"sort": "title:asc"})
    assert [task["title"] for task in by_title.json()] == ["Another Task", "Test Task 1", "Test Task 2"]

    searched = client.get("/api/tasks", params={"q": "Test", "sort": "title:desc"})
    assert [task["title"] for task in searched.json()] == ["Test Task 2", "Test Task 1"]


def test_list_title_sort_is_case_insensitive_and_direction_exact(client):
    for title in ("Banana", "apple"):
        _create(client, title=title)

    ascending = client.get("/api/tasks", params={"sort": "title:asc"})
    assert [task["title"] for task in ascending.json()] == ["apple", "Banana"]

    upper = client.get("/api/tasks", params={"sort": "title:DESC"})
    assert [task["title"] for task in upper.json()] == ["apple", "Banana"]


def test_search_folds_accented_text(client):
    _create(client, title="Étude plan")
    _create(client, title="Other")

    response = client.get("/api/tasks", params={"q": "étude"})

    assert [task["title"] for task in response.json()] == ["Étude plan"]


def test_list_with_unknown_sort_field_returns_400(client):
    body = _assert_problem(client.get("/api/tasks", params={"sort": "id:asc"}), 400)

    assert body["title"] == "Invalid sort field"
    assert body["detail"] == "Sort field must be one of: dueDate, createdAt, priority, title"


def test_update_is_partial_and_returns_204(client):
    task = _create(client)

    response = client.put(f"/api/tasks/{task['id']}", json={"title": "Updated Title", "status": "InProgress"})
    assert response.status_code == 204
    assert response.content == b""

    updated = client.get(f"/api/tasks/{task['id']}").json()
    assert updated["title"] == "Updated Title"
    assert updated["status"] == "InProgress"
    assert updated["description"] == task["description"]
    assert updated["priority"] == task["priority"]
    assert updated["updatedAt"] is not None


def test_update_validation_and_missing_task(client):
    task = _create(client)

    body = _assert_problem(client.put(f"/api/tasks/{task['id']}", json={"title": "   "}), 400)
    assert list(body["errors"]) == ["title"]

    _assert_problem(client.put("/api/tasks/999", json={"title": "Valid"}), 404)


def test_update_conflict_returns_409(client, monkeypatch):
    task = _create(client)
    monkeypatch.setattr(TaskStore, "update_conditional", lambda self, task, expected_version: False)

    body = _assert_problem(client.put(f"/api/tasks/{task['id']}", json={"title": "Mine"}), 409)

    assert body["type"].endswith("#section-6.5.8")


def test_delete_then_get_returns_404(client):
    task = _create(client)

    assert client.delete(f"/api/tasks/{task['id']}").status_code == 204
    _assert_problem(client.get(f"/api/tasks/{task['id']}"), 404)
    _assert_problem(client.delete(f"/api/tasks/{task['id']}"), 404)


def test_complete_and_incomplete(client):
    task = _create(client)

    completed = client.patch(f"/api/tasks/{task['id']}/complete")
    assert completed.status_code == 200
    assert completed.json()["status"] == "Done"
    assert completed.json()["isCompleted"] is True
    assert client.get(f"/api/tasks/{task['id']}").json()["isCompleted"] is True

    reopened = client.patch(f"/api/tasks/{task['id']}/incomplete")
    assert reopened.json()["status"] == "InProgress"
    assert reopened.json()["isCompleted"] is False

    _assert_problem(client.patch("/api/tasks/999/complete"), 404)
    _assert_problem(client.patch("/api/tasks/999/incomplete"), 404)


def test_tasks_by_priority(client):
    soon = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    later = (datetime.now(timezone.utc) + timedelta(days=9)).isoformat()
    _create(client, title="High later", priority="High", dueDate=later)
    _create(client, title="Low", priority="Low", dueDate=soon)
    _create(client, title="High soon", priority="High", dueDate=soon)

    response = client.get("/api/tasks/priority/High")

    assert response.status_code == 200
    assert [task["title"] for task in response.json()] == ["High soon", "High later"]


def test_tasks_by_unknown_priority_returns_400(client):
    body = _assert_problem(client.get("/api/tasks/priority/Critical"), 400)

    assert body["errors"] == {"priority": ["Priority must be one of: Low, Medium, High"]}


def test_unknown_route_returns_problem(client):
    body = _assert_problem(client.get("/api/nothing-here"), 404)

    assert body["instance"] == "/api/nothing-here"


def test_unexpected_error_returns_generic_500(client, monkeypatch):
    def broken_query(self, predicate=None, order_by=()):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(TaskStore, "query", broken_query)
    unsafe_client = TestClient(app, raise_server_exceptions=False)

    body = _assert_problem(unsafe_client.get("/api/tasks"), 500)

    assert "connection reset" not in body["detail"]
    assert "Traceback" not in unsafe_client.get("/api/tasks").text


def test_unexpected_error_traceback_is_logged_once(client, monkeypatch, caplog):
    def broken_query(self, predicate=None, order_by=()):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(TaskStore, "query", broken_query)
    unsafe_client = TestClient(app, raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR):
        assert unsafe_client.get("/api/tasks").status_code == 500

    with_traceback = [record for record in caplog.records if record.exc_info]
    assert len(with_traceback) == 1
    assert with_traceback[0].name == "tasktracker.services.task_service"
    assert any(
        record.name == "tasktracker.problems" and "RuntimeError" in record.getMessage()
        for record in caplog.records
    )


def test_cors_allows_configured_origin(client):
    origin = CORS_ORIGINS[0]
    response = client.options(
        "/api/tasks",
        headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
    )

    assert response.headers["access-control-allow-origin"] == origin
