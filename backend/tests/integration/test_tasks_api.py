"""Integration tests for the task HTTP API.

Tests cover:
- Authentication (missing, invalid, disabled)
- POST /api/v1/tasks create and fan-out
- GET /api/v1/tasks listing with visibility and paging
- GET /api/v1/tasks/{id} detail with audit trail
- PATCH /api/v1/tasks/{id} out-of-band edit
- POST /api/v1/tasks/{id}/actions lifecycle actions
- Notification inbox and receive log endpoints
- Error body shape and status mapping
- Health, metrics and root endpoints
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from dispatchlog.models.base import utcnow


pytestmark = pytest.mark.integration


@pytest.fixture
def create_payload(priority, complexity):
    def _payload(assignees, **overrides):
        payload = {
            "assignees": assignees,
            "description_of_work": "Inspect landing gear",
            "priority_id": str(priority.id),
            "complexity_id": str(complexity.id),
            "assigned_completion_date": (utcnow() + timedelta(days=7)).isoformat(),
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def created_task(client, creator, employee, auth_headers, create_payload):
    response = client.post(
        "/api/v1/tasks", json=create_payload([str(employee.id)]), headers=auth_headers(creator)
    )
    assert response.status_code == 201
    return response.json()["task"]


class TestAuthentication:

    def test_missing_token(self, client: TestClient, create_payload):
        response = client.post("/api/v1/tasks", json=create_payload(["external-name:x"]))

        assert response.status_code in (401, 403)

    def test_invalid_token(self, client: TestClient):
        response = client.get(f"/api/v1/tasks/{uuid4()}", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401

    def test_disabled_user(self, client: TestClient, db_session, employee, auth_headers):
        employee.status = "DISABLED"
        db_session.commit()

        response = client.get(f"/api/v1/tasks/{uuid4()}", headers=auth_headers(employee))

        assert response.status_code == 403


class TestCreateTask:

    def test_create_fans_out(self, client, creator, employee, auth_headers, create_payload, email_sender):
        response = client.post(
            "/api/v1/tasks",
            json=create_payload([str(employee.id), "external-email:Vendor@Example.com"]),
            headers=auth_headers(creator),
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["tasks"]) == 2
        assert body["task"] == body["tasks"][0]
        assert body["task"]["assigned_to_id"] == str(employee.id)
        assert body["tasks"][1]["external_assignee_email"] == "vendor@example.com"
        assert body["task"]["status"] == "ACTIVE"
        assert email_sender.recipients() == [employee.email, "vendor@example.com"]

    def test_create_notice(self, client, creator, employee, auth_headers, create_payload):
        response = client.post(
            "/api/v1/tasks",
            json=create_payload([str(employee.id), "external-name:acme"], is_notice=True),
            headers=auth_headers(creator),
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["tasks"]) == 1
        assert body["task"]["status"] == "CLOSED"
        assert body["task"]["is_notice"] is True

    def test_permission_denied_body(self, client, employee, auth_headers, create_payload):
        response = client.post(
            "/api/v1/tasks", json=create_payload(["external-name:x"]), headers=auth_headers(employee)
        )

        assert response.status_code == 403
        assert response.json() == {
            "error": "permission_denied",
            "message": "You do not have permission to create tasks",
        }

    def test_unresolvable_assignees(self, client, creator, auth_headers, create_payload):
        response = client.post(
            "/api/v1/tasks", json=create_payload([str(uuid4())]), headers=auth_headers(creator)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_priority(self, client, creator, auth_headers, create_payload):
        response = client.post(
            "/api/v1/tasks",
            json=create_payload(["external-name:x"], priority_id=str(uuid4())),
            headers=auth_headers(creator),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_schema_violation(self, client, creator, auth_headers, create_payload):
        response = client.post(
            "/api/v1/tasks", json=create_payload([], status="CLOSED"), headers=auth_headers(creator)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert {tuple(d["loc"]) for d in response.json()["details"]} >= {("body", "status")}


class TestTaskDetail:

    def test_detail_includes_audit(self, client, employee, auth_headers, created_task):
        response = client.get(f"/api/v1/tasks/{created_task['id']}", headers=auth_headers(employee))

        assert response.status_code == 200
        body = response.json()
        assert body["record_number"] == created_task["record_number"]
        assert [a["action_type"] for a in body["actions"]] == ["CREATED"]
        assert [h["action"] for h in body["history"]] == ["TASK_CREATED"]
        assert body["attachments"] == []

    def test_unknown_task(self, client, employee, auth_headers):
        response = client.get(f"/api/v1/tasks/{uuid4()}", headers=auth_headers(employee))

        assert response.status_code == 404


class TestActions:

    def test_submit_by_holder(self, client, employee, auth_headers, created_task):
        response = client.post(
            f"/api/v1/tasks/{created_task['id']}/actions",
            json={"action_type": "SUBMITTED", "reference_number": "REF-1"},
            headers=auth_headers(employee),
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["task"]["status"] == "COMPLETED"

    def test_submit_by_other_user(self, client, employee2, auth_headers, created_task):
        response = client.post(
            f"/api/v1/tasks/{created_task['id']}/actions",
            json={"action_type": "SUBMITTED"},
            headers=auth_headers(employee2),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_action_type(self, client, employee, auth_headers, created_task):
        response = client.post(
            f"/api/v1/tasks/{created_task['id']}/actions",
            json={"action_type": "ARCHIVED"},
            headers=auth_headers(employee),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_reject_requires_reason(self, client, employee, approver, auth_headers, created_task):
        url = f"/api/v1/tasks/{created_task['id']}/actions"
        client.post(url, json={"action_type": "SUBMITTED"}, headers=auth_headers(employee))

        response = client.post(url, json={"action_type": "REJECTED", "reason": " "}, headers=auth_headers(approver))

        assert response.status_code == 400

    def test_forward_then_acknowledge_flow(self, client, employee, employee2, approver, auth_headers, created_task):
        url = f"/api/v1/tasks/{created_task['id']}/actions"

        forwarded = client.post(
            url, json={"action_type": "FORWARDED", "forwarded_to_id": str(employee2.id)},
            headers=auth_headers(employee),
        )
        submitted = client.post(url, json={"action_type": "SUBMITTED"}, headers=auth_headers(employee2))
        acknowledged = client.post(url, json={"action_type": "ACKNOWLEDGED"}, headers=auth_headers(approver))

        assert forwarded.json()["task"]["assigned_to_id"] == str(employee2.id)
        assert submitted.json()["task"]["status"] == "COMPLETED"
        assert acknowledged.status_code == 200
        assert acknowledged.json()["task"]["acknowledged_by_id"] == str(approver.id)

    def test_closed_task_error_message(self, client, director, employee, auth_headers, created_task):
        url = f"/api/v1/tasks/{created_task['id']}/actions"
        client.post(url, json={"action_type": "CLOSED"}, headers=auth_headers(director))

        response = client.post(url, json={"action_type": "SUBMITTED"}, headers=auth_headers(employee))

        assert response.status_code == 400
        assert response.json()["message"] == "Task is closed and cannot be modified"


class TestEditTask:

    def test_director_edits(self, client, director, auth_headers, created_task):
        response = client.patch(
            f"/api/v1/tasks/{created_task['id']}",
            json={"description_of_work": "Replace tyre"},
            headers=auth_headers(director),
        )

        assert response.status_code == 200
        assert response.json()["description_of_work"] == "Replace tyre"

    def test_employee_cannot_edit(self, client, employee, auth_headers, created_task):
        response = client.patch(
            f"/api/v1/tasks/{created_task['id']}",
            json={"description_of_work": "Replace tyre"},
            headers=auth_headers(employee),
        )

        assert response.status_code == 403


class TestListTasks:

    def test_visibility_and_paging(self, client, employee, employee2, director, auth_headers, created_task):
        own = client.get("/api/v1/tasks", headers=auth_headers(employee))
        other = client.get("/api/v1/tasks", headers=auth_headers(employee2))
        everyone = client.get("/api/v1/tasks?per_page=1", headers=auth_headers(director))

        assert own.status_code == 200
        assert [item["id"] for item in own.json()["items"]] == [created_task["id"]]
        assert other.json()["total"] == 0
        body = everyone.json()
        assert (body["total"], body["page"], body["per_page"], body["total_pages"]) == (1, 1, 1, 1)

    def test_assigned_to_me_matches_notice_roster(self, client, creator, employee, employee2, auth_headers, create_payload):
        created = client.post(
            "/api/v1/tasks",
            json=create_payload([str(employee.id), str(employee2.id)], is_notice=True),
            headers=auth_headers(creator),
        )
        notice_id = created.json()["task"]["id"]

        response = client.get("/api/v1/tasks?assigned_to=me", headers=auth_headers(employee2))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [notice_id]
        assert str(employee2.id) in response.json()["items"][0]["assignee_ids"]

    def test_bad_assigned_to(self, client, director, auth_headers):
        response = client.get("/api/v1/tasks?assigned_to=bob", headers=auth_headers(director))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestNotificationInbox:

    def test_list_and_mark_read(self, client, employee, auth_headers, created_task):
        listing = client.get("/api/v1/notifications", headers=auth_headers(employee))

        assert listing.status_code == 200
        body = listing.json()
        assert body["unread_count"] == 1
        notification = body["notifications"][0]
        assert notification["type"] == "TASK_ASSIGNED"
        assert notification["task"]["id"] == created_task["id"]

        marked = client.patch(
            f"/api/v1/notifications/{notification['id']}",
            json={"read": True},
            headers=auth_headers(employee),
        )
        assert marked.status_code == 200
        assert marked.json()["read"] is True

        unread = client.get("/api/v1/notifications?unread_only=true", headers=auth_headers(employee))
        assert unread.json() == {"notifications": [], "unread_count": 0}

    def test_cannot_mark_someone_elses(self, client, employee, employee2, auth_headers, created_task):
        listing = client.get("/api/v1/notifications", headers=auth_headers(employee))
        notification_id = listing.json()["notifications"][0]["id"]

        response = client.patch(
            f"/api/v1/notifications/{notification_id}",
            json={"read": True},
            headers=auth_headers(employee2),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestReceives:

    def test_superadmin_logs_receive(self, client, superadmin, auth_headers):
        created = client.post(
            "/api/v1/receives",
            json={"subject": "Inspection request", "sender": "Hangar 3"},
            headers=auth_headers(superadmin),
        )

        assert created.status_code == 201
        assert created.json()["record_number"] == "1"
        assert created.json()["status"] == "OPEN"

        listing = client.get("/api/v1/receives?status=OPEN", headers=auth_headers(superadmin))
        assert [r["id"] for r in listing.json()["receives"]] == [created.json()["id"]]

    def test_employee_forbidden(self, client, employee, auth_headers):
        response = client.post(
            "/api/v1/receives",
            json={"subject": "Inspection request", "sender": "Hangar 3"},
            headers=auth_headers(employee),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"


class TestObservability:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["components"]["database"]["status"] == "healthy"
        assert response.json()["components"]["email"]["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"ready": True, "database": "healthy"}

    def test_metrics(self, client, created_task):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "dispatchlog_tasks_created_total" in response.text

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["name"] == "Dispatch Log API"
