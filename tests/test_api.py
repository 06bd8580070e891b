from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from grm.api.deps import get_current_user
from grm.main import app
from grm.models.common import DEPARTMENTS
from grm.models.notification import Notification
from grm.repositories import requests_repo, rules_repo
from grm.services import channels, notification_service

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _user(role):
    return {
        "id": f"{role.lower()}-1", "name": role, "email": f"{role.lower()}@grandhotel.com",
        "role": role, "department": "Front Desk", "is_active": True, "created_at": NOW,
    }


@pytest.fixture
def client():
    # no `with`: startup (indexes, seeding, trigger loop) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login_as(role):
    app.dependency_overrides[get_current_user] = lambda: _user(role)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_departments_are_public(client):
    r = client.get("/api/departments")
    assert r.status_code == 200
    assert r.json() == DEPARTMENTS


def test_options_list_the_enumerations(client):
    body = client.get("/api/options").json()
    assert body["statuses"] == ["Open", "In Progress", "Resolved"]
    assert "webhook" in body["notification_methods"]


def test_requests_need_a_token(client):
    assert client.get("/api/requests").status_code in (401, 403)


def test_bad_token_is_rejected(client):
    r = client.get("/api/requests", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_staff_cannot_manage_users(client):
    _login_as("Staff")
    assert client.get("/api/users").status_code == 403


def test_staff_cannot_touch_notification_rules(client):
    _login_as("Supervisor")
    assert client.get("/api/notification-rules").status_code == 403


def test_me_returns_the_current_user(client):
    _login_as("Manager")
    body = client.get("/api/auth/me").json()
    assert body["role"] == "Manager"
    assert "password_hash" not in body


def test_notification_centre_endpoints(client, fresh_center):
    _login_as("Staff")
    fresh_center.add(Notification(id="n1", type="trigger", request_id="r1", message="m1", timestamp=NOW))
    fresh_center.add(Notification(id="n2", type="escalation", request_id="r2", message="m2", timestamp=NOW, priority="high"))

    body = client.get("/api/notifications").json()
    assert body["unread"] == 2
    assert [n["id"] for n in body["items"]] == ["n2", "n1"]

    assert client.post("/api/notifications/n1/read").status_code == 200
    assert client.post("/api/notifications/missing/read").status_code == 404
    assert client.get("/api/notifications", params={"unread_only": True}).json()["unread"] == 1

    assert client.post("/api/notifications/read-all").json() == {"updated": 1}
    assert client.delete("/api/notifications/n2").status_code == 200
    assert client.delete("/api/notifications").json() == {"ok": True}
    assert client.get("/api/notifications").json() == {"items": [], "unread": 0}


def test_invalid_department_filter_is_rejected(client):
    _login_as("Staff")
    assert client.get("/api/requests", params={"department": "Spa"}).status_code == 422


def test_create_request_validates_the_body(client):
    _login_as("Staff")
    r = client.post("/api/requests", json={"room_number": "", "department": "IT", "description": "x", "logged_by": "y"})
    assert r.status_code == 422


# ---- request writes with notifications wired in ----

@pytest.fixture
def stored(monkeypatch):
    docs = []

    async def insert(doc):
        docs.append(dict(doc))

    monkeypatch.setattr(requests_repo, "insert", insert)
    return docs


NEW_REQUEST = {"room_number": "412", "department": "Engineering", "priority": "High",
               "description": "AC leaking", "logged_by": "Front desk"}


def test_submitting_the_form_adds_one_open_request(client, stored, monkeypatch):
    _login_as("Staff")
    monkeypatch.setattr(notification_service.settings, "notifications_enabled", False)
    r = client.post("/api/requests", json=NEW_REQUEST)
    assert r.status_code == 201
    assert len(stored) == 1
    assert stored[0]["status"] == "Open"
    body = r.json()
    assert body["status"] == "Open"
    assert body["id"] == stored[0]["id"]
    assert body["elapsed"] == "0m ago"


def test_broken_webhook_does_not_fail_the_write(client, stored, monkeypatch, fresh_center):
    _login_as("Staff")
    slack_rule = {"id": "rule-slack", "name": "Engineering", "department": "All", "priority": "All",
                  "trigger_time": 0, "escalation_time": 30, "notify_roles": ["Supervisor"],
                  "methods": [{"type": "slack", "enabled": True}], "is_active": True}

    async def rules():
        return [slack_rule]

    async def bad_slack(notification, request, rule):
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    monkeypatch.setattr(rules_repo, "list_all", rules)
    monkeypatch.setitem(channels.SENDERS, "slack", bad_slack)

    r = client.post("/api/requests", json=NEW_REQUEST)
    assert r.status_code == 201
    assert len(stored) == 1
    assert fresh_center.exists(stored[0]["id"], "trigger")


def test_rule_lookup_failure_does_not_fail_the_write(client, stored, monkeypatch):
    _login_as("Staff")

    async def rules():
        raise PyMongoError("connection reset")

    monkeypatch.setattr(rules_repo, "list_all", rules)
    assert client.post("/api/requests", json=NEW_REQUEST).status_code == 201
    assert len(stored) == 1
