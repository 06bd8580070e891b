import asyncio
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from grm.models.notification import RuleUpdate
from grm.models.user import UserUpdate
from grm.repositories import push_tokens_repo, requests_repo, rules_repo, users_repo
from grm.services import push_service, request_service, rules_service, user_service

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeCollection:
    """Dict-backed stand-in for a repository module, keyed by `id`."""

    def __init__(self, *docs):
        self.docs = {d["id"]: dict(d) for d in docs}

    async def find_by_id(self, doc_id):
        doc = self.docs.get(doc_id)
        return dict(doc) if doc else None

    async def insert(self, doc):
        self.docs[doc["id"]] = dict(doc)

    async def update_by_id(self, doc_id, fields):
        self.docs[doc_id].update(fields.get("$set", fields))

    async def delete_by_id(self, doc_id):
        return 1 if self.docs.pop(doc_id, None) else 0


def _install(monkeypatch, module, fake, *names):
    for name in names:
        monkeypatch.setattr(module, name, getattr(fake, name))


# ---- requests ----

def _request(rid="r1", status="Open"):
    return {
        "id": rid, "room_number": "101", "department": "Housekeeping", "priority": "Medium",
        "description": "Extra towels", "logged_by": "Ana", "status": status,
        "created_at": NOW, "updated_at": NOW,
    }


@pytest.fixture
def requests_store(monkeypatch):
    store = FakeCollection(_request("r1"), _request("r2", status="Resolved"))
    _install(monkeypatch, requests_repo, store, "find_by_id", "insert", "update_by_id")
    return store


def test_assign_sets_and_trims_the_assignee(requests_store):
    doc = asyncio.run(request_service.assign("r1", "  Marco "))
    assert doc["assigned_to"] == "Marco"
    assert requests_store.docs["r1"]["assigned_to"] == "Marco"


def test_assign_blank_clears_the_assignee(requests_store):
    asyncio.run(request_service.assign("r1", "Marco"))
    assert asyncio.run(request_service.assign("r1", "   "))["assigned_to"] is None


def test_resolved_request_cannot_be_reassigned(requests_store):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(request_service.assign("r2", "Marco"))
    assert exc.value.status_code == 400


def test_missing_request_is_404(requests_store):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(request_service.assign("nope", "Marco"))
    assert exc.value.status_code == 404


def test_update_status_resolves_and_keeps_comments(requests_store):
    doc = asyncio.run(request_service.update_status("r1", "Resolved", " fixed "))
    assert doc["status"] == "Resolved"
    assert doc["resolution_comments"] == "fixed"
    assert doc["resolved_at"] is not None


# ---- rules ----

@pytest.fixture
def rules_store(monkeypatch):
    store = FakeCollection({"id": "rule-1", **rules_service.DEFAULT_RULE})
    _install(monkeypatch, rules_repo, store, "find_by_id", "update_by_id", "delete_by_id")
    return store


def test_partial_update_is_revalidated(rules_store):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(rules_service.update("rule-1", RuleUpdate(escalation_time=10)))
    assert exc.value.status_code == 422
    assert rules_store.docs["rule-1"]["escalation_time"] == 30


def test_partial_update_keeps_other_fields(rules_store):
    doc = asyncio.run(rules_service.update("rule-1", RuleUpdate(trigger_time=20)))
    assert doc["trigger_time"] == 20
    assert doc["name"] == "Default response time"
    assert rules_store.docs["rule-1"]["trigger_time"] == 20


def test_toggle_flips_is_active(rules_store):
    assert asyncio.run(rules_service.toggle("rule-1"))["is_active"] is False


def test_delete_unknown_rule_is_404(rules_store):
    with pytest.raises(HTTPException) as exc:
        asyncio.run(rules_service.delete("missing"))
    assert exc.value.status_code == 404


# ---- users ----

def _user(uid, role="Staff", is_active=True):
    return {"id": uid, "name": uid, "email": f"{uid}@grandhotel.com", "role": role,
            "department": "Front Desk", "is_active": is_active, "created_at": NOW}


def _users(monkeypatch, *docs):
    store = FakeCollection(*docs)
    _install(monkeypatch, users_repo, store, "find_by_id", "update_by_id", "delete_by_id")

    async def count_by_role(role, active_only=False):
        return sum(1 for u in store.docs.values()
                   if u["role"] == role and (u["is_active"] or not active_only))

    async def find_by_email(email):
        return None

    monkeypatch.setattr(users_repo, "count_by_role", count_by_role)
    monkeypatch.setattr(users_repo, "find_by_email", find_by_email)
    return store


def test_cannot_delete_yourself(monkeypatch):
    _users(monkeypatch, _user("boss", "Admin"))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(user_service.delete("boss", _user("boss", "Admin")))
    assert exc.value.detail == "You cannot delete yourself"


def test_cannot_delete_the_last_admin(monkeypatch):
    _users(monkeypatch, _user("boss", "Admin"), _user("mgr", "Manager"))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(user_service.delete("boss", _user("mgr", "Manager")))
    assert exc.value.detail == "Cannot delete the last Admin"


def test_delete_staff(monkeypatch):
    store = _users(monkeypatch, _user("boss", "Admin"), _user("s1"))
    asyncio.run(user_service.delete("s1", _user("boss", "Admin")))
    assert "s1" not in store.docs


def test_cannot_demote_the_last_admin(monkeypatch):
    _users(monkeypatch, _user("boss", "Admin"), _user("mgr", "Manager"))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(user_service.update("boss", UserUpdate(role="Manager")))
    assert exc.value.status_code == 400


def test_demote_when_another_admin_is_active(monkeypatch):
    store = _users(monkeypatch, _user("boss", "Admin"), _user("boss2", "Admin"))
    asyncio.run(user_service.update("boss", UserUpdate(role="Manager")))
    assert store.docs["boss"]["role"] == "Manager"


def test_inactive_second_admin_does_not_count(monkeypatch):
    _users(monkeypatch, _user("boss", "Admin"), _user("old", "Admin", is_active=False), _user("mgr", "Manager"))
    with pytest.raises(HTTPException):
        asyncio.run(user_service.toggle_active("boss", _user("mgr", "Manager")))


def test_toggle_deactivates_and_reactivates(monkeypatch):
    store = _users(monkeypatch, _user("boss", "Admin"), _user("s1"))
    asyncio.run(user_service.toggle_active("s1", _user("boss", "Admin")))
    assert store.docs["s1"]["is_active"] is False
    asyncio.run(user_service.toggle_active("s1", _user("boss", "Admin")))
    assert store.docs["s1"]["is_active"] is True


def test_cannot_deactivate_yourself(monkeypatch):
    _users(monkeypatch, _user("boss", "Admin"), _user("boss2", "Admin"))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(user_service.toggle_active("boss", _user("boss", "Admin")))
    assert exc.value.detail == "You cannot deactivate yourself"


# ---- push tokens ----

def test_register_push_token_upserts_by_user(monkeypatch):
    _users(monkeypatch, _user("s1"))
    saved = []

    async def upsert(doc):
        saved.append(doc)

    monkeypatch.setattr(push_tokens_repo, "upsert", upsert)
    doc = asyncio.run(push_service.register("s1", "tok-123"))
    assert saved == [doc]
    assert (doc["user_id"], doc["token"], doc["name"], doc["department"]) == ("s1", "tok-123", "s1", "Front Desk")


def test_register_push_token_for_unknown_user_is_404(monkeypatch):
    _users(monkeypatch)
    with pytest.raises(HTTPException) as exc:
        asyncio.run(push_service.register("ghost", "tok"))
    assert exc.value.status_code == 404
