import os

import pytest

# Settings are read at import time; keep the tests off any real database or channel.
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017/test")
os.environ.setdefault("DB_NAME", "grm_test")
os.environ.setdefault("SECRET_KEY", "grm-test-secret-key-not-for-production-use")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "true")

from grm.services import notification_service  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_center(monkeypatch):
    """Each test gets an empty in-app notification centre."""
    center = notification_service.NotificationCenter()
    monkeypatch.setattr(notification_service, "center", center)
    return center


@pytest.fixture(autouse=True)
def fresh_ledger(monkeypatch):
    """Each test starts with nothing dispatched."""
    ledger = notification_service.DispatchLedger()
    monkeypatch.setattr(notification_service, "ledger", ledger)
    return ledger
