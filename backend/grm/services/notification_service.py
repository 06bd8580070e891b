# grm/services/notification_service.py
"""
Elapsed-time notifications for open guest requests.

Every open request is aged in minutes from `created_at` and checked against
the active notification rules. A rule matches on department and priority
("All" matches anything). A threshold fires only while it has just been
crossed, i.e. while the age is inside [threshold, threshold + window) where
the window is one polling interval (at least a minute). Escalation wins
over trigger when both windows overlap. Resolving a request raises a
resolved notification.

Each matching rule dispatches through its own methods. The DispatchLedger
remembers (request_id, type, rule_id) keys so a rule never sends twice for
the same crossing; the in-app NotificationCenter keeps one entry per
request id and type. Dismissing or clearing notifications does not touch
the ledger. Nothing is persisted: after a restart only requests whose
threshold falls inside the current window can alert.

The check runs from three places:
    - TriggerScheduler, once per `notification_check_interval_seconds`
    - on_request_changed, called by the request routes after every write
    - the optional change stream watcher (`notifications_use_change_stream`)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pymongo.errors import PyMongoError

from grm.core.config import settings
from grm.models.common import ALL
from grm.models.notification import Notification
from grm.repositories import requests_repo, rules_repo
from grm.services import channels
from grm.services.request_service import minutes_elapsed, normalize

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  In-app notification centre
# ═══════════════════════════════════════════════════════════════════════════

class NotificationCenter:
    """Newest-first list of in-app notifications, capped at `max_items`."""

    def __init__(self, max_items: int = 500):
        self.max_items = max_items
        self._items: List[Notification] = []

    def add(self, notification: Notification) -> None:
        self._items.insert(0, notification)
        del self._items[self.max_items:]

    def exists(self, request_id: str, type_: str) -> bool:
        return any(n.request_id == request_id and n.type == type_ for n in self._items)

    def list(self, unread_only: bool = False) -> List[Notification]:
        if unread_only:
            return [n for n in self._items if not n.is_read]
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.is_read)

    def mark_read(self, notification_id: str) -> bool:
        for n in self._items:
            if n.id == notification_id:
                n.is_read = True
                return True
        return False

    def mark_all_read(self) -> int:
        changed = 0
        for n in self._items:
            if not n.is_read:
                n.is_read = True
                changed += 1
        return changed

    def dismiss(self, notification_id: str) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) < before

    def clear(self) -> None:
        self._items = []


center = NotificationCenter()


DispatchKey = Tuple[str, str, Optional[str]]


class DispatchLedger:
    """(request_id, type, rule_id) keys already sent through a rule's channels."""

    def __init__(self):
        self._fired: Dict[DispatchKey, datetime] = {}

    def __contains__(self, key: DispatchKey) -> bool:
        return key in self._fired

    def __len__(self) -> int:
        return len(self._fired)

    def keys(self) -> Set[DispatchKey]:
        return set(self._fired)

    def mark(self, key: DispatchKey, now: datetime) -> None:
        self._fired[key] = now

    def prune(self, now: datetime, window: float) -> None:
        # past two windows the crossing check alone rules the key out
        cutoff = now - timedelta(minutes=2 * window)
        self._fired = {k: t for k, t in self._fired.items() if t >= cutoff}


ledger = DispatchLedger()


# ═══════════════════════════════════════════════════════════════════════════
#  Rule matching
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class Trigger:
    notification: Notification
    request: Dict[str, Any]
    rule: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> DispatchKey:
        n = self.notification
        return (n.request_id, n.type, n.rule_id)


def crossing_window() -> float:
    """Minutes a threshold counts as just crossed: one polling interval, never under a minute."""
    return max(1.0, settings.notification_check_interval_seconds / 60)


def _crossed(age: float, threshold: int, window: float) -> bool:
    return threshold <= age < threshold + window


def rule_matches(rule: Dict[str, Any], request: Dict[str, Any]) -> bool:
    if not rule.get("is_active", True):
        return False
    dept = rule.get("department", ALL)
    prio = rule.get("priority", ALL)
    return (dept == ALL or dept == request.get("department")) and \
           (prio == ALL or prio == request.get("priority"))


def _notification_id(type_: str, request_id: str, now: datetime) -> str:
    return f"{type_}-{request_id}-{int(now.timestamp() * 1000)}"


def _where(request: Dict[str, Any]) -> str:
    return f"Room {request.get('room_number')} ({request.get('department')})"


def build_notification(type_: str, request: Dict[str, Any], now: datetime,
                       rule: Optional[Dict[str, Any]] = None) -> Notification:
    if type_ == "escalation":
        message = f"ESCALATION: Request in {_where(request)} has been open for {rule['escalation_time']} minutes"
        priority = "high"
    elif type_ == "trigger":
        message = f"Request in {_where(request)} has been open for {rule['trigger_time']} minutes"
        priority = (request.get("priority") or "Medium").lower()
    else:
        message = f"Request in {_where(request)} has been resolved"
        priority = (request.get("priority") or "Medium").lower()
    if rule and rule.get("name"):
        message = f"{rule['name']}: {message}"
    return Notification(
        id=_notification_id(type_, request["id"], now),
        type=type_,
        request_id=request["id"],
        rule_id=rule.get("id") if rule else None,
        message=message,
        timestamp=now,
        priority=priority,
    )


def evaluate(requests: Iterable[Dict[str, Any]], rules: List[Dict[str, Any]], now: datetime,
             seen: Optional[Set[DispatchKey]] = None, window: Optional[float] = None) -> List[Trigger]:
    """
    Returns the notifications due at `now`, one per matching rule.

    `seen` holds (request_id, type, rule_id) keys that already fired; it is
    updated in place so one evaluation never yields the same key twice.
    """
    seen = set() if seen is None else seen
    window = crossing_window() if window is None else window
    out: List[Trigger] = []
    for raw in requests:
        req = normalize(raw)
        if req["status"] == "Resolved":
            continue
        age = minutes_elapsed(req, now)
        for rule in rules:
            if not rule_matches(rule, req):
                continue
            if _crossed(age, rule.get("escalation_time", 0), window):
                type_ = "escalation"
            elif _crossed(age, rule.get("trigger_time", 0), window):
                type_ = "trigger"
            else:
                continue
            key = (req["id"], type_, rule.get("id"))
            if key in seen:
                continue
            seen.add(key)
            out.append(Trigger(build_notification(type_, req, now, rule), req, rule))
    return out


# ═══════════════════════════════════════════════════════════════════════════
#  Runners
# ═══════════════════════════════════════════════════════════════════════════

async def _fire(triggers: List[Trigger], now: datetime) -> None:
    for t in triggers:
        ledger.mark(t.key, now)
        n = t.notification
        if not center.exists(n.request_id, n.type):
            center.add(n)
        logger.info("notification %s (rule %s): %s", n.type, n.rule_id, n.message)
        await channels.dispatch(n, t.request, t.rule)


async def check_requests(requests: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[Notification]:
    now = now or datetime.now(timezone.utc)
    window = crossing_window()
    ledger.prune(now, window)
    rules = await rules_repo.list_all()
    triggers = evaluate(requests, rules, now, seen=ledger.keys(), window=window)
    await _fire(triggers, now)
    return [t.notification for t in triggers]


async def run_check(now: Optional[datetime] = None) -> List[Notification]:
    """One polling tick over every open request."""
    return await check_requests(await requests_repo.list_open(), now)


async def _after_write(req: Dict[str, Any]) -> List[Notification]:
    if req["status"] == "Resolved":
        if center.exists(req["id"], "resolved"):
            return []
        n = build_notification("resolved", req, datetime.now(timezone.utc))
        center.add(n)
        return [n]
    return await check_requests([req])


async def on_request_changed(request: Dict[str, Any]) -> List[Notification]:
    """
    Hook for request writes and change stream events. Never raises: the
    write it follows is already stored.
    """
    if not settings.notifications_enabled:
        return []
    try:
        return await _after_write(normalize(request))
    except Exception as e:
        logger.exception("notification hook failed for request %s: %s", request.get("id"), e)
        return []


class TriggerScheduler:
    """Background asyncio tasks: the polling loop and, when enabled, the change stream watcher."""

    def __init__(self, interval_seconds: Optional[int] = None):
        self.interval = interval_seconds or settings.notification_check_interval_seconds
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._poll(), name="grm-trigger-poll")]
        if settings.notifications_use_change_stream:
            self._tasks.append(asyncio.create_task(self._watch(), name="grm-trigger-watch"))
        logger.info("TriggerScheduler started (interval=%ss, change_stream=%s)",
                    self.interval, settings.notifications_use_change_stream)

    async def stop(self) -> None:
        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _poll(self) -> None:
        while True:
            try:
                fired = await run_check()
                if fired:
                    logger.info("trigger check fired %d notification(s)", len(fired))
            except Exception as e:
                logger.exception("trigger check failed: %s", e)
            await asyncio.sleep(self.interval)

    async def _watch(self) -> None:
        # change streams need a replica set; a standalone server fails here and polling carries on
        try:
            async with requests_repo.collection().watch(full_document="updateLookup") as stream:
                async for change in stream:
                    doc = change.get("fullDocument")
                    if doc:
                        await on_request_changed(doc)
        except PyMongoError as e:
            logger.exception("change stream stopped: %s", e)


scheduler = TriggerScheduler()
