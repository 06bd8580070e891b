# grm/services/request_service.py
import logging
import math
from datetime import datetime, timezone
from typing import Dict, Any, Iterable, List, Optional
from fastapi import HTTPException
from grm.core.config import settings
from grm.models.common import ALL, ALLOWED_TRANSITIONS, PRIORITY_ORDER, STATUSES
from grm.models.request import GuestRequest, RequestCreate
from grm.repositories import requests_repo as repo

logger = logging.getLogger(__name__)

def ensure_transition(old: str, new: str):
    if new not in ALLOWED_TRANSITIONS.get(old, set()):
        raise HTTPException(status_code=400, detail=f"Transition not allowed: {old} → {new}")

STATUS_FIX = {
    "open":"Open","OPEN":"Open","New":"Open",
    "In progress":"In Progress","in progress":"In Progress","InProgress":"In Progress",
    "resolved":"Resolved","Closed":"Resolved","Done":"Resolved",
}

def normalize(doc: Dict[str,Any]) -> Dict[str,Any]:
    out = dict(doc)
    out.pop("_id", None)
    out.setdefault("status","Open")
    out.setdefault("resolution_comments","")
    if out["resolution_comments"] is None:
        out["resolution_comments"] = ""
    st = out.get("status")
    if isinstance(st,str) and st in STATUS_FIX: out["status"]=STATUS_FIX[st]
    if out["status"] not in STATUSES: out["status"]="Open"
    now = datetime.now(timezone.utc)
    out["created_at"] = as_utc(out.get("created_at")) or now
    out["updated_at"] = as_utc(out.get("updated_at")) or out["created_at"]
    out["resolved_at"] = as_utc(out.get("resolved_at"))
    return out

def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # documents written before tz_aware=True come back naive
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

def build_request(payload: RequestCreate, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    req = GuestRequest(**payload.model_dump(), status="Open", created_at=now, updated_at=now)
    return req.model_dump()

def status_update_ops(new_status: str, comments: Optional[str], now: datetime) -> Dict[str,Any]:
    set_ops: Dict[str,Any] = {"status": new_status, "updated_at": now}
    if new_status == "Resolved":
        set_ops["resolved_at"] = now
        set_ops["resolution_comments"] = (comments or "").strip()
    return set_ops

def minutes_elapsed(doc: Dict[str,Any], now: datetime) -> float:
    created = as_utc(doc.get("created_at")) or now
    return (now - created).total_seconds() / 60

def is_overdue(doc: Dict[str,Any], now: datetime, threshold: Optional[int] = None) -> bool:
    if doc.get("status") == "Resolved":
        return False
    limit = settings.overdue_minutes if threshold is None else threshold
    return minutes_elapsed(doc, now) > limit

def elapsed_label(doc: Dict[str,Any], now: datetime) -> str:
    minutes = math.floor(minutes_elapsed(doc, now))
    if minutes < 60:
        return f"{minutes}m ago"
    return f"{minutes // 60}h ago"

def to_out(doc: Dict[str,Any], now: Optional[datetime] = None) -> Dict[str,Any]:
    now = now or datetime.now(timezone.utc)
    out = normalize(doc)
    out["is_overdue"] = is_overdue(out, now)
    out["elapsed"] = elapsed_label(out, now)
    return out

def filter_requests(
    requests: Iterable[Dict[str,Any]],
    department: Optional[str] = None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    sort_by: str = "created_at",
) -> List[Dict[str,Any]]:
    """
    Request list filtering as seen on the requests board.

    Search matches the description case-insensitively and the room number
    as a plain substring. `sort_by="priority"` puts High first; anything
    else sorts newest first.
    """
    out = []
    for r in requests:
        if department and department != ALL and r.get("department") != department:
            continue
        if search:
            in_desc = search.lower() in (r.get("description") or "").lower()
            in_room = search in (r.get("room_number") or "")
            if not (in_desc or in_room):
                continue
        if status and status != ALL and r.get("status") != status:
            continue
        if priority and priority != ALL and r.get("priority") != priority:
            continue
        out.append(r)
    if sort_by == "priority":
        out.sort(key=lambda r: PRIORITY_ORDER.get(r.get("priority"), 0), reverse=True)
    else:
        out.sort(key=lambda r: as_utc(r.get("created_at")) or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
    return out

async def create(payload: RequestCreate) -> dict:
    doc = build_request(payload)
    await repo.insert(doc)
    logger.info("request %s logged for room %s (%s, %s)", doc["id"], doc["room_number"], doc["department"], doc["priority"])
    return doc

async def get_or_404(request_id: str) -> dict:
    doc = await repo.find_by_id(request_id)
    if not doc:
        raise HTTPException(404, "Request not found")
    return normalize(doc)

async def update_status(request_id: str, new_status: str, comments: Optional[str] = None) -> dict:
    doc = await get_or_404(request_id)
    ensure_transition(doc["status"], new_status)
    now = datetime.now(timezone.utc)
    await repo.update_by_id(request_id, {"$set": status_update_ops(new_status, comments, now)})
    logger.info("request %s: %s -> %s", request_id, doc["status"], new_status)
    return normalize(await repo.find_by_id(request_id))

async def assign(request_id: str, assigned_to: Optional[str]) -> dict:
    doc = await get_or_404(request_id)
    if doc["status"] == "Resolved":
        raise HTTPException(400, "Resolved requests cannot be reassigned")
    now = datetime.now(timezone.utc)
    await repo.update_by_id(request_id, {"$set": {"assigned_to": (assigned_to or "").strip() or None, "updated_at": now}})
    return normalize(await repo.find_by_id(request_id))
