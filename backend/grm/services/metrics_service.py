# grm/services/metrics_service.py
from __future__ import annotations
from datetime import date, datetime, time, timezone
from typing import Dict, Any, List, Iterable, Optional
from grm.core.config import settings
from grm.models.common import DEPARTMENTS
from grm.repositories import requests_repo as repo
from grm.services.request_service import as_utc, is_overdue, normalize

def _day_bounds(day: date, tz=timezone.utc) -> tuple[datetime, datetime]:
    # 00:00:00 .. 23:59:59 inclusive, as the day picker selects it
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)
    return start, end

def _avg_resolution_minutes(requests: List[Dict[str, Any]]) -> float:
    resolved = [r for r in requests if r.get("status") == "Resolved" and r.get("resolved_at")]
    if not resolved:
        return 0.0
    total = sum((as_utc(r["resolved_at"]) - as_utc(r["created_at"])).total_seconds() / 60 for r in resolved)
    return round(total / len(resolved), 1)

def count_by_department(requests: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for r in requests:
        dept = r.get("department") or "N/A"
        out[dept] = out.get(dept, 0) + 1
    return out

def dashboard_metrics(requests: Iterable[Dict[str, Any]], now: Optional[datetime] = None,
                      overdue_minutes: Optional[int] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    threshold = settings.overdue_minutes if overdue_minutes is None else overdue_minutes
    reqs = [normalize(r) for r in requests]

    total = len(reqs)
    open_count = sum(1 for r in reqs if r["status"] == "Open")
    in_progress = sum(1 for r in reqs if r["status"] == "In Progress")
    resolved = sum(1 for r in reqs if r["status"] == "Resolved")
    overdue = sum(1 for r in reqs if is_overdue(r, now, threshold))

    return {
        "total_requests": total,
        "open_requests": open_count,
        "in_progress_requests": in_progress,
        "resolved_requests": resolved,
        "avg_resolution_minutes": _avg_resolution_minutes(reqs),
        "overdue_requests": overdue,
        "overdue_threshold_minutes": threshold,
        "resolution_rate": round(resolved / total * 100, 1) if total else 0.0,
        "by_department": count_by_department(reqs),
    }

def analytics_for_day(requests: Iterable[Dict[str, Any]], day: date,
                      overdue_minutes: Optional[int] = None,
                      now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Daily performance view.

    Only requests created on `day` count. Overdue is measured at the end of
    that day, or at `now` when the day is still running.
    """
    now = now or datetime.now(timezone.utc)
    start, end = _day_bounds(day)
    reqs = [normalize(r) for r in requests]
    day_reqs = [r for r in reqs if start <= r["created_at"] <= end]

    result = dashboard_metrics(day_reqs, now=min(now, end), overdue_minutes=overdue_minutes)

    by_hour = [0] * 24
    for r in day_reqs:
        by_hour[r["created_at"].hour] += 1
    result["by_hour"] = [{"hour": h, "label": f"{h:02d}:00", "count": c} for h, c in enumerate(by_hour)]
    result["by_priority"] = {
        "High": sum(1 for r in day_reqs if r["priority"] == "High"),
        "Medium": sum(1 for r in day_reqs if r["priority"] == "Medium"),
        "Low": sum(1 for r in day_reqs if r["priority"] == "Low"),
    }
    result["date"] = day.isoformat()
    result["is_today"] = day == now.date()
    return result

def navigation_counts(requests: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Open (non-resolved) request count per department, for the department picker badges."""
    out = {d: 0 for d in DEPARTMENTS}
    for r in requests:
        if normalize(r)["status"] != "Resolved":
            dept = r.get("department")
            out[dept] = out.get(dept, 0) + 1
    return out

async def _load(department: Optional[str]) -> List[Dict[str, Any]]:
    filt = {"department": department} if department and department != "All" else {}
    return await repo.list_all(filt)

async def dashboard(department: Optional[str] = None) -> Dict[str, Any]:
    return dashboard_metrics(await _load(department))

async def analytics(day: Optional[date] = None, department: Optional[str] = None) -> Dict[str, Any]:
    day = day or datetime.now(timezone.utc).date()
    start, end = _day_bounds(day)
    filt: Dict[str, Any] = {"created_at": {"$gte": start, "$lte": end}}
    if department and department != "All":
        filt["department"] = department
    return analytics_for_day(await repo.list_all(filt), day)

async def navigation() -> Dict[str, int]:
    return navigation_counts(await repo.list_open())
