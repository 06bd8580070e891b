# grm/services/report_service.py
"""
Reports: filtered request listings and the CSV export.

The export keeps the column layout the front office already imports into
spreadsheets: description is always quoted, resolution comments are quoted
when present, and every other cell is quoted only if it has to be.
"""
from __future__ import annotations
import io
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional
from grm.models.common import ALL, STATUSES
from grm.repositories import requests_repo as repo
from grm.services.request_service import as_utc, normalize

CSV_HEADERS = [
    "Request ID",
    "Room Number",
    "Department",
    "Priority",
    "Status",
    "Description",
    "Logged By",
    "Assigned To",
    "Created Date",
    "Updated Date",
    "Resolved Date",
    "Resolution Comments",
]

DATE_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


def filter_report(
    requests: Iterable[Dict[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    department: Optional[str] = ALL,
    priority: Optional[str] = ALL,
    status: Optional[str] = ALL,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Report filters; the end date covers the whole day. Newest first."""
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date, time(23, 59, 59), tzinfo=timezone.utc) if end_date else None
    needle = (search or "").lower()

    out = []
    for raw in requests:
        r = normalize(raw)
        if start and r["created_at"] < start:
            continue
        if end and r["created_at"] > end:
            continue
        if department and department != ALL and r.get("department") != department:
            continue
        if priority and priority != ALL and r.get("priority") != priority:
            continue
        if status and status != ALL and r.get("status") != status:
            continue
        if needle:
            haystack = [r.get("room_number"), r.get("description"), r.get("logged_by"), r.get("assigned_to")]
            if not any(needle in (v or "").lower() for v in haystack):
                continue
        out.append(r)
    out.sort(key=lambda r: r["created_at"], reverse=True)
    return out


def report_summary(requests: List[Dict[str, Any]]) -> Dict[str, int]:
    summary = {"total": len(requests)}
    for st in STATUSES:
        summary[st] = sum(1 for r in requests if r.get("status") == st)
    return summary


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _cell(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return _quote(text)
    return text


def _fmt_date(value: Optional[datetime]) -> str:
    dt = as_utc(value)
    return dt.strftime(DATE_FORMAT) if dt else ""


def csv_row(r: Dict[str, Any]) -> str:
    comments = r.get("resolution_comments") or ""
    cells = [
        _cell(r.get("id")),
        _cell(r.get("room_number")),
        _cell(r.get("department")),
        _cell(r.get("priority")),
        _cell(r.get("status")),
        _quote(r.get("description") or ""),
        _cell(r.get("logged_by")),
        _cell(r.get("assigned_to") or ""),
        _cell(_fmt_date(r.get("created_at"))),
        _cell(_fmt_date(r.get("updated_at"))),
        _cell(_fmt_date(r.get("resolved_at"))),
        _quote(comments) if comments else "",
    ]
    return ",".join(cells)


def export_csv(requests: Iterable[Dict[str, Any]]) -> str:
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS))
    for r in requests:
        buf.write("\n")
        buf.write(csv_row(r))
    return buf.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return f"hotel-requests-report-{today.isoformat()}.csv"


async def report(**filters) -> List[Dict[str, Any]]:
    return filter_report(await repo.list_all(), **filters)
