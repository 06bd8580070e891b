# grm/api/routes/reports.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from datetime import date, datetime, timezone
from typing import Literal, Optional, Union
from grm.api.deps import get_current_user
from grm.models.common import Department, Priority, RequestStatus
from grm.services import report_service as svc
from grm.services.request_service import to_out

router = APIRouter(prefix="/reports")


class ReportFilters:
    def __init__(
        self,
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        department: Union[Department, Literal["All"]] = "All",
        priority: Union[Priority, Literal["All"]] = "All",
        status: Union[RequestStatus, Literal["All"]] = "All",
        q: Optional[str] = Query(None, description="Room, description, logged by or assignee"),
    ):
        self.values = {
            "start_date": start_date, "end_date": end_date, "department": department,
            "priority": priority, "status": status, "search": q,
        }


@router.get("")
async def report(filters: ReportFilters = Depends(), _user=Depends(get_current_user)):
    items = await svc.report(**filters.values)
    now = datetime.now(timezone.utc)
    return {"items": [to_out(r, now) for r in items], "summary": svc.report_summary(items)}


@router.get("/export.csv")
async def export(filters: ReportFilters = Depends(), _user=Depends(get_current_user)):
    items = await svc.report(**filters.values)
    return Response(
        content=svc.export_csv(items),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{svc.export_filename()}"'},
    )
