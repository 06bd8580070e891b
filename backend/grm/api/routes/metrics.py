# grm/api/routes/metrics.py

from fastapi import APIRouter, Query, Depends
from datetime import date
from typing import Optional
from grm.api.deps import get_current_user
from grm.models.common import Department
from grm.services import metrics_service

router = APIRouter(prefix="/metrics")

@router.get("/dashboard")
async def dashboard(
    department: Optional[Department] = Query(None, description="Restrict to one department"),
    _user=Depends(get_current_user),
):
    return await metrics_service.dashboard(department)

@router.get("/analytics")
async def analytics(
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD, defaults to today (UTC)"),
    department: Optional[Department] = None,
    _user=Depends(get_current_user),
):
    return await metrics_service.analytics(day, department)
