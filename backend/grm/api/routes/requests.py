# grm/api/routes/requests.py
from fastapi import APIRouter, Query, Depends
from datetime import datetime, timezone
from typing import Optional, Literal
from grm.api.deps import get_current_user
from grm.core.config import settings
from grm.models.common import Department, Priority, RequestStatus
from grm.models.request import AssignPayload, PaginatedRequests, RequestCreate, RequestOut, StatusUpdatePayload
from grm.repositories import requests_repo as repo
from grm.services import notification_service
from grm.services import request_service as svc
from grm.utils.pagination import meta

router = APIRouter()

@router.post("", response_model=RequestOut, status_code=201)
async def create_request(payload: RequestCreate, _user=Depends(get_current_user)):
    doc = await svc.create(payload)
    await notification_service.on_request_changed(doc)
    return svc.to_out(doc)

@router.get("", response_model=PaginatedRequests)
async def get_requests(
    _user=Depends(get_current_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=settings.max_page_size),
    department: Optional[Department] = None,
    status: Optional[RequestStatus] = None,
    priority: Optional[Priority] = None,
    q: Optional[str] = None,
    sort: Literal["created_at","priority"] = "created_at",
):
    filt = {"department": department} if department else {}
    items = svc.filter_requests(await repo.list_all(filt), search=q, status=status, priority=priority, sort_by=sort)
    m = meta(len(items), page, page_size)
    start = (m.page - 1) * page_size
    now = datetime.now(timezone.utc)
    return {"items": [svc.to_out(d, now) for d in items[start:start + page_size]], **m.model_dump()}

@router.get("/overdue", response_model=list[RequestOut])
async def get_overdue(department: Optional[Department] = None, _user=Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    docs = await repo.list_open()
    return [svc.to_out(d, now) for d in svc.filter_requests(docs, department=department)
            if svc.is_overdue(d, now)]

@router.get("/{request_id}", response_model=RequestOut)
async def get_request(request_id: str, _user=Depends(get_current_user)):
    return svc.to_out(await svc.get_or_404(request_id))

@router.post("/{request_id}/status", response_model=RequestOut)
async def update_status(request_id: str, payload: StatusUpdatePayload, _user=Depends(get_current_user)):
    doc = await svc.update_status(request_id, payload.status, payload.comments)
    await notification_service.on_request_changed(doc)
    return svc.to_out(doc)

@router.post("/{request_id}/assign", response_model=RequestOut)
async def assign(request_id: str, payload: AssignPayload, _user=Depends(get_current_user)):
    return svc.to_out(await svc.assign(request_id, payload.assigned_to))
