# grm/models/request.py
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List
import uuid
from grm.models.common import Department, Priority, RequestStatus

class GuestRequest(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    room_number: str
    title: Optional[str] = None
    department: Department
    priority: Priority
    description: str
    logged_by: str
    status: RequestStatus = "Open"
    assigned_to: Optional[str] = None
    resolution_comments: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None

class RequestOut(GuestRequest):
    is_overdue: bool = False
    elapsed: str = ""

class RequestCreate(BaseModel):
    room_number: str = Field(min_length=1)
    title: Optional[str] = None
    department: Department
    priority: Priority = "Medium"
    description: str = Field(min_length=1)
    logged_by: str = Field(min_length=1)
    assigned_to: Optional[str] = None

class StatusUpdatePayload(BaseModel):
    status: RequestStatus
    # only stored when status == "Resolved"
    comments: Optional[str] = None

class AssignPayload(BaseModel):
    assigned_to: Optional[str] = None

class PaginatedRequests(BaseModel):
    items: List[RequestOut]
    page: int
    page_size: int
    total: int
    total_pages: int
    has_prev: bool
    has_next: bool
