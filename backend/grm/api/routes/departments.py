# grm/api/routes/departments.py
from fastapi import APIRouter, Depends
from grm.api.deps import get_current_user
from grm.models.common import DEPARTMENTS, PRIORITIES, ROLES, STATUSES, METHOD_TYPES
from grm.services import metrics_service

router = APIRouter()

@router.get("/departments")
async def get_departments():
    return DEPARTMENTS

@router.get("/options")
async def get_options():
    """Enumerations the forms and filters are built from."""
    return {
        "departments": DEPARTMENTS,
        "priorities": PRIORITIES,
        "statuses": STATUSES,
        "roles": ROLES,
        "notification_methods": METHOD_TYPES,
    }

@router.get("/departments/open-counts")
async def open_counts(_user=Depends(get_current_user)):
    return await metrics_service.navigation()
