# grm/api/routes/users.py
from fastapi import APIRouter, Depends
from grm.api.deps import require_role
from grm.models.common import SETTINGS_ROLES
from grm.models.user import UserCreate, UserOut, UserUpdate
from grm.services import user_service as svc

router = APIRouter()

@router.post("", response_model=UserOut, status_code=201)
async def create_user(payload: UserCreate, current=Depends(require_role(SETTINGS_ROLES))):
    return await svc.create(payload)

@router.get("", response_model=list[UserOut])
async def list_users(current=Depends(require_role(SETTINGS_ROLES))):
    return await svc.list_users()

@router.patch("/{user_id}", response_model=UserOut)
async def update_user(user_id: str, payload: UserUpdate, current=Depends(require_role(SETTINGS_ROLES))):
    return await svc.update(user_id, payload)

@router.post("/{user_id}/toggle-active", response_model=UserOut)
async def toggle_active(user_id: str, current=Depends(require_role(SETTINGS_ROLES))):
    return await svc.toggle_active(user_id, current)

@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, current=Depends(require_role(SETTINGS_ROLES))):
    await svc.delete(user_id, current)
