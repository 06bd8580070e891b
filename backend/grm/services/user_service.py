# grm/services/user_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List
from fastapi import HTTPException
from grm.core.security import hash_password, verify_password
from grm.models.user import UserCreate, UserInDB, UserUpdate
from grm.repositories import users_repo as repo

logger = logging.getLogger(__name__)


def public(user: Dict[str, Any] | None) -> Dict[str, Any] | None:
    """User document without the password hash or Mongo's _id."""
    if not user:
        return user
    out = dict(user)
    out.pop("password_hash", None)
    out.pop("_id", None)
    return out


def build_user(payload: UserCreate, now: datetime | None = None) -> Dict[str, Any]:
    if payload.password != payload.confirm_password:
        raise HTTPException(400, "Passwords do not match")
    now = now or datetime.now(timezone.utc)
    user = UserInDB(
        name=payload.name.strip(),
        email=str(payload.email).strip().lower(),
        role=payload.role,
        department=payload.department,
        is_active=True,
        created_at=now,
        updated_at=now,
        last_login=None,
        password_hash=hash_password(payload.password),
    )
    return user.model_dump()


def update_fields(payload: UserUpdate, now: datetime | None = None) -> Dict[str, Any]:
    data = payload.model_dump(exclude_none=True)
    password = data.pop("password", None)
    if "email" in data:
        data["email"] = str(data["email"]).strip().lower()
    if password:
        data["password_hash"] = hash_password(password)
    data["updated_at"] = now or datetime.now(timezone.utc)
    return data


async def get_or_404(user_id: str) -> Dict[str, Any]:
    user = await repo.find_by_id(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


async def create(payload: UserCreate) -> Dict[str, Any]:
    doc = build_user(payload)
    if await repo.find_by_email(doc["email"]):
        raise HTTPException(400, "Email already registered")
    await repo.insert(doc)
    logger.info("user %s created (%s, %s)", doc["email"], doc["role"], doc["department"])
    return public(doc)


async def list_users() -> List[Dict[str, Any]]:
    return [public(u) for u in await repo.list_all()]


async def _ensure_another_admin(user: Dict[str, Any]) -> None:
    """Demoting or deactivating must leave at least one active Admin."""
    if user.get("role") != "Admin" or not user.get("is_active", True):
        return
    if await repo.count_by_role("Admin", active_only=True) <= 1:
        raise HTTPException(400, "At least one active Admin is required")


async def update(user_id: str, payload: UserUpdate) -> Dict[str, Any]:
    user = await get_or_404(user_id)
    fields = update_fields(payload)
    if fields.get("role", user.get("role")) != user.get("role"):
        await _ensure_another_admin(user)
    if "email" in fields and fields["email"] != user.get("email"):
        if await repo.find_by_email(fields["email"]):
            raise HTTPException(400, "Email already registered")
    await repo.update_by_id(user_id, fields)
    return public(await repo.find_by_id(user_id))


async def toggle_active(user_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
    user = await get_or_404(user_id)
    if user_id == actor["id"] and user.get("is_active", True):
        raise HTTPException(400, "You cannot deactivate yourself")
    new_state = not user.get("is_active", True)
    if not new_state:
        await _ensure_another_admin(user)
    await repo.update_by_id(user_id, {"is_active": new_state, "updated_at": datetime.now(timezone.utc)})
    logger.info("user %s %s", user.get("email"), "activated" if new_state else "deactivated")
    return public(await repo.find_by_id(user_id))


async def delete(user_id: str, actor: Dict[str, Any]) -> None:
    if user_id == actor["id"]:
        raise HTTPException(400, "You cannot delete yourself")
    user = await get_or_404(user_id)
    if user.get("role") == "Admin" and await repo.count_by_role("Admin") <= 1:
        raise HTTPException(400, "Cannot delete the last Admin")
    await repo.delete_by_id(user_id)
    logger.info("user %s deleted by %s", user.get("email"), actor.get("email"))


async def authenticate(email: str, password: str) -> Dict[str, Any]:
    user = await repo.find_by_email(email)
    if not user or not verify_password(password, user.get("password_hash")):
        raise HTTPException(401, "Incorrect email or password")
    if not user.get("is_active", True):
        raise HTTPException(403, "User is inactive")
    now = datetime.now(timezone.utc)
    await repo.update_by_id(user["id"], {"last_login": now})
    user["last_login"] = now
    return public(user)
