# grm/repositories/users_repo.py
from typing import Any, Dict, List
from grm.core.db import get_db

NO_ID = {"_id": 0}


def collection():
    return get_db().users


async def find_by_id(user_id: str) -> dict | None:
    return await collection().find_one({"id": user_id}, NO_ID)


async def find_by_email(email: str) -> dict | None:
    return await collection().find_one({"email": email.strip().lower()}, NO_ID)


async def insert(doc: dict):
    await collection().insert_one(dict(doc))


async def update_by_id(user_id: str, fields: Dict[str, Any]):
    await collection().update_one({"id": user_id}, {"$set": fields})


async def delete_by_id(user_id: str) -> int:
    res = await collection().delete_one({"id": user_id})
    return res.deleted_count


async def list_all() -> List[dict]:
    return await collection().find({}, NO_ID).sort("name", 1).to_list(length=None)


async def list_active_by_roles(roles: List[str]) -> List[dict]:
    cur = collection().find({"role": {"$in": roles}, "is_active": True}, NO_ID)
    return await cur.to_list(length=None)


async def count_by_role(role: str, active_only: bool = False) -> int:
    filt: Dict[str, Any] = {"role": role}
    if active_only:
        filt["is_active"] = True
    return await collection().count_documents(filt)
