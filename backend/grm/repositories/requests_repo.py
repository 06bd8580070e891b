# grm/repositories/requests_repo.py
from typing import Dict, Any, List
from grm.core.db import get_db
from grm.models.common import OPEN_STATES

NO_ID = {"_id": 0}

def collection():
    return get_db().guest_requests

async def find_by_id(request_id: str) -> dict | None:
    return await collection().find_one({"id": request_id}, NO_ID)

async def insert(doc: dict):
    # insert_one adds _id to the dict it is given
    await collection().insert_one(dict(doc))

async def update_by_id(request_id: str, ops: Dict[str,Any]):
    await collection().update_one({"id": request_id}, ops)

async def list_all(filt: Dict[str,Any] | None = None) -> List[dict]:
    cur = collection().find(filt or {}, NO_ID).sort("created_at", -1)
    return await cur.to_list(length=None)

async def list_open() -> List[dict]:
    return await list_all({"status": {"$in": OPEN_STATES}})

