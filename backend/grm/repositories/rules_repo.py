# grm/repositories/rules_repo.py
from typing import Any, Dict, List
from grm.core.db import get_db

NO_ID = {"_id": 0}


def collection():
    return get_db().notification_rules


async def find_by_id(rule_id: str) -> dict | None:
    return await collection().find_one({"id": rule_id}, NO_ID)


async def insert(doc: dict):
    await collection().insert_one(dict(doc))


async def update_by_id(rule_id: str, fields: Dict[str, Any]):
    await collection().update_one({"id": rule_id}, {"$set": fields})


async def delete_by_id(rule_id: str) -> int:
    res = await collection().delete_one({"id": rule_id})
    return res.deleted_count


async def list_all() -> List[dict]:
    return await collection().find({}, NO_ID).to_list(length=None)


async def count() -> int:
    return await collection().count_documents({})
