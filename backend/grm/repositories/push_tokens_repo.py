# grm/repositories/push_tokens_repo.py
from typing import List
from grm.core.db import get_db

NO_ID = {"_id": 0}


def collection():
    return get_db().push_tokens


async def upsert(doc: dict):
    # one token per user, keyed by user_id
    await collection().update_one({"user_id": doc["user_id"]}, {"$set": doc}, upsert=True)


async def list_for_users(user_ids: List[str]) -> List[dict]:
    cur = collection().find({"user_id": {"$in": user_ids}}, NO_ID)
    return await cur.to_list(length=None)
