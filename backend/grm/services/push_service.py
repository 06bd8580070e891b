# grm/services/push_service.py
from datetime import datetime, timezone
from fastapi import HTTPException
from grm.repositories import push_tokens_repo, users_repo


async def register(user_id: str, token: str) -> dict:
    """Stores the browser push token for a user; one token per user, the latest wins."""
    user = await users_repo.find_by_id(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    doc = {
        "token": token,
        "user_id": user["id"],
        "name": user.get("name"),
        "department": user.get("department"),
        "created_at": datetime.now(timezone.utc),
    }
    await push_tokens_repo.upsert(doc)
    return doc
