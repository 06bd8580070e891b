# grm/core/db.py
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from grm.core.config import settings
import certifi

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def get_client() -> AsyncIOMotorClient:
    """
    Single Motor client. With MONGO_TLS the certifi CA bundle is used,
    which is what Atlas (mongodb+srv) needs.
    """
    global _client
    if _client is None:
        kwargs = {"serverSelectionTimeoutMS": 20000, "tz_aware": True}
        if settings.mongo_tls:
            kwargs.update(tls=True, tlsCAFile=certifi.where())
        _client = AsyncIOMotorClient(settings.mongo_url, **kwargs)
    return _client


def get_db() -> AsyncIOMotorDatabase:
    global _db
    if _db is None:
        _db = get_client()[settings.db_name]
    return _db


async def close_db() -> None:
    """Closes the global client. Called from main.py on shutdown."""
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
