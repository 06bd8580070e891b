# grm/core/indexes.py
import logging
from datetime import datetime, timezone
import uuid
from grm.core.db import get_db
from grm.core.security import hash_password
from grm.core.config import settings
from grm.services.request_service import STATUS_FIX
from grm.services.rules_service import ensure_default_rule

logger = logging.getLogger(__name__)

async def ensure_core_indexes(db):
    # guest requests
    await db.guest_requests.create_index("id", unique=True)
    await db.guest_requests.create_index([("created_at",-1)])
    await db.guest_requests.create_index([("department",1)])
    await db.guest_requests.create_index([("status",1)])
    await db.guest_requests.create_index([("priority",1)])
    await db.guest_requests.create_index([("room_number",1)])
    await db.guest_requests.create_index([("department",1),("status",1)])

    # users / rules / push tokens
    await db.users.create_index("id", unique=True)
    await db.users.create_index([("email",1)], unique=True)
    await db.users.create_index([("role",1),("is_active",1)])
    await db.notification_rules.create_index("id", unique=True)
    await db.push_tokens.create_index([("user_id",1)], unique=True)

async def migrate_requests_schema(db):
    await db.guest_requests.update_many({"status":{"$exists":False}}, {"$set":{"status":"Open"}})
    await db.guest_requests.update_many({"resolution_comments":{"$exists":False}}, {"$set":{"resolution_comments":""}})
    for k,v in STATUS_FIX.items():
        await db.guest_requests.update_many({"status":k}, {"$set":{"status":v}})

async def init_admin(db):
    if not (settings.seed_admin_email and settings.seed_admin_password):
        return
    if await db.users.find_one({"role":"Admin"}):
        return
    now = datetime.now(timezone.utc)
    await db.users.insert_one({
        "id": uuid.uuid4().hex, "name": "Administrator", "email": settings.seed_admin_email.strip().lower(),
        "role": "Admin", "department": "Front Desk", "is_active": True,
        "created_at": now, "updated_at": now, "last_login": None,
        "password_hash": hash_password(settings.seed_admin_password),
    })
    logger.info("init_admin: seeded admin %s", settings.seed_admin_email)

async def startup_tasks():
    db = get_db()
    try:
        await ensure_core_indexes(db)
        await migrate_requests_schema(db)
        await init_admin(db)
        if await ensure_default_rule():
            logger.info("startup: default notification rule created")
    except Exception as e:
        logger.exception("Error in startup_tasks: %s", e)
