# grm/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from slowapi import Limiter
from slowapi.util import get_remote_address

from grm.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Login throttling; main.py registers the 429 handler
limiter = Limiter(key_func=get_remote_address, enabled=True)
LOGIN_LIMIT = settings.login_rate_limit


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: dict, minutes: int | None = None) -> str:
    """Token for a user document: `sub` is the user id, `role` travels along for clients."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes or settings.access_token_expire_minutes)
    claims = {"sub": user["id"], "role": user.get("role"), "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def user_id_from_token(token: str) -> str:
    """Returns the `sub` claim. Raises jwt.InvalidTokenError on bad, expired or subject-less tokens."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    sub = payload.get("sub")
    if not sub:
        raise jwt.InvalidTokenError("missing subject")
    return sub
