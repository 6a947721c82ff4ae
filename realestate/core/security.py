from datetime import datetime, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.hash import argon2

from realestate.core.config import settings


def hash_password(plain: str) -> str:
    return argon2.using(time_cost=2, memory_cost=102400, parallelism=8).hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return argon2.verify(plain, hashed)
    except ValueError:
        # malformed stored hash
        return False


def encode_session_cookie(sid: str) -> str:
    payload = {"sid": sid, "iat": datetime.now(timezone.utc)}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALG)


def decode_session_cookie(value: Optional[str]) -> Optional[str]:
    """Session id carried by a cookie value, or None if the cookie is absent or tampered."""
    if not value:
        return None
    try:
        payload = jwt.decode(value, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALG])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) and sid else None
