from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session

from realestate.core.config import settings
from realestate.core.db import get_db
from realestate.core.guard import Guard
from realestate.core.security import decode_session_cookie
from realestate.core.session import SessionStore

session_cookie = APIKeyCookie(name=settings.SESSION_COOKIE_NAME, auto_error=False)


def get_session_store(db: Session = Depends(get_db)) -> SessionStore:
    return SessionStore(db)


def get_guard(
    cookie: Optional[str] = Depends(session_cookie),
    store: SessionStore = Depends(get_session_store),
) -> Guard:
    """
    Guard for the current request.
    A missing or tampered cookie, or one pointing at a destroyed session,
    yields an anonymous guard; the guard itself decides what that means.
    """
    token = decode_session_cookie(cookie)
    session = store.load(token)
    return Guard(
        session=session,
        store=store,
        lifetime=timedelta(seconds=settings.SESSION_LIFETIME_SECONDS),
    )
