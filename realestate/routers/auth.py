import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from realestate.core.auth import get_guard, get_session_store, session_cookie
from realestate.core.config import settings
from realestate.core.db import get_db
from realestate.core.guard import Guard
from realestate.core.response import ok
from realestate.core.security import decode_session_cookie, encode_session_cookie
from realestate.core.session import SessionStore
from realestate.schemas.auth import LoginIn, LoginOut, RegisterIn, SessionUserOut
from realestate.schemas.common import Envelope
from realestate.schemas.user import UserOut, UserProfileOut
from realestate.services import users

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=encode_session_cookie(token),
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.SESSION_LIFETIME_SECONDS,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


@router.post("/register", response_model=Envelope[UserProfileOut], status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user = users.register(db, payload)
    return ok(
        "Registration successful. Please wait for approval.",
        UserProfileOut(user=UserOut.model_validate(user)),
    )


@router.post("/login", response_model=Envelope[LoginOut])
def login(
    payload: LoginIn,
    response: Response,
    cookie: Optional[str] = Depends(session_cookie),
    store: SessionStore = Depends(get_session_store),
    db: Session = Depends(get_db),
):
    # logging in again replaces the previous session
    previous = decode_session_cookie(cookie)
    if previous:
        store.destroy(previous)

    user, session = users.authenticate(db, store, payload)
    set_session_cookie(response, session.token)
    return ok("Login successful", LoginOut(user=SessionUserOut.model_validate(user)))


@router.post("/logout", response_model=Envelope)
def logout(
    response: Response,
    cookie: Optional[str] = Depends(session_cookie),
    store: SessionStore = Depends(get_session_store),
):
    token = decode_session_cookie(cookie)
    session = store.load(token)
    if session is not None:
        store.destroy(session.token)
        logger.info("logout user_id=%s", session.user_id)
    clear_session_cookie(response)
    return ok("Logged out successfully")


@router.get("/me", response_model=Envelope[UserProfileOut])
def me(guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    user = users.get_current_user(db, guard)
    return ok("User data retrieved", UserProfileOut(user=UserOut.model_validate(user)))
