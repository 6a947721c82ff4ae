# realestate/core/session.py
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from realestate.models.base import utcnow
from realestate.models.session import UserSession
from realestate.models.user import Role, User, UserStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    token: str
    user_id: int
    username: str
    role: Role
    status: UserStatus
    login_time: datetime


def _to_data(row: UserSession) -> SessionData:
    return SessionData(
        token=row.token,
        user_id=row.user_id,
        username=row.username,
        role=row.role,
        status=row.status,
        login_time=row.login_time,
    )


class SessionStore:
    """Sessions kept in the ``user_sessions`` table, keyed by an opaque token."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user: User) -> SessionData:
        row = UserSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            username=user.username,
            role=user.role,
            status=user.status,
            login_time=utcnow(),
        )
        self.db.add(row)
        self.db.commit()
        logger.info("session created user_id=%s", user.id)
        return _to_data(row)

    def load(self, token: Optional[str]) -> Optional[SessionData]:
        if not token:
            return None
        row = self.db.get(UserSession, token)
        return _to_data(row) if row else None

    def destroy(self, token: str) -> None:
        self.db.execute(delete(UserSession).where(UserSession.token == token))
        self.db.commit()

    def destroy_for_user(self, user_id: int) -> int:
        result = self.db.execute(delete(UserSession).where(UserSession.user_id == user_id))
        self.db.commit()
        return result.rowcount
