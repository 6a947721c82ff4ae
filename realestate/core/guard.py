# realestate/core/guard.py
"""Identity and authorization guard.

Capabilities are pure functions of the principal's role and status, so every
service enforces the same policy. ``Guard`` wraps them around a request's
session and applies the idle timeout before any role or status test.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from realestate.core.errors import Forbidden, NotApproved, SessionExpired, Unauthenticated
from realestate.core.session import SessionData, SessionStore
from realestate.models.base import utcnow
from realestate.models.user import Role, UserStatus

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({Role.SUPERUSER, Role.ADMIN})
MESSAGING_ROLES = frozenset({Role.BUYER, Role.SELLER})


@dataclass(frozen=True)
class Principal:
    id: int
    username: str
    role: Role
    status: UserStatus

    @property
    def is_approved(self) -> bool:
        return self.status == UserStatus.APPROVED

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def can_create_posts(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.role == Role.SELLER and principal.is_approved


def can_send_messages(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.role in MESSAGING_ROLES and principal.is_approved


def can_edit_post(principal: Optional[Principal], post) -> bool:
    if principal is None:
        return False
    return principal.is_staff or post.user_id == principal.id


can_delete_post = can_edit_post


def can_approve_users(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.role == Role.SUPERUSER


def can_ban_users(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.is_staff


can_manage_users = can_ban_users


class Guard:
    def __init__(
        self,
        session: Optional[SessionData],
        store: Optional[SessionStore],
        lifetime: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session = session
        self._store = store
        self._lifetime = lifetime
        self._clock = clock
        self._expired = False

    def _check_timeout(self) -> None:
        session = self._session
        if session is None:
            return
        if self._clock() - session.login_time > self._lifetime:
            logger.info("session expired user_id=%s", session.user_id)
            if self._store is not None:
                self._store.destroy(session.token)
            self._session = None
            self._expired = True

    @property
    def expired(self) -> bool:
        return self._expired

    def current_principal(self) -> Optional[Principal]:
        self._check_timeout()
        s = self._session
        if s is None:
            return None
        return Principal(id=s.user_id, username=s.username, role=s.role, status=s.status)

    def is_authenticated(self) -> bool:
        return self.current_principal() is not None

    def is_approved(self) -> bool:
        principal = self.current_principal()
        return principal is not None and principal.is_approved

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        principal = self.current_principal()
        return principal is not None and principal.role in set(roles)

    def require_authenticated(self) -> Principal:
        principal = self.current_principal()
        if principal is None:
            if self._expired:
                raise SessionExpired()
            raise Unauthenticated()
        return principal

    def require_approved(self) -> Principal:
        principal = self.require_authenticated()
        if not principal.is_approved:
            raise NotApproved()
        return principal

    def require_role(self, roles: Iterable[Role]) -> Principal:
        principal = self.require_approved()
        if principal.role not in set(roles):
            raise Forbidden()
        return principal

    # capability shortcuts used by the services

    def can_create_posts(self) -> bool:
        return can_create_posts(self.current_principal())

    def can_send_messages(self) -> bool:
        return can_send_messages(self.current_principal())

    def can_edit_post(self, post) -> bool:
        return can_edit_post(self.current_principal(), post)

    def can_delete_post(self, post) -> bool:
        return can_delete_post(self.current_principal(), post)

    def can_approve_users(self) -> bool:
        return can_approve_users(self.current_principal())

    def can_ban_users(self) -> bool:
        return can_ban_users(self.current_principal())

    def can_manage_users(self) -> bool:
        return can_manage_users(self.current_principal())
