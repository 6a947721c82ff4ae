from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import select, update

from realestate.core.errors import Forbidden, NotApproved, SessionExpired, Unauthenticated
from realestate.core.guard import (
    Guard, Principal, can_approve_users, can_ban_users, can_create_posts,
    can_delete_post, can_edit_post, can_manage_users, can_send_messages,
)
from realestate.core.session import SessionData
from realestate.models.session import UserSession
from realestate.models.user import Role, UserStatus

LOGIN_AT = datetime(2024, 1, 1, 12, 0, 0)
LIFETIME = timedelta(hours=1)


def principal(role, status=UserStatus.APPROVED, id=1):
    return Principal(id=id, username="u%d" % id, role=role, status=status)


class RecordingStore:
    def __init__(self):
        self.destroyed = []

    def destroy(self, token):
        self.destroyed.append(token)


def make_guard(role=Role.SELLER, status=UserStatus.APPROVED, elapsed=timedelta(minutes=5), store=None):
    session = SessionData(
        token="tok", user_id=7, username="sam", role=role, status=status, login_time=LOGIN_AT,
    )
    return Guard(session=session, store=store, lifetime=LIFETIME, clock=lambda: LOGIN_AT + elapsed)


# ---------- capability predicates ----------

def test_only_approved_sellers_create_posts():
    assert can_create_posts(principal(Role.SELLER))
    assert not can_create_posts(principal(Role.SELLER, UserStatus.PENDING))
    assert not can_create_posts(principal(Role.BUYER))
    assert not can_create_posts(principal(Role.ADMIN))
    assert not can_create_posts(None)


def test_messaging_is_for_buyers_and_sellers():
    assert can_send_messages(principal(Role.BUYER))
    assert can_send_messages(principal(Role.SELLER))
    assert not can_send_messages(principal(Role.BUYER, UserStatus.BANNED))
    assert not can_send_messages(principal(Role.SUPERUSER))
    assert not can_send_messages(principal(Role.ADMIN))


def test_post_editing_owner_or_staff():
    post = SimpleNamespace(user_id=1)
    assert can_edit_post(principal(Role.SELLER, id=1), post)
    assert not can_edit_post(principal(Role.SELLER, id=2), post)
    assert can_edit_post(principal(Role.ADMIN, id=3), post)
    assert can_delete_post(principal(Role.SUPERUSER, id=4), post)
    assert not can_delete_post(None, post)


def test_user_management_capabilities():
    assert can_approve_users(principal(Role.SUPERUSER))
    assert not can_approve_users(principal(Role.ADMIN))
    assert can_ban_users(principal(Role.ADMIN))
    assert can_manage_users(principal(Role.SUPERUSER))
    assert not can_ban_users(principal(Role.SELLER))


# ---------- Guard ----------

def test_anonymous_guard():
    guard = Guard(session=None, store=None, lifetime=LIFETIME)
    assert guard.current_principal() is None
    assert not guard.is_authenticated()
    with pytest.raises(Unauthenticated):
        guard.require_authenticated()


def test_live_session_yields_principal():
    guard = make_guard()
    p = guard.current_principal()
    assert p == Principal(id=7, username="sam", role=Role.SELLER, status=UserStatus.APPROVED)
    assert guard.is_approved()
    assert guard.has_any_role([Role.SELLER, Role.BUYER])
    assert guard.can_create_posts()


def test_session_at_exact_lifetime_is_still_valid():
    guard = make_guard(elapsed=LIFETIME)
    assert guard.is_authenticated()


def test_idle_timeout_destroys_session():
    store = RecordingStore()
    guard = make_guard(elapsed=LIFETIME + timedelta(seconds=1), store=store)

    assert guard.current_principal() is None
    assert guard.expired
    assert store.destroyed == ["tok"]

    with pytest.raises(SessionExpired):
        guard.require_authenticated()


def test_timeout_is_checked_before_role():
    # an expired superuser gets SessionExpired, not a role decision
    guard = make_guard(role=Role.SUPERUSER, elapsed=timedelta(hours=2), store=RecordingStore())
    with pytest.raises(SessionExpired):
        guard.require_role({Role.SUPERUSER})


def test_pending_user_is_not_approved():
    guard = make_guard(status=UserStatus.PENDING)
    assert guard.require_authenticated().id == 7
    with pytest.raises(NotApproved):
        guard.require_approved()


def test_require_role_rejects_other_roles():
    guard = make_guard(role=Role.BUYER)
    with pytest.raises(Forbidden):
        guard.require_role({Role.SUPERUSER, Role.ADMIN})


# ---------- over HTTP ----------

def test_expired_session_over_http(db, seller):
    user, client = seller
    db.execute(
        update(UserSession)
        .where(UserSession.user_id == user.id)
        .values(login_time=datetime(2000, 1, 1))
    )
    db.commit()

    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Session expired"}
    assert db.scalar(select(UserSession).where(UserSession.user_id == user.id)) is None

    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication required"


def test_tampered_cookie_is_anonymous(client):
    client.cookies.set("session", "not-a-signed-token")
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Authentication required"
