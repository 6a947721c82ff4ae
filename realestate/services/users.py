# realestate/services/users.py
"""Registration, login and the moderation state machine.

State transitions are single conditional writes; the affected-row count is
the only signal that the transition happened.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from realestate.core.errors import (
    AccountBanned, Conflict, Forbidden, InvalidInput, NotFound, Unauthenticated,
)
from realestate.core.guard import Guard
from realestate.core.security import hash_password, verify_password
from realestate.core.session import SessionData, SessionStore
from realestate.models.user import Role, User, UserStatus
from realestate.schemas.auth import LoginIn, RegisterIn
from realestate.schemas.user import ProfileUpdateIn

logger = logging.getLogger(__name__)

PROMOTABLE_ROLES = {Role.ADMIN, Role.SELLER, Role.BUYER}
PROFILE_FIELDS = ("first_name", "last_name", "phone")


def _duplicate_errors(db: Session, username: str, email: str) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if db.scalar(select(User.id).where(User.username == username)) is not None:
        errors["username"] = "Username already exists"
    if db.scalar(select(User.id).where(User.email == email)) is not None:
        errors["email"] = "Email already exists"
    return errors


def register(db: Session, payload: RegisterIn) -> User:
    errors = _duplicate_errors(db, payload.username, payload.email)
    if errors:
        raise Conflict("Username or email already exists", errors)

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        status=UserStatus.PENDING,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise Conflict("Username or email already exists")
    db.refresh(user)
    logger.info("user registered user_id=%s role=%s", user.id, user.role.value)
    return user


def authenticate(db: Session, store: SessionStore, payload: LoginIn) -> Tuple[User, SessionData]:
    user = db.scalar(
        select(User).where(or_(User.username == payload.username, User.email == payload.username))
    )
    if user is None or not verify_password(payload.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    if user.status == UserStatus.BANNED:
        logger.info("login refused for banned user_id=%s", user.id)
        raise AccountBanned()

    session = store.create(user)
    logger.info("login user_id=%s", user.id)
    return user, session


def get_current_user(db: Session, guard: Guard) -> User:
    principal = guard.require_authenticated()
    user = db.get(User, principal.id)
    if user is None:
        raise Unauthenticated()
    return user


def list_pending(db: Session, guard: Guard) -> List[User]:
    guard.require_role({Role.SUPERUSER})
    return list(
        db.scalars(
            select(User).where(User.status == UserStatus.PENDING).order_by(User.created_at.asc(), User.id.asc())
        )
    )


def list_all(db: Session, guard: Guard) -> List[User]:
    guard.require_role({Role.SUPERUSER, Role.ADMIN})
    return list(db.scalars(select(User).order_by(User.created_at.desc(), User.id.desc())))


def get_profile(db: Session, guard: Guard, user_id: Optional[int] = None) -> User:
    principal = guard.require_approved()
    if user_id is None:
        user_id = principal.id
    if user_id != principal.id and not guard.can_manage_users():
        raise Forbidden("Cannot view other user profiles")

    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def approve(db: Session, guard: Guard, user_id: int) -> None:
    guard.require_role({Role.SUPERUSER})
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.status == UserStatus.PENDING)
        .values(status=UserStatus.APPROVED)
    )
    if result.rowcount == 0:
        db.rollback()
        raise Conflict("User not found or already processed")
    db.commit()
    logger.info("user approved user_id=%s", user_id)


def reject(db: Session, guard: Guard, user_id: int) -> None:
    guard.require_role({Role.SUPERUSER})
    result = db.execute(
        delete(User).where(User.id == user_id, User.status == UserStatus.PENDING)
    )
    if result.rowcount == 0:
        db.rollback()
        raise Conflict("User not found or already processed")
    db.commit()
    logger.info("user rejected user_id=%s", user_id)


def ban(db: Session, guard: Guard, user_id: int) -> None:
    principal = guard.require_role({Role.SUPERUSER, Role.ADMIN})
    if user_id == principal.id:
        raise InvalidInput("Cannot ban yourself")

    target_role = db.scalar(select(User.role).where(User.id == user_id))
    if target_role is None:
        raise NotFound("User not found")
    if target_role == Role.SUPERUSER:
        raise Forbidden("Cannot ban superuser")

    result = db.execute(
        update(User)
        .where(User.id == user_id, User.role != Role.SUPERUSER)
        .values(status=UserStatus.BANNED)
    )
    if result.rowcount == 0:
        # deleted or promoted to superuser since the read above
        db.rollback()
        raise Conflict("User not found or cannot be banned")
    db.commit()
    logger.info("user banned user_id=%s by=%s", user_id, principal.id)


def unban(db: Session, guard: Guard, user_id: int) -> None:
    principal = guard.require_role({Role.SUPERUSER, Role.ADMIN})
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.status == UserStatus.BANNED)
        .values(status=UserStatus.APPROVED)
    )
    if result.rowcount == 0:
        db.rollback()
        raise Conflict("User not found or not banned")
    db.commit()
    logger.info("user unbanned user_id=%s by=%s", user_id, principal.id)


def promote(db: Session, guard: Guard, user_id: int, role: str) -> Role:
    principal = guard.require_role({Role.SUPERUSER})
    try:
        new_role = Role(role)
    except ValueError:
        raise InvalidInput("Invalid role")
    if new_role not in PROMOTABLE_ROLES:
        raise InvalidInput("Invalid role")
    if user_id == principal.id:
        raise InvalidInput("Cannot change your own role")

    result = db.execute(update(User).where(User.id == user_id).values(role=new_role))
    if result.rowcount == 0:
        db.rollback()
        raise NotFound("User not found")
    db.commit()
    logger.info("user role changed user_id=%s role=%s", user_id, new_role.value)
    return new_role


def update_profile(db: Session, guard: Guard, payload: ProfileUpdateIn) -> User:
    principal = guard.require_authenticated()
    data = {
        k: v
        for k, v in payload.model_dump(exclude_unset=True, by_alias=False).items()
        if k in PROFILE_FIELDS and v is not None
    }
    if not data:
        raise InvalidInput("No valid fields to update")

    db.execute(update(User).where(User.id == principal.id).values(**data))
    db.commit()
    user = db.get(User, principal.id)
    if user is None:
        raise NotFound("User not found")
    db.refresh(user)
    return user
