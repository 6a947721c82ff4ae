# realestate/core/manage.py
"""Out-of-band maintenance: table setup and staff provisioning.

    python -m realestate.core.manage init-db
    python -m realestate.core.manage reset-db
    python -m realestate.core.manage create-superuser <username> <email> <password>
"""
import argparse
import logging

from sqlalchemy import or_, select

from realestate.core.db import Base, SessionLocal, engine
from realestate.core.security import hash_password
from realestate.core.session import SessionStore
from realestate.models.message import Message  # noqa: F401
from realestate.models.post import Post, PostImage  # noqa: F401
from realestate.models.session import UserSession  # noqa: F401
from realestate.models.user import Role, User, UserStatus

logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def reset_db() -> None:
    logger.info("dropping and recreating all tables")
    Base.metadata.drop_all(bind=engine, checkfirst=True)
    Base.metadata.create_all(bind=engine)


def create_superuser(username: str, email: str, password: str) -> User:
    """Create an approved superuser, or promote and re-key an existing account."""
    db = SessionLocal()
    try:
        user = db.scalar(select(User).where(or_(User.username == username, User.email == email)))
        if user is None:
            user = User(username=username, email=email)
            db.add(user)
        user.password_hash = hash_password(password)
        user.role = Role.SUPERUSER
        user.status = UserStatus.APPROVED
        db.commit()
        db.refresh(user)

        # old sessions still carry the previous role
        SessionStore(db).destroy_for_user(user.id)
        logger.info("superuser ready user_id=%s", user.id)
        return user
    finally:
        db.close()


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(prog="realestate.core.manage")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db")
    sub.add_parser("reset-db")
    su = sub.add_parser("create-superuser")
    su.add_argument("username")
    su.add_argument("email")
    su.add_argument("password")

    args = parser.parse_args(argv)
    if args.command == "init-db":
        init_db()
    elif args.command == "reset-db":
        reset_db()
    elif args.command == "create-superuser":
        init_db()
        create_superuser(args.username, args.email, args.password)


if __name__ == "__main__":
    main()
