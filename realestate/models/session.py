from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from realestate.core.db import Base
from realestate.models.base import enum_column
from realestate.models.user import Role, UserStatus


class UserSession(Base):
    """Server-side session row; a snapshot of the user taken at login."""

    __tablename__ = "user_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    username = Column(String(50), nullable=False)
    role = enum_column(Role, nullable=False)
    status = enum_column(UserStatus, nullable=False)

    login_time = Column(DateTime, nullable=False)
