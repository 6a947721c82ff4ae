import enum

from sqlalchemy import Column, Integer, String, DateTime

from realestate.core.db import Base
from realestate.models.base import enum_column, utcnow


class Role(str, enum.Enum):
    SUPERUSER = "superuser"
    ADMIN = "admin"
    SELLER = "seller"
    BUYER = "buyer"


class UserStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    BANNED = "banned"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # unique constraints compare case-sensitively
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    role = enum_column(Role, nullable=False)
    status = enum_column(UserStatus, nullable=False, default=UserStatus.PENDING, index=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
