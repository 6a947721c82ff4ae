# realestate/schemas/user.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from realestate.models.user import Role, UserStatus
from .base import BaseSchema
from .common import UserRef


class UserOut(BaseSchema):
    id: int
    username: str
    email: str
    role: Role
    status: UserStatus
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime


class UserListOut(BaseSchema):
    users: List[UserOut]


class UserProfileOut(BaseSchema):
    user: UserOut


class PromoteIn(UserRef):
    # checked against the promotable roles by the service
    role: str


class ProfileUpdateIn(BaseSchema):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
