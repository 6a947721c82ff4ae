from typing import Annotated, Optional

from pydantic import EmailStr, Field, StringConstraints, field_validator

from realestate.core.config import settings
from realestate.models.user import Role, UserStatus
from .base import BaseSchema

SELF_REGISTER_ROLES = (Role.SELLER, Role.BUYER)

# passwords are taken verbatim, surrounding spaces included
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


class RegisterIn(BaseSchema):
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: Password = Field(..., max_length=128)
    role: Role
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("password")
    @classmethod
    def _password_length(cls, v: str) -> str:
        if len(v) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")
        return v

    @field_validator("role")
    @classmethod
    def _self_register_role(cls, v: Role) -> Role:
        if v not in SELF_REGISTER_ROLES:
            raise ValueError("Role must be either seller or buyer")
        return v


class LoginIn(BaseSchema):
    # username or email
    username: str = Field(..., min_length=1)
    password: Password = Field(..., min_length=1)


class SessionUserOut(BaseSchema):
    id: int
    username: str
    email: str
    role: Role
    status: UserStatus
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginOut(BaseSchema):
    user: SessionUserOut
