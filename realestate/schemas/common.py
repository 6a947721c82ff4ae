# realestate/schemas/common.py
import math
from typing import Generic, Optional, TypeVar

from pydantic import Field

from .base import BaseSchema

T = TypeVar("T")


class Envelope(BaseSchema, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class Pagination(BaseSchema):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    total: int = Field(0, ge=0)
    pages: int = Field(0, ge=0)

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class UserRef(BaseSchema):
    user_id: int = Field(..., ge=1)
