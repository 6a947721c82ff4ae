# realestate/schemas/post.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from realestate.models.post import PostStatus, PropertyType
from .base import BaseSchema
from .common import Pagination


class PostFields(BaseSchema):
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area_sqm: Optional[float] = Field(None, gt=0)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class PostCreateIn(PostFields):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    property_type: PropertyType


class PostUpdateIn(PostFields):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    property_type: Optional[PropertyType] = None
    status: Optional[PostStatus] = None


class PostCreatedOut(BaseSchema):
    post_id: int


class PostImageOut(BaseSchema):
    id: int
    filename: str
    original_name: Optional[str] = None
    is_primary: bool


class PostOut(PostFields):
    id: int
    user_id: int
    title: str
    description: str
    price: float
    property_type: PropertyType
    status: PostStatus
    created_at: datetime
    updated_at: datetime


class PostListItem(PostOut):
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    primary_image: Optional[str] = None


class PostDetailOut(PostListItem):
    phone: Optional[str] = None
    email: Optional[str] = None
    images: List[PostImageOut]


class PostPageOut(BaseSchema):
    posts: List[PostListItem]
    pagination: Pagination


class PostDetailEnvelopeData(BaseSchema):
    post: PostDetailOut


class ImageUploadOut(BaseSchema):
    image_id: int
    filename: str
    url: str
    is_primary: bool
