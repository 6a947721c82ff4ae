import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text, true,
)
from sqlalchemy.orm import relationship

from realestate.core.db import Base
from realestate.models.base import enum_column, utcnow


class PropertyType(str, enum.Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    LAND = "land"
    COMMERCIAL = "commercial"


class PostStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(14, 2, asdecimal=False), nullable=False)
    property_type = enum_column(PropertyType, nullable=False, index=True)

    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    area_sqm = Column(Float, nullable=True)

    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = enum_column(PostStatus, nullable=False, default=PostStatus.ACTIVE, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", lazy="joined")
    images = relationship(
        "PostImage",
        cascade="all, delete-orphan",
        passive_deletes=True,
        back_populates="post",
        order_by="PostImage.id",
        lazy="selectin",
    )


class PostImage(Base):
    __tablename__ = "post_images"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)

    filename = Column(String(255), nullable=False, unique=True)
    original_name = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    post = relationship("Post", back_populates="images")

    __table_args__ = (
        # at most one primary image per post
        Index(
            "uq_post_images_primary",
            "post_id",
            unique=True,
            sqlite_where=is_primary == true(),
            postgresql_where=is_primary == true(),
        ),
    )
