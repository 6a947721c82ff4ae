# realestate/services/posts.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from realestate.core.errors import Forbidden, InvalidInput, NotFound
from realestate.core.guard import Guard
from realestate.models.post import Post, PostStatus, PropertyType
from realestate.schemas.post import PostCreateIn, PostUpdateIn
from realestate.services.storage import ImageStorage, StorageError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title", "description", "price", "property_type",
    "bedrooms", "bathrooms", "area_sqm", "address",
    "city", "state", "country", "latitude", "longitude", "status",
)


def _page(db: Session, q, page: int, limit: int) -> Tuple[List[Post], int]:
    total = db.scalar(select(func.count()).select_from(q.subquery()))
    rows = db.execute(
        q.order_by(desc(Post.created_at), desc(Post.id)).offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return list(rows), total


def list_posts(
    db: Session,
    page: int,
    limit: int,
    city: Optional[str] = None,
    property_type: Optional[PropertyType] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    bedrooms: Optional[int] = None,
) -> Tuple[List[Post], int]:
    q = select(Post).where(Post.status == PostStatus.ACTIVE)
    if city:
        q = q.where(Post.city.ilike(f"%{city}%"))
    if property_type:
        q = q.where(Post.property_type == property_type)
    if min_price is not None:
        q = q.where(Post.price >= min_price)
    if max_price is not None:
        q = q.where(Post.price <= max_price)
    if bedrooms:
        q = q.where(Post.bedrooms >= bedrooms)
    return _page(db, q, page, limit)


def get_post(db: Session, post_id: int) -> Post:
    post = db.scalar(select(Post).where(Post.id == post_id, Post.status == PostStatus.ACTIVE))
    if post is None:
        raise NotFound("Post not found")
    return post


def my_posts(db: Session, guard: Guard, page: int, limit: int) -> Tuple[List[Post], int]:
    principal = guard.require_approved()
    return _page(db, select(Post).where(Post.user_id == principal.id), page, limit)


def create_post(db: Session, guard: Guard, payload: PostCreateIn) -> Post:
    principal = guard.require_approved()
    if not guard.can_create_posts():
        raise Forbidden("Only approved sellers can create posts")

    post = Post(user_id=principal.id, **payload.model_dump(by_alias=False))
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("post created post_id=%s user_id=%s", post.id, principal.id)
    return post


def _owned_post(db: Session, guard: Guard, post_id: int, action: str) -> Post:
    guard.require_approved()
    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    allowed = guard.can_delete_post(post) if action == "delete" else guard.can_edit_post(post)
    if not allowed:
        raise Forbidden(f"Cannot {action} this post")
    return post


def update_post(db: Session, guard: Guard, post_id: int, payload: PostUpdateIn) -> Post:
    post = _owned_post(db, guard, post_id, "edit")

    data = {
        k: v
        for k, v in payload.model_dump(exclude_unset=True, by_alias=False).items()
        if k in UPDATABLE_FIELDS and v is not None
    }
    if not data:
        raise InvalidInput("No valid fields to update")

    for field, value in data.items():
        setattr(post, field, value)
    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, guard: Guard, storage: ImageStorage, post_id: int) -> None:
    post = _owned_post(db, guard, post_id, "delete")
    filenames = [img.filename for img in post.images]

    # images go with the post
    db.delete(post)
    db.commit()
    logger.info("post deleted post_id=%s images=%d", post_id, len(filenames))

    for name in filenames:
        try:
            storage.delete(name)
        except StorageError:
            logger.exception("could not remove image file %s", name)
