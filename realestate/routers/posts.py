from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from realestate.core.auth import get_guard
from realestate.core.db import get_db
from realestate.core.guard import Guard
from realestate.core.response import ok
from realestate.models.post import Post, PropertyType
from realestate.schemas.common import Envelope, Pagination
from realestate.schemas.post import (
    PostCreateIn, PostCreatedOut, PostDetailEnvelopeData, PostDetailOut, PostImageOut,
    PostListItem, PostOut, PostPageOut, PostUpdateIn,
)
from realestate.services import posts
from realestate.services.storage import ImageStorage, get_storage

router = APIRouter(prefix="/api/posts", tags=["posts"])


# ---------- helpers ----------
def _post_fields(p: Post) -> dict:
    return {name: getattr(p, name) for name in PostOut.model_fields}


def _primary_image(p: Post) -> Optional[str]:
    for img in p.images or []:
        if img.is_primary:
            return img.filename
    return None


def to_list_item(p: Post) -> PostListItem:
    return PostListItem(
        **_post_fields(p),
        username=p.owner.username,
        first_name=p.owner.first_name,
        last_name=p.owner.last_name,
        primary_image=_primary_image(p),
    )


def to_detail(p: Post) -> PostDetailOut:
    images = sorted(p.images or [], key=lambda img: (not img.is_primary, img.id))
    return PostDetailOut(
        **_post_fields(p),
        username=p.owner.username,
        first_name=p.owner.first_name,
        last_name=p.owner.last_name,
        phone=p.owner.phone,
        email=p.owner.email,
        primary_image=_primary_image(p),
        images=[PostImageOut.model_validate(img) for img in images],
    )


def _page_out(rows: List[Post], page: int, limit: int, total: int) -> PostPageOut:
    return PostPageOut(
        posts=[to_list_item(p) for p in rows],
        pagination=Pagination.build(page, limit, total),
    )


# ---------- listing (public) ----------
@router.get("", response_model=Envelope[PostPageOut])
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    city: Optional[str] = None,
    property_type: Optional[PropertyType] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    bedrooms: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    rows, total = posts.list_posts(
        db, page, limit,
        city=city,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
    )
    return ok("Posts retrieved", _page_out(rows, page, limit, total))


@router.get("/my", response_model=Envelope[PostPageOut])
def my_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    rows, total = posts.my_posts(db, guard, page, limit)
    return ok("My posts retrieved", _page_out(rows, page, limit, total))


@router.get("/{post_id}", response_model=Envelope[PostDetailEnvelopeData])
def get_post(post_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    p = posts.get_post(db, post_id)
    return ok("Post detail retrieved", PostDetailEnvelopeData(post=to_detail(p)))


# ---------- owner operations ----------
@router.post("", response_model=Envelope[PostCreatedOut], status_code=status.HTTP_201_CREATED)
def create_post(body: PostCreateIn, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    p = posts.create_post(db, guard, body)
    return ok("Post created successfully", PostCreatedOut(post_id=p.id))


@router.put("/{post_id}", response_model=Envelope[PostDetailEnvelopeData])
def update_post(
    body: PostUpdateIn,
    post_id: int = Path(..., ge=1),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    p = posts.update_post(db, guard, post_id, body)
    return ok("Post updated successfully", PostDetailEnvelopeData(post=to_detail(p)))


@router.delete("/{post_id}", response_model=Envelope)
def delete_post(
    post_id: int = Path(..., ge=1),
    guard: Guard = Depends(get_guard),
    storage: ImageStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    posts.delete_post(db, guard, storage, post_id)
    return ok("Post deleted successfully", {"postId": post_id})
