from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Path, Response, UploadFile, status
from sqlalchemy.orm import Session

from realestate.core.auth import get_guard
from realestate.core.db import get_db
from realestate.core.errors import ValidationFailed
from realestate.core.guard import Guard
from realestate.core.response import ok
from realestate.schemas.common import Envelope
from realestate.schemas.post import ImageUploadOut
from realestate.services import images
from realestate.services.storage import ImageStorage, get_storage

router = APIRouter(prefix="/api/uploads", tags=["uploads"])
files_router = APIRouter(tags=["uploads"])

TRUE_VALUES = {"true", "1"}
FALSE_VALUES = {"false", "0", ""}


def parse_form_bool(value: Optional[str], field: str) -> bool:
    """Multipart flags are strings; only true/false/1/0 are accepted."""
    if value is None:
        return False
    v = value.strip().lower()
    if v in TRUE_VALUES:
        return True
    if v in FALSE_VALUES:
        return False
    raise ValidationFailed({field: "Must be true or false"})


@router.post("", response_model=Envelope[ImageUploadOut], status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: UploadFile = File(...),
    post_id: int = Form(..., alias="postId", ge=1),
    is_primary: Optional[str] = Form(None, alias="isPrimary"),
    guard: Guard = Depends(get_guard),
    storage: ImageStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    primary = parse_form_bool(is_primary, "isPrimary")
    contents = await image.read()

    saved, url = images.upload_image(
        db, guard, storage,
        post_id=post_id,
        data=contents,
        original_name=image.filename,
        content_type=image.content_type,
        is_primary=primary,
    )
    return ok(
        "Image uploaded successfully",
        ImageUploadOut(image_id=saved.id, filename=saved.filename, url=url, is_primary=saved.is_primary),
    )


@router.delete("/{image_id}", response_model=Envelope)
def delete_image(
    image_id: int = Path(..., ge=1),
    guard: Guard = Depends(get_guard),
    storage: ImageStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    images.delete_image(db, guard, storage, image_id)
    return ok("Image deleted successfully")


@files_router.get("/uploads/{filename}")
def serve_image(filename: str, storage: ImageStorage = Depends(get_storage)):
    data, media_type = images.read_image(storage, filename)
    return Response(content=data, media_type=media_type)
