# realestate/services/images.py
"""Post image attachments.

A post has at most one primary image: uploading with ``is_primary`` clears
the flag on the others, an upload to a post without a primary becomes the
primary, and deleting the primary promotes the lowest remaining id. Each of
these runs inside one transaction, backed by a partial unique index.
"""
import logging
import mimetypes
import os
import uuid
import warnings
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from realestate.core.config import settings
from realestate.core.errors import Forbidden, NotFound, ValidationFailed
from realestate.core.guard import Guard
from realestate.models.post import Post, PostImage
from realestate.services.storage import ImageStorage, StorageError

logger = logging.getLogger(__name__)


def validate_image(data: bytes, filename: Optional[str]) -> str:
    """Check size, extension and that Pillow can decode the payload; returns the extension."""
    if not data:
        raise ValidationFailed({"image": "No image uploaded"})

    if len(data) > settings.MAX_FILE_SIZE:
        mb = settings.MAX_FILE_SIZE / 1024 / 1024
        raise ValidationFailed({"image": f"File too large. Maximum size is {mb:g}MB"})

    ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
    allowed = [e.lower() for e in settings.ALLOWED_EXTENSIONS]
    if ext not in allowed:
        raise ValidationFailed({"image": "Invalid file type. Allowed: " + ", ".join(allowed)})

    try:
        with warnings.catch_warnings():
            # oversized dimensions are rejected, not just warned about
            warnings.simplefilter("error", Image.DecompressionBombWarning)
            with Image.open(BytesIO(data)) as img:
                img.verify()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        Image.DecompressionBombWarning,
        OSError,
        SyntaxError,
        ValueError,
    ):
        raise ValidationFailed({"image": "Invalid image file"})
    return ext


def upload_image(
    db: Session,
    guard: Guard,
    storage: ImageStorage,
    post_id: int,
    data: bytes,
    original_name: Optional[str],
    content_type: Optional[str],
    is_primary: bool,
) -> Tuple[PostImage, str]:
    guard.require_approved()
    if not guard.can_create_posts():
        raise Forbidden("Only approved sellers can upload images")

    post = db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    if not guard.can_edit_post(post):
        raise Forbidden("Cannot upload images to this post")

    ext = validate_image(data, original_name)
    filename = f"{uuid.uuid4().hex}.{ext}"
    url = storage.save(data, filename, content_type)

    try:
        if is_primary:
            db.execute(
                update(PostImage)
                .where(PostImage.post_id == post_id, PostImage.is_primary.is_(True))
                .values(is_primary=False)
            )
        else:
            existing = db.scalar(
                select(PostImage.id).where(PostImage.post_id == post_id, PostImage.is_primary.is_(True))
            )
            is_primary = existing is None

        image = PostImage(
            post_id=post_id,
            filename=filename,
            original_name=original_name,
            file_size=len(data),
            is_primary=is_primary,
        )
        db.add(image)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        storage.delete(filename)
        raise

    db.refresh(image)
    logger.info("image uploaded image_id=%s post_id=%s primary=%s", image.id, post_id, image.is_primary)
    return image, url


def delete_image(db: Session, guard: Guard, storage: ImageStorage, image_id: int) -> None:
    guard.require_approved()
    image = db.get(PostImage, image_id)
    if image is None:
        raise NotFound("Image not found")
    if not guard.can_edit_post(image.post):
        raise Forbidden("Cannot delete this image")

    post_id = image.post_id
    filename = image.filename
    was_primary = image.is_primary

    db.delete(image)
    db.flush()
    if was_primary:
        next_id = (
            select(func.min(PostImage.id))
            .where(PostImage.post_id == post_id)
            .scalar_subquery()
        )
        db.execute(
            update(PostImage)
            .where(PostImage.id == next_id)
            .values(is_primary=True)
            .execution_options(synchronize_session="fetch")
        )
    db.commit()
    logger.info("image deleted image_id=%s post_id=%s", image_id, post_id)

    try:
        storage.delete(filename)
    except StorageError:
        logger.exception("could not remove image file %s", filename)


def read_image(storage: ImageStorage, filename: str) -> Tuple[bytes, str]:
    # plain generated names only, never a path
    if not filename or filename != os.path.basename(filename) or filename.startswith("."):
        raise NotFound("Image not found")
    if not storage.exists(filename):
        raise NotFound("Image not found")
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return storage.read(filename), media_type
