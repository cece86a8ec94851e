"""Validation, resizing and transient storage of uploaded tour images."""

import asyncio
import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

import aiofiles
import aiofiles.os
from PIL import Image, ImageOps, UnidentifiedImageError

from ..core.exceptions import ValidationError
from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)

COVER_FIELD = "imageCover"
GALLERY_FIELD = "images"
NOT_AN_IMAGE_MESSAGE = "Uploaded file is not an image."


class ImageRole(str, Enum):
    """Where a processed image ends up on the tour."""
    COVER = "cover"
    GALLERY = "gallery"


FIELD_ROLES = {
    COVER_FIELD: ImageRole.COVER,
    GALLERY_FIELD: ImageRole.GALLERY,
}


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded file held in memory for the duration of one request."""

    field: str
    filename: str
    content_type: str
    data: bytes

    @property
    def role(self) -> ImageRole:
        return FIELD_ROLES[self.field]


@dataclass(frozen=True)
class ProcessedImage:
    """A resized image written to transient storage, awaiting upload."""

    role: ImageRole
    index: int
    path: Path


def validate_uploads(uploads: Iterable[ImageUpload], max_gallery_images: int) -> None:
    """
    Reject unexpected fields, too many files and non-image content types.

    Runs before any image is decoded.

    Raises:
        ValidationError: On the first offending upload
    """
    limits = {COVER_FIELD: 1, GALLERY_FIELD: max_gallery_images}
    counts = {COVER_FIELD: 0, GALLERY_FIELD: 0}

    for upload in uploads:
        if upload.field not in limits:
            raise ValidationError(f"Unexpected file field '{upload.field}'")

        counts[upload.field] += 1
        if counts[upload.field] > limits[upload.field]:
            raise ValidationError(
                f"Too many files for field '{upload.field}' (max {limits[upload.field]})"
            )

        if not (upload.content_type or "").startswith("image/"):
            logger.warning(
                "Rejected non-image upload",
                extra={"field": upload.field, "content_type": upload.content_type}
            )
            raise ValidationError(NOT_AN_IMAGE_MESSAGE)


def image_filename(
    role: ImageRole,
    resource_id: str,
    timestamp_ms: int,
    index: Optional[int] = None,
) -> str:
    """
    Deterministic transient filename.

    >>> image_filename(ImageRole.COVER, "abc", 1700000000000)
    'tour-cover-abc-1700000000000.jpeg'
    >>> image_filename(ImageRole.GALLERY, "abc", 1700000000000, 2)
    'tour-abc-1700000000000-2.jpeg'
    """
    if role is ImageRole.COVER:
        return f"tour-cover-{resource_id}-{timestamp_ms}.jpeg"
    return f"tour-{resource_id}-{timestamp_ms}-{index}.jpeg"


def render_jpeg(data: bytes, size: tuple[int, int], quality: int) -> bytes:
    """Crop/resize to exactly ``size`` and re-encode as JPEG."""
    with Image.open(io.BytesIO(data)) as image:
        image = ImageOps.exif_transpose(image)
        fitted = ImageOps.fit(image.convert("RGB"), size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    fitted.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


async def resize_to_file(
    upload: ImageUpload,
    path: Path,
    size: tuple[int, int],
    quality: int,
) -> Path:
    """
    Resize one upload off the event loop and write it to ``path``.

    Raises:
        ValidationError: If the bytes cannot be decoded as a complete image
    """
    try:
        encoded = await asyncio.to_thread(render_jpeg, upload.data, size, quality)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.warning(
            "Undecodable image upload",
            extra={"field": upload.field, "upload_filename": upload.filename, "error": str(e)}
        )
        raise ValidationError(f"Uploaded file '{upload.filename}' could not be read as an image")

    async with aiofiles.open(path, "wb") as f:
        await f.write(encoded)

    metrics_collector.record_image_processed(upload.role.value)
    logger.debug(
        "Image resized",
        extra={"field": upload.field, "path": str(path), "bytes": len(encoded)}
    )
    return path


async def remove_file(path: Path, reason: str) -> None:
    """Delete one transient file. A file that is already gone counts as removed."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        logger.debug("Transient file already removed", extra={"path": str(path)})
        return
    metrics_collector.record_temp_file_removed(reason)
