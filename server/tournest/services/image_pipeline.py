"""Staged processing of tour images: validate, resize, upload, clean up."""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

import aiofiles.os

from ..core.exceptions import UpstreamError
from ..core.observability import get_logger, metrics_collector
from .image_service import (
    ImageRole,
    ImageUpload,
    ProcessedImage,
    image_filename,
    remove_file,
    resize_to_file,
    validate_uploads,
)
from .upload_service import CloudUploader

logger = get_logger(__name__)


@dataclass
class ImageUrls:
    """Public URLs produced for one request, grouped by role."""

    cover: Optional[str] = None
    images: list[str] = field(default_factory=list)

    def apply(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Merge the URLs into a tour payload.

        Only roles that received files are written, so a gallery-only upload
        keeps the existing cover and vice versa.
        """
        merged = dict(payload)
        if self.cover is not None:
            merged["imageCover"] = self.cover
        if self.images:
            merged["images"] = list(self.images)
        return merged


class ImagePipeline:
    """
    Turn uploaded files into public image URLs.

    Resizes run concurrently and all finish before any upload starts.
    Uploads then run concurrently and URLs keep the order of the uploaded
    files. Transient files are removed whether or not the uploads succeed.
    """

    def __init__(
        self,
        uploader: CloudUploader,
        tmp_dir: str | Path,
        folder: str,
        size: tuple[int, int] = (2500, 1000),
        quality: int = 90,
        max_gallery_images: int = 3,
    ):
        self.uploader = uploader
        self.tmp_dir = Path(tmp_dir)
        self.folder = folder
        self.size = size
        self.quality = quality
        self.max_gallery_images = max_gallery_images

    async def run(self, resource_id: str, uploads: Sequence[ImageUpload]) -> Optional[ImageUrls]:
        """
        Process every upload for one resource.

        Returns:
            The public URLs, or None when nothing was uploaded

        Raises:
            ValidationError: If an upload is not an acceptable image
            UpstreamError: If cloud storage or transient storage fails
        """
        if not uploads:
            return None

        validate_uploads(uploads, self.max_gallery_images)

        log = logger.with_context(resource_id=resource_id, files=len(uploads))
        processed = await self.resize_all(resource_id, uploads)
        log.debug("Resize stage complete")

        try:
            urls = await self.upload_all(processed)
        except Exception:
            log.warning("Upload stage failed; removing transient files")
            await self.discard(processed)
            raise

        await self.cleanup(processed)
        log.info(
            "Images processed",
            cover=urls.cover is not None,
            gallery=len(urls.images),
        )
        return urls

    async def resize_all(
        self,
        resource_id: str,
        uploads: Sequence[ImageUpload],
    ) -> list[ProcessedImage]:
        """
        Resize every upload into transient storage.

        Cover first, then gallery images in upload order. If any resize
        fails every planned file is removed, including one left half
        written, and the first error is raised.
        """
        await aiofiles.os.makedirs(self.tmp_dir, exist_ok=True)
        timestamp_ms = int(time.time() * 1000)

        ordered = [u for u in uploads if u.role is ImageRole.COVER]
        ordered += [u for u in uploads if u.role is ImageRole.GALLERY]

        planned = []
        gallery_index = 0
        for upload in ordered:
            if upload.role is ImageRole.COVER:
                index = 0
                name = image_filename(upload.role, resource_id, timestamp_ms)
            else:
                gallery_index += 1
                index = gallery_index
                name = image_filename(upload.role, resource_id, timestamp_ms, index)
            planned.append(ProcessedImage(upload.role, index, self.tmp_dir / name))

        results = await asyncio.gather(
            *(
                resize_to_file(upload, image.path, self.size, self.quality)
                for upload, image in zip(ordered, planned)
            ),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning(
                "Resize stage failed",
                resource_id=resource_id,
                failed=len(failures),
                written=len(results) - len(failures),
            )
            await self.discard(planned)
            raise failures[0]

        return planned

    async def upload_all(self, processed: Sequence[ProcessedImage]) -> ImageUrls:
        """
        Upload every processed image concurrently.

        All uploads are awaited before the first failure, if any, is raised,
        so no upload is still reading a file when cleanup starts.
        """
        results = await asyncio.gather(
            *(self.uploader.upload(self.folder, str(image.path)) for image in processed),
            return_exceptions=True,
        )

        urls = ImageUrls()
        first_failure: Optional[BaseException] = None
        for image, result in zip(processed, results):
            if isinstance(result, BaseException):
                metrics_collector.record_upload("failure")
                first_failure = first_failure or result
                continue

            metrics_collector.record_upload("success")
            if image.role is ImageRole.COVER:
                urls.cover = result["secure_url"]
            else:
                urls.images.append(result["secure_url"])

        if first_failure is not None:
            raise first_failure
        return urls

    async def cleanup(self, processed: Sequence[ProcessedImage]) -> None:
        """
        Remove transient files after a successful upload.

        Raises:
            UpstreamError: If a file could not be removed
        """
        results = await asyncio.gather(
            *(remove_file(image.path, "uploaded") for image in processed),
            return_exceptions=True,
        )
        for image, result in zip(processed, results):
            if isinstance(result, OSError):
                raise UpstreamError(
                    f"Failed to remove transient file {image.path.name}",
                    service="filesystem",
                ) from result
            if isinstance(result, BaseException):
                raise result

    async def discard(self, processed: Sequence[ProcessedImage]) -> None:
        """Remove transient files on an aborted request, logging removal failures."""
        results = await asyncio.gather(
            *(remove_file(image.path, "aborted") for image in processed),
            return_exceptions=True,
        )
        for image, result in zip(processed, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to remove transient file",
                    path=str(image.path),
                    error=str(result),
                )
