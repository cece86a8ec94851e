"""Cloud image storage client."""

import asyncio
import logging
from typing import Any, Protocol

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from ..core.config import Settings, settings
from ..core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class CloudUploader(Protocol):
    """Anything that can push a local file to cloud storage."""

    async def upload(self, folder: str, local_path: str) -> dict[str, Any]:
        """Upload ``local_path`` into ``folder`` and return the provider response."""
        ...


def configure_cloudinary(config: Settings = settings) -> None:
    """Apply credentials from settings to the Cloudinary SDK."""
    cloudinary.config(
        cloud_name=config.cloudinary_cloud_name,
        api_key=config.cloudinary_api_key,
        api_secret=config.cloudinary_api_secret,
        secure=True,
    )


class CloudinaryUploader:
    """
    Upload images to Cloudinary.

    The SDK is blocking, so each upload runs in a worker thread and many
    uploads can be in flight at once.
    """

    def __init__(self, config: Settings = settings):
        if not config.cloudinary_configured:
            logger.warning("Cloudinary credentials are not configured; uploads will fail")
        configure_cloudinary(config)

    async def upload(self, folder: str, local_path: str) -> dict[str, Any]:
        """
        Upload one file.

        Returns:
            The Cloudinary response; ``secure_url`` holds the public URL

        Raises:
            UpstreamError: If Cloudinary rejects the upload
        """
        try:
            response = await asyncio.to_thread(
                cloudinary.uploader.upload,
                local_path,
                folder=folder,
                resource_type="image",
            )
        except CloudinaryError as e:
            logger.error(
                "Cloudinary upload failed",
                extra={"path": local_path, "folder": folder, "error": str(e)}
            )
            raise UpstreamError(f"Image upload failed: {e}", service="cloudinary") from e

        if not response.get("secure_url"):
            raise UpstreamError("Image upload returned no URL", service="cloudinary")

        logger.info(
            "Image uploaded",
            extra={"path": local_path, "public_id": response.get("public_id")}
        )
        return response
