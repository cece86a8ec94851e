"""FastAPI dependencies for authentication and the image pipeline."""

from datetime import datetime, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError

from ..services.image_pipeline import ImagePipeline
from ..services.upload_service import CloudinaryUploader
from .config import settings
from .exceptions import AuthenticationError


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: User information from validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError("You are not logged in. Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    try:
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=["HS256"]
        )
    except PyJWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")

    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Invalid token payload")

    exp = payload.get("exp")
    if exp and datetime.now(timezone.utc).timestamp() > exp:
        raise AuthenticationError("Token has expired")

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "roles": payload.get("roles", []),
    }


def get_image_pipeline() -> ImagePipeline:
    """Build the tour image pipeline from settings."""
    return ImagePipeline(
        uploader=CloudinaryUploader(),
        tmp_dir=settings.tmp_dir,
        folder=settings.cloudinary_folder,
        size=(settings.image_width, settings.image_height),
        quality=settings.image_quality,
        max_gallery_images=settings.max_gallery_images,
    )


RequiredAuth = Depends(get_current_user)
