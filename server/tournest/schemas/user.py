"""User-related Pydantic schemas."""

from typing import Optional

from pydantic import Field

from .common import DocumentModel, PyObjectId


class User(DocumentModel):
    """Public view of a user. Credentials are never part of this schema."""

    id: PyObjectId = Field(..., alias="_id", description="Unique user ID")
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    photo: Optional[str] = None
