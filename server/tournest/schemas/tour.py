"""Tour-related Pydantic schemas."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from ..models.tour import Difficulty
from .common import DocumentModel, PyObjectId


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _naive_utc(dates: Optional[list[datetime]]) -> Optional[list[datetime]]:
    if dates is None:
        return None
    return [
        d.astimezone(timezone.utc).replace(tzinfo=None) if d.tzinfo is not None else d
        for d in dates
    ]


class StartLocation(DocumentModel):
    """GeoJSON Point where a tour starts."""

    type: Literal["Point"] = Field("Point", description="GeoJSON geometry type")
    coordinates: list[float] = Field(..., description="[longitude, latitude]")
    address: Optional[str] = Field(None, description="Street address")
    description: Optional[str] = Field(None, description="Place description")

    @field_validator("coordinates")
    @classmethod
    def validate_coordinates(cls, v: list[float]) -> list[float]:
        """Require exactly [lng, lat] within range."""
        if len(v) != 2:
            raise ValueError("coordinates must be [longitude, latitude]")
        longitude, latitude = v
        if not -180 <= longitude <= 180 or not -90 <= latitude <= 90:
            raise ValueError("coordinates out of range")
        return v


class TourCreate(DocumentModel):
    """Request schema for creating a tour."""

    name: str = Field(..., min_length=10, max_length=40, description="Tour name")
    duration: int = Field(..., gt=0, description="Duration in days")
    max_group_size: int = Field(..., gt=0, description="Maximum group size")
    difficulty: Difficulty = Field(..., description="Difficulty tier")
    ratings: float = Field(4.5, ge=1, le=5, description="Average rating")
    total_ratings: int = Field(0, ge=0, description="Number of ratings")
    price: float = Field(..., gt=0, description="Price")
    summary: str = Field(..., min_length=1, description="Short summary")
    description: Optional[str] = Field(None, description="Long description")
    image_cover: Optional[str] = Field(None, description="Cover image URL")
    images: list[str] = Field(default_factory=list, description="Gallery image URLs")
    start_dates: list[datetime] = Field(default_factory=list, description="Departure dates")
    start_location: Optional[StartLocation] = Field(None, description="Starting point")

    @field_validator("name", "summary", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("start_dates")
    @classmethod
    def normalize_start_dates(cls, v: Optional[list[datetime]]) -> Optional[list[datetime]]:
        return _naive_utc(v)

    def to_document(self) -> dict[str, Any]:
        """Storage form of the payload, camelCase keys, None values dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TourUpdate(DocumentModel):
    """Request schema for a partial tour update. Null values are ignored."""

    name: Optional[str] = Field(None, min_length=10, max_length=40)
    duration: Optional[int] = Field(None, gt=0)
    max_group_size: Optional[int] = Field(None, gt=0)
    difficulty: Optional[Difficulty] = None
    ratings: Optional[float] = Field(None, ge=1, le=5)
    total_ratings: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, gt=0)
    summary: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image_cover: Optional[str] = None
    images: Optional[list[str]] = None
    start_dates: Optional[list[datetime]] = None
    start_location: Optional[StartLocation] = None

    @field_validator("name", "summary", "description", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("start_dates")
    @classmethod
    def normalize_start_dates(cls, v: Optional[list[datetime]]) -> Optional[list[datetime]]:
        return _naive_utc(v)

    def to_changes(self) -> dict[str, Any]:
        """Fields the client actually sent, in storage form."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class Review(DocumentModel):
    """Review embedded in a tour detail response."""

    id: PyObjectId = Field(..., alias="_id")
    review: Optional[str] = None
    rating: Optional[float] = None
    tour: Optional[PyObjectId] = None
    user: Optional[PyObjectId] = None
    created_at: Optional[datetime] = None


class Tour(DocumentModel):
    """
    Tour response schema.

    Every field except the id is optional because list requests may
    project a subset of fields.
    """

    id: PyObjectId = Field(..., alias="_id", description="Unique tour ID")
    name: Optional[str] = None
    slug: Optional[str] = None
    duration: Optional[int] = None
    max_group_size: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    ratings: Optional[float] = None
    total_ratings: Optional[int] = None
    price: Optional[float] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    image_cover: Optional[str] = None
    images: Optional[list[str]] = None
    start_dates: Optional[list[datetime]] = None
    start_location: Optional[StartLocation] = None
    created_at: Optional[datetime] = None
    reviews: Optional[list[Review]] = None


class TourStats(DocumentModel):
    """Aggregate statistics for one difficulty tier."""

    id: Optional[str] = Field(None, alias="_id", description="Difficulty tier")
    total_tours: int
    avg_ratings: Optional[float] = None
    total_ratings: int = 0
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class MonthlyPlanEntry(DocumentModel):
    """Tour starts within one calendar month."""

    month: int = Field(..., ge=1, le=12)
    num_tours: int
    tours: list[str]


class TourDistance(DocumentModel):
    """A tour and its distance from the query point."""

    id: PyObjectId = Field(..., alias="_id")
    name: Optional[str] = None
    distance: float
