"""Tour document definition."""

import re
import unicodedata
from datetime import datetime
from enum import Enum

from .base import DESCENDING, ResourceDescriptor

_SLUG_INVALID = re.compile(r"[^\w\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


class Difficulty(str, Enum):
    """Difficulty tier of a tour."""
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


def slugify(value: str) -> str:
    """
    Derive a URL-friendly slug from a tour name.

    >>> slugify("The Forest Hiker")
    'the-forest-hiker'
    """
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = _SLUG_INVALID.sub("", value).strip().lower()
    return _SLUG_SEPARATORS.sub("-", value).strip("-")


TOUR_RESOURCE = ResourceDescriptor(
    name="tour",
    collection="tours",
    filter_fields={
        "name": str,
        "slug": str,
        "difficulty": str,
        "duration": int,
        "maxGroupSize": int,
        "price": float,
        "ratings": float,
        "totalRatings": int,
        "startDates": datetime,
    },
    sort_fields=frozenset({
        "name", "duration", "maxGroupSize", "difficulty", "price",
        "ratings", "totalRatings", "createdAt", "_id",
    }),
    select_fields=frozenset({
        "_id", "name", "slug", "duration", "maxGroupSize", "difficulty", "price",
        "ratings", "totalRatings", "summary", "description", "imageCover",
        "images", "startDates", "startLocation", "createdAt",
    }),
    default_sort=(("createdAt", DESCENDING), ("_id", 1)),
)
