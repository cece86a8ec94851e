"""Models module exporting the document collection descriptors."""

from .base import ResourceDescriptor, parse_object_id
from .review import REVIEW_RESOURCE
from .tour import TOUR_RESOURCE, Difficulty, slugify
from .user import USER_RESOURCE

__all__ = [
    "ResourceDescriptor",
    "parse_object_id",
    "TOUR_RESOURCE",
    "REVIEW_RESOURCE",
    "USER_RESOURCE",
    "Difficulty",
    "slugify",
]
