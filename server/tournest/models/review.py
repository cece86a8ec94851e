"""Review document definition."""

from .base import ResourceDescriptor

REVIEW_RESOURCE = ResourceDescriptor(
    name="review",
    collection="reviews",
    filter_fields={"rating": float},
    sort_fields=frozenset({"rating", "createdAt", "_id"}),
    select_fields=frozenset({"_id", "review", "rating", "tour", "user", "createdAt"}),
)
