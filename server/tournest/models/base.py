"""Collection descriptors shared by the generic CRUD service."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from bson import ObjectId
from bson.errors import InvalidId

from ..core.exceptions import ValidationError

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Describes one document collection to the generic CRUD service.

    ``filter_fields`` maps each filterable field to the Python type its query
    string values are coerced to. Only fields listed here can appear in a
    filter, and only ``sort_fields`` / ``select_fields`` can be used for
    sorting and projection. ``hidden_fields`` are never returned.
    """

    name: str
    collection: str
    filter_fields: Mapping[str, type]
    sort_fields: frozenset[str]
    select_fields: frozenset[str]
    hidden_fields: frozenset[str] = frozenset({"__v"})
    default_sort: tuple[tuple[str, int], ...] = (("createdAt", DESCENDING), ("_id", ASCENDING))

    def default_projection(self) -> dict[str, int]:
        """Exclusion projection used when the client selects no fields."""
        return {name: 0 for name in sorted(self.hidden_fields)}


def parse_object_id(value: Any, resource_type: str = "resource") -> ObjectId:
    """
    Convert a path identifier to an ObjectId.

    Raises:
        ValidationError: If the value is not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {resource_type} id: {value}")


def utcnow() -> datetime:
    """Naive UTC timestamp truncated to milliseconds, the form BSON dates round-trip as."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)
