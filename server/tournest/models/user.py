"""User document definition."""

from .base import ResourceDescriptor

USER_RESOURCE = ResourceDescriptor(
    name="user",
    collection="users",
    filter_fields={"name": str, "email": str, "role": str},
    sort_fields=frozenset({"name", "email", "role", "_id"}),
    select_fields=frozenset({"_id", "name", "email", "role", "photo"}),
    hidden_fields=frozenset({"__v", "password", "passwordChangedAt"}),
    default_sort=(("_id", 1),),
)
