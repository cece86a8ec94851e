"""Translate list query parameters into an explicit, validated query specification."""

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError
from ..models.base import ASCENDING, DESCENDING, ResourceDescriptor
from ..models.tour import TOUR_RESOURCE

# Client-facing operator name -> document store operator
FILTER_OPERATORS = MappingProxyType({
    "eq": "$eq",
    "ne": "$ne",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
})

_BRACKET_KEY = re.compile(r"^(?P<field>[A-Za-z_]\w*)\[(?P<operator>\w+)\]$")


@dataclass(frozen=True)
class FilterCondition:
    """One ``field <operator> value`` predicate."""

    field: str
    operator: str
    value: Any


@dataclass(frozen=True)
class QuerySpec:
    """
    Filter, projection, sort and pagination for one list request.

    Built per request and consumed immediately by the CRUD service.
    """

    filters: tuple[FilterCondition, ...] = ()
    fields: tuple[str, ...] = ()
    sort: tuple[tuple[str, int], ...] = ()
    page: int = 1
    limit: int = 100

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def to_filter(self) -> dict[str, Any]:
        """Render the predicates as a document store filter."""
        query: dict[str, Any] = {}
        for condition in self.filters:
            query.setdefault(condition.field, {})[FILTER_OPERATORS[condition.operator]] = condition.value
        return query

    def to_projection(self, resource: ResourceDescriptor) -> dict[str, int]:
        """Inclusion projection for selected fields, otherwise hide the resource's hidden fields."""
        if self.fields:
            return {name: 1 for name in self.fields}
        return resource.default_projection()

    def to_sort(self, resource: ResourceDescriptor) -> list[tuple[str, int]]:
        return list(self.sort or resource.default_sort)


@dataclass(frozen=True)
class QueryPreset:
    """A named, immutable list view that replaces the client's query parameters."""

    name: str
    spec: QuerySpec
    description: str = ""


def _coerce(field: str, raw: str, target: type) -> Any:
    try:
        if target is datetime:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            return value
        if target is str:
            return raw
        return target(raw)
    except ValueError:
        raise ValidationError(f"Invalid value '{raw}' for field '{field}'")


def parse_filter(
    key: str,
    raw: str,
    resource: ResourceDescriptor,
) -> FilterCondition:
    """
    Parse ``field=value`` or ``field[op]=value`` against the resource allow-list.

    Raises:
        ValidationError: On unknown fields, unknown operators or uncoercible values
    """
    match = _BRACKET_KEY.match(key)
    field, operator = (match.group("field"), match.group("operator")) if match else (key, "eq")

    if field not in resource.filter_fields:
        raise ValidationError(f"Filtering on '{field}' is not allowed")
    if operator not in FILTER_OPERATORS:
        raise ValidationError(
            f"Unsupported filter operator '{operator}'. Allowed: {', '.join(FILTER_OPERATORS)}"
        )

    return FilterCondition(field, operator, _coerce(field, raw, resource.filter_fields[field]))


def parse_sort(raw: str, resource: ResourceDescriptor) -> tuple[tuple[str, int], ...]:
    """Parse ``"price,-ratings"`` into sort keys; ``-`` means descending."""
    keys = []
    for token in (part.strip() for part in raw.split(",")):
        if not token:
            continue
        direction = DESCENDING if token.startswith("-") else ASCENDING
        name = token.lstrip("-")
        if name not in resource.sort_fields:
            raise ValidationError(f"Sorting by '{name}' is not allowed")
        keys.append((name, direction))
    return tuple(keys)


def parse_fields(raw: str, resource: ResourceDescriptor) -> tuple[str, ...]:
    """Parse a comma-separated projection."""
    names = tuple(dict.fromkeys(part.strip() for part in raw.split(",") if part.strip()))
    for name in names:
        if name not in resource.select_fields:
            raise ValidationError(f"Selecting '{name}' is not allowed")
    return names


def _parse_positive_int(name: str, raw: str, maximum: Optional[int] = None) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"'{name}' must be an integer")
    if value < 1:
        raise ValidationError(f"'{name}' must be at least 1")
    if maximum is not None and value > maximum:
        raise ValidationError(f"'{name}' must be at most {maximum}")
    return value


def build_query_spec(
    params: Iterable[tuple[str, str]],
    resource: ResourceDescriptor,
    default_limit: int = 100,
    max_limit: int = 1000,
) -> QuerySpec:
    """
    Build a query specification from raw query string pairs.

    Args:
        params: Query string items, e.g. ``request.query_params.multi_items()``
        resource: Collection descriptor holding the allow-lists
        default_limit: Page size used when ``limit`` is absent
        max_limit: Largest accepted ``limit``

    Returns:
        QuerySpec for the CRUD list operation
    """
    filters: dict[tuple[str, str], FilterCondition] = {}
    spec = QuerySpec(limit=default_limit)

    for key, raw in params:
        if key == "sort":
            spec = replace(spec, sort=parse_sort(raw, resource))
        elif key == "fields":
            spec = replace(spec, fields=parse_fields(raw, resource))
        elif key == "page":
            spec = replace(spec, page=_parse_positive_int("page", raw))
        elif key == "limit":
            spec = replace(spec, limit=_parse_positive_int("limit", raw, max_limit))
        else:
            condition = parse_filter(key, raw, resource)
            filters[(condition.field, condition.operator)] = condition

    return replace(spec, filters=tuple(filters.values()))


TOP_CHEAP_TOURS = QueryPreset(
    name="top-5-cheap",
    description="Well rated tours under 1500, cheapest first",
    spec=QuerySpec(
        filters=(
            FilterCondition("price", "lte", 1500.0),
            FilterCondition("ratings", "gte", 4.0),
        ),
        fields=parse_fields("name, duration, price, ratings, totalRatings, startDates", TOUR_RESOURCE),
        sort=parse_sort("price, -ratings, -totalRatings", TOUR_RESOURCE),
        page=1,
        limit=50,
    ),
)

PRESETS = MappingProxyType({preset.name: preset for preset in (TOP_CHEAP_TOURS,)})
