"""Coordinate parsing and distance unit conversion for geo queries."""

import math
from typing import Optional

from ..core.exceptions import ValidationError

EARTH_RADIUS_MI = 3963.2
EARTH_RADIUS_KM = 6378.1

METERS_TO_KM = 0.001
METERS_TO_MI = 0.00062137

LATLON_FORMAT_MESSAGE = "Please specify latitude and longitude in 'lat,lng' format"


def _parse_coordinate(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        raise ValidationError(LATLON_FORMAT_MESSAGE)
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(LATLON_FORMAT_MESSAGE)
    if not math.isfinite(value):
        raise ValidationError(LATLON_FORMAT_MESSAGE)
    return value


def parse_latlon(latlon: str) -> tuple[float, float]:
    """
    Parse a ``"lat,lng"`` path segment.

    Returns:
        (latitude, longitude)

    Raises:
        ValidationError: If either coordinate is missing, non-numeric or out of range
    """
    parts = latlon.split(",")
    if len(parts) != 2:
        raise ValidationError(LATLON_FORMAT_MESSAGE)

    latitude, longitude = (_parse_coordinate(part) for part in parts)
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise ValidationError("Latitude must be within [-90, 90] and longitude within [-180, 180]")
    return latitude, longitude


def radius_in_radians(distance: float, unit: str) -> float:
    """Convert a distance to an angular radius: miles for ``"mi"``, kilometers otherwise."""
    return distance / (EARTH_RADIUS_MI if unit == "mi" else EARTH_RADIUS_KM)


def distance_multiplier(unit: str) -> float:
    """Multiplier turning meters into kilometers for ``"km"``, miles otherwise."""
    return METERS_TO_KM if unit == "km" else METERS_TO_MI
