"""Unit tests for coordinate parsing and unit conversion."""

import pytest

from tournest.core.exceptions import ValidationError
from tournest.services.geo import (
    EARTH_RADIUS_KM,
    EARTH_RADIUS_MI,
    LATLON_FORMAT_MESSAGE,
    distance_multiplier,
    parse_latlon,
    radius_in_radians,
)


def test_parse_latlon():
    """Test that lat,lng is returned in that order."""
    assert parse_latlon("34.111745,-118.113491") == (34.111745, -118.113491)


def test_parse_latlon_allows_spaces():
    """Test surrounding whitespace is tolerated."""
    assert parse_latlon(" 51.5 , -0.12 ") == (51.5, -0.12)


@pytest.mark.parametrize("latlon", ["", "34.1", "34.1,", ",-118.1", "north,west", "1,2,3", "nan,1", "inf,1"])
def test_parse_latlon_malformed(latlon):
    """Test malformed coordinates give the format message."""
    with pytest.raises(ValidationError) as exc_info:
        parse_latlon(latlon)
    assert exc_info.value.message == LATLON_FORMAT_MESSAGE
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("latlon", ["91,0", "-90.5,0", "0,181", "0,-180.01"])
def test_parse_latlon_out_of_range(latlon):
    """Test coordinates outside the globe are rejected."""
    with pytest.raises(ValidationError):
        parse_latlon(latlon)


def test_radius_in_radians():
    """Test the radius divisor per unit."""
    assert radius_in_radians(3963.2, "mi") == pytest.approx(1.0)
    assert radius_in_radians(6378.1, "km") == pytest.approx(1.0)
    assert radius_in_radians(100, "mi") == 100 / EARTH_RADIUS_MI


def test_radius_defaults_to_kilometers():
    """Test that any unit other than mi is treated as km."""
    assert radius_in_radians(100, "furlongs") == 100 / EARTH_RADIUS_KM


def test_distance_multiplier():
    """Test meters to km / miles conversion."""
    assert distance_multiplier("km") == 0.001
    assert distance_multiplier("mi") == 0.00062137
    assert distance_multiplier("anything") == 0.00062137
