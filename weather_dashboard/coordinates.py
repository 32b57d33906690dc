"""Coordinate rounding, validation and key formatting.

Rounding is half away from zero on the decimal text of the number, so
45.00005 becomes 45.0001 and -122.98765 becomes -122.9877 regardless of
how the float happens to be stored in binary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

_FOUR_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


def round4(value: float) -> float:
    """Round a coordinate to 4 decimal places, ties away from zero."""
    if not math.isfinite(value):
        return value
    return float(Decimal(repr(float(value))).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP))


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check latitude is in [-90, 90] and longitude in [-180, 180]."""
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90 <= lat <= 90 and -180 <= lon <= 180


def format_number(value: float) -> str:
    """Format a number the way a browser would interpolate it.

    Integral floats drop the trailing ".0" and negative zero prints as "0".
    """
    if value == 0:
        return "0"
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    text = repr(float(value))
    if "e" in text:
        text = f"{value:.10f}".rstrip("0").rstrip(".")
    return text


def coordinate_key(lat: float, lon: float) -> str:
    """Build a "<lat>,<lon>" key from already-rounded or raw coordinates."""
    return f"{format_number(lat)},{format_number(lon)}"


def parse_coordinate_key(key: str) -> Coordinates | None:
    """Parse a "<lat>,<lon>" key back into coordinates.

    Returns None for free-text place names or anything out of range.
    """
    parts = [p.strip() for p in key.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat = float(parts[0])
        lon = float(parts[1])
    except ValueError:
        return None
    if not is_valid_coordinate(lat, lon):
        return None
    return Coordinates(latitude=lat, longitude=lon)
