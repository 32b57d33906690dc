"""Turn the three kinds of location input into a Location candidate.

Input arrives as one of a closed set of variants:

- ``ByName``: free-text place name typed by the user
- ``ByCoordinates``: an explicit latitude/longitude pair
- ``ByMapPick``: a point picked on the map, with an optional label from
  reverse geocoding

No network calls happen here; map labels are resolved beforehand.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from weather_dashboard.coordinates import coordinate_key, is_valid_coordinate, round4
from weather_dashboard.locations import InvalidCoordinatesError, InvalidInputError, Location


@dataclass(frozen=True)
class ByName:
    name: str


@dataclass(frozen=True)
class ByCoordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class ByMapPick:
    lat: float
    lon: float
    resolved_label: str | None = None


LocationInput = Union[ByName, ByCoordinates, ByMapPick]


def _coordinate_candidate(lat: float, lon: float) -> str:
    if not is_valid_coordinate(lat, lon):
        raise InvalidCoordinatesError(
            "Latitude must be between -90 and 90 and longitude between -180 and 180."
        )
    return coordinate_key(round4(lat), round4(lon))


def resolve(location_input: LocationInput) -> Location:
    """Normalize user input into a Location ready for the store.

    Args:
        location_input: One of ``ByName``, ``ByCoordinates`` or ``ByMapPick``.

    Returns:
        Location with a canonical key and a display name.

    Raises:
        InvalidInputError: If a name is empty after trimming.
        InvalidCoordinatesError: If coordinates are out of range.
        TypeError: If the input is not a known variant.
    """
    if isinstance(location_input, ByName):
        name = location_input.name.strip()
        if not name:
            raise InvalidInputError("Please enter a location name.")
        return Location(key=name, display_name=name)

    if isinstance(location_input, ByCoordinates):
        key = _coordinate_candidate(location_input.lat, location_input.lon)
        return Location(key=key, display_name=key)

    if isinstance(location_input, ByMapPick):
        key = _coordinate_candidate(location_input.lat, location_input.lon)
        label = (location_input.resolved_label or "").strip()
        return Location(key=key, display_name=label or key)

    raise TypeError(f"Unsupported location input: {type(location_input).__name__}")


def parse_coordinates(lat_text: str, lon_text: str) -> ByCoordinates:
    """Build a ``ByCoordinates`` input from the raw form fields.

    Raises:
        InvalidCoordinatesError: If either field is not a number or the
            pair is out of range.
    """
    try:
        lat = float(lat_text)
        lon = float(lon_text)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError("Latitude and longitude must be numbers.")
    if not is_valid_coordinate(lat, lon):
        raise InvalidCoordinatesError(
            "Latitude must be between -90 and 90 and longitude between -180 and 180."
        )
    return ByCoordinates(lat=lat, lon=lon)
