"""Geocoding through the backend's places proxy.

Three operations are exposed by the proxy at /api/google-places:
1. reverse: lat/lng -> human-readable label
2. autocomplete: free text -> place predictions
3. geocode: place id -> coordinates and label

Reverse lookups fall back to Nominatim via geopy when the proxy fails,
since a label is nice to have but never required.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from weather_dashboard import config
from weather_dashboard.coordinates import round4

logger = logging.getLogger(__name__)

PROXY_PATH = "/api/google-places"


class GeocodingError(Exception):
    """Raised when a place cannot be resolved to coordinates."""


@dataclass(frozen=True)
class GeoLocation:
    """A resolved geographic location with coordinates.

    Attributes:
        latitude: Decimal latitude, rounded to 4 places.
        longitude: Decimal longitude, rounded to 4 places.
        display_name: Human-readable location name from the geocoder.
    """

    latitude: float
    longitude: float
    display_name: str


@dataclass(frozen=True)
class PlacePrediction:
    """An autocomplete suggestion."""

    description: str
    place_id: str


def _create_client() -> httpx.AsyncClient:
    """Create an httpx client for the places proxy."""
    return httpx.AsyncClient(
        base_url=config.get_weather_api_base_url(),
        headers={"Accept": "application/json"},
        timeout=config.WEATHER_REQUEST_TIMEOUT,
    )


async def _proxy_get(op: str, **params: str) -> dict | None:
    """Call the places proxy, returning None on any failure."""
    client = _create_client()
    try:
        response = await client.get(PROXY_PATH, params={"op": op, **params})
        if response.status_code == 200:
            body = response.json()
            return body if isinstance(body, dict) else None
        logger.warning("Places proxy %s returned HTTP %s", op, response.status_code)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Places proxy %s failed: %s", op, exc)
    finally:
        await client.aclose()
    return None


def _label_from_geocode(body: dict) -> str | None:
    """Pick a label out of a geocode/reverse response."""
    results = body.get("results")
    if not isinstance(results, list) or not results:
        return None
    first = results[0] if isinstance(results[0], dict) else {}
    label = first.get("formatted_address") or first.get("name")
    return str(label) if label else None


def _reverse_nominatim(lat: float, lng: float) -> str | None:
    """Try reverse geocoding with Nominatim. Returns None on failure instead of raising."""
    try:
        geolocator = Nominatim(
            user_agent=config.NOMINATIM_USER_AGENT,
            timeout=config.NOMINATIM_TIMEOUT,
        )
        result = geolocator.reverse((lat, lng), exactly_one=True)
        if result is not None:
            return result.address
    except (GeocoderTimedOut, GeocoderServiceError) as exc:
        logger.warning("Nominatim reverse lookup failed: %s", exc)
    return None


async def reverse_geocode(lat: float, lng: float) -> str | None:
    """Find a readable label for a point.

    Args:
        lat: Decimal latitude.
        lng: Decimal longitude.

    Returns:
        The label, or None if neither the proxy nor Nominatim knows one.
    """
    body = await _proxy_get("reverse", lat=str(lat), lng=str(lng))
    if body is not None:
        label = _label_from_geocode(body)
        if label:
            return label
    return _reverse_nominatim(lat, lng)


async def autocomplete(text: str) -> list[PlacePrediction]:
    """Return place predictions for partial input (empty on any failure)."""
    text = text.strip()
    if not text:
        return []

    body = await _proxy_get("autocomplete", input=text)
    if not body or body.get("status") != "OK" or not isinstance(body.get("predictions"), list):
        return []

    predictions = []
    for p in body["predictions"]:
        if isinstance(p, dict) and p.get("description") and p.get("place_id"):
            predictions.append(
                PlacePrediction(description=p["description"], place_id=p["place_id"])
            )
    return predictions


async def geocode_place(place_id: str) -> GeoLocation:
    """Resolve an autocomplete place id to coordinates.

    Raises:
        GeocodingError: If the proxy fails or returns no geometry.
    """
    body = await _proxy_get("geocode", place_id=place_id)
    if body is None:
        raise GeocodingError("Failed to fetch place details.")

    try:
        location = body["results"][0]["geometry"]["location"]
        lat = round4(float(location["lat"]))
        lng = round4(float(location["lng"]))
    except (KeyError, IndexError, TypeError, ValueError):
        raise GeocodingError("Could not determine location for selection.")

    return GeoLocation(
        latitude=lat,
        longitude=lng,
        display_name=_label_from_geocode(body) or f"{lat}, {lng}",
    )
