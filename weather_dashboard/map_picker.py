"""Pick a location on a map and label it by reverse geocoding.

The map itself is an external widget reached only through the small
``MapWidget`` protocol; no map SDK details live here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from weather_dashboard import geocoding
from weather_dashboard.coordinates import Coordinates, round4
from weather_dashboard.geocoding import GeocodingError, GeoLocation
from weather_dashboard.locations import InvalidInputError
from weather_dashboard.resolver import ByMapPick

logger = logging.getLogger(__name__)

ReverseGeocoder = Callable[[float, float], Awaitable["str | None"]]
PlaceGeocoder = Callable[[str], Awaitable[GeoLocation]]


class MapWidget(Protocol):
    """What the picker needs from a map widget."""

    def place_marker(self, pos: Coordinates) -> None: ...

    def on_drag(self, callback: Callable[[Coordinates], None]) -> None: ...

    def pan_to(self, pos: Coordinates) -> None: ...


class MapPicker:
    """Keep a single marker, its label and the widget in sync.

    Attributes:
        marker: Current marker position (4 decimal places), if any.
        label: Reverse-geocoded or selected place label, if known.
    """

    def __init__(
        self,
        widget: MapWidget,
        reverse: ReverseGeocoder | None = None,
        geocode: PlaceGeocoder | None = None,
    ) -> None:
        self._widget = widget
        self._reverse = reverse or geocoding.reverse_geocode
        self._geocode = geocode or geocoding.geocode_place
        self._lookup: asyncio.Task | None = None
        self.marker: Coordinates | None = None
        self.label: str | None = None
        widget.on_drag(self._on_drag)

    @property
    def is_fetching(self) -> bool:
        return self._lookup is not None and not self._lookup.done()

    def _cancel_lookup(self) -> None:
        if self._lookup is not None and not self._lookup.done():
            self._lookup.cancel()
        self._lookup = None

    def _move(self, lat: float, lng: float) -> Coordinates:
        pos = Coordinates(latitude=round4(lat), longitude=round4(lng))
        self.marker = pos
        self.label = None
        self._widget.place_marker(pos)
        return pos

    async def pick(self, lat: float, lng: float) -> str | None:
        """Move the marker to a clicked point and look up its label.

        A newer pick cancels an unfinished lookup from an older one; the
        older call then returns None and leaves ``label`` alone.
        """
        self._cancel_lookup()
        pos = self._move(lat, lng)
        task = asyncio.ensure_future(self._reverse(pos.latitude, pos.longitude))
        self._lookup = task
        try:
            label = await task
        except asyncio.CancelledError:
            if task.cancelled() and asyncio.current_task().cancelling() == 0:
                return None
            raise
        if self._lookup is task:
            self.label = label
            self._lookup = None
        return label

    def _on_drag(self, pos: Coordinates) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._cancel_lookup()
            self._move(pos.latitude, pos.longitude)
            return
        loop.create_task(self.pick(pos.latitude, pos.longitude))

    async def select_prediction(self, place_id: str, description: str | None = None) -> GeoLocation:
        """Jump to an autocomplete selection.

        Raises:
            GeocodingError: If the place cannot be resolved.
        """
        self._cancel_lookup()
        try:
            place = await self._geocode(place_id)
        except GeocodingError as exc:
            logger.warning("Could not geocode place %s: %s", place_id, exc)
            raise
        pos = self._move(place.latitude, place.longitude)
        self.label = description or place.display_name
        self._widget.pan_to(pos)
        return place

    def to_input(self) -> ByMapPick:
        """Turn the current marker into a ``ByMapPick`` location input.

        Raises:
            InvalidInputError: If no point has been picked yet.
        """
        if self.marker is None:
            raise InvalidInputError("Pick a point on the map first.")
        return ByMapPick(
            lat=self.marker.latitude,
            lon=self.marker.longitude,
            resolved_label=self.label,
        )
