"""Current device position with a hard timeout.

The platform capability (browser geolocation, an OS location service,
a test double) is a ``PositionSource``. The accessor adds the timeout,
rounds the result to 4 decimal places and maps failures onto a small
exception hierarchy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from weather_dashboard import config
from weather_dashboard.coordinates import Coordinates, round4

logger = logging.getLogger(__name__)


class GeolocationError(Exception):
    """Base class for failures to obtain the current position."""


class GeoUnsupportedError(GeolocationError):
    """Raised when no position capability is available."""


class GeoTimeoutError(GeolocationError):
    """Raised when the position request does not answer in time."""


class GeoPermissionDeniedError(GeolocationError):
    """Raised when the user refused location access."""


class GeoPositionUnavailableError(GeolocationError):
    """Raised when the platform could not determine a position."""


class PositionSource(Protocol):
    """Platform capability that reports the device position.

    Implementations raise ``GeoPermissionDeniedError`` or
    ``GeoPositionUnavailableError``; any other exception is treated as
    position unavailable.
    """

    async def current_position(self) -> tuple[float, float]: ...


class GeolocationAccessor:
    """Ask a ``PositionSource`` for the current position.

    Only one request is outstanding at a time; calling again while one
    is pending waits for the same answer.
    """

    def __init__(self, source: PositionSource | None) -> None:
        self._source = source
        self._pending: asyncio.Task | None = None

    @property
    def loading(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def _locate(self, timeout_ms: int) -> Coordinates:
        try:
            lat, lon = await asyncio.wait_for(
                self._source.current_position(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            raise GeoTimeoutError("Location request timed out.")
        except GeolocationError:
            raise
        except Exception as exc:
            logger.warning("Position source failed: %s", exc)
            raise GeoPositionUnavailableError(f"Failed to get location: {exc}")
        return Coordinates(latitude=round4(lat), longitude=round4(lon))

    async def get_current_position(self, timeout_ms: int | None = None) -> Coordinates:
        """Return the current position rounded to 4 decimal places.

        Args:
            timeout_ms: Give up after this many milliseconds. Defaults to
                ``config.GEOLOCATION_TIMEOUT_MS`` (12 seconds).

        Raises:
            GeoUnsupportedError: If no position source is configured.
            GeoTimeoutError: If the source does not answer in time.
            GeoPermissionDeniedError: If access was refused.
            GeoPositionUnavailableError: If no position could be determined.
        """
        if self._source is None:
            raise GeoUnsupportedError("Geolocation is not supported on this platform.")

        if not self.loading:
            if timeout_ms is None:
                timeout_ms = config.GEOLOCATION_TIMEOUT_MS
            self._pending = asyncio.ensure_future(self._locate(timeout_ms))
        return await asyncio.shield(self._pending)
