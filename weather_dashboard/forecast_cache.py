"""Hourly forecast cache with stale-while-revalidate semantics.

Entries are keyed by the unrounded "<lat>,<lon>" string and live for the
life of the process. A consumer iterates ``ForecastCache.get`` and receives
forecast states in order:

1. Immediately: the cached entry (``ready`` when fresh, ``stale`` when
   older than the TTL) or a ``loading`` marker when nothing is cached.
2. Later, unless the entry was fresh: ``ready`` with the new entry, or
   ``error`` when the fetch failed and there was nothing cached to show.

At most one fetch per key is in flight on each event loop. Consumers on
that loop asking for the same key share it, and when the last one detaches
the fetch is cancelled without touching the cache. Entries are shared by
every loop and thread using the instance.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Sequence

from weather_dashboard import config, weather_client
from weather_dashboard.coordinates import coordinate_key
from weather_dashboard.weather_client import MAX_HOURLY_INTERVALS, HourlyInterval, WeatherAPIError

logger = logging.getLogger(__name__)

HourlyFetcher = Callable[[float, float], Awaitable[Sequence[HourlyInterval]]]

LOADING = "loading"
READY = "ready"
STALE = "stale"
ERROR = "error"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class ForecastCacheEntry:
    """Cached hourly forecast for one coordinate pair.

    Attributes:
        key: Unrounded "<lat>,<lon>" string.
        fetched_at: Clock reading in milliseconds when the data arrived.
        intervals: Up to 24 hourly intervals, oldest first.
    """

    key: str
    fetched_at: float
    intervals: tuple[HourlyInterval, ...]


@dataclass(frozen=True)
class ForecastState:
    """One update emitted by ``ForecastCache.get``."""

    status: str
    entry: ForecastCacheEntry | None = None
    error: str | None = None

    @classmethod
    def loading(cls) -> ForecastState:
        return cls(status=LOADING)

    @classmethod
    def ready(cls, entry: ForecastCacheEntry) -> ForecastState:
        return cls(status=READY, entry=entry)

    @classmethod
    def stale(cls, entry: ForecastCacheEntry) -> ForecastState:
        return cls(status=STALE, entry=entry)

    @classmethod
    def failed(cls, message: str) -> ForecastState:
        return cls(status=ERROR, error=message)


class _Fetch:
    """An in-flight fetch and the number of consumers waiting on it."""

    def __init__(self, key: str, task: asyncio.Task) -> None:
        self.key = key
        self.task = task
        self.waiters = 0
        self.replaced_by: _Fetch | None = None


def _consumer_cancelled() -> bool:
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0


class ForecastCache:
    """Process-wide hourly forecast cache.

    Construct once and hand the same instance to every card, from any
    thread. Fetch tasks belong to the event loop that started them, so
    in-flight fetches are tracked per loop. Tests build a fresh instance
    with a fake fetcher and clock.

    Args:
        fetch_hourly: Async callable ``(lat, lon) -> intervals``. Failures
            must surface as ``WeatherAPIError``.
        ttl_ms: Age in milliseconds after which an entry is stale.
        clock: Returns the current time in milliseconds.
    """

    def __init__(
        self,
        fetch_hourly: HourlyFetcher | None = None,
        ttl_ms: int | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._fetch_hourly = fetch_hourly or weather_client.get_hourly_forecast
        self.ttl_ms = ttl_ms if ttl_ms is not None else config.FORECAST_CACHE_TTL_MS
        self._clock = clock or _monotonic_ms
        self._entries: dict[str, ForecastCacheEntry] = {}
        # Each loop's map is only touched from that loop's thread.
        self._inflight_by_loop: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, dict[str, _Fetch]
        ] = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _entry(self, key: str) -> ForecastCacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def peek(self, lat: float, lon: float) -> ForecastCacheEntry | None:
        """Return the cached entry for a coordinate pair without fetching."""
        return self._entry(coordinate_key(lat, lon))

    def is_stale(self, entry: ForecastCacheEntry) -> bool:
        return self._clock() - entry.fetched_at >= self.ttl_ms

    def is_fetching(self, lat: float, lon: float) -> bool:
        """True if any event loop has a fetch in flight for the pair."""
        key = coordinate_key(lat, lon)
        with self._lock:
            return any(key in inflight for inflight in self._inflight_by_loop.values())

    def clear(self) -> None:
        """Drop every cached entry and cancel in-flight fetches."""
        with self._lock:
            pending = [
                (loop, list(inflight.values()))
                for loop, inflight in self._inflight_by_loop.items()
            ]
            self._entries.clear()
        for loop, fetches in pending:
            if loop.is_closed():
                continue
            for fetch in fetches:
                loop.call_soon_threadsafe(fetch.task.cancel)

    def _inflight(self) -> dict[str, _Fetch]:
        loop = asyncio.get_running_loop()
        with self._lock:
            return self._inflight_by_loop.setdefault(loop, {})

    async def _run_fetch(self, key: str, lat: float, lon: float) -> ForecastCacheEntry:
        intervals = await self._fetch_hourly(lat, lon)
        entry = ForecastCacheEntry(
            key=key,
            fetched_at=self._clock(),
            intervals=tuple(intervals)[:MAX_HOURLY_INTERVALS],
        )
        with self._lock:
            self._entries[key] = entry
        logger.debug("Cached %d hourly intervals for %s", len(entry.intervals), key)
        return entry

    def _start(self, key: str, lat: float, lon: float) -> _Fetch:
        inflight = self._inflight()
        task = asyncio.ensure_future(self._run_fetch(key, lat, lon))
        fetch = _Fetch(key, task)
        inflight[key] = fetch

        def _done(t: asyncio.Task) -> None:
            if inflight.get(key) is fetch:
                del inflight[key]
            if not t.cancelled():
                # Mark the exception retrieved; waiters handle it.
                t.exception()

        task.add_done_callback(_done)
        return fetch

    def _join(self, key: str, lat: float, lon: float) -> _Fetch:
        fetch = self._inflight().get(key)
        if fetch is None:
            fetch = self._start(key, lat, lon)
        fetch.waiters += 1
        return fetch

    def _release(self, fetch: _Fetch) -> None:
        fetch.waiters -= 1
        if fetch.waiters <= 0 and not fetch.task.done():
            logger.debug("Cancelling forecast fetch for %s, no consumers left", fetch.key)
            inflight = self._inflight()
            if inflight.get(fetch.key) is fetch:
                del inflight[fetch.key]
            fetch.task.cancel()

    def _supersede(self, key: str) -> _Fetch | None:
        fetch = self._inflight().pop(key, None)
        if fetch is not None and not fetch.task.done():
            logger.debug("Superseding in-flight forecast fetch for %s", key)
            fetch.task.cancel()
        return fetch

    def _follow(self, fetch: _Fetch, key: str, lat: float, lon: float) -> _Fetch:
        """Move a waiter from a cancelled fetch to its replacement."""
        replacement = fetch.replaced_by
        self._release(fetch)
        if replacement is None:
            return self._join(key, lat, lon)
        replacement.waiters += 1
        return replacement

    async def get(
        self, lat: float, lon: float, *, force: bool = False
    ) -> AsyncIterator[ForecastState]:
        """Yield forecast states for a coordinate pair.

        Args:
            lat: Latitude, used unrounded in the cache key.
            lon: Longitude, used unrounded in the cache key.
            force: Fetch even when the entry is fresh, superseding any
                fetch already in flight for the key.

        Yields:
            ForecastState updates as described in the module docstring.
        """
        key = coordinate_key(lat, lon)
        entry = self._entry(key)
        if entry is not None and not force and not self.is_stale(entry):
            yield ForecastState.ready(entry)
            return

        superseded = self._supersede(key) if force else None
        fetch = self._join(key, lat, lon)
        if superseded is not None:
            superseded.replaced_by = fetch
        try:
            yield ForecastState.stale(entry) if entry is not None else ForecastState.loading()

            outcome: ForecastState | None = None
            while outcome is None:
                try:
                    fresh = await asyncio.shield(fetch.task)
                    outcome = ForecastState.ready(fresh)
                except asyncio.CancelledError:
                    if not fetch.task.cancelled() or _consumer_cancelled():
                        raise
                    # A newer explicit request replaced this fetch; follow it.
                    fetch = self._follow(fetch, key, lat, lon)
                except WeatherAPIError as exc:
                    if entry is None:
                        outcome = ForecastState.failed(str(exc))
                    else:
                        logger.warning("Background forecast refresh for %s failed: %s", key, exc)
                        return
            yield outcome
        finally:
            self._release(fetch)

    def refresh(self, lat: float, lon: float) -> AsyncIterator[ForecastState]:
        """Explicitly re-fetch a key, superseding any older in-flight fetch."""
        return self.get(lat, lon, force=True)
