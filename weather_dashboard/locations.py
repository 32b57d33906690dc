"""Saved locations: a small, validated, persisted collection.

The collection holds at most ``MAX_LOCATIONS`` entries with unique keys.
It is read once from durable key-value storage at start-up and written
back in full after every mutation.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Protocol

from weather_dashboard import config

logger = logging.getLogger(__name__)

STORAGE_KEY = "locations"
MAX_DISPLAY_NAME_LENGTH = 100


class LocationError(Exception):
    """Base class for rejected location input or storage problems."""


class InvalidInputError(LocationError):
    """Raised when a location name is empty."""


class InvalidCoordinatesError(LocationError):
    """Raised when coordinates are missing or out of range."""


class DuplicateKeyError(LocationError):
    """Raised when a location with the same key is already saved."""


class CapacityExceededError(LocationError):
    """Raised when the collection is already full."""


class StorageParseError(LocationError):
    """Raised when persisted location data cannot be parsed."""


@dataclass(frozen=True)
class Location:
    """A saved location.

    Attributes:
        key: Canonical identity, a place name or a "<lat>,<lon>" string.
        display_name: User-editable label; falls back to ``key`` when blank.
    """

    key: str
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.display_name or not self.display_name.strip():
            object.__setattr__(self, "display_name", self.key)


class KeyValueStorage(Protocol):
    """Durable string key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Key-value storage held in a dict, lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """Key-value storage backed by a single JSON object on disk.

    The whole file is rewritten on every ``set_item``. A missing or
    unreadable file reads as empty.
    """

    def __init__(self, path: str | None = None) -> None:
        self.path = path or config.LOCATIONS_STORAGE_PATH

    def _read_all(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Could not read storage file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file %s does not hold a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=directory or ".",
            prefix=f"{os.path.basename(self.path)}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            json.dump(items, fh)
        try:
            os.replace(fh.name, self.path)
        except OSError:
            os.unlink(fh.name)
            raise


def _decode_locations(raw: str) -> list[Location]:
    """Parse the persisted JSON array into Location records.

    Raises:
        StorageParseError: If the data is not a JSON array of
            ``{"location": str, "name": str}`` objects.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise StorageParseError(f"Invalid JSON in saved locations: {exc}")

    if not isinstance(data, list):
        raise StorageParseError("Saved locations must be a JSON array.")

    result = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("location"), str):
            raise StorageParseError(f"Malformed saved location entry: {item!r}")
        name = item.get("name")
        result.append(
            Location(
                key=item["location"],
                display_name=name if isinstance(name, str) else "",
            )
        )
    return result


def _encode_locations(locations: tuple[Location, ...]) -> str:
    return json.dumps(
        [{"location": loc.key, "name": loc.display_name} for loc in locations]
    )


class LocationStore:
    """The authoritative list of saved locations.

    Construct one per session and pass it to whatever renders the
    cards. The ``locations`` tuple is immutable; change it only through
    ``add``, ``rename`` and ``remove``.
    """

    def __init__(self, storage: KeyValueStorage, capacity: int | None = None) -> None:
        self._storage = storage
        self.capacity = capacity if capacity is not None else config.MAX_LOCATIONS
        self._locations: tuple[Location, ...] = ()

    @property
    def locations(self) -> tuple[Location, ...]:
        return self._locations

    def __len__(self) -> int:
        return len(self._locations)

    def __contains__(self, key: object) -> bool:
        return any(loc.key == key for loc in self._locations)

    def load(self) -> tuple[Location, ...]:
        """Read saved locations from storage.

        Malformed data is logged and treated as no data. Entries that
        would break the uniqueness or capacity rules are dropped.

        Returns:
            The loaded locations (possibly empty).
        """
        raw = self._storage.get_item(STORAGE_KEY)
        if not raw:
            self._locations = ()
            return self._locations

        try:
            decoded = _decode_locations(raw)
        except StorageParseError as exc:
            logger.warning("Ignoring saved locations: %s", exc)
            self._locations = ()
            return self._locations

        kept: list[Location] = []
        for loc in decoded:
            if any(k.key == loc.key for k in kept):
                logger.warning("Dropping duplicate saved location %r", loc.key)
                continue
            if len(kept) >= self.capacity:
                logger.warning("Dropping saved location %r beyond capacity", loc.key)
                continue
            kept.append(loc)

        self._locations = tuple(kept)
        logger.info("Loaded %d saved location(s)", len(self._locations))
        return self._locations

    def _persist(self, locations: tuple[Location, ...]) -> tuple[Location, ...]:
        self._storage.set_item(STORAGE_KEY, _encode_locations(locations))
        self._locations = locations
        return locations

    def add(self, candidate: Location) -> tuple[Location, ...]:
        """Append a location and persist the collection.

        The duplicate check runs before the capacity check, so re-adding
        a saved location reports the duplicate even when the list is full.

        Raises:
            DuplicateKeyError: If ``candidate.key`` is already saved.
            CapacityExceededError: If the collection is full.
        """
        if candidate.key in self:
            raise DuplicateKeyError(f"'{candidate.key}' is already in your locations.")
        if len(self._locations) >= self.capacity:
            raise CapacityExceededError(
                f"You can save up to {self.capacity} locations. "
                "Remove one before adding another."
            )
        logger.info("Adding location %r", candidate.key)
        return self._persist(self._locations + (candidate,))

    def rename(self, key: str, new_display_name: str) -> tuple[Location, ...]:
        """Change a location's display name and persist.

        The name is trimmed and capped at 100 characters; an empty name
        falls back to the key. Unknown keys leave the collection as is.
        """
        if key not in self:
            return self._locations
        name = new_display_name.strip()[:MAX_DISPLAY_NAME_LENGTH]
        updated = tuple(
            Location(key=loc.key, display_name=name) if loc.key == key else loc
            for loc in self._locations
        )
        return self._persist(updated)

    def remove(self, key: str) -> tuple[Location, ...]:
        """Delete a location by key and persist."""
        logger.info("Removing location %r", key)
        return self._persist(tuple(loc for loc in self._locations if loc.key != key))
