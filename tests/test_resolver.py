"""Tests for turning user input into location candidates."""

import pytest

from weather_dashboard.locations import (
    DuplicateKeyError,
    InvalidCoordinatesError,
    InvalidInputError,
    Location,
    LocationStore,
    MemoryStorage,
)
from weather_dashboard.resolver import (
    ByCoordinates,
    ByMapPick,
    ByName,
    parse_coordinates,
    resolve,
)


class TestResolveByName:

    def test_name_is_key_and_label(self):
        assert resolve(ByName("Chicago")) == Location(key="Chicago", display_name="Chicago")

    def test_name_is_trimmed(self):
        assert resolve(ByName("  Chicago ")).key == "Chicago"

    def test_blank_name_rejected(self):
        with pytest.raises(InvalidInputError):
            resolve(ByName("   "))


class TestResolveByCoordinates:

    def test_rounds_to_four_decimals(self):
        result = resolve(ByCoordinates(lat=45.12345, lon=-122.98765))
        assert result.key == "45.1235,-122.9877"
        assert result.display_name == "45.1235,-122.9877"

    def test_half_rounds_up(self):
        assert resolve(ByCoordinates(lat=45.00005, lon=0)).key == "45.0001,0"

    def test_latitude_out_of_range(self):
        with pytest.raises(InvalidCoordinatesError):
            resolve(ByCoordinates(lat=91, lon=0))

    def test_longitude_out_of_range(self):
        with pytest.raises(InvalidCoordinatesError):
            resolve(ByCoordinates(lat=0, lon=-180.01))


class TestResolveByMapPick:

    def test_uses_resolved_label(self):
        result = resolve(ByMapPick(lat=38.72225, lon=-9.13933, resolved_label="Lisbon, Portugal"))
        assert result == Location(key="38.7223,-9.1393", display_name="Lisbon, Portugal")

    def test_falls_back_to_coordinates(self):
        result = resolve(ByMapPick(lat=38.7223, lon=-9.1393))
        assert result.display_name == "38.7223,-9.1393"

    def test_blank_label_falls_back(self):
        result = resolve(ByMapPick(lat=38.7223, lon=-9.1393, resolved_label="  "))
        assert result.display_name == "38.7223,-9.1393"

    def test_out_of_range(self):
        with pytest.raises(InvalidCoordinatesError):
            resolve(ByMapPick(lat=-95, lon=0, resolved_label="Nowhere"))


class TestResolveUnknownInput:

    def test_unknown_variant(self):
        with pytest.raises(TypeError):
            resolve({"type": "name", "name": "Chicago"})


class TestParseCoordinates:

    def test_parses_numbers(self):
        assert parse_coordinates("40.7128", "-74.0060") == ByCoordinates(40.7128, -74.006)

    @pytest.mark.parametrize(
        "lat, lon", [("", "1"), ("abc", "1"), ("nan", "0"), ("inf", "0"), ("91", "0"), ("0", "181")]
    )
    def test_rejects_bad_input(self, lat, lon):
        with pytest.raises(InvalidCoordinatesError):
            parse_coordinates(lat, lon)


class TestAddFlow:
    """Resolver and store together, the way the dashboard uses them."""

    def test_name_coords_then_duplicate_name(self):
        store = LocationStore(MemoryStorage(), capacity=3)
        store.load()

        store.add(resolve(ByName("Chicago")))
        store.add(resolve(ByCoordinates(lat=41.8781, lon=-87.6298)))
        with pytest.raises(DuplicateKeyError):
            store.add(resolve(ByName("Chicago")))

        assert [loc.key for loc in store.locations] == ["Chicago", "41.8781,-87.6298"]

    def test_same_point_different_precision_is_duplicate(self):
        store = LocationStore(MemoryStorage(), capacity=3)
        store.load()

        store.add(resolve(ByCoordinates(lat=41.87812, lon=-87.62981)))
        with pytest.raises(DuplicateKeyError):
            store.add(resolve(ByMapPick(lat=41.8781, lon=-87.6298, resolved_label="Chicago")))
