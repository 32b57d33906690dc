"""Tests for coordinate rounding and key helpers."""

import pytest

from weather_dashboard.coordinates import (
    Coordinates,
    coordinate_key,
    format_number,
    is_valid_coordinate,
    parse_coordinate_key,
    round4,
)


class TestRound4:

    def test_half_rounds_up(self):
        assert round4(45.00005) == 45.0001

    def test_positive(self):
        assert round4(45.12345) == 45.1235

    def test_negative_half_rounds_away_from_zero(self):
        assert round4(-122.98765) == -122.9877

    def test_already_rounded(self):
        assert round4(41.8781) == 41.8781


class TestValidity:

    @pytest.mark.parametrize("lat, lon", [(90, 180), (-90, -180), (0, 0)])
    def test_bounds_inclusive(self, lat, lon):
        assert is_valid_coordinate(lat, lon)

    @pytest.mark.parametrize(
        "lat, lon", [(91, 0), (-90.1, 0), (0, 180.5), (0, -181), (float("nan"), 0)]
    )
    def test_out_of_range(self, lat, lon):
        assert not is_valid_coordinate(lat, lon)


class TestKeys:

    def test_integral_values_drop_decimal(self):
        assert coordinate_key(41.0, -87.0) == "41,-87"

    def test_decimal_values(self):
        assert coordinate_key(41.8781, -87.6298) == "41.8781,-87.6298"

    def test_negative_zero(self):
        assert format_number(-0.0) == "0"

    def test_small_values_are_not_exponential(self):
        assert format_number(0.00001) == "0.00001"

    def test_parse_round_trip(self):
        assert parse_coordinate_key("41.8781,-87.6298") == Coordinates(41.8781, -87.6298)

    def test_parse_place_name(self):
        assert parse_coordinate_key("Chicago") is None

    def test_parse_name_with_comma(self):
        assert parse_coordinate_key("Austin, TX") is None

    def test_parse_out_of_range(self):
        assert parse_coordinate_key("100,0") is None
