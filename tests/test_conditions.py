"""Tests for weather code mapping."""

import pytest

from weather_dashboard.conditions import (
    ICON_CATEGORIES,
    condition_icon,
    condition_label,
    degrees_to_cardinal,
    icon_emoji,
)


class TestConditionLabel:

    def test_known_code(self):
        assert condition_label(1101) == "Partly Cloudy"

    def test_unknown_code(self):
        assert condition_label(4242) == "Unknown"

    def test_missing_code(self):
        assert condition_label(None) == "Unknown"


class TestConditionIcon:

    @pytest.mark.parametrize(
        "code, wind, expected",
        [
            (1000, 5, "sun"),
            (1100, 5, "sun"),
            (1001, 5, "cloud"),
            (2000, 5, "cloud"),
            (4001, 5, "rain"),
            (4201, 45, "rain-wind"),
            (5100, 5, "snow"),
            (7000, 50, "snow"),
            (8000, 50, "storm"),
        ],
    )
    def test_categories(self, code, wind, expected):
        assert condition_icon(code, wind) == expected

    def test_strong_wind_turns_clear_sky_windy(self):
        assert condition_icon(1000, 41) == "wind"

    def test_strong_wind_turns_cloudy_sky_windy(self):
        assert condition_icon(1102, 41) == "wind"

    def test_threshold_is_exclusive(self):
        assert condition_icon(1001, 40) == "cloud"

    def test_missing_wind(self):
        assert condition_icon(1000, None) == "sun"

    def test_every_category_has_emoji(self):
        for category in ICON_CATEGORIES:
            assert icon_emoji(category)


class TestDegreesToCardinal:

    @pytest.mark.parametrize(
        "degrees, expected",
        [(0, "N"), (22.5, "NNE"), (90, "E"), (180, "S"), (290, "WNW"), (359, "N"), (720, "N")],
    )
    def test_points(self, degrees, expected):
        assert degrees_to_cardinal(degrees) == expected
