"""Weather code lookup: condition labels, icon categories, compass points.

Codes follow the backend's numeric weather code scheme (0 and 1000-8000).
"""

from __future__ import annotations

# Wind speed above which clear/cloudy skies are shown as windy
WINDY_THRESHOLD = 40

_CONDITION_LABELS: dict[int, str] = {
    0: "Unknown",
    1000: "Clear, Sunny",
    1100: "Mostly Clear",
    1101: "Partly Cloudy",
    1102: "Mostly Cloudy",
    1001: "Cloudy",
    2000: "Fog",
    2100: "Light Fog",
    4000: "Drizzle",
    4001: "Rain",
    4200: "Light Rain",
    4201: "Heavy Rain",
    5000: "Snow",
    5001: "Flurries",
    5100: "Light Snow",
    5101: "Heavy Snow",
    6000: "Freezing Drizzle",
    6001: "Freezing Rain",
    6200: "Light Freezing Rain",
    6201: "Heavy Freezing Rain",
    7000: "Ice Pellets",
    7101: "Heavy Ice Pellets",
    7102: "Light Ice Pellets",
    8000: "Thunderstorm",
}

ICON_CATEGORIES = ("sun", "cloud", "rain", "rain-wind", "snow", "storm", "wind")

_ICON_EMOJI: dict[str, str] = {
    "sun": "☀️",
    "cloud": "☁️",
    "rain": "\U0001f327️",
    "rain-wind": "\U0001f327️\U0001f32c️",
    "snow": "\U0001f328️",
    "storm": "⛈️",
    "wind": "\U0001f32c️",
}

_DIRECTIONS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def condition_label(code: int | None) -> str:
    """Map a weather code to a human-readable label."""
    if code is None:
        return "Unknown"
    return _CONDITION_LABELS.get(int(code), "Unknown")


def condition_icon(code: int | None, wind_speed: float | None = None) -> str:
    """Map a weather code and wind speed to an icon category.

    Rain codes become "rain-wind" in strong wind; clear and cloudy
    skies become "wind".
    """
    code = int(code) if code is not None else 0
    windy = wind_speed is not None and wind_speed > WINDY_THRESHOLD

    if 4000 <= code < 5000:
        return "rain-wind" if windy else "rain"
    if 5000 <= code < 8000:
        return "snow"
    if code == 8000:
        return "storm"
    if windy:
        return "wind"
    if code in (1000, 1100):
        return "sun"
    return "cloud"


def icon_emoji(category: str) -> str:
    """Emoji used by the dashboard for an icon category."""
    return _ICON_EMOJI.get(category, _ICON_EMOJI["cloud"])


def degrees_to_cardinal(degrees: float) -> str:
    """Convert a wind direction in degrees to a 16-point compass label."""
    idx = round((degrees % 360) / 22.5) % 16
    return _DIRECTIONS[idx]
