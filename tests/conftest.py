"""Shared test fixtures for weather backend response data."""

import pytest

from weather_dashboard import config

API_BASE = "https://weather.test"


@pytest.fixture(autouse=True)
def backend_config(monkeypatch):
    """Point every client at a fake backend and skip retry sleeps."""
    monkeypatch.setattr(config, "WEATHER_API_BASE_URL", API_BASE)
    monkeypatch.setattr(config, "WEATHER_RETRY_DELAY", 0)


class FakeClock:
    """Millisecond clock the tests move forward by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def current_response():
    """Sample /api/weather response for Chicago."""
    return {
        "data": {
            "time": "2026-02-22T16:00:00Z",
            "values": {
                "temperature": 3.5,
                "weatherCode": 1101,
                "windSpeed": 6.2,
                "windGust": 11.0,
                "windDirection": 290,
                "humidity": 71,
                "temperatureApparent": -0.8,
                "visibility": 16,
                "pressureSurfaceLevel": 993.4,
                "pressureSeaLevel": 1016.9,
                "precipitationProbability": 10,
                "cloudCover": 48,
                "dewPoint": -1.6,
                "altimeterSetting": 1017.12,
            },
        },
        "location": {"lat": 41.8781, "lon": -87.6298, "name": "Chicago"},
    }


def _interval(hour: int, temperature=None, **values):
    if temperature is not None:
        values["temperature"] = temperature
    return {"startTime": f"2026-02-22T{hour:02d}:00:00Z", "values": values}


@pytest.fixture()
def forecast_response():
    """Sample /api/weather-forecast response with three hourly intervals."""
    return {
        "data": {
            "timelines": [
                {
                    "timestep": "1h",
                    "intervals": [
                        _interval(10, 2.0, precipitationProbability=0, windSpeed=5.1),
                        _interval(11, 3.5, precipitationProbability=15, windSpeed=5.8),
                        _interval(12, 4.25, precipitationProbability=40, windSpeed=6.4),
                    ],
                }
            ]
        }
    }


@pytest.fixture()
def long_forecast_response():
    """Forecast response with 30 intervals delivered newest first."""
    intervals = [
        {
            "startTime": f"2026-02-{22 + hour // 24:02d}T{hour % 24:02d}:00:00Z",
            "values": {"temperature": float(hour)},
        }
        for hour in range(30)
    ]
    return {"timelines": [{"intervals": list(reversed(intervals))}]}
