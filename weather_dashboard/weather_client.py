"""Weather backend client for current conditions and hourly forecasts.

Talks to the dashboard's weather API:
1. /api/weather?loc={key} -> current conditions for a saved location
2. /api/weather-forecast?location={lat},{lon} -> hourly intervals

Both calls are async so forecast fetches can be cancelled when the card
that asked for them goes away.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

import httpx

from weather_dashboard import config
from weather_dashboard.conditions import condition_icon, condition_label
from weather_dashboard.coordinates import coordinate_key

logger = logging.getLogger(__name__)

MAX_HOURLY_INTERVALS = 24


class WeatherAPIError(Exception):
    """Raised when the weather backend is unreachable or returns an error."""


class WeatherParseError(WeatherAPIError):
    """Raised when a weather response does not have the expected shape."""


@dataclass(frozen=True)
class CurrentConditions:
    """Current weather for a saved location.

    Attributes:
        temperature: Air temperature in Celsius.
        condition: Human-readable condition label (e.g., "Partly Cloudy").
        icon: Icon category (sun, cloud, rain, rain-wind, snow, storm, wind).
        weather_code: Raw backend weather code.
        feels_like: Apparent temperature in Celsius.
        wind_speed: Wind speed in m/s.
        wind_gust: Wind gust in m/s.
        wind_direction: Wind direction in degrees.
        humidity: Relative humidity percentage.
        visibility: Visibility in km.
        pressure_surface_level: Surface pressure in hPa.
        pressure_sea_level: Sea-level pressure in hPa.
        precipitation_probability: Chance of precipitation (0-100).
        cloud_cover: Cloud cover percentage.
        dew_point: Dew point in Celsius.
        altimeter_setting: Altimeter setting in hPa.
    """

    temperature: float
    condition: str
    icon: str
    weather_code: int = 0
    feels_like: float | None = None
    wind_speed: float | None = None
    wind_gust: float | None = None
    wind_direction: float | None = None
    humidity: float | None = None
    visibility: float | None = None
    pressure_surface_level: float | None = None
    pressure_sea_level: float | None = None
    precipitation_probability: float | None = None
    cloud_cover: float | None = None
    dew_point: float | None = None
    altimeter_setting: float | None = None


@dataclass(frozen=True)
class HourlyInterval:
    """One hour of forecast data.

    Attributes:
        start_time: Start of the hour (timezone-aware when the backend says so).
        temperature_c: Temperature in Celsius, if reported.
        precipitation_probability: Chance of precipitation, if reported.
        wind_speed: Wind speed, if reported.
    """

    start_time: datetime
    temperature_c: float | None = None
    precipitation_probability: float | None = None
    wind_speed: float | None = None


def _create_client() -> httpx.AsyncClient:
    """Create an httpx client configured for the weather backend."""
    return httpx.AsyncClient(
        base_url=config.get_weather_api_base_url(),
        headers={"Accept": "application/json"},
        timeout=config.WEATHER_REQUEST_TIMEOUT,
    )


async def _request_with_retry(
    client: httpx.AsyncClient,
    url: str,
    params: dict | None = None,
    max_retries: int = 1,
) -> dict | list:
    """Make a GET request with simple retry logic for server errors.

    Args:
        client: The httpx client to use.
        url: URL or path to request.
        params: Query string parameters.
        max_retries: Number of retries for 5xx errors.

    Returns:
        Parsed JSON response.

    Raises:
        WeatherAPIError: On HTTP errors, timeouts or non-200 responses.
        WeatherParseError: On invalid JSON.
    """
    last_error = None
    for attempt in range(max_retries + 1):
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException:
            raise WeatherAPIError("Request to the weather service timed out.")
        except httpx.HTTPError as exc:
            raise WeatherAPIError(f"HTTP error communicating with the weather service: {exc}")

        if response.status_code >= 500:
            last_error = WeatherAPIError(
                f"Weather service error (HTTP {response.status_code}). "
                "The service may be temporarily unavailable."
            )
            if attempt < max_retries:
                logger.info("Retrying %s after HTTP %s", url, response.status_code)
                await asyncio.sleep(config.WEATHER_RETRY_DELAY)
                continue
            raise last_error

        if response.status_code != 200:
            raise WeatherAPIError(
                f"Unexpected response from the weather service (HTTP {response.status_code})."
            )

        try:
            return response.json()
        except ValueError:
            raise WeatherParseError("Received invalid JSON from the weather service.")

    raise last_error  # pragma: no cover


def _optional_float(value) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_current(data: dict) -> CurrentConditions:
    """Parse the /api/weather payload into CurrentConditions."""
    try:
        values = data["data"]["values"]
        temperature = float(values["temperature"])
    except (KeyError, TypeError, ValueError):
        raise WeatherParseError("Unexpected current weather response format.")

    code = values.get("weatherCode")
    try:
        code = int(code) if code is not None else 0
    except (TypeError, ValueError):
        code = 0
    wind_speed = _optional_float(values.get("windSpeed"))
    surface = _optional_float(values.get("pressureSurfaceLevel"))
    feels_like = _optional_float(values.get("temperatureApparent"))
    sea_level = _optional_float(values.get("pressureSeaLevel"))

    return CurrentConditions(
        temperature=temperature,
        condition=condition_label(code),
        icon=condition_icon(code, wind_speed),
        weather_code=code,
        feels_like=feels_like if feels_like is not None else temperature,
        wind_speed=wind_speed,
        wind_gust=_optional_float(values.get("windGust")),
        wind_direction=_optional_float(values.get("windDirection")),
        humidity=_optional_float(values.get("humidity")),
        visibility=_optional_float(values.get("visibility")),
        pressure_surface_level=surface,
        pressure_sea_level=sea_level if sea_level is not None else surface,
        precipitation_probability=_optional_float(values.get("precipitationProbability")),
        cloud_cover=_optional_float(values.get("cloudCover")),
        dew_point=_optional_float(values.get("dewPoint")),
        altimeter_setting=_optional_float(values.get("altimeterSetting")),
    )


def _find_intervals(body) -> list | None:
    """Locate the interval list in any of the shapes the backend returns."""
    if not isinstance(body, dict):
        return None
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    for container in (data, body):
        timelines = container.get("timelines")
        if isinstance(timelines, list) and timelines and isinstance(timelines[0], dict):
            found = timelines[0].get("intervals")
            if isinstance(found, list) and found:
                return found
    for container in (data, body):
        found = container.get("intervals")
        if isinstance(found, list) and found:
            return found
    return None


def _parse_start_time(value) -> datetime:
    if not isinstance(value, str):
        raise WeatherParseError(f"Missing interval start time: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise WeatherParseError(f"Invalid interval start time: {value!r}")


def _parse_hourly(body) -> list[HourlyInterval]:
    """Parse hourly intervals, sorted by start time and capped at 24."""
    raw = _find_intervals(body)
    if not raw:
        raise WeatherParseError("No hourly data returned.")

    intervals = []
    for item in raw:
        if not isinstance(item, dict):
            raise WeatherParseError("Unexpected hourly interval format.")
        values = item.get("values") or {}
        if not isinstance(values, dict):
            raise WeatherParseError("Unexpected hourly interval format.")
        temp = values.get("temperature")
        if temp is None:
            temp = values.get("temperatureApparent")
        pop = values.get("precipitationProbability")
        if pop is None:
            pop = values.get("precipitation")
        intervals.append(
            HourlyInterval(
                start_time=_parse_start_time(item.get("startTime")),
                temperature_c=_optional_float(temp),
                precipitation_probability=_optional_float(pop),
                wind_speed=_optional_float(values.get("windSpeed")),
            )
        )

    try:
        intervals.sort(key=lambda iv: iv.start_time)
    except TypeError:
        raise WeatherParseError("Hourly intervals mix naive and timezone-aware times.")
    return intervals[:MAX_HOURLY_INTERVALS]


async def get_current_conditions(location_key: str) -> CurrentConditions:
    """Fetch current conditions for a saved location.

    Args:
        location_key: A place name or "<lat>,<lon>" location key.

    Returns:
        CurrentConditions with label and icon already mapped.

    Raises:
        WeatherAPIError: On communication errors.
        WeatherParseError: If the payload is malformed.
    """
    client = _create_client()
    try:
        data = await _request_with_retry(client, "/api/weather", params={"loc": location_key})
    finally:
        await client.aclose()
    return _parse_current(data)


async def get_hourly_forecast(lat: float, lon: float) -> list[HourlyInterval]:
    """Fetch up to 24 chronological hourly intervals for a coordinate pair.

    Raises:
        WeatherAPIError: On communication errors.
        WeatherParseError: If no intervals are returned or they are malformed.
    """
    client = _create_client()
    try:
        body = await _request_with_retry(
            client,
            "/api/weather-forecast",
            params={"location": coordinate_key(lat, lon)},
        )
    finally:
        await client.aclose()
    return _parse_hourly(body)
