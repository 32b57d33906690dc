"""Centralized configuration loaded from environment variables.

All settings are read from environment variables with sensible defaults.
Also checks Streamlit secrets (st.secrets) for the backend base URL so the
dashboard can be pointed at a deployed API from Streamlit Cloud.
"""

import logging
import os


def get_weather_api_base_url() -> str:
    """Get the weather backend base URL lazily so st.secrets is ready.

    Must be called at runtime (not import time) because Streamlit
    Cloud only makes st.secrets available after the app starts.
    """
    try:
        import streamlit as st
        if hasattr(st, "secrets") and "WEATHER_API_BASE_URL" in st.secrets:
            return str(st.secrets["WEATHER_API_BASE_URL"]).rstrip("/")
    except Exception:
        pass
    return WEATHER_API_BASE_URL


def _get_int(key: str, default: int) -> int:
    """Read an integer environment variable with a default."""
    return int(os.environ.get(key, str(default)))


def _get_float(key: str, default: float) -> float:
    """Read a float environment variable with a default."""
    return float(os.environ.get(key, str(default)))


# Weather backend (current conditions, hourly forecast, geocoding proxy, news)
WEATHER_API_BASE_URL: str = os.environ.get(
    "WEATHER_API_BASE_URL", "http://localhost:3000"
).rstrip("/")
WEATHER_REQUEST_TIMEOUT: int = _get_int("WEATHER_REQUEST_TIMEOUT", 15)
WEATHER_RETRY_DELAY: float = _get_float("WEATHER_RETRY_DELAY", 2.0)

# Reverse geocoding fallback (Nominatim)
NOMINATIM_USER_AGENT: str = os.environ.get(
    "NOMINATIM_USER_AGENT", "weather-dashboard-app"
)
NOMINATIM_TIMEOUT: int = _get_int("NOMINATIM_TIMEOUT", 10)

# Saved locations
LOCATIONS_STORAGE_PATH: str = os.environ.get(
    "LOCATIONS_STORAGE_PATH",
    os.path.join(os.path.expanduser("~"), ".weather-dashboard", "storage.json"),
)
MAX_LOCATIONS: int = _get_int("MAX_LOCATIONS", 3)

# Timing
FORECAST_CACHE_TTL_MS: int = _get_int("FORECAST_CACHE_TTL_MS", 120_000)
GEOLOCATION_TIMEOUT_MS: int = _get_int("GEOLOCATION_TIMEOUT_MS", 12_000)
NOTICE_SECONDS: int = _get_int("NOTICE_SECONDS", 5)

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once for the dashboard process."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
