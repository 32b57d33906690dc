"""Streamlit weather dashboard with saved location cards and news.

Run with: streamlit run weather_dashboard/app.py

Users save up to three locations (by name, coordinates, map pick or the
device position). Each location gets a card with current conditions and,
when expanded, a 24-hour forecast served from the shared forecast cache.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import streamlit as st

from weather_dashboard import config
from weather_dashboard.conditions import degrees_to_cardinal, icon_emoji
from weather_dashboard.coordinates import Coordinates, parse_coordinate_key
from weather_dashboard.forecast_cache import ERROR, LOADING, ForecastCache, ForecastState
from weather_dashboard.geocoding import GeocodingError, autocomplete
from weather_dashboard.geolocation import GeolocationAccessor, GeolocationError
from weather_dashboard.locations import (
    JsonFileStorage,
    Location,
    LocationError,
    LocationStore,
)
from weather_dashboard.map_picker import MapPicker
from weather_dashboard.news_client import NewsAPIError, get_news
from weather_dashboard.resolver import ByCoordinates, ByName, LocationInput, parse_coordinates, resolve
from weather_dashboard.temperature import celsius_to_fahrenheit, format_dual
from weather_dashboard.weather_client import (
    CurrentConditions,
    WeatherAPIError,
    get_current_conditions,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CSS injection
# ---------------------------------------------------------------------------

def _inject_css() -> None:
    """Inject card styling."""
    st.markdown("""
    <style>
    .block-container {
        padding-top: 1rem !important;
        max-width: 760px !important;
    }
    .glass-card {
        background: rgba(255, 255, 255, 0.06);
        border-radius: 16px;
        border: 1px solid rgba(128, 128, 128, 0.25);
        padding: 16px;
        margin-bottom: 14px;
    }
    .wx-temp {
        font-size: 2.6rem;
        font-weight: 300;
        line-height: 1.1;
    }
    .wx-condition {
        font-size: 1rem;
        opacity: 0.8;
    }
    .hourly-row {
        display: flex;
        overflow-x: auto;
        gap: 6px;
        padding: 4px 0;
    }
    .hourly-item {
        flex: 0 0 110px;
        text-align: center;
        padding: 6px 2px;
        border-radius: 10px;
        background: rgba(128, 128, 128, 0.1);
        font-size: 0.75rem;
    }
    .detail-label {
        font-size: 0.7rem;
        text-transform: uppercase;
        letter-spacing: 0.5px;
        opacity: 0.6;
    }
    .detail-value {
        font-size: 1rem;
        font-weight: 600;
    }
    </style>
    """, unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Shared objects
# ---------------------------------------------------------------------------

@st.cache_resource(show_spinner=False)
def _get_forecast_cache() -> ForecastCache:
    """One forecast cache for the whole server process."""
    return ForecastCache()


def _get_store() -> LocationStore:
    """The session's location store, loaded once from disk."""
    if "location_store" not in st.session_state:
        store = LocationStore(JsonFileStorage())
        store.load()
        st.session_state.location_store = store
    return st.session_state.location_store


class _SessionMap:
    """Map widget backed by session state and rendered with st.map."""

    def __init__(self) -> None:
        self.marker: Coordinates | None = None
        self._drag_callbacks = []

    def place_marker(self, pos: Coordinates) -> None:
        self.marker = pos

    def on_drag(self, callback) -> None:
        self._drag_callbacks.append(callback)

    def pan_to(self, pos: Coordinates) -> None:
        self.marker = pos

    def render(self) -> None:
        if self.marker is None:
            st.map({"lat": [20.0], "lon": [0.0]}, zoom=1)
        else:
            st.map({"lat": [self.marker.latitude], "lon": [self.marker.longitude]}, zoom=8)


def _get_map_picker() -> tuple[MapPicker, _SessionMap]:
    if "map_picker" not in st.session_state:
        widget = _SessionMap()
        st.session_state.map_widget = widget
        st.session_state.map_picker = MapPicker(widget)
    return st.session_state.map_picker, st.session_state.map_widget


def _notify(message: str, icon: str = "⚠️") -> None:
    """Show a transient, auto-dismissing notice."""
    st.toast(message, icon=icon, duration=config.NOTICE_SECONDS)


# ---------------------------------------------------------------------------
# Cached data-fetching helpers
# ---------------------------------------------------------------------------

@st.cache_data(ttl=300, show_spinner=False)
def _cached_current(location_key: str) -> CurrentConditions:
    """Fetch current conditions (cached for 5 minutes)."""
    return asyncio.run(get_current_conditions(location_key))


@st.cache_data(ttl=600, show_spinner=False)
def _cached_news(location: str) -> list:
    """Fetch news (cached for 10 minutes)."""
    return get_news(location or None)


# ---------------------------------------------------------------------------
# Adding locations
# ---------------------------------------------------------------------------

def _submit(location_input: LocationInput) -> None:
    """Resolve input and add it to the store, reporting problems as notices."""
    store = _get_store()
    try:
        candidate = resolve(location_input)
        store.add(candidate)
    except LocationError as exc:
        _notify(str(exc))
        return
    _notify(f"Added {candidate.display_name}", icon="✅")


def _use_my_location() -> None:
    accessor = GeolocationAccessor(st.session_state.get("position_source"))
    try:
        coords = asyncio.run(accessor.get_current_position())
    except GeolocationError as exc:
        _notify(str(exc))
        return
    _submit(ByCoordinates(lat=coords.latitude, lon=coords.longitude))


def _render_map_tab() -> None:
    picker, widget = _get_map_picker()

    query = st.text_input("Search places", key="map_query", placeholder="e.g. Lisbon")
    if query:
        predictions = asyncio.run(autocomplete(query))
        if predictions:
            choice = st.selectbox(
                "Suggestions",
                predictions,
                format_func=lambda p: p.description,
                key="map_choice",
            )
            if st.button("Go", key="map_go"):
                try:
                    asyncio.run(picker.select_prediction(choice.place_id, choice.description))
                except GeocodingError as exc:
                    _notify(str(exc))

    col1, col2, col3 = st.columns([2, 2, 1])
    lat = col1.number_input("Pin latitude", -90.0, 90.0, 0.0, format="%.4f", key="pin_lat")
    lon = col2.number_input("Pin longitude", -180.0, 180.0, 0.0, format="%.4f", key="pin_lon")
    if col3.button("Drop pin", key="pin_drop"):
        with st.spinner("Looking up place..."):
            asyncio.run(picker.pick(lat, lon))

    widget.render()
    if picker.marker is not None:
        label = picker.label or f"{picker.marker.latitude}, {picker.marker.longitude}"
        st.caption(f"\U0001f4cd {label}")
        if st.button("Add picked location", key="map_add", use_container_width=True):
            try:
                _submit(picker.to_input())
            except LocationError as exc:
                _notify(str(exc))


def _render_add_location() -> None:
    """Render the add-location tabs."""
    by_name, by_coords, by_map = st.tabs(["By Name", "By Coordinates", "Pick on Map"])

    with by_name:
        with st.form("add_by_name", clear_on_submit=True):
            name = st.text_input("Location Name", placeholder="e.g. New York City")
            if st.form_submit_button("Add", use_container_width=True):
                _submit(ByName(name=name))

    with by_coords:
        with st.form("add_by_coords", clear_on_submit=True):
            col1, col2 = st.columns(2)
            lat_text = col1.text_input("Latitude", placeholder="e.g. 40.7128")
            lon_text = col2.text_input("Longitude", placeholder="e.g. -74.0060")
            if st.form_submit_button("Add", use_container_width=True):
                try:
                    _submit(parse_coordinates(lat_text, lon_text))
                except LocationError as exc:
                    _notify(str(exc))

    with by_map:
        _render_map_tab()

    if st.button("\U0001f4cd Use my location", use_container_width=True):
        _use_my_location()


# ---------------------------------------------------------------------------
# Render: location card
# ---------------------------------------------------------------------------

def _render_detail_cards(weather: CurrentConditions) -> None:
    """Render the detail values in a 2-column grid."""
    cards: list[tuple[str, str]] = []

    if weather.feels_like is not None:
        cards.append(("Feels Like", f"{weather.feels_like:.1f}°C"))
    if weather.dew_point is not None:
        cards.append(("Dew Point", f"{weather.dew_point:.1f}°C"))
    if weather.humidity is not None:
        cards.append(("Humidity", f"{weather.humidity:.0f}%"))
    if weather.precipitation_probability is not None:
        cards.append(("Precip. Prob.", f"{weather.precipitation_probability:.0f}%"))
    if weather.wind_speed is not None or weather.wind_gust is not None:
        wind = f"{weather.wind_speed:.1f} m/s" if weather.wind_speed is not None else "-"
        if weather.wind_gust is not None:
            wind += f" · Gust {weather.wind_gust:.1f} m/s"
        cards.append(("Wind", wind))
    if weather.wind_direction is not None:
        cards.append((
            "Wind Dir.",
            f"{degrees_to_cardinal(weather.wind_direction)} ({weather.wind_direction:.0f}°)",
        ))
    if weather.visibility is not None:
        cards.append(("Visibility", f"{weather.visibility:.1f} km"))
    if weather.cloud_cover is not None:
        cards.append(("Cloud Cover", f"{weather.cloud_cover:.0f}%"))
    if weather.pressure_sea_level is not None:
        cards.append(("Pressure", f"{weather.pressure_sea_level:.0f} hPa"))
    if weather.altimeter_setting is not None:
        cards.append(("Altimeter", f"{weather.altimeter_setting:.2f} hPa"))

    for i in range(0, len(cards), 2):
        cols = st.columns(2)
        for j, col in enumerate(cols):
            idx = i + j
            if idx < len(cards):
                label, value = cards[idx]
                col.markdown(
                    f'<div class="detail-label">{label}</div>'
                    f'<div class="detail-value">{value}</div>',
                    unsafe_allow_html=True,
                )


def _hour_label(start_time: datetime) -> str:
    """Hour label like "9AM", using only portable strftime directives."""
    return f"{start_time:%I%p}".lstrip("0")


def _hourly_html(state: ForecastState) -> str:
    items = ""
    for iv in state.entry.intervals:
        temp = "—" if iv.temperature_c is None else format_dual(iv.temperature_c)
        pop = (
            f"<div>{iv.precipitation_probability:.0f}% \U0001f4a7</div>"
            if iv.precipitation_probability else ""
        )
        items += (
            f'<div class="hourly-item">'
            f'<div>{_hour_label(iv.start_time)}</div>'
            f'<div><strong>{temp}</strong></div>'
            f'{pop}'
            f'</div>'
        )
    return f'<div class="hourly-row">{items}</div>'


async def _stream_hourly(cache: ForecastCache, lat: float, lon: float, placeholder) -> None:
    """Render each forecast state into the placeholder as it arrives."""
    async for state in cache.get(lat, lon):
        if state.status == LOADING:
            placeholder.caption("Loading hourly forecast…")
        elif state.status == ERROR:
            placeholder.error(f"Error loading forecast: {state.error}")
        else:
            placeholder.markdown(_hourly_html(state), unsafe_allow_html=True)


def _render_hourly(location: Location) -> None:
    """Show the 24-hour row once the user switches it on for this card."""
    coords = parse_coordinate_key(location.key)
    if coords is None:
        return
    if not st.toggle("Show hourly forecast", key=f"hourly_{location.key}"):
        return
    st.caption("Hourly (24h)")
    placeholder = st.empty()
    try:
        asyncio.run(
            _stream_hourly(_get_forecast_cache(), coords.latitude, coords.longitude, placeholder)
        )
    except Exception:
        logger.exception("Hourly forecast for %r failed", location.key)
        placeholder.warning("Hourly forecast unavailable.")


def _render_card(location: Location) -> None:
    """Render one location card. Failures stay inside the card."""
    store = _get_store()
    key = location.key

    with st.container(border=True):
        head, edit, delete = st.columns([6, 1, 1])
        head.markdown(f"#### Weather in {location.display_name}")
        if edit.button("✏️", key=f"edit_{key}", help="Rename"):
            st.session_state[f"editing_{key}"] = True
        if delete.button("\U0001f5d1️", key=f"rm_{key}", help="Delete"):
            store.remove(key)
            st.rerun()

        if st.session_state.get(f"editing_{key}"):
            new_name = st.text_input("Custom name", value=location.display_name, key=f"name_{key}")
            save, cancel = st.columns(2)
            if save.button("Save", key=f"save_{key}", use_container_width=True):
                store.rename(key, new_name)
                st.session_state[f"editing_{key}"] = False
                st.rerun()
            if cancel.button("Cancel", key=f"cancel_{key}", use_container_width=True):
                st.session_state[f"editing_{key}"] = False
                st.rerun()

        try:
            with st.spinner("Loading..."):
                weather = _cached_current(key)
        except WeatherAPIError as exc:
            logger.warning("Current weather for %r unavailable: %s", key, exc)
            st.error("Failed to fetch weather data.")
            return

        st.markdown(
            f'<div class="wx-temp">{icon_emoji(weather.icon)} {weather.temperature:.1f}°C</div>'
            f'<div>{celsius_to_fahrenheit(weather.temperature):.1f}°F</div>'
            f'<div class="wx-condition">{weather.condition}</div>',
            unsafe_allow_html=True,
        )

        with st.expander("Show Details"):
            _render_detail_cards(weather)
            _render_hourly(location)


# ---------------------------------------------------------------------------
# Render: news
# ---------------------------------------------------------------------------

def _render_news() -> None:
    loc = st.text_input("Enter location (optional)", key="news_loc")
    if st.button("Refresh News", key="news_refresh"):
        _cached_news.clear()

    try:
        with st.spinner("Loading news…"):
            articles = _cached_news(loc.strip())
    except NewsAPIError as exc:
        st.error(str(exc))
        return

    if not articles:
        st.caption("No articles found.")
        return

    for article in articles:
        meta = " · ".join(p for p in (article.source, article.pub_date) if p)
        st.markdown(
            f'<div class="glass-card">'
            f'<a href="{article.link}" target="_blank"><strong>{article.title}</strong></a>'
            f'<div style="font-size:0.75rem;opacity:0.6">{meta}</div>'
            f'<div>{article.description or ""}</div>'
            f'</div>',
            unsafe_allow_html=True,
        )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    """Main Streamlit application entry point."""
    config.configure_logging()
    st.set_page_config(
        page_title="So... how's the weather?",
        page_icon="\U0001f326️",
        layout="centered",
    )
    _inject_css()

    st.title("So... how's the weather?")
    weather_tab, news_tab = st.tabs(["Weather", "News"])

    with weather_tab:
        _render_add_location()
        locations = _get_store().locations
        if not locations:
            st.caption(f"Save up to {_get_store().capacity} favorite locations.")
        for location in locations:
            _render_card(location)

    with news_tab:
        _render_news()


if __name__ == "__main__":
    main()
