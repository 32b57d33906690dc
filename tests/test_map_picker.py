"""Tests for the map point picker."""

import asyncio

import pytest

from weather_dashboard.coordinates import Coordinates
from weather_dashboard.geocoding import GeocodingError, GeoLocation
from weather_dashboard.locations import InvalidInputError
from weather_dashboard.map_picker import MapPicker
from weather_dashboard.resolver import ByMapPick, resolve


class FakeWidget:

    def __init__(self):
        self.markers = []
        self.pans = []
        self.drag_callback = None

    def place_marker(self, pos):
        self.markers.append(pos)

    def on_drag(self, callback):
        self.drag_callback = callback

    def pan_to(self, pos):
        self.pans.append(pos)


class FakeReverse:
    """Reverse geocoder whose answers the test releases one by one."""

    def __init__(self, labels=None, gated=False):
        self.labels = labels or {}
        self.gated = gated
        self.gates = []
        self.calls = []

    async def __call__(self, lat, lng):
        self.calls.append((lat, lng))
        if self.gated:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        return self.labels.get((lat, lng))


def _run(coro):
    return asyncio.run(coro)


class TestPick:

    def test_places_rounded_marker_and_label(self):
        widget = FakeWidget()
        reverse = FakeReverse({(38.7223, -9.1393): "Lisbon, Portugal"})
        picker = MapPicker(widget, reverse=reverse)

        label = _run(picker.pick(38.722252, -9.139337))

        assert label == "Lisbon, Portugal"
        assert picker.marker == Coordinates(38.7223, -9.1393)
        assert picker.label == "Lisbon, Portugal"
        assert widget.markers == [Coordinates(38.7223, -9.1393)]
        assert reverse.calls == [(38.7223, -9.1393)]

    def test_unknown_label_is_none(self):
        picker = MapPicker(FakeWidget(), reverse=FakeReverse())

        assert _run(picker.pick(0, 0)) is None
        assert picker.label is None

    def test_newer_pick_cancels_older_lookup(self):
        reverse = FakeReverse({(1, 1): "First", (2, 2): "Second"}, gated=True)
        picker = MapPicker(FakeWidget(), reverse=reverse)

        async def scenario():
            older = asyncio.ensure_future(picker.pick(1, 1))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            fetching = picker.is_fetching
            newer = asyncio.ensure_future(picker.pick(2, 2))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            for gate in reverse.gates:
                gate.set()
            return fetching, await older, await newer

        fetching, older, newer = _run(scenario())

        assert fetching is True
        assert older is None
        assert newer == "Second"
        assert picker.label == "Second"
        assert picker.marker == Coordinates(2, 2)
        assert not picker.is_fetching

    def test_drag_outside_event_loop_moves_marker(self):
        widget = FakeWidget()
        picker = MapPicker(widget, reverse=FakeReverse())

        widget.drag_callback(Coordinates(10.00005, 20.0))

        assert picker.marker == Coordinates(10.0001, 20.0)
        assert picker.label is None

    def test_drag_inside_event_loop_looks_up_label(self):
        widget = FakeWidget()
        picker = MapPicker(widget, reverse=FakeReverse({(10.0, 20.0): "Somewhere"}))

        async def scenario():
            widget.drag_callback(Coordinates(10.0, 20.0))
            for _ in range(5):
                await asyncio.sleep(0)

        _run(scenario())

        assert picker.label == "Somewhere"


class TestSelectPrediction:

    def test_pans_and_uses_description(self):
        widget = FakeWidget()

        async def geocode(place_id):
            return GeoLocation(latitude=38.7223, longitude=-9.1393, display_name="Lisboa")

        picker = MapPicker(widget, reverse=FakeReverse(), geocode=geocode)

        _run(picker.select_prediction("abc", "Lisbon, Portugal"))

        assert widget.pans == [Coordinates(38.7223, -9.1393)]
        assert picker.label == "Lisbon, Portugal"

    def test_falls_back_to_display_name(self):
        async def geocode(place_id):
            return GeoLocation(latitude=38.7223, longitude=-9.1393, display_name="Lisboa")

        picker = MapPicker(FakeWidget(), reverse=FakeReverse(), geocode=geocode)

        _run(picker.select_prediction("abc"))

        assert picker.label == "Lisboa"

    def test_geocoding_error_propagates(self):
        async def geocode(place_id):
            raise GeocodingError("Failed to fetch place details.")

        widget = FakeWidget()
        picker = MapPicker(widget, reverse=FakeReverse(), geocode=geocode)

        with pytest.raises(GeocodingError):
            _run(picker.select_prediction("abc"))
        assert picker.marker is None
        assert widget.pans == []


class TestToInput:

    def test_requires_marker(self):
        picker = MapPicker(FakeWidget(), reverse=FakeReverse())

        with pytest.raises(InvalidInputError):
            picker.to_input()

    def test_builds_map_pick(self):
        picker = MapPicker(
            FakeWidget(), reverse=FakeReverse({(38.7223, -9.1393): "Lisbon, Portugal"})
        )
        _run(picker.pick(38.7223, -9.1393))

        result = picker.to_input()

        assert result == ByMapPick(lat=38.7223, lon=-9.1393, resolved_label="Lisbon, Portugal")
        assert resolve(result).key == "38.7223,-9.1393"
