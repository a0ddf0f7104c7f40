import pytest

from conftest import make_point
from uhi_app.constants import TEMPERATURE_COLORS, UHI_COLORS
from uhi_app.maps import (
    build_markers,
    hex_to_rgb,
    map_deck,
    marker_color,
    markers_dataframe,
    selection_to_point,
    temperature_color,
    uhi_color,
)
from uhi_app.models import LatLng, LayerToggleState, SelectedArea, Viewport


class TestColorThresholds:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (13.0, "red"),
            (12.0, "orange"),
            (8.5, "orange"),
            (8.0, "yellow"),
            (5.1, "yellow"),
            (5.0, "green"),
            (-1.0, "green"),
        ],
    )
    def test_uhi(self, value, expected):
        assert uhi_color(value) == UHI_COLORS[expected]

    @pytest.mark.parametrize(
        "value, expected",
        [
            (39.0, "red"),
            (38.0, "orange"),
            (35.0, "yellow"),
            (30.5, "yellow"),
            (30.0, "blue"),
            (12.0, "blue"),
        ],
    )
    def test_temperature(self, value, expected):
        assert temperature_color(value) == TEMPERATURE_COLORS[expected]

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#dc2626") == [220, 38, 38]


class TestMarkers:
    def test_uhi_layer_wins(self):
        point = make_point(uhi_intensity=9.0, temperature=40.0)
        assert marker_color(point, LayerToggleState()) == UHI_COLORS["orange"]

    def test_temperature_when_uhi_hidden(self):
        point = make_point(uhi_intensity=9.0, temperature=40.0)
        layers = LayerToggleState(uhi=False)
        assert marker_color(point, layers) == TEMPERATURE_COLORS["red"]

    def test_hidden_when_both_layers_off(self):
        layers = LayerToggleState(uhi=False, temperature=False)
        points = [make_point(), make_point(latitude=18.6)]

        assert marker_color(points[0], layers) is None
        assert build_markers(points, layers) == []

    def test_build_markers(self):
        point = make_point(latitude=18.5, longitude=73.9, uhi_intensity=13.0)

        (marker,) = build_markers([point], LayerToggleState(), radius=250)

        assert marker.position == (18.5, 73.9)
        assert marker.color == UHI_COLORS["red"]
        assert marker.radius == 250
        assert marker.payload is point

    def test_dataframe(self):
        markers = build_markers([make_point(uhi_intensity=6.5, temperature=34.2)], LayerToggleState())

        frame = markers_dataframe(markers)

        row = frame.iloc[0]
        assert (row["color_r"], row["color_g"], row["color_b"]) == (250, 204, 21)
        assert row["uhi_display"] == "6.50"
        assert row["temperature_display"] == "34.2"

    def test_empty_dataframe(self):
        frame = markers_dataframe([])
        assert frame.empty
        assert "lat" in frame.columns


class TestDeck:
    def test_layers(self):
        viewport = Viewport(LatLng(18.52, 73.85), 12)
        markers = build_markers([make_point()], LayerToggleState())

        deck = map_deck(viewport, markers, SelectedArea(18.52, 73.85))

        assert [layer.id for layer in deck.layers] == ["base-map", "uhi-points", "selected-area"]
        assert deck.initial_view_state.zoom == 12

    def test_without_basemap_or_area(self):
        deck = map_deck(Viewport(LatLng(19.0, 76.0), 7), [], basemap_tile_url=None)
        assert [layer.id for layer in deck.layers] == ["uhi-points"]


class TestSelection:
    def test_extracts_clicked_point(self):
        selection = {"selection": {"objects": {"uhi-points": [{"lat": "18.5", "lon": 73.9}]}}}
        assert selection_to_point(selection) == (18.5, 73.9)

    @pytest.mark.parametrize(
        "selection",
        [
            None,
            {},
            {"selection": {}},
            {"selection": {"objects": {"selected-area": [{"lat": 1, "lon": 2}]}}},
            {"selection": {"objects": {"uhi-points": [{"lat": "n/a", "lon": 2}]}}},
        ],
    )
    def test_nothing_selected(self, selection):
        assert selection_to_point(selection) is None
