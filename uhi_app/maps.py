"""Layer colour mapping and pydeck map assembly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
import pydeck as pdk

from .constants import MARKER_RADIUS_M, TEMPERATURE_COLORS, UHI_COLORS
from .models import LayerToggleState, SelectedArea, UHIDataPoint, Viewport

OSM_TILE_URL = "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png"


def uhi_color(value: float) -> str:
    """Bucket a UHI intensity (°C). Boundaries fall to the lower bucket."""

    if value > 12:
        return UHI_COLORS["red"]
    if value > 8:
        return UHI_COLORS["orange"]
    if value > 5:
        return UHI_COLORS["yellow"]
    return UHI_COLORS["green"]


def temperature_color(value: float) -> str:
    if value > 38:
        return TEMPERATURE_COLORS["red"]
    if value > 35:
        return TEMPERATURE_COLORS["orange"]
    if value > 30:
        return TEMPERATURE_COLORS["yellow"]
    return TEMPERATURE_COLORS["blue"]


def marker_color(point: UHIDataPoint, layers: LayerToggleState) -> Optional[str]:
    """Colour for ``point`` under the active layers, or None when it is hidden.

    The UHI layer takes priority over temperature when both are on.
    """

    if layers.uhi:
        return uhi_color(point.uhi_intensity)
    if layers.temperature:
        return temperature_color(point.temperature)
    return None


def hex_to_rgb(color: str) -> List[int]:
    value = color.lstrip("#")
    return [int(value[i : i + 2], 16) for i in (0, 2, 4)]


@dataclass(frozen=True)
class MapMarker:
    position: Tuple[float, float]  # (lat, lng)
    color: str
    radius: float
    payload: UHIDataPoint


def build_markers(
    points: Iterable[UHIDataPoint], layers: LayerToggleState, radius: float = MARKER_RADIUS_M
) -> List[MapMarker]:
    markers = []
    for point in points:
        color = marker_color(point, layers)
        if color is None:
            continue
        markers.append(MapMarker((point.latitude, point.longitude), color, radius, point))
    return markers


def markers_dataframe(markers: Sequence[MapMarker]) -> pd.DataFrame:
    columns = ["lat", "lon", "radius", "color_r", "color_g", "color_b", "uhi", "temperature"]
    if not markers:
        return pd.DataFrame(columns=columns)
    rows = []
    for marker in markers:
        r, g, b = hex_to_rgb(marker.color)
        rows.append(
            {
                "lat": marker.position[0],
                "lon": marker.position[1],
                "radius": marker.radius,
                "color_r": r,
                "color_g": g,
                "color_b": b,
                "uhi": marker.payload.uhi_intensity,
                "temperature": marker.payload.temperature,
            }
        )
    dataframe = pd.DataFrame(rows, columns=columns)
    dataframe["uhi_display"] = dataframe["uhi"].map(lambda v: f"{v:.2f}")
    dataframe["temperature_display"] = dataframe["temperature"].map(lambda v: f"{v:.1f}")
    return dataframe


def map_deck(
    viewport: Viewport,
    markers: Sequence[MapMarker],
    selected_area: Optional[SelectedArea] = None,
    basemap_tile_url: Optional[str] = OSM_TILE_URL,
) -> pdk.Deck:
    view_state = pdk.ViewState(
        latitude=viewport.center.lat,
        longitude=viewport.center.lng,
        zoom=viewport.zoom,
        pitch=0,
    )

    layers = []
    if basemap_tile_url:
        layers.append(
            pdk.Layer(
                "TileLayer",
                data=basemap_tile_url,
                id="base-map",
                min_zoom=0,
                max_zoom=19,
                tile_size=256,
                pickable=False,
            )
        )

    layers.append(
        pdk.Layer(
            "ScatterplotLayer",
            data=markers_dataframe(markers),
            id="uhi-points",
            get_position="[lon, lat]",
            get_radius="radius",
            get_fill_color="[color_r, color_g, color_b, 77]",
            get_line_color="[color_r, color_g, color_b, 255]",
            line_width_min_pixels=2,
            stroked=True,
            pickable=True,
        )
    )

    if selected_area is not None:
        area_df = pd.DataFrame(
            [
                {
                    "lat": selected_area.lat,
                    "lon": selected_area.lng,
                    "radius": selected_area.radius_km * 1000,
                    "uhi_display": "-",
                    "temperature_display": "-",
                }
            ]
        )
        layers.append(
            pdk.Layer(
                "ScatterplotLayer",
                data=area_df,
                id="selected-area",
                get_position="[lon, lat]",
                get_radius="radius",
                get_fill_color=[17, 24, 39, 30],
                get_line_color=[17, 24, 39, 220],
                line_width_min_pixels=1,
                stroked=True,
                pickable=False,
            )
        )

    tooltip_html = "<b>UHI:</b> {uhi_display} °C<br/><b>Temp:</b> {temperature_display} °C"
    tooltip_style = {"backgroundColor": "#0f172a", "color": "#f8fafc"}
    return pdk.Deck(
        map_style=None,
        initial_view_state=view_state,
        layers=layers,
        tooltip={"html": tooltip_html, "style": tooltip_style},
    )


def _first_float(mapping: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[float]:
    for key in keys:
        value = mapping.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def selection_to_point(selection: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float]]:
    """Extract the (lat, lon) of the clicked marker from a pydeck selection event."""

    if not selection:
        return None
    event = selection.get("selection")
    if not event:
        return None
    for obj in (event.get("objects") or {}).get("uhi-points", []):
        lat = _first_float(obj, ("lat", "latitude"))
        lon = _first_float(obj, ("lon", "lng", "longitude"))
        if lat is not None and lon is not None:
            return lat, lon
    return None


__all__ = [
    "uhi_color",
    "temperature_color",
    "marker_color",
    "hex_to_rgb",
    "MapMarker",
    "build_markers",
    "markers_dataframe",
    "map_deck",
    "selection_to_point",
]
