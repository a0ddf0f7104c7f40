"""Shared constants for the UHI explorer."""

from __future__ import annotations


DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 20.0  # seconds

# Initial map view over Maharashtra.
DEFAULT_CENTER = {"lat": 19.0, "lng": 76.0}
DEFAULT_ZOOM = 7
SEARCH_ZOOM = 12

DEBOUNCE_SECONDS = 0.5
BBOX_PADDING_DEG = 0.5
SELECTED_AREA_RADIUS_KM = 5.0
MARKER_RADIUS_M = 500

# Default area used by the prediction form and the strategy generator (Pune).
DEFAULT_AREA_POINT = {"lat": 18.5204, "lng": 73.8567}
DEFAULT_CITY = "Pune"

TIME_SERIES_HORIZONS = (1, 7, 30)
DEFAULT_HORIZON = 7

UHI_COLORS = {
    "red": "#dc2626",
    "orange": "#f97316",
    "yellow": "#facc15",
    "green": "#22c55e",
}
TEMPERATURE_COLORS = {
    "red": "#dc2626",
    "orange": "#f97316",
    "yellow": "#facc15",
    "blue": "#3b82f6",
}

CLUSTER_OPTIONS = [
    {
        "id": "cluster_aurangabad_jalna",
        "name": "Aurangabad - Jalna",
        "center": {"lat": 19.8762, "lng": 75.3433},
        "zoom": 10,
    },
    {
        "id": "cluster_kolhapur_ichalkaranji",
        "name": "Kolhapur - Ichalkaranji",
        "center": {"lat": 16.7050, "lng": 74.2433},
        "zoom": 10,
    },
    {
        "id": "cluster_mmr",
        "name": "MMR (Mumbai Metro Region)",
        "center": {"lat": 19.0760, "lng": 72.8777},
        "zoom": 10,
    },
    {
        "id": "cluster_nagpur_wardha",
        "name": "Nagpur - Wardha",
        "center": {"lat": 21.1458, "lng": 79.0882},
        "zoom": 10,
    },
    {
        "id": "cluster_nashik_ahmednagar",
        "name": "Nashik - Ahmednagar",
        "center": {"lat": 19.9975, "lng": 73.7898},
        "zoom": 10,
    },
    {
        "id": "cluster_pune_metropolitan",
        "name": "Pune (Metropolitan)",
        "center": {"lat": 18.5204, "lng": 73.8567},
        "zoom": 10,
    },
    {
        "id": "cluster_solapur_sangli",
        "name": "Solapur - Sangli",
        "center": {"lat": 17.6599, "lng": 75.9064},
        "zoom": 10,
    },
]


__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_CENTER",
    "DEFAULT_ZOOM",
    "SEARCH_ZOOM",
    "DEBOUNCE_SECONDS",
    "BBOX_PADDING_DEG",
    "SELECTED_AREA_RADIUS_KM",
    "MARKER_RADIUS_M",
    "DEFAULT_AREA_POINT",
    "DEFAULT_CITY",
    "TIME_SERIES_HORIZONS",
    "DEFAULT_HORIZON",
    "UHI_COLORS",
    "TEMPERATURE_COLORS",
    "CLUSTER_OPTIONS",
]
