"""Domain models and response normalization."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .constants import BBOX_PADDING_DEG, CLUSTER_OPTIONS, SELECTED_AREA_RADIUS_KM


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _coerce(value: Any, fallback: float = 0.0) -> float:
    number = _optional_float(value)
    return fallback if number is None else number


def _first_present(mapping: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    """Return the first value that is not None, mirroring a ``??`` chain."""

    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def format_metric(value: Optional[float], digits: int = 2, suffix: str = "") -> str:
    """Format a nullable metric; missing values render as ``N/A``."""

    if value is None:
        return "N/A"
    return f"{value:.{digits}f}{suffix}"


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LatLng":
        lng = _first_present(payload, ("lng", "lon", "longitude"))
        lat = _first_present(payload, ("lat", "latitude"))
        return cls(lat=_coerce(lat), lng=_coerce(lng))

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    @classmethod
    def around(cls, center: LatLng, padding: float = BBOX_PADDING_DEG) -> "BoundingBox":
        """Fixed-padding box around ``center``; zoom level is not considered."""

        return cls(
            min_lat=center.lat - padding,
            min_lng=center.lng - padding,
            max_lat=center.lat + padding,
            max_lng=center.lng + padding,
        )

    def as_list(self) -> list[float]:
        return [self.min_lat, self.min_lng, self.max_lat, self.max_lng]

    def to_param(self) -> str:
        return ",".join(str(v) for v in self.as_list())


@dataclass(frozen=True)
class Viewport:
    center: LatLng
    zoom: int

    def bbox(self, padding: float = BBOX_PADDING_DEG) -> BoundingBox:
        return BoundingBox.around(self.center, padding)


@dataclass(frozen=True)
class LayerToggleState:
    temperature: bool = True
    humidity: bool = True
    uhi: bool = True
    vegetation: bool = True

    def toggled(self, name: str) -> "LayerToggleState":
        if name not in ("temperature", "humidity", "uhi", "vegetation"):
            raise KeyError(name)
        return replace(self, **{name: not getattr(self, name)})


@dataclass(frozen=True)
class GeocodeResult:
    display_name: str
    latitude: float
    longitude: float
    boundingbox: Tuple[float, ...] = ()
    type: str = ""
    importance: float = 0.0

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GeocodeResult":
        box = payload.get("boundingbox") or []
        return cls(
            display_name=str(payload.get("display_name", "")),
            latitude=_coerce(payload.get("latitude")),
            longitude=_coerce(payload.get("longitude")),
            boundingbox=tuple(_coerce(v) for v in box),
            type=str(payload.get("type", "")),
            importance=_coerce(payload.get("importance")),
        )

    @property
    def point(self) -> LatLng:
        return LatLng(self.latitude, self.longitude)


@dataclass(frozen=True)
class UHIDataPoint:
    latitude: float
    longitude: float
    temperature: float
    humidity: float
    uhi_intensity: float
    health_risk: float
    ndvi: float
    builtup_percent: float
    green_cover: float
    land_cover: str = ""
    cluster: str = ""
    timestamp: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UHIDataPoint":
        return cls(
            latitude=_coerce(payload.get("latitude")),
            longitude=_coerce(payload.get("longitude")),
            temperature=_coerce(payload.get("temperature")),
            humidity=_coerce(payload.get("humidity")),
            uhi_intensity=_coerce(payload.get("uhi_intensity")),
            health_risk=_coerce(payload.get("health_risk")),
            ndvi=_coerce(payload.get("ndvi")),
            builtup_percent=_coerce(payload.get("builtup_percent")),
            green_cover=_coerce(payload.get("green_cover")),
            land_cover=str(payload.get("land_cover") or ""),
            cluster=str(payload.get("cluster") or ""),
            timestamp=str(payload.get("timestamp") or ""),
        )

    def details(self) -> Dict[str, str]:
        """Display strings for the point details panel."""

        return {
            "Temperature": f"{self.temperature:.1f}°C",
            "UHI Intensity": f"{self.uhi_intensity:.2f}°C",
            "Humidity": f"{self.humidity:.1f}%",
            "Health Risk": f"{self.health_risk:.1f}/10",
            "NDVI": f"{self.ndvi:.3f}",
            "Built-up %": f"{self.builtup_percent:.1f}%",
            "Land Cover": self.land_cover,
            "Green Cover": f"{self.green_cover:.1f}%",
        }


@dataclass(frozen=True)
class Prediction:
    date: str
    temperature: float
    heatwave_probability: float
    uhi_intensity: Optional[float] = None
    health_risk_index: Optional[float] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Prediction":
        return cls(
            date=str(payload.get("date", "")),
            temperature=_coerce(payload.get("temperature")),
            heatwave_probability=_coerce(payload.get("heatwave_probability")),
            uhi_intensity=_optional_float(payload.get("uhi_intensity")),
            health_risk_index=_optional_float(payload.get("health_risk_index")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PredictionRow:
    cluster: str
    lat: Optional[float]
    lng: Optional[float]
    uhi: Optional[float] = None
    health_risk: Optional[float] = None

    @property
    def uhi_display(self) -> str:
        return format_metric(self.uhi)

    @property
    def health_risk_display(self) -> str:
        return format_metric(self.health_risk)


# Field-name precedence for rows coming back from the prediction endpoints.
LAT_KEYS = ("latitude", "lat")
LNG_KEYS = ("longitude", "lng", "lon")
UHI_KEYS = ("uhi", "UHI_Intensity_C", "uhi_intensity")
HEALTH_RISK_KEYS = ("health_risk", "Health_Risk_Index", "health_risk_index")


def prediction_row_from_mapping(
    payload: Mapping[str, Any], default_cluster: str = ""
) -> PredictionRow:
    """Normalize any prediction record into a :class:`PredictionRow`.

    Each field takes the first non-null value along its key list:
    latitude → lat; longitude → lng → lon; uhi → UHI_Intensity_C →
    uhi_intensity; health_risk → Health_Risk_Index → health_risk_index.
    """

    cluster = payload.get("cluster")
    return PredictionRow(
        cluster=str(cluster) if cluster is not None else default_cluster,
        lat=_optional_float(_first_present(payload, LAT_KEYS)),
        lng=_optional_float(_first_present(payload, LNG_KEYS)),
        uhi=_optional_float(_first_present(payload, UHI_KEYS)),
        health_risk=_optional_float(_first_present(payload, HEALTH_RISK_KEYS)),
    )


def prediction_row_from_single(
    payload: Mapping[str, Any], cluster: str, lat: float, lng: float
) -> PredictionRow:
    """Normalize a ``/predict/single`` response for the requested point."""

    out = payload.get("predictions")
    if not isinstance(out, Mapping):
        out = {}
    return PredictionRow(
        cluster=str(payload.get("cluster") or cluster),
        lat=lat,
        lng=lng,
        uhi=_optional_float(out.get("UHI_Intensity_C")),
        health_risk=_optional_float(out.get("Health_Risk_Index")),
    )


@dataclass(frozen=True)
class MitigationStrategy:
    title: str
    category: str
    priority: str
    explanation: str
    impact: Optional[str] = None
    cost: Optional[str] = None
    feasibility: Optional[str] = None
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MitigationStrategy":
        priority = str(payload.get("priority") or "medium").lower()
        if priority not in ("high", "medium", "low"):
            priority = "medium"
        return cls(
            title=str(payload.get("title", "")),
            category=str(payload.get("category", "")),
            priority=priority,
            explanation=str(payload.get("explanation", "")),
            impact=payload.get("impact"),
            cost=payload.get("cost"),
            feasibility=payload.get("feasibility"),
            tags=tuple(str(tag) for tag in payload.get("tags") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {key: value for key, value in asdict(self).items() if value not in (None, ())}
        if self.tags:
            data["tags"] = list(self.tags)
        return data


@dataclass(frozen=True)
class Cluster:
    id: str
    name: str
    center: LatLng
    zoom: int

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Cluster":
        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            center=LatLng.from_dict(payload.get("center") or {}),
            zoom=int(_coerce(payload.get("zoom"), 10)),
        )

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.center, self.zoom)


DEFAULT_CLUSTERS: Tuple[Cluster, ...] = tuple(Cluster.from_dict(c) for c in CLUSTER_OPTIONS)


@dataclass(frozen=True)
class SelectedArea:
    lat: float
    lng: float
    radius_km: float = SELECTED_AREA_RADIUS_KM


@dataclass(frozen=True)
class HealthStatus:
    status: str
    models_loaded: bool
    clusters: Tuple[str, ...] = ()
    timestamp: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HealthStatus":
        return cls(
            status=str(payload.get("status", "")),
            models_loaded=bool(payload.get("models_loaded", False)),
            clusters=tuple(str(c) for c in payload.get("clusters") or ()),
            timestamp=str(payload.get("timestamp", "")),
        )


@dataclass(frozen=True)
class AppConfig:
    default_city: str
    default_lat: float
    default_lon: float
    default_zoom: int
    server_pdf_enabled: bool
    clusters: Tuple[Cluster, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AppConfig":
        return cls(
            default_city=str(payload.get("default_city", "")),
            default_lat=_coerce(payload.get("default_lat")),
            default_lon=_coerce(payload.get("default_lon")),
            default_zoom=int(_coerce(payload.get("default_zoom"), 7)),
            server_pdf_enabled=bool(payload.get("server_pdf_enabled", False)),
            clusters=tuple(Cluster.from_dict(c) for c in payload.get("clusters") or ()),
        )

    @property
    def default_viewport(self) -> Viewport:
        return Viewport(LatLng(self.default_lat, self.default_lon), self.default_zoom)

    def cluster_list(self) -> Tuple[Cluster, ...]:
        return self.clusters or DEFAULT_CLUSTERS


@dataclass(frozen=True)
class LoginResult:
    token: str
    email: str
    expires_in: int

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LoginResult":
        user = payload.get("user") or {}
        return cls(
            token=str(payload.get("token", "")),
            email=str(user.get("email", "")),
            expires_in=int(_coerce(payload.get("expires_in"))),
        )


@dataclass(frozen=True)
class ReportFallback:
    """Returned when the server cannot render PDFs (HTTP 501)."""

    error: str
    reason: str
    fallback: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ReportFallback":
        return cls(
            error=str(payload.get("error", "")),
            reason=str(payload.get("reason", "")),
            fallback=str(payload.get("fallback", "")),
        )


__all__ = [
    "format_metric",
    "LatLng",
    "BoundingBox",
    "Viewport",
    "LayerToggleState",
    "GeocodeResult",
    "UHIDataPoint",
    "Prediction",
    "PredictionRow",
    "prediction_row_from_mapping",
    "prediction_row_from_single",
    "MitigationStrategy",
    "Cluster",
    "DEFAULT_CLUSTERS",
    "SelectedArea",
    "HealthStatus",
    "AppConfig",
    "LoginResult",
    "ReportFallback",
]
