"""HTTP client for the UHI analytics backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar, Union

import requests

from .config import Settings
from .constants import DEFAULT_API_BASE_URL, DEFAULT_REQUEST_TIMEOUT
from .errors import RemoteError, ValidationError
from .models import (
    AppConfig,
    BoundingBox,
    GeocodeResult,
    HealthStatus,
    LoginResult,
    MitigationStrategy,
    Prediction,
    ReportFallback,
    UHIDataPoint,
)

logger = logging.getLogger(__name__)

NOT_IMPLEMENTED = 501

_DEFAULT_MESSAGES = {
    "geocode": "Geocoding failed",
    "get_data": "Failed to fetch data",
    "predict_time_series": "Prediction failed",
    "predict_batch": "Upload failed",
    "predict_single": "Prediction failed",
    "get_mitigation_strategies": "Failed to get strategies",
    "get_ai_strategies": "Failed to get AI strategies",
    "generate_report": "Report generation failed",
    "health_check": "Health check failed",
    "get_config": "Config fetch failed",
    "login": "Login failed",
}


@dataclass(frozen=True)
class DataResponse:
    points: Tuple[UHIDataPoint, ...]
    bbox: Tuple[float, ...]
    count: int


@dataclass(frozen=True)
class TimeSeriesResponse:
    predictions: Tuple[Prediction, ...]
    horizon_days: int
    cluster: str
    area: Dict[str, Any]


@dataclass(frozen=True)
class StrategiesResponse:
    strategies: Tuple[MitigationStrategy, ...]
    area: Dict[str, Any]
    characteristics: Dict[str, Any]


def _without_none(payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def _validate_area(area: Mapping[str, Any]) -> None:
    if not area or not (area.get("bbox") or area.get("center")):
        raise ValidationError("Area needs either a bounding box or a center point")


T = TypeVar("T")


def _normalize(operation: str, build: Callable[..., T], *args: Any) -> T:
    """Run a response builder; a body of the wrong shape becomes a parse error."""

    try:
        return build(*args)
    except (AttributeError, TypeError, ValueError) as exc:
        logger.warning("Unexpected %s response shape: %s", operation, exc)
        raise RemoteError(
            operation, "parse", f"{_DEFAULT_MESSAGES.get(operation, operation)}: unexpected response"
        ) from exc


def _geocode_results(payload: Mapping[str, Any]) -> List[GeocodeResult]:
    return [GeocodeResult.from_dict(item) for item in payload.get("results") or []]


def _data_response(payload: Mapping[str, Any]) -> DataResponse:
    points = tuple(UHIDataPoint.from_dict(item) for item in payload.get("data") or [])
    return DataResponse(
        points=points,
        bbox=tuple(float(v) for v in payload.get("bbox") or ()),
        count=int(payload.get("count", len(points))),
    )


def _time_series_response(
    payload: Mapping[str, Any], horizon: int, cluster: Optional[str]
) -> TimeSeriesResponse:
    return TimeSeriesResponse(
        predictions=tuple(Prediction.from_dict(p) for p in payload.get("predictions") or []),
        horizon_days=int(payload.get("horizon_days", horizon)),
        cluster=str(payload.get("cluster") or cluster or ""),
        area=dict(payload.get("area") or {}),
    )


def _batch_rows(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("predictions")
    if not isinstance(payload, list):
        raise TypeError("batch response has no predictions list")
    return [row for row in payload if isinstance(row, dict)]


def _single_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    out = payload.get("predictions")
    if out is not None and not isinstance(out, Mapping):
        raise TypeError(f"predictions is {type(out).__name__}, expected an object")
    return dict(payload)


def _strategies_response(payload: Mapping[str, Any]) -> StrategiesResponse:
    return StrategiesResponse(
        strategies=tuple(
            MitigationStrategy.from_dict(item) for item in payload.get("strategies") or []
        ),
        area=dict(payload.get("area") or {}),
        characteristics=dict(payload.get("characteristics") or {}),
    )


class GeoAPIClient:
    """One method per backend capability; no retries."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeoAPIClient":
        return cls(base_url=settings.api_base_url, timeout=settings.request_timeout)

    def _send(self, operation: str, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise RemoteError(
                operation, "timeout", f"Request timed out after {self.timeout:g}s"
            ) from exc
        except requests.RequestException as exc:
            raise RemoteError(operation, "network", f"Network error: {exc}") from exc

    def _check(self, operation: str, response: requests.Response) -> requests.Response:
        if response.ok:
            return response
        message = f"{_DEFAULT_MESSAGES.get(operation, operation)} ({response.status_code})"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("detail"):
            message = str(body["detail"])
        logger.warning("%s returned HTTP %s: %s", operation, response.status_code, message)
        raise RemoteError(operation, response.status_code, message)

    def _json(self, operation: str, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                operation, "parse", f"{_DEFAULT_MESSAGES.get(operation, operation)}: invalid JSON"
            ) from exc

    def _call(
        self, operation: str, method: str, path: str, expect_object: bool = True, **kwargs: Any
    ) -> Any:
        response = self._check(operation, self._send(operation, method, path, **kwargs))
        payload = self._json(operation, response)
        if expect_object and not isinstance(payload, dict):
            raise RemoteError(operation, "parse", f"Unexpected {operation} response shape")
        return payload

    def geocode(self, query: str) -> List[GeocodeResult]:
        payload = self._call("geocode", "GET", "/api/geocode", params={"q": query})
        return _normalize("geocode", _geocode_results, payload)

    def get_data(
        self,
        bbox: Optional[BoundingBox] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        radius: Optional[float] = None,
        time_range: Optional[str] = None,
    ) -> DataResponse:
        if bbox is None and (lat is None or lng is None):
            raise ValidationError("Data queries need a bounding box or a lat/lng pair")
        params = _without_none(
            {
                "bbox": bbox.to_param() if bbox is not None else None,
                "lat": lat,
                "lng": lng,
                "radius": radius,
                "time_range": time_range,
            }
        )
        payload = self._call("get_data", "GET", "/api/data", params=params)
        return _normalize("get_data", _data_response, payload)

    def predict_time_series(
        self, area: Mapping[str, Any], horizon: int, cluster: Optional[str] = None
    ) -> TimeSeriesResponse:
        _validate_area(area)
        if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon <= 0:
            raise ValidationError("Horizon must be a positive whole number of days")
        body = _without_none({"area": dict(area), "horizon": horizon, "cluster": cluster})
        payload = self._call("predict_time_series", "POST", "/api/predict", json=body)
        return _normalize("predict_time_series", _time_series_response, payload, horizon, cluster)

    def predict_batch(self, filename: str, content: bytes) -> List[Dict[str, Any]]:
        files = {"file": (filename, content, "text/csv")}
        payload = self._call(
            "predict_batch", "POST", "/predict/batch", expect_object=False, files=files
        )
        return _normalize("predict_batch", _batch_rows, payload)

    def predict_single(
        self, cluster: str, latitude: float, longitude: float, month: int
    ) -> Dict[str, Any]:
        body = {"cluster": cluster, "latitude": latitude, "longitude": longitude, "month": month}
        payload = self._call("predict_single", "POST", "/predict/single", json=body)
        return _normalize("predict_single", _single_payload, payload)

    def _strategies(self, operation: str, path: str, body: Dict[str, Any]) -> StrategiesResponse:
        _validate_area(body.get("area") or {})
        payload = self._call(operation, "POST", path, json=_without_none(body))
        return _normalize(operation, _strategies_response, payload)

    def get_mitigation_strategies(
        self,
        area: Mapping[str, Any],
        uhi_intensity: Optional[float] = None,
        ndvi: Optional[float] = None,
        builtup_percent: Optional[float] = None,
    ) -> StrategiesResponse:
        body = {
            "area": dict(area),
            "uhi_intensity": uhi_intensity,
            "ndvi": ndvi,
            "builtup_percent": builtup_percent,
        }
        return self._strategies("get_mitigation_strategies", "/api/mitigation-strategies", body)

    def get_ai_strategies(
        self,
        area: Mapping[str, Any],
        uhi_intensity: Optional[float] = None,
        health_risk: Optional[float] = None,
        ndvi: Optional[float] = None,
        builtup_percent: Optional[float] = None,
    ) -> StrategiesResponse:
        body = {
            "area": dict(area),
            "uhi_intensity": uhi_intensity,
            "health_risk": health_risk,
            "ndvi": ndvi,
            "builtup_percent": builtup_percent,
        }
        return self._strategies("get_ai_strategies", "/api/ai-strategies", body)

    def generate_report(self, report: Mapping[str, Any]) -> Union[bytes, ReportFallback]:
        """Return PDF bytes, or a :class:`ReportFallback` when the server answers 501."""

        operation = "generate_report"
        response = self._send(operation, "POST", "/api/report", json=dict(report))
        if response.status_code == NOT_IMPLEMENTED:
            payload = self._json(operation, response)
            if not isinstance(payload, dict):
                payload = {}
            logger.info("Server-side PDF unavailable: %s", payload.get("reason", ""))
            return ReportFallback.from_dict(payload)
        self._check(operation, response)
        return response.content

    def health_check(self) -> HealthStatus:
        payload = self._call("health_check", "GET", "/api/health")
        return _normalize("health_check", HealthStatus.from_dict, payload)

    def get_config(self) -> AppConfig:
        payload = self._call("get_config", "GET", "/api/config")
        return _normalize("get_config", AppConfig.from_dict, payload)

    def login(self, email: str, password: str) -> LoginResult:
        payload = self._call(
            "login", "POST", "/api/login", json={"email": email, "password": password}
        )
        return _normalize("login", LoginResult.from_dict, payload)


class AsyncGeoAPIClient:
    """Awaitable facade; blocking requests run in a worker thread."""

    def __init__(self, client: GeoAPIClient) -> None:
        self.client = client

    async def _run(self, method: str, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(getattr(self.client, method), *args, **kwargs)

    async def geocode(self, query: str) -> List[GeocodeResult]:
        return await self._run("geocode", query)

    async def get_data(self, **params: Any) -> DataResponse:
        return await self._run("get_data", **params)

    async def predict_time_series(
        self, area: Mapping[str, Any], horizon: int, cluster: Optional[str] = None
    ) -> TimeSeriesResponse:
        return await self._run("predict_time_series", area, horizon, cluster)

    async def predict_batch(self, filename: str, content: bytes) -> List[Dict[str, Any]]:
        return await self._run("predict_batch", filename, content)

    async def predict_single(
        self, cluster: str, latitude: float, longitude: float, month: int
    ) -> Dict[str, Any]:
        return await self._run("predict_single", cluster, latitude, longitude, month)

    async def get_mitigation_strategies(
        self, area: Mapping[str, Any], **characteristics: Any
    ) -> StrategiesResponse:
        return await self._run("get_mitigation_strategies", area, **characteristics)

    async def get_ai_strategies(
        self, area: Mapping[str, Any], **characteristics: Any
    ) -> StrategiesResponse:
        return await self._run("get_ai_strategies", area, **characteristics)

    async def generate_report(self, report: Mapping[str, Any]) -> Union[bytes, ReportFallback]:
        return await self._run("generate_report", report)

    async def health_check(self) -> HealthStatus:
        return await self._run("health_check")

    async def get_config(self) -> AppConfig:
        return await self._run("get_config")

    async def login(self, email: str, password: str) -> LoginResult:
        return await self._run("login", email, password)


__all__ = [
    "GeoAPIClient",
    "AsyncGeoAPIClient",
    "DataResponse",
    "TimeSeriesResponse",
    "StrategiesResponse",
    "NOT_IMPLEMENTED",
]
