"""Batch, single-point and time-series prediction workflows."""

from __future__ import annotations

import asyncio
import datetime
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .constants import CLUSTER_OPTIONS, DEFAULT_AREA_POINT, DEFAULT_HORIZON, TIME_SERIES_HORIZONS
from .csv_transfer import parse_csv
from .errors import Notice, UHIError, ValidationError
from .models import Prediction, PredictionRow, prediction_row_from_mapping, prediction_row_from_single

logger = logging.getLogger(__name__)

DEFAULT_CLUSTER = CLUSTER_OPTIONS[0]["id"]


class Mode(str, Enum):
    BATCH = "batch"
    SINGLE = "single"
    TIME_SERIES = "time_series"


class ModeStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ModeStarted:
    seq: int


@dataclass(frozen=True)
class UploadParsed:
    seq: int
    rows: Tuple[Dict[str, str], ...]


@dataclass(frozen=True)
class ModeSucceeded:
    seq: int
    result: Tuple[Any, ...]
    notice: Notice


@dataclass(frozen=True)
class ModeFailed:
    seq: int
    error: UHIError


@dataclass(frozen=True)
class InputRejected:
    error: UHIError


ModeEvent = Union[ModeStarted, UploadParsed, ModeSucceeded, ModeFailed, InputRejected]


@dataclass(frozen=True)
class ModeState:
    """State of one prediction mode.

    ``result`` holds PredictionRow items for batch/single and Prediction
    items for the time series. ``uploaded_rows`` is only used by batch mode.
    """

    status: ModeStatus = ModeStatus.IDLE
    result: Tuple[Any, ...] = ()
    uploaded_rows: Tuple[Dict[str, str], ...] = ()
    latest_seq: int = 0
    error: Optional[UHIError] = None
    notice: Optional[Notice] = None

    @property
    def busy(self) -> bool:
        return self.status is ModeStatus.RUNNING


def transition_mode(state: ModeState, event: ModeEvent) -> ModeState:
    if isinstance(event, ModeStarted):
        return replace(
            state, status=ModeStatus.RUNNING, latest_seq=event.seq, error=None, notice=None
        )
    if isinstance(event, InputRejected):
        # A request already in flight keeps running; only the notice changes.
        status = state.status if state.busy else ModeStatus.FAILED
        return replace(state, status=status, error=event.error, notice=event.error.to_notice())
    if event.seq != state.latest_seq:
        logger.debug("Discarding stale prediction event %s", event)
        return state
    if isinstance(event, UploadParsed):
        return replace(state, uploaded_rows=event.rows)
    if isinstance(event, ModeSucceeded):
        return replace(
            state, status=ModeStatus.SUCCEEDED, result=event.result, error=None, notice=event.notice
        )
    # The previous result stays on screen after a failure.
    return replace(state, status=ModeStatus.FAILED, error=event.error, notice=event.error.to_notice())


@dataclass(frozen=True)
class PredictionForm:
    """Serializable form inputs shared by the single and time-series modes."""

    latitude: str = str(DEFAULT_AREA_POINT["lat"])
    longitude: str = str(DEFAULT_AREA_POINT["lng"])
    month: str = field(default_factory=lambda: str(datetime.date.today().month))
    cluster: str = DEFAULT_CLUSTER
    horizon: int = DEFAULT_HORIZON


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    if _is_blank(latitude) or _is_blank(longitude):
        raise ValidationError("Please provide latitude and longitude", title="Missing fields")
    lat, lng = _as_number(latitude), _as_number(longitude)
    if lat is None or lng is None:
        raise ValidationError("Latitude and longitude must be numbers")
    return lat, lng


def validate_single(latitude: Any, longitude: Any, month: Any) -> Tuple[float, float, int]:
    if _is_blank(latitude) or _is_blank(longitude) or _is_blank(month):
        raise ValidationError(
            "Please provide latitude, longitude and month", title="Missing fields"
        )
    lat, lng, month_value = _as_number(latitude), _as_number(longitude), _as_number(month)
    if lat is None or lng is None or month_value is None:
        raise ValidationError("Latitude, longitude and month must be numbers")
    if not month_value.is_integer() or not 1 <= month_value <= 12:
        raise ValidationError("Month must be a whole number between 1 and 12")
    return lat, lng, int(month_value)


def validate_horizon(horizon: Any) -> int:
    value = _as_number(horizon)
    if value is None or not value.is_integer() or int(value) not in TIME_SERIES_HORIZONS:
        choices = ", ".join(str(h) for h in TIME_SERIES_HORIZONS)
        raise ValidationError(f"Forecast horizon must be one of {choices} days")
    return int(value)


def validate_batch_filename(filename: str) -> None:
    if not filename or not filename.lower().endswith(".csv"):
        raise ValidationError("Please upload a CSV file", title="Invalid File")


def _display(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:g}"


class PredictionOrchestrator:
    """Runs the three prediction modes, each with its own state and busy flag."""

    def __init__(self, api: Any, default_cluster: str = DEFAULT_CLUSTER) -> None:
        self._api = api
        self.default_cluster = default_cluster
        self._states: Dict[Mode, ModeState] = {mode: ModeState() for mode in Mode}
        self._seq = 0

    def state(self, mode: Mode) -> ModeState:
        return self._states[mode]

    @property
    def batch(self) -> ModeState:
        return self._states[Mode.BATCH]

    @property
    def single(self) -> ModeState:
        return self._states[Mode.SINGLE]

    @property
    def time_series(self) -> ModeState:
        return self._states[Mode.TIME_SERIES]

    def _apply(self, mode: Mode, event: ModeEvent) -> ModeState:
        self._states[mode] = transition_mode(self._states[mode], event)
        return self._states[mode]

    def _begin(self, mode: Mode) -> int:
        self._seq += 1
        self._apply(mode, ModeStarted(self._seq))
        return self._seq

    def _reject(self, mode: Mode, error: ValidationError) -> ModeState:
        logger.info("%s prediction rejected: %s", mode.value, error)
        return self._apply(mode, InputRejected(error))

    async def predict_batch(self, filename: str, content: bytes) -> ModeState:
        """Validate, parse locally, then upload the CSV for batch predictions."""

        mode = Mode.BATCH
        try:
            validate_batch_filename(filename)
        except ValidationError as exc:
            return self._reject(mode, exc)

        seq = self._begin(mode)
        try:
            parsed = await asyncio.to_thread(parse_csv, content)
            self._apply(mode, UploadParsed(seq, parsed.rows))
            records = await self._api.predict_batch(filename, content)
        except UHIError as exc:
            logger.warning("Batch prediction failed: %s", exc)
            return self._apply(mode, ModeFailed(seq, exc))

        rows = tuple(prediction_row_from_mapping(record) for record in records)
        description = f"Batch predictions returned ({len(rows)})"
        if parsed.errors:
            description += f"; skipped {len(parsed.errors)} malformed rows"
        return self._apply(mode, ModeSucceeded(seq, rows, Notice("Predictions Complete", description)))

    async def predict_single(
        self, latitude: Any, longitude: Any, month: Any, cluster: Optional[str] = None
    ) -> ModeState:
        mode = Mode.SINGLE
        try:
            lat, lng, month_value = validate_single(latitude, longitude, month)
        except ValidationError as exc:
            return self._reject(mode, exc)

        cluster = cluster or self.default_cluster
        seq = self._begin(mode)
        try:
            payload = await self._api.predict_single(cluster, lat, lng, month_value)
        except UHIError as exc:
            logger.warning("Single prediction failed: %s", exc)
            return self._apply(mode, ModeFailed(seq, exc))

        row: PredictionRow = prediction_row_from_single(payload, cluster, lat, lng)
        notice = Notice(
            "Prediction Complete",
            f"UHI: {_display(row.uhi)}°C, Health risk: {_display(row.health_risk)}",
        )
        return self._apply(mode, ModeSucceeded(seq, (row,), notice))

    async def predict_time_series(
        self,
        latitude: Any,
        longitude: Any,
        horizon: Any = DEFAULT_HORIZON,
        cluster: Optional[str] = None,
    ) -> ModeState:
        mode = Mode.TIME_SERIES
        try:
            lat, lng = validate_coordinates(latitude, longitude)
            horizon_days = validate_horizon(horizon)
        except ValidationError as exc:
            return self._reject(mode, exc)

        seq = self._begin(mode)
        try:
            response = await self._api.predict_time_series(
                {"center": {"lat": lat, "lng": lng}}, horizon_days, cluster
            )
        except UHIError as exc:
            logger.warning("Time-series prediction failed: %s", exc)
            return self._apply(mode, ModeFailed(seq, exc))

        # Index 0 is day 1.
        series: Tuple[Prediction, ...] = tuple(response.predictions)
        notice = Notice("Prediction Complete", f"Generated {len(series)} day forecast")
        return self._apply(mode, ModeSucceeded(seq, series, notice))

    async def submit_form(self, form: PredictionForm, mode: Mode) -> ModeState:
        if mode is Mode.SINGLE:
            return await self.predict_single(form.latitude, form.longitude, form.month, form.cluster)
        if mode is Mode.TIME_SERIES:
            return await self.predict_time_series(
                form.latitude, form.longitude, form.horizon, form.cluster
            )
        raise ValueError("Batch predictions are submitted with a file, not the form")


__all__ = [
    "DEFAULT_CLUSTER",
    "Mode",
    "ModeStatus",
    "ModeStarted",
    "UploadParsed",
    "ModeSucceeded",
    "ModeFailed",
    "InputRejected",
    "ModeState",
    "transition_mode",
    "PredictionForm",
    "validate_coordinates",
    "validate_single",
    "validate_horizon",
    "validate_batch_filename",
    "PredictionOrchestrator",
]
