"""Viewport-driven loading of UHI data points."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Set, Tuple, Union

from .constants import BBOX_PADDING_DEG, DEBOUNCE_SECONDS, DEFAULT_CENTER, DEFAULT_ZOOM
from .errors import Notice, UHIError
from .maps import MapMarker, build_markers
from .models import BoundingBox, LatLng, LayerToggleState, UHIDataPoint, Viewport
from .scheduling import Debouncer, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = Viewport(LatLng(DEFAULT_CENTER["lat"], DEFAULT_CENTER["lng"]), DEFAULT_ZOOM)


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchStarted:
    seq: int


@dataclass(frozen=True)
class FetchSucceeded:
    seq: int
    points: Tuple[UHIDataPoint, ...]


@dataclass(frozen=True)
class FetchFailed:
    seq: int
    error: UHIError


FetchEvent = Union[FetchStarted, FetchSucceeded, FetchFailed]


@dataclass(frozen=True)
class ViewportState:
    viewport: Viewport = DEFAULT_VIEWPORT
    layers: LayerToggleState = field(default_factory=LayerToggleState)
    status: LoadStatus = LoadStatus.IDLE
    points: Tuple[UHIDataPoint, ...] = ()
    latest_seq: int = 0
    error: Optional[UHIError] = None
    notice: Optional[Notice] = None
    selected_point: Optional[UHIDataPoint] = None
    padding: float = BBOX_PADDING_DEG

    @property
    def bbox(self) -> BoundingBox:
        return self.viewport.bbox(self.padding)

    @property
    def is_loading(self) -> bool:
        return self.status is LoadStatus.LOADING


def transition(state: ViewportState, event: FetchEvent) -> ViewportState:
    """Apply a fetch event. Results for anything but the latest request are dropped."""

    if isinstance(event, FetchStarted):
        if event.seq <= state.latest_seq:
            return state
        return replace(state, status=LoadStatus.LOADING, latest_seq=event.seq, error=None)

    if event.seq != state.latest_seq:
        logger.debug("Discarding stale fetch #%s (latest is #%s)", event.seq, state.latest_seq)
        return state

    if isinstance(event, FetchSucceeded):
        selected = state.selected_point if state.selected_point in event.points else None
        return replace(
            state,
            status=LoadStatus.LOADED,
            points=event.points,
            error=None,
            selected_point=selected,
            notice=Notice("Data loaded", f"Loaded {len(event.points)} data points"),
        )

    # Failed refreshes keep the previous points on the map.
    return replace(
        state,
        status=LoadStatus.FAILED,
        error=event.error,
        notice=Notice(
            "Failed to load data",
            event.error.description or "Could not fetch UHI data",
            "destructive",
        ),
    )


class ViewportDataLoader:
    """Owns the viewport, layer toggles and loaded points.

    Viewport changes are debounced. Starting a fetch cancels the one in
    flight, and each fetch is tagged with a sequence number so that only the
    most recently issued one may update the state.
    """

    def __init__(
        self,
        api: Any,
        viewport: Viewport = DEFAULT_VIEWPORT,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        padding: float = BBOX_PADDING_DEG,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._api = api
        self._state = ViewportState(viewport=viewport, padding=padding)
        self._seq = 0
        self._tasks: Set[asyncio.Task] = set()
        self._debouncer = Debouncer(debounce_seconds, self._start_fetch, scheduler)

    @property
    def state(self) -> ViewportState:
        return self._state

    @property
    def points(self) -> Tuple[UHIDataPoint, ...]:
        return self._state.points

    @property
    def viewport(self) -> Viewport:
        return self._state.viewport

    @property
    def fetch_pending(self) -> bool:
        return self._debouncer.pending

    def set_viewport(self, viewport: Viewport) -> None:
        self._state = replace(self._state, viewport=viewport)
        self._debouncer.schedule()

    def pan_to(self, lat: float, lng: float, zoom: Optional[int] = None) -> None:
        self.set_viewport(Viewport(LatLng(lat, lng), self.viewport.zoom if zoom is None else zoom))

    def toggle_layer(self, name: str) -> LayerToggleState:
        self._state = replace(self._state, layers=self._state.layers.toggled(name))
        return self._state.layers

    def set_layers(self, layers: LayerToggleState) -> None:
        self._state = replace(self._state, layers=layers)

    def markers(self) -> List[MapMarker]:
        return build_markers(self._state.points, self._state.layers)

    def select_point(self, point: Optional[UHIDataPoint]) -> None:
        self._state = replace(self._state, selected_point=point)

    def select_point_at(self, lat: float, lng: float, tolerance: float = 1e-6) -> Optional[UHIDataPoint]:
        for point in self._state.points:
            if abs(point.latitude - lat) <= tolerance and abs(point.longitude - lng) <= tolerance:
                self.select_point(point)
                return point
        return None

    def _apply(self, event: FetchEvent) -> ViewportState:
        self._state = transition(self._state, event)
        return self._state

    async def refresh(self) -> ViewportState:
        """Fetch for the current viewport now, dropping any pending debounce."""

        self._debouncer.cancel()
        await asyncio.wait({self._start_fetch()})
        return self._state

    async def drain(self) -> ViewportState:
        """Wait until no fetch is outstanding."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self._state

    def _start_fetch(self) -> asyncio.Task:
        for stale in self._tasks:
            stale.cancel()
        self._seq += 1
        seq = self._seq
        bbox = self._state.bbox
        self._apply(FetchStarted(seq))
        logger.info("Fetching data #%s for bbox %s", seq, bbox.to_param())
        task = asyncio.get_running_loop().create_task(self._fetch(seq, bbox))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fetch(self, seq: int, bbox: BoundingBox) -> None:
        try:
            response = await self._api.get_data(bbox=bbox)
        except UHIError as exc:
            logger.warning("Data fetch #%s failed: %s", seq, exc)
            self._apply(FetchFailed(seq, exc))
            return
        self._apply(FetchSucceeded(seq, tuple(response.points)))


__all__ = [
    "DEFAULT_VIEWPORT",
    "LoadStatus",
    "FetchStarted",
    "FetchSucceeded",
    "FetchFailed",
    "ViewportState",
    "transition",
    "ViewportDataLoader",
]
