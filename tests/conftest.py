"""Shared fakes: HTTP session, async API and a manual clock."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from uhi_app.models import UHIDataPoint


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, content: Optional[bytes] = None):
        self.status_code = status_code
        self._payload = payload
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode()
        self.content = content

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.content.decode() or "invalid")


class FakeSession:
    """Records requests and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.requests: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Fake clock: callbacks only fire when the test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted(
            (h for h in self.handles if not h.cancelled and h.when <= self.now + 1e-9),
            key=lambda h: h.when,
        )
        for handle in due:
            self.handles.remove(handle)
            handle.callback()

    @property
    def pending(self) -> int:
        return sum(1 for h in self.handles if not h.cancelled)


class FakeAsyncAPI:
    """Async API double. Each operation pops its next queued outcome.

    An outcome may be a value, an exception instance, or an ``asyncio.Future``
    that the test resolves later to control completion order.
    """

    def __init__(self) -> None:
        self.outcomes: Dict[str, List[Any]] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def queue(self, operation: str, *outcomes: Any) -> "FakeAsyncAPI":
        self.outcomes.setdefault(operation, []).extend(outcomes)
        return self

    def calls_to(self, operation: str) -> List[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == operation]

    async def _dispatch(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((operation, args, kwargs))
        outcome = self.outcomes[operation].pop(0)
        if isinstance(outcome, asyncio.Future):
            outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def geocode(self, query):
        return await self._dispatch("geocode", query)

    async def get_data(self, **params):
        return await self._dispatch("get_data", **params)

    async def predict_time_series(self, area, horizon, cluster=None):
        return await self._dispatch("predict_time_series", area, horizon, cluster)

    async def predict_batch(self, filename, content):
        return await self._dispatch("predict_batch", filename, content)

    async def predict_single(self, cluster, latitude, longitude, month):
        return await self._dispatch("predict_single", cluster, latitude, longitude, month)

    async def get_mitigation_strategies(self, area, **characteristics):
        return await self._dispatch("get_mitigation_strategies", area, **characteristics)

    async def get_ai_strategies(self, area, **characteristics):
        return await self._dispatch("get_ai_strategies", area, **characteristics)

    async def generate_report(self, report):
        return await self._dispatch("generate_report", report)


async def settle(rounds: int = 5) -> None:
    """Let ready tasks run without waiting on unresolved futures."""

    for _ in range(rounds):
        await asyncio.sleep(0)


def make_point(**overrides: Any) -> UHIDataPoint:
    values = dict(
        latitude=18.52,
        longitude=73.85,
        temperature=34.2,
        humidity=61.0,
        uhi_intensity=6.5,
        health_risk=5.8,
        ndvi=0.312,
        builtup_percent=48.0,
        green_cover=22.5,
        land_cover="urban",
        cluster="cluster_pune_metropolitan",
        timestamp="2025-05-01T10:00:00Z",
    )
    values.update(overrides)
    return UHIDataPoint(**values)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fake_api() -> FakeAsyncAPI:
    return FakeAsyncAPI()
