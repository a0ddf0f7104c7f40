"""Cancellable scheduled tasks used for debouncing viewport changes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedule callbacks on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    """Run ``callback`` once the trigger has been quiet for ``delay`` seconds.

    Every :meth:`schedule` call clears the pending timer before arming a new
    one, so the callback fires at most once per quiet period and always with
    the arguments of the latest call.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Any],
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._scheduler = scheduler or LoopScheduler()
        self._handle: Optional[TimerHandle] = None
        self._args: Tuple[Any, ...] = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, *args: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("Debounce timer restarted")
        self._args = args
        self._handle = self._scheduler.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def flush(self) -> bool:
        """Fire a pending callback immediately. Returns False if nothing was pending."""

        if not self.cancel():
            return False
        self._callback(*self._args)
        return True

    def _fire(self) -> None:
        self._handle = None
        self._callback(*self._args)


__all__ = ["TimerHandle", "Scheduler", "LoopScheduler", "Debouncer"]
