"""Timer primitives the game session schedules against.

``Clock`` is the abstract contract: one-shot delayed callbacks, a once-per-second
interval, and cancellation. Every scheduling call returns a ``CancelHandle``;
a callback fires at most once per due time and never after it is cancelled.

``ManualClock`` is a virtual clock for tests and headless use. Time only moves
when ``advance`` is called, and due callbacks fire in due-time order (ties in
scheduling order).
"""

from __future__ import annotations

import heapq
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

Callback = Callable[[], None]


@dataclass(eq=False)
class CancelHandle:
    """Token for one scheduled callback. ``cancelled`` is set by ``Clock.cancel``."""

    interval_ms: Optional[int] = None
    cancelled: bool = False
    fired: bool = False
    timer: object = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        if self.cancelled:
            return False
        return self.interval_ms is not None or not self.fired


class Clock(ABC):
    @abstractmethod
    def now(self) -> int:
        """Milliseconds on a monotonic scale."""

    @abstractmethod
    def after(self, delay_ms: int, callback: Callback) -> CancelHandle:
        """Run ``callback`` once, ``delay_ms`` from now."""

    @abstractmethod
    def every_second(self, callback: Callback) -> CancelHandle:
        """Run ``callback`` every 1000 ms until cancelled."""

    @abstractmethod
    def cancel(self, handle: Optional[CancelHandle]) -> None:
        """Cancel a scheduled callback. Safe on ``None`` and on already-fired handles."""


class ManualClock(Clock):
    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms
        self._seq = itertools.count()
        self._queue: List[Tuple[int, int, CancelHandle, Callback]] = []

    def now(self) -> int:
        return self._now

    def after(self, delay_ms: int, callback: Callback) -> CancelHandle:
        handle = CancelHandle()
        self._push(self._now + max(0, int(delay_ms)), handle, callback)
        return handle

    def every_second(self, callback: Callback) -> CancelHandle:
        handle = CancelHandle(interval_ms=1000)
        self._push(self._now + 1000, handle, callback)
        return handle

    def cancel(self, handle: Optional[CancelHandle]) -> None:
        if handle is not None:
            handle.cancelled = True

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that can still fire."""
        return sum(1 for _, _, h, _ in self._queue if h.active)

    def advance(self, ms: int) -> None:
        """Move time forward by ``ms``, firing everything that falls due on the way."""
        if ms < 0:
            raise ValueError("ManualClock cannot go backwards")
        target = self._now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if handle.interval_ms is not None:
                self._push(due + handle.interval_ms, handle, callback)
            else:
                handle.fired = True
            callback()
        self._now = target

    def _push(self, due: int, handle: CancelHandle, callback: Callback) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback))
