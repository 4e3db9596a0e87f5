"""``Clock`` implementation backed by Qt timers and the Qt event loop."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QElapsedTimer, QObject, QTimer

from mindmatch.core.clock import CancelHandle, Callback, Clock


class QtClock(Clock):
    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._elapsed = QElapsedTimer()
        self._elapsed.start()

    def now(self) -> int:
        return int(self._elapsed.elapsed())

    def after(self, delay_ms: int, callback: Callback) -> CancelHandle:
        handle = CancelHandle()
        timer = QTimer(self._parent)
        timer.setSingleShot(True)

        def _fire() -> None:
            if handle.cancelled or handle.fired:
                return
            handle.fired = True
            handle.timer = None
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        handle.timer = timer
        timer.start(max(0, int(delay_ms)))
        return handle

    def every_second(self, callback: Callback) -> CancelHandle:
        handle = CancelHandle(interval_ms=1000)
        timer = QTimer(self._parent)

        def _fire() -> None:
            if not handle.cancelled:
                callback()

        timer.timeout.connect(_fire)
        handle.timer = timer
        timer.start(1000)
        return handle

    def cancel(self, handle: Optional[CancelHandle]) -> None:
        if handle is None:
            return
        handle.cancelled = True
        timer = handle.timer
        handle.timer = None
        if isinstance(timer, QTimer):
            timer.stop()
            timer.deleteLater()
