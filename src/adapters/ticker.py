"""
Periodic ticker adapters for the session controller.

ThreadTicker drives real ticks from a daemon thread. ManualTicker only fires
when told to, for deterministic tests alongside ManualClock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class _ThreadTick:
    """Handle for one scheduled callback."""

    def __init__(self, interval_ms: int, callback: Callable[[], None]) -> None:
        self._interval = interval_ms / 1000
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()

    def _loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Tick callback failed; ticker stopped")
                return


class ThreadTicker:
    """
    Ticker backed by one daemon thread per schedule.

    The callback runs on the ticker thread; cancel() may be called from the
    callback itself (the cap stop does this).
    """

    def schedule(self, interval_ms: int, callback: Callable[[], None]) -> _ThreadTick:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = _ThreadTick(interval_ms, callback)
        handle.start()
        logger.debug("Ticker started (interval: %d ms)", interval_ms)
        return handle


class _ManualTick:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTicker:
    """Ticker that fires only when fire() is called."""

    def __init__(self) -> None:
        self._handles: list[_ManualTick] = []

    def schedule(self, interval_ms: int, callback: Callable[[], None]) -> _ManualTick:
        handle = _ManualTick(callback)
        self._handles.append(handle)
        return handle

    @property
    def active(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def fire(self) -> None:
        """Invoke every live callback once."""
        for handle in list(self._handles):
            if not handle.cancelled:
                handle.callback()
