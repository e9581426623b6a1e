"""
Session component port definitions.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from .models import FinalizedSession


class ClockPort(Protocol):
    def now_ms(self) -> int:
        ...


class KeyValueStorePort(Protocol):
    """Client-local key-value storage (holds the device identifier)."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class TickerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TickerPort(Protocol):
    """Schedules a repeating callback."""

    def schedule(self, interval_ms: int, callback: Callable[[], None]) -> TickerHandle:
        ...


class SessionFinalizerPort(Protocol):
    """Receives the finalized session exactly once (the transport)."""

    def on_finalized(self, session: FinalizedSession) -> None:
        ...
