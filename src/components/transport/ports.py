"""
Transport component port definitions.
"""

from __future__ import annotations

from typing import Any, Protocol


class SessionSinkPort(Protocol):
    """Synchronous delivery. Raises on any failure."""

    def send(self, payload: dict[str, Any]) -> None:
        ...


class BeaconPort(Protocol):
    """Fire-and-forget delivery. Returns True once the payload is queued."""

    def send_beacon(self, payload: dict[str, Any]) -> bool:
        ...
