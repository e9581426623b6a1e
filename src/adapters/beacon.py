"""
HTTP delivery adapters for the session transport.

HttpSessionSink is the normal path: a blocking POST that raises on failure
so the transport can log it. HttpBeaconSender is the unload path: the body is
sent as text/plain JSON (the shape navigator.sendBeacon produces) from a
daemon thread, and the caller never learns the outcome.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
BEACON_CONTENT_TYPE = "text/plain;charset=UTF-8"


class HttpSessionSink:
    """Synchronous JSON POST to the sessions endpoint."""

    def __init__(
        self,
        url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, payload: dict[str, Any]) -> None:
        response = self._client.post(self.url, json=payload)
        response.raise_for_status()
        logger.debug("Session delivered to %s (%d)", self.url, response.status_code)

    def close(self) -> None:
        self._client.close()


class HttpBeaconSender:
    """Fire-and-forget POST to the beacon endpoint."""

    def __init__(
        self,
        url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._lock = threading.Lock()
        self._pending: list[threading.Thread] = []

    def send_beacon(self, payload: dict[str, Any]) -> bool:
        """Queue the payload. Returns False only if it cannot be serialized."""
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            logger.warning("Beacon payload not serializable: %s", e)
            return False

        thread = threading.Thread(target=self._post, args=(body,), daemon=True)
        with self._lock:
            self._pending = [t for t in self._pending if t.is_alive()]
            self._pending.append(thread)
        thread.start()
        return True

    def send_now(self, payload: dict[str, Any]) -> bool:
        """Blocking variant; True when the server answered 2xx."""
        return self._post(json.dumps(payload))

    def wait(self, timeout: float | None = None) -> None:
        """Join beacons still in flight (process shutdown and tests)."""
        with self._lock:
            pending = list(self._pending)
        for thread in pending:
            thread.join(timeout)

    def _post(self, body: str) -> bool:
        try:
            response = self._client.post(
                self.url,
                content=body.encode("utf-8"),
                headers={"Content-Type": BEACON_CONTENT_TYPE},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Beacon to %s failed: %s", self.url, e)
            return False
        return True
