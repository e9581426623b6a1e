"""
Transport component - One-shot delivery of a finalized session.

Key behaviors:
- assemble_session builds the wire RawSession from what the controller
  measured (duration from active time, reach from the sampler)
- NORMAL mode uses the synchronous sink; DEGRADED mode uses the beacon
- a failure is logged and the session is dropped; nothing is retried and
  nothing is raised to the caller

Invariants:
- a session id is delivered at most once per transport
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from src.components.session import FinalizedSession, StopReason
from src.core.entities import PixelBin, RawSession, ScrollEvent, Viewport

from .models import DeliveryMode, DeliveryResult, TransportValidationError
from .ports import BeaconPort, SessionSinkPort

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def assemble_session(
    finalized: FinalizedSession,
    *,
    include_scroll_events: bool = True,
    max_scroll_events: int | None = None,
) -> RawSession:
    """
    Build the RawSession record for a finalized session.

    Args:
        finalized: What the controller measured
        include_scroll_events: Attach the raw scroll-event list
        max_scroll_events: Keep only the most recent N events

    Raises:
        pydantic.ValidationError if the measurements are out of range
    """
    ctx = finalized.context

    scroll_events = None
    if include_scroll_events:
        samples = finalized.scroll_events
        if max_scroll_events is not None:
            samples = samples[-max_scroll_events:] if max_scroll_events else []
        scroll_events = [
            ScrollEvent(
                timestamp=s.timestamp,
                scroll_y=s.scroll_y,
                scroll_percentage=s.scroll_percentage,
                viewport_height=s.viewport_height,
                document_height=s.document_height,
            )
            for s in samples
        ]

    return RawSession(
        session_id=finalized.session_id,
        browser_id=finalized.browser_id,
        document_id=ctx.document_id,
        user_id=ctx.user_id,
        email=ctx.email,
        start_time=finalized.start_time,
        end_time=finalized.end_time,
        duration=finalized.active_ms / 1000,
        max_scroll_percentage=finalized.max_scroll_percentage,
        scroll_event_count=finalized.scroll_event_count,
        scroll_events=scroll_events,
        user_agent=ctx.user_agent,
        referrer=ctx.referrer or None,
        viewport=Viewport(width=ctx.viewport_width, height=ctx.viewport_height),
        timezone=ctx.timezone,
        dwell_time=finalized.dwell_time,
        pixel_bins=[PixelBin(y=b.y, time_spent=b.time_spent) for b in finalized.pixel_bins],
        cta_clicks=finalized.cta_clicks,
    )


def mode_for_reason(reason: StopReason) -> DeliveryMode:
    """Page unload can only use the degraded path."""
    if reason is StopReason.UNLOAD:
        return DeliveryMode.DEGRADED
    return DeliveryMode.NORMAL


# --- Transport ---


class SessionTransport:
    """
    Delivers finalized sessions. Implements the session finalizer port.

    Args:
        sink: Synchronous delivery for NORMAL mode
        beacon: Fire-and-forget delivery for DEGRADED mode
        include_scroll_events: Attach the raw scroll-event list
        max_scroll_events: Keep only the most recent N events
    """

    def __init__(
        self,
        *,
        sink: SessionSinkPort,
        beacon: BeaconPort,
        include_scroll_events: bool = True,
        max_scroll_events: int | None = None,
    ) -> None:
        self._sink = sink
        self._beacon = beacon
        self._include_scroll_events = include_scroll_events
        self._max_scroll_events = max_scroll_events
        self._delivered: set[str] = set()
        self.results: list[DeliveryResult] = []

    def on_finalized(self, session: FinalizedSession) -> None:
        mode = mode_for_reason(session.stop_reason)
        try:
            raw = assemble_session(
                session,
                include_scroll_events=self._include_scroll_events,
                max_scroll_events=self._max_scroll_events,
            )
        except ValidationError as e:
            logger.error("Dropping session %s: invalid record: %s", session.session_id, e)
            self.results.append(
                _failure(session.session_id, mode, "INVALID_SESSION", str(e))
            )
            return
        self.deliver(raw, mode)

    def deliver(self, session: RawSession, mode: DeliveryMode) -> DeliveryResult:
        """Deliver one session. Logs and returns failures; never raises."""
        if session.session_id in self._delivered:
            result = _failure(
                session.session_id, mode, "ALREADY_DELIVERED", "Session already delivered"
            )
            self.results.append(result)
            return result
        self._delivered.add(session.session_id)

        payload = session.to_wire()
        try:
            if mode is DeliveryMode.DEGRADED:
                if not self._beacon.send_beacon(payload):
                    raise RuntimeError("beacon was not queued")
            else:
                self._sink.send(payload)
        except Exception as e:
            logger.warning(
                "Session %s lost (%s delivery failed): %s", session.session_id, mode.value, e
            )
            result = _failure(session.session_id, mode, "DELIVERY_FAILED", str(e))
        else:
            logger.info("Session %s delivered (%s)", session.session_id, mode.value)
            result = DeliveryResult(session_id=session.session_id, mode=mode)

        self.results.append(result)
        return result


def _failure(session_id: str, mode: DeliveryMode, code: str, message: str) -> DeliveryResult:
    return DeliveryResult(
        session_id=session_id,
        mode=mode,
        errors=[TransportValidationError(code=code, message=message)],
        success=False,
    )
