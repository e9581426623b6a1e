"""
Unit tests for Transport component.
"""

from __future__ import annotations

from typing import Any

import pytest

from src.components.dwell import BinScore
from src.components.scroll import ScrollSample
from src.components.session import FinalizedSession, SessionContext, StopReason

from ..component import SessionTransport, assemble_session, mode_for_reason
from ..models import DeliveryMode


# --- Test Fixtures ---


class RecordingSink:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.payloads: list[dict[str, Any]] = []

    def send(self, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("network down")
        self.payloads.append(payload)


class RecordingBeacon:
    def __init__(self, queued: bool = True):
        self.queued = queued
        self.payloads: list[dict[str, Any]] = []

    def send_beacon(self, payload: dict[str, Any]) -> bool:
        self.payloads.append(payload)
        return self.queued


def make_finalized(
    reason: StopReason = StopReason.EXPLICIT,
    session_id: str = "session_1_abc",
    **overrides: Any,
) -> FinalizedSession:
    values: dict[str, Any] = {
        "session_id": session_id,
        "browser_id": "browser_1_xyz",
        "context": SessionContext(
            document_id="doc-1",
            email="reader@example.com",
            user_agent="pytest",
            referrer="https://news.example.com/post",
            viewport_width=1280,
            viewport_height=720,
            timezone="Europe/London",
        ),
        "start_time": 1_000_000,
        "end_time": 1_012_500,
        "active_ms": 12_345,
        "max_scroll_percentage": 64.5,
        "scroll_event_count": 2,
        "stop_reason": reason,
        "scroll_events": [
            ScrollSample(1_000_100, 100.0, 10.0, 720.0, 1720.0),
            ScrollSample(1_000_300, 645.0, 64.5, 720.0, 1720.0),
        ],
        "dwell_time": {"0-10": 4000, "60-70": 8000},
        "pixel_bins": [BinScore(y=0, time_spent=250.0), BinScore(y=25, time_spent=500.0)],
        "cta_clicks": 1,
    }
    values.update(overrides)
    return FinalizedSession(**values)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def beacon() -> RecordingBeacon:
    return RecordingBeacon()


# --- assemble_session Tests ---


class TestAssembleSession:
    """Test RawSession assembly."""

    def test_duration_is_active_seconds(self) -> None:
        raw = assemble_session(make_finalized())
        assert raw.duration == 12.345
        assert raw.start_time == 1_000_000
        assert raw.end_time == 1_012_500

    def test_carries_measurements(self) -> None:
        raw = assemble_session(make_finalized())
        assert raw.document_id == "doc-1"
        assert raw.max_scroll_percentage == 64.5
        assert raw.scroll_event_count == 2
        assert raw.viewport.width == 1280
        assert raw.timezone == "Europe/London"
        assert raw.cta_clicks == 1
        assert [b.y for b in raw.pixel_bins] == [0, 25]

    def test_dwell_time_is_zero_filled(self) -> None:
        raw = assemble_session(make_finalized())
        assert len(raw.dwell_time) == 10
        assert raw.dwell_time["60-70"] == 8000
        assert raw.dwell_time["90-100"] == 0

    def test_scroll_events_optional(self) -> None:
        raw = assemble_session(make_finalized(), include_scroll_events=False)
        assert raw.scroll_events is None

    def test_scroll_events_trimmed_to_most_recent(self) -> None:
        raw = assemble_session(make_finalized(), max_scroll_events=1)
        assert raw.scroll_events is not None
        assert [e.scroll_y for e in raw.scroll_events] == [645.0]

    def test_wire_names(self) -> None:
        wire = assemble_session(make_finalized()).to_wire()
        assert wire["sessionId"] == "session_1_abc"
        assert wire["maxScrollPercentage"] == 64.5
        assert wire["scrollEvents"][0]["scrollPercentage"] == 10.0
        assert wire["pixelBins"][1] == {"y": 25, "timeSpent": 500.0}
        assert wire["viewport"] == {"width": 1280, "height": 720}


# --- Delivery Tests ---


class TestSessionTransport:
    """Test normal and degraded delivery."""

    def test_mode_for_reason(self) -> None:
        assert mode_for_reason(StopReason.UNLOAD) is DeliveryMode.DEGRADED
        assert mode_for_reason(StopReason.UNMOUNT) is DeliveryMode.NORMAL
        assert mode_for_reason(StopReason.CAP_REACHED) is DeliveryMode.NORMAL
        assert mode_for_reason(StopReason.EXPLICIT) is DeliveryMode.NORMAL

    def test_normal_stop_uses_sink(self, sink: RecordingSink, beacon: RecordingBeacon) -> None:
        transport = SessionTransport(sink=sink, beacon=beacon)
        transport.on_finalized(make_finalized(StopReason.EXPLICIT))

        assert len(sink.payloads) == 1
        assert beacon.payloads == []
        assert transport.results[0].success
        assert transport.results[0].mode is DeliveryMode.NORMAL

    def test_unload_uses_beacon(self, sink: RecordingSink, beacon: RecordingBeacon) -> None:
        transport = SessionTransport(sink=sink, beacon=beacon)
        transport.on_finalized(make_finalized(StopReason.UNLOAD))

        assert sink.payloads == []
        assert len(beacon.payloads) == 1
        assert beacon.payloads[0]["sessionId"] == "session_1_abc"
        assert transport.results[0].mode is DeliveryMode.DEGRADED

    def test_sink_failure_is_logged_not_raised(
        self, beacon: RecordingBeacon, caplog: pytest.LogCaptureFixture
    ) -> None:
        transport = SessionTransport(sink=RecordingSink(fail=True), beacon=beacon)
        raw = assemble_session(make_finalized())

        result = transport.deliver(raw, DeliveryMode.NORMAL)

        assert result.success is False
        assert result.errors[0].code == "DELIVERY_FAILED"
        assert "network down" in caplog.text
        # No retry through the other path.
        assert beacon.payloads == []

    def test_unqueued_beacon_is_a_failure(self, sink: RecordingSink) -> None:
        transport = SessionTransport(sink=sink, beacon=RecordingBeacon(queued=False))
        result = transport.deliver(assemble_session(make_finalized()), DeliveryMode.DEGRADED)
        assert result.success is False
        assert sink.payloads == []

    def test_same_session_delivered_once(
        self, sink: RecordingSink, beacon: RecordingBeacon
    ) -> None:
        transport = SessionTransport(sink=sink, beacon=beacon)
        raw = assemble_session(make_finalized())

        first = transport.deliver(raw, DeliveryMode.NORMAL)
        second = transport.deliver(raw, DeliveryMode.DEGRADED)

        assert first.success
        assert second.success is False
        assert second.errors[0].code == "ALREADY_DELIVERED"
        assert len(sink.payloads) == 1
        assert beacon.payloads == []

    def test_invalid_record_is_dropped(self, sink: RecordingSink, beacon: RecordingBeacon) -> None:
        transport = SessionTransport(sink=sink, beacon=beacon)
        transport.on_finalized(make_finalized(session_id=""))

        assert sink.payloads == []
        assert transport.results[0].errors[0].code == "INVALID_SESSION"
