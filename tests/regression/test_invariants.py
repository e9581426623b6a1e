"""
Engagement invariants checked end to end across components.

Trajectory-style properties use seeded random walks so failures reproduce.
"""

import random
import time
from dataclasses import dataclass

import pytest

from src.adapters.clock import ManualClock, SystemClock
from src.adapters.local_storage import InMemoryKeyValueStore
from src.adapters.ticker import ManualTicker, ThreadTicker
from src.components.engagement import (
    classify_device,
    compute_document_analytics,
    merge_pixel_bins,
)
from src.components.heatmap import compute_bands
from src.components.session import (
    FinalizedSession,
    SessionConfig,
    SessionContext,
    SessionController,
)
from src.core.entities import PixelBin, RawSession

SEEDS = [1, 7, 42, 1234, 99991]


@dataclass
class FakeWindow:
    scroll_y: float = 0
    inner_height: float = 800
    document_height: float = 4800


class FakeVisibility:
    def __init__(self, hidden: bool = False) -> None:
        self.hidden = hidden

    def is_hidden(self) -> bool:
        return self.hidden


class RecordingFinalizer:
    def __init__(self) -> None:
        self.sessions: list[FinalizedSession] = []

    def on_finalized(self, session: FinalizedSession) -> None:
        self.sessions.append(session)


@dataclass
class Harness:
    clock: ManualClock
    ticker: ManualTicker
    window: FakeWindow
    visibility: FakeVisibility
    finalizer: RecordingFinalizer
    controller: SessionController

    def tick(self, seconds: int = 1) -> None:
        for _ in range(seconds):
            self.clock.advance(1000)
            self.ticker.fire()

    def hide(self) -> None:
        self.visibility.hidden = True
        self.controller.on_visibility_change(True)

    def show(self) -> None:
        self.visibility.hidden = False
        self.controller.on_visibility_change(False)


def make_harness(hidden: bool = False) -> Harness:
    clock = ManualClock()
    ticker = ManualTicker()
    window = FakeWindow()
    visibility = FakeVisibility(hidden)
    finalizer = RecordingFinalizer()
    controller = SessionController.for_page(
        window,
        context=SessionContext(document_id="doc-1", viewport_width=1280, viewport_height=800),
        clock=clock,
        store=InMemoryKeyValueStore(),
        finalizer=finalizer,
        visibility=visibility,
        ticker=ticker,
        config=SessionConfig(),
    )
    return Harness(clock, ticker, window, visibility, finalizer, controller)


def raw(session_id: str, **overrides) -> RawSession:
    values = {
        "session_id": session_id,
        "browser_id": f"browser_{session_id}",
        "document_id": "doc-1",
        "start_time": 1_767_225_600_000,
        "end_time": 1_767_225_660_000,
        "duration": 60,
    }
    values.update(overrides)
    return RawSession(**values)


# --- Tracking ---


@pytest.mark.parametrize("seed", SEEDS)
def test_reach_never_decreases(seed):
    rng = random.Random(seed)
    h = make_harness()
    h.controller.start()

    previous = h.controller.max_scroll_percentage
    for _ in range(200):
        h.window.scroll_y = rng.uniform(-50, 4500)
        h.clock.advance(rng.randint(0, 300))
        h.controller.on_scroll()
        current = h.controller.max_scroll_percentage
        assert current >= previous
        assert 0 <= current <= 100
        previous = current


@pytest.mark.parametrize("seed", SEEDS)
def test_hidden_time_is_excluded(seed):
    rng = random.Random(seed)
    h = make_harness()
    h.controller.start()

    hidden_ms = 0
    for _ in range(8):
        h.tick(rng.randint(1, 5))
        h.hide()
        pause = rng.randint(500, 20_000)
        h.clock.advance(pause)
        hidden_ms += pause
        h.show()
    h.tick(1)

    finalized = h.controller.stop()

    elapsed = finalized.end_time - finalized.start_time
    expected = min(elapsed - hidden_ms, 90_000)
    assert finalized.active_ms == expected


@pytest.mark.parametrize("seed", SEEDS)
def test_dwell_histogram_within_active_time(seed):
    rng = random.Random(seed)
    h = make_harness()
    h.controller.start()

    for _ in range(150):
        action = rng.random()
        if action < 0.5:
            h.window.scroll_y = rng.uniform(0, 4000)
            h.clock.advance(rng.randint(0, 400))
            h.controller.on_scroll()
        elif action < 0.8:
            h.tick()
        elif h.visibility.hidden:
            h.clock.advance(rng.randint(0, 3000))
            h.show()
        else:
            h.hide()
        if h.controller.result is not None:
            break

    finalized = h.controller.result or h.controller.stop()

    assert sum(finalized.dwell_time.values()) <= finalized.active_ms
    assert set(finalized.dwell_time) == {f"{n}-{n + 10}" for n in range(0, 100, 10)}


def test_active_time_capped_with_ticks():
    h = make_harness()
    h.controller.start()

    h.tick(600)

    finalized = h.finalizer.sessions[0]
    assert finalized.active_ms == 90_000
    assert sum(finalized.dwell_time.values()) <= 90_000


def test_active_time_capped_without_ticks():
    h = make_harness()
    h.controller.start()

    h.clock.advance(15 * 60 * 1000)
    h.window.scroll_y = 1000
    h.controller.on_scroll()

    assert len(h.finalizer.sessions) == 1
    assert h.finalizer.sessions[0].active_ms == 90_000


@pytest.mark.parametrize("seed", SEEDS)
def test_thread_ticks_interleaved_with_scrolls_flush_once(seed):
    rng = random.Random(seed)
    window = FakeWindow()
    finalizer = RecordingFinalizer()
    controller = SessionController.for_page(
        window,
        context=SessionContext(document_id="doc-1"),
        clock=SystemClock(),
        store=InMemoryKeyValueStore(),
        finalizer=finalizer,
        ticker=ThreadTicker(),
        config=SessionConfig(tick_interval_ms=1, track_pixel_bins=False),
    )
    controller.start()

    deadline = time.monotonic() + 0.2
    while time.monotonic() < deadline:
        window.scroll_y = rng.uniform(0, 4000)
        controller.on_scroll()

    finalized = controller.on_unload()

    assert finalized is not None
    assert finalizer.sessions == [finalized]
    assert sum(finalized.dwell_time.values()) <= finalized.active_ms
    assert controller.on_unload() is None


def test_starts_hidden_counts_only_visible_span():
    h = make_harness(hidden=True)
    h.controller.start()

    h.clock.advance(3000)
    h.show()
    h.tick(10)
    h.hide()
    h.clock.advance(5000)
    finalized = h.controller.on_unload()

    assert finalized.active_ms == 10_000
    assert sum(finalized.dwell_time.values()) == 10_000


# --- Aggregation ---


def test_aggregation_is_idempotent():
    sessions = [
        raw("a", duration=12.5, max_scroll_percentage=33.3, referrer="https://x.example/"),
        raw("b", duration=0.1, max_scroll_percentage=99.9, timezone="America/New_York"),
        raw("c", duration=7.25, cta_clicks=3, viewport={"width": 800, "height": 600}),
    ]

    first = compute_document_analytics("doc-1", 7, sessions)
    second = compute_document_analytics("doc-1", 7, list(reversed(sessions)))

    assert first.model_dump_json() == second.model_dump_json()


def test_zero_sessions_are_well_formed():
    analytics = compute_document_analytics("doc-1", 30, [])
    wire = analytics.to_wire()

    assert wire["totalSessions"] == 0
    assert wire["referrerDomains"] == []
    assert wire["dailyStats"] == []
    assert wire["scrollDepthBuckets"] == {
        "depth_0_25": 0,
        "depth_25_50": 0,
        "depth_50_75": 0,
        "depth_75_100": 0,
    }
    assert wire["deviceBreakdown"] == {"mobile": 0, "tablet": 0, "desktop": 0}


@pytest.mark.parametrize(
    ("width", "expected"),
    [(767, "mobile"), (768, "tablet"), (1023, "tablet"), (1024, "desktop")],
)
def test_device_boundaries(width, expected):
    assert classify_device(width) == expected


def test_three_session_breakdown():
    sessions = [
        raw("a", duration=5, max_scroll_percentage=10),
        raw("b", duration=200, max_scroll_percentage=95),
        raw("c", duration=300, max_scroll_percentage=60),
    ]

    analytics = compute_document_analytics("doc-1", 7, sessions)

    assert analytics.bounced_sessions == 1
    assert analytics.completed_sessions == 1
    assert analytics.scroll_depth_buckets.depth_0_25 == 1
    assert analytics.scroll_depth_buckets.depth_25_50 == 0
    assert analytics.scroll_depth_buckets.depth_50_75 == 1
    assert analytics.scroll_depth_buckets.depth_75_100 == 1


def test_pixel_bins_merge_and_shade():
    bins = [
        PixelBin(y=0, time_spent=10),
        PixelBin(y=0, time_spent=5),
        PixelBin(y=25, time_spent=20),
    ]

    merged = merge_pixel_bins(bins)
    bands = {b.y: b for b in compute_bands(merged)}

    assert [(b.y, b.time_spent) for b in merged] == [(0, 15), (25, 20)]
    assert bands[25].alpha > bands[0].alpha
