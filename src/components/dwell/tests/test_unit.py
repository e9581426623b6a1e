"""
Unit tests for Dwell component.
"""

from __future__ import annotations

import pytest

from ..component import (
    DwellBucketer,
    PixelBinTracker,
    bin_weight,
    decile_of,
    empty_histogram,
    range_key,
)
from ..models import DWELL_RANGES, PixelBinConfig


# --- Test Fixtures ---


class FakeClock:
    def __init__(self, now_ms: int = 0):
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(10_000)


# --- Pure Function Tests ---


class TestDecileOf:
    """Test decile mapping."""

    @pytest.mark.parametrize(
        ("percentage", "expected"),
        [(0, 0), (9.99, 0), (10, 10), (45.5, 40), (89.9, 80), (90, 90), (99.9, 90), (100, 90)],
    )
    def test_decile_boundaries(self, percentage: float, expected: int) -> None:
        assert decile_of(percentage) == expected

    def test_out_of_range_is_clamped(self) -> None:
        assert decile_of(-5) == 0
        assert decile_of(130) == 90

    def test_range_key(self) -> None:
        assert range_key(0) == "0-10"
        assert range_key(90) == "90-100"

    def test_empty_histogram_has_all_keys(self) -> None:
        hist = empty_histogram()
        assert tuple(hist) == DWELL_RANGES
        assert set(hist.values()) == {0}


class TestBinWeight:
    """Test centre-weighted bin scoring."""

    def test_weights(self) -> None:
        assert bin_weight(0) == 0.75
        assert bin_weight(100) == 0.75
        assert bin_weight(150) == 0.5
        assert bin_weight(200) == 0.5
        assert bin_weight(201) == 0.25


# --- DwellBucketer Tests ---


class TestDwellBucketer:
    """Test decile attribution rules."""

    def test_tick_attributes_to_current_decile(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(5)
        clock.advance(1000)
        bucketer.on_tick(5)
        assert bucketer.histogram()["0-10"] == 1000

    def test_change_attributes_to_previous_decile(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(0)
        clock.advance(700)
        bucketer.on_sample(35)
        clock.advance(300)
        bucketer.on_tick(35)

        hist = bucketer.histogram()
        assert hist["0-10"] == 700
        assert hist["30-40"] == 300
        assert bucketer.current_decile == 30

    def test_sample_without_change_does_not_attribute(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(12)
        clock.advance(400)
        bucketer.on_sample(18)
        assert bucketer.total_ms == 0
        clock.advance(600)
        bucketer.on_tick(18)
        assert bucketer.histogram()["10-20"] == 1000

    def test_paused_time_is_not_attributed(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(50)
        clock.advance(1000)
        bucketer.pause()
        clock.advance(30_000)
        bucketer.on_tick(50)
        bucketer.on_sample(90)
        bucketer.resume()
        clock.advance(500)
        hist = bucketer.finish()

        assert hist["50-60"] == 1500
        assert sum(hist.values()) == 1500

    def test_start_paused(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(0, paused=True)
        clock.advance(3000)
        bucketer.resume()
        clock.advance(2000)
        assert bucketer.finish()["0-10"] == 2000

    def test_limit_caps_total(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock, limit_ms=90_000)
        bucketer.start(0)
        for _ in range(120):
            clock.advance(1000)
            bucketer.on_tick(0)
        assert bucketer.finish()["0-10"] == 90_000

    def test_finish_is_terminal(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(0)
        clock.advance(1000)
        bucketer.finish()
        clock.advance(5000)
        bucketer.on_tick(0)
        assert bucketer.finish()["0-10"] == 1000

    def test_full_depth_lands_in_last_bucket(self, clock: FakeClock) -> None:
        bucketer = DwellBucketer(clock)
        bucketer.start(100)
        clock.advance(1000)
        assert bucketer.finish()["90-100"] == 1000


# --- PixelBinTracker Tests ---


class TestPixelBinTracker:
    """Test pixel-bin layout and crediting."""

    def test_layout_covers_document(self, clock: FakeClock) -> None:
        tracker = PixelBinTracker(clock)
        tracker.layout(1010)
        assert tracker.bin_count == 41
        bins = tracker.bins(include_empty=True)
        assert bins[0].y == 0
        assert bins[-1].y == 1000

    def test_credits_visible_bins_by_distance(self, clock: FakeClock) -> None:
        tracker = PixelBinTracker(clock)
        tracker.layout(2000)
        clock.advance(1000)
        tracker.on_tick(scroll_y=0, viewport_height=500)

        scores = {b.y: b.time_spent for b in tracker.bins()}
        # Viewport centre is 250px.
        assert scores[225] == 750.0
        assert scores[100] == 500.0
        assert scores[0] == 250.0
        assert 500 not in scores
        assert max(scores) == 475

    def test_hidden_time_is_not_credited(self, clock: FakeClock) -> None:
        tracker = PixelBinTracker(clock)
        tracker.layout(1000)
        tracker.pause()
        clock.advance(5000)
        tracker.on_tick(0, 500)
        assert tracker.bins() == []

        tracker.resume()
        clock.advance(1000)
        tracker.on_tick(0, 500)
        assert tracker.bins()

    def test_custom_bin_size(self, clock: FakeClock) -> None:
        tracker = PixelBinTracker(clock, PixelBinConfig(bin_size=100))
        tracker.layout(1000)
        assert tracker.bin_count == 10
