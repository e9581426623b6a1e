"""
Dwell component - Attribution of active time to scroll-depth regions.

Two instruments live here:

DwellBucketer keeps a ten-bucket histogram keyed by scroll decile
("0-10" ... "90-100"). Every scroll sample and every periodic tick may
attribute the milliseconds elapsed since the last attribution instant:
- decile changed: elapsed goes to the previous decile, then the tracked
  decile switches
- tick without change: elapsed goes to the current decile
- sample without change: nothing is attributed

PixelBinTracker lays fixed-height bins over the document and, on each
tick while visible, credits every bin overlapping the viewport with
elapsed_ms * weight, the weight falling off with distance from the
viewport centre.

Invariants:
- every histogram key is always present (zero-filled)
- hidden intervals are never attributed (pause/resume)
- attributed total never exceeds limit_ms when one is given
"""

from __future__ import annotations

import logging
import math

from .models import DWELL_RANGES, BinScore, PixelBinConfig
from .ports import ClockPort

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def decile_of(percentage: float) -> int:
    """
    Map a scroll percentage to its decile floor (0, 10, ..., 90).

    100% belongs to the last decile.
    """
    clamped = max(0.0, min(100.0, percentage))
    return min(int(math.floor(clamped / 10)) * 10, 90)


def range_key(decile: int) -> str:
    """Histogram key for a decile, e.g. 30 -> "30-40"."""
    return f"{decile}-{decile + 10}"


def empty_histogram() -> dict[str, int]:
    return {key: 0 for key in DWELL_RANGES}


def bin_weight(distance_px: float, config: PixelBinConfig | None = None) -> float:
    """Weight for a bin whose centre is distance_px from the viewport centre."""
    config = config or PixelBinConfig()
    if distance_px <= config.near_px:
        return config.near_weight
    if distance_px <= config.mid_px:
        return config.mid_weight
    return config.far_weight


# --- Dwell Bucketer ---


class DwellBucketer:
    """
    Decile dwell-time histogram for one session.

    Args:
        clock: Clock port (epoch ms)
        limit_ms: Optional ceiling on the total attributed time (the
            session cap)
    """

    def __init__(self, clock: ClockPort, limit_ms: int | None = None) -> None:
        self._clock = clock
        self._limit_ms = limit_ms
        self._histogram = empty_histogram()
        self._decile = 0
        self._last_ms: int | None = None
        self._running = False
        self._paused = False

    @property
    def current_decile(self) -> int:
        return self._decile

    @property
    def total_ms(self) -> int:
        return sum(self._histogram.values())

    def start(self, percentage: float = 0.0, paused: bool = False) -> None:
        self._histogram = empty_histogram()
        self._decile = decile_of(percentage)
        self._running = True
        self._paused = paused
        self._last_ms = None if paused else self._clock.now_ms()

    def on_sample(self, percentage: float) -> None:
        """Scroll sample: attribute only when the decile changes."""
        if not self._accepting():
            return
        new_decile = decile_of(percentage)
        if new_decile != self._decile:
            self._attribute_elapsed()
            self._decile = new_decile

    def on_tick(self, percentage: float | None = None) -> None:
        """Periodic tick: attribute elapsed to the previous or current decile."""
        if not self._accepting():
            return
        self._attribute_elapsed()
        if percentage is not None:
            self._decile = decile_of(percentage)

    def pause(self) -> None:
        """Tab hidden: close the open interval at the current decile."""
        if not self._accepting():
            return
        self._attribute_elapsed()
        self._paused = True
        self._last_ms = None

    def resume(self, percentage: float | None = None) -> None:
        if not self._running or not self._paused:
            return
        self._paused = False
        self._last_ms = self._clock.now_ms()
        if percentage is not None:
            self._decile = decile_of(percentage)

    def finish(self) -> dict[str, int]:
        """Close the open interval and stop. Returns the final histogram."""
        if self._accepting():
            self._attribute_elapsed()
        self._running = False
        self._last_ms = None
        return self.histogram()

    def histogram(self) -> dict[str, int]:
        return dict(self._histogram)

    def _accepting(self) -> bool:
        return self._running and not self._paused

    def _attribute_elapsed(self) -> None:
        now = self._clock.now_ms()
        if self._last_ms is None:
            self._last_ms = now
            return
        elapsed = max(0, now - self._last_ms)
        self._last_ms = now

        if self._limit_ms is not None:
            elapsed = min(elapsed, max(0, self._limit_ms - self.total_ms))
        if elapsed:
            self._histogram[range_key(self._decile)] += elapsed


# --- Pixel Bins ---


class PixelBinTracker:
    """
    Weighted per-band attention over the whole document.

    Args:
        clock: Clock port (epoch ms)
        config: Bin size and weighting
    """

    def __init__(self, clock: ClockPort, config: PixelBinConfig | None = None) -> None:
        self._clock = clock
        self._config = config or PixelBinConfig()
        self._scores: list[float] = []
        self._last_ms: int | None = None
        self._paused = False

    @property
    def bin_count(self) -> int:
        return len(self._scores)

    def layout(self, document_height: float, paused: bool = False) -> None:
        """Lay out bins covering document_height and start the clock."""
        count = max(0, math.ceil(document_height / self._config.bin_size))
        self._scores = [0.0] * count
        self._paused = paused
        self._last_ms = None if paused else self._clock.now_ms()
        logger.debug("Laid out %d pixel bins for %.0fpx", count, document_height)

    def on_tick(self, scroll_y: float, viewport_height: float) -> None:
        """Credit visible bins with the time elapsed since the last tick."""
        if self._paused or not self._scores:
            return
        now = self._clock.now_ms()
        if self._last_ms is None:
            self._last_ms = now
            return
        elapsed = max(0, now - self._last_ms)
        self._last_ms = now
        if not elapsed:
            return

        size = self._config.bin_size
        view_start = scroll_y
        view_end = scroll_y + viewport_height
        centre = scroll_y + viewport_height / 2

        for index in range(len(self._scores)):
            bin_start = index * size
            bin_end = bin_start + size
            if bin_start < view_end and bin_end > view_start:
                distance = abs(bin_start + size / 2 - centre)
                self._scores[index] += elapsed * bin_weight(distance, self._config)

    def pause(self, scroll_y: float | None = None, viewport_height: float | None = None) -> None:
        if scroll_y is not None and viewport_height is not None:
            self.on_tick(scroll_y, viewport_height)
        self._paused = True
        self._last_ms = None

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        self._last_ms = self._clock.now_ms()

    def bins(self, include_empty: bool = False) -> list[BinScore]:
        size = self._config.bin_size
        return [
            BinScore(y=index * size, time_spent=score)
            for index, score in enumerate(self._scores)
            if include_empty or score > 0
        ]
