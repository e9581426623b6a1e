"""
Activity component - Active (tab-visible) time tracking.

Active time is wall-clock elapsed since start minus the total time spent
hidden. The tracker is a small state machine driven by visibility-change
events; it never blocks and holds no timers of its own.

Key behaviors:
- visible -> hidden records the pause start instant
- hidden -> visible adds (now - pause start) to cumulative paused time
- while hidden, active_ms() returns a frozen value
- without a visibility source the tracker degrades to "always visible"

Invariants:
- active_ms() is never negative and never decreases
"""

from __future__ import annotations

import logging

from .models import ActivitySnapshot
from .ports import ClockPort, VisibilitySourcePort

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def compute_active_ms(
    start_ms: int,
    now_ms: int,
    paused_ms: int,
    pause_started_at_ms: int | None = None,
) -> int:
    """
    Compute active milliseconds.

    When a pause is in progress the clock is read at the pause start, so the
    value is frozen until the tab becomes visible again.
    """
    end_ms = pause_started_at_ms if pause_started_at_ms is not None else now_ms
    return max(0, end_ms - start_ms - paused_ms)


# --- Tracker ---


class ActiveTimeTracker:
    """
    Tracks active time for one session.

    Args:
        clock: Clock port (epoch ms)
        visibility: Optional visibility source. When None, the page is
            treated as always visible and visibility events are ignored.
    """

    def __init__(
        self,
        clock: ClockPort,
        visibility: VisibilitySourcePort | None = None,
    ) -> None:
        self._clock = clock
        self._visibility = visibility
        self._start_ms: int | None = None
        self._paused_ms = 0
        self._pause_started_at_ms: int | None = None

    @property
    def started(self) -> bool:
        return self._start_ms is not None

    @property
    def start_ms(self) -> int | None:
        return self._start_ms

    @property
    def is_visible(self) -> bool:
        return self._pause_started_at_ms is None

    @property
    def has_visibility_source(self) -> bool:
        return self._visibility is not None

    def start(self) -> int:
        """Start (or restart) tracking. Returns the start instant."""
        now = self._clock.now_ms()
        self._start_ms = now
        self._paused_ms = 0
        self._pause_started_at_ms = None

        if self._visibility is not None and self._visibility.is_hidden():
            # Tab opened in the background.
            self._pause_started_at_ms = now
            logger.debug("Tracking started hidden at %d", now)
        return now

    def on_visibility_change(self, hidden: bool) -> bool:
        """
        Apply a visibility change.

        Returns True when the tracker changed state, False for repeated
        events in the same direction or when tracking has not started.
        """
        if self._start_ms is None or self._visibility is None:
            return False

        now = self._clock.now_ms()
        if hidden:
            if self._pause_started_at_ms is not None:
                return False
            self._pause_started_at_ms = now
            return True

        if self._pause_started_at_ms is None:
            return False
        self._paused_ms += max(0, now - self._pause_started_at_ms)
        self._pause_started_at_ms = None
        return True

    def active_ms(self) -> int:
        if self._start_ms is None:
            return 0
        return compute_active_ms(
            self._start_ms,
            self._clock.now_ms(),
            self._paused_ms,
            self._pause_started_at_ms,
        )

    def paused_ms(self) -> int:
        """Total hidden time, including an in-progress pause."""
        if self._pause_started_at_ms is None:
            return self._paused_ms
        return self._paused_ms + max(0, self._clock.now_ms() - self._pause_started_at_ms)

    def snapshot(self) -> ActivitySnapshot:
        return ActivitySnapshot(
            started_at_ms=self._start_ms,
            active_ms=self.active_ms(),
            paused_ms=self.paused_ms(),
            is_visible=self.is_visible,
            pause_started_at_ms=self._pause_started_at_ms,
        )
