"""
Scroll component - Throttled scroll sampling.

Key behaviors:
- percentage = clamp(0, 100, position / (scrollable - viewport) * 100)
- content that does not scroll reports 0%
- at most one sample per throttle window (default 100 ms)
- no-op while the tab is hidden
- page strategy keeps every sample until drained at flush; the container
  strategy keeps only the most recent N (default 100)

Invariants:
- max_percentage never decreases
"""

from __future__ import annotations

from collections import deque

from .models import SamplerConfig, ScrollReading, ScrollSample
from .ports import (
    ClockPort,
    PageWindowPort,
    ScrollContainerPort,
    ScrollSourcePort,
    VisibilityStatePort,
)


DEFAULT_THROTTLE_MS = 100
DEFAULT_CONTAINER_EVENT_LIMIT = 100


# --- Pure Functions (Functional Core) ---


def scroll_percentage(position: float, scrollable: float, viewport: float) -> float:
    """
    Normalize a scroll position to 0-100.

    Args:
        position: Scroll offset from the top
        scrollable: Total content extent
        viewport: Visible extent

    Returns:
        Percentage clamped to [0, 100]; 0 when the content does not scroll
    """
    travel = scrollable - viewport
    if travel <= 0:
        return 0.0
    return max(0.0, min(100.0, position * 100 / travel))


# --- Sources ---


class PageScrollSource:
    """Reads window scroll offset, inner height and document height."""

    def __init__(self, window: PageWindowPort) -> None:
        self._window = window

    def read(self) -> ScrollReading:
        return ScrollReading(
            position=self._window.scroll_y,
            viewport_extent=self._window.inner_height,
            scrollable_extent=self._window.document_height,
        )


class ContainerScrollSource:
    """Reads scroll top, client height and scroll height of a container."""

    def __init__(self, container: ScrollContainerPort) -> None:
        self._container = container

    def read(self) -> ScrollReading:
        return ScrollReading(
            position=self._container.scroll_top,
            viewport_extent=self._container.client_height,
            scrollable_extent=self._container.scroll_height,
        )


# --- Sampler ---


class ScrollSampler:
    """
    Samples a scroll source on each scroll signal.

    Args:
        source: Where position and extents are read from
        clock: Clock port (epoch ms)
        visibility: Optional visibility state; sampling is skipped while
            it reports hidden. None means always visible.
        config: Throttle and event-log bound
    """

    def __init__(
        self,
        source: ScrollSourcePort,
        clock: ClockPort,
        visibility: VisibilityStatePort | None = None,
        config: SamplerConfig | None = None,
    ) -> None:
        self._source = source
        self._clock = clock
        self._visibility = visibility
        self._config = config or SamplerConfig()
        self._events: deque[ScrollSample] = deque(maxlen=self._config.event_limit)
        self._last_sample_ms: int | None = None
        self._max_percentage = 0.0
        self._current_percentage = 0.0
        self._sample_count = 0

    @property
    def max_percentage(self) -> float:
        return self._max_percentage

    @property
    def current_percentage(self) -> float:
        return self._current_percentage

    @property
    def sample_count(self) -> int:
        """Samples accepted since creation (not bounded by the event log)."""
        return self._sample_count

    @property
    def events(self) -> tuple[ScrollSample, ...]:
        return tuple(self._events)

    def sample(self) -> ScrollSample | None:
        """
        Handle one scroll signal.

        Returns the recorded sample, or None when the signal was throttled
        or the tab is hidden.
        """
        if self._visibility is not None and not self._visibility.is_visible:
            return None

        now = self._clock.now_ms()
        if (
            self._last_sample_ms is not None
            and now - self._last_sample_ms < self._config.throttle_ms
        ):
            return None

        reading = self._source.read()
        percentage = scroll_percentage(
            reading.position, reading.scrollable_extent, reading.viewport_extent
        )
        sample = ScrollSample(
            timestamp=now,
            scroll_y=max(0.0, reading.position),
            scroll_percentage=percentage,
            viewport_height=reading.viewport_extent,
            document_height=reading.scrollable_extent,
        )

        self._last_sample_ms = now
        self._current_percentage = percentage
        self._max_percentage = max(self._max_percentage, percentage)
        self._events.append(sample)
        self._sample_count += 1
        return sample

    def read(self) -> ScrollReading:
        return self._source.read()

    def drain_events(self) -> list[ScrollSample]:
        """Return and clear the event log (called once at flush)."""
        drained = list(self._events)
        self._events.clear()
        return drained


# --- Factories ---


def create_page_sampler(
    window: PageWindowPort,
    clock: ClockPort,
    visibility: VisibilityStatePort | None = None,
    throttle_ms: int = DEFAULT_THROTTLE_MS,
) -> ScrollSampler:
    """Whole-page sampler with an unbounded, flush-scoped event log."""
    return ScrollSampler(
        PageScrollSource(window),
        clock,
        visibility,
        SamplerConfig(throttle_ms=throttle_ms, event_limit=None),
    )


def create_container_sampler(
    container: ScrollContainerPort,
    clock: ClockPort,
    visibility: VisibilityStatePort | None = None,
    throttle_ms: int = DEFAULT_THROTTLE_MS,
    event_limit: int = DEFAULT_CONTAINER_EVENT_LIMIT,
) -> ScrollSampler:
    """Bounded-container sampler keeping the most recent samples only."""
    return ScrollSampler(
        ContainerScrollSource(container),
        clock,
        visibility,
        SamplerConfig(throttle_ms=throttle_ms, event_limit=event_limit),
    )
