"""
Scroll component models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScrollReading:
    """Raw position and extents read from a scroll source."""

    position: float
    viewport_extent: float
    scrollable_extent: float


@dataclass(frozen=True)
class ScrollSample:
    """One accepted (post-throttle) scroll sample."""

    timestamp: int
    scroll_y: float
    scroll_percentage: float
    viewport_height: float
    document_height: float


@dataclass(frozen=True)
class SamplerConfig:
    """Sampler tuning. event_limit None means unbounded (flush-scoped)."""

    throttle_ms: int = 100
    event_limit: int | None = None
