"""
Session component models.

State machine: idle -> tracking -> stopped (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.components.dwell import BinScore
from src.components.scroll import ScrollSample

# --- State Machine ---


class SessionState(Enum):
    """
    Session lifecycle state.

    State transitions:
    - idle -> tracking (start)
    - idle -> stopped (torn down before start; nothing is flushed)
    - tracking -> stopped (cap reached, explicit stop, unmount, unload)
    """

    IDLE = "idle"
    TRACKING = "tracking"
    STOPPED = "stopped"


TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.TRACKING, SessionState.STOPPED},
    SessionState.TRACKING: {SessionState.STOPPED},
    SessionState.STOPPED: set(),  # Terminal state
}


def can_transition(from_state: SessionState, to_state: SessionState) -> bool:
    return to_state in TRANSITIONS.get(from_state, set())


class StopReason(Enum):
    CAP_REACHED = "cap_reached"
    EXPLICIT = "explicit"
    UNMOUNT = "unmount"
    UNLOAD = "unload"


# --- Configuration ---


@dataclass(frozen=True)
class SessionConfig:
    """Tracking settings for one session (mirrors the tracking rules)."""

    cap_seconds: int = 90
    tick_interval_ms: int = 1000
    scroll_throttle_ms: int = 100
    container_event_limit: int = 100
    device_id_key: str = "heatmagnet_browser_id"
    pixel_bin_size: int = 25
    track_pixel_bins: bool = True

    @property
    def cap_ms(self) -> int:
        return self.cap_seconds * 1000


# --- Session Records ---


@dataclass(frozen=True)
class SessionContext:
    """Who and where: everything known about the page view up front."""

    document_id: str
    user_id: str | None = None
    email: str | None = None
    user_agent: str = ""
    referrer: str | None = None
    viewport_width: int = 0
    viewport_height: int = 0
    timezone: str | None = None


@dataclass(frozen=True)
class FinalizedSession:
    """Everything the tracker measured, frozen at stop time."""

    session_id: str
    browser_id: str
    context: SessionContext
    start_time: int  # epoch ms
    end_time: int  # epoch ms
    active_ms: int
    max_scroll_percentage: float
    scroll_event_count: int
    stop_reason: StopReason
    scroll_events: list[ScrollSample] = field(default_factory=list)
    dwell_time: dict[str, int] = field(default_factory=dict)
    pixel_bins: list[BinScore] = field(default_factory=list)
    cta_clicks: int = 0
