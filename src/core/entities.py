"""
Shared entities for the engagement engine.

These are the records that cross a process boundary: the raw session the
client tracker flushes, and the analytics snapshot the server derives from
raw sessions. Wire names are camelCase (the browser client's shape); Python
attributes are snake_case. Both spellings are accepted on input.

Invariants:
- RawSession.max_scroll_percentage is within 0-100
- RawSession.duration is active seconds (tab visible only), never negative
- RawSession.dwell_time always carries the ten decile keys
- DocumentAnalytics carries no timestamps so recomputation is bit-identical
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "DWELL_RANGES",
    "DailyStat",
    "DeviceBreakdown",
    "DocumentAnalytics",
    "DocumentStructure",
    "LeadWatchTime",
    "ParagraphEngagement",
    "ParagraphSpan",
    "PixelBin",
    "RawSession",
    "ReferrerCount",
    "ScrollDepthBuckets",
    "ScrollDepthRow",
    "ScrollEvent",
    "Viewport",
    "VisitorJourney",
    "WireModel",
    "zero_filled_histogram",
]


DWELL_RANGES: tuple[str, ...] = tuple(f"{n}-{n + 10}" for n in range(0, 100, 10))


def zero_filled_histogram(values: dict[str, int] | None = None) -> dict[str, int]:
    """Return a dwell histogram with every decile key present."""
    values = values or {}
    return {key: int(values.get(key, 0)) for key in DWELL_RANGES}


class WireModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict:
        """Dump using wire (camelCase) names."""
        return self.model_dump(by_alias=True, mode="json")


# --- Raw Session ---


class Viewport(WireModel):
    """Viewport dimensions at flush time, in CSS pixels."""

    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)


class ScrollEvent(WireModel):
    """A single scroll sample as captured by the client."""

    timestamp: int
    scroll_y: float = Field(0, ge=0)
    scroll_percentage: float = Field(0, ge=0, le=100)
    viewport_height: float = Field(0, ge=0)
    document_height: float = Field(0, ge=0)


class PixelBin(WireModel):
    """Accumulated attention for one fixed-height vertical band of the page."""

    y: int = Field(..., ge=0)
    time_spent: float = Field(0, ge=0)


class RawSession(WireModel):
    """
    One visitor's observation window on one content item.

    Created in memory when tracking starts and persisted once, at session
    end. Never updated after persistence.
    """

    session_id: str = Field(..., min_length=1, max_length=200)
    browser_id: str = Field(..., min_length=1, max_length=200)
    document_id: str = Field(..., min_length=1, max_length=200)
    user_id: str | None = None
    email: str | None = None

    start_time: int = Field(..., ge=0)  # epoch ms
    end_time: int = Field(..., ge=0)  # epoch ms
    duration: float = Field(..., ge=0)  # active seconds

    max_scroll_percentage: float = Field(0, ge=0, le=100)
    scroll_event_count: int = Field(0, ge=0)
    scroll_events: list[ScrollEvent] | None = None

    user_agent: str = ""
    referrer: str | None = None
    viewport: Viewport = Field(default_factory=Viewport)
    timezone: str | None = None

    dwell_time: dict[str, int] = Field(default_factory=zero_filled_histogram)
    pixel_bins: list[PixelBin] = Field(default_factory=list)
    cta_clicks: int = Field(0, ge=0)

    @field_validator("dwell_time")
    @classmethod
    def _fill_dwell_time(cls, value: dict[str, int]) -> dict[str, int]:
        unknown = set(value) - set(DWELL_RANGES)
        if unknown:
            raise ValueError(f"unknown dwell ranges: {sorted(unknown)}")
        if any(v < 0 for v in value.values()):
            raise ValueError("dwell time cannot be negative")
        return zero_filled_histogram(value)

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, value: int, info: ValidationInfo) -> int:
        start = info.data.get("start_time")
        if start is not None and value < start:
            raise ValueError("endTime must not precede startTime")
        return value


# --- Document Analytics ---


class ScrollDepthBuckets(WireModel):
    """Session counts per reach band."""

    depth_0_25: int = Field(0, alias="depth_0_25")
    depth_25_50: int = Field(0, alias="depth_25_50")
    depth_50_75: int = Field(0, alias="depth_50_75")
    depth_75_100: int = Field(0, alias="depth_75_100")


class DeviceBreakdown(WireModel):
    """Session counts per viewport-width class."""

    mobile: int = 0
    tablet: int = 0
    desktop: int = 0


class ReferrerCount(WireModel):
    domain: str
    count: int


class DailyStat(WireModel):
    """Per-day rollup keyed by the visitor's local calendar date."""

    date: str
    sessions: int
    unique_visitors: int
    average_time_spent: float
    average_scroll_depth: float
    cta_clicks: int = 0


class DocumentAnalytics(WireModel):
    """
    Derived snapshot for one content item over one lookback window.

    Fully recomputed on every request; never patched incrementally.
    """

    document_id: str
    time_range: int  # lookback window in days
    total_sessions: int = 0
    unique_visitors: int = 0
    total_time_spent: float = 0
    total_scroll_events: int = 0
    completed_sessions: int = 0
    bounced_sessions: int = 0
    total_cta_clicks: int = 0
    cta_click_rate: float = 0
    scroll_depth_buckets: ScrollDepthBuckets = Field(default_factory=ScrollDepthBuckets)
    device_breakdown: DeviceBreakdown = Field(default_factory=DeviceBreakdown)
    referrer_domains: list[ReferrerCount] = Field(default_factory=list)
    daily_stats: list[DailyStat] = Field(default_factory=list)


# --- Heatmap and Paragraph Engagement ---


class ScrollDepthRow(WireModel):
    """How many sessions reached a given depth decile."""

    depth: int
    sessions_reached: int
    total_sessions: int
    reach_percentage: int


class ParagraphSpan(WireModel):
    """Where one paragraph sits in a document, as a scroll-percentage range."""

    paragraph_id: str = Field(..., min_length=1, max_length=200, alias="id")
    content: str = ""
    start_percentage: float = Field(..., ge=0, le=100)
    end_percentage: float = Field(..., ge=0, le=100)
    word_count: int = Field(0, ge=0)

    @field_validator("end_percentage")
    @classmethod
    def _end_after_start(cls, value: float, info: ValidationInfo) -> float:
        start = info.data.get("start_percentage")
        if start is not None and value < start:
            raise ValueError("endPercentage must not precede startPercentage")
        return value


class ParagraphEngagement(WireModel):
    paragraph_id: str = Field(..., alias="id")
    content: str
    start_percentage: float
    end_percentage: float
    sessions_reached: int
    sessions_completed: int
    completion_rate: float
    dropoff_rate: float
    engagement_score: int


class DocumentStructure(WireModel):
    total_paragraphs: int
    word_count: int
    estimated_reading_time: int  # minutes


# --- Visitors ---


class VisitorJourney(WireModel):
    """
    Cross-document activity of one device identifier.

    engagement_score is a provisional heuristic over average sessions per
    document; engagement_level keeps the fixed 3/7 thresholds.
    """

    browser_id: str
    documents_visited: list[str]
    total_sessions: int
    average_sessions_per_document: float
    total_time_spent: float
    engagement_level: str
    engagement_score: int
    first_seen: int  # epoch ms
    last_seen: int  # epoch ms


class LeadWatchTime(WireModel):
    document_id: str
    email: str
    total_watch_time: float
    last_watch_time: float
    last_watched_at: int | None  # epoch ms
    session_count: int
