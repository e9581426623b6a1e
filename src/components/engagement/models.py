"""
Engagement component input/output models.

The derived records themselves (DocumentAnalytics, ScrollDepthRow,
ParagraphEngagement, VisitorJourney, LeadWatchTime) are wire entities in
src.core.entities; this module holds the component envelopes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from src.core.entities import (
    DocumentAnalytics,
    DocumentStructure,
    LeadWatchTime,
    ParagraphEngagement,
    ParagraphSpan,
    PixelBin,
    RawSession,
    ScrollDepthRow,
    VisitorJourney,
)

# --- Classification Types ---

DeviceClass = Literal["mobile", "tablet", "desktop"]
ReachBand = Literal["depth_0_25", "depth_25_50", "depth_50_75", "depth_75_100"]
EngagementLevel = Literal["low", "medium", "high"]


# --- Configuration ---


@dataclass(frozen=True)
class AggregationConfig:
    """Aggregation thresholds (mirrors the aggregation rules)."""

    default_window_days: int = 7
    allowed_windows: tuple[int, ...] = (7, 30, 90)
    bounce_threshold_seconds: float = 10
    completion_threshold_percent: float = 90
    tablet_min_width: int = 768
    desktop_min_width: int = 1024
    default_timezone: str = "UTC"
    journey_medium_min: float = 3
    journey_high_min: float = 7
    words_per_minute: int = 200
    max_scroll_events: int = 1000
    max_pixel_bins: int = 5000


# --- Validation Error ---


@dataclass(frozen=True)
class EngagementValidationError:
    """Engagement validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class IngestSessionInput:
    """A raw session arriving from the transport (normal or beacon path)."""

    session: RawSession


@dataclass(frozen=True)
class RefreshAnalyticsInput:
    """Recompute and persist the snapshot for one document and window."""

    document_id: str
    window_days: int | None = None


@dataclass(frozen=True)
class QuerySnapshotInput:
    """Read the last persisted snapshot without recomputing."""

    document_id: str
    window_days: int | None = None


@dataclass(frozen=True)
class QueryHeatmapInput:
    document_id: str
    window_days: int | None = None


@dataclass(frozen=True)
class StoreParagraphsInput:
    """Replace the paragraph layout of a document."""

    document_id: str
    paragraphs: list[ParagraphSpan] = field(default_factory=list)


@dataclass(frozen=True)
class QueryParagraphsInput:
    document_id: str
    window_days: int | None = None


@dataclass(frozen=True)
class QueryJourneysInput:
    window_days: int | None = None
    limit: int | None = None


@dataclass(frozen=True)
class QueryLeadWatchTimeInput:
    document_id: str
    email: str


# --- Output Models ---


@dataclass(frozen=True)
class IngestSessionOutput:
    session_id: str | None
    stored: bool = False
    duplicate: bool = False
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class AnalyticsOutput:
    analytics: DocumentAnalytics | None
    updated_at: datetime | None = None
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class HeatmapOutput:
    document_id: str
    window_days: int
    total_sessions: int = 0
    scroll_depth: list[ScrollDepthRow] = field(default_factory=list)
    pixel_bins: list[PixelBin] = field(default_factory=list)
    dwell_time: dict[str, int] = field(default_factory=dict)
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class StoreParagraphsOutput:
    document_id: str
    count: int = 0
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ParagraphsOutput:
    document_id: str
    window_days: int
    total_sessions: int = 0
    paragraphs: list[ParagraphEngagement] = field(default_factory=list)
    structure: DocumentStructure | None = None
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class JourneysOutput:
    window_days: int
    journeys: list[VisitorJourney] = field(default_factory=list)
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class LeadWatchTimeOutput:
    watch_time: LeadWatchTime | None
    errors: list[EngagementValidationError] = field(default_factory=list)
    success: bool = True
