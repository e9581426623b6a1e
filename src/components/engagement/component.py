"""
Engagement component - Aggregation of raw sessions into derived analytics.

Every query recomputes from raw sessions: the snapshot is a read-through
cache that is overwritten on each refresh, never patched.

Key behaviors:
- single-pass reduction per document: running sums, a set of browser ids,
  classification into device class, reach band and local date
- referrers reduced to hostnames; unparseable ones are dropped silently
- zero sessions yield zero-valued, well-formed outputs
- the same reduce-and-classify pattern produces scroll-depth rows, merged
  pixel bins, the dwell histogram, paragraph engagement, visitor journeys
  and lead watch time

Invariants:
- output is a pure function of the session set (input order does not matter)
- device classes: width < 768 mobile, < 1024 tablet, else desktop
- bounce: duration < 10 s; completed: reach >= 90%
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.core.entities import (
    DWELL_RANGES,
    DailyStat,
    DeviceBreakdown,
    DocumentAnalytics,
    DocumentStructure,
    LeadWatchTime,
    ParagraphEngagement,
    ParagraphSpan,
    PixelBin,
    RawSession,
    ReferrerCount,
    ScrollDepthBuckets,
    ScrollDepthRow,
    VisitorJourney,
)

from .models import (
    AggregationConfig,
    AnalyticsOutput,
    DeviceClass,
    EngagementLevel,
    EngagementValidationError,
    HeatmapOutput,
    IngestSessionInput,
    IngestSessionOutput,
    JourneysOutput,
    LeadWatchTimeOutput,
    ParagraphsOutput,
    QueryHeatmapInput,
    QueryJourneysInput,
    QueryLeadWatchTimeInput,
    QueryParagraphsInput,
    QuerySnapshotInput,
    ReachBand,
    RefreshAnalyticsInput,
    StoreParagraphsInput,
    StoreParagraphsOutput,
)
from .ports import (
    AnalyticsSnapshotRepoPort,
    DocumentStructurePort,
    SessionRepoPort,
    TimePort,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DAY_MS = 86_400_000

REACH_BANDS: tuple[ReachBand, ...] = (
    "depth_0_25",
    "depth_25_50",
    "depth_50_75",
    "depth_75_100",
)

HEATMAP_DEPTHS: tuple[int, ...] = tuple(range(0, 100, 10))


# --- Pure Functions (Functional Core) ---


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ordered(sessions: Iterable[RawSession]) -> list[RawSession]:
    """Canonical order so float sums do not depend on storage order."""
    return sorted(sessions, key=lambda s: (s.start_time, s.session_id))


def classify_device(width: int, config: AggregationConfig | None = None) -> DeviceClass:
    """
    Classify a viewport width.

    767 -> mobile, 768 -> tablet, 1023 -> tablet, 1024 -> desktop.
    """
    config = config or AggregationConfig()
    if width < config.tablet_min_width:
        return "mobile"
    if width < config.desktop_min_width:
        return "tablet"
    return "desktop"


def bucket_scroll_depth(percentage: float) -> ReachBand:
    """Map a reach percentage to one of four bands (<25, 25-50, 50-75, >=75)."""
    percentage = max(0.0, min(100.0, percentage))
    if percentage < 25:
        return "depth_0_25"
    elif percentage < 50:
        return "depth_25_50"
    elif percentage < 75:
        return "depth_50_75"
    else:
        return "depth_75_100"


def is_completed_session(session: RawSession, config: AggregationConfig | None = None) -> bool:
    config = config or AggregationConfig()
    return session.max_scroll_percentage >= config.completion_threshold_percent


def is_bounced_session(session: RawSession, config: AggregationConfig | None = None) -> bool:
    config = config or AggregationConfig()
    return session.duration < config.bounce_threshold_seconds


def extract_referrer_domain(referrer: str | None) -> str | None:
    """
    Hostname of a referrer URL.

    Returns None for empty or unparseable referrers; never raises.
    """
    if not referrer or not referrer.strip():
        return None
    try:
        parsed = urlparse(referrer.strip())
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    return hostname


def _zone(name: str | None, default_timezone: str) -> ZoneInfo:
    for candidate in (name, default_timezone, "UTC"):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown timezone %r", candidate)
    return ZoneInfo("UTC")


def session_local_date(
    start_ms: int,
    timezone: str | None = None,
    default_timezone: str = "UTC",
) -> str:
    """Visitor-local calendar date (YYYY-MM-DD) of a session start."""
    local = datetime.fromtimestamp(start_ms / 1000, tz=_zone(timezone, default_timezone))
    return local.date().isoformat()


def window_start_ms(now_ms: int, window_days: int) -> int:
    return now_ms - window_days * DAY_MS


def select_window(
    sessions: Iterable[RawSession],
    now_ms: int,
    window_days: int,
) -> list[RawSession]:
    """Sessions with start_time >= now - window."""
    since = window_start_ms(now_ms, window_days)
    return [s for s in sessions if s.start_time >= since]


@dataclass
class _DayTotals:
    sessions: int = 0
    browsers: set[str] = field(default_factory=set)
    total_time: float = 0.0
    total_scroll: float = 0.0
    cta_clicks: int = 0


def compute_document_analytics(
    document_id: str,
    window_days: int,
    sessions: Iterable[RawSession],
    config: AggregationConfig | None = None,
) -> DocumentAnalytics:
    """
    Reduce a window of sessions into a DocumentAnalytics snapshot.

    Total: zero sessions produce zero counts and empty collections.
    """
    config = config or AggregationConfig()
    ordered = _ordered(sessions)

    browsers: set[str] = set()
    total_time = 0.0
    total_scroll_events = 0
    completed = 0
    bounced = 0
    total_cta = 0
    sessions_with_cta = 0
    bands: dict[str, int] = dict.fromkeys(REACH_BANDS, 0)
    devices: dict[str, int] = {"mobile": 0, "tablet": 0, "desktop": 0}
    referrers: dict[str, int] = {}
    days: dict[str, _DayTotals] = {}

    for s in ordered:
        browsers.add(s.browser_id)
        total_time += s.duration
        total_scroll_events += s.scroll_event_count
        total_cta += s.cta_clicks
        if s.cta_clicks > 0:
            sessions_with_cta += 1
        if is_completed_session(s, config):
            completed += 1
        if is_bounced_session(s, config):
            bounced += 1

        bands[bucket_scroll_depth(s.max_scroll_percentage)] += 1
        devices[classify_device(s.viewport.width, config)] += 1

        domain = extract_referrer_domain(s.referrer)
        if domain is not None:
            referrers[domain] = referrers.get(domain, 0) + 1

        day = days.setdefault(
            session_local_date(s.start_time, s.timezone, config.default_timezone),
            _DayTotals(),
        )
        day.sessions += 1
        day.browsers.add(s.browser_id)
        day.total_time += s.duration
        day.total_scroll += s.max_scroll_percentage
        day.cta_clicks += s.cta_clicks

    total = len(ordered)
    return DocumentAnalytics(
        document_id=document_id,
        time_range=window_days,
        total_sessions=total,
        unique_visitors=len(browsers),
        total_time_spent=total_time,
        total_scroll_events=total_scroll_events,
        completed_sessions=completed,
        bounced_sessions=bounced,
        total_cta_clicks=total_cta,
        cta_click_rate=(sessions_with_cta / total * 100) if total else 0.0,
        scroll_depth_buckets=ScrollDepthBuckets(**bands),
        device_breakdown=DeviceBreakdown(**devices),
        referrer_domains=[
            ReferrerCount(domain=domain, count=count)
            for domain, count in sorted(referrers.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        daily_stats=[
            DailyStat(
                date=date,
                sessions=day.sessions,
                unique_visitors=len(day.browsers),
                average_time_spent=day.total_time / day.sessions,
                average_scroll_depth=day.total_scroll / day.sessions,
                cta_clicks=day.cta_clicks,
            )
            for date, day in sorted(days.items())
        ],
    )


def compute_scroll_heatmap(sessions: Iterable[RawSession]) -> list[ScrollDepthRow]:
    """
    One row per depth decile: how many sessions reached at least that depth.

    Empty when there are no sessions.
    """
    reaches = [s.max_scroll_percentage for s in sessions]
    total = len(reaches)
    if total == 0:
        return []

    rows = []
    for depth in HEATMAP_DEPTHS:
        reached = sum(1 for r in reaches if r >= depth)
        rows.append(
            ScrollDepthRow(
                depth=depth,
                sessions_reached=reached,
                total_sessions=total,
                reach_percentage=_round_half_up(reached / total * 100),
            )
        )
    return rows


def merge_pixel_bins(bins: Iterable[PixelBin]) -> list[PixelBin]:
    """Merge bins with equal y by summing time_spent. Sorted by y."""
    merged: dict[int, float] = {}
    for b in bins:
        merged[b.y] = merged.get(b.y, 0.0) + b.time_spent
    return [PixelBin(y=y, time_spent=merged[y]) for y in sorted(merged)]


def aggregate_dwell_histogram(sessions: Iterable[RawSession]) -> dict[str, int]:
    """Sum dwell histograms across sessions. All ten keys always present."""
    totals = dict.fromkeys(DWELL_RANGES, 0)
    for s in sessions:
        for key in DWELL_RANGES:
            totals[key] += s.dwell_time.get(key, 0)
    return totals


def compute_document_structure(
    paragraphs: list[ParagraphSpan],
    config: AggregationConfig | None = None,
) -> DocumentStructure:
    config = config or AggregationConfig()
    words = sum(p.word_count for p in paragraphs)
    return DocumentStructure(
        total_paragraphs=len(paragraphs),
        word_count=words,
        estimated_reading_time=math.ceil(words / config.words_per_minute) if words else 0,
    )


def compute_paragraph_engagement(
    paragraphs: list[ParagraphSpan],
    sessions: Iterable[RawSession],
) -> list[ParagraphEngagement]:
    """
    Per-paragraph reach and completion.

    A session reached a paragraph when its reach is at least the paragraph's
    start, and completed it when its reach is at least the paragraph's end.
    Sorted by engagement score, ties kept in document order.
    """
    reaches = [s.max_scroll_percentage for s in sessions]
    total = len(reaches)

    results = []
    for p in paragraphs:
        reached = sum(1 for r in reaches if r >= p.start_percentage)
        completed = sum(1 for r in reaches if r >= p.end_percentage)
        reach_rate = reached / total * 100 if total else 0.0
        completion_rate = completed / reached * 100 if reached else 0.0
        dropoff_rate = 100 - completion_rate if reached else 0.0
        results.append(
            ParagraphEngagement(
                paragraph_id=p.paragraph_id,
                content=p.content,
                start_percentage=p.start_percentage,
                end_percentage=p.end_percentage,
                sessions_reached=reached,
                sessions_completed=completed,
                completion_rate=round(completion_rate, 2),
                dropoff_rate=round(dropoff_rate, 2),
                engagement_score=_round_half_up((reach_rate + completion_rate) / 2),
            )
        )

    return sorted(results, key=lambda r: -r.engagement_score)


def classify_engagement_level(
    average_sessions_per_document: float,
    config: AggregationConfig | None = None,
) -> EngagementLevel:
    config = config or AggregationConfig()
    if average_sessions_per_document >= config.journey_high_min:
        return "high"
    if average_sessions_per_document >= config.journey_medium_min:
        return "medium"
    return "low"


def score_visitor_journeys(
    sessions: Iterable[RawSession],
    config: AggregationConfig | None = None,
) -> list[VisitorJourney]:
    """
    Group sessions by device identifier across documents.

    The score (ten points per average session per document, capped at 100)
    is a provisional heuristic; only the level thresholds are stable.
    """
    config = config or AggregationConfig()

    by_browser: dict[str, list[RawSession]] = {}
    for s in _ordered(sessions):
        by_browser.setdefault(s.browser_id, []).append(s)

    journeys = []
    for browser_id, visits in by_browser.items():
        documents = list(dict.fromkeys(s.document_id for s in visits))
        average = len(visits) / len(documents)
        journeys.append(
            VisitorJourney(
                browser_id=browser_id,
                documents_visited=documents,
                total_sessions=len(visits),
                average_sessions_per_document=round(average, 2),
                total_time_spent=sum(s.duration for s in visits),
                engagement_level=classify_engagement_level(average, config),
                engagement_score=min(100, _round_half_up(average * 10)),
                first_seen=min(s.start_time for s in visits),
                last_seen=max(s.end_time for s in visits),
            )
        )

    return sorted(
        journeys,
        key=lambda j: (-j.engagement_score, -j.total_sessions, j.browser_id),
    )


def compute_lead_watch_time(
    document_id: str,
    email: str,
    sessions: Iterable[RawSession],
) -> LeadWatchTime:
    """Total and most recent watch time for one lead on one document."""
    matching = [s for s in _ordered(sessions) if s.email == email]
    last = max(matching, key=lambda s: (s.end_time, s.session_id)) if matching else None
    return LeadWatchTime(
        document_id=document_id,
        email=email,
        total_watch_time=sum(s.duration for s in matching),
        last_watch_time=last.duration if last else 0.0,
        last_watched_at=last.end_time if last else None,
        session_count=len(matching),
    )


# --- Validation ---


def validate_window(
    window_days: int | None,
    config: AggregationConfig,
) -> tuple[int, list[EngagementValidationError]]:
    """Resolve the lookback window, defaulting when unset."""
    days = config.default_window_days if window_days is None else window_days
    if days not in config.allowed_windows:
        allowed = ", ".join(str(w) for w in config.allowed_windows)
        return days, [
            EngagementValidationError(
                code="INVALID_WINDOW",
                message=f"Window must be one of: {allowed} days",
                field_name="days",
            )
        ]
    return days, []


def validate_session_limits(
    session: RawSession,
    config: AggregationConfig,
) -> list[EngagementValidationError]:
    errors: list[EngagementValidationError] = []
    if session.scroll_events is not None and len(session.scroll_events) > config.max_scroll_events:
        errors.append(
            EngagementValidationError(
                code="TOO_MANY_SCROLL_EVENTS",
                message=f"At most {config.max_scroll_events} scroll events per session",
                field_name="scrollEvents",
            )
        )
    if len(session.pixel_bins) > config.max_pixel_bins:
        errors.append(
            EngagementValidationError(
                code="TOO_MANY_PIXEL_BINS",
                message=f"At most {config.max_pixel_bins} pixel bins per session",
                field_name="pixelBins",
            )
        )
    return errors


def validate_paragraphs(paragraphs: list[ParagraphSpan]) -> list[EngagementValidationError]:
    errors: list[EngagementValidationError] = []
    seen: set[str] = set()
    for p in paragraphs:
        if p.paragraph_id in seen:
            errors.append(
                EngagementValidationError(
                    code="DUPLICATE_PARAGRAPH",
                    message=f"Duplicate paragraph id: {p.paragraph_id}",
                    field_name="paragraphs",
                )
            )
        seen.add(p.paragraph_id)
    return errors


# --- Component Entry Points ---


def run_ingest_session(
    inp: IngestSessionInput,
    *,
    repo: SessionRepoPort,
    config: AggregationConfig | None = None,
) -> IngestSessionOutput:
    """
    Append one raw session. No business logic beyond shape limits.

    A repeated session id is acknowledged without storing a second row.
    """
    config = config or AggregationConfig()
    session = inp.session

    errors = validate_session_limits(session, config)
    if errors:
        return IngestSessionOutput(
            session_id=session.session_id, errors=errors, success=False
        )

    stored = repo.save_session(session)
    if not stored:
        logger.info("Duplicate session %s ignored", session.session_id)
    return IngestSessionOutput(
        session_id=session.session_id,
        stored=stored,
        duplicate=not stored,
    )


def run_refresh_analytics(
    inp: RefreshAnalyticsInput,
    *,
    session_repo: SessionRepoPort,
    time_port: TimePort,
    snapshot_repo: AnalyticsSnapshotRepoPort | None = None,
    config: AggregationConfig | None = None,
) -> AnalyticsOutput:
    """Recompute the snapshot from raw sessions and overwrite the stored one."""
    config = config or AggregationConfig()
    days, errors = validate_window(inp.window_days, config)
    if errors:
        return AnalyticsOutput(analytics=None, errors=errors, success=False)

    since = window_start_ms(time_port.now_ms(), days)
    sessions = session_repo.list_sessions(inp.document_id, since)
    analytics = compute_document_analytics(inp.document_id, days, sessions, config)

    updated_at = time_port.now_utc()
    if snapshot_repo is not None:
        snapshot_repo.save_snapshot(analytics, updated_at)
    logger.debug(
        "Refreshed analytics for %s (%d days): %d sessions",
        inp.document_id,
        days,
        analytics.total_sessions,
    )
    return AnalyticsOutput(analytics=analytics, updated_at=updated_at)


def run_query_snapshot(
    inp: QuerySnapshotInput,
    *,
    snapshot_repo: AnalyticsSnapshotRepoPort,
    config: AggregationConfig | None = None,
) -> AnalyticsOutput:
    config = config or AggregationConfig()
    days, errors = validate_window(inp.window_days, config)
    if errors:
        return AnalyticsOutput(analytics=None, errors=errors, success=False)

    found = snapshot_repo.get_snapshot(inp.document_id, days)
    if found is None:
        return AnalyticsOutput(
            analytics=None,
            errors=[
                EngagementValidationError(
                    code="NOT_FOUND",
                    message="No analytics computed for this document and window",
                )
            ],
            success=False,
        )
    analytics, updated_at = found
    return AnalyticsOutput(analytics=analytics, updated_at=updated_at)


def run_query_heatmap(
    inp: QueryHeatmapInput,
    *,
    session_repo: SessionRepoPort,
    time_port: TimePort,
    config: AggregationConfig | None = None,
) -> HeatmapOutput:
    """Scroll-depth rows, merged pixel bins and the summed dwell histogram."""
    config = config or AggregationConfig()
    days, errors = validate_window(inp.window_days, config)
    if errors:
        return HeatmapOutput(
            document_id=inp.document_id, window_days=days, errors=errors, success=False
        )

    since = window_start_ms(time_port.now_ms(), days)
    sessions = _ordered(session_repo.list_sessions(inp.document_id, since))

    return HeatmapOutput(
        document_id=inp.document_id,
        window_days=days,
        total_sessions=len(sessions),
        scroll_depth=compute_scroll_heatmap(sessions),
        pixel_bins=merge_pixel_bins(b for s in sessions for b in s.pixel_bins),
        dwell_time=aggregate_dwell_histogram(sessions),
    )


def run_store_paragraphs(
    inp: StoreParagraphsInput,
    *,
    structure_repo: DocumentStructurePort,
) -> StoreParagraphsOutput:
    errors = validate_paragraphs(inp.paragraphs)
    if errors:
        return StoreParagraphsOutput(document_id=inp.document_id, errors=errors, success=False)

    structure_repo.save_paragraphs(inp.document_id, list(inp.paragraphs))
    return StoreParagraphsOutput(document_id=inp.document_id, count=len(inp.paragraphs))


def run_query_paragraphs(
    inp: QueryParagraphsInput,
    *,
    session_repo: SessionRepoPort,
    structure_repo: DocumentStructurePort,
    time_port: TimePort,
    config: AggregationConfig | None = None,
) -> ParagraphsOutput:
    config = config or AggregationConfig()
    days, errors = validate_window(inp.window_days, config)
    if errors:
        return ParagraphsOutput(
            document_id=inp.document_id, window_days=days, errors=errors, success=False
        )

    paragraphs = structure_repo.get_paragraphs(inp.document_id)
    since = window_start_ms(time_port.now_ms(), days)
    sessions = session_repo.list_sessions(inp.document_id, since)

    return ParagraphsOutput(
        document_id=inp.document_id,
        window_days=days,
        total_sessions=len(sessions),
        paragraphs=compute_paragraph_engagement(paragraphs, sessions),
        structure=compute_document_structure(paragraphs, config),
    )


def run_query_journeys(
    inp: QueryJourneysInput,
    *,
    session_repo: SessionRepoPort,
    time_port: TimePort,
    config: AggregationConfig | None = None,
) -> JourneysOutput:
    config = config or AggregationConfig()
    days, errors = validate_window(inp.window_days, config)
    if errors:
        return JourneysOutput(window_days=days, errors=errors, success=False)

    since = window_start_ms(time_port.now_ms(), days)
    journeys = score_visitor_journeys(session_repo.list_sessions_since(since), config)
    if inp.limit is not None:
        journeys = journeys[: max(0, inp.limit)]
    return JourneysOutput(window_days=days, journeys=journeys)


def run_query_lead_watch_time(
    inp: QueryLeadWatchTimeInput,
    *,
    session_repo: SessionRepoPort,
) -> LeadWatchTimeOutput:
    email = inp.email.strip()
    if not email:
        return LeadWatchTimeOutput(
            watch_time=None,
            errors=[
                EngagementValidationError(
                    code="MISSING_EMAIL", message="Email is required", field_name="email"
                )
            ],
            success=False,
        )

    sessions = session_repo.list_sessions_for_email(inp.document_id, email)
    return LeadWatchTimeOutput(
        watch_time=compute_lead_watch_time(inp.document_id, email, sessions)
    )


def run(
    inp: (
        IngestSessionInput
        | RefreshAnalyticsInput
        | QuerySnapshotInput
        | QueryHeatmapInput
        | StoreParagraphsInput
        | QueryParagraphsInput
        | QueryJourneysInput
        | QueryLeadWatchTimeInput
    ),
    *,
    session_repo: SessionRepoPort | None = None,
    snapshot_repo: AnalyticsSnapshotRepoPort | None = None,
    structure_repo: DocumentStructurePort | None = None,
    time_port: TimePort | None = None,
    config: AggregationConfig | None = None,
) -> (
    IngestSessionOutput
    | AnalyticsOutput
    | HeatmapOutput
    | StoreParagraphsOutput
    | ParagraphsOutput
    | JourneysOutput
    | LeadWatchTimeOutput
):
    """
    Main entry point for the engagement component.

    Dispatches to appropriate handler based on input type.

    Raises:
        ValueError: if a port required by the operation is missing
    """
    if isinstance(inp, IngestSessionInput):
        if session_repo is None:
            raise ValueError("SessionRepoPort is required for ingest")
        return run_ingest_session(inp, repo=session_repo, config=config)
    elif isinstance(inp, QuerySnapshotInput):
        if snapshot_repo is None:
            raise ValueError("AnalyticsSnapshotRepoPort is required for snapshot queries")
        return run_query_snapshot(inp, snapshot_repo=snapshot_repo, config=config)
    elif isinstance(inp, StoreParagraphsInput):
        if structure_repo is None:
            raise ValueError("DocumentStructurePort is required for paragraph layout")
        return run_store_paragraphs(inp, structure_repo=structure_repo)
    elif isinstance(inp, QueryLeadWatchTimeInput):
        if session_repo is None:
            raise ValueError("SessionRepoPort is required for lead queries")
        return run_query_lead_watch_time(inp, session_repo=session_repo)

    if session_repo is None or time_port is None:
        raise ValueError("SessionRepoPort and TimePort are required for windowed queries")

    if isinstance(inp, RefreshAnalyticsInput):
        return run_refresh_analytics(
            inp,
            session_repo=session_repo,
            time_port=time_port,
            snapshot_repo=snapshot_repo,
            config=config,
        )
    elif isinstance(inp, QueryHeatmapInput):
        return run_query_heatmap(inp, session_repo=session_repo, time_port=time_port, config=config)
    elif isinstance(inp, QueryParagraphsInput):
        if structure_repo is None:
            raise ValueError("DocumentStructurePort is required for paragraph queries")
        return run_query_paragraphs(
            inp,
            session_repo=session_repo,
            structure_repo=structure_repo,
            time_port=time_port,
            config=config,
        )
    elif isinstance(inp, QueryJourneysInput):
        return run_query_journeys(
            inp, session_repo=session_repo, time_port=time_port, config=config
        )
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
