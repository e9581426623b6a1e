"""
Engagement component - Aggregation of raw sessions into derived analytics.
"""

from ._impl import InMemorySessionRepo, InMemorySnapshotRepo, InMemoryStructureRepo
from .component import (
    DAY_MS,
    HEATMAP_DEPTHS,
    REACH_BANDS,
    aggregate_dwell_histogram,
    bucket_scroll_depth,
    classify_device,
    classify_engagement_level,
    compute_document_analytics,
    compute_document_structure,
    compute_lead_watch_time,
    compute_paragraph_engagement,
    compute_scroll_heatmap,
    extract_referrer_domain,
    is_bounced_session,
    is_completed_session,
    merge_pixel_bins,
    run,
    run_ingest_session,
    run_query_heatmap,
    run_query_journeys,
    run_query_lead_watch_time,
    run_query_paragraphs,
    run_query_snapshot,
    run_refresh_analytics,
    run_store_paragraphs,
    score_visitor_journeys,
    select_window,
    session_local_date,
    validate_paragraphs,
    validate_session_limits,
    validate_window,
    window_start_ms,
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

__all__ = [
    # Component functions
    "run",
    "run_ingest_session",
    "run_refresh_analytics",
    "run_query_snapshot",
    "run_query_heatmap",
    "run_store_paragraphs",
    "run_query_paragraphs",
    "run_query_journeys",
    "run_query_lead_watch_time",
    # Pure functions
    "classify_device",
    "bucket_scroll_depth",
    "is_completed_session",
    "is_bounced_session",
    "extract_referrer_domain",
    "session_local_date",
    "select_window",
    "window_start_ms",
    "compute_document_analytics",
    "compute_scroll_heatmap",
    "merge_pixel_bins",
    "aggregate_dwell_histogram",
    "compute_document_structure",
    "compute_paragraph_engagement",
    "classify_engagement_level",
    "score_visitor_journeys",
    "compute_lead_watch_time",
    "validate_window",
    "validate_session_limits",
    "validate_paragraphs",
    "DAY_MS",
    "REACH_BANDS",
    "HEATMAP_DEPTHS",
    # Models
    "AggregationConfig",
    "IngestSessionInput",
    "RefreshAnalyticsInput",
    "QuerySnapshotInput",
    "QueryHeatmapInput",
    "StoreParagraphsInput",
    "QueryParagraphsInput",
    "QueryJourneysInput",
    "QueryLeadWatchTimeInput",
    "IngestSessionOutput",
    "AnalyticsOutput",
    "HeatmapOutput",
    "StoreParagraphsOutput",
    "ParagraphsOutput",
    "JourneysOutput",
    "LeadWatchTimeOutput",
    "EngagementValidationError",
    "DeviceClass",
    "ReachBand",
    "EngagementLevel",
    # Ports
    "SessionRepoPort",
    "AnalyticsSnapshotRepoPort",
    "DocumentStructurePort",
    "TimePort",
    # In-memory implementations
    "InMemorySessionRepo",
    "InMemorySnapshotRepo",
    "InMemoryStructureRepo",
]
