"""
Document Analytics API Routes.

On-demand aggregation for dashboards. Every read recomputes from raw
sessions except /snapshot, which returns the last persisted result.

Query parameter `days` selects the lookback window (default from rules).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from src.adapters.clock import SystemClock
from src.adapters.fs.filestore import FileSystemStore
from src.adapters.render.heatmap_renderer import MatplotlibHeatmapRenderer
from src.adapters.sqlite_db import (
    SQLiteAnalyticsSnapshotRepo,
    SQLiteDocumentStructureRepo,
    SQLiteSessionRepo,
)
from src.api.deps import (
    get_aggregation_config,
    get_clock,
    get_file_store,
    get_heatmap_config,
    get_heatmap_renderer,
    get_session_repo,
    get_snapshot_repo,
    get_structure_repo,
)
from src.components.engagement import (
    AggregationConfig,
    AnalyticsOutput,
    EngagementValidationError,
    QueryHeatmapInput,
    QueryJourneysInput,
    QueryLeadWatchTimeInput,
    QueryParagraphsInput,
    QuerySnapshotInput,
    RefreshAnalyticsInput,
    StoreParagraphsInput,
    run_query_heatmap,
    run_query_journeys,
    run_query_lead_watch_time,
    run_query_paragraphs,
    run_query_snapshot,
    run_refresh_analytics,
    run_store_paragraphs,
)
from src.components.heatmap import HeatmapConfig, RenderHeatmapInput, run_render_heatmap
from src.core.entities import ParagraphSpan, WireModel

router = APIRouter()

MAX_SCREENSHOT_BYTES = 20 * 1024 * 1024


# --- Request Models ---


class ParagraphLayoutRequest(WireModel):
    paragraphs: list[ParagraphSpan]


# --- Helpers ---


def screenshot_key(document_id: str) -> str:
    return f"screenshots/{document_id}.png"


def _raise_for_errors(errors: list[EngagementValidationError], status_code: int = 400) -> None:
    if not errors:
        return
    raise HTTPException(
        status_code=status_code,
        detail={
            "ok": False,
            "errors": [
                {"code": e.code, "message": e.message, "field": e.field_name} for e in errors
            ],
        },
    )


def _analytics_body(result: AnalyticsOutput) -> dict[str, Any]:
    assert result.analytics is not None
    body = result.analytics.to_wire()
    body["updatedAt"] = result.updated_at.isoformat() if result.updated_at else None
    return body


# --- Routes ---


@router.get("/documents/{document_id}")
def get_document_analytics(
    document_id: str,
    days: int | None = Query(None, description="Lookback window in days"),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    snapshot_repo: SQLiteAnalyticsSnapshotRepo = Depends(get_snapshot_repo),
    clock: SystemClock = Depends(get_clock),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> dict[str, Any]:
    """Recompute, persist and return the snapshot for one window."""
    result = run_refresh_analytics(
        RefreshAnalyticsInput(document_id, days),
        session_repo=session_repo,
        snapshot_repo=snapshot_repo,
        time_port=clock,
        config=config,
    )
    _raise_for_errors(result.errors)
    return _analytics_body(result)


@router.get("/documents/{document_id}/snapshot")
def get_document_snapshot(
    document_id: str,
    days: int | None = Query(None),
    snapshot_repo: SQLiteAnalyticsSnapshotRepo = Depends(get_snapshot_repo),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> dict[str, Any]:
    """Last persisted snapshot, without recomputing."""
    result = run_query_snapshot(
        QuerySnapshotInput(document_id, days), snapshot_repo=snapshot_repo, config=config
    )
    if any(e.code == "NOT_FOUND" for e in result.errors):
        raise HTTPException(status_code=404, detail="Analytics not computed yet")
    _raise_for_errors(result.errors)
    return _analytics_body(result)


@router.get("/documents/{document_id}/heatmap")
def get_document_heatmap(
    document_id: str,
    days: int | None = Query(None),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    clock: SystemClock = Depends(get_clock),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> dict[str, Any]:
    """Scroll-depth reach rows, merged pixel bins and the dwell histogram."""
    result = run_query_heatmap(
        QueryHeatmapInput(document_id, days),
        session_repo=session_repo,
        time_port=clock,
        config=config,
    )
    _raise_for_errors(result.errors)
    return {
        "documentId": result.document_id,
        "timeRange": result.window_days,
        "totalSessions": result.total_sessions,
        "scrollHeatmapData": [row.to_wire() for row in result.scroll_depth],
        "pixelBins": [b.to_wire() for b in result.pixel_bins],
        "dwellTime": result.dwell_time,
    }


@router.get(
    "/documents/{document_id}/heatmap.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
def get_document_heatmap_image(
    document_id: str,
    days: int | None = Query(None),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    clock: SystemClock = Depends(get_clock),
    file_store: FileSystemStore = Depends(get_file_store),
    renderer: MatplotlibHeatmapRenderer = Depends(get_heatmap_renderer),
    config: AggregationConfig = Depends(get_aggregation_config),
    heatmap_config: HeatmapConfig = Depends(get_heatmap_config),
) -> Response:
    """Pixel-bin overlay on the reference screenshot (placeholder when unavailable)."""
    heatmap = run_query_heatmap(
        QueryHeatmapInput(document_id, days),
        session_repo=session_repo,
        time_port=clock,
        config=config,
    )
    _raise_for_errors(heatmap.errors)

    rendered = run_render_heatmap(
        RenderHeatmapInput(document_id, heatmap.pixel_bins, screenshot_key(document_id)),
        renderer=renderer,
        screenshots=file_store,
        config=heatmap_config,
    )
    return Response(
        content=rendered.image,
        media_type=rendered.content_type,
        headers={"X-Heatmap-Placeholder": "true" if rendered.placeholder else "false"},
    )


@router.put("/documents/{document_id}/screenshot")
async def put_document_screenshot(
    document_id: str,
    request: Request,
    file_store: FileSystemStore = Depends(get_file_store),
) -> dict[str, Any]:
    """Store the reference screenshot (raw image bytes) used by heatmap.png."""
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Empty screenshot")
    if len(data) > MAX_SCREENSHOT_BYTES:
        raise HTTPException(status_code=413, detail="Screenshot too large")
    await run_in_threadpool(file_store.save, screenshot_key(document_id), data)
    return {"ok": True, "bytes": len(data)}


@router.put("/documents/{document_id}/paragraphs")
def put_document_paragraphs(
    document_id: str,
    body: ParagraphLayoutRequest,
    structure_repo: SQLiteDocumentStructureRepo = Depends(get_structure_repo),
) -> dict[str, Any]:
    """Replace the paragraph layout of a document."""
    result = run_store_paragraphs(
        StoreParagraphsInput(document_id, list(body.paragraphs)),
        structure_repo=structure_repo,
    )
    _raise_for_errors(result.errors)
    return {"ok": True, "count": result.count}


@router.get("/documents/{document_id}/paragraphs")
def get_document_paragraphs(
    document_id: str,
    days: int | None = Query(None),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    structure_repo: SQLiteDocumentStructureRepo = Depends(get_structure_repo),
    clock: SystemClock = Depends(get_clock),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> dict[str, Any]:
    """Per-paragraph reach and completion, most engaging first."""
    result = run_query_paragraphs(
        QueryParagraphsInput(document_id, days),
        session_repo=session_repo,
        structure_repo=structure_repo,
        time_port=clock,
        config=config,
    )
    _raise_for_errors(result.errors)
    return {
        "documentId": result.document_id,
        "timeRange": result.window_days,
        "totalSessions": result.total_sessions,
        "paragraphEngagement": [p.to_wire() for p in result.paragraphs],
        "documentStructure": result.structure.to_wire() if result.structure else None,
    }


@router.get("/documents/{document_id}/leads/watch-time")
def get_lead_watch_time(
    document_id: str,
    email: str = Query(..., description="Lead e-mail address"),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
) -> dict[str, Any]:
    result = run_query_lead_watch_time(
        QueryLeadWatchTimeInput(document_id, email), session_repo=session_repo
    )
    _raise_for_errors(result.errors)
    assert result.watch_time is not None
    return result.watch_time.to_wire()


@router.get("/journeys")
def get_visitor_journeys(
    days: int | None = Query(None),
    limit: int | None = Query(None, ge=1, le=1000),
    session_repo: SQLiteSessionRepo = Depends(get_session_repo),
    clock: SystemClock = Depends(get_clock),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> dict[str, Any]:
    """Cross-document visitor journeys, highest engagement first."""
    result = run_query_journeys(
        QueryJourneysInput(days, limit),
        session_repo=session_repo,
        time_port=clock,
        config=config,
    )
    _raise_for_errors(result.errors)
    return {
        "timeRange": result.window_days,
        "journeys": [j.to_wire() for j in result.journeys],
    }
