"""
Analytics Ingestion API Routes.

Public endpoints the client-side session transport delivers to.

- POST /sessions: normal path; shape errors are 422, limit errors 400
- POST /beacon: unload path; the body arrives as text/plain JSON and the
  caller never retries, so the answer is only ever 200 or 500
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from src.adapters.sqlite_db import SQLiteSessionRepo
from src.api.deps import get_aggregation_config, get_session_repo
from src.components.engagement import (
    AggregationConfig,
    IngestSessionInput,
    run_ingest_session,
)
from src.core.entities import RawSession, WireModel

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class IngestResponse(WireModel):
    """Success response."""

    ok: bool = True
    session_id: str
    stored: bool
    duplicate: bool = False


class BeaconResponse(WireModel):
    ok: bool


# --- Routes ---


@router.post(
    "/sessions",
    response_model=IngestResponse,
    response_model_by_alias=True,
    responses={400: {"description": "Session exceeds ingest limits"}},
)
def ingest_session(
    body: RawSession,
    repo: SQLiteSessionRepo = Depends(get_session_repo),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> IngestResponse:
    """
    Append one finished session.

    A repeated sessionId is acknowledged with stored=false.
    """
    result = run_ingest_session(IngestSessionInput(body), repo=repo, config=config)

    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={
                "ok": False,
                "errors": [
                    {"code": e.code, "message": e.message, "field": e.field_name}
                    for e in result.errors
                ],
            },
        )

    return IngestResponse(
        session_id=body.session_id,
        stored=result.stored,
        duplicate=result.duplicate,
    )


@router.post("/beacon", response_model=BeaconResponse)
async def ingest_beacon(
    request: Request,
    repo: SQLiteSessionRepo = Depends(get_session_repo),
    config: AggregationConfig = Depends(get_aggregation_config),
) -> Any:
    """Best-effort unload delivery. 200 {"ok": true} or 500 {"ok": false}."""
    raw = await request.body()
    try:
        session = RawSession.model_validate(json.loads(raw))
        result = await run_in_threadpool(
            run_ingest_session, IngestSessionInput(session), repo=repo, config=config
        )
    except Exception:
        logger.exception("Beacon ingest failed")
        return JSONResponse(status_code=500, content={"ok": False})

    if not result.success:
        logger.warning(
            "Beacon session %s rejected: %s",
            result.session_id,
            ", ".join(e.code for e in result.errors),
        )
        return JSONResponse(status_code=500, content={"ok": False})

    return {"ok": True}
