"""
SQLite Database Adapter for the engagement repositories.

Implements SessionRepoPort, AnalyticsSnapshotRepoPort and
DocumentStructurePort using SQLite. Nested session data (scroll events,
dwell histogram, pixel bins) is stored as JSON text columns.

Invariants:
- analytics_sessions is append-only; a repeated session_id is ignored
- one snapshot row per (document_id, window_days), overwritten on save
- a document's paragraph layout is replaced wholesale
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any

from src.core.entities import DocumentAnalytics, ParagraphSpan, RawSession

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Raw Sessions
# -----------------------------------------------------------------------------


_SESSION_COLUMNS = (
    "session_id, browser_id, document_id, user_id, email, start_time, end_time, "
    "duration, max_scroll_percentage, scroll_event_count, user_agent, referrer, "
    "viewport_width, viewport_height, timezone, cta_clicks, scroll_events_json, "
    "dwell_time_json, pixel_bins_json"
)


class SQLiteSessionRepo(SQLiteRepoBase):
    """SQLite implementation of SessionRepoPort."""

    def save_session(self, session: RawSession) -> bool:
        scroll_events = (
            json.dumps([e.to_wire() for e in session.scroll_events])
            if session.scroll_events is not None
            else None
        )
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"""
                INSERT OR IGNORE INTO analytics_sessions ({_SESSION_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.session_id,
                    session.browser_id,
                    session.document_id,
                    session.user_id,
                    session.email,
                    session.start_time,
                    session.end_time,
                    session.duration,
                    session.max_scroll_percentage,
                    session.scroll_event_count,
                    session.user_agent,
                    session.referrer,
                    session.viewport.width,
                    session.viewport.height,
                    session.timezone,
                    session.cta_clicks,
                    scroll_events,
                    json.dumps(session.dwell_time, sort_keys=True),
                    json.dumps([b.to_wire() for b in session.pixel_bins]),
                ),
            )
            if self._should_close():
                conn.commit()
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def get_session(self, session_id: str) -> RawSession | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM analytics_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_sessions(self, document_id: str, since_ms: int | None = None) -> list[RawSession]:
        return self._select(
            "document_id = ? AND start_time >= ?", (document_id, since_ms or 0)
        )

    def list_sessions_since(self, since_ms: int | None = None) -> list[RawSession]:
        return self._select("start_time >= ?", (since_ms or 0,))

    def list_sessions_for_email(self, document_id: str, email: str) -> list[RawSession]:
        return self._select("document_id = ? AND email = ?", (document_id, email))

    def count(self) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM analytics_sessions").fetchone()
            return int(row["n"])
        finally:
            if self._should_close():
                conn.close()

    def _select(self, where: str, params: tuple[Any, ...]) -> list[RawSession]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM analytics_sessions "
                f"WHERE {where} ORDER BY start_time, session_id",
                params,
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> RawSession:
        scroll_events = row["scroll_events_json"]
        return RawSession(
            session_id=row["session_id"],
            browser_id=row["browser_id"],
            document_id=row["document_id"],
            user_id=row["user_id"],
            email=row["email"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            duration=row["duration"],
            max_scroll_percentage=row["max_scroll_percentage"],
            scroll_event_count=row["scroll_event_count"],
            scroll_events=json.loads(scroll_events) if scroll_events is not None else None,
            user_agent=row["user_agent"],
            referrer=row["referrer"],
            viewport={"width": row["viewport_width"], "height": row["viewport_height"]},
            timezone=row["timezone"],
            cta_clicks=row["cta_clicks"],
            dwell_time=json.loads(row["dwell_time_json"] or "{}"),
            pixel_bins=json.loads(row["pixel_bins_json"] or "[]"),
        )


# -----------------------------------------------------------------------------
# Analytics Snapshots
# -----------------------------------------------------------------------------


class SQLiteAnalyticsSnapshotRepo(SQLiteRepoBase):
    """SQLite implementation of AnalyticsSnapshotRepoPort."""

    def save_snapshot(self, analytics: DocumentAnalytics, updated_at: datetime) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO document_analytics (
                    document_id, window_days, snapshot_json, updated_at
                ) VALUES (?, ?, ?, ?)
                """,
                (
                    analytics.document_id,
                    analytics.time_range,
                    json.dumps(analytics.to_wire(), sort_keys=True),
                    updated_at.isoformat(),
                ),
            )
            if self._should_close():
                conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def get_snapshot(
        self, document_id: str, window_days: int
    ) -> tuple[DocumentAnalytics, datetime] | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT snapshot_json, updated_at FROM document_analytics
                WHERE document_id = ? AND window_days = ?
                """,
                (document_id, window_days),
            ).fetchone()
        finally:
            if self._should_close():
                conn.close()

        if not row:
            return None
        updated_at = parse_dt(row["updated_at"])
        if updated_at is None:
            return None
        return DocumentAnalytics.model_validate(json.loads(row["snapshot_json"])), updated_at


# -----------------------------------------------------------------------------
# Document Structure
# -----------------------------------------------------------------------------


class SQLiteDocumentStructureRepo(SQLiteRepoBase):
    """SQLite implementation of DocumentStructurePort."""

    def save_paragraphs(self, document_id: str, paragraphs: list[ParagraphSpan]) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM document_paragraphs WHERE document_id = ?", (document_id,))
            conn.executemany(
                """
                INSERT INTO document_paragraphs (
                    document_id, position, paragraph_id, content,
                    start_percentage, end_percentage, word_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        document_id,
                        position,
                        p.paragraph_id,
                        p.content,
                        p.start_percentage,
                        p.end_percentage,
                        p.word_count,
                    )
                    for position, p in enumerate(paragraphs)
                ],
            )
            if self._should_close():
                conn.commit()
            logger.debug("Stored %d paragraphs for %s", len(paragraphs), document_id)
        finally:
            if self._should_close():
                conn.close()

    def get_paragraphs(self, document_id: str) -> list[ParagraphSpan]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM document_paragraphs WHERE document_id = ? ORDER BY position",
                (document_id,),
            ).fetchall()
            return [
                ParagraphSpan(
                    paragraph_id=r["paragraph_id"],
                    content=r["content"],
                    start_percentage=r["start_percentage"],
                    end_percentage=r["end_percentage"],
                    word_count=r["word_count"],
                )
                for r in rows
            ]
        finally:
            if self._should_close():
                conn.close()
