"""
In-memory repositories for the engagement component (testing/dev).
"""

from __future__ import annotations

from datetime import datetime

from src.core.entities import DocumentAnalytics, ParagraphSpan, RawSession


class InMemorySessionRepo:
    """Append-only raw session store keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, RawSession] = {}

    def save_session(self, session: RawSession) -> bool:
        if session.session_id in self._sessions:
            return False
        self._sessions[session.session_id] = session
        return True

    def list_sessions(self, document_id: str, since_ms: int | None = None) -> list[RawSession]:
        return [
            s
            for s in self.list_sessions_since(since_ms)
            if s.document_id == document_id
        ]

    def list_sessions_since(self, since_ms: int | None = None) -> list[RawSession]:
        sessions = sorted(self._sessions.values(), key=lambda s: (s.start_time, s.session_id))
        if since_ms is None:
            return sessions
        return [s for s in sessions if s.start_time >= since_ms]

    def list_sessions_for_email(self, document_id: str, email: str) -> list[RawSession]:
        return [s for s in self.list_sessions(document_id) if s.email == email]

    def count(self) -> int:
        return len(self._sessions)


class InMemorySnapshotRepo:
    def __init__(self) -> None:
        self._snapshots: dict[tuple[str, int], tuple[DocumentAnalytics, datetime]] = {}

    def save_snapshot(self, analytics: DocumentAnalytics, updated_at: datetime) -> None:
        self._snapshots[(analytics.document_id, analytics.time_range)] = (analytics, updated_at)

    def get_snapshot(
        self, document_id: str, window_days: int
    ) -> tuple[DocumentAnalytics, datetime] | None:
        return self._snapshots.get((document_id, window_days))


class InMemoryStructureRepo:
    def __init__(self) -> None:
        self._paragraphs: dict[str, list[ParagraphSpan]] = {}

    def save_paragraphs(self, document_id: str, paragraphs: list[ParagraphSpan]) -> None:
        self._paragraphs[document_id] = list(paragraphs)

    def get_paragraphs(self, document_id: str) -> list[ParagraphSpan]:
        return list(self._paragraphs.get(document_id, []))
