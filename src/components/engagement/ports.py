"""
Engagement component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import DocumentAnalytics, ParagraphSpan, RawSession


class SessionRepoPort(Protocol):
    """Append-only store of raw sessions."""

    def save_session(self, session: RawSession) -> bool:
        """
        Append a session.

        Returns False (and stores nothing) when the session id already
        exists.
        """
        ...

    def list_sessions(self, document_id: str, since_ms: int | None = None) -> list[RawSession]:
        """Sessions for a document with start_time >= since_ms."""
        ...

    def list_sessions_since(self, since_ms: int | None = None) -> list[RawSession]:
        """Sessions across all documents with start_time >= since_ms."""
        ...

    def list_sessions_for_email(self, document_id: str, email: str) -> list[RawSession]:
        ...


class AnalyticsSnapshotRepoPort(Protocol):
    """One overwritable snapshot per (document, window)."""

    def save_snapshot(self, analytics: DocumentAnalytics, updated_at: datetime) -> None:
        ...

    def get_snapshot(
        self, document_id: str, window_days: int
    ) -> tuple[DocumentAnalytics, datetime] | None:
        ...


class DocumentStructurePort(Protocol):
    """Paragraph layout of a document, written by an external collaborator."""

    def save_paragraphs(self, document_id: str, paragraphs: list[ParagraphSpan]) -> None:
        """Replace the layout wholesale."""
        ...

    def get_paragraphs(self, document_id: str) -> list[ParagraphSpan]:
        """Layout in document order (empty when unknown)."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        ...

    def now_ms(self) -> int:
        ...
