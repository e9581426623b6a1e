"""
SQLite repository tests against a migrated temporary database.
"""

from datetime import UTC, datetime

import pytest

from src.components.engagement import compute_document_analytics
from src.core.entities import ParagraphSpan

HOUR_MS = 3_600_000


class TestSessionRepo:
    def test_round_trip_keeps_nested_data(self, session_repo, session_factory):
        session = session_factory(
            email="lead@example.com",
            referrer="https://example.com/a",
            timezone="Europe/London",
            cta_clicks=2,
            scroll_events=[
                {"timestamp": 1, "scrollY": 100, "scrollPercentage": 5,
                 "viewportHeight": 800, "documentHeight": 2800},
            ],
            dwell_time={"0-10": 1500, "10-20": 500},
            pixel_bins=[{"y": 0, "timeSpent": 1.5}, {"y": 25, "timeSpent": 0.5}],
        )

        assert session_repo.save_session(session) is True
        loaded = session_repo.get_session(session.session_id)

        assert loaded == session

    def test_no_scroll_events_stays_none(self, session_repo, session_factory):
        session = session_factory()
        session_repo.save_session(session)

        assert session_repo.get_session(session.session_id).scroll_events is None

    def test_duplicate_id_is_ignored(self, session_repo, session_factory):
        first = session_factory(session_id="s-1", duration=10)
        second = session_factory(session_id="s-1", duration=99)

        assert session_repo.save_session(first) is True
        assert session_repo.save_session(second) is False
        assert session_repo.count() == 1
        assert session_repo.get_session("s-1").duration == 10

    def test_missing_session(self, session_repo):
        assert session_repo.get_session("nope") is None

    def test_list_filters_document_and_window(self, session_repo, session_factory, clock):
        now = clock.now_ms()
        recent = session_factory(start_time=now - HOUR_MS)
        old = session_factory(start_time=now - 48 * HOUR_MS)
        other = session_factory(start_time=now - HOUR_MS, document_id="doc-2")
        for s in (recent, old, other):
            session_repo.save_session(s)

        in_window = session_repo.list_sessions("doc-1", now - 24 * HOUR_MS)
        everything = session_repo.list_sessions("doc-1")
        all_docs = session_repo.list_sessions_since(now - 24 * HOUR_MS)

        assert [s.session_id for s in in_window] == [recent.session_id]
        assert [s.session_id for s in everything] == [old.session_id, recent.session_id]
        assert {s.session_id for s in all_docs} == {recent.session_id, other.session_id}

    def test_window_start_is_inclusive(self, session_repo, session_factory, clock):
        boundary = clock.now_ms() - 24 * HOUR_MS
        session_repo.save_session(session_factory(start_time=boundary))

        assert len(session_repo.list_sessions("doc-1", boundary)) == 1

    def test_list_is_ordered_by_start(self, session_repo, session_factory, clock):
        now = clock.now_ms()
        late = session_factory(start_time=now - 1000)
        early = session_factory(start_time=now - 5000)
        session_repo.save_session(late)
        session_repo.save_session(early)

        ids = [s.session_id for s in session_repo.list_sessions("doc-1")]

        assert ids == [early.session_id, late.session_id]

    def test_list_for_email(self, session_repo, session_factory):
        mine = session_factory(email="a@example.com")
        theirs = session_factory(email="b@example.com")
        elsewhere = session_factory(email="a@example.com", document_id="doc-2")
        for s in (mine, theirs, elsewhere):
            session_repo.save_session(s)

        found = session_repo.list_sessions_for_email("doc-1", "a@example.com")

        assert [s.session_id for s in found] == [mine.session_id]


class TestSnapshotRepo:
    def test_missing(self, snapshot_repo):
        assert snapshot_repo.get_snapshot("doc-1", 7) is None

    def test_save_and_overwrite(self, snapshot_repo, session_factory):
        first = compute_document_analytics("doc-1", 7, [session_factory()])
        second = compute_document_analytics("doc-1", 7, [session_factory(), session_factory()])
        t1 = datetime(2026, 1, 1, tzinfo=UTC)
        t2 = datetime(2026, 1, 2, tzinfo=UTC)

        snapshot_repo.save_snapshot(first, t1)
        snapshot_repo.save_snapshot(second, t2)
        analytics, updated_at = snapshot_repo.get_snapshot("doc-1", 7)

        assert analytics == second
        assert analytics.total_sessions == 2
        assert updated_at == t2

    def test_windows_are_independent(self, snapshot_repo):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        snapshot_repo.save_snapshot(compute_document_analytics("doc-1", 30, []), now)

        assert snapshot_repo.get_snapshot("doc-1", 7) is None
        assert snapshot_repo.get_snapshot("doc-1", 30)[0].time_range == 30


class TestStructureRepo:
    @pytest.fixture
    def spans(self):
        return [
            ParagraphSpan(paragraph_id="b", start_percentage=0, end_percentage=40, word_count=10),
            ParagraphSpan(paragraph_id="a", start_percentage=40, end_percentage=100),
        ]

    def test_keeps_document_order(self, structure_repo, spans):
        structure_repo.save_paragraphs("doc-1", spans)

        assert structure_repo.get_paragraphs("doc-1") == spans

    def test_replaces_layout(self, structure_repo, spans):
        structure_repo.save_paragraphs("doc-1", spans)
        structure_repo.save_paragraphs("doc-1", spans[:1])

        assert [p.paragraph_id for p in structure_repo.get_paragraphs("doc-1")] == ["b"]

    def test_unknown_document(self, structure_repo):
        assert structure_repo.get_paragraphs("doc-9") == []
