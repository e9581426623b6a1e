import itertools
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from src.adapters.clock import ManualClock
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import (
    SQLiteAnalyticsSnapshotRepo,
    SQLiteDocumentStructureRepo,
    SQLiteSessionRepo,
)
from src.core.entities import RawSession
from src.rules.loader import load_rules
from src.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"
RULES_PATH = PROJECT_ROOT / "rules.yaml"


@pytest.fixture
def clock() -> ManualClock:
    """Clock frozen at 2026-01-01T00:00:00Z until advanced."""
    return ManualClock()


@pytest.fixture
def rules() -> Rules:
    """The real rules file from the project root."""
    return load_rules(RULES_PATH)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Temporary SQLite database with all migrations applied."""
    path = str(tmp_path / "heatmagnet.db")
    SQLiteMigrator(path, str(MIGRATIONS_DIR)).run_migrations()
    return path


@pytest.fixture
def session_repo(db_path: str) -> SQLiteSessionRepo:
    return SQLiteSessionRepo(db_path)


@pytest.fixture
def snapshot_repo(db_path: str) -> SQLiteAnalyticsSnapshotRepo:
    return SQLiteAnalyticsSnapshotRepo(db_path)


@pytest.fixture
def structure_repo(db_path: str) -> SQLiteDocumentStructureRepo:
    return SQLiteDocumentStructureRepo(db_path)


@pytest.fixture
def session_factory(clock: ManualClock) -> Callable[..., RawSession]:
    """
    Build RawSession records that started an hour before the clock.

    Keyword arguments override any field (snake_case names).
    """
    counter = itertools.count(1)

    def _make(**overrides: Any) -> RawSession:
        n = next(counter)
        start = overrides.get("start_time", clock.now_ms() - 3_600_000)
        values: dict[str, Any] = {
            "session_id": f"session_{n:04d}",
            "browser_id": "browser_a",
            "document_id": "doc-1",
            "start_time": start,
            "end_time": start + 60_000,
            "duration": 60,
            "max_scroll_percentage": 50,
            "viewport": {"width": 1280, "height": 720},
        }
        values.update(overrides)
        return RawSession(**values)

    return _make
