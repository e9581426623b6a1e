from datetime import UTC, datetime

import pytest

from src.adapters.clock import ManualClock, SystemClock


def test_system_clock():
    clock = SystemClock()
    now = clock.now_utc()
    assert now.tzinfo is not None
    # Sanity check: is it close to real now?
    diff = abs((datetime.now(UTC) - now).total_seconds())
    assert diff < 1.0
    assert abs(clock.now_ms() - int(datetime.now(UTC).timestamp() * 1000)) < 1000


class TestManualClock:
    """Tests for the simulated clock."""

    def test_starts_at_fixed_instant(self) -> None:
        clock = ManualClock()
        assert clock.now_utc() == datetime(2026, 1, 1, tzinfo=UTC)
        assert clock.now_ms() == 1_767_225_600_000

    def test_advance(self) -> None:
        clock = ManualClock(start_ms=0)
        clock.advance(250)
        clock.advance(seconds=1.5)
        assert clock.now_ms() == 1750

    def test_cannot_go_backwards(self) -> None:
        clock = ManualClock()
        with pytest.raises(ValueError):
            clock.advance(-1)

    def test_set(self) -> None:
        clock = ManualClock()
        clock.set(datetime(2026, 3, 1, 12, 0))
        assert clock.now_utc() == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        clock.set(5000)
        assert clock.now_ms() == 5000

    def test_days_ago(self) -> None:
        clock = ManualClock()
        assert clock.now_ms() - clock.days_ago_ms(7) == 7 * 86_400_000
