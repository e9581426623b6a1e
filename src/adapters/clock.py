"""
Clock adapters.

SystemClock reads the wall clock. ManualClock is a simulated clock for
deterministic tests of every temporal rule (active time, throttling,
dwell attribution, session cap).
"""

from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_ms(self) -> int:
        return int(self.now_utc().timestamp() * 1000)


class ManualClock:
    """
    Clock that only moves when told to.

    Useful for deterministic testing.
    """

    def __init__(self, start_ms: int = 1_767_225_600_000) -> None:
        # 2026-01-01T00:00:00Z
        self._now_ms = start_ms

    def now_ms(self) -> int:
        return self._now_ms

    def now_utc(self) -> datetime:
        return datetime.fromtimestamp(self._now_ms / 1000, tz=UTC)

    def advance(self, ms: int = 0, *, seconds: float = 0) -> None:
        """Move the clock forward."""
        delta = ms + int(seconds * 1000)
        if delta < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms += delta

    def set(self, when: datetime | int) -> None:
        """Jump to an absolute instant (datetime or epoch ms)."""
        if isinstance(when, datetime):
            if when.tzinfo is None:
                when = when.replace(tzinfo=UTC)
            self._now_ms = int(when.timestamp() * 1000)
        else:
            self._now_ms = int(when)

    def days_ago_ms(self, days: float) -> int:
        return int((self.now_utc() - timedelta(days=days)).timestamp() * 1000)
