"""
Activity component port definitions.
"""

from __future__ import annotations

from typing import Protocol


class ClockPort(Protocol):
    """Monotonic-enough wall clock in epoch milliseconds."""

    def now_ms(self) -> int:
        ...


class VisibilitySourcePort(Protocol):
    """Reports whether the page/tab is currently hidden."""

    def is_hidden(self) -> bool:
        ...
