"""
Activity component models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ActivitySnapshot:
    """Point-in-time view of the active-time tracker."""

    started_at_ms: int | None
    active_ms: int
    paused_ms: int
    is_visible: bool
    pause_started_at_ms: int | None = None
