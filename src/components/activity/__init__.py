"""
Activity component - Active (tab-visible) time tracking.
"""

from .component import ActiveTimeTracker, compute_active_ms
from .models import ActivitySnapshot
from .ports import ClockPort, VisibilitySourcePort

__all__ = [
    # Component
    "ActiveTimeTracker",
    # Pure functions
    "compute_active_ms",
    # Models
    "ActivitySnapshot",
    # Ports
    "ClockPort",
    "VisibilitySourcePort",
]
