"""
Session component - Lifecycle controller for one tracking session.
"""

from .component import (
    DeviceIdentity,
    SessionController,
    new_device_id,
    new_session_id,
)
from .models import (
    TRANSITIONS,
    FinalizedSession,
    SessionConfig,
    SessionContext,
    SessionState,
    StopReason,
    can_transition,
)
from .ports import (
    ClockPort,
    KeyValueStorePort,
    SessionFinalizerPort,
    TickerHandle,
    TickerPort,
)

__all__ = [
    # Component
    "SessionController",
    "DeviceIdentity",
    "new_session_id",
    "new_device_id",
    # State machine
    "SessionState",
    "StopReason",
    "TRANSITIONS",
    "can_transition",
    # Models
    "FinalizedSession",
    "SessionConfig",
    "SessionContext",
    # Ports
    "ClockPort",
    "KeyValueStorePort",
    "SessionFinalizerPort",
    "TickerHandle",
    "TickerPort",
]
