"""
Transport component - One-shot session delivery (normal and degraded).
"""

from .component import SessionTransport, assemble_session, mode_for_reason
from .models import DeliveryMode, DeliveryResult, TransportValidationError
from .ports import BeaconPort, SessionSinkPort

__all__ = [
    # Component
    "SessionTransport",
    # Pure functions
    "assemble_session",
    "mode_for_reason",
    # Models
    "DeliveryMode",
    "DeliveryResult",
    "TransportValidationError",
    # Ports
    "BeaconPort",
    "SessionSinkPort",
]
