"""
Transport component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DeliveryMode(Enum):
    """
    How a finalized session leaves the client.

    - NORMAL: synchronous request, used on in-app navigation and explicit stop
    - DEGRADED: fire-and-forget beacon, used during page teardown where
      request completion is not guaranteed
    """

    NORMAL = "normal"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class TransportValidationError:
    """Transport error."""

    code: str
    message: str
    field_name: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one delivery attempt. Never retried."""

    session_id: str
    mode: DeliveryMode
    errors: list[TransportValidationError] = field(default_factory=list)
    success: bool = True
