"""
Scroll component - Throttled scroll sampling for pages and containers.
"""

from .component import (
    DEFAULT_CONTAINER_EVENT_LIMIT,
    DEFAULT_THROTTLE_MS,
    ContainerScrollSource,
    PageScrollSource,
    ScrollSampler,
    create_container_sampler,
    create_page_sampler,
    scroll_percentage,
)
from .models import SamplerConfig, ScrollReading, ScrollSample
from .ports import (
    ClockPort,
    PageWindowPort,
    ScrollContainerPort,
    ScrollSourcePort,
    VisibilityStatePort,
)

__all__ = [
    # Component
    "ScrollSampler",
    "PageScrollSource",
    "ContainerScrollSource",
    "create_page_sampler",
    "create_container_sampler",
    "DEFAULT_THROTTLE_MS",
    "DEFAULT_CONTAINER_EVENT_LIMIT",
    # Pure functions
    "scroll_percentage",
    # Models
    "SamplerConfig",
    "ScrollReading",
    "ScrollSample",
    # Ports
    "ClockPort",
    "PageWindowPort",
    "ScrollContainerPort",
    "ScrollSourcePort",
    "VisibilityStatePort",
]
