"""
Heatmap component - Translucent attention bands over a reference screenshot.
"""

from .component import (
    NO_DATA_MESSAGE,
    NO_SCREENSHOT_MESSAGE,
    UNREADABLE_SCREENSHOT_MESSAGE,
    compute_bands,
    run_render_heatmap,
)
from .models import (
    HeatmapConfig,
    OverlayBand,
    RenderHeatmapInput,
    RenderHeatmapOutput,
)
from .ports import HeatmapRendererPort, ScreenshotStorePort

__all__ = [
    # Entry point
    "run_render_heatmap",
    # Pure functions
    "compute_bands",
    # Placeholder messages
    "NO_DATA_MESSAGE",
    "NO_SCREENSHOT_MESSAGE",
    "UNREADABLE_SCREENSHOT_MESSAGE",
    # Models
    "HeatmapConfig",
    "OverlayBand",
    "RenderHeatmapInput",
    "RenderHeatmapOutput",
    # Ports
    "HeatmapRendererPort",
    "ScreenshotStorePort",
]
