"""
Heatmap component - Overlay bands from merged pixel bins.

Key behaviors:
- one band per non-empty bin, fixed height
- opacity proportional to the bin's share of the busiest bin
- empty bins, a missing screenshot or an unreadable screenshot all produce a
  placeholder image instead of an error

Invariants:
- 0 < alpha <= max_alpha (0.7 by default)
- the busiest bin is drawn at exactly max_alpha
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from src.core.entities import PixelBin

from .models import HeatmapConfig, OverlayBand, RenderHeatmapInput, RenderHeatmapOutput
from .ports import HeatmapRendererPort, ScreenshotStorePort

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No engagement data yet"
NO_SCREENSHOT_MESSAGE = "No reference screenshot available"
UNREADABLE_SCREENSHOT_MESSAGE = "Reference screenshot could not be read"


# --- Pure Functions ---


def compute_bands(
    bins: Iterable[PixelBin],
    config: HeatmapConfig | None = None,
) -> list[OverlayBand]:
    """
    Map pixel bins to overlay bands, sorted by y.

    Bins sharing a y are summed first so callers may pass unmerged bins.
    """
    config = config or HeatmapConfig()

    totals: dict[int, float] = {}
    for b in bins:
        totals[b.y] = totals.get(b.y, 0.0) + b.time_spent

    peak = max(totals.values(), default=0.0)
    if peak <= 0:
        return []

    return [
        OverlayBand(
            y=y,
            height=config.band_height,
            alpha=totals[y] / peak * config.max_alpha,
            time_spent=totals[y],
        )
        for y in sorted(totals)
        if totals[y] > 0
    ]


# --- Component Entry Point ---


def run_render_heatmap(
    inp: RenderHeatmapInput,
    *,
    renderer: HeatmapRendererPort,
    screenshots: ScreenshotStorePort | None = None,
    config: HeatmapConfig | None = None,
) -> RenderHeatmapOutput:
    """Render the overlay, or a placeholder when it cannot be drawn."""
    config = config or HeatmapConfig()
    bands = compute_bands(inp.pixel_bins, config)

    def placeholder(reason: str) -> RenderHeatmapOutput:
        logger.info("Heatmap placeholder for %s: %s", inp.document_id, reason)
        return RenderHeatmapOutput(
            image=renderer.render_placeholder(reason, config),
            placeholder=True,
            placeholder_reason=reason,
            band_count=len(bands),
        )

    if not bands:
        return placeholder(NO_DATA_MESSAGE)
    if screenshots is None or not inp.screenshot_key:
        return placeholder(NO_SCREENSHOT_MESSAGE)

    try:
        screenshot = screenshots.get(inp.screenshot_key)
    except FileNotFoundError:
        return placeholder(NO_SCREENSHOT_MESSAGE)

    try:
        image = renderer.render_overlay(screenshot, bands, config)
    except ValueError as e:
        logger.warning("Unreadable screenshot %s: %s", inp.screenshot_key, e)
        return placeholder(UNREADABLE_SCREENSHOT_MESSAGE)

    return RenderHeatmapOutput(image=image, band_count=len(bands))
