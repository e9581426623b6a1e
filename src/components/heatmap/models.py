"""
Heatmap component models.

Bands are the drawing instructions derived from merged pixel bins; the
renderer only paints them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.entities import PixelBin

# --- Configuration ---


@dataclass(frozen=True)
class HeatmapConfig:
    """Overlay appearance (mirrors the heatmap rules)."""

    band_height: int = 25  # px
    max_alpha: float = 0.7
    color: str = "#ff0000"
    placeholder_width: int = 800
    placeholder_height: int = 600
    dpi: int = 100


# --- Value Objects ---


@dataclass(frozen=True)
class OverlayBand:
    """One translucent horizontal band."""

    y: int
    height: int
    alpha: float
    time_spent: float


# --- Input/Output Models ---


@dataclass(frozen=True)
class RenderHeatmapInput:
    document_id: str
    pixel_bins: list[PixelBin] = field(default_factory=list)
    screenshot_key: str | None = None  # FileStorePort path of the reference image


@dataclass(frozen=True)
class RenderHeatmapOutput:
    """
    Rendered PNG.

    Rendering never fails: placeholder is True when no overlay could be
    drawn, and the image is then a valid PNG explaining why.
    """

    image: bytes
    content_type: str = "image/png"
    placeholder: bool = False
    placeholder_reason: str | None = None
    band_count: int = 0
