"""
Heatmap component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from .models import HeatmapConfig, OverlayBand


class HeatmapRendererPort(Protocol):
    """Paints bands onto an image. No analytics logic."""

    def render_overlay(
        self, image: bytes, bands: list[OverlayBand], config: HeatmapConfig
    ) -> bytes:
        """
        Draw bands over the reference image and return PNG bytes.

        Raises ValueError when the image cannot be decoded.
        """
        ...

    def render_placeholder(self, message: str, config: HeatmapConfig) -> bytes:
        """Return a PNG stating why there is no overlay."""
        ...


class ScreenshotStorePort(Protocol):
    """Read side of the file store holding reference screenshots."""

    def get(self, path: str) -> bytes:
        """Raises FileNotFoundError when the screenshot does not exist."""
        ...
