"""
Dwell component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.entities import DWELL_RANGES

__all__ = ["DWELL_RANGES", "BinScore", "PixelBinConfig"]


@dataclass(frozen=True)
class BinScore:
    """Accumulated weighted attention for one vertical band of the page."""

    y: int
    time_spent: float


@dataclass(frozen=True)
class PixelBinConfig:
    """
    Pixel-bin layout and weighting.

    A bin whose centre lies within near_px of the viewport centre earns
    near_weight per elapsed millisecond, within mid_px earns mid_weight,
    and any other visible bin earns far_weight.
    """

    bin_size: int = 25
    near_px: float = 100
    mid_px: float = 200
    near_weight: float = 0.75
    mid_weight: float = 0.5
    far_weight: float = 0.25
