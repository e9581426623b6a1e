"""
Dwell component - Decile dwell histogram and pixel-bin attention.
"""

from .component import (
    DwellBucketer,
    PixelBinTracker,
    bin_weight,
    decile_of,
    empty_histogram,
    range_key,
)
from .models import DWELL_RANGES, BinScore, PixelBinConfig
from .ports import ClockPort

__all__ = [
    # Component
    "DwellBucketer",
    "PixelBinTracker",
    # Pure functions
    "decile_of",
    "range_key",
    "empty_histogram",
    "bin_weight",
    # Models
    "DWELL_RANGES",
    "BinScore",
    "PixelBinConfig",
    # Ports
    "ClockPort",
]
