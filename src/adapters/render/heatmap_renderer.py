import hashlib
import json
import logging
from io import BytesIO

import matplotlib.figure
import matplotlib.image
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.patches import Rectangle

from src.components.heatmap.models import HeatmapConfig, OverlayBand
from src.ports.filestore import FileStorePort

logger = logging.getLogger(__name__)


class MatplotlibHeatmapRenderer:
    """
    Paints overlay bands on a reference screenshot with the Agg canvas.

    Rendered overlays are cached in an optional file store, keyed by a hash of
    the screenshot bytes, the bands and the appearance config.
    """

    def __init__(self, cache_store: FileStorePort | None = None):
        self.cache_store = cache_store

    def render_overlay(
        self, image: bytes, bands: list[OverlayBand], config: HeatmapConfig
    ) -> bytes:
        # 1. Compute Hash for Cache
        band_repr = json.dumps(
            [[b.y, b.height, round(b.alpha, 6)] for b in bands], separators=(",", ":")
        )
        hash_input = "|".join(
            [
                hashlib.sha256(image).hexdigest(),
                band_repr,
                config.color,
                str(config.dpi),
            ]
        )
        digest = hashlib.md5(hash_input.encode("utf-8")).hexdigest()
        cache_key = f"heatmaps/{digest}.png"

        # 2. Check Cache
        if self.cache_store is not None:
            try:
                return self.cache_store.get(cache_key)
            except FileNotFoundError:
                pass

        # 3. Decode
        try:
            pixels = matplotlib.image.imread(BytesIO(image), format=_image_format(image))
        except (OSError, ValueError, SyntaxError) as e:
            raise ValueError(f"Unreadable reference image: {e}") from e

        height, width = pixels.shape[:2]
        dpi = config.dpi

        # 4. Render
        fig = matplotlib.figure.Figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        FigureCanvasAgg(fig)  # Attach canvas backend
        ax = fig.add_axes((0, 0, 1, 1))
        ax.imshow(pixels, extent=(0, width, height, 0), interpolation="nearest")
        for band in bands:
            if band.y >= height:
                continue
            ax.add_patch(
                Rectangle(
                    (0, band.y),
                    width,
                    band.height,
                    facecolor=config.color,
                    alpha=band.alpha,
                    linewidth=0,
                )
            )
        ax.set_xlim(0, width)
        ax.set_ylim(height, 0)
        ax.axis("off")

        png_data = _to_png(fig, dpi)

        # 5. Write to Cache
        if self.cache_store is not None:
            self.cache_store.save(cache_key, png_data)

        logger.debug("Rendered heatmap overlay with %d bands (%dx%d)", len(bands), width, height)
        return png_data

    def render_placeholder(self, message: str, config: HeatmapConfig) -> bytes:
        dpi = config.dpi
        fig = matplotlib.figure.Figure(
            figsize=(config.placeholder_width / dpi, config.placeholder_height / dpi),
            dpi=dpi,
        )
        FigureCanvasAgg(fig)
        fig.patch.set_facecolor("#f5f5f5")
        ax = fig.add_axes((0, 0, 1, 1))
        ax.axis("off")
        ax.text(0.5, 0.5, message, ha="center", va="center", fontsize=16, color="#666666")
        return _to_png(fig, dpi)


def _image_format(image: bytes) -> str:
    if image.startswith(b"\xff\xd8"):
        return "jpeg"
    return "png"


def _to_png(fig: matplotlib.figure.Figure, dpi: int) -> bytes:
    buf = BytesIO()
    fig.savefig(buf, format="png", dpi=dpi)
    png_data = buf.getvalue()
    buf.close()
    return png_data
