import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.adapters.clock import SystemClock
from src.adapters.fs.filestore import FileSystemStore
from src.adapters.render.heatmap_renderer import MatplotlibHeatmapRenderer
from src.adapters.sqlite_db import (
    SQLiteAnalyticsSnapshotRepo,
    SQLiteDocumentStructureRepo,
    SQLiteSessionRepo,
)

# Atomic components are stateless; their configs are built from rules here so
# the components themselves never read the rules file.
from src.components.engagement import AggregationConfig
from src.components.heatmap import HeatmapConfig
from src.components.session import SessionConfig
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("HEATMAGNET_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "heatmagnet.db")
        self.files_dir = self.data_dir / "files"
        self.rules_path = Path(
            os.environ.get("HEATMAGNET_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = str(self.base_dir / "migrations")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def aggregation_config_from_rules(rules: Rules) -> AggregationConfig:
    agg = rules.aggregation
    return AggregationConfig(
        default_window_days=agg.default_window_days,
        allowed_windows=tuple(agg.allowed_windows),
        bounce_threshold_seconds=agg.bounce_threshold_seconds,
        completion_threshold_percent=agg.completion_threshold_percent,
        tablet_min_width=agg.tablet_min_width,
        desktop_min_width=agg.desktop_min_width,
        default_timezone=agg.default_timezone,
        journey_medium_min=agg.journey_medium_min,
        journey_high_min=agg.journey_high_min,
        words_per_minute=agg.words_per_minute,
        max_scroll_events=rules.ingest.max_scroll_events,
        max_pixel_bins=rules.ingest.max_pixel_bins,
    )


def heatmap_config_from_rules(rules: Rules) -> HeatmapConfig:
    hm = rules.heatmap
    return HeatmapConfig(
        band_height=hm.band_height,
        max_alpha=hm.max_alpha,
        color=hm.color,
        placeholder_width=hm.placeholder_width,
        placeholder_height=hm.placeholder_height,
        dpi=hm.dpi,
    )


def session_config_from_rules(rules: Rules) -> SessionConfig:
    """Tracker settings handed to client-side session controllers."""
    tr = rules.tracking
    return SessionConfig(
        cap_seconds=tr.session_cap_seconds,
        tick_interval_ms=tr.tick_interval_ms,
        scroll_throttle_ms=tr.scroll_throttle_ms,
        container_event_limit=tr.container_event_limit,
        device_id_key=tr.device_id_key,
        pixel_bin_size=tr.pixel_bin_size,
    )


def get_aggregation_config(rules: Rules = Depends(get_rules)) -> AggregationConfig:
    return aggregation_config_from_rules(rules)


def get_heatmap_config(rules: Rules = Depends(get_rules)) -> HeatmapConfig:
    return heatmap_config_from_rules(rules)


# --- Repos ---
def get_session_repo(settings: Settings = Depends(get_settings)) -> SQLiteSessionRepo:
    return SQLiteSessionRepo(settings.db_path)


def get_snapshot_repo(settings: Settings = Depends(get_settings)) -> SQLiteAnalyticsSnapshotRepo:
    return SQLiteAnalyticsSnapshotRepo(settings.db_path)


def get_structure_repo(settings: Settings = Depends(get_settings)) -> SQLiteDocumentStructureRepo:
    return SQLiteDocumentStructureRepo(settings.db_path)


# --- Files & Rendering ---
def get_file_store(settings: Settings = Depends(get_settings)) -> FileSystemStore:
    return FileSystemStore(base_path=settings.files_dir)


def get_heatmap_renderer(
    file_store: FileSystemStore = Depends(get_file_store),
) -> MatplotlibHeatmapRenderer:
    return MatplotlibHeatmapRenderer(cache_store=file_store)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance
