from pydantic import BaseModel, Field, model_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class TrackingRules(BaseModel):
    session_cap_seconds: int = Field(90, gt=0)
    tick_interval_ms: int = Field(1000, gt=0)
    scroll_throttle_ms: int = Field(100, ge=0)
    container_event_limit: int = Field(100, gt=0)
    device_id_key: str = "heatmagnet_browser_id"
    pixel_bin_size: int = Field(25, gt=0)


class AggregationRules(BaseModel):
    default_window_days: int = Field(7, gt=0)
    allowed_windows: list[int] = Field(default_factory=lambda: [7, 30, 90])
    bounce_threshold_seconds: float = Field(10, ge=0)
    completion_threshold_percent: float = Field(90, ge=0, le=100)
    tablet_min_width: int = Field(768, gt=0)
    desktop_min_width: int = Field(1024, gt=0)
    default_timezone: str = "UTC"
    journey_medium_min: float = Field(3, ge=0)
    journey_high_min: float = Field(7, ge=0)
    words_per_minute: int = Field(200, gt=0)

    @model_validator(mode="after")
    def check_ordering(self) -> "AggregationRules":
        if self.tablet_min_width >= self.desktop_min_width:
            raise ValueError("tablet_min_width must be below desktop_min_width")
        if self.journey_medium_min > self.journey_high_min:
            raise ValueError("journey_medium_min must not exceed journey_high_min")
        if self.default_window_days not in self.allowed_windows:
            raise ValueError("default_window_days must be one of allowed_windows")
        return self


class HeatmapRules(BaseModel):
    band_height: int = Field(25, gt=0)
    max_alpha: float = Field(0.7, gt=0, le=1)
    color: str = "#ff0000"
    placeholder_width: int = Field(800, gt=0)
    placeholder_height: int = Field(600, gt=0)
    dpi: int = Field(100, gt=0)


class IngestRules(BaseModel):
    max_scroll_events: int = Field(1000, ge=0)
    max_pixel_bins: int = Field(5000, ge=0)


class Rules(BaseModel):
    project: ProjectRules
    tracking: TrackingRules = Field(default_factory=TrackingRules)
    aggregation: AggregationRules = Field(default_factory=AggregationRules)
    heatmap: HeatmapRules = Field(default_factory=HeatmapRules)
    ingest: IngestRules = Field(default_factory=IngestRules)
