"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="TIMELINE_", extra="ignore"
    )

    # Route planner API
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_s: float = 10.0

    # Interval rules (float days)
    min_stop_duration_days: float = 0.05

    # Row layout (pixels)
    row_height_px: int = 45
    leg_row_height_px: int = 30
    container_padding_px: int = 10

    # Zoom
    base_day_width_px: int = 160
    zoom_min: float = 0.5
    zoom_max: float = 3.0
    zoom_step: float = 0.25

    # Gestures
    drag_threshold_px: float = 4.0

    # Failed saves restore the pre-gesture intervals
    rollback_on_failed_save: bool = True

    # Schedule initialization defaults
    default_timezone_id: str = "Europe/Berlin"
    default_arrival_time: str = "09:00"
    default_stay_nights: int = 1
    default_stay_minutes: int = 120

    # Routing estimator (reference API only)
    routing_avg_speed_kmh: float = 70.0

    # Toasts (milliseconds)
    toast_duration_ms: int = 3000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
