"""Application configuration via Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerSettings(BaseSettings):
    """Periodic tracker loop settings."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_")

    poll_rate_ms: int = Field(default=20, gt=0)
    stop_timeout_s: float = Field(default=1.0, gt=0)
    telemetry_table: str = "RobotTracker"
    camera_query_warn_ms: float = Field(default=10.0, gt=0)


class FusionSettings(BaseSettings):
    """Odometry/vision fusion parameters.

    Trust values are standard deviations: larger means trusted less.
    """

    model_config = SettingsConfigDict(env_prefix="FUSION_")

    retention_window_s: float = Field(default=1.5, gt=0)
    wheel_trust: float = Field(default=0.1, ge=0)
    vision_translation_trust: float = Field(default=0.9, ge=0)
    vision_rotation_trust: float = Field(default=0.9, ge=0)


class CameraSettings(BaseSettings):
    """Defaults shared by all camera sources."""

    model_config = SettingsConfigDict(env_prefix="CAMERA_")

    default_cutoff_distance: float = Field(default=3.0, gt=0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    fusion: FusionSettings = Field(default_factory=FusionSettings)
    camera: CameraSettings = Field(default_factory=CameraSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
