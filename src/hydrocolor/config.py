"""Environment-based configuration for HydroColor."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from HYDROCOLOR_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HYDROCOLOR_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8083

    # Authentication (None = disabled)
    api_key: str | None = None

    # Working canvas
    canvas_width: int = Field(default=520, ge=1)
    canvas_height: int = Field(default=360, ge=1)
    default_region_size: int = Field(default=140, ge=1)

    # Concurrency
    max_concurrent: int = Field(default=2, ge=1)

    # Input limits
    max_image_pixels: int = Field(default=50_000_000, ge=1)
    max_file_size: int = Field(default=26_214_400, ge=1)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
