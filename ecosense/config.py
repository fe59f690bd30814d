"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Final

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized configuration object with environment fallbacks."""

    model_config = SettingsConfigDict(env_prefix="ECOSENSE_", env_file=".env", extra="allow")

    # App
    app_name: str = "EcoSense AI"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8430
    debug: bool = False
    log_level: str = Field(default="info")

    # API key authentication (empty = no auth required)
    api_key: str = Field(default="")

    # Redis (theme preference store)
    redis_url: AnyUrl | str = Field(default="redis://localhost:6379/0")

    # Remote vision analysis
    vision_provider: str = Field(default="gemini")
    vision_model: str = Field(default="gemini-3-pro-preview")
    vision_api_key: str = Field(default="")
    vision_timeout_s: float = Field(default=30.0, gt=0)
    image_fetch_timeout_s: float = Field(default=10.0, gt=0)

    # Timers (seconds)
    telemetry_interval_s: int = Field(default=5, ge=1)
    auto_cycle_interval_s: int = Field(default=15, ge=1)
    cooldown_seconds: int = Field(default=90, ge=1)

    # Local override (used while the vision service is rate limited)
    fallback_delay_s: float = Field(default=1.5, ge=0)
    fallback_occupancy_probability: float = Field(default=0.6, ge=0, le=1)
    fallback_max_occupants: int = Field(default=20, ge=1)

    # Retention
    energy_history_size: int = Field(default=30, ge=1)
    activity_log_size: int = Field(default=10, ge=1)
    telemetry_seed_samples: int = Field(default=20, ge=0)
    telemetry_seed_spacing_s: int = Field(default=30, ge=1)

    # Savings ledger
    savings_baseline_kwh: float = Field(default=142.5, ge=0)
    shutdown_credit_factor: float = Field(default=0.1, ge=0)
    co2_kg_per_kwh: float = Field(default=0.4, ge=0)

    # Preferences
    theme_key: str = Field(default="ecosense-theme")
    default_theme: str = Field(default="light")

    # Live camera
    camera_frame_max_age_s: float = Field(default=10.0, gt=0)

    @field_validator("default_theme", mode="before")
    @classmethod
    def _normalize_theme(cls, v: str) -> str:
        """Accept any casing and fall back to light for unknown values."""
        value = str(v or "").strip().lower()
        return value if value in ("light", "dark") else "light"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


SETTINGS: Final[Settings] = get_settings()
