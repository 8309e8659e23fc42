"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./data/hybridcoach.db",
        description="SQLAlchemy-compatible database URL.",
    )
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1, le=65535)

    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    catalog_path: Path = Field(
        default=Path(__file__).resolve().parent / "data" / "exercise_catalog.yaml",
        description="YAML seed file for muscle groups, equipment and exercises.",
    )

    # Plan horizon
    default_plan_weeks: int = Field(default=12, ge=1, le=52)
    min_plan_weeks: int = Field(default=4, ge=1, le=52)
    max_plan_weeks: int = Field(default=52, ge=1, le=104)

    # Adaptation tuning
    missed_workout_extension_threshold: int = Field(default=3, ge=1)
    perceived_difficulty_lookback: int = Field(default=10, ge=1, le=100)
    perceived_difficulty_min_matches: int = Field(default=3, ge=1)
    perceived_difficulty_horizon_days: int = Field(default=7, ge=1, le=28)
    min_days_between_adaptations: int = Field(
        default=0,
        ge=0,
        description="Minimum days between successful adaptations of a plan (0 disables the limit).",
    )

    scheduler_hour: int = Field(default=2, ge=0, le=23)
    scheduler_minute: int = Field(default=0, ge=0, le=59)
    scheduler_lock_file: Path = Field(default=Path(".scheduler.lock"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper

    @model_validator(mode="after")
    def check_plan_bounds(self) -> "Settings":
        """Keep the horizon bounds ordered so clamping is well defined."""

        if self.min_plan_weeks > self.max_plan_weeks:
            raise ValueError("MIN_PLAN_WEEKS must not exceed MAX_PLAN_WEEKS")
        if not self.min_plan_weeks <= self.default_plan_weeks <= self.max_plan_weeks:
            raise ValueError("DEFAULT_PLAN_WEEKS must lie between MIN_PLAN_WEEKS and MAX_PLAN_WEEKS")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings
