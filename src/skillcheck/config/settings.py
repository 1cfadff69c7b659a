"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SKILLCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Countdown cadence; remaining time may lag the clock by at most one tick
    tick_interval_ms: float = Field(default=10.0, gt=0.0, le=1000.0)

    # Presentation delay before a successful result is reported
    success_delay_ms: float = Field(default=1500.0, ge=0.0)

    # Defaults applied when the caller leaves them out
    default_difficulty: Literal["easy", "normal", "hard"] = "normal"
    sound_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
