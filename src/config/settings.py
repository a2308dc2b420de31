"""
Harness settings - pydantic-settings configuration.

This module defines the test harness configuration using pydantic-settings
for environment variable loading with validation and defaults.
Every field can be overridden with a HARNESS_-prefixed environment variable
(e.g. HARNESS_POSTGRES_IMAGE=postgres:15-alpine) or through a .env file.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.ports import ResetMode


class HarnessSettings(BaseSettings):
    """Test harness settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="HARNESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Container configuration
    postgres_image: str = "postgres:16-alpine"
    database_name: str = "test_db"
    username: str = "postgres"
    password: str = "postgres123"
    cleanup_on_release: bool = True  # Remove the container, not only stop it
    startup_timeout_seconds: float = Field(default=60.0, gt=0)  # Readiness wait bound

    # Reset-and-seed configuration
    reset_schemas: list[str] = ["public"]
    tables_to_ignore: list[str] = []
    seed_count: int = Field(default=5, ge=0)
    reset_mode: ResetMode = ResetMode.ISOLATED

    # Seed generator
    seed_locale: str = "en_US"
    seed_random_seed: int | None = None  # Fixed seed makes generated names reproducible

    # Diagnostics
    sensitive_data_logging: bool = True  # Log statement parameter values
    detailed_errors: bool = True  # Log SQLSTATE/detail/hint for failing statements

    # Session pool (one pool per fixture)
    pool_min_size: int = Field(default=1, ge=0)
    pool_max_size: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def check_pool_bounds(self) -> "HarnessSettings":
        if self.pool_max_size < self.pool_min_size:
            raise ValueError("pool_max_size must be >= pool_min_size")
        return self


@lru_cache
def get_settings() -> HarnessSettings:
    """Get cached settings instance."""
    return HarnessSettings()
