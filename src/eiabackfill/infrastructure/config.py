"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for eiabackfill.

    Every field can be set through an ``EIABACKFILL_``-prefixed environment
    variable or a local ``.env`` file, e.g. ``EIABACKFILL_EIA_API_KEY``.
    """

    model_config = SettingsConfigDict(
        env_prefix="EIABACKFILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    eia_api_key: str | None = Field(default=None, description="EIA open-data API key")
    eia_base_url: str = Field(default="https://api.eia.gov/v2", description="EIA API v2 root")
    eia_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout")

    default_offset: int = Field(default=5000, ge=1, description="Observations per sub-query")
    max_concurrency: int = Field(default=1, ge=1, description="Segments fetched at once")

    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
