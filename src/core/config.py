"""Application configuration and .env loading."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized runtime configuration."""

    cache_dir: str = Field(default="data/sicop", validation_alias="SICOP_CACHE_DIR")
    cache_db_name: str = Field(
        default="sicop_cache.sqlite", validation_alias="SICOP_CACHE_DB_NAME"
    )
    sqlite_timeout: float = Field(
        default=30.0, gt=0, validation_alias="SICOP_SQLITE_TIMEOUT"
    )
    log_level: str = Field(default="INFO", validation_alias="SICOP_LOG_LEVEL")
    export_dir: str = Field(default="exports", validation_alias="SICOP_EXPORT_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir) / self.cache_db_name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once from .env/environment."""
    return Settings()


__all__ = ["Settings", "get_settings"]
