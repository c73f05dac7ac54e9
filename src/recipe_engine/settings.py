"""Runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Path("./data")
    request_timeout: float = Field(default=30.0, ge=1, le=120)
    rate_limit_per_second: float = Field(default=10.0, gt=0)

    default_max_depth: int = Field(default=3, ge=0, le=10)
    default_max_urls: int = Field(default=1000, ge=1, le=100_000)

    config_cache_ttl_seconds: float = Field(default=3600.0, gt=0)
    checkpoint_interval: int = Field(default=10, ge=1, le=10_000)
    rate_limit_backoff_seconds: float = Field(default=1.0, ge=0.0, le=60.0)
    retry_base_delay_ms: int = Field(default=1000, ge=0, le=60_000)
    retry_backoff: Literal["exponential", "linear"] = "exponential"

    provider_concurrency: int = Field(default=2, ge=1, le=50)

    browser_headless: bool = True
    log_level: str = "INFO"

    @property
    def providers_path(self) -> Path:
        return self.data_dir / "providers.jsonl"

    @property
    def sagas_dir(self) -> Path:
        return self.data_dir / "sagas"

    @property
    def batches_path(self) -> Path:
        return self.data_dir / "batches.jsonl"

    @property
    def database_path(self) -> Path:
        return self.data_dir / "recipe_engine.db"
