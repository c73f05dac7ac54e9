"""Provider configuration models."""

from __future__ import annotations

from datetime import timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DiscoveryStrategy(StrEnum):
    """How recipe URLs are enumerated for a provider."""

    STATIC = "static"
    DYNAMIC = "dynamic"
    API = "api"


class ProviderConfiguration(BaseModel):
    """Per-provider parameters for discovery, batching and rate limiting.

    Field names follow the configuration store records. Instances are frozen:
    the configuration cache hands the same object to concurrent saga runs.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    provider_id: str = Field(min_length=1)
    enabled: bool = True
    discovery_strategy: DiscoveryStrategy
    recipe_root_url: str
    batch_size: int = Field(gt=0)
    time_window_minutes: float = Field(gt=0)
    min_delay_seconds: float = Field(default=0.0, ge=0)
    max_requests_per_minute: int = Field(gt=0)
    retry_count: int = Field(default=3, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    recipe_url_pattern: str | None = None
    category_url_pattern: str | None = None
    max_depth: int | None = Field(default=None, ge=0)
    max_urls: int | None = Field(default=None, ge=1)
    seed_urls: tuple[str, ...] = ()

    @field_validator("discovery_strategy", mode="before")
    @classmethod
    def _parse_strategy(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("recipe_root_url")
    @classmethod
    def _validate_root_url(cls, v: str) -> str:
        if not v.lower().startswith("https://"):
            raise ValueError(f"recipe_root_url must be an absolute https:// URL, got: {v}")
        return v

    @field_validator("seed_urls")
    @classmethod
    def _validate_seed_urls(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        bad = [url for url in v if not url.lower().startswith("https://")]
        if bad:
            raise ValueError(f"seed_urls must be absolute https:// URLs, got: {bad}")
        return v

    @field_validator("recipe_url_pattern", "category_url_pattern")
    @classmethod
    def _blank_pattern_is_none(cls, v: str | None) -> str | None:
        return v or None

    @property
    def discovery_roots(self) -> list[str]:
        """Root URL followed by any extra seeds, without repeats."""
        return list(dict.fromkeys([self.recipe_root_url, *self.seed_urls]))

    @property
    def time_window(self) -> timedelta:
        return timedelta(minutes=self.time_window_minutes)

    @property
    def min_delay(self) -> timedelta:
        return timedelta(seconds=self.min_delay_seconds)
