"""TTL cache in front of the provider configuration store."""

from __future__ import annotations

import regex
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from recipe_engine.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from recipe_engine.models.provider import ProviderConfiguration
    from recipe_engine.storage.base import ProviderConfigStore

_ALL_ENABLED = object()


@dataclass(slots=True)
class _Entry[T]:
    value: T
    expires_at: float


@dataclass(frozen=True, slots=True)
class UrlPatterns:
    """Compiled provider URL patterns; ``None`` means use the default rules."""

    recipe: regex.Pattern[str] | None = None
    category: regex.Pattern[str] | None = None
    timeout: float = 1.0


DEFAULT_PATTERNS = UrlPatterns()


class ProviderConfigCache:
    """Read-through cache of provider configurations.

    Entries, including "not found" results, live for ``ttl_seconds`` and are
    refreshed lazily on the next access after they expire. The cache also owns
    the compiled URL patterns derived from each configuration.
    """

    def __init__(
        self,
        store: ProviderConfigStore,
        *,
        ttl_seconds: float = 3600.0,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._now = now
        self._entries: dict[object, _Entry] = {}
        self._patterns: dict[tuple[str, str | None, str | None], UrlPatterns] = {}

    def _get(self, key: object) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._now():
            self._entries.pop(key, None)
            return None
        return entry

    def _put(self, key: object, value: object) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._now() + self.ttl_seconds)

    async def get_by_provider_id(self, provider_id: str) -> ProviderConfiguration | None:
        if not provider_id or not provider_id.strip():
            raise ValueError("provider_id cannot be empty")

        entry = self._get(provider_id)
        if entry is not None:
            return entry.value

        config = await self.store.get(provider_id)
        if config is None:
            logger.debug("Provider configuration not found for {}", provider_id)
        self._put(provider_id, config)
        return config

    async def get_all_enabled(self) -> list[ProviderConfiguration]:
        entry = self._get(_ALL_ENABLED)
        if entry is not None:
            return list(entry.value)

        configs = [c for c in await self.store.list_all() if c.enabled]
        for config in configs:
            self._put(config.provider_id, config)
        self._put(_ALL_ENABLED, configs)
        return list(configs)

    async def load_configurations(self) -> list[ProviderConfiguration]:
        """Eagerly load every enabled provider, failing when there are none."""

        self._entries.pop(_ALL_ENABLED, None)
        configs = await self.get_all_enabled()
        if not configs:
            raise ConfigurationError(
                "No enabled provider configurations found. At least one provider must be configured."
            )
        logger.info(
            "Loaded {} enabled provider configuration(s): {}",
            len(configs),
            ", ".join(c.provider_id for c in configs),
        )
        return configs

    def invalidate(self, provider_id: str) -> None:
        self._entries.pop(provider_id, None)
        self._entries.pop(_ALL_ENABLED, None)
        for key in [k for k in self._patterns if k[0] == provider_id]:
            del self._patterns[key]
        logger.debug("Invalidated provider configuration cache for {}", provider_id)

    def clear(self) -> None:
        self._entries.clear()
        self._patterns.clear()

    def url_patterns(self, config: ProviderConfiguration) -> UrlPatterns:
        """Compiled, case-insensitive recipe/category patterns for ``config``."""

        key = (config.provider_id, config.recipe_url_pattern, config.category_url_pattern)
        patterns = self._patterns.get(key)
        if patterns is None:
            patterns = UrlPatterns(
                recipe=_compile(config.provider_id, config.recipe_url_pattern),
                category=_compile(config.provider_id, config.category_url_pattern),
            )
            self._patterns[key] = patterns
        return patterns


def _compile(provider_id: str, pattern: str | None) -> regex.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return regex.compile(pattern, regex.IGNORECASE)
    except regex.error as exc:
        logger.warning("Invalid URL pattern {!r} for provider {}, using defaults: {}", pattern, provider_id, exc)
        return None
