"""Provider ingredient code to canonical form lookup."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import TYPE_CHECKING

from loguru import logger

from recipe_engine.models.events import IngredientMappingMissingEvent
from recipe_engine.services.events import publish_safely

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from recipe_engine.services.events import EventSink
    from recipe_engine.storage.base import IngredientMappingStore


class IngredientNormalizer:
    """Maps provider ingredient codes to canonical forms through an LRU + TTL cache.

    Unmapped codes are cached as ``None`` and reported once per lookup that
    reaches the store.
    """

    def __init__(
        self,
        store: IngredientMappingStore,
        events: EventSink,
        *,
        max_entries: int = 1000,
        ttl_seconds: float = 3600.0,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.events = events
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._now = now
        self._cache: OrderedDict[tuple[str, str], tuple[str | None, float]] = OrderedDict()

    def _cached(self, key: tuple[str, str]) -> tuple[bool, str | None]:
        hit = self._cache.get(key)
        if hit is None:
            return False, None
        value, stored_at = hit
        if self._now() - stored_at >= self.ttl_seconds:
            del self._cache[key]
            return False, None
        self._cache.move_to_end(key)
        return True, value

    def _remember(self, key: tuple[str, str], value: str | None) -> None:
        self._cache[key] = (value, self._now())
        self._cache.move_to_end(key)
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)

    async def normalize(self, provider_id: str, code: str, *, recipe_url: str = "") -> str | None:
        if not provider_id or not provider_id.strip():
            raise ValueError("provider_id cannot be empty")
        if not code or not code.strip():
            raise ValueError("code cannot be empty")

        key = (provider_id, code)
        found, value = self._cached(key)
        if found:
            return value

        mapping = await self.store.get(provider_id, code)
        if mapping is None:
            logger.warning("No ingredient mapping for provider {} code {!r}", provider_id, code)
            await publish_safely(
                self.events,
                IngredientMappingMissingEvent(provider_id=provider_id, provider_code=code, recipe_url=recipe_url),
            )
            self._remember(key, None)
            return None

        self._remember(key, mapping)
        return mapping

    async def normalize_batch(
        self, provider_id: str, codes: Iterable[str], *, recipe_url: str = ""
    ) -> dict[str, str | None]:
        unique = list(dict.fromkeys(codes))
        result: dict[str, str | None] = {}
        for code in unique:
            result[code] = await self.normalize(provider_id, code, recipe_url=recipe_url)
        if unique:
            mapped = sum(1 for v in result.values() if v is not None)
            logger.debug(
                "Normalized {} ingredient codes for {}: {} mapped, {} unmapped",
                len(unique),
                provider_id,
                mapped,
                len(unique) - mapped,
            )
        return result
