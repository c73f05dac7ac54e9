"""Provider configuration records stored as JSON Lines."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from recipe_engine.exceptions import ConfigurationError
from recipe_engine.models.provider import ProviderConfiguration
from recipe_engine.storage.jsonl import read_jsonl

if TYPE_CHECKING:
    from pathlib import Path


def parse_provider(row: dict[str, Any], *, default_max_depth: int, default_max_urls: int) -> ProviderConfiguration:
    """Validate one record, filling crawl bounds from settings when absent."""

    data = dict(row)
    if data.get("max_depth") is None:
        data["max_depth"] = default_max_depth
    if data.get("max_urls") is None:
        data["max_urls"] = default_max_urls
    try:
        return ProviderConfiguration.model_validate(data)
    except ValidationError as exc:
        provider_id = row.get("provider_id", "<missing>")
        raise ConfigurationError(f"Invalid configuration for provider {provider_id}: {exc}") from exc


class JsonlProviderConfigStore:
    """Read-only view over ``providers.jsonl``; the file is re-read on every query."""

    def __init__(self, path: Path, *, default_max_depth: int = 3, default_max_urls: int = 1000) -> None:
        self.path = path
        self.default_max_depth = default_max_depth
        self.default_max_urls = default_max_urls

    async def list_all(self) -> list[ProviderConfiguration]:
        rows = await asyncio.to_thread(read_jsonl, self.path)
        configs = [
            parse_provider(row, default_max_depth=self.default_max_depth, default_max_urls=self.default_max_urls)
            for row in rows
        ]
        logger.debug("Read {} provider configuration(s) from {}", len(configs), self.path)
        return configs

    async def get(self, provider_id: str) -> ProviderConfiguration | None:
        rows = await asyncio.to_thread(read_jsonl, self.path)
        for row in rows:
            if row.get("provider_id") == provider_id:
                return parse_provider(
                    row, default_max_depth=self.default_max_depth, default_max_urls=self.default_max_urls
                )
        return None
