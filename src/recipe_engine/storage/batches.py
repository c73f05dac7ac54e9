"""Append-only JSONL batch store."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from recipe_engine.models.batch import RecipeBatch
from recipe_engine.storage.jsonl import append_jsonl, read_jsonl

if TYPE_CHECKING:
    from pathlib import Path


class JsonlBatchStore:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def append(self, batch: RecipeBatch) -> None:
        if not batch.is_completed:
            raise ValueError(f"Batch {batch.id} must be completed before it is persisted")
        async with self._lock:
            await asyncio.to_thread(append_jsonl, self.path, batch.model_dump(mode="json"))

    async def _all(self) -> list[RecipeBatch]:
        rows = await asyncio.to_thread(read_jsonl, self.path)
        return [RecipeBatch.model_validate(row) for row in rows]

    async def get(self, batch_id: str) -> RecipeBatch | None:
        return next((b for b in await self._all() if b.id == batch_id), None)

    async def get_by_correlation_id(self, correlation_id: str) -> RecipeBatch | None:
        return next((b for b in await self._all() if b.correlation_id == correlation_id), None)
