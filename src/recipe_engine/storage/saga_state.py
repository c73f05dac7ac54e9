"""File-backed saga state store."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from recipe_engine.exceptions import SagaStateError
from recipe_engine.models.saga import SagaState
from recipe_engine.storage.checkpoint import load_checkpoint, save_checkpoint

if TYPE_CHECKING:
    from pathlib import Path


class FileSagaStateStore:
    """One JSON document per correlation id, replaced atomically on every save."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, correlation_id: str) -> Path:
        if not correlation_id or "/" in correlation_id or "\\" in correlation_id or correlation_id.startswith("."):
            raise SagaStateError(f"Invalid correlation id: {correlation_id!r}")
        return self.directory / f"{correlation_id}.json"

    async def insert(self, state: SagaState) -> None:
        path = self.path_for(state.correlation_id)
        if path.exists():
            raise SagaStateError(f"Saga {state.correlation_id} already exists")
        await asyncio.to_thread(save_checkpoint, path, state)

    async def save(self, state: SagaState) -> None:
        await asyncio.to_thread(save_checkpoint, self.path_for(state.correlation_id), state)

    async def get(self, correlation_id: str) -> SagaState | None:
        return await asyncio.to_thread(load_checkpoint, self.path_for(correlation_id), SagaState)

    def list_ids(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))
