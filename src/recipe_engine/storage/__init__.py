"""Persistence adapters."""

from .batches import JsonlBatchStore
from .checkpoint import load_checkpoint, save_checkpoint
from .memory import (
    InMemoryBatchStore,
    InMemoryFingerprintStore,
    InMemoryIngredientMappingStore,
    InMemoryProviderConfigStore,
    InMemorySagaStateStore,
)
from .providers import JsonlProviderConfigStore
from .saga_state import FileSagaStateStore
from .sqlite import SqliteFingerprintStore, SqliteIngredientMappingStore, create_sqlite_engine

__all__ = [
    "FileSagaStateStore",
    "InMemoryBatchStore",
    "InMemoryFingerprintStore",
    "InMemoryIngredientMappingStore",
    "InMemoryProviderConfigStore",
    "InMemorySagaStateStore",
    "JsonlBatchStore",
    "JsonlProviderConfigStore",
    "SqliteFingerprintStore",
    "SqliteIngredientMappingStore",
    "create_sqlite_engine",
    "load_checkpoint",
    "save_checkpoint",
]
