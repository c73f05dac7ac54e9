"""Store contracts consumed by the saga and its collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from recipe_engine.models.batch import RecipeBatch, RecipeFingerprint
    from recipe_engine.models.provider import ProviderConfiguration
    from recipe_engine.models.saga import SagaState


class SagaStateStore(Protocol):
    """Whole-document store of saga states keyed by correlation id."""

    async def insert(self, state: SagaState) -> None: ...

    async def save(self, state: SagaState) -> None: ...

    async def get(self, correlation_id: str) -> SagaState | None: ...


class FingerprintStore(Protocol):
    async def exists(self, provider_id: str, fingerprint_hash: str) -> bool: ...

    async def insert(self, fingerprint: RecipeFingerprint) -> None: ...


class BatchStore(Protocol):
    """Append-only store of completed batches."""

    async def append(self, batch: RecipeBatch) -> None: ...

    async def get(self, batch_id: str) -> RecipeBatch | None: ...

    async def get_by_correlation_id(self, correlation_id: str) -> RecipeBatch | None: ...


class ProviderConfigStore(Protocol):
    async def get(self, provider_id: str) -> ProviderConfiguration | None: ...

    async def list_all(self) -> list[ProviderConfiguration]: ...


class IngredientMappingStore(Protocol):
    async def get(self, provider_id: str, provider_code: str) -> str | None: ...

    async def put(self, provider_id: str, provider_code: str, canonical_form: str) -> None: ...
