"""In-memory store implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from recipe_engine.exceptions import SagaStateError

if TYPE_CHECKING:
    from recipe_engine.models.batch import RecipeBatch, RecipeFingerprint
    from recipe_engine.models.provider import ProviderConfiguration
    from recipe_engine.models.saga import SagaState


class InMemorySagaStateStore:
    """Keeps deep copies, so later mutation of a state never leaks into the store."""

    def __init__(self) -> None:
        self.states: dict[str, SagaState] = {}
        self.save_count = 0

    async def insert(self, state: SagaState) -> None:
        if state.correlation_id in self.states:
            raise SagaStateError(f"Saga {state.correlation_id} already exists")
        self.states[state.correlation_id] = state.model_copy(deep=True)
        self.save_count += 1

    async def save(self, state: SagaState) -> None:
        self.states[state.correlation_id] = state.model_copy(deep=True)
        self.save_count += 1

    async def get(self, correlation_id: str) -> SagaState | None:
        state = self.states.get(correlation_id)
        return state.model_copy(deep=True) if state is not None else None


class InMemoryFingerprintStore:
    def __init__(self) -> None:
        self.records: dict[tuple[str, str], RecipeFingerprint] = {}

    async def exists(self, provider_id: str, fingerprint_hash: str) -> bool:
        return (provider_id, fingerprint_hash) in self.records

    async def insert(self, fingerprint: RecipeFingerprint) -> None:
        self.records.setdefault((fingerprint.provider_id, fingerprint.fingerprint_hash), fingerprint)


class InMemoryBatchStore:
    def __init__(self) -> None:
        self.batches: list[RecipeBatch] = []

    async def append(self, batch: RecipeBatch) -> None:
        self.batches.append(batch.model_copy(deep=True))

    async def get(self, batch_id: str) -> RecipeBatch | None:
        return next((b for b in self.batches if b.id == batch_id), None)

    async def get_by_correlation_id(self, correlation_id: str) -> RecipeBatch | None:
        return next((b for b in self.batches if b.correlation_id == correlation_id), None)


class InMemoryProviderConfigStore:
    def __init__(self, configs: list[ProviderConfiguration] | None = None) -> None:
        self.configs: dict[str, ProviderConfiguration] = {c.provider_id: c for c in configs or []}
        self.reads = 0

    def put(self, config: ProviderConfiguration) -> None:
        self.configs[config.provider_id] = config

    async def get(self, provider_id: str) -> ProviderConfiguration | None:
        self.reads += 1
        return self.configs.get(provider_id)

    async def list_all(self) -> list[ProviderConfiguration]:
        self.reads += 1
        return list(self.configs.values())


class InMemoryIngredientMappingStore:
    def __init__(self, mappings: dict[tuple[str, str], str] | None = None) -> None:
        self.mappings = dict(mappings or {})
        self.reads = 0

    async def get(self, provider_id: str, provider_code: str) -> str | None:
        self.reads += 1
        return self.mappings.get((provider_id, provider_code))

    async def put(self, provider_id: str, provider_code: str, canonical_form: str) -> None:
        self.mappings[(provider_id, provider_code)] = canonical_form
