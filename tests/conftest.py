"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from aiolimiter import AsyncLimiter

from recipe_engine.clients.http import RequestContext
from recipe_engine.models.discovery import DiscoveredUrl
from recipe_engine.models.provider import ProviderConfiguration
from recipe_engine.pipeline.saga import RecipeProcessingSaga
from recipe_engine.providers.cache import ProviderConfigCache
from recipe_engine.resilience.rate_limiter import TokenBucketRateLimiter
from recipe_engine.services.events import InMemoryEventSink
from recipe_engine.services.fingerprint import FingerprintService
from recipe_engine.services.ingredients import IngredientNormalizer
from recipe_engine.settings import Settings
from recipe_engine.storage.memory import (
    InMemoryBatchStore,
    InMemoryFingerprintStore,
    InMemoryIngredientMappingStore,
    InMemoryProviderConfigStore,
    InMemorySagaStateStore,
)
from tests.factories import make_provider
from tests.fakes import FakeClock, FakeDiscovery, FakeDiscoveryFactory, FakeProcessor, FakeSleep, SagaHarness

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def request_context() -> RequestContext:
    return RequestContext(limiter=AsyncLimiter(1000, 1))


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(tmp_data_dir: Path) -> Settings:
    return Settings(data_dir=tmp_data_dir, retry_base_delay_ms=0, rate_limit_backoff_seconds=0)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def build_saga(fake_clock: FakeClock):  # noqa: ANN201
    """Factory wiring a saga over in-memory stores and fakes."""

    def _build(
        discovered: list[DiscoveredUrl] | Exception,
        *,
        config: ProviderConfiguration | None = None,
        processor: FakeProcessor | None = None,
        discovery_failures: list[Exception] | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        events: InMemoryEventSink | None = None,
        checkpoint_interval: int = 10,
    ) -> SagaHarness:
        config = config or make_provider()
        config_store = InMemoryProviderConfigStore([config])
        cache = ProviderConfigCache(config_store, now=fake_clock)
        state_store = InMemorySagaStateStore()
        batch_store = InMemoryBatchStore()
        fingerprint_store = InMemoryFingerprintStore()
        mapping_store = InMemoryIngredientMappingStore()
        events = events if events is not None else InMemoryEventSink()
        discovery = FakeDiscovery(discovered, discovery_failures)
        processor = processor or FakeProcessor()
        sleep = FakeSleep(fake_clock)
        saga = RecipeProcessingSaga(
            state_store=state_store,
            batch_store=batch_store,
            config_cache=cache,
            discovery=FakeDiscoveryFactory(discovery),
            fingerprints=FingerprintService(fingerprint_store),
            rate_limiter=rate_limiter or TokenBucketRateLimiter(6000, now=fake_clock),
            processor=processor,
            events=events,
            normalizer=IngredientNormalizer(mapping_store, events, now=fake_clock),
            checkpoint_interval=checkpoint_interval,
            rate_limit_backoff_seconds=1.0,
            retry_base_delay_ms=0,
            clock=fake_clock,
            sleep=sleep,
        )
        return SagaHarness(
            saga=saga,
            config_store=config_store,
            state_store=state_store,
            batch_store=batch_store,
            fingerprint_store=fingerprint_store,
            mapping_store=mapping_store,
            events=events,
            discovery=discovery,
            processor=processor,
            clock=fake_clock,
            sleep=sleep,
        )

    return _build
