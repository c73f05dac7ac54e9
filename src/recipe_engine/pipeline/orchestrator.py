"""Component wiring and the multi-provider ingest flow."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from filelock import FileLock
from loguru import logger
from prefect import flow
from pydantic import BaseModel

from recipe_engine.clients.http import create_http_client, request_context
from recipe_engine.discovery.factory import DiscoveryFactory
from recipe_engine.pipeline.saga import RecipeProcessingSaga
from recipe_engine.providers.cache import ProviderConfigCache
from recipe_engine.resilience.rate_limiter import TokenBucketRateLimiter
from recipe_engine.services.events import LoggingEventSink
from recipe_engine.services.fingerprint import FingerprintService
from recipe_engine.services.ingredients import IngredientNormalizer
from recipe_engine.services.processor import HttpRecipeProcessor
from recipe_engine.storage.batches import JsonlBatchStore
from recipe_engine.storage.providers import JsonlProviderConfigStore
from recipe_engine.storage.saga_state import FileSagaStateStore
from recipe_engine.storage.sqlite import SqliteFingerprintStore, SqliteIngredientMappingStore, create_sqlite_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from recipe_engine.clients.browser import PageRenderer
    from recipe_engine.models.saga import SagaState
    from recipe_engine.services.events import EventSink
    from recipe_engine.settings import Settings

DEFAULT_REQUESTS_PER_MINUTE = 60


@dataclass
class RecipeEngine:
    """Wired components sharing one HTTP client and one SQLite engine."""

    settings: Settings
    config_cache: ProviderConfigCache
    state_store: FileSagaStateStore
    saga: RecipeProcessingSaga


@asynccontextmanager
async def open_engine(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    renderer: PageRenderer | None = None,
    events: EventSink | None = None,
) -> AsyncIterator[RecipeEngine]:
    """Build every component from ``settings`` and release them on exit."""

    events = events or LoggingEventSink()
    ctx = request_context(settings)
    config_cache = ProviderConfigCache(
        JsonlProviderConfigStore(
            settings.providers_path,
            default_max_depth=settings.default_max_depth,
            default_max_urls=settings.default_max_urls,
        ),
        ttl_seconds=settings.config_cache_ttl_seconds,
    )
    state_store = FileSagaStateStore(settings.sagas_dir)
    db = create_sqlite_engine(settings.database_path)
    try:
        async with await create_http_client(settings, transport=transport) as client:
            saga = RecipeProcessingSaga(
                state_store=state_store,
                batch_store=JsonlBatchStore(settings.batches_path),
                config_cache=config_cache,
                discovery=DiscoveryFactory(
                    client, ctx, config_cache, renderer=renderer, headless=settings.browser_headless
                ),
                fingerprints=FingerprintService(SqliteFingerprintStore(db)),
                rate_limiter=TokenBucketRateLimiter(DEFAULT_REQUESTS_PER_MINUTE),
                processor=HttpRecipeProcessor(client, ctx),
                events=events,
                normalizer=IngredientNormalizer(SqliteIngredientMappingStore(db), events),
                checkpoint_interval=settings.checkpoint_interval,
                rate_limit_backoff_seconds=settings.rate_limit_backoff_seconds,
                retry_base_delay_ms=settings.retry_base_delay_ms,
                retry_backoff=settings.retry_backoff,
                default_max_depth=settings.default_max_depth,
                default_max_urls=settings.default_max_urls,
            )
            yield RecipeEngine(settings=settings, config_cache=config_cache, state_store=state_store, saga=saga)
    finally:
        db.dispose()


class ProviderRunResult(BaseModel):
    """Outcome of one provider's saga within a multi-provider run."""

    provider_id: str
    correlation_id: str
    status: Literal["completed", "failed"]
    processed: int = 0
    failed: int = 0
    duplicates: int = 0
    error: str | None = None

    @classmethod
    def from_state(cls, state: SagaState) -> ProviderRunResult:
        return cls(
            provider_id=state.provider_id,
            correlation_id=state.correlation_id,
            status="completed",
            processed=int(state.metrics.get("processed", 0)),
            failed=int(state.metrics.get("failed", 0)),
            duplicates=int(state.metrics.get("duplicates", 0)),
        )


async def run_all_providers(engine: RecipeEngine, concurrency: int) -> list[ProviderRunResult]:
    """Run one saga per enabled provider; a failing provider never stops the others."""

    configs = await engine.config_cache.load_configurations()
    sem = asyncio.Semaphore(concurrency)

    async def _run_one(provider_id: str) -> ProviderRunResult:
        correlation_id = uuid.uuid4().hex
        async with sem:
            try:
                state = await engine.saga.start_processing(provider_id, correlation_id=correlation_id)
            except Exception as exc:  # noqa: BLE001 - isolated per provider
                logger.error("Provider {} failed: {}", provider_id, exc)
                return ProviderRunResult(
                    provider_id=provider_id,
                    correlation_id=correlation_id,
                    status="failed",
                    error=str(exc) or type(exc).__name__,
                )
        return ProviderRunResult.from_state(state)

    return list(await asyncio.gather(*(_run_one(c.provider_id) for c in configs)))


@flow(name="recipe-engine-ingest-all")
async def ingest_all_providers(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    renderer: PageRenderer | None = None,
    events: EventSink | None = None,
) -> list[ProviderRunResult]:
    """Run every enabled provider under a process-wide file lock."""

    lock_path = settings.data_dir / ".ingest.lock"
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path), timeout=10, thread_local=False)

    # Acquire lock without blocking the async event loop
    await asyncio.to_thread(lock.acquire)
    try:
        logger.info("Ingest lock acquired")
        async with open_engine(settings, transport=transport, renderer=renderer, events=events) as engine:
            results = await run_all_providers(engine, settings.provider_concurrency)
    finally:
        lock.release()

    logger.info(
        "Ingest finished: {} completed, {} failed",
        sum(1 for r in results if r.status == "completed"),
        sum(1 for r in results if r.status == "failed"),
    )
    return results
