"""Checkpointed recipe-processing saga."""

from __future__ import annotations

import asyncio
import time
import traceback
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from recipe_engine.discovery.base import discover_from_seeds
from recipe_engine.exceptions import ConfigurationError, SagaStateError
from recipe_engine.models.batch import RecipeBatch
from recipe_engine.models.discovery import DiscoveredUrl
from recipe_engine.models.events import BatchCompletedEvent, ProcessingErrorEvent
from recipe_engine.models.saga import PHASE_ORDER, ErrorCategory, FailedUrl, SagaPhase, SagaState
from recipe_engine.resilience.errors import classify, error_type
from recipe_engine.resilience.retry import execute_with_retry
from recipe_engine.services.events import publish_safely
from recipe_engine.services.fingerprint import generate_fingerprint

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from loguru import Logger

    from recipe_engine.discovery.factory import DiscoveryFactory
    from recipe_engine.models.provider import ProviderConfiguration
    from recipe_engine.providers.cache import ProviderConfigCache
    from recipe_engine.resilience.rate_limiter import TokenBucketRateLimiter
    from recipe_engine.resilience.retry import Backoff
    from recipe_engine.services.events import EventSink
    from recipe_engine.services.fingerprint import FingerprintService
    from recipe_engine.services.ingredients import IngredientNormalizer
    from recipe_engine.services.processor import RecipeProcessor
    from recipe_engine.storage.base import BatchStore, SagaStateStore

    PhaseHandler = Callable[[SagaState, ProviderConfiguration, Logger], Awaitable[None]]


class RecipeProcessingSaga:
    """Drives one provider run through discovery, fingerprinting, processing and persisting.

    Phases run sequentially. The state is saved after every phase and after
    every processed URL, so a resumed run continues from the stored phase and
    cursor instead of starting over. Any unhandled exception marks the saga
    failed, saves it and propagates. Task cancellation propagates without
    touching the state, which therefore stays resumable.
    """

    def __init__(
        self,
        *,
        state_store: SagaStateStore,
        batch_store: BatchStore,
        config_cache: ProviderConfigCache,
        discovery: DiscoveryFactory,
        fingerprints: FingerprintService,
        rate_limiter: TokenBucketRateLimiter,
        processor: RecipeProcessor,
        events: EventSink,
        normalizer: IngredientNormalizer | None = None,
        checkpoint_interval: int = 10,
        rate_limit_backoff_seconds: float = 1.0,
        retry_base_delay_ms: int = 1000,
        retry_backoff: Backoff = "exponential",
        default_max_depth: int = 3,
        default_max_urls: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.state_store = state_store
        self.batch_store = batch_store
        self.config_cache = config_cache
        self.discovery = discovery
        self.fingerprints = fingerprints
        self.rate_limiter = rate_limiter
        self.processor = processor
        self.events = events
        self.normalizer = normalizer
        self.checkpoint_interval = checkpoint_interval
        self.rate_limit_backoff_seconds = rate_limit_backoff_seconds
        self.retry_base_delay_ms = retry_base_delay_ms
        self.retry_backoff: Backoff = retry_backoff
        self.default_max_depth = default_max_depth
        self.default_max_urls = default_max_urls
        self._clock = clock
        self._sleep = sleep
        self._handlers: dict[SagaPhase, PhaseHandler] = {
            SagaPhase.DISCOVERING: self._discover,
            SagaPhase.FINGERPRINTING: self._fingerprint,
            SagaPhase.PROCESSING: self._process,
            SagaPhase.PERSISTING: self._persist,
        }

    async def start_processing(
        self,
        provider_id: str,
        batch_size: int | None = None,
        time_window: timedelta | None = None,
        *,
        correlation_id: str | None = None,
    ) -> SagaState:
        """Create, persist and run a new saga; returns the completed state."""

        config = await self._config(provider_id)
        batch_size = batch_size if batch_size is not None else config.batch_size
        time_window = time_window if time_window is not None else config.time_window
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if time_window <= timedelta(0):
            raise ValueError("time_window must be positive")

        state = SagaState(
            provider_id=provider_id,
            batch_size=batch_size,
            time_window_seconds=time_window.total_seconds(),
        )
        if correlation_id is not None:
            state.correlation_id = correlation_id
        await self.state_store.insert(state)
        logger.info(
            "Started saga {} for {} (batch_size={}, time_window={})",
            state.correlation_id,
            provider_id,
            batch_size,
            time_window,
        )
        return await self._execute(state)

    async def resume_processing(self, correlation_id: str) -> SagaState:
        """Re-enter a persisted, non-terminal saga at its stored phase."""

        state = await self.state_store.get(correlation_id)
        if state is None:
            raise SagaStateError(f"Saga {correlation_id} not found")
        if state.is_terminal:
            raise SagaStateError(f"Saga {correlation_id} is {state.status} and cannot be resumed")
        logger.info("Resuming saga {} for {} at {}", correlation_id, state.provider_id, state.phase)
        return await self._execute(state)

    async def get_state(self, correlation_id: str) -> SagaState | None:
        return await self.state_store.get(correlation_id)

    async def get_batch_status(self, correlation_id: str) -> RecipeBatch | None:
        return await self.batch_store.get_by_correlation_id(correlation_id)

    async def _config(self, provider_id: str) -> ProviderConfiguration:
        config = await self.config_cache.get_by_provider_id(provider_id)
        if config is None:
            raise ConfigurationError(f"No configuration found for provider {provider_id}")
        if not config.enabled:
            raise ConfigurationError(f"Provider {provider_id} is disabled")
        return config

    async def _execute(self, state: SagaState) -> SagaState:
        log = logger.bind(provider_id=state.provider_id, correlation_id=state.correlation_id)
        try:
            config = await self._config(state.provider_id)
            for phase in PHASE_ORDER[PHASE_ORDER.index(state.phase) :]:
                if phase is SagaPhase.COMPLETED:
                    state.complete(self._summary_metrics(state))
                    await self.state_store.save(state)
                    break
                phase_log = log.bind(phase=phase.value)
                phase_log.info("Entering phase {}", phase)
                await self._handlers[phase](state, config, phase_log)
                state.advance_to(PHASE_ORDER[PHASE_ORDER.index(phase) + 1])
                state.add_checkpoint(f"{phase.value}_completed")
                await self.state_store.save(state)
        except Exception as exc:
            state.fail(str(exc) or type(exc).__name__, traceback.format_exc())
            await self.state_store.save(state)
            log.bind(phase=state.phase.value).error(
                "Saga failed in phase {} ({}): {}", state.phase, classify(exc), exc
            )
            raise

        log.info(
            "Saga completed: processed={} failed={} duplicates={}",
            state.metrics.get("processed", 0),
            state.metrics.get("failed", 0),
            state.metrics.get("duplicates", 0),
        )
        return state

    async def _discover(self, state: SagaState, config: ProviderConfiguration, log: Logger) -> None:
        discovery = self.discovery.for_provider(config)
        max_depth = config.max_depth if config.max_depth is not None else self.default_max_depth
        max_urls = config.max_urls if config.max_urls is not None else self.default_max_urls

        urls = await execute_with_retry(
            lambda: discover_from_seeds(discovery, config.discovery_roots, config.provider_id, max_depth, max_urls),
            config.retry_count,
            self.retry_base_delay_ms,
            backoff=self.retry_backoff,
            operation=f"{discovery.strategy_name} discovery for {config.provider_id}",
        )
        state.data.discovered_urls = list(urls)
        state.data.fingerprint_cursor = 0
        state.data.fingerprinted_urls = []
        state.data.duplicate_urls = []
        log.info("Discovered {} candidate URLs", len(urls))

    async def _fingerprint(self, state: SagaState, config: ProviderConfiguration, log: Logger) -> None:
        data = state.data
        if data.fingerprint_cursor > 0:
            # The cursor is saved before the insert; replay the last new URL's record
            last_url = data.discovered_urls[data.fingerprint_cursor - 1].url
            if data.fingerprinted_urls and data.fingerprinted_urls[-1] == last_url:
                await self.fingerprints.record(config.provider_id, generate_fingerprint(last_url), last_url)
                log.debug("Re-recorded fingerprint for {} after resume", last_url)

        for idx in range(data.fingerprint_cursor, len(data.discovered_urls)):
            url = data.discovered_urls[idx].url
            fingerprint = generate_fingerprint(url)
            duplicate = await self.fingerprints.is_duplicate(config.provider_id, fingerprint)
            if duplicate:
                data.duplicate_urls.append(url)
                log.debug("Skipping duplicate {}", url)
            else:
                data.fingerprinted_urls.append(url)
            data.fingerprint_cursor = idx + 1
            state.touch()
            await self.state_store.save(state)
            if not duplicate:
                await self.fingerprints.record(config.provider_id, fingerprint, url)

        log.info(
            "Fingerprinted {} URLs, {} duplicates skipped",
            len(data.fingerprinted_urls),
            len(data.duplicate_urls),
        )

    async def _process(self, state: SagaState, config: ProviderConfiguration, log: Logger) -> None:
        data = state.data
        by_url = {item.url: item for item in data.discovered_urls}
        self.rate_limiter.configure(config.provider_id, config.max_requests_per_minute)
        phase_started = self._clock()

        while data.cursor < len(data.fingerprinted_urls):
            if len(data.processed_urls) >= state.batch_size:
                log.info("Batch size {} reached", state.batch_size)
                break
            elapsed = self._clock() - phase_started
            if elapsed >= state.time_window_seconds:
                log.info("Time window of {}s elapsed after {:.1f}s", state.time_window_seconds, elapsed)
                break

            idx = data.cursor
            url = data.fingerprinted_urls[idx]
            await self._acquire_token(config.provider_id, log)
            target = by_url.get(url) or DiscoveredUrl(
                url=url, provider_id=config.provider_id, discovered_from=config.recipe_root_url, confidence=0.5
            )
            try:
                result = await self.processor.process(target, config)
            except Exception as exc:
                self._record_failure(state, url, exc, log)
                await publish_safely(
                    self.events,
                    ProcessingErrorEvent(url=url, provider_id=config.provider_id, error_message=str(exc)),
                )
            else:
                data.processed_urls.append(url)
                log.debug("Processed {} ({})", url, result.title or "untitled")
                if result.ingredient_codes and self.normalizer is not None:
                    await self._normalize_ingredients(
                        self.normalizer, config.provider_id, url, result.ingredient_codes, log
                    )
                if len(data.processed_urls) % self.checkpoint_interval == 0:
                    state.add_checkpoint(f"processed_{len(data.processed_urls)}")

            data.cursor = idx + 1
            state.touch()
            await self.state_store.save(state)

            if config.min_delay_seconds > 0 and data.cursor < len(data.fingerprinted_urls):
                await self._sleep(config.min_delay_seconds)

        log.info(
            "Processing stopped at cursor {}/{}: {} processed, {} failed",
            data.cursor,
            len(data.fingerprinted_urls),
            len(data.processed_urls),
            len(data.failed_urls),
        )

    async def _acquire_token(self, provider_id: str, log: Logger) -> None:
        if await self.rate_limiter.try_acquire(provider_id):
            return
        log.debug("Rate limit reached, backing off {}s", self.rate_limit_backoff_seconds)
        await self._sleep(self.rate_limit_backoff_seconds)
        if not await self.rate_limiter.try_acquire(provider_id):
            log.warning("Rate limit still exhausted after backoff, proceeding")

    def _record_failure(self, state: SagaState, url: str, exc: Exception, log: Logger) -> None:
        category = classify(exc)
        failure = FailedUrl(
            url=url,
            error_type=error_type(exc),
            category=category,
            is_transient=category is ErrorCategory.TRANSIENT,
            message=str(exc) or type(exc).__name__,
            failed_at=datetime.now(UTC),
        )
        state.data.failed_urls.append(failure)
        log.bind(error_category=category.value, error_type=failure.error_type).warning(
            "Failed to process {} ({} {}): {}", url, category, failure.error_type, failure.message
        )

    async def _normalize_ingredients(
        self, normalizer: IngredientNormalizer, provider_id: str, url: str, codes: list[str], log: Logger
    ) -> None:
        try:
            mapping = await normalizer.normalize_batch(
                provider_id, [c for c in codes if c and c.strip()], recipe_url=url
            )
        except Exception as exc:  # noqa: BLE001 - normalization never fails a recipe
            log.warning("Ingredient normalization failed for {}: {}", url, exc)
            return
        unmapped = [code for code, canonical in mapping.items() if canonical is None]
        if unmapped:
            log.debug("{} unmapped ingredient codes on {}", len(unmapped), url)

    async def _persist(self, state: SagaState, config: ProviderConfiguration, log: Logger) -> None:
        batch = await self.batch_store.get_by_correlation_id(state.correlation_id)
        if batch is None:
            batch = RecipeBatch(
                correlation_id=state.correlation_id,
                provider_id=state.provider_id,
                batch_size=state.batch_size,
                time_window_seconds=state.time_window_seconds,
                started_at=state.started_at,
                processed_urls=list(state.data.processed_urls),
                skipped_urls=list(state.data.duplicate_urls),
                failed_urls=list(state.data.failed_urls),
            )
            batch.complete()
            await self.batch_store.append(batch)
            log.info(
                "Persisted batch {}: processed={} skipped={} failed={}",
                batch.id,
                batch.processed_count,
                batch.skipped_count,
                batch.failed_count,
            )
        else:
            log.info("Batch {} was already persisted", batch.id)
        state.batch_id = batch.id

        await publish_safely(
            self.events,
            BatchCompletedEvent(
                batch_id=batch.id,
                provider_id=batch.provider_id,
                processed_count=batch.processed_count,
                skipped_count=batch.skipped_count,
                failed_count=batch.failed_count,
            ),
        )

    @staticmethod
    def _summary_metrics(state: SagaState) -> dict[str, float | int]:
        processed = len(state.data.processed_urls)
        elapsed = (datetime.now(UTC) - state.started_at).total_seconds()
        return {
            "processed": processed,
            "failed": len(state.data.failed_urls),
            "duplicates": len(state.data.duplicate_urls),
            "discovered": len(state.data.discovered_urls),
            "elapsed_seconds": round(elapsed, 3),
            "avg_seconds_per_item": round(elapsed / processed, 3) if processed else 0.0,
        }
