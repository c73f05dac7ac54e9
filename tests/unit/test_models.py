from datetime import timedelta

import pytest
from pydantic import ValidationError

from recipe_engine.exceptions import SagaStateError
from recipe_engine.models import (
    PHASE_ORDER,
    DiscoveryStrategy,
    RecipeBatch,
    RecipeFingerprint,
    SagaPhase,
    SagaStatus,
)
from tests.factories import make_discovered, make_provider, make_state


def test_provider_defaults_and_timedeltas() -> None:
    config = make_provider(time_window_minutes=1.5, min_delay_seconds=2)
    assert config.discovery_strategy is DiscoveryStrategy.STATIC
    assert config.time_window == timedelta(seconds=90)
    assert config.min_delay == timedelta(seconds=2)


def test_provider_strategy_is_case_insensitive() -> None:
    assert make_provider(discovery_strategy=" API ").discovery_strategy is DiscoveryStrategy.API


@pytest.mark.parametrize(
    "overrides",
    [
        {"provider_id": ""},
        {"recipe_root_url": "http://insecure.example.com"},
        {"recipe_root_url": "/relative"},
        {"batch_size": 0},
        {"time_window_minutes": 0},
        {"max_requests_per_minute": 0},
        {"min_delay_seconds": -1},
        {"retry_count": -1},
        {"request_timeout_seconds": 0},
        {"discovery_strategy": "carrier-pigeon"},
        {"seed_urls": ["http://insecure.example.com/recipes"]},
    ],
)
def test_provider_rejects_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        make_provider(**overrides)


def test_provider_blank_patterns_become_none() -> None:
    config = make_provider(recipe_url_pattern="  ", category_url_pattern="")
    assert config.recipe_url_pattern is None
    assert config.category_url_pattern is None


def test_provider_discovery_roots_start_at_root() -> None:
    config = make_provider(seed_urls=["https://recipes.example.com/tags/soup", "https://recipes.example.com/"])
    assert config.discovery_roots == ["https://recipes.example.com/", "https://recipes.example.com/tags/soup"]
    assert make_provider().discovery_roots == ["https://recipes.example.com/"]


def test_provider_is_frozen() -> None:
    config = make_provider()
    with pytest.raises(ValidationError):
        config.batch_size = 5


def test_discovered_url_confidence_bounds() -> None:
    assert make_discovered("/recipe/a", confidence=0.8).is_high_confidence
    assert not make_discovered("/recipe/a", confidence=0.5).is_high_confidence
    with pytest.raises(ValidationError):
        make_discovered("/recipe/a", confidence=1.5)


def test_phase_order() -> None:
    assert PHASE_ORDER == (
        SagaPhase.DISCOVERING,
        SagaPhase.FINGERPRINTING,
        SagaPhase.PROCESSING,
        SagaPhase.PERSISTING,
        SagaPhase.COMPLETED,
    )


def test_saga_state_moves_forward_only() -> None:
    state = make_state()
    state.advance_to(SagaPhase.PROCESSING)
    state.advance_to(SagaPhase.PROCESSING)
    with pytest.raises(SagaStateError):
        state.advance_to(SagaPhase.FINGERPRINTING)
    assert state.phase is SagaPhase.PROCESSING


def test_saga_state_checkpoint_snapshots_counters() -> None:
    state = make_state()
    state.data.discovered_urls = [make_discovered("/recipe/a"), make_discovered("/recipe/b")]
    state.data.processed_urls = ["https://recipes.example.com/recipe/a"]
    state.data.cursor = 1

    checkpoint = state.add_checkpoint("processed_1")

    assert checkpoint.phase is SagaPhase.DISCOVERING
    assert checkpoint.counters["discovered"] == 2
    assert checkpoint.counters["processed"] == 1
    assert checkpoint.counters["cursor"] == 1
    state.data.processed_urls.append("x")
    assert state.checkpoints[0].counters["processed"] == 1


def test_saga_state_complete_and_fail() -> None:
    state = make_state()
    state.complete({"processed": 0})
    assert state.phase is SagaPhase.COMPLETED
    assert state.status is SagaStatus.COMPLETED
    assert state.is_terminal

    failed = make_state()
    failed.fail("boom", "Traceback ...")
    failed.fail("second failure")
    assert failed.status is SagaStatus.FAILED
    assert failed.error_message == "boom"
    assert failed.completed_at is not None


def test_saga_state_json_roundtrip_keeps_typed_fields() -> None:
    state = make_state()
    state.data.discovered_urls = [make_discovered("/recipe/a", metadata={"title": "A"})]
    state.data.cursor = 3
    restored = type(state).model_validate_json(state.model_dump_json())
    assert restored.data.cursor == 3
    assert restored.data.discovered_urls[0].metadata == {"title": "A"}
    assert restored.phase is SagaPhase.DISCOVERING


def test_batch_completes_once() -> None:
    state = make_state()
    batch = RecipeBatch(
        correlation_id=state.correlation_id,
        provider_id=state.provider_id,
        batch_size=10,
        time_window_seconds=60,
        started_at=state.started_at,
        processed_urls=["a", "b"],
        skipped_urls=["c"],
    )
    assert (batch.processed_count, batch.skipped_count, batch.failed_count) == (2, 1, 0)
    batch.complete()
    assert batch.is_completed
    with pytest.raises(ValueError):
        batch.complete()


def test_fingerprint_requires_sha256_hex_length() -> None:
    with pytest.raises(ValidationError):
        RecipeFingerprint(fingerprint_hash="abc", provider_id="p", normalized_url="https://x")
