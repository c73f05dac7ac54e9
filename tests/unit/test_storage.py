"""Tests for the file and SQLite stores."""

import json
from pathlib import Path

import pytest

from recipe_engine.exceptions import ConfigurationError, SagaStateError
from recipe_engine.models.batch import RecipeBatch, RecipeFingerprint
from recipe_engine.models.saga import SagaState
from recipe_engine.services.fingerprint import generate_fingerprint
from recipe_engine.storage.batches import JsonlBatchStore
from recipe_engine.storage.checkpoint import load_checkpoint, save_checkpoint
from recipe_engine.storage.jsonl import append_jsonl, read_jsonl
from recipe_engine.storage.providers import JsonlProviderConfigStore
from recipe_engine.storage.saga_state import FileSagaStateStore
from recipe_engine.storage.sqlite import SqliteFingerprintStore, SqliteIngredientMappingStore, create_sqlite_engine
from tests.factories import make_state


def _provider_row(provider_id: str, **overrides) -> dict:
    row = {
        "provider_id": provider_id,
        "enabled": True,
        "discovery_strategy": "static",
        "recipe_root_url": "https://recipes.example.com/",
        "batch_size": 10,
        "time_window_minutes": 5,
        "max_requests_per_minute": 30,
    }
    row.update(overrides)
    return row


def test_checkpoint_keeps_previous_version(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_checkpoint(path, make_state(correlation_id="c1", batch_size=1))
    save_checkpoint(path, make_state(correlation_id="c1", batch_size=2))

    assert load_checkpoint(path, SagaState).batch_size == 2
    assert json.loads(path.with_suffix(".json.bak").read_text())["batch_size"] == 1
    assert not list(tmp_path.glob("*.tmp"))


def test_corrupt_checkpoint_falls_back_to_backup(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_checkpoint(path, make_state(correlation_id="c1", batch_size=1))
    save_checkpoint(path, make_state(correlation_id="c1", batch_size=2))
    path.write_text('{"correlation_id": "c1", "batch_si')

    assert load_checkpoint(path, SagaState).batch_size == 1


def test_missing_checkpoint(tmp_path: Path) -> None:
    assert load_checkpoint(tmp_path / "absent.json", SagaState) is None


def test_jsonl_skips_truncated_lines(tmp_path: Path) -> None:
    path = tmp_path / "rows.jsonl"
    append_jsonl(path, {"a": 1})
    append_jsonl(path, {"a": 2})
    with path.open("a") as f:
        f.write('{"a": 3\n\n[1, 2]\n')

    assert read_jsonl(path) == [{"a": 1}, {"a": 2}]
    assert read_jsonl(tmp_path / "missing.jsonl") == []


@pytest.mark.asyncio
async def test_file_saga_store_round_trip(tmp_path: Path) -> None:
    store = FileSagaStateStore(tmp_path / "sagas")
    state = make_state()

    await store.insert(state)
    state.data.cursor = 3
    await store.save(state)
    loaded = await store.get(state.correlation_id)

    assert loaded is not None
    assert loaded.data.cursor == 3
    assert store.list_ids() == [state.correlation_id]
    assert await store.get("unknown") is None


@pytest.mark.asyncio
async def test_file_saga_store_rejects_duplicates_and_bad_ids(tmp_path: Path) -> None:
    store = FileSagaStateStore(tmp_path / "sagas")
    state = make_state()
    await store.insert(state)

    with pytest.raises(SagaStateError, match="already exists"):
        await store.insert(state)
    with pytest.raises(SagaStateError, match="Invalid correlation id"):
        await store.get("../escape")


@pytest.mark.asyncio
async def test_batch_store_requires_completed_batches(tmp_path: Path) -> None:
    store = JsonlBatchStore(tmp_path / "batches.jsonl")
    batch = RecipeBatch(
        correlation_id="c1",
        provider_id="provider_001",
        batch_size=5,
        time_window_seconds=60,
        started_at=make_state().started_at,
        processed_urls=["https://recipes.example.com/recipe/a"],
    )

    with pytest.raises(ValueError, match="must be completed"):
        await store.append(batch)

    batch.complete()
    await store.append(batch)

    assert (await store.get(batch.id)).processed_count == 1
    assert (await store.get_by_correlation_id("c1")).id == batch.id
    assert await store.get_by_correlation_id("c2") is None


@pytest.mark.asyncio
async def test_provider_store_fills_crawl_bounds(tmp_path: Path) -> None:
    path = tmp_path / "providers.jsonl"
    append_jsonl(path, _provider_row("provider_001"))
    append_jsonl(path, _provider_row("provider_002", max_depth=1, max_urls=50))
    store = JsonlProviderConfigStore(path, default_max_depth=4, default_max_urls=500)

    configs = {c.provider_id: c for c in await store.list_all()}

    assert (configs["provider_001"].max_depth, configs["provider_001"].max_urls) == (4, 500)
    assert (configs["provider_002"].max_depth, configs["provider_002"].max_urls) == (1, 50)
    assert (await store.get("provider_002")).max_requests_per_minute == 30
    assert await store.get("provider_999") is None


@pytest.mark.asyncio
async def test_provider_store_rejects_invalid_records(tmp_path: Path) -> None:
    path = tmp_path / "providers.jsonl"
    append_jsonl(path, _provider_row("provider_001", recipe_root_url="http://insecure.example.com/"))
    store = JsonlProviderConfigStore(path)

    with pytest.raises(ConfigurationError, match="provider_001"):
        await store.list_all()


@pytest.mark.asyncio
async def test_sqlite_fingerprints(tmp_path: Path) -> None:
    store = SqliteFingerprintStore(create_sqlite_engine(tmp_path / "engine.db"))
    url = "https://recipes.example.com/recipe/soup"
    fingerprint = RecipeFingerprint(
        fingerprint_hash=generate_fingerprint(url), provider_id="provider_001", normalized_url=url
    )

    assert not await store.exists("provider_001", fingerprint.fingerprint_hash)
    await store.insert(fingerprint)
    await store.insert(fingerprint)

    assert await store.exists("provider_001", fingerprint.fingerprint_hash)
    assert not await store.exists("provider_002", fingerprint.fingerprint_hash)


@pytest.mark.asyncio
async def test_sqlite_ingredient_mappings_upsert(tmp_path: Path) -> None:
    store = SqliteIngredientMappingStore(create_sqlite_engine(tmp_path / "engine.db"))

    assert await store.get("provider_001", "TOM-01") is None
    await store.put("provider_001", "TOM-01", "tomato")
    await store.put("provider_001", "TOM-01", "roma tomato")

    assert await store.get("provider_001", "TOM-01") == "roma tomato"
    assert await store.get("provider_002", "TOM-01") is None
