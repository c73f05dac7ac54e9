import hashlib

import pytest

from recipe_engine.services.fingerprint import FingerprintService, generate_fingerprint
from recipe_engine.storage.memory import InMemoryFingerprintStore


def test_fingerprint_is_sha256_of_normalized_triple() -> None:
    expected = hashlib.sha256(b"https://recipes.example.com/recipe/soup||").hexdigest()
    assert generate_fingerprint("https://recipes.example.com/recipe/soup") == expected
    assert len(expected) == 64


def test_fingerprint_ignores_case_query_and_fragment() -> None:
    base = generate_fingerprint("https://recipes.example.com/recipe/soup")
    assert generate_fingerprint("HTTPS://Recipes.Example.com/Recipe/Soup?utm=x#steps") == base
    assert generate_fingerprint("  https://recipes.example.com/recipe/soup  ") == base


def test_fingerprint_includes_title_and_description_prefix() -> None:
    url = "https://recipes.example.com/recipe/soup"
    plain = generate_fingerprint(url)
    titled = generate_fingerprint(url, " Tomato Soup ")
    assert titled != plain
    assert titled == generate_fingerprint(url, "tomato soup")

    long_a = "x" * 200 + "first tail"
    long_b = "X" * 200 + "second tail"
    assert generate_fingerprint(url, "t", long_a) == generate_fingerprint(url, "t", long_b)


def test_fingerprint_differs_per_path() -> None:
    assert generate_fingerprint("https://a.example.com/recipe/1") != generate_fingerprint(
        "https://a.example.com/recipe/2"
    )


@pytest.mark.asyncio
async def test_record_then_duplicate() -> None:
    store = InMemoryFingerprintStore()
    service = FingerprintService(store)
    url = "https://recipes.example.com/recipe/soup?ref=home"
    digest = service.generate_fingerprint(url)

    assert not await service.is_duplicate("provider_001", digest)
    record = await service.record("provider_001", digest, url)

    assert record.normalized_url == "https://recipes.example.com/recipe/soup"
    assert await service.is_duplicate("provider_001", digest)
    assert not await service.is_duplicate("provider_002", digest)


@pytest.mark.asyncio
async def test_record_is_first_writer_wins() -> None:
    store = InMemoryFingerprintStore()
    service = FingerprintService(store)
    digest = generate_fingerprint("https://recipes.example.com/recipe/soup")

    first = await service.record("provider_001", digest, "https://recipes.example.com/recipe/soup")
    await service.record("provider_001", digest, "https://recipes.example.com/recipe/soup")

    assert store.records[("provider_001", digest)] is first


@pytest.mark.asyncio
async def test_empty_arguments_rejected() -> None:
    service = FingerprintService(InMemoryFingerprintStore())
    with pytest.raises(ValueError, match="fingerprint_hash"):
        await service.is_duplicate("provider_001", "  ")
    with pytest.raises(ValueError, match="provider_id"):
        await service.record("", "a" * 64, "https://recipes.example.com/recipe/soup")
