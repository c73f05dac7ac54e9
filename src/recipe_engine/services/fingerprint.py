"""Fingerprint-based duplicate detection."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from recipe_engine.models.batch import RecipeFingerprint
from recipe_engine.utils.urls import normalize_url

if TYPE_CHECKING:
    from recipe_engine.storage.base import FingerprintStore

DESCRIPTION_PREFIX = 200


def generate_fingerprint(url: str, title: str = "", description: str = "") -> str:
    """SHA-256 hex digest of the normalized ``url|title|description`` triple.

    Only the URL is known before a page is fetched; title and description are
    part of the digest so content-based fingerprints stay compatible.
    """

    normalized_title = (title or "").strip().lower()
    normalized_description = (description or "").strip()[:DESCRIPTION_PREFIX].lower()
    content = f"{normalize_url(url)}|{normalized_title}|{normalized_description}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class FingerprintService:
    def __init__(self, store: FingerprintStore) -> None:
        self.store = store

    generate_fingerprint = staticmethod(generate_fingerprint)

    async def is_duplicate(self, provider_id: str, fingerprint_hash: str) -> bool:
        if not fingerprint_hash or not fingerprint_hash.strip():
            raise ValueError("fingerprint_hash cannot be empty")
        return await self.store.exists(provider_id, fingerprint_hash)

    async def record(self, provider_id: str, fingerprint_hash: str, url: str) -> RecipeFingerprint:
        if not provider_id or not provider_id.strip():
            raise ValueError("provider_id cannot be empty")
        fingerprint = RecipeFingerprint(
            fingerprint_hash=fingerprint_hash,
            provider_id=provider_id,
            normalized_url=normalize_url(url),
        )
        await self.store.insert(fingerprint)
        return fingerprint
