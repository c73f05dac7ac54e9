"""Persisted batch and fingerprint records."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from recipe_engine.models.saga import FailedUrl  # noqa: TC001


class RecipeBatch(BaseModel):
    """Result of one saga run, appended to the batch store exactly once."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    correlation_id: str
    provider_id: str
    batch_size: int = Field(gt=0)
    time_window_seconds: float = Field(gt=0)
    started_at: datetime
    completed_at: datetime | None = None
    processed_urls: list[str] = Field(default_factory=list)
    skipped_urls: list[str] = Field(default_factory=list)
    failed_urls: list[FailedUrl] = Field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return len(self.processed_urls)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_urls)

    @property
    def failed_count(self) -> int:
        return len(self.failed_urls)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def complete(self) -> None:
        if self.completed_at is not None:
            raise ValueError(f"Batch {self.id} is already completed")
        self.completed_at = datetime.now(UTC)


class RecipeFingerprint(BaseModel):
    """Duplicate marker for a first-seen recipe URL."""

    fingerprint_hash: str = Field(min_length=64, max_length=64)
    provider_id: str
    normalized_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
