"""Notification payloads published to the event sink."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class BatchCompletedEvent(BaseModel):
    batch_id: str
    provider_id: str
    processed_count: int
    skipped_count: int
    failed_count: int
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProcessingErrorEvent(BaseModel):
    url: str
    provider_id: str
    error_message: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class IngredientMappingMissingEvent(BaseModel):
    provider_id: str
    provider_code: str
    recipe_url: str = ""
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


DomainEvent = BatchCompletedEvent | ProcessingErrorEvent | IngredientMappingMissingEvent
