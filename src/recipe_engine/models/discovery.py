"""Discovery value objects."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UrlKind(StrEnum):
    """Classification of a link found during a crawl."""

    RECIPE = "recipe"
    CATEGORY = "category"
    IRRELEVANT = "irrelevant"


class DiscoveredUrl(BaseModel):
    """Candidate recipe URL produced by a discovery strategy."""

    model_config = ConfigDict(frozen=True)

    url: str
    provider_id: str
    discovered_from: str
    depth: int = Field(default=0, ge=0)
    confidence: float = Field(ge=0.0, le=1.0)
    metadata: dict[str, Any] | None = None
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= 0.8
