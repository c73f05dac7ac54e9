"""Saga state models with JSON-safe field types."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from recipe_engine.exceptions import SagaStateError
from recipe_engine.models.discovery import DiscoveredUrl  # noqa: TC001


class SagaPhase(StrEnum):
    """Processing phases in execution order."""

    DISCOVERING = "discovering"
    FINGERPRINTING = "fingerprinting"
    PROCESSING = "processing"
    PERSISTING = "persisting"
    COMPLETED = "completed"


PHASE_ORDER: tuple[SagaPhase, ...] = tuple(SagaPhase)


class SagaStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorCategory(StrEnum):
    """Retry classification of an exception."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class FailedUrl(BaseModel):
    """Single processing failure with error context."""

    url: str
    error_type: str
    category: ErrorCategory
    is_transient: bool
    message: str
    failed_at: datetime


class Checkpoint(BaseModel):
    """Named snapshot of the saga counters."""

    name: str
    phase: SagaPhase
    created_at: datetime
    counters: dict[str, int] = Field(default_factory=dict)


class SagaData(BaseModel):
    """Phase outputs accumulated over one saga run."""

    discovered_urls: list[DiscoveredUrl] = Field(default_factory=list)
    fingerprint_cursor: int = Field(default=0, ge=0)
    fingerprinted_urls: list[str] = Field(default_factory=list)
    duplicate_urls: list[str] = Field(default_factory=list)
    cursor: int = Field(default=0, ge=0)
    processed_urls: list[str] = Field(default_factory=list)
    failed_urls: list[FailedUrl] = Field(default_factory=list)


class SagaState(BaseModel):
    """Persisted state of one processing run for one provider.

    The whole document is replaced on every save, so a crash loses at most the
    unit of work in flight when it happened.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    schema_version: str = "1"
    correlation_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    provider_id: str
    batch_size: int = Field(gt=0)
    time_window_seconds: float = Field(gt=0)
    phase: SagaPhase = SagaPhase.DISCOVERING
    status: SagaStatus = SagaStatus.RUNNING
    data: SagaData = Field(default_factory=SagaData)
    checkpoints: list[Checkpoint] = Field(default_factory=list)
    metrics: dict[str, float | int] = Field(default_factory=dict)
    batch_id: str | None = None
    error_message: str | None = None
    error_stack_trace: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not SagaStatus.RUNNING

    def advance_to(self, phase: SagaPhase) -> None:
        """Move to ``phase``; phases only ever move forward."""
        if PHASE_ORDER.index(phase) < PHASE_ORDER.index(self.phase):
            raise SagaStateError(f"Cannot move saga {self.correlation_id} back from {self.phase} to {phase}")
        self.phase = phase
        self.touch()

    def counters(self) -> dict[str, int]:
        return {
            "discovered": len(self.data.discovered_urls),
            "fingerprinted": len(self.data.fingerprinted_urls),
            "duplicates": len(self.data.duplicate_urls),
            "processed": len(self.data.processed_urls),
            "failed": len(self.data.failed_urls),
            "cursor": self.data.cursor,
        }

    def add_checkpoint(self, name: str) -> Checkpoint:
        checkpoint = Checkpoint(
            name=name,
            phase=self.phase,
            created_at=datetime.now(UTC),
            counters=self.counters(),
        )
        self.checkpoints.append(checkpoint)
        self.touch()
        return checkpoint

    def complete(self, metrics: dict[str, float | int]) -> None:
        self.advance_to(SagaPhase.COMPLETED)
        self.status = SagaStatus.COMPLETED
        self.metrics = metrics
        self.completed_at = datetime.now(UTC)

    def fail(self, message: str, stack_trace: str | None = None) -> None:
        if self.status is SagaStatus.FAILED:
            return
        self.status = SagaStatus.FAILED
        self.error_message = (message or "unknown error")[:2000]
        self.error_stack_trace = stack_trace
        self.completed_at = datetime.now(UTC)
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.now(UTC)
