"""Pydantic models."""

from .batch import RecipeBatch, RecipeFingerprint
from .discovery import DiscoveredUrl, UrlKind
from .events import BatchCompletedEvent, DomainEvent, IngredientMappingMissingEvent, ProcessingErrorEvent
from .provider import DiscoveryStrategy, ProviderConfiguration
from .saga import (
    PHASE_ORDER,
    Checkpoint,
    ErrorCategory,
    FailedUrl,
    SagaData,
    SagaPhase,
    SagaState,
    SagaStatus,
)

__all__ = [
    "PHASE_ORDER",
    "BatchCompletedEvent",
    "Checkpoint",
    "DiscoveredUrl",
    "DiscoveryStrategy",
    "DomainEvent",
    "ErrorCategory",
    "FailedUrl",
    "IngredientMappingMissingEvent",
    "ProcessingErrorEvent",
    "ProviderConfiguration",
    "RecipeBatch",
    "RecipeFingerprint",
    "SagaData",
    "SagaPhase",
    "SagaState",
    "SagaStatus",
    "UrlKind",
]
