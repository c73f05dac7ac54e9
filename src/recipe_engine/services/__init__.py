"""Saga collaborators: fingerprinting, ingredient normalization, events, page processing."""

from .events import EventSink, InMemoryEventSink, LoggingEventSink, publish_safely
from .fingerprint import FingerprintService, generate_fingerprint
from .ingredients import IngredientNormalizer
from .processor import HttpRecipeProcessor, ProcessedRecipe, RecipeProcessor

__all__ = [
    "EventSink",
    "FingerprintService",
    "HttpRecipeProcessor",
    "InMemoryEventSink",
    "IngredientNormalizer",
    "LoggingEventSink",
    "ProcessedRecipe",
    "RecipeProcessor",
    "generate_fingerprint",
    "publish_safely",
]
