"""Saga orchestration and multi-provider flows."""

from .orchestrator import ProviderRunResult, RecipeEngine, ingest_all_providers, open_engine, run_all_providers
from .saga import RecipeProcessingSaga

__all__ = [
    "ProviderRunResult",
    "RecipeEngine",
    "RecipeProcessingSaga",
    "ingest_all_providers",
    "open_engine",
    "run_all_providers",
]
