"""Exception hierarchy."""

from __future__ import annotations


class RecipeEngineError(Exception):
    """Base class for errors raised by the recipe engine."""


class ConfigurationError(RecipeEngineError):
    """Provider configuration is missing, invalid, or empty."""


class UnsupportedStrategyError(ConfigurationError):
    """Raised when a provider names a discovery strategy with no implementation."""

    def __init__(self, strategy: object) -> None:
        self.strategy = strategy
        super().__init__(f"Unsupported discovery strategy: {strategy!r}")


class DiscoveryError(RecipeEngineError):
    """Discovery failed at the crawl root; the original error is chained as ``__cause__``."""

    def __init__(self, message: str, *, provider_id: str, root_url: str) -> None:
        self.provider_id = provider_id
        self.root_url = root_url
        super().__init__(message)


class SagaStateError(RecipeEngineError):
    """Saga state cannot be found or is not in a state that allows the operation."""
