"""Provider configuration access."""

from .cache import DEFAULT_PATTERNS, ProviderConfigCache, UrlPatterns

__all__ = ["DEFAULT_PATTERNS", "ProviderConfigCache", "UrlPatterns"]
