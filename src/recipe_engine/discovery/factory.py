"""Strategy selection by provider configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from recipe_engine.discovery.api import ApiDiscovery
from recipe_engine.discovery.classifier import UrlClassifier
from recipe_engine.discovery.rendered_crawl import RenderedCrawlDiscovery
from recipe_engine.discovery.static_crawl import StaticCrawlDiscovery
from recipe_engine.exceptions import UnsupportedStrategyError
from recipe_engine.models.provider import DiscoveryStrategy

if TYPE_CHECKING:
    import httpx

    from recipe_engine.clients.browser import PageRenderer
    from recipe_engine.clients.http import RequestContext
    from recipe_engine.discovery.base import RecipeDiscovery
    from recipe_engine.models.provider import ProviderConfiguration
    from recipe_engine.providers.cache import ProviderConfigCache


class DiscoveryFactory:
    """Builds the discovery strategy a provider is configured for."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        ctx: RequestContext,
        config_cache: ProviderConfigCache,
        *,
        renderer: PageRenderer | None = None,
        headless: bool = True,
    ) -> None:
        self.client = client
        self.ctx = ctx
        self.config_cache = config_cache
        self.renderer = renderer
        self.headless = headless

    def for_provider(self, config: ProviderConfiguration) -> RecipeDiscovery:
        classifier = UrlClassifier(self.config_cache.url_patterns(config))
        timeout = config.request_timeout_seconds
        match config.discovery_strategy:
            case DiscoveryStrategy.STATIC:
                return StaticCrawlDiscovery(self.client, self.ctx, classifier, timeout=timeout)
            case DiscoveryStrategy.DYNAMIC:
                return RenderedCrawlDiscovery(
                    classifier,
                    renderer=self.renderer,
                    headless=self.headless,
                    timeout_ms=int(timeout * 1000),
                )
            case DiscoveryStrategy.API:
                return ApiDiscovery(self.client, self.ctx, classifier, timeout=timeout)
            case other:
                raise UnsupportedStrategyError(other)
