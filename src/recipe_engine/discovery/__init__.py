"""Recipe URL discovery strategies."""

from .api import ApiDiscovery
from .base import LinkCrawler, RecipeDiscovery, discover_from_seeds
from .classifier import UrlClassifier
from .factory import DiscoveryFactory
from .rendered_crawl import RenderedCrawlDiscovery
from .static_crawl import StaticCrawlDiscovery

__all__ = [
    "ApiDiscovery",
    "DiscoveryFactory",
    "LinkCrawler",
    "RecipeDiscovery",
    "RenderedCrawlDiscovery",
    "StaticCrawlDiscovery",
    "UrlClassifier",
    "discover_from_seeds",
]
