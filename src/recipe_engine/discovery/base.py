"""Discovery contract and the recursive link crawl shared by the crawl strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, ClassVar, Protocol

from loguru import logger

from recipe_engine.exceptions import DiscoveryError
from recipe_engine.models.discovery import DiscoveredUrl, UrlKind
from recipe_engine.utils.urls import resolve_link

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from recipe_engine.discovery.classifier import UrlClassifier


class RecipeDiscovery(Protocol):
    """Enumerates candidate recipe URLs. Every call starts a fresh crawl."""

    strategy_name: str

    async def discover(
        self,
        root_url: str,
        provider_id: str,
        max_depth: int = 3,
        max_urls: int = 1000,
    ) -> list[DiscoveredUrl]: ...


class LinkCrawler(ABC):
    """Recursive crawl over category pages collecting recipe links.

    Subclasses only supply how the hrefs of one page are obtained. A failure
    reading the root page aborts the call; failures on deeper pages abandon
    that branch.
    """

    strategy_name: ClassVar[str] = "crawl"
    page_errors: ClassVar[tuple[type[Exception], ...]] = ()

    def __init__(self, classifier: UrlClassifier) -> None:
        self.classifier = classifier

    @abstractmethod
    async def page_links(self, url: str) -> tuple[str, list[str]]:
        """Return the final page URL and the raw hrefs found on it."""

    @asynccontextmanager
    async def session(self) -> AsyncIterator[None]:
        yield

    async def discover(
        self,
        root_url: str,
        provider_id: str,
        max_depth: int = 3,
        max_urls: int = 1000,
    ) -> list[DiscoveredUrl]:
        logger.info(
            "Starting {} discovery for {} from {} (max_depth={}, max_urls={})",
            self.strategy_name,
            provider_id,
            root_url,
            max_depth,
            max_urls,
        )
        found: dict[str, DiscoveredUrl] = {}
        visited: set[str] = set()
        try:
            async with self.session():
                await self._crawl(root_url, provider_id, 0, max_depth, max_urls, found, visited)
        except Exception as exc:
            logger.error("{} discovery failed for {} at {}: {}", self.strategy_name, provider_id, root_url, exc)
            raise DiscoveryError(
                f"{self.strategy_name} discovery failed for provider {provider_id}",
                provider_id=provider_id,
                root_url=root_url,
            ) from exc

        logger.info(
            "{} discovery for {} finished: {} URLs from {} pages",
            self.strategy_name,
            provider_id,
            len(found),
            len(visited),
        )
        return list(found.values())

    async def _crawl(
        self,
        url: str,
        provider_id: str,
        depth: int,
        max_depth: int,
        max_urls: int,
        found: dict[str, DiscoveredUrl],
        visited: set[str],
    ) -> None:
        if depth > max_depth or len(found) >= max_urls or url in visited:
            return
        visited.add(url)

        try:
            page_url, hrefs = await self.page_links(url)
        except self.page_errors as exc:
            if depth == 0:
                raise
            logger.warning("Skipping {} at depth {}: {}", url, depth, exc)
            return

        categories: list[str] = []
        for href in hrefs:
            if len(found) >= max_urls:
                break
            link = resolve_link(page_url, href)
            if link is None:
                continue
            match self.classifier.classify(link):
                case UrlKind.RECIPE if link not in found:
                    found[link] = DiscoveredUrl(
                        url=link,
                        provider_id=provider_id,
                        discovered_from=url,
                        depth=depth,
                        confidence=self.classifier.confidence(link),
                    )
                    logger.debug("Discovered recipe URL {} at depth {}", link, depth)
                case UrlKind.CATEGORY if depth < max_depth:
                    categories.append(link)
                case _:
                    pass

        for category in categories:
            if len(found) >= max_urls:
                break
            await self._crawl(category, provider_id, depth + 1, max_depth, max_urls, found, visited)


async def discover_from_seeds(
    discovery: RecipeDiscovery,
    seeds: list[str],
    provider_id: str,
    max_depth: int = 3,
    max_urls: int = 1000,
) -> list[DiscoveredUrl]:
    """Run ``discovery`` over several roots, sharing one ``max_urls`` budget."""

    results: dict[str, DiscoveredUrl] = {}
    for seed in seeds:
        remaining = max_urls - len(results)
        if remaining <= 0:
            break
        for item in await discovery.discover(seed, provider_id, max_depth, remaining):
            results.setdefault(item.url, item)
    return list(results.values())[:max_urls]
