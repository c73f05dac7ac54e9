"""Crawl discovery over JavaScript-rendered pages."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from recipe_engine.clients.browser import BrowserClient, RenderError
from recipe_engine.discovery.base import LinkCrawler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from recipe_engine.clients.browser import PageRenderer
    from recipe_engine.discovery.classifier import UrlClassifier


class RenderedCrawlDiscovery(LinkCrawler):
    """Same crawl as the static strategy, reading links from the rendered DOM.

    Without an injected renderer a headless browser is launched for the
    duration of each ``discover`` call.
    """

    strategy_name = "dynamic"
    page_errors = (RenderError, TimeoutError)

    def __init__(
        self,
        classifier: UrlClassifier,
        *,
        renderer: PageRenderer | None = None,
        headless: bool = True,
        timeout_ms: int = 30_000,
    ) -> None:
        super().__init__(classifier)
        self._injected = renderer
        self._renderer = renderer
        self.headless = headless
        self.timeout_ms = timeout_ms

    @asynccontextmanager
    async def session(self) -> AsyncIterator[None]:
        if self._injected is not None:
            yield
            return
        async with BrowserClient(headless=self.headless) as browser:
            self._renderer = browser
            try:
                yield
            finally:
                self._renderer = None

    async def page_links(self, url: str) -> tuple[str, list[str]]:
        if self._renderer is None:
            raise RuntimeError("Rendered discovery used outside of a browser session")
        page = await self._renderer.render_links(url, timeout_ms=self.timeout_ms)
        return page.url or url, page.hrefs
