"""Static HTML crawl discovery."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from lxml import etree, html

from recipe_engine.clients.http import RetryableStatusError, fetch
from recipe_engine.discovery.base import LinkCrawler

if TYPE_CHECKING:
    from recipe_engine.clients.http import RequestContext
    from recipe_engine.discovery.classifier import UrlClassifier


def parse_links(page_html: str) -> list[str]:
    """Raw href values of every anchor in ``page_html``."""

    if not page_html.strip():
        return []
    try:
        tree = html.fromstring(page_html)
    except (etree.ParserError, ValueError):
        return []
    return [anchor.get("href", "") for anchor in tree.xpath("//a[@href]")]


class StaticCrawlDiscovery(LinkCrawler):
    """Crawls server-rendered pages with httpx and parses anchors with lxml."""

    strategy_name = "static"
    page_errors = (httpx.HTTPError, RetryableStatusError)

    def __init__(
        self,
        client: httpx.AsyncClient,
        ctx: RequestContext,
        classifier: UrlClassifier,
        *,
        timeout: float | None = None,
    ) -> None:
        super().__init__(classifier)
        self.client = client
        self.ctx = ctx
        self.timeout = timeout

    async def page_links(self, url: str) -> tuple[str, list[str]]:
        response = await fetch(self.client, self.ctx, url, timeout=self.timeout)
        return str(response.url), parse_links(response.text)
