"""Per-URL unit of work for the processing phase."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from recipe_engine.clients.http import fetch_text, validate_html_response

if TYPE_CHECKING:
    import httpx

    from recipe_engine.clients.http import RequestContext
    from recipe_engine.models.discovery import DiscoveredUrl
    from recipe_engine.models.provider import ProviderConfiguration


@dataclass(slots=True)
class ProcessedRecipe:
    url: str
    title: str = ""
    description: str = ""
    ingredient_codes: list[str] = field(default_factory=list)


class RecipeProcessor(Protocol):
    async def process(self, url: DiscoveredUrl, config: ProviderConfiguration) -> ProcessedRecipe: ...


def _first_text(doc, *xpaths: str) -> str:  # noqa: ANN001
    for xpath in xpaths:
        values = doc.xpath(xpath)
        for value in values:
            text = (value if isinstance(value, str) else "".join(value.itertext())).strip()
            if text:
                return " ".join(text.split())
    return ""


class HttpRecipeProcessor:
    """Fetches a recipe page and reads its title and description."""

    def __init__(self, client: httpx.AsyncClient, ctx: RequestContext) -> None:
        self.client = client
        self.ctx = ctx

    async def process(self, url: DiscoveredUrl, config: ProviderConfiguration) -> ProcessedRecipe:
        page_html = await fetch_text(self.client, self.ctx, url.url, timeout=config.request_timeout_seconds)
        doc = validate_html_response(page_html)
        title = _first_text(doc, "//meta[@property='og:title']/@content", "//title", "//h1")
        description = _first_text(
            doc,
            "//meta[@name='description']/@content",
            "//meta[@property='og:description']/@content",
        )
        if not title and (url.metadata or {}).get("title"):
            title = str(url.metadata["title"])
        return ProcessedRecipe(url=url.url, title=title, description=description)
