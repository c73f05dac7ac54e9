"""JSON API discovery."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from recipe_engine.clients.http import fetch_json
from recipe_engine.discovery.classifier import url_path
from recipe_engine.exceptions import DiscoveryError
from recipe_engine.models.discovery import DiscoveredUrl
from recipe_engine.utils.urls import resolve_link, site_root

if TYPE_CHECKING:
    import httpx

    from recipe_engine.clients.http import RequestContext
    from recipe_engine.discovery.classifier import UrlClassifier

_URL_KEYS = ("url", "link", "href", "permalink")


def find_recipe_items(payload: Any) -> list[Any] | None:
    """Locate the recipe array under ``recipes``, ``data.recipes``, ``items`` or the root."""

    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None
    if "recipes" in payload:
        candidate = payload["recipes"]
    elif isinstance(payload.get("data"), dict) and "recipes" in payload["data"]:
        candidate = payload["data"]["recipes"]
    elif "items" in payload:
        candidate = payload["items"]
    else:
        return None
    if not isinstance(candidate, list):
        logger.warning("Expected a recipe array but got {}", type(candidate).__name__)
        return []
    return candidate


def item_url(item: dict[str, Any], endpoint: str) -> str | None:
    for key in _URL_KEYS:
        if key in item:
            value = item[key]
            return resolve_link(endpoint, value) if isinstance(value, str) else None
    slug = item.get("slug")
    if isinstance(slug, str) and slug.strip():
        return f"{site_root(endpoint)}/recipe/{slug.strip()}"
    return None


def item_metadata(item: dict[str, Any]) -> dict[str, Any] | None:
    metadata: dict[str, Any] = {}
    if item.get("id") is not None:
        metadata["api_id"] = str(item["id"])
    for key in ("title", "name"):
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            metadata[key] = value
    return metadata or None


class ApiDiscovery:
    """Reads recipe URLs from a single JSON endpoint. No recursion."""

    strategy_name = "api"

    def __init__(
        self,
        client: httpx.AsyncClient,
        ctx: RequestContext,
        classifier: UrlClassifier,
        *,
        timeout: float | None = None,
    ) -> None:
        self.client = client
        self.ctx = ctx
        self.classifier = classifier
        self.timeout = timeout

    @staticmethod
    def confidence(url: str) -> float:
        return 0.95 if "/recipe/" in url_path(url) else 0.8

    async def discover(
        self,
        root_url: str,
        provider_id: str,
        max_depth: int = 0,
        max_urls: int = 1000,
    ) -> list[DiscoveredUrl]:
        logger.info("Starting api discovery for {} from {} (max_urls={})", provider_id, root_url, max_urls)
        try:
            payload = await fetch_json(self.client, self.ctx, root_url, timeout=self.timeout)
        except Exception as exc:
            logger.error("api discovery failed for {} at {}: {}", provider_id, root_url, exc)
            raise DiscoveryError(
                f"api discovery failed for provider {provider_id}",
                provider_id=provider_id,
                root_url=root_url,
            ) from exc

        items = find_recipe_items(payload)
        if items is None:
            logger.warning("No recipe array in API response from {}", root_url)
            return []

        found: dict[str, DiscoveredUrl] = {}
        for item in items:
            if len(found) >= max_urls:
                break
            if not isinstance(item, dict):
                continue
            url = item_url(item, root_url)
            if url is None:
                logger.debug("No URL in API item {}", item)
                continue
            if url in found or not self.classifier.is_recipe(url):
                continue
            found[url] = DiscoveredUrl(
                url=url,
                provider_id=provider_id,
                discovered_from=root_url,
                depth=0,
                confidence=self.confidence(url),
                metadata=item_metadata(item),
            )

        logger.info("api discovery for {} finished: {} URLs", provider_id, len(found))
        return list(found.values())
