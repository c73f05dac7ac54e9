"""Recipe / category / irrelevant URL classification shared by all strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from loguru import logger

from recipe_engine.models.discovery import UrlKind
from recipe_engine.providers.cache import DEFAULT_PATTERNS, UrlPatterns

if TYPE_CHECKING:
    import regex

RECIPE_MARKERS = ("/recipe/", "/recipes/", "/food/recipe", "/cooking/recipe", "/r/", "/dish/")
CATEGORY_MARKERS = (
    "/category",
    "/categories",
    "/tag",
    "/tags",
    "/collection",
    "/cuisine",
    "/meal-type",
    "/recipes",
)
EXCLUDED_MARKERS = (
    "/about",
    "/contact",
    "/privacy",
    "/terms",
    "/login",
    "/signup",
    "/cart",
    "/checkout",
    "/account",
    "/search",
)


def url_path(url: str) -> str:
    """Lowercased path of ``url``; substring rules never look at the host."""

    return (urlsplit(url).path or "/").lower()


class UrlClassifier:
    """Classifies absolute URLs.

    Provider patterns are matched against the whole URL. When a pattern is not
    configured, failed to compile, or runs past ``patterns.timeout`` seconds on
    a URL, the default substring rules are applied to the URL path. Excluded
    paths are never recipes or categories.
    """

    def __init__(self, patterns: UrlPatterns = DEFAULT_PATTERNS) -> None:
        self.patterns = patterns

    def classify(self, url: str) -> UrlKind:
        if not url or self.is_excluded(url):
            return UrlKind.IRRELEVANT
        if self._matches(url, self.patterns.recipe, RECIPE_MARKERS):
            return UrlKind.RECIPE
        if self._matches(url, self.patterns.category, CATEGORY_MARKERS):
            return UrlKind.CATEGORY
        return UrlKind.IRRELEVANT

    def _matches(self, url: str, pattern: regex.Pattern[str] | None, markers: tuple[str, ...]) -> bool:
        if pattern is not None:
            try:
                return pattern.search(url, timeout=self.patterns.timeout) is not None
            except TimeoutError:
                logger.warning("URL pattern {!r} timed out on {}, using default rules", pattern.pattern, url)
        path = url_path(url)
        return any(marker in path for marker in markers)

    def is_recipe(self, url: str) -> bool:
        return self.classify(url) is UrlKind.RECIPE

    @staticmethod
    def is_excluded(url: str) -> bool:
        path = url_path(url)
        return any(marker in path for marker in EXCLUDED_MARKERS)

    @staticmethod
    def confidence(url: str) -> float:
        path = url_path(url)
        if "/recipe/" in path or "/recipes/" in path:
            return 0.9
        if "/food/" in path or "/cooking/" in path:
            return 0.7
        return 0.5
