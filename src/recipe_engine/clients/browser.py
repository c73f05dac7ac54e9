"""Headless browser rendering via Camoufox."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger


class RenderError(Exception):
    """A page could not be loaded or rendered by the browser."""


@dataclass(slots=True)
class RenderedPage:
    """Links visible in the rendered DOM of one page."""

    url: str
    hrefs: list[str] = field(default_factory=list)


class PageRenderer(Protocol):
    async def render_links(self, url: str, *, timeout_ms: int = 30_000) -> RenderedPage: ...


class BrowserClient:
    """Renders pages in a headless browser and reads anchors from the live DOM.

    Use as an async context manager so one browser instance serves a whole crawl.
    """

    def __init__(self, *, headless: bool = True) -> None:
        self.headless = headless
        self._manager = None
        self._browser = None

    async def __aenter__(self) -> BrowserClient:
        try:
            from camoufox.async_api import AsyncCamoufox
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("camoufox is not installed. Install extras: recipe-engine[browser].") from exc

        self._manager = AsyncCamoufox(headless=self.headless)
        self._browser = await self._manager.__aenter__()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._manager is not None:
            await self._manager.__aexit__(*exc_info)
        self._manager = None
        self._browser = None

    async def render_links(self, url: str, *, timeout_ms: int = 30_000) -> RenderedPage:
        if self._browser is None:
            raise RuntimeError("BrowserClient must be entered before rendering")

        page = await self._browser.new_page()
        try:
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
            try:
                await page.wait_for_selector("a[href]", timeout=5_000)
            except Exception:  # noqa: BLE001 - playwright timeout: page simply has no links
                logger.debug("No links rendered on {} after 5s", url)
                return RenderedPage(url=page.url)
            hrefs = await page.eval_on_selector_all("a[href]", "els => els.map(e => e.getAttribute('href'))")
            return RenderedPage(url=page.url, hrefs=[h for h in hrefs if h])
        except Exception as exc:
            raise RenderError(f"Failed to render {url}: {exc}") from exc
        finally:
            await page.close()
