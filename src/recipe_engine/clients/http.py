"""Shared httpx client and the rate-limited GET helpers built on it."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter  # noqa: TC002
from loguru import logger
from lxml import etree

from recipe_engine import __version__

if TYPE_CHECKING:
    from recipe_engine.settings import Settings

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# Interstitials served with a 200 status instead of the recipe page
_BLOCK_PAGE_MARKERS = ("cf-challenge", "captcha", "are you a robot", "access denied")


class SoftErrorDetected(Exception):
    """A 2xx page that carries no usable recipe content."""


class RetryableStatusError(Exception):
    """The server answered with a status worth retrying on a later attempt."""

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        suffix = f" for {url}" if url else ""
        super().__init__(f"Retryable HTTP {status_code}{suffix}")


@dataclass
class RequestContext:
    """Process-wide request throttle handed to every fetch.

    ``limiter`` is the template; each running event loop gets its own copy so
    Prefect flows running in a fresh loop never touch a limiter bound elsewhere.
    """

    limiter: AsyncLimiter
    _per_loop: dict[int, AsyncLimiter] = field(default_factory=dict, repr=False, compare=False)

    def get_limiter(self) -> AsyncLimiter:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self.limiter
        limiter = self._per_loop.get(id(loop))
        if limiter is None:
            limiter = self._per_loop[id(loop)] = AsyncLimiter(self.limiter.max_rate, self.limiter.time_period)
        return limiter


def request_context(settings: Settings) -> RequestContext:
    return RequestContext(limiter=AsyncLimiter(settings.rate_limit_per_second, 1))


async def create_http_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """One client per process; connection pool sized for the concurrent provider runs."""

    pool = 10 * settings.provider_concurrency
    return httpx.AsyncClient(
        transport=transport,
        http2=True,
        timeout=httpx.Timeout(settings.request_timeout, connect=5.0),
        limits=httpx.Limits(
            max_connections=pool,
            max_keepalive_connections=pool // 2,
            keepalive_expiry=30.0,
        ),
        headers={
            "User-Agent": f"recipe-engine/{__version__}",
            "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        },
        follow_redirects=True,
    )


async def fetch(
    client: httpx.AsyncClient,
    ctx: RequestContext,
    url: str,
    *,
    timeout: float | None = None,
) -> httpx.Response:
    """Throttled GET. Retryable statuses raise ``RetryableStatusError``, other errors ``HTTPStatusError``."""

    kwargs: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
    async with ctx.get_limiter():
        response = await client.get(url, **kwargs)
    logger.debug("GET {} -> {}", url, response.status_code)
    if response.status_code in RETRYABLE_STATUS_CODES:
        await response.aclose()
        raise RetryableStatusError(response.status_code, url)
    response.raise_for_status()
    return response


async def fetch_text(
    client: httpx.AsyncClient,
    ctx: RequestContext,
    url: str,
    *,
    timeout: float | None = None,
) -> str:
    return (await fetch(client, ctx, url, timeout=timeout)).text


async def fetch_json(
    client: httpx.AsyncClient,
    ctx: RequestContext,
    url: str,
    *,
    timeout: float | None = None,
) -> Any:
    """Decoded JSON body; objects and arrays are both returned as-is."""

    return (await fetch(client, ctx, url, timeout=timeout)).json()


def validate_html_response(page_html: str, *, min_length: int = 100) -> etree._Element:
    """Parse a recipe page, rejecting truncated bodies and bot-check interstitials."""

    if len(page_html) < min_length:
        raise SoftErrorDetected(f"HTML response too short ({len(page_html)} chars)")
    head = page_html[:2000].lower()
    marker = next((m for m in _BLOCK_PAGE_MARKERS if m in head), None)
    if marker is not None:
        raise SoftErrorDetected(f"Block page detected ({marker!r})")
    doc = etree.HTML(page_html)
    if doc is None:
        raise SoftErrorDetected("Failed to parse HTML document")
    return doc
