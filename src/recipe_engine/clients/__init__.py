"""Client abstractions."""

from .browser import BrowserClient, PageRenderer, RenderedPage, RenderError
from .http import RequestContext, create_http_client, request_context

__all__ = [
    "BrowserClient",
    "PageRenderer",
    "RenderError",
    "RenderedPage",
    "RequestContext",
    "create_http_client",
    "request_context",
]
