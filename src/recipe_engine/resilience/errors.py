"""Transient/permanent error classification."""

from __future__ import annotations

import json

import httpx
from pydantic import ValidationError

from recipe_engine.clients.browser import RenderError
from recipe_engine.clients.http import RETRYABLE_STATUS_CODES, RetryableStatusError, SoftErrorDetected
from recipe_engine.exceptions import ConfigurationError, DiscoveryError
from recipe_engine.models.saga import ErrorCategory


def _unwrap(exc: BaseException) -> BaseException:
    while isinstance(exc, DiscoveryError) and exc.__cause__ is not None:
        exc = exc.__cause__
    return exc


def classify(exc: BaseException) -> ErrorCategory:
    """Classify ``exc`` as exactly one of transient, permanent or unknown."""

    exc = _unwrap(exc)
    match exc:
        case RetryableStatusError():
            return ErrorCategory.TRANSIENT
        case httpx.HTTPStatusError(response=response):
            if response.status_code in RETRYABLE_STATUS_CODES:
                return ErrorCategory.TRANSIENT
            return ErrorCategory.PERMANENT
        case httpx.UnsupportedProtocol() | httpx.InvalidURL():
            return ErrorCategory.PERMANENT
        case httpx.TransportError() | TimeoutError() | ConnectionError() | RenderError():
            return ErrorCategory.TRANSIENT
        case OSError():
            return ErrorCategory.TRANSIENT
        case (
            SoftErrorDetected()
            | ConfigurationError()
            | DiscoveryError()
            | ValidationError()
            | json.JSONDecodeError()
            | ValueError()
            | TypeError()
            | LookupError()
            | AttributeError()
        ):
            return ErrorCategory.PERMANENT
        case _:
            return ErrorCategory.UNKNOWN


def is_transient(exc: BaseException) -> bool:
    """Only transient errors are retried; unknown errors are treated as permanent."""

    return classify(exc) is ErrorCategory.TRANSIENT


def error_type(exc: BaseException) -> str:
    """Short label describing what kind of failure ``exc`` is."""

    exc = _unwrap(exc)
    match exc:
        case RetryableStatusError(status_code=429):
            return "RateLimited"
        case httpx.HTTPStatusError(response=response) if response.status_code == 429:
            return "RateLimited"
        case RetryableStatusError() | httpx.HTTPStatusError():
            return "HttpStatus"
        case httpx.TimeoutException() | TimeoutError():
            return "Timeout"
        case httpx.UnsupportedProtocol() | httpx.InvalidURL():
            return "InvalidInput"
        case httpx.TransportError() | ConnectionError() | OSError():
            return "Network"
        case RenderError():
            return "Render"
        case SoftErrorDetected() | json.JSONDecodeError() | ValidationError():
            return "MalformedContent"
        case ConfigurationError():
            return "Configuration"
        case ValueError() | TypeError() | LookupError() | AttributeError():
            return "InvalidInput"
        case _:
            return "Unknown"
