import json

import httpx
import pytest
from pydantic import ValidationError

from recipe_engine.clients.browser import RenderError
from recipe_engine.clients.http import RetryableStatusError, SoftErrorDetected
from recipe_engine.exceptions import ConfigurationError, DiscoveryError, UnsupportedStrategyError
from recipe_engine.models.saga import ErrorCategory
from recipe_engine.resilience.errors import classify, error_type, is_transient
from tests.factories import make_provider


class MysteryError(Exception):
    pass


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://recipes.example.com/recipe/a")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


def _validation_error() -> ValidationError:
    try:
        make_provider(batch_size=0)
    except ValidationError as exc:
        return exc
    raise AssertionError("expected ValidationError")


def _wrapped(cause: Exception) -> DiscoveryError:
    try:
        raise DiscoveryError("root failed", provider_id="p", root_url="https://x") from cause
    except DiscoveryError as exc:
        return exc


CASES = [
    (RetryableStatusError(503), ErrorCategory.TRANSIENT, "HttpStatus"),
    (RetryableStatusError(429), ErrorCategory.TRANSIENT, "RateLimited"),
    (_status_error(429), ErrorCategory.TRANSIENT, "RateLimited"),
    (_status_error(502), ErrorCategory.TRANSIENT, "HttpStatus"),
    (_status_error(404), ErrorCategory.PERMANENT, "HttpStatus"),
    (_status_error(403), ErrorCategory.PERMANENT, "HttpStatus"),
    (httpx.ConnectError("refused"), ErrorCategory.TRANSIENT, "Network"),
    (httpx.ReadTimeout("slow"), ErrorCategory.TRANSIENT, "Timeout"),
    (TimeoutError(), ErrorCategory.TRANSIENT, "Timeout"),
    (ConnectionResetError(), ErrorCategory.TRANSIENT, "Network"),
    (RenderError("crashed"), ErrorCategory.TRANSIENT, "Render"),
    (httpx.UnsupportedProtocol("ftp"), ErrorCategory.PERMANENT, "InvalidInput"),
    (httpx.InvalidURL("bad"), ErrorCategory.PERMANENT, "InvalidInput"),
    (SoftErrorDetected("captcha"), ErrorCategory.PERMANENT, "MalformedContent"),
    (json.JSONDecodeError("bad", "{", 0), ErrorCategory.PERMANENT, "MalformedContent"),
    (_validation_error(), ErrorCategory.PERMANENT, "MalformedContent"),
    (ConfigurationError("none"), ErrorCategory.PERMANENT, "Configuration"),
    (UnsupportedStrategyError("rss"), ErrorCategory.PERMANENT, "Configuration"),
    (ValueError("bad"), ErrorCategory.PERMANENT, "InvalidInput"),
    (KeyError("url"), ErrorCategory.PERMANENT, "InvalidInput"),
    (_wrapped(httpx.ConnectError("refused")), ErrorCategory.TRANSIENT, "Network"),
    (_wrapped(_status_error(404)), ErrorCategory.PERMANENT, "HttpStatus"),
    (MysteryError(), ErrorCategory.UNKNOWN, "Unknown"),
    (RuntimeError("?"), ErrorCategory.UNKNOWN, "Unknown"),
]


@pytest.mark.parametrize(("exc", "category", "kind"), CASES)
def test_classify_and_error_type(exc: Exception, category: ErrorCategory, kind: str) -> None:
    assert classify(exc) is category
    assert error_type(exc) == kind


@pytest.mark.parametrize(("exc", "category", "kind"), CASES)
def test_only_transient_is_retryable(exc: Exception, category: ErrorCategory, kind: str) -> None:
    assert is_transient(exc) is (category is ErrorCategory.TRANSIENT)


def test_classification_is_a_partition() -> None:
    for exc, _, _ in CASES:
        assert [c for c in ErrorCategory if classify(exc) is c] == [classify(exc)]


def test_unknown_is_never_transient() -> None:
    assert classify(MysteryError()) is ErrorCategory.UNKNOWN
    assert not is_transient(MysteryError())
