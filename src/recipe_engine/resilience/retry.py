"""Classifier-driven retry helper built on tenacity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
    wait_random,
)

from recipe_engine.resilience.errors import error_type, is_transient

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tenacity.wait import wait_base

Backoff = Literal["exponential", "linear"]


def _log_before_sleep(operation: str) -> Callable[[RetryCallState], None]:
    """Loguru-compatible before_sleep callback for tenacity."""

    def _log(retry_state: RetryCallState) -> None:
        if retry_state.next_action and retry_state.outcome is not None:
            exc = retry_state.outcome.exception()
            logger.warning(
                "Retrying {} (attempt {}) after {} error, sleeping {:.2f}s: {}",
                operation,
                retry_state.attempt_number,
                error_type(exc) if exc else "Unknown",
                retry_state.next_action.sleep,
                exc,
            )

    return _log


def backoff_wait(base_delay_ms: int, backoff: Backoff = "exponential") -> wait_base:
    """Wait strategy seeded by ``base_delay_ms`` with up to 50% jitter."""

    base = base_delay_ms / 1000
    jitter = wait_random(0, base / 2)
    if backoff == "linear":
        return wait_incrementing(start=base, increment=base) + jitter
    return wait_exponential(multiplier=base, min=base, max=base * 64) + jitter


async def execute_with_retry[T](
    action: Callable[[], Awaitable[T]],
    max_retries: int,
    base_delay_ms: int,
    *,
    backoff: Backoff = "exponential",
    operation: str = "operation",
) -> T:
    """Run ``action``, retrying while the classifier reports a transient error.

    Makes at most ``max_retries + 1`` attempts and re-raises the last error.
    Permanent and unknown errors propagate immediately.
    """

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_transient),
        stop=stop_after_attempt(max(max_retries, 0) + 1),
        wait=backoff_wait(base_delay_ms, backoff),
        before_sleep=_log_before_sleep(operation),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await action()
    raise AssertionError("unreachable")  # pragma: no cover
