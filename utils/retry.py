"""Bounded retry with linear backoff for upstream calls."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)


logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a failing call is repeated."""

    max_retries: int = 3
    backoff_inc_ms: int = 500
    backoff_max_ms: int = 5000

    def wait_for(self, attempt: int) -> float:
        """Seconds to wait after the ``attempt``-th failure (1-based)."""
        return min(attempt * self.backoff_inc_ms, self.backoff_max_ms) / 1000.0


def is_transient(error: BaseException) -> bool:
    """Only failures with an explicit 5xx status are worth repeating."""
    status = getattr(error, "status", None)
    return isinstance(status, int) and status >= 500


async def retry(
    operation: Callable[..., Awaitable[R]],
    *args: Any,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs: Any,
) -> R:
    """
    Await ``operation(*args, **kwargs)`` until it succeeds.

    Permanent failures propagate at once. Transient ones wait
    ``min(attempt * inc, cap)`` and try again, at most ``max_retries``
    times, after which the last error propagates.
    """
    policy = policy or RetryPolicy()
    increment = policy.backoff_inc_ms / 1000.0
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(0, int(policy.max_retries)) + 1),
        wait=wait_incrementing(start=increment, increment=increment, max=policy.backoff_max_ms / 1000.0),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        sleep=sleep,
    )
    async for attempt in retrying:
        with attempt:
            return await operation(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover
