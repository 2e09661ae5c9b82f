"""Bounded retry with exponential backoff for cache fetches and writes.

Only failures that :func:`~storefront_client.exceptions.is_retryable`
accepts (network errors and 5xx responses) are retried.  The delay doubles
each attempt: ``retry_delay``, ``2 * retry_delay``, ``4 * retry_delay``, ...
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from storefront_client.exceptions import is_retryable
from storefront_client.output import debug

T = TypeVar("T")


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    retries: int,
    retry_delay: float,
    on_failure: Optional[Callable[[Exception, int], None]] = None,
    label: str = "request",
) -> T:
    """Await ``fn()``, retrying up to *retries* extra times on retryable errors.

    Args:
        fn: Zero-argument coroutine factory; called once per attempt.
        retries: Extra attempts after the first one.
        retry_delay: Base backoff delay in seconds.
        on_failure: Called with ``(exc, attempt)`` after every failed attempt,
            including the last one.
        label: Name used in debug output.

    Raises:
        Exception: The last failure once retries are exhausted, or the first
            non-retryable failure.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if on_failure is not None:
                on_failure(exc, attempt)
            if attempt >= retries or not is_retryable(exc):
                raise
            delay = retry_delay * 2 ** attempt
            debug(
                f"{label} failed: {exc}, retrying in {delay}s "
                f"(attempt {attempt + 1}/{retries})"
            )
            await asyncio.sleep(delay)
            attempt += 1
