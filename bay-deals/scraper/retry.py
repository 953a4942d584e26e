"""
Bounded exponential-backoff retry for flaky async operations.

Client errors (anything carrying an HTTP status in 400–499) are raised
immediately: they will not fix themselves on a second attempt.  Everything
else (network errors, 5xx, plain exceptions without a status) is retried
up to ``max_retries`` times with jittered backoff.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SEC = 1.0
DEFAULT_MAX_DELAY_SEC = 30.0


def error_status(exc: BaseException) -> int | None:
    """Return the HTTP-like status code carried by *exc*, if any.

    Looks at ``exc.status`` / ``exc.status_code`` and at
    ``exc.response.status_code`` (``httpx.HTTPStatusError``).
    """
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def is_client_error(exc: BaseException) -> bool:
    status = error_status(exc)
    return status is not None and 400 <= status < 500


def backoff_delay(
    attempt: int,
    *,
    base_delay: float = DEFAULT_BASE_DELAY_SEC,
    max_delay: float = DEFAULT_MAX_DELAY_SEC,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay before retry number ``attempt + 1`` (0-indexed *attempt*).

    ``min(base * 2**attempt, max)`` scaled by a jitter factor in [0.5, 1.0].
    """
    delay = min(base_delay * (2 ** attempt), max_delay)
    return delay * (0.5 + rng() * 0.5)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY_SEC,
    max_delay: float = DEFAULT_MAX_DELAY_SEC,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Await ``operation()`` with up to *max_retries* retries.

    Total calls are at most ``max_retries + 1``.  The last error is
    re-raised once the budget is spent.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if is_client_error(exc):
                logger.info("Not retrying client error (status=%s): %s", error_status(exc), exc)
                raise
            if attempt >= max_retries:
                raise
            delay = backoff_delay(attempt, base_delay=base_delay, max_delay=max_delay, rng=rng)
            logger.info(
                "Retry %d/%d in %.0fms... (%s)",
                attempt + 1, max_retries, delay * 1000, exc,
            )
            await sleep(delay)
            attempt += 1
