"""Exponential-backoff retry for rate-limited remote calls.

Only failures the ``is_retryable`` predicate accepts are retried; everything
else propagates on the first attempt. Delay before attempt n+1:

    initial_delay * 2 ** (n - 1) + uniform(0, max_jitter)
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import litellm

from glimpse.errors import RemoteCallError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RATE_LIMIT_STATUS = 429


def is_rate_limited(exc: BaseException) -> bool:
    """Return True if *exc* signals quota or throughput exhaustion (HTTP 429).

    Looks at Glimpse's own RemoteCallError, litellm's RateLimitError, and any
    exception (or its direct cause) carrying a 429 status attribute.
    """
    if isinstance(exc, RemoteCallError):
        return exc.rate_limited
    if isinstance(exc, litellm.RateLimitError):
        return True
    for candidate in (exc, exc.__cause__):
        if candidate is None:
            continue
        for attr in ("status_code", "status", "code"):
            if getattr(candidate, attr, None) == _RATE_LIMIT_STATUS:
                return True
    return False


class RetryPolicy:
    """Run a zero-argument async operation, retrying retryable failures.

    Args:
        max_attempts: Total attempts including the first (>= 1).
        initial_delay: Delay in seconds before the second attempt.
        max_jitter: Upper bound (exclusive) of the random delay added per retry.
        is_retryable: Predicate deciding which exceptions are worth retrying.
        sleep: Awaitable sleep function (injectable for tests).
        rng: Returns a float in [0, 1) (injectable for tests).
    """

    def __init__(
        self,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        max_jitter: float = 1.0,
        is_retryable: Callable[[BaseException], bool] = is_rate_limited,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_jitter = max_jitter
        self._is_retryable = is_retryable
        self._sleep = sleep
        self._rng = rng

    def backoff(self, attempt: int) -> float:
        """Base delay (no jitter) after the *attempt*-th failure (1-based)."""
        return self.initial_delay * (2 ** (attempt - 1))

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "remote call") -> T:
        """Await ``operation()`` until it succeeds or retries run out.

        Raises:
            The last exception raised by *operation* once it is not retryable
            or ``max_attempts`` attempts have failed.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                if not self._is_retryable(exc):
                    raise
                if attempt >= self.max_attempts:
                    logger.error(
                        "%s still rate-limited after %d attempts; giving up",
                        label,
                        attempt,
                    )
                    raise
                delay = self.backoff(attempt) + self._rng() * self.max_jitter
                logger.warning(
                    "%s rate-limited (attempt %d/%d). Retrying in %.2fs...",
                    label,
                    attempt,
                    self.max_attempts,
                    delay,
                )
                await self._sleep(delay)
