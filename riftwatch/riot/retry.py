# riot/retry.py

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from riftwatch.riot.errors import RateLimitError, is_retriable
from riftwatch.riot.ratelimit import RateLimiter

log = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Exponential backoff on upstream throttling, admission through the rate limiter."""

    def __init__(self, limiter: RateLimiter, max_retries: int = 3, base_delay: float = 1.0):
        self.limiter = limiter
        self.max_retries = max_retries
        self.base_delay = base_delay

    def backoff(self, attempt: int, error: Optional[RateLimitError] = None) -> float:
        """
        Delay before the attempt following ``attempt`` (0-based).

        A ``Retry-After`` hint from the upstream wins when it asks for longer.
        """
        delay = self.base_delay * (2 ** attempt)
        if error is not None and error.retry_after:
            delay = max(delay, error.retry_after)
        return delay

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        priority: int = 0,
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails fatally, or runs out of retries.

        Args:
            operation: Zero-argument coroutine factory performing one physical request
            max_retries: Additional attempts allowed after the first (default: policy value)
            priority: Admission priority passed to the rate limiter before each attempt

        Returns:
            Whatever ``operation`` returns on its first successful attempt

        Raises:
            RateLimitError: The last throttling error once retries are exhausted
            RiotAPIError: Any fatal error, immediately
        """
        retries = self.max_retries if max_retries is None else max_retries

        for attempt in range(retries + 1):
            await self.limiter.acquire(priority)
            try:
                return await operation()
            except Exception as e:
                if not is_retriable(e):
                    raise
                if attempt >= retries:
                    log.error(f"Rate limited, giving up after {attempt + 1} attempts: {e}")
                    raise
                delay = self.backoff(attempt, e)
                log.warning(f"Rate limited, retrying in {delay:.1f}s (attempt {attempt + 1}/{retries + 1})")
                await asyncio.sleep(delay)

        # Unreachable: the loop either returns or raises
        raise RuntimeError("retry loop exited without a result")
