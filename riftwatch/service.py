# riftwatch/service.py
# ============================================================================
# RiftService – owns the cache, rate limiter, retry policy, Riot client and
# Data Dragon resolver, and gives them one start/close lifecycle.
# ============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from riftwatch.cache import CacheStore
from riftwatch.config import Settings
from riftwatch.riot.client import CredentialRefresher, RiotClient
from riftwatch.riot.ddragon import DataDragon
from riftwatch.riot.ratelimit import RateLimiter
from riftwatch.riot.retry import RetryPolicy

log = logging.getLogger(__name__)


class RiftService:
    """Explicitly constructed owner of all in-process state."""

    def __init__(
        self,
        client: RiotClient,
        ddragon: DataDragon,
    ):
        self.client = client
        self.ddragon = ddragon
        self.started = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        on_auth_failure: Optional[CredentialRefresher] = None,
    ) -> "RiftService":
        cache = CacheStore(enabled=settings.CACHE_ENABLED)
        limiter = RateLimiter(
            per_second=settings.RATE_LIMIT_PER_SECOND,
            per_two_minutes=settings.RATE_LIMIT_PER_2_MINUTES,
        )
        retry = RetryPolicy(limiter, max_retries=settings.MAX_RETRIES, base_delay=settings.RETRY_BASE_DELAY)
        client = RiotClient(
            settings.RIOT_API_KEY,
            settings.DEFAULT_REGION,
            cache=cache,
            limiter=limiter,
            retry=retry,
            timeout=settings.HTTP_TIMEOUT,
            batch_size=settings.MATCH_BATCH_SIZE,
            on_auth_failure=on_auth_failure,
        )
        ddragon = DataDragon(
            cache,
            base_url=settings.DDRAGON_URL,
            locale=settings.DDRAGON_LOCALE,
            timeout=settings.HTTP_TIMEOUT,
        )
        return cls(client, ddragon)

    @property
    def cache(self) -> CacheStore:
        return self.client.cache

    @property
    def limiter(self) -> RateLimiter:
        return self.client.limiter

    async def start(self, load_reference: bool = True) -> None:
        if load_reference:
            await self.ddragon.load_all()
        self.started = True
        log.info("RiftService started")

    async def close(self) -> None:
        await self.limiter.close()
        await self.client.close()
        await self.ddragon.close()
        self.started = False
        log.info("RiftService closed")

    async def __aenter__(self) -> "RiftService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def status(self) -> Dict[str, Any]:
        """Read-only snapshot: quota usage, queue depth, cache sizes, reference data."""
        return {
            **self.client.status(),
            "reference_data": self.ddragon.status(),
        }
