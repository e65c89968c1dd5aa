# riot/client.py

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from riftwatch.cache import MISSING, CacheNamespace, CacheStore
from riftwatch.riot.errors import (
    ForbiddenError,
    InvalidCredentialError,
    NotFoundError,
    RateLimitError,
    RiotAPIError,
    UpstreamError,
)
from riftwatch.riot.ratelimit import RateLimiter
from riftwatch.riot.regions import QUEUE_FILTERS, platform_host, regional_host
from riftwatch.riot.retry import RetryPolicy

log = logging.getLogger(__name__)

# Async hook returning a fresh API key (or None) after a 401
CredentialRefresher = Callable[[], Awaitable[Optional[str]]]

# Admission priority per operation; anything absent uses 0
OPERATION_PRIORITIES: Dict[str, int] = {
    "live-game": 1,  # only meaningful while the game is running
}


@dataclass(frozen=True)
class Credential:
    """API key + default region. Replaced as a whole, never mutated."""
    api_key: str
    region: str

    def __repr__(self) -> str:
        return f"Credential(api_key='***', region={self.region!r})"


@dataclass
class PlayerProfile:
    account: Dict[str, Any]
    summoner: Dict[str, Any]
    ranked: List[Dict[str, Any]] = field(default_factory=list)


def make_cache_key(operation: str, **params: Any) -> str:
    """
    Deterministic cache key: parameters are serialized with sorted keys and
    ``None`` values dropped, so equivalent parameter sets hash identically.
    """
    canonical = {k: v for k, v in params.items() if v is not None}
    return f"{operation}:{json.dumps(canonical, sort_keys=True, separators=(',', ':'), default=str)}"


class RiotClient:
    """Async Riot API client: cache → rate limiter → retry → HTTP."""

    def __init__(
        self,
        api_key: str,
        region: str = "euw1",
        *,
        cache: Optional[CacheStore] = None,
        limiter: Optional[RateLimiter] = None,
        retry: Optional[RetryPolicy] = None,
        timeout: float = 10.0,
        batch_size: int = 10,
        on_auth_failure: Optional[CredentialRefresher] = None,
    ):
        if not api_key:
            raise ValueError("Riot API key must not be empty")
        if not region:
            raise ValueError("Default region must not be empty")

        self._credential = Credential(api_key, region.lower())
        self._credential_stale = False
        self.on_auth_failure = on_auth_failure

        self.cache = cache if cache is not None else CacheStore()
        self.limiter = limiter if limiter is not None else RateLimiter()
        self.retry = retry if retry is not None else RetryPolicy(self.limiter)
        self.batch_size = batch_size

        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        log.info(f"Riot API client initialized for region: {self.region}")

    # ─── Credential ────────────────────────────────────────────────────
    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def api_key(self) -> str:
        return self._credential.api_key

    @property
    def region(self) -> str:
        return self._credential.region

    def reprovision(self, api_key: str, region: Optional[str] = None) -> None:
        """Swap in a new credential. In-flight requests keep the one they started with."""
        if not api_key:
            raise ValueError("Riot API key must not be empty")
        self._credential = Credential(api_key, (region or self.region).lower())
        self._credential_stale = False
        log.info(f"Riot API credential re-provisioned (region: {self.region})")

    async def _refresh_credential_if_needed(self) -> None:
        if not self._credential_stale or self.on_auth_failure is None:
            return
        # Cleared before awaiting: concurrent callers consult the hook once per 401
        self._credential_stale = False
        new_key = await self.on_auth_failure()
        if new_key:
            self.reprovision(new_key)
        else:
            log.warning("Credential refresh hook returned no key, keeping the current one until the next 401")

    # ─── Session ───────────────────────────────────────────────────────
    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session. The token is sent per request."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        await self.close()

    # ─── Transport ─────────────────────────────────────────────────────
    @staticmethod
    def _error_for(status: int, headers, operation: str, body: str) -> RiotAPIError:
        if status == 401:
            return InvalidCredentialError("Invalid Riot API key", operation, status)
        if status == 403:
            return ForbiddenError("Riot API key does not have access to this endpoint", operation, status)
        if status == 404:
            return NotFoundError("Resource not found", operation, status)
        if status == 429:
            retry_after = headers.get("Retry-After")
            try:
                seconds = float(retry_after) if retry_after is not None else None
            except ValueError:
                seconds = None
            return RateLimitError("Rate limit exceeded (429)", operation, status, retry_after=seconds)
        return UpstreamError(f"Riot API error {status}: {body[:200]}", operation, status)

    async def _request(
        self,
        url: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        priority: Optional[int] = None,
    ) -> Any:
        """
        Make an authenticated GET through the retry policy and rate limiter.

        Args:
            url: The full URL to request
            operation: Logical operation name, used for priority, logs and errors
            params: Optional query string parameters
            priority: Admission priority (defaults to the operation's priority)

        Returns:
            JSON response from the API

        Raises:
            RateLimitError: When still throttled after every retry
            InvalidCredentialError, ForbiddenError, NotFoundError: On 401/403/404
            UpstreamError: For other statuses and network errors
        """
        await self._refresh_credential_if_needed()
        if priority is None:
            priority = OPERATION_PRIORITIES.get(operation, 0)

        async def attempt() -> Any:
            credential = self._credential
            session = await self._get_session()
            try:
                async with session.get(url, params=params, headers={"X-Riot-Token": credential.api_key}) as resp:
                    if 200 <= resp.status < 300:
                        try:
                            return await resp.json()
                        except (aiohttp.ContentTypeError, ValueError) as e:
                            log.error(f"Undecodable body on {operation}: {url}")
                            raise UpstreamError("Invalid JSON body", operation, resp.status) from e

                    body = await resp.text()
                    if resp.status == 404:
                        log.debug(f"404 Not Found: {url}")
                    elif resp.status != 429:
                        log.error(f"Riot API error {resp.status} on {operation}: {body[:200]}")
                    raise self._error_for(resp.status, resp.headers, operation, body)

            except aiohttp.ClientError as e:
                raise UpstreamError(f"Network error: {e}", operation) from e
            except asyncio.TimeoutError as e:
                raise UpstreamError("Request timed out", operation) from e

        try:
            return await self.retry.execute(attempt, priority=priority)
        except InvalidCredentialError:
            self._credential_stale = True
            raise

    async def _cached_get(
        self,
        namespace: CacheNamespace,
        operation: str,
        url: str,
        key_params: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        key = make_cache_key(operation, **key_params)
        cached = self.cache.get(namespace, key, MISSING)
        if cached is not MISSING:
            return cached

        result = await self._request(url, operation, params=params)
        self.cache.set(namespace, key, result)
        return result

    # ─── Account (regional) ────────────────────────────────────────────
    async def get_account_by_riot_id(self, game_name: str, tag_line: str,
                                     region: Optional[str] = None) -> Dict[str, Any]:
        """
        Get account by Riot ID (game name + tag).
        Account-V1: GET /riot/account/v1/accounts/by-riot-id/{gameName}/{tagLine}
        """
        region = region or self.region
        url = (
            f"{regional_host(region)}/riot/account/v1/accounts/by-riot-id/"
            f"{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )
        return await self._cached_get(
            CacheNamespace.PROFILE, "account-by-riot-id", url,
            {"game_name": game_name, "tag_line": tag_line, "region": region},
        )

    async def get_account_by_puuid(self, puuid: str, region: Optional[str] = None) -> Dict[str, Any]:
        region = region or self.region
        url = f"{regional_host(region)}/riot/account/v1/accounts/by-puuid/{puuid}"
        return await self._cached_get(
            CacheNamespace.PROFILE, "account-by-puuid", url, {"puuid": puuid, "region": region},
        )

    # ─── Summoner / League (platform) ──────────────────────────────────
    async def get_summoner_by_puuid(self, puuid: str, region: Optional[str] = None) -> Dict[str, Any]:
        """Get summoner information by PUUID."""
        region = region or self.region
        url = f"{platform_host(region)}/lol/summoner/v4/summoners/by-puuid/{puuid}"
        return await self._cached_get(
            CacheNamespace.PROFILE, "summoner", url, {"puuid": puuid, "region": region},
        )

    async def get_ranked_entries(self, puuid: str, region: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get ranked league entries by PUUID."""
        region = region or self.region
        url = f"{platform_host(region)}/lol/league/v4/entries/by-puuid/{puuid}"
        return await self._cached_get(
            CacheNamespace.RANKED, "ranked", url, {"puuid": puuid, "region": region},
        )

    # ─── Champion mastery (platform) ───────────────────────────────────
    async def get_champion_masteries(self, puuid: str, region: Optional[str] = None) -> List[Dict[str, Any]]:
        region = region or self.region
        url = f"{platform_host(region)}/lol/champion-mastery/v4/champion-masteries/by-puuid/{puuid}"
        return await self._cached_get(
            CacheNamespace.MASTERY, "mastery-all", url, {"puuid": puuid, "region": region},
        )

    async def get_top_champion_masteries(self, puuid: str, count: int = 10,
                                         region: Optional[str] = None) -> List[Dict[str, Any]]:
        region = region or self.region
        url = f"{platform_host(region)}/lol/champion-mastery/v4/champion-masteries/by-puuid/{puuid}/top"
        return await self._cached_get(
            CacheNamespace.MASTERY, "mastery-top", url,
            {"puuid": puuid, "region": region, "count": count},
            params={"count": count},
        )

    async def get_total_mastery_score(self, puuid: str, region: Optional[str] = None) -> int:
        region = region or self.region
        url = f"{platform_host(region)}/lol/champion-mastery/v4/scores/by-puuid/{puuid}"
        return await self._cached_get(
            CacheNamespace.MASTERY, "mastery-score", url, {"puuid": puuid, "region": region},
        )

    # ─── Match (regional) ──────────────────────────────────────────────
    async def get_match_ids(
        self,
        puuid: str,
        *,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        queue: Optional[int] = None,
        match_type: Optional[str] = None,
        start: Optional[int] = None,
        count: Optional[int] = None,
        region: Optional[str] = None,
    ) -> List[str]:
        """Get list of match IDs for a player, optionally filtered."""
        region = region or self.region
        query = {
            "startTime": start_time,
            "endTime": end_time,
            "queue": queue,
            "type": match_type,
            "start": start,
            "count": count,
        }
        query = {k: v for k, v in query.items() if v is not None}
        url = f"{regional_host(region)}/lol/match/v5/matches/by-puuid/{puuid}/ids"
        return await self._cached_get(
            CacheNamespace.MATCH_IDS, "match-ids", url,
            {"puuid": puuid, "region": region, **query},
            params=query or None,
        )

    async def get_match(self, match_id: str, region: Optional[str] = None) -> Dict[str, Any]:
        """Get detailed match information by match ID. Completed matches are immutable."""
        region = region or self.region
        url = f"{regional_host(region)}/lol/match/v5/matches/{match_id}"
        return await self._cached_get(
            CacheNamespace.MATCH_DETAIL, "match", url, {"match_id": match_id},
        )

    async def get_match_timeline(self, match_id: str, region: Optional[str] = None) -> Dict[str, Any]:
        """
        Get match timeline with detailed event history.
        Match-V5 Timeline: returns event history per minute.
        """
        region = region or self.region
        url = f"{regional_host(region)}/lol/match/v5/matches/{match_id}/timeline"
        return await self._cached_get(
            CacheNamespace.MATCH_DETAIL, "timeline", url, {"match_id": match_id},
        )

    async def _get_match_or_none(self, match_id: str, region: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.get_match(match_id, region)
        except RiotAPIError as e:
            log.warning(f"Failed to fetch match {match_id}: {e}")
            return None

    async def get_matches(self, match_ids: List[str], region: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch several matches, ``batch_size`` at a time concurrently.

        A match that fails is logged and left out; the others are still returned
        in input order.
        """
        region = region or self.region
        matches: List[Dict[str, Any]] = []

        for i in range(0, len(match_ids), self.batch_size):
            batch = match_ids[i:i + self.batch_size]
            results = await asyncio.gather(*(self._get_match_or_none(mid, region) for mid in batch))
            matches.extend(m for m in results if m is not None)

        return matches

    # ─── Spectator (platform) ──────────────────────────────────────────
    async def get_current_game(self, puuid: str, region: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Get the live game of a player (Spectator-V5).

        Returns None when the player is not in a game; that answer is cached
        like a game would be. Any other failure propagates and is not cached.
        """
        region = region or self.region
        key = make_cache_key("live-game", puuid=puuid, region=region)
        cached = self.cache.get(CacheNamespace.LIVE_GAME, key, MISSING)
        if cached is not MISSING:
            return cached

        url = f"{platform_host(region)}/lol/spectator/v5/active-games/by-summoner/{puuid}"
        try:
            game = await self._request(url, "live-game")
        except NotFoundError:
            game = None
        self.cache.set(CacheNamespace.LIVE_GAME, key, game)
        return game

    # ─── Composite ─────────────────────────────────────────────────────
    async def get_player_profile(self, game_name: str, tag_line: str,
                                 region: Optional[str] = None) -> PlayerProfile:
        """Account by Riot ID, then summoner + ranked entries concurrently."""
        region = region or self.region
        account = await self.get_account_by_riot_id(game_name, tag_line, region)

        summoner, ranked = await asyncio.gather(
            self.get_summoner_by_puuid(account["puuid"], region),
            self.get_ranked_entries(account["puuid"], region),
        )
        return PlayerProfile(account=account, summoner=summoner, ranked=ranked)

    async def get_recent_matches_with_details(
        self,
        puuid: str,
        count: int = 10,
        queue_type: Optional[str] = None,
        region: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Latest ``count`` matches, optionally limited to "ranked" or "normal" queues."""
        queue = None
        if queue_type is not None:
            if queue_type not in QUEUE_FILTERS:
                raise ValueError(f"Unknown queue type: {queue_type!r}")
            queue = QUEUE_FILTERS[queue_type]

        match_ids = await self.get_match_ids(puuid, queue=queue, count=count, region=region)
        return await self.get_matches(match_ids, region)

    def status(self) -> Dict[str, Any]:
        return {
            "default_region": self.region,
            "cache_enabled": self.cache.enabled,
            "cache": self.cache.stats(),
            "rate_limit": self.limiter.status(),
        }
