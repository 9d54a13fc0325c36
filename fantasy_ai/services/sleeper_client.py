"""
Read-only Sleeper API client used to build league context for AI prompts
"""

import httpx
import asyncio
from typing import List, Dict, Any, Optional
import logging

from fantasy_ai.core.config import settings
from fantasy_ai.core.errors import SleeperAPIError
from fantasy_ai.services.cache_service import CacheService, cache_service

logger = logging.getLogger(__name__)

PLAYERS_CACHE_KEY = "sleeper:players:nfl"


class SleeperClient:
    """Thin async wrapper over the public Sleeper v1 endpoints"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        cache: Optional[CacheService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.SLEEPER_API_URL).rstrip("/")
        self.timeout = timeout or settings.SLEEPER_REQUEST_TIMEOUT
        self.max_retries = settings.SLEEPER_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = retry_delay
        self.cache = cache or cache_service
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    @staticmethod
    def _should_retry(error: Exception) -> bool:
        if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code >= 500
        return False

    async def _request(self, endpoint: str) -> Any:
        attempt = 0
        while True:
            try:
                async with self._client() as client:
                    response = await client.get(endpoint)
                    response.raise_for_status()
                    return response.json()
            except Exception as e:
                if attempt < self.max_retries and self._should_retry(e):
                    attempt += 1
                    logger.info(f"Retrying Sleeper request ({attempt}/{self.max_retries}): {endpoint}")
                    await asyncio.sleep(self.retry_delay * attempt)
                    continue

                status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                raise SleeperAPIError(
                    f"Sleeper API request failed after {attempt + 1} attempts: {e}",
                    status_code=status_code,
                ) from e

    async def get_league(self, league_id: str) -> Dict[str, Any]:
        return await self._request(f"/league/{league_id}")

    async def get_league_rosters(self, league_id: str) -> List[Dict[str, Any]]:
        return await self._request(f"/league/{league_id}/rosters")

    async def get_league_users(self, league_id: str) -> List[Dict[str, Any]]:
        return await self._request(f"/league/{league_id}/users")

    async def get_league_details(self, league_id: str) -> Dict[str, Any]:
        """League, rosters and users fetched concurrently"""
        league, rosters, users = await asyncio.gather(
            self.get_league(league_id),
            self.get_league_rosters(league_id),
            self.get_league_users(league_id),
        )
        return {"league": league or {}, "rosters": rosters or [], "users": users or []}

    async def get_all_players(self) -> Dict[str, Dict[str, Any]]:
        """The full NFL player map (several MB), cached between calls"""
        cached = await self.cache.get(PLAYERS_CACHE_KEY)
        if cached:
            return cached

        players = await self._request("/players/nfl")
        await self.cache.set(PLAYERS_CACHE_KEY, players, settings.PLAYERS_CACHE_TTL_SECONDS)
        logger.info(f"Fetched {len(players)} players from Sleeper")
        return players

    async def get_nfl_state(self) -> Dict[str, Any]:
        return await self._request("/state/nfl")

    async def health_check(self) -> bool:
        try:
            await self.get_nfl_state()
            return True
        except SleeperAPIError as e:
            logger.warning(f"Sleeper API health check failed: {e}")
            return False


def find_user_roster(rosters: List[Dict[str, Any]], sleeper_user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not sleeper_user_id:
        return None
    return next((roster for roster in rosters if roster.get("owner_id") == sleeper_user_id), None)
