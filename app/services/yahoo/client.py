from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import requests

from app.core.config import Settings, settings as default_settings
from app.core.errors import (
    AuthExpired,
    CredentialExchangeError,
    ExhaustedRetries,
    MalformedResponse,
    RateLimited,
    TransientNetwork,
    YahooApiError,
)
from app.schemas.yahoo import DiscoveredLeague, PlayerInfo
from app.services.yahoo.leagues import discover_leagues
from app.services.yahoo.oauth import CredentialManager
from app.services.yahoo.parsers import parse_players

logger = logging.getLogger(__name__)

LEAGUE_ENDPOINTS = (
    "metadata",
    "settings",
    "standings",
    "scoreboard",
    "teams",
    "draftresults",
    "transactions",
)

def _auth_headers(access_token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}

def _chunks(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class YahooApiClient:
    """
    Yahoo Fantasy v2 client with a shared credential, bounded retry and
    exponential backoff. Blocking `requests` calls run in worker threads.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialManager] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.session = session or requests.Session()
        self.credentials = credentials or CredentialManager(self.settings, self.session)
        self._sleep = sleep
        self._initialized = False

    # ---------- credential ----------

    async def initialize(self) -> None:
        """Exchange the refresh secret for a bearer token. Failure is fatal."""
        await self.credentials.refresh()
        self._initialized = True

    async def ensure_initialized(self) -> None:
        if self._initialized:
            return
        await self.credentials.get()
        self._initialized = True

    # ---------- transport ----------

    def url_for(self, path: str) -> str:
        base = self.settings.YAHOO_API_BASE.rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _send(self, url: str, access_token: Optional[str], timeout: float) -> requests.Response:
        return self.session.get(url, headers=_auth_headers(access_token), params={"format": "json"}, timeout=timeout)

    @staticmethod
    def _decode(resp: requests.Response, url: str) -> dict:
        try:
            body = resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Yahoo returned non-JSON body for {url}", url) from e
        if not isinstance(body, dict) or "fantasy_content" not in body:
            raise MalformedResponse(f"Yahoo response for {url} has no fantasy_content", url)
        return body

    async def request(
        self,
        url: str,
        retries_remaining: Optional[int] = None,
        backoff_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """
        GET `url` and return the decoded document.

        401 refreshes the credential and retries immediately; 429 and other
        failures sleep `backoff_delay` first. Every retry spends one unit of
        the budget and doubles the delay. Malformed bodies are not retried.
        """
        await self.ensure_initialized()

        retries = self.settings.YAHOO_MAX_RETRIES if retries_remaining is None else retries_remaining
        delay = self.settings.YAHOO_BACKOFF_SECONDS if backoff_delay is None else backoff_delay
        timeout = self.settings.YAHOO_REQUEST_TIMEOUT if timeout is None else timeout

        attempts = 0
        while True:
            attempts += 1
            token = self.credentials.access_token
            try:
                resp = await asyncio.to_thread(self._send, url, token, timeout)
            except requests.RequestException as e:
                error: YahooApiError = TransientNetwork(f"{type(e).__name__}: {e}", url)
            else:
                if resp.status_code == 401:
                    error = AuthExpired(f"Yahoo rejected the access token for {url}", url)
                elif resp.status_code == 429:
                    error = RateLimited(f"Yahoo rate limit hit for {url}", url)
                elif not resp.ok:
                    error = TransientNetwork(
                        f"Yahoo error {resp.status_code} on {url} :: {resp.text[:500]}",
                        url,
                        status_code=resp.status_code,
                    )
                else:
                    return self._decode(resp, url)

            if retries <= 0:
                logger.error("[YAHOO] Giving up on %s after %d attempts: %s", url, attempts, error)
                raise ExhaustedRetries(url, attempts, error) from error

            if isinstance(error, AuthExpired):
                logger.warning("[YAHOO] 401 on %s, refreshing token (%d retries left)", url, retries)
                await self.credentials.refresh(stale_token=token)
            else:
                logger.warning("[YAHOO] %s; retrying in %.1fs (%d retries left)", error, delay, retries)
                await self._sleep(delay)

            retries -= 1
            delay *= 2

    async def get(self, path: str, timeout: Optional[float] = None) -> dict:
        return await self.request(self.url_for(path), timeout=timeout)

    # ---------- league data ----------

    async def fetch_league_bundle(self, league_key: str) -> Dict[str, Optional[dict]]:
        """Every league endpoint fetched concurrently; a failed endpoint maps to None."""

        async def one(endpoint: str) -> Optional[dict]:
            try:
                return await self.get(f"league/{league_key}/{endpoint}")
            except CredentialExchangeError:
                raise
            except YahooApiError as e:
                logger.warning("[YAHOO] %s for %s failed: %s", endpoint, league_key, e)
                return None

        docs = await asyncio.gather(*(one(ep) for ep in LEAGUE_ENDPOINTS))
        return dict(zip(LEAGUE_ENDPOINTS, docs))

    async def fetch_matchup_history(self, league_key: str) -> dict:
        # whole-season schedules for every team; much slower than other endpoints
        return await self.get(f"league/{league_key}/teams/matchups", timeout=self.settings.YAHOO_HISTORY_TIMEOUT)

    async def fetch_players(self, league_key: str, player_keys: List[str]) -> List[PlayerInfo]:
        keys = list(dict.fromkeys(k for k in player_keys if k))
        if not keys:
            return []

        sem = asyncio.Semaphore(self.settings.YAHOO_PLAYER_BATCH_CONCURRENCY)

        async def chunk(batch: List[str]) -> List[PlayerInfo]:
            async with sem:
                try:
                    doc = await self.get(f"league/{league_key}/players;player_keys={','.join(batch)}")
                except CredentialExchangeError:
                    raise
                except YahooApiError as e:
                    logger.warning("[YAHOO] Player batch of %d for %s failed: %s", len(batch), league_key, e)
                    return []
                return parse_players(doc)

        results = await asyncio.gather(*(chunk(b) for b in _chunks(keys, self.settings.YAHOO_PLAYER_BATCH_SIZE)))
        return [p for batch in results for p in batch]

    # ---------- discovery ----------

    async def discover_league_keys(self, game_abbreviation: Optional[str] = None) -> List[DiscoveredLeague]:
        abbrev = self.settings.YAHOO_GAME_CODE if game_abbreviation is None else game_abbreviation
        return await discover_leagues(self, abbrev, self.settings.YAHOO_ANCHOR_LEAGUE_KEY)

    async def validate(self) -> Dict[str, Any]:
        leagues = await self.discover_league_keys()
        return {
            "valid": True,
            "leagues": len(leagues),
            "league_keys": [lg.league_key for lg in leagues],
        }
