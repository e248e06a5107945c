from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from app.core.config import Settings, settings as default_settings
from app.core.errors import CredentialExchangeError

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: Optional[float] = None  # epoch seconds


def exchange_refresh_token(
    refresh_token: str,
    *,
    client_id: str,
    client_secret: str,
    token_url: str,
    session: Optional[requests.Session] = None,
    timeout: float = 20.0,
) -> Credential:
    """
    Trade the long-lived refresh secret for a fresh bearer token.
    Yahoo expects HTTP Basic auth with the app's client id/secret.
    """
    data = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "redirect_uri": "oob",
    }
    http = session or requests
    try:
        r = http.post(token_url, data=data, auth=(client_id, client_secret), timeout=timeout)
    except requests.RequestException as e:
        raise CredentialExchangeError(f"Yahoo token exchange failed: {e}", token_url) from e

    if r.status_code != 200:
        raise CredentialExchangeError(f"Yahoo token exchange failed: {r.status_code} {r.text[:500]}", token_url)

    try:
        body = r.json()
    except ValueError as e:
        raise CredentialExchangeError("Yahoo token endpoint returned non-JSON body", token_url) from e

    access = body.get("access_token")
    if not access:
        raise CredentialExchangeError("Yahoo token endpoint returned no access_token", token_url)

    expires_in = body.get("expires_in")
    return Credential(
        access_token=access,
        # Yahoo usually echoes the refresh token back; keep the old one if not
        refresh_token=body.get("refresh_token") or refresh_token,
        token_type=body.get("token_type") or "bearer",
        expires_at=(time.time() + float(expires_in)) if expires_in else None,
    )


class CredentialManager:
    """Owns the single process-wide credential. Only refresh() replaces it."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or default_settings
        self.session = session
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def access_token(self) -> Optional[str]:
        return self._credential.access_token if self._credential else None

    def _exchange(self) -> Credential:
        s = self.settings
        refresh = self._credential.refresh_token if self._credential else s.YAHOO_REFRESH_TOKEN
        if not (s.YAHOO_CLIENT_ID and s.YAHOO_CLIENT_SECRET and refresh):
            raise CredentialExchangeError(
                "YAHOO_CLIENT_ID, YAHOO_CLIENT_SECRET and YAHOO_REFRESH_TOKEN must be set",
                s.YAHOO_TOKEN_URL,
            )
        return exchange_refresh_token(
            refresh,
            client_id=s.YAHOO_CLIENT_ID,
            client_secret=s.YAHOO_CLIENT_SECRET,
            token_url=s.YAHOO_TOKEN_URL,
            session=self.session,
            timeout=s.YAHOO_REQUEST_TIMEOUT,
        )

    async def refresh(self, stale_token: Optional[str] = None) -> Credential:
        """
        Exchange for a new credential. Callers pass the token that was rejected;
        if another caller already replaced it while we waited on the lock,
        the newer credential is returned without a second exchange.
        """
        async with self._lock:
            current = self._credential
            if current is not None and stale_token is not None and current.access_token != stale_token:
                return current
            logger.info("[YAHOO] Exchanging refresh token for a new access token")
            self._credential = await asyncio.to_thread(self._exchange)
            return self._credential

    async def get(self) -> Credential:
        if self._credential is None:
            async with self._lock:
                if self._credential is None:
                    logger.info("[YAHOO] Initial token exchange")
                    self._credential = await asyncio.to_thread(self._exchange)
        return self._credential
