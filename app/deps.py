from typing import Optional

from fastapi import Header, HTTPException, Request, status

from app.core.config import settings
from app.services.cache import CoalescingCache
from app.services.shared_data import SharedLeagueData
from app.services.sync import YahooSyncService
from app.services.yahoo.client import YahooApiClient


def get_cache(request: Request) -> CoalescingCache:
    return request.app.state.cache


def get_shared_data(request: Request) -> SharedLeagueData:
    return request.app.state.shared_data


def get_yahoo_client(request: Request) -> YahooApiClient:
    return request.app.state.yahoo_client


def get_sync_service(request: Request) -> YahooSyncService:
    return request.app.state.sync_service


def require_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Scheduled callers send `Authorization: Bearer <CRON_SECRET>`.
    With no secret configured only local environments are let through.
    """
    secret = settings.CRON_SECRET
    if not secret:
        if settings.IS_LOCAL:
            return
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="CRON_SECRET is not configured")
    if authorization != f"Bearer {secret}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
