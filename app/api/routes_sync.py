# app/api/routes_sync.py
from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from app.core.errors import CredentialExchangeError
from app.deps import get_shared_data, get_sync_service, require_cron_secret
from app.schemas.sync import SyncOptions, SyncResult
from app.services.shared_data import SharedLeagueData
from app.services.sync import YahooSyncService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


async def _run(options: SyncOptions, service: YahooSyncService, shared: SharedLeagueData) -> SyncResult:
    try:
        result = await service.sync(options)
    except HTTPException as he:
        raise he
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    except CredentialExchangeError as ce:
        logger.error("[SYNC] Credential exchange failed: %s", ce)
        raise HTTPException(status_code=502, detail="Yahoo credential exchange failed")
    except Exception:
        logger.exception("[SYNC] Sync run crashed")
        raise HTTPException(status_code=500, detail="Sync failed")

    if result.leagues_processed:
        shared.clear()
    return result


@router.post("/sync", response_model=SyncResult)
async def run_sync(
    options: SyncOptions,
    service: YahooSyncService = Depends(get_sync_service),
    shared: SharedLeagueData = Depends(get_shared_data),
):
    """
    Runs a sync. Body examples:
      {"mode": "full"}
      {"mode": "single", "league_key": "427.l.12345", "force_refresh": true}
      {"mode": "list", "league_keys": ["427.l.12345", "419.l.6789"]}
    """
    return await _run(options, service, shared)


@router.get("/cron/sync", response_model=SyncResult, dependencies=[Depends(require_cron_secret)])
async def cron_sync(
    service: YahooSyncService = Depends(get_sync_service),
    shared: SharedLeagueData = Depends(get_shared_data),
):
    """Scheduled full sync of the current season; fresh leagues are skipped."""
    season = str(date.today().year)
    logger.info("[SYNC] Cron sync for season %s", season)
    return await _run(SyncOptions(mode="full", season=season, force_refresh=False), service, shared)
