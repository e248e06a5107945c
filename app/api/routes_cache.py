# app/api/routes_cache.py
from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.deps import get_cache, get_shared_data
from app.services.cache import CoalescingCache
from app.services.shared_data import SharedLeagueData

router = APIRouter(tags=["cache"])


@router.get("/cache/health")
def cache_health(cache: CoalescingCache = Depends(get_cache)) -> Dict[str, Any]:
    stats = cache.stats()
    return {"status": "healthy", "cache": stats}


@router.post("/cache/clear")
def cache_clear(cache: CoalescingCache = Depends(get_cache)) -> Dict[str, Any]:
    cleared = cache.clear()
    return {"success": True, "cleared": cleared}


@router.post("/cache/cleanup")
def cache_cleanup(cache: CoalescingCache = Depends(get_cache)) -> Dict[str, Any]:
    """Sweeps expired entries (and with them the stale fallbacks)."""
    return {"success": True, "removed": cache.cleanup()}


@router.get("/debug/cache")
async def debug_cache(
    cache: CoalescingCache = Depends(get_cache),
    shared: SharedLeagueData = Depends(get_shared_data),
) -> Dict[str, Any]:
    """Cache statistics plus what the shared reads currently return."""
    teams = await shared.get_all_teams()
    matchups = await shared.get_all_matchups()
    return {
        "cache": cache.stats(),
        "teams": {"count": len(teams), "sample": [t.model_dump() for t in teams[:2]]},
        "matchups": {"count": len(matchups), "sample": [m.model_dump() for m in matchups[:2]]},
    }
