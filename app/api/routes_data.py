# app/api/routes_data.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.deps import get_cache, get_shared_data
from app.schemas.data import MatchupRow, Overview, TeamRow
from app.services.cache import CoalescingCache, DegradedRead, cache_route, generate_cache_key
from app.services.shared_data import SharedLeagueData

router = APIRouter(prefix="/data", tags=["data"])

# every key under "data:" is dropped after a sync persists anything;
# answers built from stale or fallback rows raise DegradedRead and are never stored
_cache_of = lambda *args, **kwargs: kwargs["cache"]  # noqa: E731


# ---------------- TEAMS ----------------
@router.get("/teams", response_model=List[TeamRow])
@cache_route(
    cache_getter=_cache_of,
    key_builder=lambda *args, **kwargs: generate_cache_key("data:/teams", {"season": kwargs.get("season")}),
)
async def all_teams(
    season: Optional[str] = Query(default=None, description="Only this season, e.g. 2024"),
    shared: SharedLeagueData = Depends(get_shared_data),
    cache: CoalescingCache = Depends(get_cache),
    response: Response = None,
):
    """Every team-season row, newest season first."""
    try:
        return _teams_for(await shared.get_all_teams(strict=True), season)
    except DegradedRead as e:
        raise e.with_data(_teams_for(e.data, season))


def _teams_for(teams: List[TeamRow], season: Optional[str]) -> List[TeamRow]:
    if season:
        teams = [t for t in teams if t.season == season]
    return teams


# ---------------- MATCHUPS ----------------
@router.get("/matchups", response_model=List[MatchupRow])
@cache_route(
    cache_getter=_cache_of,
    key_builder=lambda *args, **kwargs: generate_cache_key(
        "data:/matchups", {"season": kwargs.get("season"), "week": kwargs.get("week")}
    ),
)
async def all_matchups(
    season: Optional[str] = Query(default=None),
    week: Optional[int] = Query(default=None, ge=1),
    shared: SharedLeagueData = Depends(get_shared_data),
    cache: CoalescingCache = Depends(get_cache),
    response: Response = None,
):
    try:
        return _matchups_for(await shared.get_all_matchups(strict=True), season, week)
    except DegradedRead as e:
        raise e.with_data(_matchups_for(e.data, season, week))


def _matchups_for(matchups: List[MatchupRow], season: Optional[str], week: Optional[int]) -> List[MatchupRow]:
    if season:
        matchups = [m for m in matchups if m.season == season]
    if week is not None:
        matchups = [m for m in matchups if m.week == week]
    return matchups


# ---------------- OVERVIEW ----------------
@router.get("/overview", response_model=Overview)
@cache_route(
    cache_getter=_cache_of,
    key_builder=lambda *args, **kwargs: "data:/overview",
)
async def overview(
    shared: SharedLeagueData = Depends(get_shared_data),
    cache: CoalescingCache = Depends(get_cache),
    response: Response = None,
):
    return await shared.overview(strict=True)
