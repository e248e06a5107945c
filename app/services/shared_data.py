from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.db.models import League, Matchup, Team
from app.schemas.data import MatchupRow, Overview, TeamRow
from app.services.cache import CoalescingCache, DegradedRead

logger = logging.getLogger(__name__)

TEAMS_KEY = "data:teams"
MATCHUPS_KEY = "data:matchups"
DATA_PATTERN = "data:*"


class SharedLeagueData:
    """
    Cache-fronted bulk reads for the analytics layer. Never raises:
    on a failed load it serves the stale copy, or [] when there is none.
    With `strict=True` that degraded answer comes wrapped in DegradedRead
    instead, so the route cache does not store it as fresh.
    """

    def __init__(self, cache: CoalescingCache, session_factory: sessionmaker):
        self.cache = cache
        self.session_factory = session_factory

    # ---------- loaders (run in a worker thread) ----------

    def _load_teams(self) -> List[TeamRow]:
        with self.session_factory() as db:
            stmt = (
                select(Team, League.num_teams, League.is_finished)
                .join(League, League.league_key == Team.league_key, isouter=True)
                .order_by(Team.season.desc(), Team.rank.asc())
            )
            out: List[TeamRow] = []
            for team, num_teams, is_finished in db.execute(stmt).all():
                out.append(TeamRow(
                    team_key=team.team_key,
                    season=team.season,
                    league_key=team.league_key,
                    name=team.name,
                    manager_nickname=team.manager_nickname,
                    rank=team.rank,
                    wins=team.wins,
                    losses=team.losses,
                    ties=team.ties,
                    percentage=team.percentage,
                    points_for=team.points_for,
                    points_against=team.points_against,
                    number_of_moves=team.number_of_moves,
                    number_of_trades=team.number_of_trades,
                    num_teams=num_teams,
                    is_finished=bool(is_finished),
                ))
        logger.info("[CACHE] Loaded %d teams from the database", len(out))
        return out

    def _load_matchups(self) -> List[MatchupRow]:
        with self.session_factory() as db:
            names: Dict[Tuple[str, str], str] = {
                (k, s): n for k, s, n in db.execute(select(Team.team_key, Team.season, Team.manager_nickname)).all()
            }
            rows = db.scalars(select(Matchup).order_by(Matchup.season.desc(), Matchup.week.asc())).all()
            out = [
                MatchupRow(
                    matchup_id=m.matchup_id,
                    season=m.season,
                    week=m.week,
                    team1_key=m.team1_key,
                    team2_key=m.team2_key,
                    team1_manager=names.get((m.team1_key, m.season)),
                    team2_manager=names.get((m.team2_key, m.season)),
                    team1_points=m.team1_points,
                    team2_points=m.team2_points,
                    team1_stats=m.team1_stats,
                    team2_stats=m.team2_stats,
                    winner_team_key=m.winner_team_key,
                    is_playoffs=m.is_playoffs,
                )
                for m in rows
            ]
        logger.info("[CACHE] Loaded %d matchups from the database", len(out))
        return out

    # ---------- public ----------

    async def get_all_teams(self, strict: bool = False) -> List[TeamRow]:
        return await self.cache.get_or_fetch(
            TEAMS_KEY, lambda: asyncio.to_thread(self._load_teams), fallback=[], raise_degraded=strict,
        )

    async def get_all_matchups(self, strict: bool = False) -> List[MatchupRow]:
        return await self.cache.get_or_fetch(
            MATCHUPS_KEY, lambda: asyncio.to_thread(self._load_matchups), fallback=[], raise_degraded=strict,
        )

    async def overview(self, strict: bool = False) -> Overview:
        degraded: Optional[DegradedRead] = None
        try:
            teams = await self.get_all_teams(strict=strict)
        except DegradedRead as e:
            teams, degraded = e.data, e
        try:
            matchups = await self.get_all_matchups(strict=strict)
        except DegradedRead as e:
            matchups, degraded = e.data, degraded or e

        seasons = sorted({t.season for t in teams}, reverse=True)
        result = Overview(
            total_seasons=len(seasons),
            total_teams=len(teams),
            total_matchups=len(matchups),
            current_season=seasons[0] if seasons else "",
        )
        if degraded is not None:
            raise degraded.with_data(result)
        return result

    def clear(self) -> int:
        return self.cache.invalidate_pattern(DATA_PATTERN)
