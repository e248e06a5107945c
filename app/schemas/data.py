from typing import Any, Dict, Optional
from pydantic import BaseModel


class TeamRow(BaseModel):
    team_key: str
    season: str
    league_key: str
    name: Optional[str] = None
    manager_nickname: Optional[str] = None
    rank: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    ties: Optional[int] = None
    percentage: Optional[float] = None
    points_for: Optional[float] = None
    points_against: Optional[float] = None
    number_of_moves: Optional[int] = None
    number_of_trades: Optional[int] = None
    num_teams: Optional[int] = None
    is_finished: bool = False


class MatchupRow(BaseModel):
    matchup_id: int
    season: str
    week: int
    team1_key: str
    team2_key: str
    team1_manager: Optional[str] = None
    team2_manager: Optional[str] = None
    team1_points: Optional[float] = None
    team2_points: Optional[float] = None
    team1_stats: Optional[Dict[str, Any]] = None
    team2_stats: Optional[Dict[str, Any]] = None
    winner_team_key: Optional[str] = None
    is_playoffs: bool = False


class Overview(BaseModel):
    total_seasons: int
    total_teams: int
    total_matchups: int
    current_season: str
