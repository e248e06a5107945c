from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class LeagueIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    league_key: str
    season: str = ""
    game_code: str = ""           # Yahoo game key, e.g. "427"
    game_abbreviation: str = ""   # e.g. "nhl"


class GameInfo(BaseModel):
    game_key: str
    code: Optional[str] = None
    name: Optional[str] = None
    season: Optional[str] = None


class DiscoveredLeague(BaseModel):
    league_key: str
    name: Optional[str] = None
    season: str = ""
    game_code: str = ""
    game_abbreviation: str = ""
    renew: Optional[str] = None     # previous season, "<game>_<league_id>"
    renewed: Optional[str] = None   # next season, same form

    def identity(self) -> LeagueIdentity:
        return LeagueIdentity(
            league_key=self.league_key,
            season=self.season,
            game_code=self.game_code,
            game_abbreviation=self.game_abbreviation,
        )


class LeagueMeta(BaseModel):
    league_key: str
    league_id: Optional[int] = None
    name: Optional[str] = None
    url: Optional[str] = None
    logo_url: Optional[str] = None
    season: Optional[str] = None
    game_code: Optional[str] = None
    num_teams: Optional[int] = None
    scoring_type: Optional[str] = None
    league_type: Optional[str] = None
    draft_status: Optional[str] = None
    current_week: Optional[int] = None
    start_week: Optional[int] = None
    end_week: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_finished: bool = False
    renew: Optional[str] = None
    renewed: Optional[str] = None


class LeagueSettings(BaseModel):
    stat_categories: Dict[str, str] = Field(default_factory=dict)  # stat_id -> display name
    playoff_start_week: Optional[int] = None
    num_playoff_teams: Optional[int] = None


class TeamInfo(BaseModel):
    team_key: str
    team_id: Optional[int] = None
    name: Optional[str] = None
    url: Optional[str] = None
    logo_url: Optional[str] = None
    manager_nickname: Optional[str] = None
    manager_guid: Optional[str] = None
    manager_image_url: Optional[str] = None
    manager_is_commissioner: bool = False
    number_of_moves: Optional[int] = None
    number_of_trades: Optional[int] = None
    clinched_playoffs: bool = False


class TeamStanding(BaseModel):
    team_key: str
    rank: Optional[int] = None
    wins: Optional[int] = None
    losses: Optional[int] = None
    ties: Optional[int] = None
    percentage: Optional[float] = None
    points_for: Optional[float] = None
    points_against: Optional[float] = None


class TeamFragment(BaseModel):
    """One team's own view of one week's head-to-head game."""

    league_key: str
    season: str
    week: int
    team_key: str
    points: Optional[float] = None
    stats: Dict[str, Any] = Field(default_factory=dict)
    opponent_key: Optional[str] = None
    winner_team_key: Optional[str] = None
    is_playoffs: bool = False
    is_consolation: bool = False
    is_tied: bool = False
    week_start: Optional[str] = None
    week_end: Optional[str] = None
    status: Optional[str] = None


class CanonicalMatchup(BaseModel):
    matchup_id: int
    season: str
    league_key: str
    week: int
    week_start: Optional[str] = None
    week_end: Optional[str] = None
    status: Optional[str] = None
    team1_key: str
    team2_key: str
    team1_points: Optional[float] = None
    team2_points: Optional[float] = None
    team1_stats: Dict[str, Any] = Field(default_factory=dict)
    team2_stats: Dict[str, Any] = Field(default_factory=dict)
    winner_team_key: Optional[str] = None
    is_playoffs: bool = False
    is_consolation: bool = False
    is_tied: bool = False


class DraftPick(BaseModel):
    pick: int
    round: Optional[int] = None
    team_key: Optional[str] = None
    player_key: Optional[str] = None
    player_name: Optional[str] = None
    player_position: Optional[str] = None
    cost: Optional[int] = None


class PlayerInfo(BaseModel):
    player_key: str
    name: Optional[str] = None
    position: Optional[str] = None


class TransactionPlayer(BaseModel):
    player_key: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None  # add / drop / trade
    source_team_key: Optional[str] = None
    destination_team_key: Optional[str] = None


class TransactionInfo(BaseModel):
    transaction_key: str
    type: Optional[str] = None
    status: Optional[str] = None
    timestamp: Optional[int] = None
    players: List[TransactionPlayer] = Field(default_factory=list)
