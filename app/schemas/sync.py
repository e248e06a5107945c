from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from app.schemas.yahoo import LeagueIdentity


class SyncOptions(BaseModel):
    mode: Literal["full", "single", "list"] = "full"
    league_key: Optional[str] = None
    league_keys: List[str] = Field(default_factory=list)
    season: Optional[str] = None
    seasons: List[str] = Field(default_factory=list)
    force_refresh: Optional[bool] = None  # None -> SYNC_FORCE_REFRESH


class LeagueState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    PERSISTED = "persisted"
    FAILED = "failed"


class LeagueOutcome(BaseModel):
    identity: LeagueIdentity
    state: LeagueState = LeagueState.PENDING
    teams: int = 0
    matchups: int = 0
    draft_results: int = 0
    transactions: int = 0
    error: Optional[str] = None


class SyncResult(BaseModel):
    leagues_processed: int = 0
    leagues_skipped: int = 0
    teams_processed: int = 0
    matchups_processed: int = 0
    draft_results_processed: int = 0
    transactions_processed: int = 0
    errors: List[str] = Field(default_factory=list)
    duration_ms: int = 0

    def add(self, outcome: LeagueOutcome) -> None:
        if outcome.state == LeagueState.PERSISTED:
            self.leagues_processed += 1
            self.teams_processed += outcome.teams
            self.matchups_processed += outcome.matchups
            self.draft_results_processed += outcome.draft_results
            self.transactions_processed += outcome.transactions
        elif outcome.state == LeagueState.SKIPPED:
            self.leagues_skipped += 1
        elif outcome.error:
            self.errors.append(outcome.error)
