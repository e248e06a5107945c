"""Shared pytest fixtures for the Yahoo sync service tests."""
import sys
from pathlib import Path
from typing import Dict, Generator, List, Optional, Set
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm import Session, sessionmaker

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import Settings
from app.core.errors import ExhaustedRetries, TransientNetwork
from app.db.engine import build_engine, build_sessionmaker
from app.db.models import Base
from app.schemas.yahoo import DiscoveredLeague
from app.services.yahoo.parsers import parse_players
import payloads


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        APP_ENV="local",
        YAHOO_CLIENT_ID="client-id",
        YAHOO_CLIENT_SECRET="client-secret",
        YAHOO_REFRESH_TOKEN="refresh-secret",
        YAHOO_MAX_RETRIES=3,
        YAHOO_BACKOFF_SECONDS=4.0,
        YAHOO_ANCHOR_LEAGUE_KEY=None,
        SYNC_SEASONS="[]",
        SYNC_LEAGUE_CONCURRENCY=3,
        SYNC_BATCH_DELAY_SECONDS=2.0,
        SYNC_FRESHNESS_HOURS=24.0,
        SYNC_FORCE_REFRESH=False,
    )


@pytest.fixture(scope="function")
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Fresh SQLite file database per test; several connections see the same data."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_sessionmaker(engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


class FakeYahooClient:
    """
    In-memory stand-in for YahooApiClient serving canned league documents.

    Each league gets 4 teams, a 3-week round robin, 4 draft picks and 2
    transactions unless overridden.
    """

    def __init__(self):
        self.leagues: Dict[str, DiscoveredLeague] = {}
        self.bundles: Dict[str, Dict[str, Optional[dict]]] = {}
        self.histories: Dict[str, dict] = {}
        self.failing_history: Set[str] = set()
        self.discovery_error: Optional[Exception] = None
        self.bundle_calls: List[str] = []
        self.ensure_initialized = AsyncMock()

    def add_league(
        self,
        league_key: str,
        season: str = "2024",
        is_finished: int = 0,
        teams: int = 4,
        weeks: int = 3,
        metadata: bool = True,
    ) -> None:
        team_keys = [f"{league_key}.t.{i}" for i in range(1, teams + 1)]
        self.leagues[league_key] = DiscoveredLeague(
            league_key=league_key, season=season, game_code=league_key.split(".l.")[0], game_abbreviation="nhl",
        )
        self.bundles[league_key] = {
            "metadata": payloads.metadata_doc(league_key, season=season, is_finished=is_finished, num_teams=teams) if metadata else None,
            "settings": payloads.settings_doc(league_key),
            "standings": payloads.standings_doc(
                league_key, [(k, i + 1, 10 - i, i, 0) for i, k in enumerate(team_keys)]
            ),
            "scoreboard": payloads.scoreboard_doc(league_key),
            "teams": payloads.teams_doc(league_key, team_keys),
            "draftresults": payloads.draft_doc(
                league_key, [(i + 1, k, f"427.p.{500 + i}") for i, k in enumerate(team_keys)]
            ),
            "transactions": payloads.transactions_doc(league_key),
        }
        self.histories[league_key] = payloads.history_doc(league_key, payloads.round_robin(team_keys, weeks))

    async def discover_league_keys(self, game_abbreviation=None) -> List[DiscoveredLeague]:
        if self.discovery_error is not None:
            raise self.discovery_error
        return list(self.leagues.values())

    async def fetch_league_bundle(self, league_key: str) -> Dict[str, Optional[dict]]:
        self.bundle_calls.append(league_key)
        return self.bundles[league_key]

    async def fetch_matchup_history(self, league_key: str) -> dict:
        if league_key in self.failing_history:
            url = f"https://fantasysports.yahooapis.com/fantasy/v2/league/{league_key}/teams/matchups"
            raise ExhaustedRetries(url, 4, TransientNetwork("ReadTimeout", url))
        return self.histories[league_key]

    async def fetch_players(self, league_key: str, player_keys: List[str]):
        return parse_players(payloads.players_doc(league_key, player_keys))


@pytest.fixture
def fake_yahoo() -> FakeYahooClient:
    return FakeYahooClient()
