"""
Yahoo Fantasy API access: credential lifecycle, the retrying client,
league discovery and the JSON -> record parsers.
"""

from .oauth import Credential, CredentialManager, exchange_refresh_token
from .client import LEAGUE_ENDPOINTS, YahooApiClient
from .leagues import discover_leagues, trace_renewal_chain
from .parsers import (
    league_key_from_renew,
    parse_draft_results,
    parse_game_leagues,
    parse_games,
    parse_league_meta,
    parse_league_settings,
    parse_matchup_history,
    parse_players,
    parse_scoreboard_week,
    parse_standings,
    parse_teams,
    parse_transactions,
    team_number,
)

__all__ = [
    "Credential",
    "CredentialManager",
    "exchange_refresh_token",
    "LEAGUE_ENDPOINTS",
    "YahooApiClient",
    "discover_leagues",
    "trace_renewal_chain",
    "league_key_from_renew",
    "parse_draft_results",
    "parse_game_leagues",
    "parse_games",
    "parse_league_meta",
    "parse_league_settings",
    "parse_matchup_history",
    "parse_players",
    "parse_scoreboard_week",
    "parse_standings",
    "parse_teams",
    "parse_transactions",
    "team_number",
]
