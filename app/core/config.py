from __future__ import annotations

import json
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


EnvType = Literal["local", "dev", "staging", "prod"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_NAME: str = "YahooFantasySync"
    APP_ENV: EnvType = "local"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # DB
    DATABASE_URL: str = "sqlite:///./app.db"

    # Yahoo credentials (long-lived refresh secret, exchanged for bearer tokens)
    YAHOO_CLIENT_ID: Optional[str] = None
    YAHOO_CLIENT_SECRET: Optional[str] = None
    YAHOO_REFRESH_TOKEN: Optional[str] = None
    YAHOO_TOKEN_URL: str = "https://api.login.yahoo.com/oauth2/get_token"
    YAHOO_API_BASE: str = "https://fantasysports.yahooapis.com/fantasy/v2"

    # League discovery
    YAHOO_GAME_CODE: str = Field(default="nhl", description="Game abbreviation filter, empty for all games")
    YAHOO_ANCHOR_LEAGUE_KEY: Optional[str] = Field(
        default=None,
        description="Known league key the renewal chain is traced from, e.g. 427.l.12345",
    )

    # Request behaviour
    YAHOO_REQUEST_TIMEOUT: float = 20.0
    YAHOO_HISTORY_TIMEOUT: float = 90.0  # league/{key}/teams/matchups returns whole seasons
    YAHOO_MAX_RETRIES: int = 3
    YAHOO_BACKOFF_SECONDS: float = 4.0
    YAHOO_PLAYER_BATCH_SIZE: int = 25
    YAHOO_PLAYER_BATCH_CONCURRENCY: int = 3

    # Sync
    SYNC_FRESHNESS_HOURS: float = 24.0
    SYNC_LEAGUE_CONCURRENCY: int = 3
    SYNC_BATCH_DELAY_SECONDS: float = 2.0
    SYNC_FORCE_REFRESH: bool = False
    SYNC_SEASONS: str | List[str] = Field(
        default="[]",
        description='JSON list or comma-separated seasons, e.g. ["2024","2023"]',
    )

    # Read-path cache
    CACHE_TTL_SECONDS: int = 30 * 60

    # Scheduled sync
    CRON_SECRET: Optional[str] = None

    # CORS for the analytics front-end
    CORS_ORIGINS: str | List[str] = Field(default="[]", description="JSON list or comma-separated origins")

    @property
    def IS_LOCAL(self) -> bool:
        return self.APP_ENV == "local"

    # ---------- Validators ----------

    @field_validator("SYNC_SEASONS", "CORS_ORIGINS")
    @classmethod
    def _parse_list(cls, v):
        # Accept JSON list or comma-separated string
        if isinstance(v, list):
            return [str(s).strip() for s in v if str(s).strip()]
        s = str(v).strip()
        if not s:
            return []
        try:
            parsed = json.loads(s)
            if isinstance(parsed, list):
                return [str(p).strip() for p in parsed if str(p).strip()]
        except ValueError:
            pass
        return [p.strip() for p in s.split(",") if p.strip()]

    @field_validator("SYNC_LEAGUE_CONCURRENCY", "YAHOO_PLAYER_BATCH_CONCURRENCY", "YAHOO_PLAYER_BATCH_SIZE")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    # ---------- Runtime validations ----------

    def validate_at_startup(self) -> None:
        """Fail fast with clear messages for misconfigurations."""
        problems: list[str] = []

        # Yahoo credentials required outside local
        if not self.IS_LOCAL:
            if not self.YAHOO_CLIENT_ID:
                problems.append("YAHOO_CLIENT_ID is required in non-local env.")
            if not self.YAHOO_CLIENT_SECRET:
                problems.append("YAHOO_CLIENT_SECRET is required in non-local env.")
            if not self.YAHOO_REFRESH_TOKEN:
                problems.append("YAHOO_REFRESH_TOKEN is required in non-local env.")
            if not self.CRON_SECRET:
                problems.append("CRON_SECRET is required in non-local env.")

        if self.YAHOO_MAX_RETRIES < 0:
            problems.append("YAHOO_MAX_RETRIES must be >= 0.")

        if problems:
            # Collapse to one helpful error line
            raise RuntimeError("Config validation failed: " + " ".join(problems))


settings = Settings()
