"""Yahoo -> database sync orchestration.

One run resolves the target leagues, decides per league whether it is stale,
and for each stale league fetches every endpoint, reconciles the matchup
history and persists in a fixed order:

    League -> Teams -> Standings -> Matchups -> DraftResults -> Transactions -> last_synced_at

Leagues run in small concurrent batches with a pause between batches. A
failing league becomes an error string in the result; it never stops the run.
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.config import Settings, settings as default_settings
from app.core.errors import SyncError, YahooApiError
from app.db.models import DraftResult, League, Matchup, Team, Transaction
from app.schemas.sync import LeagueOutcome, LeagueState, SyncOptions, SyncResult
from app.schemas.yahoo import DraftPick, LeagueIdentity, LeagueMeta, LeagueSettings
from app.services.matchups import MatchupReconciler
from app.services.persistence import BatchPersistence
from app.services.yahoo.client import YahooApiClient
from app.services.yahoo.parsers import (
    parse_draft_results,
    parse_league_meta,
    parse_league_settings,
    parse_matchup_history,
    parse_scoreboard_week,
    parse_standings,
    parse_teams,
    parse_transactions,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class YahooSyncService:
    def __init__(
        self,
        client: YahooApiClient,
        persistence: BatchPersistence,
        reconciler: Optional[MatchupReconciler] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.persistence = persistence
        self.reconciler = reconciler or MatchupReconciler()
        self.settings = settings or default_settings
        self._sleep = sleep
        self._clock = clock

    # ---------- entry point ----------

    async def sync(self, options: Optional[SyncOptions] = None) -> SyncResult:
        options = options or SyncOptions()
        self._validate(options)

        force = self.settings.SYNC_FORCE_REFRESH if options.force_refresh is None else options.force_refresh
        started = time.perf_counter()
        result = SyncResult()

        await self.client.ensure_initialized()

        try:
            targets = await self._resolve_targets(options)
        except YahooApiError as e:
            logger.error("[SYNC] League discovery failed: %s", e)
            result.errors.append(f"League discovery: {e}")
            result.duration_ms = int((time.perf_counter() - started) * 1000)
            return result

        size = self.settings.SYNC_LEAGUE_CONCURRENCY
        batches = [targets[i:i + size] for i in range(0, len(targets), size)]
        logger.info("[SYNC] Starting %s sync of %d leagues in %d batches (force=%s)", options.mode, len(targets), len(batches), force)

        for n, batch in enumerate(batches, start=1):
            outcomes = await asyncio.gather(*(self.sync_league(ident, force) for ident in batch))
            for outcome in outcomes:
                result.add(outcome)
            if n < len(batches) and self.settings.SYNC_BATCH_DELAY_SECONDS > 0:
                await self._sleep(self.settings.SYNC_BATCH_DELAY_SECONDS)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "[SYNC] Done in %dms: %d processed, %d skipped, %d errors",
            result.duration_ms, result.leagues_processed, result.leagues_skipped, len(result.errors),
        )
        return result

    @staticmethod
    def _validate(options: SyncOptions) -> None:
        if options.mode == "single" and not options.league_key:
            raise ValueError("league_key is required for mode=single")
        if options.mode == "list" and not options.league_keys:
            raise ValueError("league_keys is required for mode=list")

    async def _resolve_targets(self, options: SyncOptions) -> List[LeagueIdentity]:
        if options.mode == "single":
            return [LeagueIdentity(league_key=options.league_key, season=options.season or "")]
        if options.mode == "list":
            keys = list(dict.fromkeys(options.league_keys))
            return [LeagueIdentity(league_key=k, season=options.season or "") for k in keys]

        discovered = await self.client.discover_league_keys()
        seasons = options.seasons or ([options.season] if options.season else []) or self.settings.SYNC_SEASONS
        if seasons:
            discovered = [lg for lg in discovered if lg.season in seasons]
        return [lg.identity() for lg in discovered]

    # ---------- staleness ----------

    def needs_sync(self, league_key: str, force: bool = False) -> bool:
        if force:
            return True
        row = self.persistence.first(League, {"league_key": league_key})
        if row is None:
            return True

        # a finished season never changes once its children are stored
        if row.is_finished:
            teams = self.persistence.count(Team, {"league_key": league_key})
            matchups = self.persistence.count(Matchup, {"league_key": league_key})
            if teams > 0 and matchups > 0:
                return False

        last = row.last_synced_at
        if last is None:
            return True
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return self._clock() - last > timedelta(hours=self.settings.SYNC_FRESHNESS_HOURS)

    # ---------- one league ----------

    def _transition(self, outcome: LeagueOutcome, state: LeagueState) -> None:
        logger.info("[SYNC] %s: %s -> %s", outcome.identity.league_key, outcome.state.value, state.value)
        outcome.state = state

    async def sync_league(self, identity: LeagueIdentity, force: bool = False) -> LeagueOutcome:
        outcome = LeagueOutcome(identity=identity)
        key = identity.league_key
        try:
            if not await asyncio.to_thread(self.needs_sync, key, force):
                self._transition(outcome, LeagueState.SKIPPED)
                return outcome

            self._transition(outcome, LeagueState.FETCHING)
            bundle = await self.client.fetch_league_bundle(key)
            meta = parse_league_meta(bundle.get("metadata"))
            if meta is None:
                raise SyncError("metadata endpoint returned no league")

            season = meta.season or identity.season
            outcome.identity = identity.model_copy(update={"season": season})

            history = await self.client.fetch_matchup_history(key)
            picks = await self._enrich_draft(key, parse_draft_results(bundle.get("draftresults")))

            self._transition(outcome, LeagueState.RECONCILING)
            reconciled = self.reconciler.reconcile(parse_matchup_history(history, key, season))

            # blocking DB work runs in a worker thread, one phase at a time
            await asyncio.to_thread(
                self._persist_league, meta, parse_league_settings(bundle.get("settings")), identity, season,
                parse_scoreboard_week(bundle.get("scoreboard")),
            )
            outcome.teams = await asyncio.to_thread(self._persist_teams, bundle, key, season)
            outcome.matchups = await asyncio.to_thread(
                self.persistence.upsert,
                Matchup, [m.model_dump() for m in reconciled.matchups], ("league_key", "matchup_id", "season"),
            )
            scope = {"league_key": key, "season": season}
            outcome.draft_results = await asyncio.to_thread(
                self.persistence.replace_scope,
                DraftResult, scope, [{**p.model_dump(), **scope} for p in picks],
            )
            outcome.transactions = await asyncio.to_thread(
                self.persistence.replace_scope,
                Transaction, scope,
                [
                    {**tx.model_dump(exclude={"players"}), **scope, "players": [p.model_dump() for p in tx.players]}
                    for tx in parse_transactions(bundle.get("transactions"))
                ],
            )
            await asyncio.to_thread(
                self.persistence.update_where, League, {"league_key": key}, {"last_synced_at": self._clock()}
            )

            self._transition(outcome, LeagueState.PERSISTED)
            logger.info(
                "[SYNC] %s (%s): %d teams, %d matchups (%d dropped), %d picks, %d transactions",
                key, season, outcome.teams, outcome.matchups, reconciled.dropped,
                outcome.draft_results, outcome.transactions,
            )
        except Exception as e:
            logger.exception("[SYNC] League %s failed", key)
            outcome.error = f"League {key}: {e}"
            self._transition(outcome, LeagueState.FAILED)
        return outcome

    async def _enrich_draft(self, league_key: str, picks: List[DraftPick]) -> List[DraftPick]:
        if not picks:
            return picks
        players = await self.client.fetch_players(league_key, [p.player_key for p in picks if p.player_key])
        by_key = {p.player_key: p for p in players}
        out: List[DraftPick] = []
        for pick in picks:
            info = by_key.get(pick.player_key)
            if info is not None:
                pick = pick.model_copy(update={"player_name": info.name, "player_position": info.position})
            out.append(pick)
        return out

    def _persist_league(
        self,
        meta: LeagueMeta,
        league_settings: LeagueSettings,
        identity: LeagueIdentity,
        season: str,
        scoreboard_week: Optional[int],
    ) -> None:
        record = meta.model_dump()
        record.update(
            season=season,
            game_code=meta.game_code or identity.game_abbreviation or identity.game_code or None,
            current_week=meta.current_week or scoreboard_week,
            stat_categories=league_settings.stat_categories,
            playoff_start_week=league_settings.playoff_start_week,
            num_playoff_teams=league_settings.num_playoff_teams,
        )
        self.persistence.upsert(League, [record], ("league_key",))

    def _persist_teams(self, bundle: Dict[str, Optional[dict]], league_key: str, season: str) -> int:
        teams = {t.team_key: t for t in parse_teams(bundle.get("standings"))}
        # the teams endpoint carries the fuller manager block
        teams.update({t.team_key: t for t in parse_teams(bundle.get("teams"))})
        self.persistence.upsert(
            Team,
            [{**t.model_dump(), "season": season, "league_key": league_key} for t in teams.values()],
            ("team_key", "season"),
        )

        standings = parse_standings(bundle.get("standings"))
        self.persistence.upsert(
            Team,
            [{**s.model_dump(), "season": season, "league_key": league_key} for s in standings],
            ("team_key", "season"),
        )
        return len(teams.keys() | {s.team_key for s in standings})
