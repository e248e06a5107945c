#!/usr/bin/env python3
"""
Manual Yahoo Fantasy sync script.

Runs the same sync the /sync route runs, from the command line.
"""
import sys
import asyncio
import argparse
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import settings
from app.core.errors import CredentialExchangeError
from app.core.logging import configure_logging
from app.db.engine import SessionLocal
from app.db.session import init_db
from app.schemas.sync import SyncOptions
from app.services.persistence import BatchPersistence
from app.services.sync import YahooSyncService
from app.services.yahoo.client import YahooApiClient


def build_options(args: argparse.Namespace) -> SyncOptions:
    leagues = args.league or []
    if args.mode == "single":
        return SyncOptions(mode="single", league_key=leagues[0] if leagues else None,
                           season=args.season, force_refresh=args.force)
    if args.mode == "list":
        return SyncOptions(mode="list", league_keys=leagues, season=args.season, force_refresh=args.force)
    return SyncOptions(mode="full", season=args.season, force_refresh=args.force)


async def run(options: SyncOptions) -> int:
    init_db()
    client = YahooApiClient(settings)
    service = YahooSyncService(client, BatchPersistence(SessionLocal), settings=settings)

    print(f"🔄 Running {options.mode} sync...")
    try:
        result = await service.sync(options)
    except ValueError as e:
        print(f"❌ {e}")
        return 2
    except CredentialExchangeError as e:
        print(f"❌ Yahoo credential exchange failed: {e}")
        return 1
    finally:
        client.session.close()

    print(f"✅ Sync finished in {result.duration_ms}ms")
    print(f"   Leagues processed: {result.leagues_processed}")
    print(f"   Leagues skipped:   {result.leagues_skipped}")
    print(f"   Teams:             {result.teams_processed}")
    print(f"   Matchups:          {result.matchups_processed}")
    print(f"   Draft picks:       {result.draft_results_processed}")
    print(f"   Transactions:      {result.transactions_processed}")
    for err in result.errors:
        print(f"   ⚠️  {err}")
    return 1 if result.errors else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Sync Yahoo Fantasy leagues into the database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync every league in the renewal chain that is stale
  python scripts/sync_yahoo.py

  # Only the 2024 season, ignoring freshness
  python scripts/sync_yahoo.py --season 2024 --force

  # One league
  python scripts/sync_yahoo.py --mode single --league 427.l.12345
        """
    )
    parser.add_argument(
        '--mode',
        choices=['full', 'single', 'list'],
        default='full',
        help='full = discovered leagues, single/list = the --league keys given (default: full)'
    )
    parser.add_argument(
        '--league',
        action='append',
        metavar='KEY',
        help='League key, e.g. 427.l.12345 (repeat for --mode list)'
    )
    parser.add_argument(
        '--season',
        type=str,
        default=None,
        help='Season filter for full mode (e.g., 2024). Defaults to SYNC_SEASONS.'
    )
    parser.add_argument(
        '--force',
        action='store_true',
        default=None,
        help='Sync even leagues that are still fresh'
    )
    parser.add_argument(
        '--log-level',
        default=settings.LOG_LEVEL,
        help='Logging level (default: LOG_LEVEL from config)'
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_output=settings.LOG_JSON)
    return asyncio.run(run(build_options(args)))


if __name__ == "__main__":
    sys.exit(main())
