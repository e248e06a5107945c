from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Dict, List, Optional

from app.schemas.yahoo import DiscoveredLeague
from app.services.yahoo.parsers import league_key_from_renew, parse_game_leagues, parse_games

if TYPE_CHECKING:
    from app.services.yahoo.client import YahooApiClient

logger = logging.getLogger(__name__)


def trace_renewal_chain(leagues: List[DiscoveredLeague], anchor_key: str) -> List[DiscoveredLeague]:
    """
    Keep only the leagues reachable from `anchor_key` through renew/renewed links.
    A user can belong to many leagues of the same game; the chain is what makes
    one league's history across seasons.
    """
    by_key: Dict[str, DiscoveredLeague] = {lg.league_key: lg for lg in leagues}
    if anchor_key not in by_key:
        logger.error("[YAHOO] Anchor league %s not among %d discovered leagues", anchor_key, len(by_key))
        return []

    seen = {anchor_key}
    queue = deque([anchor_key])
    while queue:
        lg = by_key[queue.popleft()]
        for link in (lg.renew, lg.renewed):
            key = league_key_from_renew(link)
            if key and key in by_key and key not in seen:
                seen.add(key)
                queue.append(key)

    chain = [lg for lg in leagues if lg.league_key in seen]
    logger.info("[YAHOO] Renewal chain from %s: %s", anchor_key, [lg.league_key for lg in chain])
    return chain


async def discover_leagues(
    client: "YahooApiClient",
    game_abbreviation: Optional[str] = None,
    anchor_key: Optional[str] = None,
) -> List[DiscoveredLeague]:
    """
    users;use_login=1/games -> one users;use_login=1/games;game_keys=K/leagues per game,
    filtered to `game_abbreviation` (empty for all games), then traced from `anchor_key`.
    """
    games = parse_games(await client.get("users;use_login=1/games"))
    if game_abbreviation:
        games = [g for g in games if (g.code or "").lower() == game_abbreviation.lower()]

    found: List[DiscoveredLeague] = []
    for game in games:
        payload = await client.get(f"users;use_login=1/games;game_keys={game.game_key}/leagues")
        for lg in parse_game_leagues(payload):
            if game_abbreviation and lg.game_abbreviation and lg.game_abbreviation.lower() != game_abbreviation.lower():
                continue
            found.append(lg)

    logger.info("[YAHOO] Discovered %d leagues across %d games", len(found), len(games))

    if not anchor_key:
        logger.warning("[YAHOO] No anchor league configured; returning every discovered league")
        return found
    return trace_renewal_chain(found, anchor_key)
