from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from app.schemas.yahoo import CanonicalMatchup, TeamFragment
from app.services.yahoo.parsers import team_number

logger = logging.getLogger(__name__)


def matchup_id(week: int, team_a: str, team_b: str) -> int:
    """
    Composite id for one week's pairing: week*10000 + low*100 + high,
    where low/high are the teams' numeric suffixes in ascending order.
    Same value whichever side is processed first.
    """
    a, b = team_number(team_a), team_number(team_b)
    if a is None or b is None:
        raise ValueError(f"Cannot derive team ids from {team_a!r} / {team_b!r}")
    low, high = sorted((a, b))
    return week * 10000 + low * 100 + high


@dataclass
class ReconcileResult:
    matchups: List[CanonicalMatchup] = field(default_factory=list)
    dropped: int = 0


class MatchupReconciler:
    """Merges per-team schedule fragments into one record per pairing per week."""

    def reconcile(self, fragments: Iterable[TeamFragment]) -> ReconcileResult:
        frags = list(fragments)
        lookup: Dict[Tuple[int, str], TeamFragment] = {(f.week, f.team_key): f for f in frags}
        processed: Set[Tuple[int, str]] = set()
        out = ReconcileResult()

        for frag in frags:
            key = (frag.week, frag.team_key)
            if key in processed:
                continue

            other = self._partner(frag, lookup, processed)
            if other is None:
                out.dropped += 1
                continue

            processed.add(key)
            processed.add((other.week, other.team_key))
            out.matchups.append(self._merge(frag, other))

        if out.dropped:
            logger.debug("[SYNC] Reconciled %d matchups, dropped %d one-sided fragments", len(out.matchups), out.dropped)
        return out

    @staticmethod
    def _partner(
        frag: TeamFragment,
        lookup: Dict[Tuple[int, str], TeamFragment],
        processed: Set[Tuple[int, str]],
    ) -> Optional[TeamFragment]:
        if not frag.opponent_key or frag.opponent_key == frag.team_key:
            logger.debug("[SYNC] %s week %s has no opponent", frag.team_key, frag.week)
            return None
        key = (frag.week, frag.opponent_key)
        other = lookup.get(key)
        if other is None:
            logger.debug("[SYNC] No fragment from %s for week %s", frag.opponent_key, frag.week)
            return None
        if key in processed:
            logger.debug("[SYNC] %s week %s already paired", frag.opponent_key, frag.week)
            return None
        if other.opponent_key != frag.team_key:
            logger.debug(
                "[SYNC] Week %s: %s lists %s, but %s lists %s",
                frag.week, frag.team_key, frag.opponent_key, other.team_key, other.opponent_key,
            )
            return None
        if team_number(frag.team_key) is None or team_number(other.team_key) is None:
            return None
        return other

    @staticmethod
    def _merge(a: TeamFragment, b: TeamFragment) -> CanonicalMatchup:
        first, second = (a, b) if team_number(a.team_key) <= team_number(b.team_key) else (b, a)
        return CanonicalMatchup(
            matchup_id=matchup_id(a.week, a.team_key, b.team_key),
            season=a.season,
            league_key=a.league_key,
            week=a.week,
            week_start=a.week_start or b.week_start,
            week_end=a.week_end or b.week_end,
            status=a.status or b.status,
            team1_key=first.team_key,
            team2_key=second.team_key,
            team1_points=first.points,
            team2_points=second.points,
            team1_stats=dict(first.stats),
            team2_stats=dict(second.stats),
            winner_team_key=a.winner_team_key or b.winner_team_key,
            is_playoffs=a.is_playoffs or b.is_playoffs,
            is_consolation=a.is_consolation or b.is_consolation,
            is_tied=a.is_tied or b.is_tied,
        )
