from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional

from app.schemas.yahoo import (
    DiscoveredLeague,
    DraftPick,
    GameInfo,
    LeagueMeta,
    LeagueSettings,
    PlayerInfo,
    TeamFragment,
    TeamInfo,
    TeamStanding,
    TransactionInfo,
    TransactionPlayer,
)

# ---------------- Small utils ----------------
def _get(d: Any, *keys) -> Any:
    cur = d
    for k in keys:
        if isinstance(cur, dict) and k in cur:
            cur = cur[k]
        else:
            return None
    return cur

def _as_list(x: Any) -> List:
    if x is None:
        return []
    if isinstance(x, list):
        return x
    return [x]

def _to_dict(node: Any) -> dict:
    """
    Recursively flatten Yahoo nodes:
    - Merge all dicts found at any depth inside lists-of-lists etc.
    - Last write wins for duplicate keys (Yahoo usually doesn't collide meaningful keys).
    This fixes shapes like team = [ [ {...}, {...} ], {"team_stats": ...}, {"team_points": ...} ]
    where the first element is itself a list of dicts.
    """
    out: dict = {}

    def rec(n: Any):
        if isinstance(n, dict):
            for k, v in n.items():
                out[k] = v
        elif isinstance(n, list):
            for it in n:
                rec(it)
        # ignore scalars

    rec(node)
    return out

def _collection(node: Any, item_key: str) -> List[Any]:
    """
    Items of a Yahoo collection, in order. Handles:
      - {"0": {"team": ...}, "1": {...}, "count": 2}
      - [{"team": ...}, {"team": ...}]
      - {"team": ...} (a single item collapsed to an object)
    """
    out: List[Any] = []
    if isinstance(node, dict):
        if item_key in node:
            return [node[item_key]]
        for k in sorted((kk for kk in node.keys() if str(kk).isdigit()), key=lambda x: int(x)):
            entry = node[k]
            if isinstance(entry, dict) and item_key in entry:
                out.append(entry[item_key])
    elif isinstance(node, list):
        for entry in node:
            if isinstance(entry, dict) and item_key in entry:
                out.append(entry[item_key])
    return out

def _maybe_int(v: Any) -> Optional[int]:
    try:
        if v is None:
            return None
        s = str(v).strip()
        return int(float(s)) if s != "" else None
    except (TypeError, ValueError):
        return None

def _maybe_float(v: Any) -> Optional[float]:
    try:
        if v is None:
            return None
        s = str(v).strip()
        return float(s) if s != "" else None
    except (TypeError, ValueError):
        return None

def _maybe_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def _flag(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in ("1", "true", "yes")

def _league_node(payload: dict) -> dict:
    """fantasy_content.league is [ {fields...}, {sub-resource...} ]; merge into one dict."""
    return _to_dict(_get(payload, "fantasy_content", "league"))

def league_key_from_renew(value: Any) -> Optional[str]:
    """Yahoo writes renew/renewed as "<game_key>_<league_id>"; league keys are "<game_key>.l.<league_id>"."""
    s = _maybe_str(value)
    if not s or "_" not in s:
        return None
    game_key, league_id = s.split("_", 1)
    if not game_key or not league_id:
        return None
    return f"{game_key}.l.{league_id}"

def team_number(team_key: str) -> Optional[int]:
    """'427.l.12345.t.7' -> 7"""
    if not team_key or ".t." not in team_key:
        return None
    return _maybe_int(team_key.rsplit(".t.", 1)[1])


# ---------------- Games / discovery ----------------
def _iter_user_games(payload: dict) -> Iterator[dict]:
    users = _get(payload, "fantasy_content", "users")
    for user in _collection(users, "user"):
        games = _to_dict(user).get("games")
        for game in _collection(games, "game"):
            yield _to_dict(game)

def parse_games(payload: dict) -> List[GameInfo]:
    out: List[GameInfo] = []
    for g in _iter_user_games(payload):
        game_key = _maybe_str(g.get("game_key"))
        if not game_key:
            continue
        out.append(GameInfo(
            game_key=game_key,
            code=_maybe_str(g.get("code")),
            name=_maybe_str(g.get("name")),
            season=_maybe_str(g.get("season")),
        ))
    return out

def parse_game_leagues(payload: dict) -> List[DiscoveredLeague]:
    """users;use_login=1/games;game_keys=K/leagues -> every league under every game."""
    out: List[DiscoveredLeague] = []
    for g in _iter_user_games(payload):
        game_key = _maybe_str(g.get("game_key")) or ""
        code = _maybe_str(g.get("code")) or ""
        game_season = _maybe_str(g.get("season")) or ""
        for league in _collection(g.get("leagues"), "league"):
            L = _to_dict(league)
            league_key = _maybe_str(L.get("league_key"))
            if not league_key:
                continue
            out.append(DiscoveredLeague(
                league_key=league_key,
                name=_maybe_str(L.get("name")),
                season=_maybe_str(L.get("season")) or game_season,
                game_code=game_key or league_key.split(".l.", 1)[0],
                game_abbreviation=code or (_maybe_str(L.get("game_code")) or ""),
                renew=_maybe_str(L.get("renew")),
                renewed=_maybe_str(L.get("renewed")),
            ))
    return out


# ---------------- League ----------------
def parse_league_meta(payload: Optional[dict]) -> Optional[LeagueMeta]:
    if not payload:
        return None
    L = _league_node(payload)
    league_key = _maybe_str(L.get("league_key"))
    if not league_key:
        return None
    return LeagueMeta(
        league_key=league_key,
        league_id=_maybe_int(L.get("league_id")),
        name=_maybe_str(L.get("name")),
        url=_maybe_str(L.get("url")),
        logo_url=_maybe_str(L.get("logo_url")) if L.get("logo_url") else None,
        season=_maybe_str(L.get("season")),
        game_code=_maybe_str(L.get("game_code")),
        num_teams=_maybe_int(L.get("num_teams")),
        scoring_type=_maybe_str(L.get("scoring_type")),
        league_type=_maybe_str(L.get("league_type")),
        draft_status=_maybe_str(L.get("draft_status")),
        current_week=_maybe_int(L.get("current_week")),
        start_week=_maybe_int(L.get("start_week")),
        end_week=_maybe_int(L.get("end_week")),
        start_date=_maybe_str(L.get("start_date")),
        end_date=_maybe_str(L.get("end_date")),
        is_finished=_flag(L.get("is_finished")),
        renew=_maybe_str(L.get("renew")),
        renewed=_maybe_str(L.get("renewed")),
    )

def parse_league_settings(payload: Optional[dict]) -> LeagueSettings:
    if not payload:
        return LeagueSettings()
    S = _to_dict(_league_node(payload).get("settings"))

    cats: Dict[str, str] = {}
    for item in _as_list(_get(S, "stat_categories", "stats")):
        stat = item.get("stat") if isinstance(item, dict) else None
        if not isinstance(stat, dict) or stat.get("stat_id") is None:
            continue
        name = stat.get("display_name") or stat.get("name") or str(stat["stat_id"])
        cats[str(stat["stat_id"])] = str(name)

    return LeagueSettings(
        stat_categories=cats,
        playoff_start_week=_maybe_int(S.get("playoff_start_week")),
        num_playoff_teams=_maybe_int(S.get("num_playoff_teams")),
    )

def parse_scoreboard_week(payload: Optional[dict]) -> Optional[int]:
    if not payload:
        return None
    L = _league_node(payload)
    sb = L.get("scoreboard")
    if isinstance(sb, list):
        sb = _to_dict(sb)
    return _maybe_int(_get(sb, "week")) or _maybe_int(L.get("current_week"))


# ---------------- Teams / standings ----------------
def _team_nodes(payload: Optional[dict]) -> List[dict]:
    """Team nodes from either league/{key}/teams or league/{key}/standings."""
    if not payload:
        return []
    L = _league_node(payload)
    teams = L.get("teams")
    if teams is None:
        teams = _to_dict(L.get("standings")).get("teams")
    return [_to_dict(t) for t in _collection(teams, "team")]

def _team_info(t: dict) -> Optional[TeamInfo]:
    team_key = _maybe_str(t.get("team_key"))
    if not team_key:
        return None

    logo_url = None
    logos = _collection(t.get("team_logos"), "team_logo")
    if logos and isinstance(logos[0], dict):
        logo_url = _maybe_str(logos[0].get("url"))

    mgr: dict = {}
    managers = _collection(t.get("managers"), "manager")
    if managers and isinstance(managers[0], dict):
        mgr = managers[0]

    return TeamInfo(
        team_key=team_key,
        team_id=_maybe_int(t.get("team_id")),
        name=_maybe_str(t.get("name")),
        url=_maybe_str(t.get("url")),
        logo_url=logo_url,
        manager_nickname=_maybe_str(mgr.get("nickname")),
        manager_guid=_maybe_str(mgr.get("guid")),
        manager_image_url=_maybe_str(mgr.get("image_url")),
        manager_is_commissioner=_flag(mgr.get("is_commissioner")),
        number_of_moves=_maybe_int(t.get("number_of_moves")),
        number_of_trades=_maybe_int(t.get("number_of_trades")),
        clinched_playoffs=_flag(t.get("clinched_playoffs")),
    )

def parse_teams(payload: Optional[dict]) -> List[TeamInfo]:
    out: List[TeamInfo] = []
    for t in _team_nodes(payload):
        info = _team_info(t)
        if info is not None:
            out.append(info)
    return out

def parse_standings(payload: Optional[dict]) -> List[TeamStanding]:
    out: List[TeamStanding] = []
    for t in _team_nodes(payload):
        team_key = _maybe_str(t.get("team_key"))
        st = t.get("team_standings")
        if not team_key or not isinstance(st, dict):
            continue

        ot = st.get("outcome_totals") or {}
        wins = _maybe_int(ot.get("wins"))
        losses = _maybe_int(ot.get("losses"))
        ties = _maybe_int(ot.get("ties"))
        pct = _maybe_float(ot.get("percentage"))  # Yahoo may return ""

        # Keep percentage=None until games exist; otherwise compute from W-L-T
        if pct is None and wins is not None and losses is not None:
            games = wins + losses + (ties or 0)
            pct = ((wins + 0.5 * (ties or 0)) / games) if games > 0 else None

        points_for = _maybe_float(st.get("points_for"))
        if points_for is None:
            points_for = _maybe_float(_get(t, "team_points", "total"))

        out.append(TeamStanding(
            team_key=team_key,
            rank=_maybe_int(st.get("rank")),
            wins=wins,
            losses=losses,
            ties=ties,
            percentage=pct,
            points_for=points_for,
            points_against=_maybe_float(st.get("points_against")),
        ))
    return out


# ---------------- Draft / transactions / players ----------------
def parse_draft_results(payload: Optional[dict]) -> List[DraftPick]:
    if not payload:
        return []
    out: List[DraftPick] = []
    for item in _collection(_league_node(payload).get("draft_results"), "draft_result"):
        d = _to_dict(item)
        pick = _maybe_int(d.get("pick"))
        if pick is None:
            continue
        out.append(DraftPick(
            pick=pick,
            round=_maybe_int(d.get("round")),
            team_key=_maybe_str(d.get("team_key")),
            player_key=_maybe_str(d.get("player_key")),
            cost=_maybe_int(d.get("cost")),
        ))
    return out

def _player_name(p: dict) -> Optional[str]:
    nm = p.get("name")
    if isinstance(nm, dict):
        return _maybe_str(nm.get("full"))
    return _maybe_str(nm)

def parse_transactions(payload: Optional[dict]) -> List[TransactionInfo]:
    if not payload:
        return []
    out: List[TransactionInfo] = []
    for item in _collection(_league_node(payload).get("transactions"), "transaction"):
        tx = _to_dict(item)
        key = _maybe_str(tx.get("transaction_key"))
        if not key:
            continue

        players: List[TransactionPlayer] = []
        for pnode in _collection(tx.get("players"), "player"):
            p = _to_dict(pnode)
            td = _to_dict(p.get("transaction_data"))
            players.append(TransactionPlayer(
                player_key=_maybe_str(p.get("player_key")),
                name=_player_name(p),
                type=_maybe_str(td.get("type")),
                source_team_key=_maybe_str(td.get("source_team_key")),
                destination_team_key=_maybe_str(td.get("destination_team_key")),
            ))

        out.append(TransactionInfo(
            transaction_key=key,
            type=_maybe_str(tx.get("type")),
            status=_maybe_str(tx.get("status")),
            timestamp=_maybe_int(tx.get("timestamp")),
            players=players,
        ))
    return out

def parse_players(payload: Optional[dict]) -> List[PlayerInfo]:
    if not payload:
        return []
    out: List[PlayerInfo] = []
    for pnode in _collection(_league_node(payload).get("players"), "player"):
        p = _to_dict(pnode)
        key = _maybe_str(p.get("player_key"))
        if not key:
            continue
        out.append(PlayerInfo(
            player_key=key,
            name=_player_name(p),
            position=_maybe_str(p.get("display_position")) or _maybe_str(p.get("primary_position")),
        ))
    return out


# ---------------- Matchup history ----------------
def _get_teams_from_matchup(m: dict) -> Any:
    """
    Return the 'teams' node from a matchup regardless of shape:
      - m['teams'] (flat)
      - m['0']['teams'] (nested under numeric key)
    """
    if "teams" in m:
        return m["teams"]
    for k, v in m.items():
        if str(k).isdigit() and isinstance(v, dict) and "teams" in v:
            return v["teams"]
    return None

def _stats_map_from_team_node(t: dict) -> Dict[str, Any]:
    """
    Build {stat_id: value} from a flattened team node.
    Expects 'team_stats': {'stats': [{'stat': {'stat_id': '1','value':'...'}}, ...]}
    """
    out: Dict[str, Any] = {}
    for it in _as_list(_get(t, "team_stats", "stats")):
        st = it.get("stat") if isinstance(it, dict) else None
        if isinstance(st, dict) and st.get("stat_id") is not None:
            out[str(st["stat_id"])] = st.get("value")
    return out

def parse_matchup_history(payload: Optional[dict], league_key: str, season: str) -> List[TeamFragment]:
    """
    league/{key}/teams/matchups -> one TeamFragment per (team, week).

    Each team reports its schedule from its own side; only the owning team's
    score and stats are taken, the other side contributes just its key.
    """
    out: List[TeamFragment] = []
    for team in _team_nodes(payload):
        owner = _maybe_str(team.get("team_key"))
        if not owner:
            continue

        for matchup in _collection(team.get("matchups"), "matchup"):
            m = _to_dict(matchup)
            week = _maybe_int(m.get("week"))
            if week is None:
                continue

            own: Optional[dict] = None
            opponent_key: Optional[str] = None
            for side in _collection(_get_teams_from_matchup(m), "team"):
                s = _to_dict(side)
                key = _maybe_str(s.get("team_key"))
                if key == owner:
                    own = s
                elif key:
                    opponent_key = key
            if own is None:
                continue

            out.append(TeamFragment(
                league_key=league_key,
                season=season,
                week=week,
                team_key=owner,
                points=_maybe_float(_get(own, "team_points", "total")),
                stats=_stats_map_from_team_node(own),
                opponent_key=opponent_key,
                winner_team_key=_maybe_str(m.get("winner_team_key")),
                is_playoffs=_flag(m.get("is_playoffs")),
                is_consolation=_flag(m.get("is_consolation")),
                is_tied=_flag(m.get("is_tied")),
                week_start=_maybe_str(m.get("week_start")),
                week_end=_maybe_str(m.get("week_end")),
                status=_maybe_str(m.get("status")),
            ))
    return out
