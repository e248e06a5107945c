"""Builders for Yahoo Fantasy v2 JSON documents (format=json shapes)."""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


def collection(item_key: str, items: Sequence[Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {str(i): {item_key: it} for i, it in enumerate(items)}
    out["count"] = len(items)
    return out


def league_doc(fields: Dict[str, Any], **sub: Any) -> Dict[str, Any]:
    node: List[Any] = [fields]
    if sub:
        node.append(sub)
    return {"fantasy_content": {"league": node}}


def team_num(team_key: str) -> str:
    return team_key.rsplit(".t.", 1)[1]


def team_core(team_key: str, nickname: Optional[str] = None) -> List[Any]:
    n = team_num(team_key)
    return [
        {"team_key": team_key},
        {"team_id": n},
        {"name": f"Team {n}"},
        [],
        {"url": f"https://hockey.fantasysports.yahoo.com/hockey/1/{n}"},
        {"team_logos": [{"team_logo": {"size": "large", "url": f"https://img/{n}.png"}}]},
        {"number_of_moves": "4"},
        {"number_of_trades": 1},
        {"clinched_playoffs": 1} if n == "1" else [],
        {"managers": [{"manager": {"manager_id": n, "nickname": nickname or f"mgr{n}", "guid": f"GUID{n}"}}]},
    ]


# ---------------- league endpoints ----------------

def metadata_doc(
    league_key: str,
    season: str = "2024",
    is_finished: int = 0,
    renew: str = "",
    renewed: str = "",
    num_teams: int = 4,
) -> Dict[str, Any]:
    return league_doc({
        "league_key": league_key,
        "league_id": league_key.rsplit(".l.", 1)[1],
        "name": f"League {league_key}",
        "url": f"https://hockey.fantasysports.yahoo.com/hockey/{league_key}",
        "logo_url": False,
        "draft_status": "postdraft",
        "num_teams": num_teams,
        "scoring_type": "head",
        "league_type": "private",
        "renew": renew,
        "renewed": renewed,
        "current_week": 3,
        "start_week": "1",
        "end_week": "22",
        "start_date": f"{season}-10-08",
        "end_date": f"{int(season) + 1}-04-13",
        "is_finished": is_finished,
        "game_code": "nhl",
        "season": season,
    })


def settings_doc(league_key: str) -> Dict[str, Any]:
    return league_doc(
        {"league_key": league_key},
        settings=[{
            "draft_type": "live",
            "playoff_start_week": "20",
            "num_playoff_teams": "4",
            "stat_categories": {"stats": [
                {"stat": {"stat_id": 1, "enabled": "1", "name": "Goals", "display_name": "G"}},
                {"stat": {"stat_id": 2, "enabled": "1", "name": "Assists", "display_name": "A"}},
            ]},
        }],
    )


def teams_doc(league_key: str, team_keys: Iterable[str]) -> Dict[str, Any]:
    return league_doc({"league_key": league_key}, teams=collection("team", [[team_core(k)] for k in team_keys]))


def standings_doc(league_key: str, rows: Sequence[Tuple[str, int, int, int, int]]) -> Dict[str, Any]:
    """rows: (team_key, rank, wins, losses, ties)"""
    nodes = []
    for team_key, rank, w, l, t in rows:
        nodes.append([
            team_core(team_key),
            {"team_points": {"coverage_type": "season", "total": str(w * 2 + t)}},
            {"team_standings": {
                "rank": rank,
                "outcome_totals": {"wins": str(w), "losses": str(l), "ties": t, "percentage": ""},
                "points_for": str(w * 10),
                "points_against": str(l * 10),
            }},
        ])
    return league_doc({"league_key": league_key}, standings=[{"teams": collection("team", nodes)}])


def scoreboard_doc(league_key: str, week: int = 3) -> Dict[str, Any]:
    return league_doc({"league_key": league_key}, scoreboard={"0": {"matchups": {"count": 0}}, "week": week})


def draft_doc(league_key: str, picks: Sequence[Tuple[int, str, str]]) -> Dict[str, Any]:
    """picks: (pick, team_key, player_key)"""
    return league_doc({"league_key": league_key}, draft_results=collection("draft_result", [
        {"pick": p, "round": 1 + (p - 1) // 4, "team_key": tk, "player_key": pk} for p, tk, pk in picks
    ]))


def transactions_doc(league_key: str, count: int = 2) -> Dict[str, Any]:
    txs = []
    for i in range(count):
        txs.append([
            {"transaction_key": f"{league_key}.tr.{i + 1}", "type": "add", "status": "successful", "timestamp": str(1700000000 + i)},
            {"players": collection("player", [[
                [{"player_key": f"427.p.{100 + i}"}, {"player_id": str(100 + i)}, {"name": {"full": f"Skater {i}", "first": "Skater"}}],
                {"transaction_data": [{
                    "type": "add",
                    "source_type": "freeagents",
                    "destination_type": "team",
                    "destination_team_key": f"{league_key}.t.1",
                }]},
            ]])},
        ])
    return league_doc({"league_key": league_key}, transactions=collection("transaction", txs))


def players_doc(league_key: str, player_keys: Iterable[str]) -> Dict[str, Any]:
    nodes = []
    for pk in player_keys:
        n = pk.rsplit(".", 1)[1]
        nodes.append([[{"player_key": pk}, {"player_id": n}, {"name": {"full": f"Player {n}"}}, {"display_position": "C,LW"}]])
    return league_doc({"league_key": league_key}, players=collection("player", nodes))


# ---------------- matchup history ----------------

def round_robin(team_keys: Sequence[str], weeks: int) -> Dict[int, List[Tuple[str, str]]]:
    """Circle-method pairings, week -> [(a, b), ...]; every team plays every week."""
    keys = list(team_keys)
    n = len(keys)
    assert n % 2 == 0
    out: Dict[int, List[Tuple[str, str]]] = {}
    rot = keys[1:]
    for w in range(1, weeks + 1):
        lineup = [keys[0]] + rot
        out[w] = [(lineup[i], lineup[n - 1 - i]) for i in range(n // 2)]
        rot = rot[-1:] + rot[:-1]
    return out


def _side(team_key: str, week: int, points: float) -> List[Any]:
    return [
        [{"team_key": team_key}, {"team_id": team_num(team_key)}, {"name": f"Team {team_num(team_key)}"}],
        {"team_points": {"coverage_type": "week", "week": str(week), "total": str(points)}},
        {"team_stats": {"coverage_type": "week", "week": str(week), "stats": [
            {"stat": {"stat_id": "1", "value": str(int(points))}},
            {"stat": {"stat_id": "2", "value": "3"}},
        ]}},
    ]


def points_for(team_key: str, week: int) -> float:
    return float(int(team_num(team_key)) * 10 + week)


def history_doc(league_key: str, schedule: Dict[int, List[Tuple[str, str]]], playoff_from: int = 99) -> Dict[str, Any]:
    per_team: Dict[str, List[Any]] = {}
    for week, pairs in sorted(schedule.items()):
        for a, b in pairs:
            winner = a if points_for(a, week) > points_for(b, week) else b
            for own, other in ((a, b), (b, a)):
                per_team.setdefault(own, []).append({
                    "week": str(week),
                    "week_start": "2024-10-07",
                    "week_end": "2024-10-13",
                    "status": "postevent",
                    "is_playoffs": "1" if week >= playoff_from else "0",
                    "is_consolation": "0",
                    "is_tied": 0,
                    "winner_team_key": winner,
                    "0": {"teams": collection("team", [
                        _side(own, week, points_for(own, week)),
                        _side(other, week, points_for(other, week)),
                    ])},
                })
    teams = [
        [team_core(k), {"matchups": collection("matchup", per_team[k])}]
        for k in sorted(per_team)
    ]
    return league_doc({"league_key": league_key}, teams=collection("team", teams))


# ---------------- users / games ----------------

def _users_doc(games: List[Any]) -> Dict[str, Any]:
    return {"fantasy_content": {"users": {
        "0": {"user": [{"guid": "ME"}, {"games": collection("game", games)}]},
        "count": 1,
    }}}


def games_doc(games: Sequence[Tuple[str, str, str]]) -> Dict[str, Any]:
    """games: (game_key, code, season)"""
    return _users_doc([[{"game_key": gk, "game_id": gk, "name": code.upper(), "code": code, "season": s}] for gk, code, s in games])


def game_leagues_doc(game: Tuple[str, str, str], leagues: Sequence[Tuple[str, str, str]]) -> Dict[str, Any]:
    """leagues: (league_key, renew, renewed)"""
    gk, code, season = game
    return _users_doc([[
        {"game_key": gk, "code": code, "season": season},
        {"leagues": collection("league", [
            [{"league_key": lk, "name": f"League {lk}", "season": season, "renew": rn, "renewed": rd}]
            for lk, rn, rd in leagues
        ])},
    ]])
