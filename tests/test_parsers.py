"""Tests for the Yahoo JSON parsers."""
import payloads
from app.services.yahoo.parsers import (
    _as_list,
    _collection,
    league_key_from_renew,
    parse_draft_results,
    parse_league_meta,
    parse_league_settings,
    parse_matchup_history,
    parse_scoreboard_week,
    parse_standings,
    parse_teams,
    parse_transactions,
    team_number,
)

LEAGUE = "427.l.100"


class TestHelpers:

    def test_collection_shapes(self):
        """Numeric-keyed, list and collapsed single-object collections all yield items."""
        assert _collection({"0": {"team": "a"}, "1": {"team": "b"}, "count": 2}, "team") == ["a", "b"]
        assert _collection([{"team": "a"}, {"team": "b"}], "team") == ["a", "b"]
        assert _collection({"team": "a"}, "team") == ["a"]
        assert _collection(None, "team") == []

    def test_collection_orders_by_numeric_key(self):
        node = {str(i): {"x": i} for i in (10, 2, 1, 0)}
        assert _collection(node, "x") == [0, 1, 2, 10]

    def test_as_list(self):
        assert _as_list(None) == []
        assert _as_list({"a": 1}) == [{"a": 1}]
        assert _as_list([1]) == [1]

    def test_renew_conversion(self):
        assert league_key_from_renew("419_50") == "419.l.50"
        assert league_key_from_renew("") is None
        assert league_key_from_renew(None) is None
        assert league_key_from_renew("garbage") is None

    def test_team_number(self):
        assert team_number("427.l.100.t.12") == 12
        assert team_number("427.l.100") is None


class TestLeague:

    def test_meta(self):
        meta = parse_league_meta(payloads.metadata_doc(LEAGUE, season="2023", is_finished=1, renew="419_50"))

        assert meta.league_key == LEAGUE
        assert meta.league_id == 100
        assert meta.season == "2023"
        assert meta.is_finished is True
        assert meta.renew == "419_50"
        assert meta.renewed is None
        assert meta.logo_url is None
        assert meta.start_week == 1

    def test_missing_meta(self):
        assert parse_league_meta(None) is None
        assert parse_league_meta({"fantasy_content": {"league": [{}]}}) is None

    def test_settings(self):
        s = parse_league_settings(payloads.settings_doc(LEAGUE))

        assert s.stat_categories == {"1": "G", "2": "A"}
        assert s.playoff_start_week == 20
        assert s.num_playoff_teams == 4

    def test_scoreboard_week(self):
        assert parse_scoreboard_week(payloads.scoreboard_doc(LEAGUE, week=7)) == 7
        assert parse_scoreboard_week(None) is None


class TestTeams:

    def test_teams(self):
        teams = parse_teams(payloads.teams_doc(LEAGUE, [f"{LEAGUE}.t.1", f"{LEAGUE}.t.2"]))

        assert [t.team_key for t in teams] == [f"{LEAGUE}.t.1", f"{LEAGUE}.t.2"]
        first = teams[0]
        assert first.team_id == 1
        assert first.manager_nickname == "mgr1"
        assert first.manager_guid == "GUID1"
        assert first.logo_url == "https://img/1.png"
        assert first.number_of_moves == 4
        assert first.clinched_playoffs is True
        assert teams[1].clinched_playoffs is False

    def test_standings_compute_percentage_when_blank(self):
        rows = parse_standings(payloads.standings_doc(LEAGUE, [(f"{LEAGUE}.t.1", 1, 6, 3, 1)]))

        [s] = rows
        assert (s.rank, s.wins, s.losses, s.ties) == (1, 6, 3, 1)
        assert s.percentage == 0.65
        assert s.points_for == 60.0
        assert s.points_against == 30.0

    def test_standings_doc_also_yields_team_info(self):
        teams = parse_teams(payloads.standings_doc(LEAGUE, [(f"{LEAGUE}.t.3", 1, 1, 0, 0)]))
        assert teams[0].name == "Team 3"


class TestDraftAndTransactions:

    def test_draft(self):
        picks = parse_draft_results(payloads.draft_doc(LEAGUE, [(1, f"{LEAGUE}.t.1", "427.p.9"), (5, f"{LEAGUE}.t.2", "427.p.8")]))

        assert [(p.pick, p.round, p.player_key) for p in picks] == [(1, 1, "427.p.9"), (5, 2, "427.p.8")]

    def test_transactions(self):
        txs = parse_transactions(payloads.transactions_doc(LEAGUE, count=2))

        assert [t.transaction_key for t in txs] == [f"{LEAGUE}.tr.1", f"{LEAGUE}.tr.2"]
        assert txs[0].timestamp == 1700000000
        [p] = txs[0].players
        assert p.player_key == "427.p.100"
        assert p.name == "Skater 0"
        assert p.type == "add"
        assert p.destination_team_key == f"{LEAGUE}.t.1"

    def test_empty_documents(self):
        assert parse_draft_results(None) == []
        assert parse_transactions(None) == []


class TestMatchupHistory:

    def test_one_fragment_per_team_per_week(self):
        keys = [f"{LEAGUE}.t.{i}" for i in range(1, 5)]
        doc = payloads.history_doc(LEAGUE, payloads.round_robin(keys, 2), playoff_from=2)

        frags = parse_matchup_history(doc, LEAGUE, "2024")

        assert len(frags) == 8
        f = next(x for x in frags if x.team_key == f"{LEAGUE}.t.1" and x.week == 1)
        assert f.opponent_key == f"{LEAGUE}.t.4"
        assert f.points == payloads.points_for(f.team_key, 1)
        assert f.stats == {"1": str(int(f.points)), "2": "3"}
        assert f.is_playoffs is False
        assert f.status == "postevent"
        assert all(x.is_playoffs for x in frags if x.week == 2)
