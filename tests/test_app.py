"""
Route tests. ESPN is replaced with a mock client via dependency_overrides and
the store points at a temporary sqlite file.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

import app as app_module
import store
from app import app, get_espn_client
from config import SEASON_YEAR
from espn_client import EspnClient, EspnError
from conftest import make_record


@pytest.fixture
def espn():
    client = Mock(spec=EspnClient)
    client.has_credentials = True
    client.get_free_agents.return_value = []
    app.dependency_overrides[get_espn_client] = lambda: client
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def api(espn, tmp_db):
    return TestClient(app)


class TestMeta:
    def test_root(self, api):
        resp = api.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "running"

    def test_health(self, api):
        assert api.get("/health").json() == {"ok": True}

    def test_api_health(self, api):
        body = api.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["espn_auth"] is True

    def test_migrate_creates_tables(self, api):
        assert api.get("/api/roster").json()["roster"] == []
        resp = api.post("/admin/migrate")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True
        assert "message" not in api.get("/api/roster").json()


class TestWaiverAnalysisRoute:
    """POST /api/espn/waiver-analysis"""

    def setup_method(self):
        self.free_agents = [
            make_record(100, owned=80, weekly=[15], name="Rostered Guy"),
            make_record(200, owned=75, weekly=[16, 16], season=250, name="Top Add"),
            make_record(300, owned=60, weekly=[9], name="Passed In"),
            make_record(400, owned=5, weekly=[2], name="Deep Flier"),
        ]

    def _seed_roster(self):
        store.init_db()
        player = store.upsert_player(
            {"espn_id": 100, "name": "Rostered Guy", "position": "RB", "team": "SF"}
        )
        store.add_to_roster(player["id"], "RB")

    def test_excludes_roster_and_current_ids(self, api, espn):
        self._seed_roster()
        espn.get_free_agents.return_value = self.free_agents

        resp = api.post(
            "/api/espn/waiver-analysis",
            json={"season": 2025, "position": "RB", "currentPlayerIds": [300], "limit": 10},
        )

        assert resp.status_code == 200
        body = resp.json()
        ids = [r["id"] for r in body["analysis"]]
        assert ids == [200, 400]
        assert body["summary"]["rosterDepth"] == 1
        assert body["summary"]["totalAnalyzed"] == 2

        top = body["analysis"][0]
        assert top["priority"] == "HIGH"
        assert top["faabBid"] == "25%"
        assert top["reasoning"].endswith("Adds needed depth")

        # limit + (1 rostered + 1 passed in)
        espn.get_free_agents.assert_called_once_with(2025, 2, limit=12)

    def test_missing_roster_tables_mean_zero_depth(self, api, espn):
        espn.get_free_agents.return_value = self.free_agents
        body = api.post("/api/espn/waiver-analysis", json={"position": "RB"}).json()
        assert body["summary"]["rosterDepth"] == 0
        assert len(body["analysis"]) == 4

    def test_roster_failure_degrades(self, api, espn, monkeypatch):
        def boom(position):
            raise store.StoreError("database unavailable")

        monkeypatch.setattr(app_module, "get_roster_for_position", boom)
        espn.get_free_agents.return_value = self.free_agents[:1]

        resp = api.post("/api/espn/waiver-analysis", json={"position": "RB"})
        assert resp.status_code == 200
        assert resp.json()["summary"]["rosterDepth"] == 0

    def test_defaults(self, api, espn):
        resp = api.post("/api/espn/waiver-analysis", json={})
        assert resp.status_code == 200
        assert resp.json() == {
            "analysis": [],
            "summary": {
                "highPriority": 0,
                "mediumPriority": 0,
                "lowPriority": 0,
                "totalAnalyzed": 0,
                "rosterDepth": 0,
            },
        }
        espn.get_free_agents.assert_called_once_with(SEASON_YEAR, 2, limit=25)

    def test_position_alias_and_slot(self, api, espn):
        espn.get_free_agents.return_value = [make_record(-16025, owned=50, weekly=[8])]
        body = api.post("/api/espn/waiver-analysis", json={"position": "dst"}).json()
        assert body["analysis"][0]["position"] == "D/ST"
        assert espn.get_free_agents.call_args[0][1] == 16

    def test_unknown_position_falls_back_to_rb(self, api, espn):
        api.post("/api/espn/waiver-analysis", json={"position": "LB"})
        assert espn.get_free_agents.call_args[0][1] == 2

    @pytest.mark.parametrize("limit,fetched", [(0, 1), (1000, 50)])
    def test_limit_is_clamped(self, api, espn, limit, fetched):
        espn.get_free_agents.return_value = [
            make_record(i, owned=1, weekly=[1]) for i in range(1, 81)
        ]
        body = api.post("/api/espn/waiver-analysis", json={"limit": limit}).json()
        assert len(body["analysis"]) == fetched
        assert espn.get_free_agents.call_args[1]["limit"] == fetched

    def test_non_string_position_is_normalized(self, api, espn):
        resp = api.post("/api/espn/waiver-analysis", json={"position": 5})
        assert resp.status_code == 200
        assert espn.get_free_agents.call_args[0][1] == 2

    def test_float_limit_is_coerced(self, api, espn):
        espn.get_free_agents.return_value = [
            make_record(i, owned=1, weekly=[1]) for i in range(1, 21)
        ]
        resp = api.post("/api/espn/waiver-analysis", json={"limit": 12.5})
        assert resp.status_code == 200
        assert len(resp.json()["analysis"]) == 12
        assert espn.get_free_agents.call_args[1]["limit"] == 12

    def test_non_numeric_limit_uses_default(self, api, espn):
        resp = api.post("/api/espn/waiver-analysis", json={"limit": "lots"})
        assert resp.status_code == 200
        assert espn.get_free_agents.call_args[1]["limit"] == 25

    def test_upstream_failure_is_500(self, api, espn, monkeypatch):
        monkeypatch.setattr(app_module, "OFFLINE_MODE", False)
        espn.get_free_agents.side_effect = EspnError("ESPN 503: unavailable", 503)

        resp = api.post("/api/espn/waiver-analysis", json={"position": "RB"})
        assert resp.status_code == 500
        assert "ESPN 503" in resp.json()["detail"]

    def test_offline_mode_uses_sample_data(self, api, espn, monkeypatch):
        monkeypatch.setattr(app_module, "OFFLINE_MODE", True)
        espn.get_free_agents.side_effect = EspnError("offline")

        resp = api.post("/api/espn/waiver-analysis", json={"position": "RB"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["analysis"]
        assert all(r["position"] == "RB" for r in body["analysis"])


class TestEspnProxy:
    def test_league(self, api, espn):
        espn.league.return_value = {"id": 12345, "teams": []}
        resp = api.get("/api/espn/league", params={"season": 2025, "leagueId": "12345"})
        assert resp.status_code == 200
        assert resp.json()["id"] == 12345
        espn.league.assert_called_once_with(2025, "12345", None)

    def test_players_passes_filter(self, api, espn):
        espn.players.return_value = [{"id": 1}]
        flt = {"players": {"limit": 5}}
        resp = api.post("/api/espn/players", json={"season": 2025, "filter": flt})
        assert resp.json() == [{"id": 1}]
        espn.players.assert_called_once_with(2025, flt)

    def test_player_info(self, api, espn):
        espn.player_info.return_value = {"players": []}
        api.post("/api/espn/playerInfo", json={"filter": {}, "pprId": 3})
        espn.player_info.assert_called_once_with(SEASON_YEAR, {}, 3)

    def test_news_requires_player_id(self, api):
        assert api.get("/api/espn/news").status_code == 422

    def test_proxy_error_is_500(self, api, espn):
        espn.pro_team_schedules.side_effect = EspnError("ESPN 500: oops", 500)
        resp = api.get("/api/espn/byeWeeks")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "ESPN 500: oops"

    def test_connectivity_check(self, api, espn):
        espn.pro_team_schedules.return_value = {"settings": {}}
        body = api.get("/api/espn/test").json()
        assert body["status"] == "ok"
        assert body["dataSize"] > 0


class TestStoreRoutes:
    """Players, roster, watchlist and news against a real sqlite file."""

    def test_missing_tables_return_empty_lists(self, api):
        for path, key in [
            ("/api/roster", "roster"),
            ("/api/watchlist", "watchlist"),
            ("/api/players", "players"),
            ("/api/news", "news"),
        ]:
            body = api.get(path).json()
            assert body[key] == []
            assert "message" in body

    def test_players_bulk_and_filter(self, api):
        store.init_db()
        resp = api.post("/api/players/bulk", json={"players": [
            {"espn_id": 1, "name": "Alpha", "position": "RB", "team": "SF"},
            {"espn_id": 2, "name": "Bravo", "position": "WR", "team": "KC"},
        ]})
        assert resp.json() == {"success": True, "inserted": 2}

        body = api.get("/api/players", params={"position": "WR"}).json()
        assert [p["name"] for p in body["players"]] == ["Bravo"]

    def test_players_bulk_requires_players(self, api):
        store.init_db()
        assert api.post("/api/players/upsert", json={"players": []}).status_code == 400

    def test_players_empty_name_is_400(self, api):
        store.init_db()
        bulk = api.post("/api/players/bulk", json={"players": [{"espn_id": 1, "name": ""}]})
        assert bulk.status_code == 400
        assert "espn_id and name" in bulk.json()["detail"]

        single = api.post("/api/players", json={"espn_id": 1, "name": ""})
        assert single.status_code == 400
        assert api.get("/api/players").json()["players"] == []

    def test_news_empty_headline_is_400(self, api):
        store.init_db()
        resp = api.post("/api/news/bulk", json={"items": [{"headline": ""}]})
        assert resp.status_code == 400
        assert "headline" in resp.json()["detail"]
        assert api.get("/api/news").json()["news"] == []

    def test_roster_flow(self, api):
        store.init_db()
        player = api.post("/api/players", json={"espn_id": 7, "name": "Seven", "position": "TE"}).json()

        resp = api.post("/api/roster", json={"player_id": player["id"], "position_slot": "te"})
        assert resp.status_code == 200
        roster_id = resp.json()["item"]["id"]

        roster = api.get("/api/roster").json()["roster"]
        assert roster[0]["position_slot"] == "TE"
        assert roster[0]["espn_id"] == 7

        assert api.delete(f"/api/roster/{roster_id}").json() == {"ok": True}
        assert api.get("/api/roster").json()["roster"] == []

    def test_roster_validation(self, api):
        store.init_db()
        assert api.post("/api/roster", json={"position_slot": "RB"}).status_code == 400
        assert api.post("/api/roster", json={"player_id": 1}).status_code == 400
        assert api.post("/api/roster", json={"player_id": 1, "position_slot": "GOALIE"}).status_code == 400
        assert api.post("/api/roster", json={"player_id": 999, "position_slot": "RB"}).status_code == 404

    def test_watchlist_flow(self, api):
        store.init_db()
        player = api.post("/api/players", json={"espn_id": 8, "name": "Eight"}).json()

        assert api.post("/api/watchlist", json={"player_id": player["id"], "interest_level": 7}).status_code == 400
        resp = api.post("/api/watchlist", json={"player_id": player["id"], "interest_level": 4})
        assert resp.json()["item"]["interest_level"] == 4

        items = api.get("/api/watchlist").json()["watchlist"]
        assert [w["name"] for w in items] == ["Eight"]

        assert api.delete(f"/api/watchlist/{items[0]['id']}").json() == {"ok": True}

    def test_news_bulk(self, api):
        store.init_db()
        assert api.post("/api/news/bulk", json={}).status_code == 400

        resp = api.post("/api/news/bulk", json={"items": [
            {"headline": "Practice report", "published_date": "2025-09-03T12:00:00"},
        ]})
        assert resp.json() == {"ok": True, "inserted": 1}
        assert api.get("/api/news").json()["news"][0]["headline"] == "Practice report"


if __name__ == "__main__":
    pytest.main([__file__])
