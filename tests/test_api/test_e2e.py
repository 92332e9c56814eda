"""End-to-end test: seed directory -> create league -> report results -> standings."""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from matchday.config import Settings
from matchday.db.engine import create_engine, create_tables, get_session
from matchday.db.repository import Repository
from matchday.main import create_app


@pytest.fixture
async def app_and_engine():
    """Create test app with in-memory database."""
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    application = create_app(settings)
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    application.state.engine = engine
    yield application, engine
    await engine.dispose()


@pytest.fixture
async def client(app_and_engine):
    application, _ = app_and_engine
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _seed_directory(engine, num_teams: int = 4) -> tuple[str, list[str]]:
    async with get_session(engine) as session:
        repo = Repository(session)
        season = await repo.create_season("2026", datetime(2026, 1, 1), datetime(2026, 3, 1))
        teams = [await repo.create_team(f"Team {chr(65 + i)}") for i in range(num_teams)]
    return season.id, [t.id for t in teams]


async def _create_league(client: AsyncClient, season_id: str, team_ids: list[str], **extra):
    resp = await client.post(
        "/api/leagues",
        json={"name": "Premier", "season_id": season_id, "team_ids": team_ids, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestE2E:
    async def test_full_season_flow(self, app_and_engine, client: AsyncClient):
        """Create a league, play every fixture, and check the table adds up."""
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)

        # 1. Create league with a double round-robin calendar
        league = await _create_league(client, season_id, team_ids)
        assert league["fixture_count"] == 12
        assert len(league["standings"]) == 4
        league_id = league["id"]

        # 2. Fixtures
        resp = await client.get(f"/api/leagues/{league_id}/fixtures")
        assert resp.status_code == 200
        fixtures = resp.json()["data"]
        assert len(fixtures) == 12
        kickoffs = [f["kickoff"] for f in fixtures]
        assert kickoffs == sorted(kickoffs)

        # 3. Report every result: home side wins 2-1
        for f in fixtures:
            resp = await client.put(
                f"/api/matches/{f['id']}/result",
                json={"status": "COMPLETED", "home_score": 2, "away_score": 1},
            )
            assert resp.status_code == 200, resp.text
            assert resp.json()["data"]["match"]["status"] == "COMPLETED"

        # 4. Standings
        resp = await client.get(f"/api/leagues/{league_id}/standings")
        assert resp.status_code == 200
        standings = resp.json()["data"]
        assert len(standings) == 4
        assert [s["position"] for s in standings] == [1, 2, 3, 4]
        assert all(s["matches_played"] == 6 for s in standings)
        assert all(s["won"] == 3 and s["lost"] == 3 for s in standings)
        assert sum(s["points"] for s in standings) == 12 * 3
        assert all(s["computed_version"] == 12 for s in standings)
        assert {s["team_name"] for s in standings} == {"Team A", "Team B", "Team C", "Team D"}
        # Equal on points and goal difference: goals for, then ID decides.
        keys = [
            (-s["points"], -s["goal_difference"], -s["goals_for"], s["team_id"])
            for s in standings
        ]
        assert keys == sorted(keys)

        # 5. League summary
        resp = await client.get(f"/api/leagues/{league_id}")
        assert resp.status_code == 200
        summary = resp.json()["data"]
        assert summary["matches"]["COMPLETED"] == 12
        assert summary["results_version"] == 12
        assert summary["standings_version"] == 12
        assert summary["team_ids"] == sorted(team_ids)

        # Health
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_point_overrides(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine, 2)
        league = await _create_league(client, season_id, team_ids, points_for_win=2)
        assert league["schedule"] == {
            "points_for_win": 2,
            "points_for_draw": 1,
            "points_for_loss": 0,
        }

        fixtures = (await client.get(f"/api/leagues/{league['id']}/fixtures")).json()["data"]
        resp = await client.put(
            f"/api/matches/{fixtures[0]['id']}/result",
            json={"home_score": 1, "away_score": 0},
        )
        top = resp.json()["data"]["standings"][0]
        assert top["points"] == 2
        assert top["form_string"] == "W"

    async def test_aware_start_date(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine, 2)
        league = await _create_league(
            client, season_id, team_ids, start_date="2026-02-01T01:00:00+01:00"
        )
        fixtures = (await client.get(f"/api/leagues/{league['id']}/fixtures")).json()["data"]
        assert fixtures[0]["kickoff"] == "2026-02-01T00:00:00"

    async def test_fixture_status_filter(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)
        fixtures = (await client.get(f"/api/leagues/{league['id']}/fixtures")).json()["data"]
        await client.put(f"/api/matches/{fixtures[0]['id']}/result", json={"status": "POSTPONED"})

        resp = await client.get(f"/api/leagues/{league['id']}/fixtures?status=POSTPONED")
        assert [f["id"] for f in resp.json()["data"]] == [fixtures[0]["id"]]

    async def test_withdrawal(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)

        resp = await client.post(
            f"/api/leagues/{league['id']}/withdrawals", json={"team_id": team_ids[0]}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["cancelled"] == 6

        summary = (await client.get(f"/api/leagues/{league['id']}")).json()["data"]
        assert summary["matches"]["CANCELLED"] == 6
        assert summary["matches"]["SCHEDULED"] == 6

    async def test_recompute(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)

        resp = await client.post(f"/api/leagues/{league['id']}/standings/recompute")
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 4

    async def test_delete_league(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)

        resp = await client.delete(f"/api/leagues/{league['id']}")
        assert resp.status_code == 200
        assert resp.json()["data"]["deleted"] is True

        resp = await client.get(f"/api/leagues/{league['id']}")
        assert resp.status_code == 404


class TestErrors:
    async def test_404_on_missing_league(self, client: AsyncClient):
        resp = await client.get("/api/leagues/nonexistent")
        assert resp.status_code == 404
        assert resp.json()["error"]["type"] == "UnknownLeague"

    async def test_404_on_missing_standings(self, client: AsyncClient):
        resp = await client.get("/api/leagues/nonexistent/standings")
        assert resp.status_code == 404

    async def test_404_on_missing_match(self, client: AsyncClient):
        resp = await client.put(
            "/api/matches/nonexistent/result",
            json={"status": "COMPLETED", "home_score": 1, "away_score": 0},
        )
        assert resp.status_code == 404

    async def test_400_on_single_team(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine, 1)
        resp = await client.post(
            "/api/leagues",
            json={"name": "Solo", "season_id": season_id, "team_ids": team_ids},
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["type"] == "InsufficientTeams"
        assert error["field"] == "team_ids"

    async def test_400_on_missing_score(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)
        fixtures = (await client.get(f"/api/leagues/{league['id']}/fixtures")).json()["data"]

        resp = await client.put(
            f"/api/matches/{fixtures[0]['id']}/result",
            json={"status": "COMPLETED", "home_score": 1},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "away_score"

        # The rejected report left the match untouched
        summary = (await client.get(f"/api/leagues/{league['id']}")).json()["data"]
        assert summary["results_version"] == 0

    async def test_400_on_result_after_completion(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        season_id, team_ids = await _seed_directory(engine)
        league = await _create_league(client, season_id, team_ids)
        fixtures = (await client.get(f"/api/leagues/{league['id']}/fixtures")).json()["data"]
        url = f"/api/matches/{fixtures[0]['id']}/result"

        assert (await client.put(url, json={"home_score": 1, "away_score": 0})).status_code == 200
        resp = await client.put(url, json={"home_score": 3, "away_score": 0})
        assert resp.status_code == 400
        assert resp.json()["error"]["type"] == "InvalidTransition"

    async def test_404_on_unknown_season(self, app_and_engine, client: AsyncClient):
        _, engine = app_and_engine
        _, team_ids = await _seed_directory(engine)
        resp = await client.post(
            "/api/leagues",
            json={"name": "Lost", "season_id": "nonexistent", "team_ids": team_ids},
        )
        assert resp.status_code == 404
