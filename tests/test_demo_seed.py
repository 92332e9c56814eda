"""Tests for the demo seeding script."""

from pathlib import Path

from matchday.db.engine import create_engine, create_tables
from scripts.demo_seed import TEAMS, play, seed, status


def _db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'demo.db'}"


class TestDemoSeed:
    async def test_seed_play_status(self, tmp_path: Path, capsys):
        url = _db_url(tmp_path)

        league_id = await seed(url)
        assert league_id
        out = capsys.readouterr().out
        assert f"{len(TEAMS)} teams, 30 fixtures" in out

        played = await play(2, database_url=url)
        assert played == 6  # 3 matches per round for six teams

        await status(url)
        out = capsys.readouterr().out
        assert "Played: 6 | Left: 24" in out
        assert "Rose City Thorns" in out
        assert out.count("\n") >= len(TEAMS) + 2

    async def test_play_without_league(self, tmp_path: Path, capsys):
        url = _db_url(tmp_path)
        engine = create_engine(url)
        await create_tables(engine)
        await engine.dispose()

        assert await play(1, database_url=url) == 0
        assert "Run 'seed' first" in capsys.readouterr().out
