from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from src.chessacademy.infrastructure.config import load_config
from src.chessacademy.infrastructure.persistence import (
    RecordStore,
    create_engine_from_config,
    create_session_factory,
)
from src.chessacademy.interface.cli.main import cli


@pytest.fixture()
def database_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'academy.db'}")
    return tmp_path


def _stored_lessons() -> list[dict]:
    engine = create_engine_from_config(load_config())
    try:
        return RecordStore(create_session_factory(engine=engine)).select("lessons", order_by="title").data
    finally:
        engine.dispose()


def test_init_db_creates_schema(database_env):
    result = CliRunner().invoke(cli, ["init-db"])

    assert result.exit_code == 0, result.output
    assert "Schema ready" in result.output
    assert (database_env / "academy.db").exists()


def test_seed_lessons_is_idempotent(database_env):
    seed_file = database_env / "lessons.json"
    seed_file.write_text(
        json.dumps(
            [
                {"title": "Opening principles", "category": "openings", "difficulty": "beginner"},
                {
                    "id": "lesson-pins",
                    "title": "Pins",
                    "category": "tactics",
                    "difficulty": "intermediate",
                    "content": {"puzzles": 3},
                },
            ]
        ),
        encoding="utf-8",
    )
    runner = CliRunner()

    first = runner.invoke(cli, ["seed-lessons", str(seed_file)])
    second = runner.invoke(cli, ["seed-lessons", str(seed_file)])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "Seeded 2 lessons" in second.output
    lessons = _stored_lessons()
    assert [lesson["title"] for lesson in lessons] == ["Opening principles", "Pins"]
    assert lessons[1]["id"] == "lesson-pins"
    assert lessons[1]["content"] == {"puzzles": 3}


def test_seed_lessons_uses_configured_path(database_env, monkeypatch):
    seed_file = database_env / "configured.json"
    seed_file.write_text(json.dumps([{"title": "Forks", "category": "tactics"}]), encoding="utf-8")
    monkeypatch.setenv("LESSONS_SEED_PATH", str(seed_file))

    result = CliRunner().invoke(cli, ["seed-lessons"])

    assert result.exit_code == 0, result.output
    assert "Seeded 1 lessons" in result.output


def test_seed_lessons_rejects_incomplete_entries(database_env):
    seed_file = database_env / "broken.json"
    seed_file.write_text(json.dumps([{"title": "No category"}]), encoding="utf-8")

    result = CliRunner().invoke(cli, ["seed-lessons", str(seed_file)])

    assert result.exit_code != 0
    assert "missing category" in result.output


def test_simulate_reports_tally():
    result = CliRunner().invoke(cli, ["simulate", "--games", "3", "--time-control", "bullet", "--seed", "4"])

    assert result.exit_code == 0, result.output
    assert "Played 3 bullet games (60+0)." in result.output
    assert "Average plies:" in result.output
    tallies = [line.split() for line in result.output.splitlines() if line.startswith("  ")]
    assert sum(int(count) for _, count in tallies) == 3


def test_simulate_rejects_non_positive_game_count():
    result = CliRunner().invoke(cli, ["simulate", "--games", "0"])

    assert result.exit_code != 0
