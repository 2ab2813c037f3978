from __future__ import annotations

import json
import random
from collections import Counter
from pathlib import Path
from uuid import NAMESPACE_URL, uuid5

import click

from src.chessacademy.domain.chess import PRESETS, ClockSettings, get_time_control
from src.chessacademy.domain.chess.simulation import play_random_game
from src.chessacademy.infrastructure.config import load_config
from src.chessacademy.infrastructure.persistence import (
    Base,
    RecordStore,
    create_engine_from_config,
    create_session_factory,
)

REQUIRED_LESSON_FIELDS = ("title", "category")


def _store() -> RecordStore:
    config = load_config()
    engine = create_engine_from_config(config)
    Base.metadata.create_all(bind=engine)
    return RecordStore(create_session_factory(engine=engine))


def _lesson_id(entry: dict) -> str:
    # Stable ids keep re-seeding idempotent for lessons without an explicit id.
    return str(entry.get("id") or uuid5(NAMESPACE_URL, f"chessacademy:lesson:{entry['title']}"))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """ChessAcademy maintenance and simulation commands."""


@cli.command("init-db")
def init_db() -> None:
    """Create every table the application uses."""
    config = load_config()
    engine = create_engine_from_config(config)
    Base.metadata.create_all(bind=engine)
    click.secho(f"Schema ready at {engine.url.render_as_string(hide_password=True)}", fg="green")


@cli.command("seed-lessons")
@click.argument(
    "path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=False,
)
def seed_lessons(path: Path | None) -> None:
    """Upsert lessons from a JSON array of lesson objects."""
    if path is None:
        configured = load_config().additional.get("LESSONS_SEED_PATH")
        if not configured:
            raise click.UsageError("Pass PATH or set LESSONS_SEED_PATH.")
        path = Path(configured)

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise click.ClickException(f"Cannot read lessons from {path}: {exc}") from exc
    if not isinstance(entries, list):
        raise click.ClickException("Lesson file must contain a JSON array.")

    store = _store()
    seeded = 0
    for index, entry in enumerate(entries):
        missing = [name for name in REQUIRED_LESSON_FIELDS if not entry.get(name)]
        if missing:
            raise click.ClickException(f"Lesson #{index} is missing {', '.join(missing)}.")
        result = store.upsert(
            "lessons",
            {
                "id": _lesson_id(entry),
                "title": entry["title"],
                "category": entry["category"],
                "description": entry.get("description"),
                "difficulty": entry.get("difficulty"),
                "content": entry.get("content") or {},
                "is_active": entry.get("is_active", True),
            },
        )
        if not result.ok:
            raise click.ClickException(f"Failed to store lesson {entry['title']!r}: {result.error}")
        seeded += 1

    click.secho(f"Seeded {seeded} lessons from {path}", fg="green")


@cli.command("simulate")
@click.option("--games", type=int, default=10, show_default=True, help="Number of games to play.")
@click.option(
    "--time-control",
    type=click.Choice(sorted(PRESETS)),
    default="bullet",
    show_default=True,
)
@click.option("--increment", type=int, default=None, help="Override the preset increment.")
@click.option("--think-seconds", type=float, default=1.0, show_default=True, help="Virtual seconds white spends per move.")
@click.option("--reply-delay", type=float, default=1.0, show_default=True, help="Virtual seconds before black replies.")
@click.option("--max-plies", type=int, default=400, show_default=True)
@click.option("--seed", type=int, default=0, show_default=True)
def simulate(
    games: int,
    time_control: str,
    increment: int | None,
    think_seconds: float,
    reply_delay: float,
    max_plies: int,
    seed: int,
) -> None:
    """Play random-vs-random games on virtual time and tally the results."""
    if games <= 0:
        raise click.BadParameter("must be positive", param_hint="--games")

    control = get_time_control(time_control)
    try:
        settings = ClockSettings(
            initial_seconds=control.initial_seconds,
            increment_seconds=control.increment_seconds if increment is None else increment,
            reply_delay_seconds=reply_delay,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    rng = random.Random(seed)
    results: Counter[str] = Counter()
    terminations: Counter[str] = Counter()
    total_plies = 0
    for _ in range(games):
        game = play_random_game(settings, rng=rng, think_seconds=think_seconds, max_plies=max_plies)
        results[game.result.value if game.result else "unfinished"] += 1
        terminations[game.termination or "unfinished"] += 1
        total_plies += len(game.moves)

    click.echo(f"Played {games} {control.name} games ({settings.initial_seconds}+{settings.increment_seconds}).")
    for key in ("white_wins", "black_wins", "draw", "unfinished"):
        click.echo(f"  {key:<12} {results[key]}")
    click.echo("Terminations: " + ", ".join(f"{name}={count}" for name, count in sorted(terminations.items())))
    click.echo(f"Average plies: {total_plies / games:.1f}")


if __name__ == "__main__":  # pragma: no cover
    cli()


__all__ = ["cli"]
