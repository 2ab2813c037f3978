from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

import structlog

from src.chessacademy.domain.chess.session_clock import GameMode, GameResult, Side
from src.chessacademy.domain.chess.time_controls import PRESETS, QUICK_START, classify
from src.chessacademy.infrastructure.persistence.record_store import RecordStore, StoreResult

logger = structlog.get_logger("chessacademy.profiles")

DEFAULT_RATING = 1500
FALLBACK_NAME = "Chess Player"

# Profile column counting each per-side outcome.
OUTCOME_COUNTERS = {"win": "wins", "loss": "losses", "draw": "draws"}


@dataclass(frozen=True)
class ProfileStats:
    user_id: str
    username: str | None = None
    display_name: str | None = None
    blitz_elo: int = DEFAULT_RATING
    rapid_elo: int = DEFAULT_RATING
    bullet_elo: int = DEFAULT_RATING
    total_games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProfileStats":
        # Nullable columns fall back to the defaults a fresh profile shows.
        return cls(
            user_id=row["user_id"],
            username=row.get("username"),
            display_name=row.get("display_name"),
            blitz_elo=row.get("blitz_elo") or DEFAULT_RATING,
            rapid_elo=row.get("rapid_elo") or DEFAULT_RATING,
            bullet_elo=row.get("bullet_elo") or DEFAULT_RATING,
            total_games=row.get("total_games") or 0,
            wins=row.get("wins") or 0,
            losses=row.get("losses") or 0,
            draws=row.get("draws") or 0,
        )

    @property
    def greeting_name(self) -> str:
        return self.display_name or self.username or FALLBACK_NAME

    @property
    def win_rate(self) -> int:
        if self.total_games <= 0:
            return 0
        return round(self.wins / self.total_games * 100)

    def rating_for(self, game_type: str) -> int | None:
        control = PRESETS.get(game_type)
        if control is None or control.rating_field is None:
            return None
        return getattr(self, control.rating_field)

def outcome_for(result: GameResult, side: Side) -> str:
    """Translate a game result into ``win``/``loss``/``draw`` for ``side``."""
    winner = result.winner
    if winner is None:
        return "draw"
    return "win" if winner is side else "loss"


def quick_start_options() -> list[dict[str, Any]]:
    options = []
    for mode, preset in QUICK_START:
        control = PRESETS[preset]
        options.append(
            {
                "mode": mode,
                "timeControl": control.name,
                "initialSeconds": control.initial_seconds,
                "increment": control.increment_seconds,
                "label": control.label,
            }
        )
    return options


class ProfileService:
    """Dashboard reads and end-of-game bookkeeping for a user's profile."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def get_stats(self, user_id: str) -> StoreResult:
        result = self._store.select_one("profiles", user_id=user_id)
        if not result.ok:
            return result
        return StoreResult(data=ProfileStats.from_row(result.data))

    def dashboard(self, user_id: str) -> StoreResult:
        result = self.get_stats(user_id)
        if not result.ok:
            return result
        stats: ProfileStats = result.data
        return StoreResult(
            data={
                "userId": stats.user_id,
                "greetingName": stats.greeting_name,
                "ratings": {
                    "blitz": stats.blitz_elo,
                    "rapid": stats.rapid_elo,
                    "bullet": stats.bullet_elo,
                },
                "totalGames": stats.total_games,
                "wins": stats.wins,
                "losses": stats.losses,
                "draws": stats.draws,
                "winRate": stats.win_rate,
                "quickStart": quick_start_options(),
            }
        )

    def ensure_profile(
        self,
        user_id: str,
        *,
        username: str | None = None,
        display_name: str | None = None,
    ) -> StoreResult:
        values: dict[str, Any] = {"user_id": user_id}
        if username is not None:
            values["username"] = username
        if display_name is not None:
            values["display_name"] = display_name
        return self._store.upsert("profiles", values)

    def record_game(
        self,
        *,
        user_id: str | None,
        mode: GameMode,
        human_side: Side,
        initial_seconds: int,
        increment_seconds: int,
        result: GameResult,
        moves: Sequence[str],
        final_fen: str,
        termination: str | None = None,
        game_type: str | None = None,
        ai_engine: str | None = None,
    ) -> StoreResult:
        """Persist a finished game and count it on the player's profile.

        Best effort: the first store error is returned and nothing already
        written is rolled back.
        """
        resolved_type = game_type or classify(initial_seconds).name
        players = {Side.white: None, Side.black: None}
        if user_id is not None:
            players[human_side] = user_id
            if mode is GameMode.local:
                players[human_side.opponent] = user_id

        inserted = self._store.insert(
            "games",
            {
                "white_player_id": players[Side.white],
                "black_player_id": players[Side.black],
                "game_type": resolved_type,
                "time_control": initial_seconds,
                "increment": increment_seconds,
                "moves": list(moves),
                "result": result.value,
                "termination": termination,
                "final_position": final_fen,
                "ai_engine": ai_engine if mode is GameMode.ai else None,
                "ended_at": datetime.now(timezone.utc),
            },
        )
        if not inserted.ok:
            return inserted

        # Local games are played against oneself; they do not move the record.
        if user_id is None or mode is GameMode.local:
            return inserted

        outcome = outcome_for(result, human_side)
        counted = self._store.increment("profiles", ("total_games", OUTCOME_COUNTERS[outcome]), user_id=user_id)
        if not counted.ok:
            return counted
        if counted.data == 0:
            logger.info("profile_missing_for_game", user_id=user_id, game_id=inserted.data["id"])
        return inserted


__all__ = [
    "DEFAULT_RATING",
    "OUTCOME_COUNTERS",
    "ProfileService",
    "ProfileStats",
    "outcome_for",
    "quick_start_options",
]
