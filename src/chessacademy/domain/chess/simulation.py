from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Tuple

import chess

from src.chessacademy.domain.chess.opponents import RandomMoveSelector
from src.chessacademy.domain.chess.scheduler import ManualScheduler
from src.chessacademy.domain.chess.session_clock import (
    ClockSettings,
    GameMode,
    GameResult,
    GameStatus,
    SessionClock,
    Side,
)


@dataclass(frozen=True)
class SimulatedGame:
    result: GameResult | None
    termination: str | None
    moves: Tuple[str, ...]
    white_remaining: int
    black_remaining: int
    elapsed_seconds: float


def play_random_game(
    settings: ClockSettings,
    *,
    rng: random.Random | None = None,
    think_seconds: float = 1.0,
    max_plies: int = 400,
) -> SimulatedGame:
    """Play random-vs-random on virtual time through the regular session path.

    White is driven like a human player that spends ``think_seconds`` per
    move; black is the session's automated opponent. Games still running
    after ``max_plies`` are returned with no result.
    """
    rng = rng or random.Random()
    scheduler = ManualScheduler()
    finished: List[GameResult] = []
    clock = SessionClock(
        mode=GameMode.ai,
        scheduler=scheduler,
        settings=settings,
        opponent=RandomMoveSelector(rng),
        human_side=Side.white,
        on_game_end=lambda result, _moves: finished.append(result),
    )
    white = RandomMoveSelector(rng)

    clock.start()
    while clock.status is GameStatus.playing and len(clock.moves) < max_plies:
        scheduler.advance(think_seconds)
        if clock.status is not GameStatus.playing:
            break
        move = white.select_move(clock.board())
        clock.submit_move(
            chess.square_name(move.from_square),
            chess.square_name(move.to_square),
            chess.piece_symbol(move.promotion) if move.promotion else None,
        )
        scheduler.advance(settings.reply_delay_seconds)

    snapshot = clock.snapshot()
    clock.close()
    return SimulatedGame(
        result=finished[0] if finished else None,
        termination=snapshot.termination,
        moves=snapshot.moves,
        white_remaining=snapshot.white_remaining,
        black_remaining=snapshot.black_remaining,
        elapsed_seconds=scheduler.now,
    )


__all__ = ["SimulatedGame", "play_random_game"]
