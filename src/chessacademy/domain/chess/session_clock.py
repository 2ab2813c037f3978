from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import chess
import structlog

from src.chessacademy.domain.chess.opponents import MoveSelector, RandomMoveSelector
from src.chessacademy.domain.chess.rules import (
    GameOutcome,
    MoveAttempt,
    apply_move,
    resolve_move,
)
from src.chessacademy.domain.chess.scheduler import Scheduler, TimerHandle

logger = structlog.get_logger("chessacademy.session")

TICK_SECONDS = 1.0


class Side(str, Enum):
    white = "white"
    black = "black"

    @property
    def opponent(self) -> "Side":
        return Side.black if self is Side.white else Side.white

    @classmethod
    def from_color(cls, color: chess.Color) -> "Side":
        return cls.white if color == chess.WHITE else cls.black


class GameMode(str, Enum):
    ai = "ai"
    local = "local"
    online = "online"


class GameStatus(str, Enum):
    playing = "playing"
    checkmate = "checkmate"
    draw = "draw"
    resigned = "resigned"


class GameResult(str, Enum):
    white_wins = "white_wins"
    black_wins = "black_wins"
    draw = "draw"

    @classmethod
    def win_for(cls, side: Side) -> "GameResult":
        return cls.white_wins if side is Side.white else cls.black_wins

    @property
    def winner(self) -> Side | None:
        if self is GameResult.white_wins:
            return Side.white
        if self is GameResult.black_wins:
            return Side.black
        return None


GameEndCallback = Callable[[GameResult, List[str]], None]


class SessionError(RuntimeError):
    """Base class for session-related domain errors."""

    code: str = "session_error"


class SessionNotFoundError(SessionError):
    code = "session_not_found"


class IllegalMoveError(SessionError):
    code = "illegal_move"


class SessionCompletedError(SessionError):
    code = "session_completed"


@dataclass(frozen=True, slots=True)
class ClockSettings:
    initial_seconds: int = 600
    increment_seconds: int = 0
    reply_delay_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.initial_seconds < 0:
            raise ValueError("initial_seconds must be non-negative")
        if self.increment_seconds < 0:
            raise ValueError("increment_seconds must be non-negative")
        if self.reply_delay_seconds < 0:
            raise ValueError("reply_delay_seconds must be non-negative")


@dataclass(frozen=True)
class SessionSnapshot:
    fen: str
    moves: Tuple[str, ...]
    white_remaining: int
    black_remaining: int
    active_side: Side
    status: GameStatus
    mode: GameMode
    human_side: Side
    result: GameResult | None = None
    termination: str | None = None
    thinking: bool = False


@dataclass
class _SessionState:
    board: chess.Board
    remaining: Dict[Side, int]
    active_side: Side
    moves: List[str] = field(default_factory=list)
    status: GameStatus = GameStatus.playing
    result: GameResult | None = None
    termination: str | None = None
    notified: bool = False


class SessionClock:
    """Turn and clock state machine for one game on one board.

    The session owns the position, the SAN history, both clocks and the game
    status. Every mutation happens inside a single event (a move attempt, an
    automated reply or a one-second tick) and the scheduler guarantees those
    events never interleave.
    """

    def __init__(
        self,
        *,
        mode: GameMode,
        scheduler: Scheduler,
        settings: ClockSettings | None = None,
        opponent: MoveSelector | None = None,
        human_side: Side = Side.white,
        on_game_end: GameEndCallback | None = None,
        initial_fen: str | None = None,
    ) -> None:
        self._mode = GameMode(mode)
        self._scheduler = scheduler
        self._settings = settings or ClockSettings()
        self._opponent = opponent or RandomMoveSelector()
        self._human_side = Side(human_side)
        self._on_game_end = on_game_end
        self._initial_fen = chess.Board(initial_fen).fen() if initial_fen else chess.STARTING_FEN
        self._timer: TimerHandle | None = None
        self._pending_reply: TimerHandle | None = None
        self._started = False
        self._closed = False
        self._state = self._fresh_state()

    # -- read model ---
    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def settings(self) -> ClockSettings:
        return self._settings

    @property
    def human_side(self) -> Side:
        return self._human_side

    @property
    def automated_side(self) -> Side | None:
        return self._human_side.opponent if self._mode is GameMode.ai else None

    @property
    def opponent(self) -> MoveSelector:
        return self._opponent

    @property
    def status(self) -> GameStatus:
        return self._state.status

    @property
    def result(self) -> GameResult | None:
        return self._state.result

    @property
    def termination(self) -> str | None:
        return self._state.termination

    @property
    def active_side(self) -> Side:
        return self._state.active_side

    @property
    def moves(self) -> List[str]:
        return list(self._state.moves)

    @property
    def fen(self) -> str:
        return self._state.board.fen()

    @property
    def thinking(self) -> bool:
        return self._pending_reply is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def remaining(self, side: Side) -> int:
        return self._state.remaining[Side(side)]

    def board(self) -> chess.Board:
        """Return a copy of the current position."""
        return self._state.board.copy()

    def snapshot(self) -> SessionSnapshot:
        state = self._state
        return SessionSnapshot(
            fen=state.board.fen(),
            moves=tuple(state.moves),
            white_remaining=state.remaining[Side.white],
            black_remaining=state.remaining[Side.black],
            active_side=state.active_side,
            status=state.status,
            mode=self._mode,
            human_side=self._human_side,
            result=state.result,
            termination=state.termination,
            thinking=self.thinking,
        )

    # -- lifecycle ---
    def start(self) -> None:
        """Arm the clock and, if the automated side moves first, its reply."""
        if self._closed or self._started:
            return
        self._started = True
        self._arm()

    def reset(self) -> None:
        if self._closed:
            return
        self._cancel_timers()
        self._state = self._fresh_state()
        logger.info("session_reset", mode=self._mode.value)
        if self._started:
            self._arm()

    def close(self) -> None:
        """Release the clock and any pending reply; the session becomes inert."""
        self._cancel_timers()
        self._closed = True

    # -- events ---
    def submit_move(self, from_square: str, to_square: str, promotion: str | None = "q") -> bool:
        if self._closed or self._state.status is not GameStatus.playing:
            return False
        if self._mode is GameMode.ai and (
            self._state.active_side is not self._human_side or self._pending_reply is not None
        ):
            return False

        attempt = MoveAttempt(from_square=from_square, to_square=to_square, promotion=promotion)
        try:
            move = resolve_move(self._state.board, attempt)
        except ValueError:
            move = None
        if move is None:
            logger.debug("move_rejected", from_square=from_square, to_square=to_square, promotion=promotion)
            return False

        self._accept(move)
        if self._state.status is GameStatus.playing and self._mode is GameMode.ai:
            self._schedule_reply()
        return True

    def automated_reply(self) -> bool:
        if self._pending_reply is not None:
            self._pending_reply.cancel()
            self._pending_reply = None
        if self._closed or self._state.status is not GameStatus.playing:
            return False
        if self._state.active_side is not self.automated_side:
            return False

        try:
            move = self._opponent.select_move(self._state.board.copy())
        except ValueError:
            logger.warning("automated_reply_unavailable", fen=self.fen)
            return False
        if move not in self._state.board.legal_moves:
            logger.warning(
                "automated_reply_rejected",
                selector=getattr(self._opponent, "name", type(self._opponent).__name__),
                uci=move.uci(),
            )
            return False

        self._accept(move)
        return True

    def tick(self) -> None:
        if self._closed or self._state.status is not GameStatus.playing:
            return
        side = self._state.active_side
        remaining = max(self._state.remaining[side] - 1, 0)
        self._state.remaining[side] = remaining
        if remaining == 0:
            # A flag fall is reported with the checkmate status.
            self._finish(GameStatus.checkmate, GameResult.win_for(side.opponent), "time_forfeit")

    def resign(self, side: Side) -> bool:
        if self._closed or self._state.status is not GameStatus.playing:
            return False
        resigning = Side(side)
        self._finish(GameStatus.resigned, GameResult.win_for(resigning.opponent), "resignation")
        return True

    # -- internals ---
    def _fresh_state(self) -> _SessionState:
        board = chess.Board(self._initial_fen)
        initial = self._settings.initial_seconds
        return _SessionState(
            board=board,
            remaining={Side.white: initial, Side.black: initial},
            active_side=Side.from_color(board.turn),
        )

    def _arm(self) -> None:
        if self._state.status is not GameStatus.playing:
            return
        self._timer = self._scheduler.call_every(TICK_SECONDS, self.tick)
        if self._state.active_side is self.automated_side:
            self._schedule_reply()

    def _schedule_reply(self) -> None:
        if self._pending_reply is not None:
            return
        self._pending_reply = self._scheduler.call_later(
            self._settings.reply_delay_seconds,
            self.automated_reply,
        )

    def _accept(self, move: chess.Move) -> None:
        state = self._state
        mover = state.active_side
        applied = apply_move(state.board, move)

        state.board = applied.board
        state.moves.append(applied.san)
        state.remaining[mover] += self._settings.increment_seconds
        state.active_side = mover.opponent
        logger.debug("move_accepted", side=mover.value, san=applied.san, ply=len(state.moves))

        if applied.outcome is not None:
            self._finish_from_outcome(applied.outcome)

    def _finish_from_outcome(self, outcome: GameOutcome) -> None:
        if outcome.winner is None:
            self._finish(GameStatus.draw, GameResult.draw, outcome.termination)
            return
        status = GameStatus.checkmate if outcome.is_checkmate else GameStatus.draw
        result = GameResult.win_for(Side.from_color(outcome.winner)) if outcome.is_checkmate else GameResult.draw
        self._finish(status, result, outcome.termination)

    def _finish(self, status: GameStatus, result: GameResult, termination: str) -> None:
        state = self._state
        state.status = status
        state.result = result
        state.termination = termination
        self._cancel_timers()

        logger.info(
            "game_finished",
            status=status.value,
            result=result.value,
            termination=termination,
            plies=len(state.moves),
        )
        if state.notified:
            return
        state.notified = True
        if self._on_game_end is not None:
            self._on_game_end(result, list(state.moves))

    def _cancel_timers(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending_reply is not None:
            self._pending_reply.cancel()
            self._pending_reply = None


__all__ = [
    "ClockSettings",
    "GameEndCallback",
    "GameMode",
    "GameResult",
    "GameStatus",
    "IllegalMoveError",
    "SessionClock",
    "SessionCompletedError",
    "SessionError",
    "SessionNotFoundError",
    "SessionSnapshot",
    "Side",
    "TICK_SECONDS",
]
