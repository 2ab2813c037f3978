from .opponents import MoveSelector, RandomMoveSelector
from .rules import MoveAttempt
from .scheduler import ManualScheduler, Scheduler, ThreadingScheduler
from .session_clock import (
    ClockSettings,
    GameMode,
    GameResult,
    GameStatus,
    IllegalMoveError,
    SessionClock,
    SessionCompletedError,
    SessionError,
    SessionNotFoundError,
    SessionSnapshot,
    Side,
)
from .time_controls import PRESETS, QUICK_START, TimeControl, get_time_control

__all__ = [
    "ClockSettings",
    "GameMode",
    "GameResult",
    "GameStatus",
    "IllegalMoveError",
    "ManualScheduler",
    "MoveAttempt",
    "MoveSelector",
    "PRESETS",
    "QUICK_START",
    "RandomMoveSelector",
    "Scheduler",
    "SessionClock",
    "SessionCompletedError",
    "SessionError",
    "SessionNotFoundError",
    "SessionSnapshot",
    "Side",
    "ThreadingScheduler",
    "TimeControl",
    "get_time_control",
]
