from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Callable, Dict, List
from uuid import UUID, uuid4

from src.chessacademy.domain.chess import (
    ClockSettings,
    GameMode,
    GameResult,
    GameStatus,
    MoveSelector,
    RandomMoveSelector,
    Scheduler,
    SessionClock,
    SessionNotFoundError,
    Side,
    ThreadingScheduler,
    TimeControl,
)
from src.chessacademy.domain.profiles import ProfileService
from src.chessacademy.interface.telemetry.logging import get_logger

logger = get_logger("chessacademy.registry")

DEFAULT_RETENTION_SECONDS = 900.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LiveSession:
    id: UUID
    clock: SessionClock
    scheduler: Scheduler
    time_control: TimeControl
    user_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notices: List[dict[str, str]] = field(default_factory=list)
    ended_at: datetime | None = None


class SessionRegistry:
    """Owns the live sessions served over HTTP, one scheduler each."""

    def __init__(
        self,
        *,
        profiles: ProfileService,
        scheduler_factory: Callable[[], Scheduler] = ThreadingScheduler,
        opponent_factory: Callable[[], MoveSelector] = RandomMoveSelector,
        reply_delay_seconds: float = 0.5,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._profiles = profiles
        self._scheduler_factory = scheduler_factory
        self._opponent_factory = opponent_factory
        self._reply_delay_seconds = reply_delay_seconds
        self._retention = timedelta(seconds=retention_seconds)
        self._now = now
        self._sessions: Dict[UUID, LiveSession] = {}
        self._lock = threading.Lock()

    def create(
        self,
        *,
        mode: GameMode,
        time_control: TimeControl,
        human_side: Side = Side.white,
        user_id: str | None = None,
    ) -> LiveSession:
        self.evict_finished()
        session_id = uuid4()
        scheduler = self._scheduler_factory()
        clock = SessionClock(
            mode=mode,
            scheduler=scheduler,
            settings=ClockSettings(
                initial_seconds=time_control.initial_seconds,
                increment_seconds=time_control.increment_seconds,
                reply_delay_seconds=self._reply_delay_seconds,
            ),
            opponent=self._opponent_factory(),
            human_side=human_side,
            on_game_end=partial(self._record_game, session_id),
        )
        live = LiveSession(
            id=session_id,
            clock=clock,
            scheduler=scheduler,
            time_control=time_control,
            user_id=user_id,
            created_at=self._now(),
        )
        with self._lock:
            self._sessions[session_id] = live
        with scheduler.lock:
            clock.start()
        return live

    def get(self, session_id: UUID) -> LiveSession:
        with self._lock:
            live = self._sessions.get(session_id)
        if live is None:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        return live

    def close(self, session_id: UUID) -> LiveSession:
        with self._lock:
            live = self._sessions.pop(session_id, None)
        if live is None:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        with live.scheduler.lock:
            live.clock.close()
        return live

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for live in sessions:
            with live.scheduler.lock:
                live.clock.close()

    def evict_finished(self) -> int:
        """Drop sessions that ended longer ago than the retention window."""
        cutoff = self._now() - self._retention
        with self._lock:
            expired = [
                live
                for live in self._sessions.values()
                if live.ended_at is not None
                and live.ended_at <= cutoff
                and live.clock.status is not GameStatus.playing
            ]
            for live in expired:
                del self._sessions[live.id]
        for live in expired:
            with live.scheduler.lock:
                live.clock.close()
        if expired:
            logger.info("finished_sessions_evicted", count=len(expired), live=len(self))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _record_game(self, session_id: UUID, result: GameResult, moves: List[str]) -> None:
        with self._lock:
            live = self._sessions.get(session_id)
        if live is None:
            return

        live.ended_at = self._now()
        clock = live.clock
        saved = self._profiles.record_game(
            user_id=live.user_id,
            mode=clock.mode,
            human_side=clock.human_side,
            initial_seconds=clock.settings.initial_seconds,
            increment_seconds=clock.settings.increment_seconds,
            result=result,
            moves=moves,
            final_fen=clock.fen,
            termination=clock.termination,
            game_type=live.time_control.name,
            ai_engine=clock.opponent.name,
        )
        if not saved.ok:
            logger.warning("game_record_failed", session_id=str(session_id), error=saved.error)
            live.notices.append({"code": "game_not_saved", "message": "Failed to save the game result."})
            return
        logger.info("game_recorded", session_id=str(session_id), game_id=saved.data["id"], result=result.value)


__all__ = ["LiveSession", "SessionRegistry"]
