from __future__ import annotations

import heapq
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Protocol

import structlog

logger = structlog.get_logger("chessacademy.scheduler")

Callback = Callable[[], None]


class TimerHandle(Protocol):
    @property
    def cancelled(self) -> bool:
        ...

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Source of periodic and delayed callbacks for a single session.

    Implementations must never run two callbacks at once, and ``lock`` is the
    lock they hold while a callback executes so callers can serialise their
    own access to the session against timer activity.
    """

    lock: threading.RLock

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        ...


class _ThreadHandle:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._timer: threading.Timer | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)

    def cancel(self) -> None:
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()


class ThreadingScheduler:
    """Wall-clock scheduler backed by daemon threads."""

    def __init__(self, *, lock: threading.RLock | None = None) -> None:
        self.lock = lock or threading.RLock()

    def call_later(self, delay: float, callback: Callback) -> _ThreadHandle:
        handle = _ThreadHandle()

        def _fire() -> None:
            with self.lock:
                if handle.cancelled:
                    return
                handle.cancel()
                self._run(callback)

        timer = threading.Timer(max(delay, 0.0), _fire)
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def call_every(self, interval: float, callback: Callback) -> _ThreadHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _ThreadHandle()

        def _loop() -> None:
            next_at = time.monotonic() + interval
            while not handle.wait(max(next_at - time.monotonic(), 0.0)):
                with self.lock:
                    if handle.cancelled:
                        return
                    self._run(callback)
                next_at += interval

        thread = threading.Thread(target=_loop, name="session-clock", daemon=True)
        thread.start()
        return handle

    @staticmethod
    def _run(callback: Callback) -> None:
        try:
            callback()
        except Exception:
            logger.exception("scheduled_callback_failed", callback=getattr(callback, "__qualname__", repr(callback)))
            raise


@dataclass
class _ManualHandle:
    interval: float | None = None
    _cancelled: bool = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    handle: _ManualHandle = field(compare=False)


class ManualScheduler:
    """Virtual-time scheduler driven explicitly through :meth:`advance`."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.now = 0.0
        self._queue: List[_Entry] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> _ManualHandle:
        handle = _ManualHandle()
        self._push(self.now + max(delay, 0.0), callback, handle)
        return handle

    def call_every(self, interval: float, callback: Callback) -> _ManualHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _ManualHandle(interval=interval)
        self._push(self.now + interval, callback, handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry.handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move virtual time forward, running every callback that falls due.

        Returns the number of callbacks executed.
        """
        target = self.now + max(seconds, 0.0)
        executed = 0
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            if entry.handle.cancelled:
                continue
            self.now = entry.due
            if entry.handle.interval is None:
                entry.handle.cancel()
            else:
                self._push(entry.due + entry.handle.interval, entry.callback, entry.handle)
            with self.lock:
                entry.callback()
            executed += 1
        self.now = target
        return executed

    def run_pending(self) -> int:
        return self.advance(0.0)

    def _push(self, due: float, callback: Callback, handle: _ManualHandle) -> None:
        heapq.heappush(self._queue, _Entry(due=due, seq=next(self._counter), callback=callback, handle=handle))


__all__ = ["ManualScheduler", "Scheduler", "ThreadingScheduler", "TimerHandle"]
