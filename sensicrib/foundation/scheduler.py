"""Cancellable one-shot timers.

Every temporal behaviour in the core (motion sustain, sound decay, popup
auto-hide) is expressed as ``schedule_once(delay, callback)`` plus an
idempotent ``cancel(handle)``.  Two backends exist:

    - AsyncioScheduler: backed by ``loop.call_later`` on the running loop.
    - VirtualScheduler: a deterministic clock that only moves when told to.
      Used for tests and for replaying recorded readings.

GuardedScheduler wraps either backend so callbacks run under a lock.

``now()`` is a monotonic seconds counter, not wall-clock time.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from contextlib import AbstractContextManager
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle:
    """Opaque reference to a scheduled callback."""

    __slots__ = ("due", "callback", "cancelled", "fired", "_native")

    def __init__(self, due: float, callback: Callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False
        self._native: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def __repr__(self) -> str:
        state = "pending" if self.pending else ("fired" if self.fired else "cancelled")
        return f"TimerHandle(due={self.due:.3f}, {state})"


class Scheduler(Protocol):
    """Protocol every timer backend satisfies."""

    def now(self) -> float:
        """Monotonic seconds."""
        ...

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        ...

    def cancel(self, handle: TimerHandle | None) -> None:
        """Cancel *handle*.  A None, fired or already-cancelled handle is a no-op."""
        ...


class AsyncioScheduler:
    """Scheduler running callbacks on the current asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        if self._loop is None:
            return time.monotonic()
        return self._loop.time()

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        loop = self._get_loop()
        handle = TimerHandle(loop.time() + delay, callback)

        def _run() -> None:
            if not handle.pending:
                return
            handle.fired = True
            try:
                callback()
            except Exception:
                logger.exception("Timer callback %r failed", callback)

        handle._native = loop.call_later(max(delay, 0.0), _run)
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None or not handle.pending:
            return
        handle.cancelled = True
        if handle._native is not None:
            handle._native.cancel()


class VirtualScheduler:
    """Deterministic scheduler whose clock only moves via advance().

    Callbacks run synchronously inside advance(), in due-time order, with
    the clock set to each callback's due time while it runs.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None or not handle.pending:
            return
        handle.cancelled = True

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.pending)

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*, firing due timers on the way."""
        if seconds < 0:
            raise ValueError("cannot move a virtual clock backwards")
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.pending:
                continue
            self._now = due
            handle.fired = True
            handle.callback()
        self._now = target


class GuardedScheduler:
    """Wraps another scheduler so every callback runs while holding *lock*.

    Timer callbacks mutate the same state as the owner's public methods.
    Routing them through the owner's lock keeps a callback from
    interleaving with a reading or a cancellation delivered on another
    thread.  A handle cancelled after it fired but before its callback got
    the lock is honoured: the callback is skipped.
    """

    def __init__(self, inner: Scheduler, lock: AbstractContextManager) -> None:
        self._inner = inner
        self._lock = lock

    def now(self) -> float:
        return self._inner.now()

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        issued: list[TimerHandle] = []

        def _locked() -> None:
            with self._lock:
                if issued and issued[0].cancelled:
                    return
                callback()

        handle = self._inner.schedule_once(delay, _locked)
        issued.append(handle)
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None:
            return
        if handle.pending:
            self._inner.cancel(handle)
        else:
            # Fired but possibly still waiting for the lock
            handle.cancelled = True
