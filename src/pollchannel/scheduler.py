"""Single-threaded cooperative timer scheduling.

Every piece of deferred work (poll cycles, debounce timers, the bootstrap
settle delay) is a callback registered on a Scheduler. The scheduler runs
callbacks one at a time in due-time order and never in parallel. A Clock
decides how waiting happens: RealClock sleeps, VirtualClock just moves its
reading forward so tests can step through time deterministically.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class RealClock:
    """Wall-clock time backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class VirtualClock:
    """Manually advanced clock. sleep() returns immediately."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self._now += seconds

    def advance_to(self, when: float) -> None:
        if when > self._now:
            self._now = when


class TimerHandle:
    """A scheduled callback. Cancelling only flags it; the scheduler skips it."""

    __slots__ = ("when", "callback", "args", "cancelled")

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "pending"
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"<TimerHandle {name} when={self.when:.3f} {state}>"


class Scheduler:
    """Heap of timers executed in order of due time, then insertion order."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or RealClock()
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._running = False

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.clock.now() + max(0.0, delay), callback, args)
        heapq.heappush(self._heap, (handle.when, next(self._seq), handle))
        return handle

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return self.call_later(0.0, callback, *args)

    @property
    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def _pop_live(self) -> TimerHandle | None:
        while self._heap:
            _, _, handle = self._heap[0]
            if handle.cancelled:
                heapq.heappop(self._heap)
                continue
            return handle
        return None

    def _run(self, handle: TimerHandle) -> None:
        heapq.heappop(self._heap)
        try:
            handle.callback(*handle.args)
        except Exception:
            logger.exception("Unhandled error in scheduled callback %r", handle)

    def run_once(self) -> bool:
        """Wait for the next live timer and run it. Returns False when idle."""
        handle = self._pop_live()
        if handle is None:
            return False
        self.clock.sleep(handle.when - self.clock.now())
        self._run(handle)
        return True

    def run_for(self, duration: float) -> int:
        """Run every timer due within ``duration`` from now.

        The clock ends exactly ``duration`` later even when the scheduler goes
        idle before that. Returns the number of callbacks executed.
        """
        deadline = self.clock.now() + duration
        executed = 0
        while True:
            handle = self._pop_live()
            if handle is None or handle.when > deadline:
                break
            self.clock.sleep(handle.when - self.clock.now())
            self._run(handle)
            executed += 1
        self.clock.sleep(deadline - self.clock.now())
        return executed

    def run_forever(self) -> None:
        """Run timers until stop() is called or nothing is left to run."""
        self._running = True
        try:
            while self._running and self.run_once():
                pass
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
