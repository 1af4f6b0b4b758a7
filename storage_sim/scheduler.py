"""Cancellable scheduling for the autonomous training loop."""

from __future__ import annotations

import heapq
import itertools
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable


class ScheduledCall:
    def __init__(self, callback: Callable[[], Any]):
        self.callback = callback
        self.cancelled = False
        self._timer: threading.Timer | None = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def run(self) -> None:
        if not self.cancelled:
            self.callback()


class Scheduler(ABC):
    """Runs a callback once after a delay; the returned handle can be cancelled."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        ...


class ThreadingScheduler(Scheduler):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(callback)
        timer = threading.Timer(delay, call.run)
        timer.daemon = True
        call._timer = timer
        timer.start()
        return call


class ManualScheduler(Scheduler):
    """Fake clock: callbacks run only when ``advance`` moves time past their deadline."""

    def __init__(self):
        self.now = 0.0
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(callback)
        heapq.heappush(self._queue, (self.now + max(0.0, delay), next(self._seq), call))
        return call

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run everything that became due. Returns calls run."""
        deadline = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, call = heapq.heappop(self._queue)
            self.now = due
            if call.cancelled:
                continue
            call.run()
            ran += 1
        self.now = deadline
        return ran


class TrainingLoop:
    """Recurring tick that performs one step per interval until stopped."""

    def __init__(
        self,
        tick: Callable[[], Any],
        scheduler: Scheduler | None = None,
        interval: float = 0.1,
        lock: threading.RLock | None = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.tick = tick
        self.scheduler = scheduler or ThreadingScheduler()
        self.interval = float(interval)
        self._lock = lock or threading.RLock()
        self._pending: ScheduledCall | None = None
        self._generation = 0
        self._running = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> bool:
        with self._lock:
            if self._running:
                return False
            self._running = True
            self._generation += 1
            self._schedule(self._generation)
            return True

    def stop(self) -> bool:
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._generation += 1
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            return True

    def _schedule(self, generation: int) -> None:
        self._pending = self.scheduler.call_later(self.interval, lambda: self._fire(generation))

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a timer that raced with stop() belongs to an old generation
            if not self._running or generation != self._generation:
                return
            self._pending = None
            try:
                self.tick()
                self.ticks += 1
            finally:
                if self._running and generation == self._generation:
                    self._schedule(generation)
