"""
Schedulers that decide when the next loop tick runs.

The loop controller only ever asks for "call this after N seconds" and
"forget that call". SchedScheduler runs callbacks on the calling thread via
the standard library event scheduler; ManualScheduler runs them only when a
test advances its clock.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import sched
import time
from typing import Any, Callable, List, Optional, Protocol, Tuple


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class SchedScheduler:
    """Single-threaded event scheduler. run() blocks until nothing is pending."""

    def __init__(self):
        self._sched = sched.scheduler(time.monotonic, time.sleep)

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> sched.Event:
        return self._sched.enter(max(0.0, delay_s), 0, callback)

    def cancel(self, handle: sched.Event) -> None:
        try:
            self._sched.cancel(handle)
        except ValueError:
            # Already ran or already cancelled
            logging.debug("Scheduled tick was no longer pending")

    @property
    def pending(self) -> int:
        return len(self._sched.queue)

    def run(self) -> None:
        self._sched.run()


class ManualScheduler:
    """
    Deterministic scheduler driven by an explicit clock.

    Example:
        scheduler = ManualScheduler()
        controller = LoopController(ctx, scheduler, LoopConfig(interval_ms=100))
        controller.start()
        scheduler.advance(1.0)  # runs every tick due within the next second
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, Callable[[], Any]]] = []
        self._cancelled: set = set()
        self._seq = itertools.count()

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> int:
        handle = next(self._seq)
        heapq.heappush(self._queue, (self.now + max(0.0, delay_s), handle, callback))
        return handle

    def cancel(self, handle: int) -> None:
        self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        return sum(1 for _, h, _ in self._queue if h not in self._cancelled)

    def run_next(self) -> bool:
        """Run the earliest pending callback, moving the clock to its due time."""
        while self._queue:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self.now = max(self.now, due)
            callback()
            return True
        return False

    def advance(self, seconds: float) -> int:
        """Run everything due within the next `seconds`; returns callbacks run."""
        target = self.now + seconds
        ran = 0
        while self._queue:
            due, handle, _ = self._queue[0]
            if handle in self._cancelled:
                heapq.heappop(self._queue)
                self._cancelled.discard(handle)
                continue
            if due > target:
                break
            self.run_next()
            ran += 1
        self.now = target
        return ran

    def run_until_idle(self, max_steps: Optional[int] = None) -> int:
        ran = 0
        while max_steps is None or ran < max_steps:
            if not self.run_next():
                break
            ran += 1
        return ran
