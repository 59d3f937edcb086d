import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from utils.logging_utils import logger


class ScheduledAction:
    """
    Handle for a single delayed callback.
    Cancelling is idempotent and a cancelled action never runs.
    """

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self._timer = None  # Backing asyncio handle, if any

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def run(self):
        if self.cancelled:
            return
        self.cancelled = True  # One-shot
        self._timer = None
        self.callback()


class Scheduler(ABC):
    """
    Cooperative single-threaded scheduler interface used by the timer engine.
    The engine only ever asks for "call this after N seconds" and cancels what it asked for.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledAction:
        """Schedule callback after delay seconds and return a cancellable handle"""
        pass

    @abstractmethod
    def now(self) -> float:
        """Current scheduler time in seconds"""
        pass


class AsyncioScheduler(Scheduler):
    """
    Wall-clock scheduler on top of the running asyncio event loop.
    Callbacks run on the loop thread, between request handlers.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledAction:
        action = ScheduledAction(self.now() + delay, callback)
        action._timer = self.loop.call_later(delay, action.run)
        return action


class SimulatedScheduler(Scheduler):
    """
    Virtual-clock scheduler. Time only moves when advance() is called,
    which makes whole workouts replayable in microseconds.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledAction]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledAction:
        action = ScheduledAction(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (action.when, next(self._sequence), action))
        return action

    @property
    def pending(self) -> int:
        """Number of scheduled actions that have not been cancelled"""
        return sum(1 for _, _, action in self._queue if not action.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every due action in time order.
        Actions scheduled while running (including zero-delay ones) are honoured
        if they fall inside the window. Returns the number of actions run.
        """
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, action = heapq.heappop(self._queue)
            if action.cancelled:
                continue
            self._now = max(self._now, when)
            action.run()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit: float = 24 * 3600) -> float:
        """Run until nothing is pending or limit seconds have elapsed; returns elapsed time"""
        start = self._now
        while self.pending and self._now - start < limit:
            next_when = min(when for when, _, action in self._queue if not action.cancelled)
            self.advance(next_when - self._now)
        if self.pending:
            logger.warning(f"SimulatedScheduler stopped with {self.pending} pending actions after {limit}s")
        return self._now - start
