import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

DEFAULT_EPOCH = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


class _ManualHandle(TimerHandle):
    def __init__(self, callback: Callable[[], None], interval: Optional[float]):
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(SchedulerPort):
    """A synthetic clock for tests and log replays.

    Time only moves when ``advance`` is called; due callbacks then run in
    due-time order with the clock set to their due time.
    """

    def __init__(self, epoch: datetime = DEFAULT_EPOCH):
        self._epoch = epoch
        self._now = 0.0
        self._queue: list = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._epoch + timedelta(seconds=self._now)

    def monotonic(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(callback, None)
        self._push(self._now + max(0.0, delay), handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _ManualHandle(callback, interval)
        self._push(self._now + interval, handle)
        return handle

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, due)
            if handle.interval is None:
                handle._cancelled = True
            try:
                handle.callback()
            except Exception:
                logger.exception(f"Scheduled callback {handle.callback!r} failed")
            if handle.interval is not None and not handle.cancelled:
                self._push(due + handle.interval, handle)
        self._now = max(self._now, target)

    def advance_ms(self, milliseconds: float) -> None:
        self.advance(milliseconds / 1000)

    @property
    def pending(self) -> int:
        """Number of live callbacks still waiting to fire."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def _push(self, due: float, handle: _ManualHandle) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle))
