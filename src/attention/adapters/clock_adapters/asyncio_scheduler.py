import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class _LoopHandle(TimerHandle):
    def __init__(self):
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(SchedulerPort):
    """Schedules callbacks on a running asyncio event loop.

    Periodic callbacks are re-armed against absolute loop times so a slow
    callback does not push every later tick back.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _LoopHandle()

        def _fire():
            handle._handle = None
            if handle.cancelled:
                return
            handle._cancelled = True
            self._run_safely(callback)

        handle._handle = self.loop.call_later(max(0.0, delay), _fire)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _LoopHandle()
        first_due = self.loop.time() + interval

        def _fire(due: float):
            if handle.cancelled:
                return
            self._run_safely(callback)
            if handle.cancelled:
                return
            next_due = due + interval
            # Skip missed ticks instead of firing them in a burst.
            while next_due <= self.loop.time():
                next_due += interval
            handle._handle = self.loop.call_at(next_due, _fire, next_due)

        handle._handle = self.loop.call_at(first_due, _fire, first_due)
        return handle

    @staticmethod
    def _run_safely(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception(f"Scheduled callback {callback!r} failed")
