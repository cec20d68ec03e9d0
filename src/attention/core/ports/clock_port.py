from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable


class TimerHandle(ABC):
    """A pending one-shot or periodic callback."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class SchedulerPort(ABC):
    """Clock plus single-threaded callback scheduling.

    Delays and intervals are in seconds. Callbacks always run on the
    scheduler's own control flow, never concurrently with each other.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware wall-clock time."""
        pass

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        pass

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        pass
