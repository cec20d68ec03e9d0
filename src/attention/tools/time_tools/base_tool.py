from abc import ABC, abstractmethod
from typing import Optional

from attention.core.models import SoundKind
from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.core.ports.notification_port import NotificationPort
from attention.utils import Event
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

TICK_INTERVAL = 1.0  # seconds
EPSILON = 1e-6


class TimeTool(ABC):
    """
    An abstract base class for cyclic countdown tools (Pomodoro, eye care).
    It owns the single periodic tick, which only exists while the tool is
    active, and the event hooks shared by every tool.

    Subclasses keep absolute monotonic timestamps for the current phase and
    recompute what is left on each tick instead of decrementing a counter.
    """
    def __init__(self, scheduler: SchedulerPort, notifier: Optional[NotificationPort] = None):
        """Initializes the TimeTool with default states and event hooks."""
        self.scheduler = scheduler
        self.notifier = notifier
        self._is_active = False
        self._tick_handle: Optional[TimerHandle] = None

        self.on_tick = Event(name=f"{self.__class__.__name__}:tick")
        self.on_start = Event(name=f"{self.__class__.__name__}:start")
        self.on_stop = Event(name=f"{self.__class__.__name__}:stop")
        self.on_reset = Event(name=f"{self.__class__.__name__}:reset")
        self.on_phase_end = Event(name=f"{self.__class__.__name__}:phase_end")

    @property
    def is_active(self):
        """Property that returns True while the periodic tick is running."""
        return self._is_active

    def start(self):
        """
        Starts the tool from a fresh phase.
        Calling start on an active tool does nothing.
        """
        if self._is_active:
            logger.warning(f"{self.__class__.__name__} is already running.")
            return
        self._begin_fresh_phase()
        self._start_ticking()
        self.on_start.emit(**self.get_status())
        logger.info(f"{self.__class__.__name__} started.")

    def stop(self):
        """
        Stops the tool and cancels its tick.
        The display is re-rendered for a fresh start.
        """
        was_active = self._is_active
        self._stop_ticking()
        self._render_idle()
        if was_active:
            self.on_stop.emit(**self.get_status())
            logger.info(f"{self.__class__.__name__} stopped.")

    def toggle(self):
        if self._is_active:
            self.stop()
        else:
            self.start()

    def close(self):
        """Teardown hook: cancels the tick without emitting events."""
        self._stop_ticking()

    def _start_ticking(self):
        self._stop_ticking()
        self._is_active = True
        self._tick_handle = self.scheduler.call_every(TICK_INTERVAL, self.tick)

    def _stop_ticking(self):
        self._is_active = False
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _notify(self, title: str, message: str, sound: Optional[SoundKind] = None):
        logger.info(f"{title} {message}")
        if self.notifier is None:
            return
        self.notifier.notify(title, message)
        if sound is not None:
            self.notifier.play_sound(sound)

    @abstractmethod
    def tick(self):
        """
        Advances the state machine to the scheduler's current time.
        Driven once per second while active.
        """
        pass

    @abstractmethod
    def get_status(self) -> dict:
        """
        Returns a dictionary with the current state (phase, remaining time,
        progress percentage).
        """
        pass

    @abstractmethod
    def _begin_fresh_phase(self):
        """Resets elapsed time and progress for a start from scratch."""
        pass

    @abstractmethod
    def _render_idle(self):
        """Re-renders the inactive display from the current settings."""
        pass
