# core/idle_detector.py
from datetime import datetime
from typing import Optional

from attention.core.models import DistractionType
from attention.core.ports.activity_port import ActivityChannel, ActivitySignal, ActivitySourcePort
from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.core.session_tracker import SessionTracker
from attention.utils import Event
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import elapsed_ms

logger = setup_logger(__name__)

DEFAULT_IDLE_THRESHOLD = 300000  # ms

IDLE_CHANNELS = (
    ActivityChannel.POINTER,
    ActivityChannel.KEYBOARD,
    ActivityChannel.TOUCH,
    ActivityChannel.SCROLL,
)


class IdleDetector:
    """Single watchdog over every input channel: Active -> Idle -> Active."""

    def __init__(
        self,
        tracker: SessionTracker,
        activity_source: ActivitySourcePort,
        scheduler: SchedulerPort,
        idle_threshold: int = DEFAULT_IDLE_THRESHOLD,
    ):
        if idle_threshold <= 0:
            raise ValueError("idle_threshold must be positive")
        self.tracker = tracker
        self.activity_source = activity_source
        self.scheduler = scheduler
        self.idle_threshold = idle_threshold

        self._running = False
        self._is_idle = False
        self._idle_start: Optional[datetime] = None
        self._timeout: Optional[TimerHandle] = None

        self.on_idle = Event(name="idle:start")
        self.on_active = Event(name="idle:end")

    @property
    def is_idle(self) -> bool:
        return self._is_idle

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        for channel in IDLE_CHANNELS:
            self.activity_source.subscribe(channel, self._handle_activity)
        self.reset_idle_timer()
        logger.info(f"Idle detection started (threshold {self.idle_threshold} ms).")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        for channel in IDLE_CHANNELS:
            self.activity_source.unsubscribe(channel, self._handle_activity)
        self._cancel_timeout()
        self._is_idle = False
        self._idle_start = None
        logger.info("Idle detection stopped.")

    def reset_idle_timer(self) -> None:
        """Leave the idle state if needed and re-arm the watchdog from now."""
        self._cancel_timeout()
        if self._is_idle:
            self._leave_idle()
        self._timeout = self.scheduler.call_later(self.idle_threshold / 1000, self._enter_idle)

    def _handle_activity(self, signal: ActivitySignal) -> None:
        if self._running:
            self.reset_idle_timer()

    def _cancel_timeout(self) -> None:
        if self._timeout is not None:
            self._timeout.cancel()
            self._timeout = None

    def _enter_idle(self) -> None:
        self._timeout = None
        if not self._running or self._is_idle:
            return
        self._is_idle = True
        self._idle_start = self.scheduler.now()
        session = self.tracker.get_current_session()
        if session is not None:
            self.tracker.add_distraction_event(session.id, DistractionType.IDLE, 0, "User went idle")
        logger.info("User went idle.")
        self.on_idle.emit()

    def _leave_idle(self) -> None:
        duration = elapsed_ms(self._idle_start, self.scheduler.now()) if self._idle_start else 0
        self._is_idle = False
        self._idle_start = None
        session = self.tracker.get_current_session()
        if session is not None:
            self.tracker.add_distraction_event(
                session.id,
                DistractionType.IDLE,
                duration,
                f"User returned from idle state after {round(duration / 1000)} seconds",
            )
        logger.info(f"User returned after {duration} ms idle.")
        self.on_active.emit(duration=duration)
