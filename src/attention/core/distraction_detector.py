# core/distraction_detector.py
from datetime import datetime
from enum import Enum
from typing import Optional

from attention.core.models import DistractionEvent, DistractionType
from attention.core.ports.activity_port import ActivityChannel, ActivitySignal, ActivitySourcePort
from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.core.session_tracker import SessionTracker
from attention.utils import Event
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import elapsed_ms

logger = setup_logger(__name__)

DEFAULT_MOUSE_INACTIVITY_THRESHOLD = 60000  # ms
DEFAULT_KEYBOARD_INACTIVITY_THRESHOLD = 120000  # ms

# Scroll counts as pointer activity.
POINTER_CHANNELS = (ActivityChannel.POINTER, ActivityChannel.SCROLL)

DISTRACTION_NOTES = {
    DistractionType.MOUSE_INACTIVITY: "Mouse inactive for too long",
    DistractionType.TYPING_INACTIVITY: "Keyboard inactive for too long",
    DistractionType.APP_SWITCH: "Switched to another app or tab",
}


class ReasonPolicy(Enum):
    """What happens when a second distraction reason arises while distracted."""
    FIRST_WINS = "first_wins"
    MOST_RECENT_WINS = "most_recent_wins"


class _Watchdog:
    """One channel's last-seen time and its pending inactivity timer."""

    def __init__(self, reason: DistractionType, threshold_ms: int):
        self.reason = reason
        self.threshold_ms = threshold_ms
        self.last_seen: Optional[datetime] = None
        self.handle: Optional[TimerHandle] = None
        self.expired = False

    def cancel(self):
        if self.handle is not None:
            self.handle.cancel()
            self.handle = None


class DistractionDetector:
    """
    Watches pointer, keyboard and visibility signals while a session is open
    and records distraction events on the current session.

    Pointer and keyboard each run a watchdog re-armed on every activity on
    that channel; the watchdog firing means the channel was silent for its
    threshold. Visibility is edge-triggered: hiding the page is an immediate
    ``app_switch`` distraction and showing it again ends it.

    Only one reason is tracked at a time. ``ReasonPolicy.FIRST_WINS`` holds
    new reasons back until the active one clears, then opens the first one
    still pending; ``MOST_RECENT_WINS`` closes the active distraction and
    opens the new one.

    Every distraction produces two events on the session: one with duration 0
    when it starts and one carrying the elapsed milliseconds when it ends.
    """

    def __init__(
        self,
        tracker: SessionTracker,
        activity_source: ActivitySourcePort,
        scheduler: SchedulerPort,
        mouse_inactivity_threshold: int = DEFAULT_MOUSE_INACTIVITY_THRESHOLD,
        keyboard_inactivity_threshold: int = DEFAULT_KEYBOARD_INACTIVITY_THRESHOLD,
        policy: ReasonPolicy = ReasonPolicy.FIRST_WINS,
    ):
        if mouse_inactivity_threshold <= 0 or keyboard_inactivity_threshold <= 0:
            raise ValueError("Inactivity thresholds must be positive")
        self.tracker = tracker
        self.activity_source = activity_source
        self.scheduler = scheduler
        self.policy = policy

        self._pointer = _Watchdog(DistractionType.MOUSE_INACTIVITY, mouse_inactivity_threshold)
        self._keyboard = _Watchdog(DistractionType.TYPING_INACTIVITY, keyboard_inactivity_threshold)

        self._enabled = False
        self._hidden = False
        self._is_distracted = False
        self._reason: Optional[DistractionType] = None
        self._distraction_start: Optional[datetime] = None

        self.on_distracted = Event(name="distraction:start")
        self.on_attentive = Event(name="distraction:end")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_distracted(self) -> bool:
        return self._is_distracted

    @property
    def distraction_reason(self) -> Optional[DistractionType]:
        return self._reason

    @property
    def distraction_start_time(self) -> Optional[datetime]:
        return self._distraction_start

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def enable(self) -> None:
        """Subscribes to the activity source and arms both watchdogs from now."""
        if self._enabled:
            return
        self._enabled = True
        self._hidden = False
        for channel in POINTER_CHANNELS:
            self.activity_source.subscribe(channel, self._handle_pointer_activity)
        self.activity_source.subscribe(ActivityChannel.KEYBOARD, self._handle_keyboard_activity)
        self.activity_source.subscribe(ActivityChannel.VISIBILITY, self._handle_visibility_change)
        self._rearm(self._pointer)
        self._rearm(self._keyboard)
        logger.info("Distraction detection enabled.")

    def disable(self) -> None:
        """Closes any open distraction, then disarms and unsubscribes."""
        if not self._enabled:
            return
        self._close_active()
        self._enabled = False
        for channel in POINTER_CHANNELS:
            self.activity_source.unsubscribe(channel, self._handle_pointer_activity)
        self.activity_source.unsubscribe(ActivityChannel.KEYBOARD, self._handle_keyboard_activity)
        self.activity_source.unsubscribe(ActivityChannel.VISIBILITY, self._handle_visibility_change)
        for watchdog in (self._pointer, self._keyboard):
            watchdog.cancel()
            watchdog.expired = False
        logger.info("Distraction detection disabled.")

    def end_distraction(self) -> Optional[DistractionEvent]:
        """Close the active distraction, recording how long it lasted."""
        event = self._close_active()
        self._open_pending()
        return event

    def manually_add_distraction(self, type: str, notes: Optional[str] = None) -> Optional[DistractionEvent]:
        """Record a user-reported distraction without touching the state machine."""
        session = self.tracker.get_current_session()
        if session is None:
            logger.debug("Manual distraction ignored: no active session.")
            return None
        return self.tracker.add_distraction_event(
            session.id,
            DistractionType.MANUAL,
            0,
            notes or f"Manually recorded distraction: {type}",
        )

    def get_status(self) -> dict:
        return {
            "enabled": self._enabled,
            "is_distracted": self._is_distracted,
            "distraction_reason": self._reason.value if self._reason else None,
            "distraction_start_time": self._distraction_start.isoformat() if self._distraction_start else None,
        }

    # --- Channel handlers ---
    def _handle_pointer_activity(self, signal: ActivitySignal) -> None:
        self._on_channel_activity(self._pointer)

    def _handle_keyboard_activity(self, signal: ActivitySignal) -> None:
        self._on_channel_activity(self._keyboard)

    def _handle_visibility_change(self, signal: ActivitySignal) -> None:
        if not self._enabled or signal.visible is None:
            return
        self._hidden = not signal.visible
        if self._hidden:
            self._begin_distraction(DistractionType.APP_SWITCH)
        elif self._reason is DistractionType.APP_SWITCH:
            self.end_distraction()

    def _on_channel_activity(self, watchdog: _Watchdog) -> None:
        if not self._enabled:
            return
        watchdog.last_seen = self.scheduler.now()
        self._rearm(watchdog)
        if self._is_distracted and self._reason is watchdog.reason:
            self.end_distraction()

    def _rearm(self, watchdog: _Watchdog) -> None:
        watchdog.cancel()
        watchdog.expired = False
        watchdog.handle = self.scheduler.call_later(
            watchdog.threshold_ms / 1000,
            lambda: self._on_watchdog_fired(watchdog),
        )

    def _on_watchdog_fired(self, watchdog: _Watchdog) -> None:
        watchdog.handle = None
        if not self._enabled:
            return
        watchdog.expired = True
        self._begin_distraction(watchdog.reason)

    # --- State transitions ---
    def _begin_distraction(self, reason: DistractionType) -> None:
        if self._is_distracted:
            if self._reason is reason:
                return
            if self.policy is ReasonPolicy.FIRST_WINS:
                logger.debug(f"Holding '{reason.value}' back while '{self._reason.value}' is active.")
                return
            self._close_active()

        session = self.tracker.get_current_session()
        if session is None:
            logger.debug(f"'{reason.value}' detected with no active session; not recorded.")
            return

        self._is_distracted = True
        self._reason = reason
        self._distraction_start = self.scheduler.now()
        self.tracker.add_distraction_event(session.id, reason, 0, DISTRACTION_NOTES[reason])
        logger.info(f"Distracted: {reason.value}.")
        self.on_distracted.emit(reason=reason)

    def _close_active(self) -> Optional[DistractionEvent]:
        if not self._is_distracted or self._distraction_start is None:
            return None

        reason = self._reason
        duration = elapsed_ms(self._distraction_start, self.scheduler.now())
        self._is_distracted = False
        self._reason = None
        self._distraction_start = None

        event = None
        session = self.tracker.get_current_session()
        if session is not None:
            event = self.tracker.add_distraction_event(
                session.id,
                reason,
                duration,
                f"{reason.value} ended after {round(duration / 1000)} seconds",
            )
        logger.info(f"Distraction '{reason.value}' ended after {duration} ms.")
        self.on_attentive.emit(reason=reason, duration=duration)
        return event

    def _open_pending(self) -> None:
        """Opens a reason that arose while another one was active, if it still holds."""
        if not self._enabled or self._is_distracted:
            return
        if self._hidden:
            self._begin_distraction(DistractionType.APP_SWITCH)
        elif self._pointer.expired:
            self._begin_distraction(self._pointer.reason)
        elif self._keyboard.expired:
            self._begin_distraction(self._keyboard.reason)
