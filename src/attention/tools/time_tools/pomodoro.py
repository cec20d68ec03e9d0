from enum import Enum
from typing import Optional

from attention.core.models import SoundKind, TimerSettings
from attention.core.ports.clock_port import SchedulerPort
from attention.core.ports.notification_port import NotificationPort
from attention.core.preferences import TIMER_SETTINGS_KEY, PreferencesService
from attention.tools.time_tools.base_tool import EPSILON, TimeTool
from attention.utils import Event
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import convert_to_seconds, format_seconds_to_ms

logger = setup_logger(__name__)


class TimerMode(Enum):
    FOCUS = "focus"
    BREAK = "break"


class Pomodoro(TimeTool):
    """
    A focus/break countdown for the Pomodoro Technique.

    When a phase runs out the user is notified, the mode flips and the
    remaining time resets to the new mode's full duration. By default the
    timer then waits for the user to start the next phase; with
    ``auto_continue`` it rolls straight into it.
    """
    def __init__(
        self,
        scheduler: SchedulerPort,
        preferences: PreferencesService,
        notifier: Optional[NotificationPort] = None,
        auto_continue: bool = False,
    ):
        super().__init__(scheduler, notifier)
        self.preferences = preferences
        self.auto_continue = auto_continue
        self.settings: TimerSettings = preferences.get_timer_settings()

        self._mode = TimerMode.FOCUS
        self._paused = False
        self._phase_total = self._duration_for(self._mode)
        self._phase_end = 0.0
        self._remaining = float(self._phase_total)
        self._progress = 100.0

        self.on_pause = Event(name="Pomodoro:pause")
        self.on_resume = Event(name="Pomodoro:resume")
        preferences.on_change.add_listener(self._on_preferences_change)

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def remaining_time(self) -> float:
        """Seconds left in the current phase."""
        if self._is_active:
            return max(0.0, self._phase_end - self.scheduler.monotonic())
        return self._remaining

    @property
    def progress(self) -> float:
        return self._progress

    def pause(self):
        """Stops the tick but keeps the remaining time for resume()."""
        if not self._is_active:
            return
        self._remaining = self.remaining_time
        self._stop_ticking()
        self._paused = True
        self.on_pause.emit(**self.get_status())
        logger.info("Pomodoro paused.")

    def resume(self):
        """Continues a paused phase; starts fresh when nothing is paused."""
        if self._is_active:
            logger.warning("Pomodoro is already running.")
            return
        if not self._paused:
            self.start()
            return
        self._paused = False
        self._phase_end = self.scheduler.monotonic() + self._remaining
        self._start_ticking()
        self.on_resume.emit(**self.get_status())
        logger.info("Pomodoro resumed.")

    def reset(self, to_break: bool = False):
        """Goes inactive and shows a full focus (or break) phase."""
        self._stop_ticking()
        self._mode = TimerMode.BREAK if to_break else TimerMode.FOCUS
        self._render_idle()
        self.on_reset.emit(**self.get_status())
        logger.info(f"Pomodoro reset to {self._mode.value}.")

    def skip(self):
        """Completes the current phase immediately."""
        self._complete_phase()

    def apply_settings(self, settings: TimerSettings):
        """
        New durations show up at once while inactive; an active phase keeps
        its own duration and the change applies from the next phase.
        """
        self.settings = settings
        if not self._is_active:
            self._render_idle()
        logger.info(f"Pomodoro settings applied: {settings.focus_time}/{settings.break_time} min.")

    def tick(self):
        if not self._is_active:
            return
        remaining = self.remaining_time
        if remaining <= EPSILON:
            self._complete_phase()
            return
        self._progress = remaining / self._phase_total * 100
        self.on_tick.emit(**self.get_status())

    def get_status(self) -> dict:
        remaining = self.remaining_time
        return {
            "is_active": self._is_active,
            "is_paused": self._paused,
            "mode": self._mode.value,
            "remaining_time": remaining,
            "remaining_time_formatted": format_seconds_to_ms(remaining),
            "total_phase_duration": self._phase_total,
            "progress": self._progress,
        }

    def _duration_for(self, mode: TimerMode) -> int:
        minutes = self.settings.focus_time if mode is TimerMode.FOCUS else self.settings.break_time
        return convert_to_seconds(minutes=minutes)

    def _begin_fresh_phase(self):
        self._paused = False
        self._phase_total = self._duration_for(self._mode)
        self._phase_end = self.scheduler.monotonic() + self._phase_total
        self._remaining = float(self._phase_total)
        self._progress = 100.0

    def _render_idle(self):
        self._paused = False
        self._phase_total = self._duration_for(self._mode)
        self._remaining = float(self._phase_total)
        self._progress = 100.0

    def _complete_phase(self):
        finished = self._mode
        if finished is TimerMode.BREAK:
            self._notify("Break time is over!", "Time to get back to work!", SoundKind.NOTIFICATION)
            self._mode = TimerMode.FOCUS
        else:
            self._notify("Great job! Time for a break", "Take a moment to rest your eyes and stretch.", SoundKind.BREAK)
            self._mode = TimerMode.BREAK

        if self.auto_continue and self._is_active:
            self._begin_fresh_phase()
        else:
            self._stop_ticking()
            self._render_idle()
        self.on_phase_end.emit(previous_phase=finished.value, current_phase=self._mode.value)
        self.on_tick.emit(**self.get_status())
        logger.info(f"Pomodoro {finished.value} phase finished; next is {self._mode.value}.")

    def _on_preferences_change(self, key, value):
        if key == TIMER_SETTINGS_KEY:
            self.apply_settings(value)
