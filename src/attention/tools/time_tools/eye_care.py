from enum import Enum
from typing import Optional

from attention.core.models import EyeCareSettings, SoundKind
from attention.core.ports.clock_port import SchedulerPort
from attention.core.ports.notification_port import NotificationPort
from attention.core.preferences import EYE_CARE_SETTINGS_KEY, PreferencesService
from attention.tools.time_tools.base_tool import EPSILON, TimeTool
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import convert_to_seconds, format_seconds_to_ms

logger = setup_logger(__name__)

BLINK_BREAK_DURATION = 5  # seconds


class ReminderType(Enum):
    EYE_BREAK = "eyeBreak"
    BLINK = "blink"
    SCREEN_BREAK = "screenBreak"

    def next(self) -> "ReminderType":
        rotation = list(ReminderType)
        return rotation[(rotation.index(self) + 1) % len(rotation)]


class EyeCarePhase(Enum):
    WORK = "work"
    BREAK = "break"


REMINDER_TITLES = {
    ReminderType.EYE_BREAK: "Eye Break",
    ReminderType.BLINK: "Blink Reminder",
    ReminderType.SCREEN_BREAK: "Screen Break",
}

REMINDER_PROMPTS = {
    ReminderType.EYE_BREAK: ("Time for an eye break!", "Look at something 20 feet away for 20 seconds."),
    ReminderType.BLINK: ("Time to blink!", "Blink rapidly for a few seconds to refresh your eyes."),
    ReminderType.SCREEN_BREAK: ("Time for a screen break!", "Stand up, stretch, and look away from your screen."),
}


class EyeCareReminder(TimeTool):
    """
    Rotates eye break -> blink -> screen break reminders.

    Each reminder type has a work interval (minutes) that counts up while
    the user works, then a break (seconds) that counts down. Finishing a
    break moves on to the next type in the rotation.
    """
    def __init__(
        self,
        scheduler: SchedulerPort,
        preferences: PreferencesService,
        notifier: Optional[NotificationPort] = None,
    ):
        super().__init__(scheduler, notifier)
        self.preferences = preferences
        self.settings: EyeCareSettings = preferences.get_eye_care_settings()

        self._reminder_type = ReminderType.EYE_BREAK
        self._phase = EyeCarePhase.WORK
        self._phase_total = self._interval_for(self._reminder_type)
        self._phase_start = 0.0
        self._phase_end = 0.0
        self._progress = 100.0
        preferences.on_change.add_listener(self._on_preferences_change)

    @property
    def reminder_type(self) -> ReminderType:
        return self._reminder_type

    @property
    def phase(self) -> EyeCarePhase:
        return self._phase

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def remaining_time(self) -> float:
        """Seconds until the next reminder (work) or until the break ends."""
        if not self._is_active:
            return float(self._phase_total)
        now = self.scheduler.monotonic()
        if self._phase is EyeCarePhase.WORK:
            return max(0.0, self._phase_total - (now - self._phase_start))
        return max(0.0, self._phase_end - now)

    def apply_settings(self, settings: EyeCareSettings):
        self.settings = settings
        if not self._is_active:
            self._render_idle()
        logger.info("Eye care settings applied.")

    def tick(self):
        if not self._is_active:
            return
        now = self.scheduler.monotonic()
        if self._phase is EyeCarePhase.WORK:
            elapsed = now - self._phase_start
            if elapsed >= self._phase_total - EPSILON:
                self._enter_break(now)
            else:
                self._progress = (self._phase_total - elapsed) / self._phase_total * 100
        else:
            remaining = self._phase_end - now
            if remaining <= EPSILON:
                self._finish_break(now)
            else:
                self._progress = remaining / self._phase_total * 100
        self.on_tick.emit(**self.get_status())

    def get_status(self) -> dict:
        remaining = self.remaining_time
        return {
            "is_active": self._is_active,
            "reminder_type": self._reminder_type.value,
            "title": REMINDER_TITLES[self._reminder_type],
            "phase": self._phase.value,
            "remaining_time": remaining,
            "remaining_time_formatted": format_seconds_to_ms(remaining),
            "total_phase_duration": self._phase_total,
            "progress": self._progress,
        }

    def _interval_for(self, reminder_type: ReminderType) -> int:
        minutes = {
            ReminderType.EYE_BREAK: self.settings.eye_break_interval,
            ReminderType.BLINK: self.settings.blink_interval,
            ReminderType.SCREEN_BREAK: self.settings.screen_break_interval,
        }[reminder_type]
        return convert_to_seconds(minutes=minutes)

    def _break_duration_for(self, reminder_type: ReminderType) -> int:
        return {
            ReminderType.EYE_BREAK: self.settings.eye_break_duration,
            ReminderType.BLINK: BLINK_BREAK_DURATION,
            ReminderType.SCREEN_BREAK: self.settings.screen_break_duration,
        }[reminder_type]

    def _begin_fresh_phase(self):
        self._phase = EyeCarePhase.WORK
        self._phase_total = self._interval_for(self._reminder_type)
        self._phase_start = self.scheduler.monotonic()
        self._progress = 100.0

    def _render_idle(self):
        self._phase = EyeCarePhase.WORK
        self._phase_total = self._interval_for(self._reminder_type)
        self._progress = 100.0

    def _enter_break(self, now: float):
        title, message = REMINDER_PROMPTS[self._reminder_type]
        self._notify(title, message, self._sound())
        self._phase = EyeCarePhase.BREAK
        self._phase_total = self._break_duration_for(self._reminder_type)
        self._phase_end = now + self._phase_total
        self._progress = 100.0
        logger.info(f"{REMINDER_TITLES[self._reminder_type]} break started ({self._phase_total} s).")

    def _finish_break(self, now: float):
        finished = self._reminder_type
        self._notify("Break completed!", "Time to get back to work.", self._sound())
        self._reminder_type = finished.next()
        self._phase = EyeCarePhase.WORK
        self._phase_total = self._interval_for(self._reminder_type)
        self._phase_start = now
        self._progress = 100.0
        self.on_phase_end.emit(previous_type=finished.value, current_type=self._reminder_type.value)
        logger.info(f"{REMINDER_TITLES[finished]} complete; next is {REMINDER_TITLES[self._reminder_type]}.")

    def _sound(self) -> Optional[SoundKind]:
        return SoundKind.EYECARE if self.settings.play_sounds else None

    def _on_preferences_change(self, key, value):
        if key == EYE_CARE_SETTINGS_KEY:
            self.apply_settings(value)
