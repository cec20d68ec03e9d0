import pytest

from attention.core.models import EyeCareSettings, SoundKind
from attention.tools.time_tools import EyeCarePhase, EyeCareReminder, ReminderType


@pytest.fixture
def reminder(scheduler, preferences, notifier):
    tool = EyeCareReminder(scheduler, preferences, notifier)
    yield tool
    tool.close()


def test_rotation_order():
    assert ReminderType.EYE_BREAK.next() is ReminderType.BLINK
    assert ReminderType.BLINK.next() is ReminderType.SCREEN_BREAK
    assert ReminderType.SCREEN_BREAK.next() is ReminderType.EYE_BREAK


def test_first_reminder_after_eye_break_interval(reminder, scheduler, notifier):
    reminder.start()
    scheduler.advance(1199)
    assert reminder.phase is EyeCarePhase.WORK
    assert notifier.notifications == []

    scheduler.advance(1)
    assert reminder.phase is EyeCarePhase.BREAK
    assert notifier.titles == ["Time for an eye break!"]
    assert notifier.sounds == [SoundKind.EYECARE]
    assert reminder.get_status()["remaining_time_formatted"] == "00:20"


def test_full_rotation_with_default_settings(reminder, scheduler, notifier):
    finished = []
    reminder.on_phase_end.add_listener(lambda **kw: finished.append((scheduler.monotonic(), kw["previous_type"])))
    reminder.start()
    scheduler.advance(5725)

    assert finished == [
        (1220, "eyeBreak"),
        (1825, "blink"),
        (5725, "screenBreak"),
    ]
    assert reminder.reminder_type is ReminderType.EYE_BREAK
    assert reminder.phase is EyeCarePhase.WORK
    assert notifier.titles == [
        "Time for an eye break!",
        "Break completed!",
        "Time to blink!",
        "Break completed!",
        "Time for a screen break!",
        "Break completed!",
    ]


def test_progress_counts_down_through_work(reminder, scheduler):
    reminder.start()
    scheduler.advance(600)
    assert reminder.progress == pytest.approx(50.0)
    assert reminder.get_status()["remaining_time_formatted"] == "10:00"


def test_sounds_follow_play_sounds_setting(scheduler, preferences, notifier):
    preferences.save_eye_care_settings(EyeCareSettings(play_sounds=False))
    tool = EyeCareReminder(scheduler, preferences, notifier)
    tool.start()
    scheduler.advance(1220)

    assert len(notifier.notifications) == 2
    assert notifier.sounds == []
    tool.close()


def test_settings_update_while_inactive(reminder, preferences):
    preferences.update("eye-care-settings", {"eyeBreakInterval": 30})
    assert reminder.get_status()["remaining_time_formatted"] == "30:00"


def test_stop_restarts_current_type_from_scratch(reminder, scheduler):
    reminder.start()
    scheduler.advance(1220)
    assert reminder.reminder_type is ReminderType.BLINK

    scheduler.advance(100)
    reminder.stop()
    assert scheduler.pending == 0
    assert reminder.get_status()["remaining_time_formatted"] == "10:00"

    reminder.start()
    scheduler.advance(600)
    assert reminder.phase is EyeCarePhase.BREAK
