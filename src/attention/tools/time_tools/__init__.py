from attention.tools.time_tools.base_tool import TimeTool
from attention.tools.time_tools.eye_care import EyeCarePhase, EyeCareReminder, ReminderType
from attention.tools.time_tools.pomodoro import Pomodoro, TimerMode

__all__ = ["TimeTool", "EyeCarePhase", "EyeCareReminder", "ReminderType", "Pomodoro", "TimerMode"]
