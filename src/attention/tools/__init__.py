from attention.tools.time_tools import EyeCareReminder, Pomodoro

__all__ = ["EyeCareReminder", "Pomodoro"]
