"""Focus-session tracking, distraction detection and wellness timers."""

__version__ = "0.1.0"
