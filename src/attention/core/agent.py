# core/agent.py
from typing import Optional

from attention.core.distraction_detector import DistractionDetector
from attention.core.idle_detector import IdleDetector
from attention.core.models import DistractionEvent, Session, SoundKind
from attention.core.ports.notification_port import NotificationPort
from attention.core.session_tracker import SessionTracker
from attention.core.sound_manager import SoundManager
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


class FocusAgent:
    """Orchestrates the session tracker and both detectors.

    Distraction detection is enabled exactly while a session is open; idle
    detection runs from ``run()`` until ``shutdown()``.
    """

    def __init__(
        self,
        tracker: SessionTracker,
        distraction_detector: DistractionDetector,
        idle_detector: IdleDetector,
        notifier: Optional[NotificationPort] = None,
        sound_manager: Optional[SoundManager] = None,
    ):
        self.tracker = tracker
        self.distraction_detector = distraction_detector
        self.idle_detector = idle_detector
        self.notifier = notifier
        self.sound_manager = sound_manager
        self.distraction_detector.on_distracted.add_listener(self._on_distracted)

    def run(self):
        """Starts idle detection and resumes detection for a session left open."""
        self.idle_detector.start()
        if self.tracker.get_current_session() is not None:
            logger.info("Resuming distraction detection for the open session.")
            self.distraction_detector.enable()

    def shutdown(self):
        self.distraction_detector.disable()
        self.idle_detector.stop()
        if self.sound_manager is not None:
            self.sound_manager.stop_background_sound()
        logger.info("Focus agent stopped.")

    def start_session(self, task_name: str) -> Session:
        if self.tracker.get_current_session() is not None:
            # Close the old distraction state before the tracker ends that session.
            self.distraction_detector.disable()
        session = self.tracker.start_session(task_name)
        self.distraction_detector.enable()
        if self.sound_manager is not None:
            self.sound_manager.start_background_sound()
        self._notify("Focus session started", f"Working on: {session.task_name}")
        return session

    def end_session(self, session_id: Optional[str] = None) -> Optional[Session]:
        current = self.tracker.get_current_session()
        if session_id is None:
            if current is None:
                return None
            session_id = current.id
        if current is not None and current.id == session_id:
            self.distraction_detector.disable()

        session = self.tracker.end_session(session_id)
        if session is None:
            return None
        if self.sound_manager is not None:
            self.sound_manager.stop_background_sound()
        minutes = session.duration // 60000
        self._notify("Focus session completed", f"You focused for {minutes} minutes on {session.task_name}")
        return session

    def manually_add_distraction(self, type: str, notes: Optional[str] = None) -> Optional[DistractionEvent]:
        return self.distraction_detector.manually_add_distraction(type, notes)

    def get_status(self) -> dict:
        current = self.tracker.get_current_session()
        return {
            "session": current.to_dict() if current else None,
            "distraction": self.distraction_detector.get_status(),
            "is_idle": self.idle_detector.is_idle,
        }

    def _on_distracted(self, reason):
        if self.notifier is not None:
            self.notifier.play_sound(SoundKind.DISTRACTION)

    def _notify(self, title: str, message: str):
        logger.info(f"{title}: {message}")
        if self.notifier is not None:
            self.notifier.notify(title, message)
