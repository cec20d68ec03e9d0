from abc import ABC, abstractmethod

from attention.core.models import SoundKind


class NotificationPort(ABC):
    """Port for user-facing notifications (toasts, OS notifications, sounds)."""

    @abstractmethod
    def notify(self, title: str, message: str) -> None:
        """Show a notification to the user."""
        pass

    @abstractmethod
    def play_sound(self, kind: SoundKind) -> None:
        """Play the sound configured for ``kind``."""
        pass


class SpeakerPort(ABC):
    """Audio output for a sound resource."""

    @abstractmethod
    def play(self, resource: str, volume: float, loop: bool = False) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass
