import os
from typing import Optional

from attention.core.models import SoundKind
from attention.core.ports.notification_port import SpeakerPort
from attention.core.preferences import PreferencesService
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

BACKGROUND_VOLUME_FACTOR = 0.4


class SoundManager:
    """Decides whether and how loud a sound plays, then hands it to a speaker."""

    def __init__(self, preferences: PreferencesService, speaker: SpeakerPort, sounds_dir: Optional[str] = None):
        self.preferences = preferences
        self.speaker = speaker
        self.sounds_dir = sounds_dir
        self._background_playing = False

    @property
    def background_playing(self) -> bool:
        return self._background_playing

    def resolve(self, resource: str) -> str:
        """Relative resources are looked up in ``sounds_dir`` when one is set."""
        if self.sounds_dir and not os.path.isabs(resource) and "://" not in resource:
            return os.path.join(self.sounds_dir, resource)
        return resource

    def play_sound(self, kind: SoundKind) -> bool:
        settings = self.preferences.get_sound_settings()
        if not settings.enabled or not settings.notification_sounds:
            return False

        resource = settings.custom_sounds.get(kind)
        if not resource:
            logger.warning(f"No sound defined for type: {kind.value}")
            return False
        try:
            self.speaker.play(self.resolve(resource), settings.volume)
            return True
        except Exception as e:
            logger.exception(f"Error playing sound ({kind.value}): {e}")
            return False

    def start_background_sound(self) -> bool:
        """Loops the focus ambience at a reduced volume, if enabled."""
        settings = self.preferences.get_sound_settings()
        if not settings.enabled or not settings.focus_background_sound:
            return False
        resource = settings.custom_sounds.get(SoundKind.FOCUS)
        if not resource:
            return False
        try:
            self.speaker.play(self.resolve(resource), settings.volume * BACKGROUND_VOLUME_FACTOR, loop=True)
            self._background_playing = True
            return True
        except Exception as e:
            logger.exception(f"Error starting background sound: {e}")
            return False

    def stop_background_sound(self) -> None:
        if not self._background_playing:
            return
        self._background_playing = False
        try:
            self.speaker.stop()
        except Exception as e:
            logger.exception(f"Error stopping background sound: {e}")
