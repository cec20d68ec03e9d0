import json
from typing import Any, Union

from attention.core.models import EyeCareSettings, SoundSettings, TimerSettings
from attention.core.ports.memory_port import RecordStorePort
from attention.utils import Event
from attention.utils import custom_exception as ce
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

TIMER_SETTINGS_KEY = "timer-settings"
EYE_CARE_SETTINGS_KEY = "eye-care-settings"
SOUND_SETTINGS_KEY = "sound-settings"

SETTINGS_TYPES = {
    TIMER_SETTINGS_KEY: TimerSettings,
    EYE_CARE_SETTINGS_KEY: EyeCareSettings,
    SOUND_SETTINGS_KEY: SoundSettings,
}

SettingsRecord = Union[TimerSettings, EyeCareSettings, SoundSettings]


class PreferencesService:
    """
    Owns the timer, eye-care and sound settings records.

    Each record is loaded lazily on first access and cached for the rest of
    the process. A record that is missing or cannot be parsed falls back to
    its defaults. Saving replaces the stored record wholesale; use the
    ``update`` to merge a partial change first.
    """

    def __init__(self, store: RecordStorePort):
        self.store = store
        self._cache: dict[str, SettingsRecord] = {}
        self.on_change = Event(name="preferences:change")

    def get(self, key: str) -> SettingsRecord:
        record_type = self._record_type(key)
        if key not in self._cache:
            self._cache[key] = self._load(key, record_type)
        return self._cache[key]

    def set(self, key: str, value: SettingsRecord) -> None:
        record_type = self._record_type(key)
        if not isinstance(value, record_type):
            raise ce.ValidationError(f"'{key}' expects {record_type.__name__}, got {type(value).__name__}")
        self._cache[key] = value
        try:
            self.store.write_record(key, json.dumps(value.to_dict()))
            logger.info(f"Saved '{key}'.")
        except (ce.StorageError, OSError) as e:
            logger.exception(f"Failed to persist '{key}', keeping it in memory only: {e}")
        self.on_change.emit(key=key, value=value)

    def update(self, key: str, changes: dict[str, Any]) -> SettingsRecord:
        """Merge camelCase ``changes`` over the current record and save it."""
        record_type = self._record_type(key)
        merged = self.get(key).to_dict()
        unknown = set(changes) - set(merged)
        if unknown:
            raise ce.ValidationError(f"Unknown fields for '{key}': {', '.join(sorted(unknown))}")
        merged.update(changes)
        try:
            value = record_type.from_dict(merged)
        except (KeyError, TypeError) as e:
            raise ce.ValidationError(f"Invalid '{key}' record: {e}") from e
        self.set(key, value)
        return value

    # Typed helpers
    def get_timer_settings(self) -> TimerSettings:
        return self.get(TIMER_SETTINGS_KEY)

    def save_timer_settings(self, settings: TimerSettings) -> None:
        self.set(TIMER_SETTINGS_KEY, settings)

    def get_eye_care_settings(self) -> EyeCareSettings:
        return self.get(EYE_CARE_SETTINGS_KEY)

    def save_eye_care_settings(self, settings: EyeCareSettings) -> None:
        self.set(EYE_CARE_SETTINGS_KEY, settings)

    def get_sound_settings(self) -> SoundSettings:
        return self.get(SOUND_SETTINGS_KEY)

    def save_sound_settings(self, settings: SoundSettings) -> None:
        self.set(SOUND_SETTINGS_KEY, settings)

    @staticmethod
    def _record_type(key: str):
        try:
            return SETTINGS_TYPES[key]
        except KeyError:
            raise ce.ValidationError(f"Unknown settings record: {key!r}") from None

    def _load(self, key: str, record_type):
        try:
            payload = self.store.read_record(key)
        except (ce.StorageError, OSError) as e:
            logger.exception(f"Failed to load '{key}', using defaults: {e}")
            return record_type()
        if payload is None:
            return record_type()
        try:
            return record_type.from_dict(json.loads(payload))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # ValidationError is a ValueError.
            logger.warning(f"Stored '{key}' is corrupt, using defaults: {e}")
            return record_type()
