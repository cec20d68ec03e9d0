# core/models.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from attention.utils.custom_exception import ValidationError
from attention.utils.time_conversions import elapsed_ms, format_timestamp, parse_timestamp


def generate_id() -> str:
    return uuid.uuid4().hex


class DistractionType(Enum):
    IDLE = "idle"
    APP_SWITCH = "app_switch"
    TYPING_INACTIVITY = "typing_inactivity"
    MOUSE_INACTIVITY = "mouse_inactivity"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value) -> "DistractionType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Unknown distraction type: {value!r}") from None


class SoundKind(Enum):
    NOTIFICATION = "notification"
    FOCUS = "focus"
    BREAK = "break"
    EYECARE = "eyecare"
    DISTRACTION = "distraction"


@dataclass
class DistractionEvent:
    timestamp: datetime
    type: DistractionType
    duration: int = 0  # milliseconds
    notes: Optional[str] = None
    id: str = field(default_factory=generate_id)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "type": self.type.value,
            "duration": self.duration,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DistractionEvent":
        return cls(
            id=str(data["id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            type=DistractionType.parse(data["type"]),
            duration=int(data.get("duration", 0)),
            notes=data.get("notes"),
        )


@dataclass
class Session:
    """One continuous focus effort on a named task."""

    task_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    distractions: list[DistractionEvent] = field(default_factory=list)
    id: str = field(default_factory=generate_id)
    _duration: int = field(default=0, repr=False)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> int:
        """Milliseconds between start and end; 0 while the session is open."""
        return self._duration

    @property
    def distraction_count(self) -> int:
        return len(self.distractions)

    def close(self, end_time: datetime) -> None:
        if not self.is_active:
            raise ValidationError(f"Session {self.id} has already ended.")
        self.end_time = end_time
        self._duration = elapsed_ms(self.start_time, end_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taskName": self.task_name,
            "startTime": format_timestamp(self.start_time),
            "endTime": format_timestamp(self.end_time) if self.end_time else None,
            "duration": self.duration,
            "distractions": [d.to_dict() for d in self.distractions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        start_time = parse_timestamp(data["startTime"])
        end_time = parse_timestamp(data["endTime"]) if data.get("endTime") else None
        session = cls(
            id=str(data["id"]),
            task_name=str(data["taskName"]),
            start_time=start_time,
            end_time=end_time,
            distractions=[DistractionEvent.from_dict(d) for d in data.get("distractions", [])],
        )
        if end_time is not None:
            session._duration = elapsed_ms(start_time, end_time)
        return session


def _require_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")
    return value


def _require_bool(name: str, value) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be a boolean, got {value!r}")
    return value


@dataclass
class TimerSettings:
    focus_time: int = 25  # minutes
    break_time: int = 5  # minutes

    def __post_init__(self):
        _require_positive_int("focusTime", self.focus_time)
        _require_positive_int("breakTime", self.break_time)

    def to_dict(self) -> dict[str, Any]:
        return {"focusTime": self.focus_time, "breakTime": self.break_time}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSettings":
        return cls(focus_time=data["focusTime"], break_time=data["breakTime"])


@dataclass
class EyeCareSettings:
    eye_break_interval: int = 20  # minutes
    eye_break_duration: int = 20  # seconds
    blink_interval: int = 10  # minutes
    screen_break_interval: int = 60  # minutes
    screen_break_duration: int = 300  # seconds
    play_sounds: bool = True

    _KEYS = {
        "eye_break_interval": "eyeBreakInterval",
        "eye_break_duration": "eyeBreakDuration",
        "blink_interval": "blinkInterval",
        "screen_break_interval": "screenBreakInterval",
        "screen_break_duration": "screenBreakDuration",
    }

    def __post_init__(self):
        for attr, key in self._KEYS.items():
            _require_positive_int(key, getattr(self, attr))
        _require_bool("playSounds", self.play_sounds)

    def to_dict(self) -> dict[str, Any]:
        data = {key: getattr(self, attr) for attr, key in self._KEYS.items()}
        data["playSounds"] = self.play_sounds
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EyeCareSettings":
        kwargs = {attr: data[key] for attr, key in cls._KEYS.items()}
        return cls(play_sounds=data["playSounds"], **kwargs)


DEFAULT_CUSTOM_SOUNDS = {
    SoundKind.NOTIFICATION: "notification.wav",
    SoundKind.FOCUS: "focus-ambient.wav",
    SoundKind.BREAK: "break-chime.wav",
    SoundKind.EYECARE: "calming.wav",
    SoundKind.DISTRACTION: "gentle-alert.wav",
}


@dataclass
class SoundSettings:
    enabled: bool = True
    volume: float = 0.7
    focus_background_sound: bool = False
    notification_sounds: bool = True
    custom_sounds: dict[SoundKind, str] = field(default_factory=lambda: dict(DEFAULT_CUSTOM_SOUNDS))

    def __post_init__(self):
        _require_bool("enabled", self.enabled)
        _require_bool("focusBackgroundSound", self.focus_background_sound)
        _require_bool("notificationSounds", self.notification_sounds)
        if isinstance(self.volume, bool) or not isinstance(self.volume, (int, float)) or not 0 <= self.volume <= 1:
            raise ValidationError(f"volume must be between 0 and 1, got {self.volume!r}")
        self.volume = float(self.volume)
        sounds = {}
        for kind, resource in self.custom_sounds.items():
            try:
                kind = SoundKind(kind) if not isinstance(kind, SoundKind) else kind
            except ValueError:
                raise ValidationError(f"Unknown sound kind: {kind!r}") from None
            if not isinstance(resource, str) or not resource.strip():
                raise ValidationError(f"Sound resource for '{kind.value}' must be a non-empty string")
            sounds[kind] = resource
        self.custom_sounds = sounds

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "volume": self.volume,
            "focusBackgroundSound": self.focus_background_sound,
            "notificationSounds": self.notification_sounds,
            "customSounds": {kind.value: resource for kind, resource in self.custom_sounds.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SoundSettings":
        return cls(
            enabled=data["enabled"],
            volume=data["volume"],
            focus_background_sound=data["focusBackgroundSound"],
            notification_sounds=data["notificationSounds"],
            custom_sounds=dict(data["customSounds"]),
        )
