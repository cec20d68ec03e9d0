from typing import Any, Optional

from attention.core.ports.activity_port import (
    ActivityChannel,
    ActivityListener,
    ActivitySignal,
    ActivitySourcePort,
)
from attention.utils import Event
from attention.utils.custom_exception import ValidationError
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)

# Browser event names mapped onto detector channels.
DOM_EVENT_CHANNELS = {
    "mousemove": ActivityChannel.POINTER,
    "mousedown": ActivityChannel.POINTER,
    "click": ActivityChannel.POINTER,
    "keydown": ActivityChannel.KEYBOARD,
    "keypress": ActivityChannel.KEYBOARD,
    "touchstart": ActivityChannel.TOUCH,
    "scroll": ActivityChannel.SCROLL,
    "wheel": ActivityChannel.SCROLL,
    "visibilitychange": ActivityChannel.VISIBILITY,
}


class ActivityHub(ActivitySourcePort):
    """In-process fan-out of activity signals, one Event per channel.

    The WebSocket endpoint publishes what the browser reports; tests publish
    synthetic signals directly.
    """

    def __init__(self):
        self._channels = {channel: Event(name=f"activity:{channel.value}") for channel in ActivityChannel}

    def subscribe(self, channel: ActivityChannel, listener: ActivityListener) -> None:
        self._channels[channel].add_listener(listener)

    def unsubscribe(self, channel: ActivityChannel, listener: ActivityListener) -> None:
        self._channels[channel].remove_listener(listener)

    def listener_count(self, channel: ActivityChannel) -> int:
        return len(self._channels[channel])

    def publish(self, signal: ActivitySignal) -> None:
        self._channels[signal.channel].emit(signal)

    # Convenience emitters
    def pointer(self, kind: str = "mousemove") -> None:
        self.publish(ActivitySignal(ActivityChannel.POINTER, kind))

    def keyboard(self, kind: str = "keydown") -> None:
        self.publish(ActivitySignal(ActivityChannel.KEYBOARD, kind))

    def touch(self, kind: str = "touchstart") -> None:
        self.publish(ActivitySignal(ActivityChannel.TOUCH, kind))

    def scroll(self, kind: str = "scroll") -> None:
        self.publish(ActivitySignal(ActivityChannel.SCROLL, kind))

    def visibility(self, visible: bool) -> None:
        self.publish(ActivitySignal(ActivityChannel.VISIBILITY, "visibilitychange", visible=visible))

    @staticmethod
    def signal_from_payload(data: dict[str, Any]) -> ActivitySignal:
        """Build a signal from a client message ``{"channel"|"kind", "visible"}``."""
        if not isinstance(data, dict):
            raise ValidationError(f"Activity payload must be an object, got {type(data).__name__}")
        channel_name: Optional[str] = data.get("channel")
        kind = str(data.get("kind") or "")
        if channel_name:
            try:
                channel = ActivityChannel(channel_name)
            except ValueError:
                raise ValidationError(f"Unknown activity channel: {channel_name!r}") from None
        elif kind in DOM_EVENT_CHANNELS:
            channel = DOM_EVENT_CHANNELS[kind]
        else:
            raise ValidationError(f"Cannot map activity {data!r} to a channel")

        visible = data.get("visible")
        if channel is ActivityChannel.VISIBILITY:
            if not isinstance(visible, bool):
                raise ValidationError("Visibility signals need a boolean 'visible' field")
        else:
            visible = None
        return ActivitySignal(channel, kind, visible=visible)
