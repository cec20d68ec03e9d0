from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class ActivityChannel(Enum):
    POINTER = "pointer"
    KEYBOARD = "keyboard"
    TOUCH = "touch"
    SCROLL = "scroll"
    VISIBILITY = "visibility"


@dataclass(frozen=True)
class ActivitySignal:
    channel: ActivityChannel
    kind: str = ""  # host event name, e.g. "mousemove"
    visible: Optional[bool] = None  # only meaningful on the visibility channel


ActivityListener = Callable[[ActivitySignal], None]


class ActivitySourcePort(ABC):
    """Input and visibility signals from the host surface."""

    @abstractmethod
    def subscribe(self, channel: ActivityChannel, listener: ActivityListener) -> None:
        pass

    @abstractmethod
    def unsubscribe(self, channel: ActivityChannel, listener: ActivityListener) -> None:
        pass
