from abc import ABC, abstractmethod
from typing import Optional

from attention.core.models import Session


class RecordStorePort(ABC):
    """Named-record persistence. Payloads are opaque JSON text."""

    @abstractmethod
    def read_record(self, name: str) -> Optional[str]:
        """Return the stored payload, or None when the record is absent."""
        pass

    @abstractmethod
    def write_record(self, name: str, payload: str) -> None:
        """Replace the record wholesale."""
        pass


class SessionLogPort(ABC):
    """Whole-collection access to the focus-session log."""

    @abstractmethod
    def get_all(self) -> list[Session]:
        """Return every stored session in insertion order."""
        pass

    @abstractmethod
    def save_all(self, sessions: list[Session]) -> None:
        """Replace the stored collection with ``sessions``."""
        pass
