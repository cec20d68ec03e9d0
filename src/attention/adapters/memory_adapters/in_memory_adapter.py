import copy
from typing import Optional

from attention.core.models import Session
from attention.core.ports.memory_port import RecordStorePort, SessionLogPort


class InMemoryRecordStore(RecordStorePort):
    """Process-local record store; contents vanish with the process."""

    def __init__(self, records: Optional[dict[str, str]] = None):
        self.records: dict[str, str] = dict(records or {})

    def read_record(self, name: str) -> Optional[str]:
        return self.records.get(name)

    def write_record(self, name: str, payload: str) -> None:
        self.records[name] = payload


class InMemorySessionLog(SessionLogPort):
    """Keeps copies so callers never share objects with the store."""

    def __init__(self, sessions: Optional[list[Session]] = None):
        self._sessions: list[Session] = copy.deepcopy(sessions or [])
        self.save_count = 0

    def get_all(self) -> list[Session]:
        return copy.deepcopy(self._sessions)

    def save_all(self, sessions: list[Session]) -> None:
        self._sessions = copy.deepcopy(sessions)
        self.save_count += 1
