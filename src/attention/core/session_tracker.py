from datetime import datetime
from typing import Optional, Union

from attention.core.models import DistractionEvent, DistractionType, Session
from attention.core.ports.clock_port import SchedulerPort
from attention.core.ports.memory_port import SessionLogPort
from attention.utils import custom_exception as ce
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import parse_timestamp


class SessionTracker:
    def __init__(self, session_log: SessionLogPort, clock: SchedulerPort):
        """
        Initialize with a session log adapter (Port implementation) and a clock.
        The log is read lazily; after that the in-memory copy is authoritative.
        """
        self.session_log = session_log
        self.clock = clock
        self.logger = setup_logger(__name__)
        self._sessions: Optional[list[Session]] = None
        # False until get_all() has succeeded once; saving before that would
        # overwrite history we never saw.
        self._loaded = False

    def start_session(self, task_name: str) -> Session:
        """Open a new focus session. Any session still open is ended first."""
        if not isinstance(task_name, str) or not task_name.strip():
            raise ce.ValidationError("Task name is required.")

        sessions = self._load()
        for open_session in [s for s in sessions if s.is_active]:
            self.logger.warning(f"Session {open_session.id} ('{open_session.task_name}') was still open; ending it.")
            open_session.close(self.clock.now())

        session = Session(task_name=task_name, start_time=self.clock.now())
        sessions.append(session)
        self._persist()
        self.logger.info(f"Session started for '{task_name}' (SessionID: {session.id}).")
        return session

    def end_session(self, session_id: str) -> Optional[Session]:
        """Close a session. Unknown or already-ended sessions return None untouched."""
        session = self.get_session(session_id)
        if session is None:
            self.logger.debug(f"end_session: no session with id {session_id}.")
            return None
        if not session.is_active:
            self.logger.debug(f"end_session: session {session_id} already ended.")
            return None

        session.close(self.clock.now())
        self._persist()
        self.logger.info(f"Session ended for '{session.task_name}'. Duration: {session.duration} ms.")
        return session

    def add_distraction_event(
        self,
        session_id: str,
        type: Union[DistractionType, str],
        duration: int,
        notes: Optional[str] = None,
    ) -> Optional[DistractionEvent]:
        distraction_type = DistractionType.parse(type)
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise ce.ValidationError(f"Distraction duration must be a non-negative integer, got {duration!r}")

        session = self.get_session(session_id)
        if session is None:
            self.logger.debug(f"add_distraction_event: no session with id {session_id}.")
            return None

        event = DistractionEvent(
            timestamp=self.clock.now(),
            type=distraction_type,
            duration=duration,
            notes=notes,
        )
        session.distractions.append(event)
        self._persist()
        self.logger.info(f"Distraction '{distraction_type.value}' ({duration} ms) recorded on session {session_id}.")
        return event

    def get_current_session(self) -> Optional[Session]:
        return next((s for s in self._load() if s.is_active), None)

    def get_session(self, session_id: str) -> Optional[Session]:
        return next((s for s in self._load() if s.id == session_id), None)

    def get_all_sessions(self) -> list[Session]:
        return list(self._load())

    def get_sessions_by_date_range(self, start, end) -> list[Session]:
        """Sessions whose start time lies in [start, end], both ends inclusive."""
        start_dt: datetime = parse_timestamp(start)
        end_dt: datetime = parse_timestamp(end)
        return [s for s in self._load() if start_dt <= s.start_time <= end_dt]

    def _load(self) -> list[Session]:
        """Read the log once; until a read succeeds, work in memory and retry on each call."""
        if self._loaded:
            return self._sessions
        try:
            stored = self.session_log.get_all()
        except Exception as e:
            self.logger.exception(f"Could not load the session log, working in memory for now: {e}")
            if self._sessions is None:
                self._sessions = []
            return self._sessions

        unsaved = [s for s in (self._sessions or []) if s.id not in {st.id for st in stored}]
        if any(s.is_active for s in unsaved):
            for open_session in [s for s in stored if s.is_active]:
                self.logger.warning(f"Stored session {open_session.id} was still open; ending it.")
                open_session.close(self.clock.now())
        self._sessions = stored + unsaved
        self._loaded = True
        return self._sessions

    def _persist(self) -> None:
        self._load()
        if not self._loaded:
            self.logger.warning("Session log has not been read yet; skipping save to keep stored history intact.")
            return
        try:
            self.session_log.save_all(self._sessions)
        except Exception as e:
            self.logger.exception(f"Could not persist the session log: {e}")
