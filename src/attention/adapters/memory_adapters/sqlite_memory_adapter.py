import os
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from attention.core.models import DistractionEvent, DistractionType, Session
from attention.core.ports.memory_port import RecordStorePort, SessionLogPort
from attention.utils import DATA_DIR
from attention.utils import custom_exception as ce
from attention.utils.logging_handler import setup_logger
from attention.utils.time_conversions import format_timestamp, parse_timestamp

DEFAULT_DB_PATH = os.path.join(DATA_DIR, "attention.db")


class SqliteMemoryAdapter(RecordStorePort, SessionLogPort):
    """Stores preference records and the session log in one sqlite file."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.logger = setup_logger(__name__)
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        self.db_path = db_path
        # The app touches the connection from its event loop only.
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cur = self.conn.cursor()
        self.cur.execute("PRAGMA foreign_keys = ON;")
        self._initialize_tables()

    def _initialize_tables(self):
        """Private method to ensure schema exists."""
        self.cur.execute("""
        CREATE TABLE IF NOT EXISTS Records(
            Name TEXT PRIMARY KEY,
            Payload TEXT NOT NULL,
            UpdatedOn TEXT
        );""")
        self.cur.execute("""
        CREATE TABLE IF NOT EXISTS Sessions(
            SessionID TEXT PRIMARY KEY,
            Position INTEGER NOT NULL,
            TaskName TEXT NOT NULL,
            StartTime TEXT NOT NULL,
            EndTime TEXT
        );""")
        self.cur.execute("""
        CREATE TABLE IF NOT EXISTS Distractions(
            DistractionID TEXT PRIMARY KEY,
            SessionID TEXT NOT NULL,
            Position INTEGER NOT NULL,
            Timestamp TEXT NOT NULL,
            Type TEXT NOT NULL,
            Duration INTEGER NOT NULL,
            Notes TEXT,
            FOREIGN KEY (SessionID) REFERENCES Sessions(SessionID) ON DELETE CASCADE
        );""")
        self.conn.commit()

    def close(self):
        self.conn.close()

    # --- RecordStorePort ---
    def read_record(self, name: str) -> Optional[str]:
        try:
            self.cur.execute("SELECT Payload FROM Records WHERE Name = ?", (name,))
            res = self.cur.fetchone()
            return res[0] if res else None
        except sqlite3.Error as e:
            self.logger.exception(f"Database error in read_record: {e}")
            raise ce.StorageError(f"Could not read record '{name}'") from e

    def write_record(self, name: str, payload: str) -> None:
        try:
            self.cur.execute("""
                INSERT INTO Records (Name, Payload, UpdatedOn) VALUES (?, ?, ?)
                ON CONFLICT(Name) DO UPDATE SET Payload = excluded.Payload, UpdatedOn = excluded.UpdatedOn
            """, (name, payload, format_timestamp(datetime.now(timezone.utc))))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            self.logger.exception(f"Database error in write_record: {e}")
            raise ce.StorageError(f"Could not write record '{name}'") from e

    # --- SessionLogPort ---
    def get_all(self) -> list[Session]:
        try:
            self.cur.execute("SELECT SessionID, TaskName, StartTime, EndTime FROM Sessions ORDER BY Position")
            session_rows = self.cur.fetchall()
            self.cur.execute("""
                SELECT DistractionID, SessionID, Timestamp, Type, Duration, Notes
                FROM Distractions ORDER BY SessionID, Position
            """)
            distraction_rows = self.cur.fetchall()
        except sqlite3.Error as e:
            self.logger.exception(f"Database error in get_all: {e}")
            raise ce.StorageError("Could not read the session log") from e

        distractions: dict[str, list[DistractionEvent]] = {}
        for d_id, session_id, timestamp, d_type, duration, notes in distraction_rows:
            try:
                event = DistractionEvent(
                    id=d_id,
                    timestamp=parse_timestamp(timestamp),
                    type=DistractionType.parse(d_type),
                    duration=int(duration),
                    notes=notes,
                )
            except (ValueError, TypeError) as e:
                self.logger.warning(f"Skipping malformed distraction {d_id}: {e}")
                continue
            distractions.setdefault(session_id, []).append(event)

        sessions = []
        for session_id, task_name, start_time, end_time in session_rows:
            try:
                session = Session.from_dict({
                    "id": session_id,
                    "taskName": task_name,
                    "startTime": start_time,
                    "endTime": end_time,
                })
            except (ValueError, TypeError, KeyError) as e:
                self.logger.warning(f"Skipping malformed session {session_id}: {e}")
                continue
            session.distractions = distractions.get(session_id, [])
            sessions.append(session)
        return sessions

    def save_all(self, sessions: list[Session]) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM Sessions")
                for position, session in enumerate(sessions):
                    self.conn.execute("""
                        INSERT INTO Sessions (SessionID, Position, TaskName, StartTime, EndTime)
                        VALUES (?, ?, ?, ?, ?)""",
                        (session.id, position, session.task_name,
                         format_timestamp(session.start_time),
                         format_timestamp(session.end_time) if session.end_time else None))
                    self.conn.executemany("""
                        INSERT INTO Distractions (DistractionID, SessionID, Position, Timestamp, Type, Duration, Notes)
                        VALUES (?, ?, ?, ?, ?, ?, ?)""",
                        [(event.id, session.id, index, format_timestamp(event.timestamp),
                          event.type.value, event.duration, event.notes)
                         for index, event in enumerate(session.distractions)])
        except sqlite3.Error as e:
            self.logger.exception(f"Database error in save_all: {e}")
            raise ce.StorageError("Could not save the session log") from e
