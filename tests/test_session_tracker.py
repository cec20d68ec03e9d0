import pytest

from attention.adapters.memory_adapters import InMemorySessionLog
from attention.core.models import DistractionType, Session
from attention.core.session_tracker import SessionTracker
from attention.utils.custom_exception import StorageError, ValidationError


def test_start_session_creates_open_session(tracker, session_log):
    session = tracker.start_session("Write report")

    assert session.task_name == "Write report"
    assert session.end_time is None
    assert session.distractions == []
    assert session.duration == 0
    assert tracker.get_current_session() is session
    assert [s.id for s in session_log.get_all()] == [session.id]


@pytest.mark.parametrize("name", ["", "   ", "\t\n"])
def test_start_session_rejects_blank_task(tracker, session_log, name):
    with pytest.raises(ValidationError):
        tracker.start_session(name)
    assert tracker.get_all_sessions() == []
    assert session_log.save_count == 0


def test_end_session_after_ten_minutes(tracker, scheduler):
    session = tracker.start_session("Write report")
    scheduler.advance(600)

    ended = tracker.end_session(session.id)

    assert ended is session
    assert ended.duration == 600000
    assert ended.duration == int((ended.end_time - ended.start_time).total_seconds() * 1000)
    assert tracker.get_current_session() is None


def test_end_session_is_idempotent(tracker, scheduler, session_log):
    session = tracker.start_session("Read")
    scheduler.advance(30)
    tracker.end_session(session.id)
    saves = session_log.save_count
    end_time, duration = session.end_time, session.duration

    scheduler.advance(30)
    assert tracker.end_session(session.id) is None
    assert tracker.end_session("no-such-id") is None
    assert session.end_time == end_time
    assert session.duration == duration
    assert session_log.save_count == saves


def test_single_open_session_across_starts(tracker, scheduler):
    sessions = []
    for name in ["a", "b", "c"]:
        sessions.append(tracker.start_session(name))
        scheduler.advance(5)
        assert sum(1 for s in tracker.get_all_sessions() if s.is_active) == 1

    tracker.end_session(sessions[1].id)
    assert tracker.get_current_session() is sessions[2]
    assert sessions[0].duration == 5000
    assert sum(1 for s in tracker.get_all_sessions() if s.is_active) == 1


def test_add_distraction_event(tracker, scheduler):
    session = tracker.start_session("Code review")
    scheduler.advance(12)

    event = tracker.add_distraction_event(session.id, "app_switch", 0, "tab")

    assert event.type is DistractionType.APP_SWITCH
    assert event.timestamp == scheduler.now()
    assert event.notes == "tab"
    assert session.distractions == [event]


def test_add_distraction_event_unknown_session(tracker):
    assert tracker.add_distraction_event("missing", DistractionType.IDLE, 0) is None


def test_add_distraction_event_validates_input(tracker):
    session = tracker.start_session("x")
    with pytest.raises(ValidationError):
        tracker.add_distraction_event(session.id, "daydreaming", 0)
    with pytest.raises(ValidationError):
        tracker.add_distraction_event(session.id, "idle", -5)


def test_distractions_keep_insertion_order(tracker, scheduler):
    session = tracker.start_session("x")
    for kind in ["idle", "manual", "app_switch"]:
        scheduler.advance(1)
        tracker.add_distraction_event(session.id, kind, 0)
    assert [d.type.value for d in session.distractions] == ["idle", "manual", "app_switch"]


def test_sessions_by_date_range_is_inclusive(tracker, scheduler):
    first = tracker.start_session("first")
    scheduler.advance(3600)
    second = tracker.start_session("second")
    scheduler.advance(3600)
    third = tracker.start_session("third")

    found = tracker.get_sessions_by_date_range(first.start_time, second.start_time)
    assert [s.id for s in found] == [first.id, second.id]

    found = tracker.get_sessions_by_date_range(second.start_time, third.start_time)
    assert [s.id for s in found] == [second.id, third.id]


def test_sessions_by_date_range_accepts_iso_strings(tracker):
    session = tracker.start_session("iso")
    stamp = session.start_time.isoformat()
    assert tracker.get_sessions_by_date_range(stamp, stamp) == [session]


def test_tracker_reloads_persisted_log(tracker, scheduler, session_log):
    session = tracker.start_session("persist me")
    tracker.add_distraction_event(session.id, "idle", 0)
    scheduler.advance(60)
    tracker.end_session(session.id)

    reloaded = SessionTracker(session_log, scheduler)
    [copy] = reloaded.get_all_sessions()
    assert copy.id == session.id
    assert copy.duration == 60000
    assert copy.distractions[0].type is DistractionType.IDLE


class FailingSessionLog(InMemorySessionLog):
    def save_all(self, sessions):
        raise StorageError("disk full")


def test_storage_failure_keeps_memory_authoritative(scheduler):
    tracker = SessionTracker(FailingSessionLog(), scheduler)

    session = tracker.start_session("offline")
    assert tracker.get_current_session() is session
    scheduler.advance(10)
    assert tracker.end_session(session.id).duration == 10000


class FlakySessionLog(InMemorySessionLog):
    def __init__(self, sessions=None, failures=1):
        super().__init__(sessions)
        self.failures = failures

    def get_all(self):
        if self.failures:
            self.failures -= 1
            raise StorageError("database is locked")
        return super().get_all()


def ended_sessions(scheduler, count):
    sessions = []
    for index in range(count):
        session = Session(task_name=f"old {index}", start_time=scheduler.now())
        session.close(scheduler.now())
        sessions.append(session)
    return sessions


def test_failed_first_read_does_not_overwrite_history(scheduler):
    history = ended_sessions(scheduler, 3)
    log = FlakySessionLog(history)
    tracker = SessionTracker(log, scheduler)

    session = tracker.start_session("new")

    stored = log.get_all()
    assert [s.task_name for s in stored] == ["old 0", "old 1", "old 2", "new"]
    assert tracker.get_current_session() is session


def test_unreadable_log_is_never_saved(scheduler):
    log = FlakySessionLog(ended_sessions(scheduler, 2), failures=100)
    tracker = SessionTracker(log, scheduler)

    session = tracker.start_session("offline")
    scheduler.advance(5)
    assert tracker.end_session(session.id).duration == 5000

    assert log.save_count == 0
    log.failures = 0
    assert [s.task_name for s in log.get_all()] == ["old 0", "old 1"]
