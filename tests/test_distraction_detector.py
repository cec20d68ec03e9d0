import pytest

from attention.core.distraction_detector import DistractionDetector, ReasonPolicy
from attention.core.models import DistractionType
from attention.core.ports.activity_port import ActivityChannel

MOUSE = DistractionType.MOUSE_INACTIVITY
TYPING = DistractionType.TYPING_INACTIVITY
APP_SWITCH = DistractionType.APP_SWITCH


def events_of(session, kind):
    return [d for d in session.distractions if d.type is kind]


@pytest.fixture
def session(tracker):
    return tracker.start_session("Deep work")


def test_pointer_silence_records_one_event(detector, session, scheduler, hub):
    detector.enable()
    hub.keyboard()
    scheduler.advance(59.999)
    assert events_of(session, MOUSE) == []

    scheduler.advance(0.001)
    [start] = events_of(session, MOUSE)
    assert start.duration == 0
    assert detector.is_distracted
    assert detector.distraction_reason is MOUSE

    scheduler.advance(30)
    assert len(events_of(session, MOUSE)) == 1

    hub.pointer()
    start_event, end_event = events_of(session, MOUSE)
    assert end_event.duration == 30000
    assert not detector.is_distracted
    assert detector.distraction_reason is None


def test_activity_keeps_rearming_watchdog(detector, session, scheduler, hub):
    detector.enable()
    for _ in range(10):
        scheduler.advance(50)
        hub.pointer()
        hub.keyboard()
    assert session.distractions == []


def test_scroll_counts_as_pointer_activity(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(45)
    hub.scroll()
    scheduler.advance(45)
    assert events_of(session, MOUSE) == []


def test_keyboard_silence_uses_its_own_threshold(tracker, hub, scheduler, session):
    detector = DistractionDetector(tracker, hub, scheduler, keyboard_inactivity_threshold=120000)
    detector.enable()
    for _ in range(4):
        scheduler.advance(30)
        hub.pointer()
    [start] = events_of(session, TYPING)
    assert start.duration == 0

    scheduler.advance(15)
    hub.keyboard()
    assert [e.duration for e in events_of(session, TYPING)] == [0, 15000]


def test_other_channel_does_not_end_distraction(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(60)
    hub.keyboard()
    assert detector.is_distracted
    assert len(events_of(session, MOUSE)) == 1


def test_visibility_is_edge_triggered(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(5)
    hub.pointer()
    hub.visibility(False)
    [start] = events_of(session, APP_SWITCH)
    assert start.duration == 0
    assert detector.distraction_reason is APP_SWITCH

    scheduler.advance(8)
    hub.visibility(True)
    assert [e.duration for e in events_of(session, APP_SWITCH)] == [0, 8000]
    assert not detector.is_distracted


def test_first_reason_wins_and_pending_reason_follows(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(60)          # pointer silent
    hub.visibility(False)          # held back
    assert detector.distraction_reason is MOUSE
    assert events_of(session, APP_SWITCH) == []

    scheduler.advance(10)
    hub.pointer()                  # mouse clears while page is still hidden
    assert [e.duration for e in events_of(session, MOUSE)] == [0, 10000]
    assert detector.distraction_reason is APP_SWITCH
    assert [e.duration for e in events_of(session, APP_SWITCH)] == [0]


def test_most_recent_reason_wins(tracker, hub, scheduler, session):
    detector = DistractionDetector(tracker, hub, scheduler, policy=ReasonPolicy.MOST_RECENT_WINS)
    detector.enable()
    scheduler.advance(60)
    scheduler.advance(4)
    hub.visibility(False)

    assert detector.distraction_reason is APP_SWITCH
    assert [e.duration for e in events_of(session, MOUSE)] == [0, 4000]
    assert [e.duration for e in events_of(session, APP_SWITCH)] == [0]


def test_disabled_detector_records_nothing(detector, session, scheduler, hub):
    scheduler.advance(600)
    hub.visibility(False)
    assert session.distractions == []


def test_disable_closes_distraction_and_disarms(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(70)
    detector.disable()

    assert [e.duration for e in events_of(session, MOUSE)] == [0, 10000]
    assert scheduler.pending == 0
    assert all(hub.listener_count(channel) == 0 for channel in ActivityChannel)

    scheduler.advance(600)
    assert len(session.distractions) == 2


def test_reenable_rearms_from_now(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(30)
    detector.disable()
    scheduler.advance(100)
    detector.enable()
    scheduler.advance(59)
    assert session.distractions == []
    scheduler.advance(1)
    assert len(events_of(session, MOUSE)) == 1


def test_watchdog_without_session_records_nothing(detector, tracker, scheduler):
    detector.enable()
    scheduler.advance(200)
    assert tracker.get_all_sessions() == []
    assert not detector.is_distracted


def test_manual_distraction_leaves_state_alone(detector, session, scheduler, hub):
    detector.enable()
    scheduler.advance(60)
    event = detector.manually_add_distraction("phone")

    assert event.type is DistractionType.MANUAL
    assert event.duration == 0
    assert event.notes == "Manually recorded distraction: phone"
    assert detector.distraction_reason is MOUSE

    custom = detector.manually_add_distraction("chat", "Slack ping")
    assert custom.notes == "Slack ping"


def test_manual_distraction_without_session(detector):
    assert detector.manually_add_distraction("phone") is None


def test_distraction_events_fire(detector, session, scheduler, hub):
    seen = []
    detector.on_distracted.add_listener(lambda reason: seen.append(("start", reason)))
    detector.on_attentive.add_listener(lambda reason, duration: seen.append(("end", reason, duration)))
    detector.enable()
    scheduler.advance(60)
    hub.pointer()
    assert seen == [("start", MOUSE), ("end", MOUSE, 0)]
