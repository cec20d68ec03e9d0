import os
import tempfile

# Keep log files out of the user's home while testing.
os.environ.setdefault("ATTENTION_HOME", tempfile.mkdtemp(prefix="attention-tests-"))
os.environ.setdefault("ATTENTION_LOG_LEVEL", "WARNING")

import pytest

from attention.adapters.activity_adapters import ActivityHub
from attention.adapters.clock_adapters import ManualScheduler
from attention.adapters.memory_adapters import InMemoryRecordStore, InMemorySessionLog
from attention.core.distraction_detector import DistractionDetector
from attention.core.idle_detector import IdleDetector
from attention.core.ports.notification_port import NotificationPort, SpeakerPort
from attention.core.preferences import PreferencesService
from attention.core.session_tracker import SessionTracker


class RecordingNotifier(NotificationPort):
    def __init__(self):
        self.notifications = []
        self.sounds = []

    def notify(self, title, message):
        self.notifications.append((title, message))

    def play_sound(self, kind):
        self.sounds.append(kind)

    @property
    def titles(self):
        return [title for title, _ in self.notifications]


class RecordingSpeaker(SpeakerPort):
    def __init__(self):
        self.played = []
        self.stopped = 0

    def play(self, resource, volume, loop=False):
        self.played.append((resource, volume, loop))

    def stop(self):
        self.stopped += 1


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def hub():
    return ActivityHub()


@pytest.fixture
def session_log():
    return InMemorySessionLog()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def preferences(record_store):
    return PreferencesService(record_store)


@pytest.fixture
def tracker(session_log, scheduler):
    return SessionTracker(session_log, scheduler)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def speaker():
    return RecordingSpeaker()


@pytest.fixture
def detector(tracker, hub, scheduler):
    return DistractionDetector(tracker, hub, scheduler)


@pytest.fixture
def idle_detector(tracker, hub, scheduler):
    return IdleDetector(tracker, hub, scheduler)
