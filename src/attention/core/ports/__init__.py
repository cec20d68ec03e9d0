from attention.core.ports.memory_port import RecordStorePort, SessionLogPort
from attention.core.ports.clock_port import SchedulerPort, TimerHandle
from attention.core.ports.activity_port import ActivityChannel, ActivitySignal, ActivitySourcePort
from attention.core.ports.notification_port import NotificationPort, SpeakerPort

__all__ = [
    "RecordStorePort",
    "SessionLogPort",
    "SchedulerPort",
    "TimerHandle",
    "ActivityChannel",
    "ActivitySignal",
    "ActivitySourcePort",
    "NotificationPort",
    "SpeakerPort",
]
