import asyncio
import json
from typing import Any, Optional

from fastapi import WebSocket

from attention.core.models import SoundKind
from attention.core.ports.notification_port import NotificationPort, SpeakerPort
from attention.core.sound_manager import SoundManager
from attention.utils.logging_handler import setup_logger

logger = setup_logger(__name__)


# --- CONNECTION MANAGER ---
class ConnectionManager:
    """Tracks dashboard sockets and whether each granted OS notifications."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.active_connections: dict[WebSocket, bool] = {}
        self.loop = loop

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections[websocket] = False

    def disconnect(self, websocket: WebSocket):
        self.active_connections.pop(websocket, None)

    def set_notification_permission(self, websocket: WebSocket, granted: bool):
        if websocket in self.active_connections:
            self.active_connections[websocket] = bool(granted)

    def broadcast(self, msg_type: str, data: Any, per_socket: Optional[dict] = None):
        """Schedule a message to every socket; safe to call from sync code on the loop."""
        if not self.active_connections:
            return
        asyncio.run_coroutine_threadsafe(self._send_to_all(msg_type, data, per_socket or {}), self.loop)

    async def _send_to_all(self, msg_type: str, data: Any, per_socket: dict):
        for ws, granted in list(self.active_connections.items()):
            payload = dict(data) if isinstance(data, dict) else data
            if isinstance(payload, dict) and "os_notification" in per_socket:
                payload["os_notification"] = granted
            try:
                await ws.send_text(json.dumps({"type": msg_type, "data": payload}))
            except Exception as e:
                logger.warning(f"Dropping socket after send failure: {e}")
                self.disconnect(ws)


class BrowserSpeaker(SpeakerPort):
    """Asks connected dashboards to play a sound resource themselves."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    def play(self, resource: str, volume: float, loop: bool = False) -> None:
        self.manager.broadcast("sound", {"action": "play", "resource": resource, "volume": volume, "loop": loop})

    def stop(self) -> None:
        self.manager.broadcast("sound", {"action": "stop"})


class Notifier(NotificationPort):
    """Adapter implementing NotificationPort: toasts on every dashboard,
    plus an OS-level notification where the browser granted permission.
    Sounds go through the SoundManager so the user's sound settings apply.
    """
    def __init__(self, manager: ConnectionManager, sound_manager: Optional[SoundManager] = None):
        self.manager = manager
        self.sound_manager = sound_manager

    def notify(self, title: str, message: str) -> None:
        self.manager.broadcast(
            "notification",
            {"title": title, "message": message},
            per_socket={"os_notification": True},
        )

    def play_sound(self, kind: SoundKind) -> None:
        if self.sound_manager is not None:
            self.sound_manager.play_sound(kind)

    def publish_status(self, source: str, status: dict) -> None:
        """Push a state snapshot (timer tick, distraction change) to dashboards."""
        self.manager.broadcast("status", {"source": source, **status})
