import json
import asyncio
import argparse
from dataclasses import dataclass
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

import uvicorn
from pydantic import BaseModel, ConfigDict, Field
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

# Architecture Imports
from attention import __version__
from attention.core.agent import FocusAgent
from attention.core.distraction_detector import (
    DEFAULT_KEYBOARD_INACTIVITY_THRESHOLD,
    DEFAULT_MOUSE_INACTIVITY_THRESHOLD,
    DistractionDetector,
    ReasonPolicy,
)
from attention.core.idle_detector import DEFAULT_IDLE_THRESHOLD, IdleDetector
from attention.core.preferences import (
    EYE_CARE_SETTINGS_KEY,
    SOUND_SETTINGS_KEY,
    TIMER_SETTINGS_KEY,
    PreferencesService,
)
from attention.core.session_tracker import SessionTracker
from attention.core.sound_manager import SoundManager
from attention.tools.time_tools import EyeCareReminder, Pomodoro

from attention.utils.custom_exception import ValidationError
from attention.utils.logging_handler import setup_logger

from attention.adapters.activity_adapters import ActivityHub
from attention.adapters.clock_adapters import AsyncioScheduler
from attention.adapters.fastapi_adapters.helper_adapters import BrowserSpeaker, ConnectionManager, Notifier
from attention.adapters.memory_adapters import SqliteMemoryAdapter
from attention.adapters.memory_adapters.sqlite_memory_adapter import DEFAULT_DB_PATH

logger = setup_logger(__name__)

SETTINGS_ROUTES = {
    "timer": TIMER_SETTINGS_KEY,
    "eye-care": EYE_CARE_SETTINGS_KEY,
    "sound": SOUND_SETTINGS_KEY,
}


@dataclass
class Args:
    host: str = "127.0.0.1"
    port: int = 8000
    db_path: str = DEFAULT_DB_PATH
    mouse_threshold_ms: int = DEFAULT_MOUSE_INACTIVITY_THRESHOLD
    keyboard_threshold_ms: int = DEFAULT_KEYBOARD_INACTIVITY_THRESHOLD
    idle_threshold_ms: int = DEFAULT_IDLE_THRESHOLD
    reason_policy: str = ReasonPolicy.FIRST_WINS.value
    local_sound: bool = False
    sounds_dir: Optional[str] = None
    auto_continue: bool = False


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    task_name: str = Field(alias="taskName")


class DistractionRequest(BaseModel):
    type: str
    duration: int = 0
    notes: Optional[str] = None


class ManualDistractionRequest(BaseModel):
    type: str = "manual"
    notes: Optional[str] = None


# --- APP FACTORY ---
def create_app(args: Args) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):

        loop = asyncio.get_running_loop()

        scheduler = AsyncioScheduler(loop)
        store = SqliteMemoryAdapter(args.db_path)
        preferences = PreferencesService(store)
        activity_hub = ActivityHub()

        manager = ConnectionManager(loop=loop)
        if args.local_sound:
            from attention.adapters.audio_adapters.sd_adapter import SoundDeviceSpeaker
            speaker = SoundDeviceSpeaker()
        else:
            speaker = BrowserSpeaker(manager)
        sound_manager = SoundManager(preferences, speaker, sounds_dir=args.sounds_dir)
        notifier = Notifier(manager, sound_manager)

        tracker = SessionTracker(store, scheduler)
        detector = DistractionDetector(
            tracker,
            activity_hub,
            scheduler,
            mouse_inactivity_threshold=args.mouse_threshold_ms,
            keyboard_inactivity_threshold=args.keyboard_threshold_ms,
            policy=ReasonPolicy(args.reason_policy),
        )
        idle_detector = IdleDetector(tracker, activity_hub, scheduler, idle_threshold=args.idle_threshold_ms)
        agent = FocusAgent(tracker, detector, idle_detector, notifier=notifier, sound_manager=sound_manager)

        pomodoro = Pomodoro(scheduler, preferences, notifier, auto_continue=args.auto_continue)
        eye_care = EyeCareReminder(scheduler, preferences, notifier)
        pomodoro.on_tick.add_listener(lambda **status: notifier.publish_status("pomodoro", status))
        eye_care.on_tick.add_listener(lambda **status: notifier.publish_status("eye-care", status))
        detector.on_distracted.add_listener(lambda **_: notifier.publish_status("distraction", detector.get_status()))
        detector.on_attentive.add_listener(lambda **_: notifier.publish_status("distraction", detector.get_status()))

        app.state.connection_manager = manager
        app.state.preferences = preferences
        app.state.activity_hub = activity_hub
        app.state.tracker = tracker
        app.state.agent = agent
        app.state.timers = {"pomodoro": pomodoro, "eye-care": eye_care}

        agent.run()
        logger.info("Attention service ready.")

        yield

        # Cleanup
        agent.shutdown()
        pomodoro.close()
        eye_care.close()
        store.close()
        logger.info("Attention service stopped.")

    app = FastAPI(title="Attention Please", version=__version__, lifespan=lifespan)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    # --- Sessions ---
    @app.post("/sessions", status_code=201)
    async def start_session(body: StartSessionRequest):
        return app.state.agent.start_session(body.task_name).to_dict()

    @app.get("/sessions")
    async def list_sessions():
        return [s.to_dict() for s in app.state.tracker.get_all_sessions()]

    @app.get("/sessions/current")
    async def current_session():
        session = app.state.tracker.get_current_session()
        return session.to_dict() if session else None

    @app.get("/sessions/range")
    async def sessions_in_range(start: datetime, end: datetime):
        return [s.to_dict() for s in app.state.tracker.get_sessions_by_date_range(start, end)]

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str):
        session = app.state.tracker.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session.to_dict()

    @app.post("/sessions/{session_id}/end")
    async def end_session(session_id: str):
        session = app.state.agent.end_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="No open session with that id")
        return session.to_dict()

    @app.post("/sessions/{session_id}/distractions", status_code=201)
    async def add_distraction(session_id: str, body: DistractionRequest):
        event = app.state.tracker.add_distraction_event(session_id, body.type, body.duration, body.notes)
        if event is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return event.to_dict()

    # --- Distractions ---
    @app.post("/distractions/manual", status_code=201)
    async def manual_distraction(body: ManualDistractionRequest):
        event = app.state.agent.manually_add_distraction(body.type, body.notes)
        if event is None:
            raise HTTPException(status_code=409, detail="No active session")
        return event.to_dict()

    @app.get("/distraction/status")
    async def distraction_status():
        return app.state.agent.get_status()

    # --- Settings ---
    def _settings_key(name: str) -> str:
        if name not in SETTINGS_ROUTES:
            raise HTTPException(status_code=404, detail=f"Unknown settings record '{name}'")
        return SETTINGS_ROUTES[name]

    @app.get("/settings/{name}")
    async def get_settings(name: str):
        return app.state.preferences.get(_settings_key(name)).to_dict()

    @app.put("/settings/{name}")
    async def update_settings(name: str, changes: dict[str, Any]):
        return app.state.preferences.update(_settings_key(name), changes).to_dict()

    # --- Timers ---
    def _timer(name: str):
        timer = app.state.timers.get(name)
        if timer is None:
            raise HTTPException(status_code=404, detail=f"Unknown timer '{name}'")
        return timer

    @app.get("/timers/{name}")
    async def timer_status(name: str):
        return _timer(name).get_status()

    @app.post("/timers/{name}/{action}")
    async def timer_action(name: str, action: str):
        timer = _timer(name)
        allowed = {"start", "stop", "toggle"}
        if isinstance(timer, Pomodoro):
            allowed |= {"pause", "resume", "reset", "skip"}
        if action not in allowed:
            raise HTTPException(status_code=404, detail=f"Unknown action '{action}' for timer '{name}'")
        getattr(timer, action)()
        return timer.get_status()

    # --- Activity feed ---
    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        manager = app.state.connection_manager
        hub = app.state.activity_hub

        await manager.connect(websocket)
        await websocket.send_text(json.dumps({"type": "status", "data": {"source": "agent", **app.state.agent.get_status()}}))

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if not isinstance(msg, dict):
                    continue

                msg_type = msg.get("type")
                payload = msg.get("data") or {}
                if not isinstance(payload, dict):
                    await websocket.send_text(json.dumps({"type": "error", "data": {"detail": "'data' must be an object"}}))
                    continue

                if msg_type == "activity":
                    try:
                        hub.publish(ActivityHub.signal_from_payload(payload))
                    except ValidationError as e:
                        await websocket.send_text(json.dumps({"type": "error", "data": {"detail": str(e)}}))

                elif msg_type == "permission":
                    manager.set_notification_permission(websocket, bool(payload.get("granted")))

        except WebSocketDisconnect:
            manager.disconnect(websocket)
        except Exception as e:
            logger.error(f"WS Error: {e}")
            manager.disconnect(websocket)

    return app


def run_app(args: Args) -> None:
    app = create_app(args)
    try:
        uvicorn.run(app, host=args.host, port=args.port)
    except Exception as e:
        logger.error(f"error in run_app: {e}")


def main() -> None:
    default_args = Args()
    parser = argparse.ArgumentParser(description="Focus tracking and wellness timer service.")
    parser.add_argument("--host", type=str, default=default_args.host)
    parser.add_argument("--port", type=int, default=default_args.port)
    parser.add_argument("--db-path", type=str, default=default_args.db_path)
    parser.add_argument("--mouse-threshold-ms", type=int, default=default_args.mouse_threshold_ms)
    parser.add_argument("--keyboard-threshold-ms", type=int, default=default_args.keyboard_threshold_ms)
    parser.add_argument("--idle-threshold-ms", type=int, default=default_args.idle_threshold_ms)
    parser.add_argument("--reason-policy", choices=[p.value for p in ReasonPolicy], default=default_args.reason_policy)
    parser.add_argument("--local-sound", action="store_true", help="Play sounds on this machine instead of the browser.")
    parser.add_argument("--sounds-dir", type=str, default=default_args.sounds_dir)
    parser.add_argument("--auto-continue", action="store_true", help="Roll Pomodoro phases without waiting.")
    parsed_args = parser.parse_args()
    run_app(Args(**vars(parsed_args)))


if __name__ == "__main__":
    logger.info("="*50)
    main()
