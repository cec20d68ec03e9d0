import pytest
from fastapi.testclient import TestClient

from attention.main.fastapi_main import Args, create_app


@pytest.fixture
def client():
    with TestClient(create_app(Args(db_path=":memory:"))) as test_client:
        yield test_client


def start(client, task_name="Write report"):
    response = client.post("/sessions", json={"taskName": task_name})
    assert response.status_code == 201
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_session_lifecycle(client):
    assert client.get("/sessions/current").json() is None

    session = start(client)
    assert session["taskName"] == "Write report"
    assert session["endTime"] is None
    assert client.get("/sessions/current").json()["id"] == session["id"]

    ended = client.post(f"/sessions/{session['id']}/end")
    assert ended.status_code == 200
    assert ended.json()["endTime"] is not None
    assert client.post(f"/sessions/{session['id']}/end").status_code == 404
    assert [s["id"] for s in client.get("/sessions").json()] == [session["id"]]


def test_blank_task_name_is_rejected(client):
    assert client.post("/sessions", json={"taskName": "   "}).status_code == 422
    assert client.get("/sessions").json() == []


def test_starting_again_ends_previous_session(client):
    first = start(client, "First")
    second = start(client, "Second")

    assert client.get(f"/sessions/{first['id']}").json()["endTime"] is not None
    assert client.get("/sessions/current").json()["id"] == second["id"]


def test_distractions(client):
    session = start(client)
    response = client.post(
        f"/sessions/{session['id']}/distractions",
        json={"type": "app_switch", "duration": 1500, "notes": "Checked mail"},
    )
    assert response.status_code == 201
    assert response.json()["duration"] == 1500

    bad_type = client.post(f"/sessions/{session['id']}/distractions", json={"type": "daydream"})
    assert bad_type.status_code == 422
    negative = client.post(f"/sessions/{session['id']}/distractions", json={"type": "idle", "duration": -5})
    assert negative.status_code == 422
    assert client.post("/sessions/nope/distractions", json={"type": "idle"}).status_code == 404

    manual = client.post("/distractions/manual", json={"type": "phone"})
    assert manual.status_code == 201
    assert manual.json()["type"] == "manual"

    stored = client.get(f"/sessions/{session['id']}").json()
    assert [d["type"] for d in stored["distractions"]] == ["app_switch", "manual"]


def test_manual_distraction_needs_open_session(client):
    assert client.post("/distractions/manual", json={}).status_code == 409


def test_sessions_by_range(client):
    session = start(client)
    inside = client.get("/sessions/range", params={"start": "2000-01-01T00:00:00Z", "end": "2100-01-01T00:00:00Z"})
    outside = client.get("/sessions/range", params={"start": "2000-01-01T00:00:00Z", "end": "2000-01-02T00:00:00Z"})

    assert [s["id"] for s in inside.json()] == [session["id"]]
    assert outside.json() == []


def test_settings_round_trip(client):
    assert client.get("/settings/timer").json() == {"focusTime": 25, "breakTime": 5}

    updated = client.put("/settings/timer", json={"focusTime": 50})
    assert updated.json() == {"focusTime": 50, "breakTime": 5}
    assert client.get("/timers/pomodoro").json()["remaining_time_formatted"] == "50:00"

    assert client.put("/settings/sound", json={"volume": 2}).status_code == 422
    assert client.put("/settings/eye-care", json={"nope": 1}).status_code == 422
    assert client.get("/settings/window").status_code == 404


def test_timer_actions(client):
    started = client.post("/timers/pomodoro/start").json()
    assert started["is_active"] is True
    assert started["mode"] == "focus"

    paused = client.post("/timers/pomodoro/pause").json()
    assert paused["is_paused"] is True

    stopped = client.post("/timers/pomodoro/stop").json()
    assert stopped["is_active"] is False

    eye = client.post("/timers/eye-care/toggle").json()
    assert eye["is_active"] is True
    assert eye["reminder_type"] == "eyeBreak"

    assert client.post("/timers/eye-care/pause").status_code == 404
    assert client.get("/timers/kitchen").status_code == 404


def test_websocket_activity_feed(client):
    with client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "status"
        assert hello["data"]["session"] is None

        ws.send_json({"type": "permission", "data": {"granted": True}})
        # Messages are handled in order, so the error reply means the grant landed.
        ws.send_json({"type": "activity", "data": {"kind": "resize"}})
        assert ws.receive_json()["type"] == "error"

        start(client)
        notification = ws.receive_json()
        assert notification["type"] == "notification"
        assert notification["data"]["title"] == "Focus session started"
        assert notification["data"]["os_notification"] is True

        ws.send_json({"type": "activity", "data": {"kind": "visibilitychange", "visible": False}})
        sound = ws.receive_json()
        assert sound == {
            "type": "sound",
            "data": {"action": "play", "resource": "gentle-alert.wav", "volume": 0.7, "loop": False},
        }
        status = ws.receive_json()
        assert status["data"]["source"] == "distraction"
        assert status["data"]["distraction_reason"] == "app_switch"



@pytest.mark.parametrize("data", ["mousemove", ["pointer"], 42])
def test_websocket_survives_malformed_activity_data(client, data):
    start(client)
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "activity", "data": data})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "activity", "data": {"kind": "visibilitychange", "visible": False}})
        assert ws.receive_json()["type"] == "sound"
        assert ws.receive_json()["data"]["is_distracted"] is True

    assert client.get("/distraction/status").json()["distraction"]["is_distracted"] is True
