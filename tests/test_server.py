import asyncio

from fastapi.testclient import TestClient

from focusbuddy.config import PomodoroPhase
from server.app import SessionState, app, handle_message, tick_loop

client = TestClient(app)

PEACE_HAND = {
    "index_tip": {"x": 0.45, "y": 0.30, "confidence": 0.9},
    "middle_tip": {"x": 0.51, "y": 0.31, "confidence": 0.9},
    "ring_tip": {"x": 0.55, "y": 0.52, "confidence": 0.9},
    "little_tip": {"x": 0.60, "y": 0.53, "confidence": 0.9},
    "index_base": {"x": 0.46, "y": 0.45, "confidence": 0.9},
    "middle_base": {"x": 0.50, "y": 0.45, "confidence": 0.9},
    "ring_base": {"x": 0.55, "y": 0.46, "confidence": 0.9},
    "little_base": {"x": 0.60, "y": 0.47, "confidence": 0.9},
}


def receive_until(ws, kind):
    while True:
        message = ws.receive_json()
        if message["type"] == kind:
            return message


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_classify_context():
    response = client.post("/context", json={"app": "Google Chrome", "title": "Reddit"})
    assert response.status_code == 200
    body = response.json()
    assert body["context"] == "distracting"
    assert body["strictness"] == 1.5
    assert body["allowed_look_away"] is False


def test_classify_context_with_whitelist():
    response = client.post(
        "/context",
        json={"app": "Google Chrome", "title": "r/python - Reddit", "whitelist": ["r/python"]},
    )
    assert response.json()["context"] == "working"


def test_classify_context_requires_app():
    assert client.post("/context", json={"title": "x"}).status_code == 422


def test_list_moods():
    moods = client.get("/moods").json()["moods"]
    assert len(moods) == 12
    happy = next(m for m in moods if m["mood"] == "happy")
    assert happy["display_name"] == "Happy"
    assert happy["eye_color"] == "#34C759"


def test_frame_message_acknowledged():
    session = SessionState()
    reply = handle_message({
        "type": "frame",
        "observation": {"face_visible": True, "head_pose": {"yaw": 0.1}, "hands": [PEACE_HAND]},
    }, session)
    assert reply["type"] == "ack"
    assert reply["frame_id"] == 1
    assert reply["processed"] is True
    assert reply["face_detected"] is True
    assert reply["head_angle"] == 0.1
    assert reply["gestures"] == ["peace_sign"]


def test_frame_with_too_many_hands_is_rejected():
    session = SessionState()
    reply = handle_message({"type": "frame", "observation": {"hands": [{}, {}, {}]}}, session)
    assert reply == {"type": "error", "error": "Invalid frame message"}
    assert session.worker.frame_count == 0


def test_frame_with_out_of_range_landmark_is_rejected():
    session = SessionState()
    hand = {"wrist": {"x": 1.5, "y": 0.5}}
    reply = handle_message({"type": "frame", "observation": {"hands": [hand]}}, session)
    assert reply["type"] == "error"


def test_context_message_updates_session():
    session = SessionState()
    assert handle_message({"type": "context", "app": "Telegram", "title": ""}, session) is None
    assert session.app_id == "Telegram"


def test_settings_message_updates_phase_and_whitelist():
    session = SessionState()
    reply = handle_message({
        "type": "settings",
        "settings": {"pomodoro_phase": "working", "whitelisted_sites": ["GitHub"]},
    }, session)
    assert reply == {"type": "settings", "pomodoro_phase": "working"}
    assert session.settings.pomodoro_phase == PomodoroPhase.WORKING
    assert session.settings.whitelisted_sites == ("github",)
    # untouched fields keep their values
    assert session.settings.sensitivity == 0.4


def test_invalid_settings_rejected():
    session = SessionState()
    reply = handle_message({"type": "settings", "settings": {"strictness_mode": "harsh"}}, session)
    assert reply["type"] == "error"


def test_unknown_message_type():
    reply = handle_message({"type": "ping"}, SessionState())
    assert reply == {"type": "error", "error": "Unknown message type: ping"}


def test_session_queues_gesture_events():
    session = SessionState()
    handle_message({"type": "frame", "observation": {"hands": [PEACE_HAND]}}, session)
    session.orchestrator.tick(session.worker.latest, session.settings)
    events = session.get_pending_events()
    assert {"type": "event", "event": "gesture", "gesture": "peace_sign", "command": "toggle_pause"} in events
    assert session.get_pending_events() == []


def test_websocket_round_trip():
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert receive_until(ws, "error")["error"] == "Messages must be JSON"

        ws.send_json({"type": "frame", "observation": {"face_visible": True}})
        ack = receive_until(ws, "ack")
        assert ack["face_detected"] is True

        ws.send_json({"type": "settings", "settings": {"pomodoro_phase": "on_break"}})
        assert receive_until(ws, "settings")["pomodoro_phase"] == "on_break"

        state = receive_until(ws, "state")
        assert "mood" in state
        assert "level" in state


def test_context_message_with_non_string_app_is_rejected():
    session = SessionState()
    reply = handle_message({"type": "context", "app": 123}, session)
    assert reply == {"type": "error", "error": "Invalid context message"}
    assert session.app_id == ""


def test_non_object_message_is_rejected():
    for message in ([1, 2], "hi", 3, None):
        reply = handle_message(message, SessionState())
        assert reply == {"type": "error", "error": "Messages must be JSON objects"}


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


def test_tick_loop_keeps_pushing_state_after_tick_error():
    session = SessionState()
    session.orchestrator.tick_interval = 0.01
    real_tick = session.orchestrator.tick
    calls = []

    def flaky_tick(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise AttributeError("'int' object has no attribute 'lower'")
        return real_tick(*args, **kwargs)

    session.orchestrator.tick = flaky_tick
    socket = RecordingSocket()

    async def main():
        task = asyncio.create_task(tick_loop(socket, session))
        await asyncio.sleep(0.2)
        assert not task.done()
        task.cancel()

    asyncio.run(main())
    assert len(calls) > 1
    assert any(m["type"] == "state" for m in socket.sent)


def test_websocket_survives_non_object_message():
    with client.websocket_connect("/ws") as ws:
        ws.send_text("[1, 2]")
        assert receive_until(ws, "error")["error"] == "Messages must be JSON objects"

        ws.send_json({"type": "context", "app": 123})
        assert receive_until(ws, "error")["error"] == "Invalid context message"

        ws.send_json({"type": "frame", "observation": {"face_visible": True}})
        assert receive_until(ws, "ack")["face_detected"] is True
