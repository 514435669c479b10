"""FocusBuddy WebSocket Server.

This server receives per-frame face/hand observations from a browser-side
landmark model, runs the FocusBuddy pipeline and streams the robot's state
back in real-time.

Run with: python -m server.app
Or with uvicorn: uvicorn server.app:app --host 0.0.0.0 --port 8000
"""

import asyncio
import json
import logging
import os
from dataclasses import asdict, replace
from typing import Optional, List

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from focusbuddy.attention import Mood, StrictnessMode, mood_appearance
from focusbuddy.config import FocusSettings, PomodoroPhase, load_config
from focusbuddy.context import ContextClassifier
from focusbuddy.observation import FrameObservation
from focusbuddy.orchestrator import FocusOrchestrator
from focusbuddy.perception import PerceptionWorker

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="FocusBuddy Server")

# CORS for browser access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

config = load_config(os.getenv("FOCUSBUDDY_CONFIG"))


class LandmarkModel(BaseModel):
    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class HeadPoseModel(BaseModel):
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0


class FrameModel(BaseModel):
    """One frame of landmarks from the client."""
    face_visible: bool = False
    head_pose: HeadPoseModel = HeadPoseModel()
    face_position_x: float = Field(default=0.5, ge=0.0, le=1.0)
    hands: List[dict[str, LandmarkModel]] = Field(default_factory=list, max_length=2)
    timestamp: Optional[float] = None


class ContextRequest(BaseModel):
    """Request body for context classification."""
    app: str
    title: str = ""
    whitelist: List[str] = Field(default_factory=list)


class ContextMessage(BaseModel):
    """Foreground app update from the client."""
    app: str = ""
    title: str = ""


class SettingsModel(BaseModel):
    """Partial settings update from the client."""
    warning_delay: Optional[float] = None
    distracted_delay: Optional[float] = None
    sensitivity: Optional[float] = None
    strictness_mode: Optional[StrictnessMode] = None
    whitelisted_sites: Optional[List[str]] = None
    pomodoro_phase: Optional[PomodoroPhase] = None


class SessionState:
    """Per-connection session state."""

    def __init__(self):
        self.orchestrator = FocusOrchestrator(config=config)
        self.worker = PerceptionWorker.from_config(config)
        self.settings = FocusSettings.from_config(config)
        self.app_id = ""
        self.title = ""
        self.pending_events: list[dict] = []

        # Register event handlers
        self.orchestrator.on("gesture", self._on_gesture)
        self.orchestrator.on("mood_changed", self._on_mood)
        self.orchestrator.on("motivation", self._on_motivation)

    def _on_gesture(self, event):
        self.pending_events.append({
            "type": "event",
            "event": "gesture",
            "gesture": event.gesture,
            "command": event.command,
        })

    def _on_mood(self, event):
        self.pending_events.append({
            "type": "event",
            "event": "mood_changed",
            "mood": event.mood,
            "previous": event.previous,
        })

    def _on_motivation(self, event):
        self.pending_events.append({
            "type": "event",
            "event": "motivation",
            "message": f"Focused {event.focus_percentage:.0f}% of the time, keep it up!",
        })

    def update_settings(self, update: SettingsModel):
        changes = update.model_dump(exclude_none=True)
        if "whitelisted_sites" in changes:
            changes["whitelisted_sites"] = tuple(s.lower() for s in changes["whitelisted_sites"])
        self.settings = replace(self.settings, **changes)

    def get_pending_events(self) -> list[dict]:
        events = self.pending_events
        self.pending_events = []
        return events


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/context")
async def classify_context(request: ContextRequest):
    """Classify a foreground application and window title."""
    classifier = ContextClassifier.from_config(config.get("context", {}), whitelist=request.whitelist)
    context = classifier.classify(request.app, request.title)
    return {
        "context": context.value,
        "strictness": context.strictness,
        "allowed_look_away": context.allowed_look_away,
    }


@app.get("/moods")
async def list_moods():
    """List moods and how to draw them."""
    return {
        "moods": [
            {"mood": mood.value, **asdict(mood_appearance(mood))}
            for mood in Mood
        ]
    }


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time attention tracking."""
    await websocket.accept()
    logger.info("Client connected")

    session = SessionState()
    ticker = asyncio.create_task(tick_loop(websocket, session))

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "error": "Messages must be JSON"})
                continue

            reply = handle_message(message, session)
            if reply:
                await websocket.send_json(reply)

    except WebSocketDisconnect:
        logger.info("Client disconnected")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        ticker.cancel()


def handle_message(message, session: SessionState) -> Optional[dict]:
    """Apply one client message to the session."""
    if not isinstance(message, dict):
        return {"type": "error", "error": "Messages must be JSON objects"}

    kind = message.get("type")

    try:
        if kind == "frame":
            frame = FrameModel.model_validate(message.get("observation", {}))
            observation = FrameObservation.from_dict(frame.model_dump(exclude_none=True))
            processed = session.worker.submit(observation)
            snapshot = session.worker.latest
            return {
                "type": "ack",
                "frame_id": snapshot.frame_id,
                "processed": processed,
                "face_detected": snapshot.is_face_detected,
                "head_angle": snapshot.head_angle,
                "gestures": sorted(g.value for g in snapshot.active_gestures(observation.timestamp)),
            }

        if kind == "context":
            update = ContextMessage.model_validate(message)
            session.app_id = update.app
            session.title = update.title
            return None

        if kind == "settings":
            session.update_settings(SettingsModel.model_validate(message.get("settings", {})))
            return {"type": "settings", "pomodoro_phase": session.settings.pomodoro_phase.value}

    except ValidationError as e:
        logger.warning(f"Malformed {kind} message: {e.error_count()} errors")
        return {"type": "error", "error": f"Invalid {kind} message"}

    return {"type": "error", "error": f"Unknown message type: {kind}"}


async def tick_loop(websocket: WebSocket, session: SessionState):
    """Tick the session's orchestrator and push its state to the client."""
    orchestrator = session.orchestrator
    ticks_per_motivation = max(1, int(orchestrator.motivation_interval / orchestrator.tick_interval))
    tick_count = 0

    while True:
        await asyncio.sleep(orchestrator.tick_interval)
        try:
            status = orchestrator.tick(
                session.worker.latest,
                session.settings,
                app_id=session.app_id,
                title=session.title,
            )

            tick_count += 1
            if tick_count % ticks_per_motivation == 0:
                orchestrator.check_motivation()
        except Exception as e:
            logger.error(f"Error in session tick: {e}", exc_info=True)
            continue

        await websocket.send_json({"type": "state", **status.to_dict()})
        for event in session.get_pending_events():
            await websocket.send_json(event)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
