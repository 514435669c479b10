"""Per-frame perception processing and snapshot publication.

The perception provider delivers frames on its own thread at camera rate.
PerceptionWorker analyzes each frame (head pose, gestures) behind a
single-flight gate, dropping frames that arrive while the previous one is
still being processed, and publishes an immutable PerceptionSnapshot. The
orchestrator's tick only ever reads the latest snapshot.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from focusbuddy.gestures import GestureKind, GestureRecognizer
from focusbuddy.observation import FrameObservation

logger = logging.getLogger(__name__)


# How long a gesture flag stays raised for the presentation layer
PRESENTATION_WINDOWS: dict[GestureKind, float] = {
    GestureKind.WAVE: 2.0,
    GestureKind.PEACE_SIGN: 1.5,
    GestureKind.HEART: 3.0,
}


@dataclass(frozen=True)
class FaceAnalysis:
    """Whether the user faces the screen, and how far the head is turned."""

    looking: bool = False
    head_angle: float = 0.0  # radians, |yaw| + |pitch| + 0.5 * |roll|
    head_yaw: float = 0.0  # signed, for eye tracking


# Beyond these the face is treated as turned away
MAX_YAW = 0.5  # ~30 degrees
MAX_PITCH = 0.5
MAX_ROLL = 0.7  # ~40 degrees


def analyze_face(observation: FrameObservation) -> FaceAnalysis:
    """Derive looking/head-angle signals from a frame's head pose."""
    if not observation.face_visible:
        return FaceAnalysis()

    pose = observation.head_pose
    angle = abs(pose.yaw) + abs(pose.pitch) + abs(pose.roll) * 0.5
    looking = abs(pose.yaw) <= MAX_YAW and abs(pose.pitch) <= MAX_PITCH and abs(pose.roll) <= MAX_ROLL
    return FaceAnalysis(looking=looking, head_angle=angle, head_yaw=pose.yaw)


@dataclass(frozen=True)
class PerceptionSnapshot:
    """Immutable result of the latest processed frame."""

    observation: FrameObservation = field(default_factory=lambda: FrameObservation.empty(0.0))
    frame_id: int = 0
    is_face_detected: bool = False
    head_angle: float = 0.0
    head_yaw: float = 0.0
    face_position_x: float = 0.5
    last_face_time: Optional[float] = None
    # Most recent trigger time per gesture kind
    gesture_times: Mapping[GestureKind, float] = field(default_factory=lambda: MappingProxyType({}))
    presentation_windows: Mapping[GestureKind, float] = field(
        default_factory=lambda: MappingProxyType(dict(PRESENTATION_WINDOWS))
    )

    def is_active(self, kind: GestureKind, now: float | None = None) -> bool:
        """Whether a gesture flag is still within its presentation window."""
        triggered = self.gesture_times.get(kind)
        if triggered is None:
            return False
        if now is None:
            now = time.time()
        return now - triggered < self.presentation_windows.get(kind, 0.0)

    def active_gestures(self, now: float | None = None) -> frozenset[GestureKind]:
        if now is None:
            now = time.time()
        return frozenset(kind for kind in self.gesture_times if self.is_active(kind, now))

    def time_since_face(self, now: float | None = None) -> Optional[float]:
        if self.last_face_time is None:
            return None
        if now is None:
            now = time.time()
        return now - self.last_face_time

    @property
    def is_waving(self) -> bool:
        return self.is_active(GestureKind.WAVE)

    @property
    def is_showing_peace_sign(self) -> bool:
        return self.is_active(GestureKind.PEACE_SIGN)

    @property
    def is_showing_heart(self) -> bool:
        return self.is_active(GestureKind.HEART)


class PerceptionWorker:
    """Processes frames and publishes snapshots.

    Usage:
        worker = PerceptionWorker()

        # From the capture thread, once per frame
        worker.submit(observation)

        # From the tick loop
        snapshot = worker.latest
    """

    def __init__(
        self,
        recognizer: GestureRecognizer | None = None,
        presentation_windows: dict[GestureKind, float] | None = None,
    ):
        """Initialize worker.

        Args:
            recognizer: Gesture recognizer owned by this worker
            presentation_windows: Seconds each gesture flag stays raised
        """
        self.recognizer = recognizer or GestureRecognizer()
        windows = dict(PRESENTATION_WINDOWS)
        if presentation_windows:
            windows.update(presentation_windows)
        self.presentation_windows = MappingProxyType(windows)

        self._busy = threading.Lock()
        self._latest = PerceptionSnapshot(presentation_windows=self.presentation_windows)
        self._frame_id = 0
        self._dropped = 0

        self._running = False
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, config: dict) -> "PerceptionWorker":
        """Build from a full config dict, reading presentation windows from `perception`."""
        section = config.get("perception", {})
        windows = {
            GestureKind.WAVE: section.get("wave_window", PRESENTATION_WINDOWS[GestureKind.WAVE]),
            GestureKind.PEACE_SIGN: section.get("peace_sign_window", PRESENTATION_WINDOWS[GestureKind.PEACE_SIGN]),
            GestureKind.HEART: section.get("heart_window", PRESENTATION_WINDOWS[GestureKind.HEART]),
        }
        return cls(presentation_windows={k: float(v) for k, v in windows.items()})

    @property
    def latest(self) -> PerceptionSnapshot:
        """The most recently published snapshot."""
        return self._latest

    def submit(self, observation: FrameObservation) -> bool:
        """Process one frame unless another is still in flight.

        Returns:
            True if the frame was processed, False if dropped or skipped
        """
        if not self._busy.acquire(blocking=False):
            self._dropped += 1
            logger.debug(f"Dropped frame at {observation.timestamp:.3f}, previous still in flight")
            return False

        try:
            self._latest = self._process(observation)
            return True
        except Exception as e:
            # A failed frame counts as no observation
            logger.debug(f"Skipping frame after perception error: {e}", exc_info=True)
            return False
        finally:
            self._busy.release()

    def _process(self, observation: FrameObservation) -> PerceptionSnapshot:
        now = observation.timestamp
        previous = self._latest

        face = analyze_face(observation)
        triggers = self.recognizer.process(observation.hands, now)

        gesture_times = dict(previous.gesture_times)
        for trigger in triggers:
            gesture_times[trigger.kind] = trigger.timestamp
            logger.info(f"Gesture: {trigger.kind.value}")

        self._frame_id += 1
        return PerceptionSnapshot(
            observation=observation,
            frame_id=self._frame_id,
            is_face_detected=face.looking,
            head_angle=face.head_angle,
            head_yaw=face.head_yaw,
            face_position_x=observation.face_position_x if observation.face_visible else previous.face_position_x,
            last_face_time=now if face.looking else previous.last_face_time,
            gesture_times=MappingProxyType(gesture_times),
            presentation_windows=self.presentation_windows,
        )

    def run(self, provider: Iterable[FrameObservation]):
        """Drain a perception provider on a background thread."""
        if self._running:
            logger.warning("Perception worker already running")
            return

        self._running = True
        self._thread = threading.Thread(target=self._run_loop, args=(provider,), daemon=True)
        self._thread.start()
        logger.info("Perception worker started")

    def _run_loop(self, provider: Iterable[FrameObservation]):
        for observation in provider:
            if not self._running:
                break
            self.submit(observation)
        self._running = False

    def stop(self):
        """Stop draining the provider."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None
        logger.info("Perception worker stopped")

    def reset(self):
        """Forget gestures and publish an empty snapshot."""
        self.recognizer.reset()
        self._latest = PerceptionSnapshot(presentation_windows=self.presentation_windows)

    @property
    def frame_count(self) -> int:
        """Frames processed so far."""
        return self._frame_id

    @property
    def dropped_count(self) -> int:
        """Frames dropped because the previous one was still in flight."""
        return self._dropped

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
