"""Per-frame observation records delivered by a perception provider.

A perception provider (camera + landmark model, a browser client, a replay
file) yields one FrameObservation per processed frame. Coordinates are
frame-normalized to [0, 1] with y increasing downward, so nothing here
depends on camera resolution.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class HandLandmark(Enum):
    """Named hand keypoints used by the gesture detectors."""

    WRIST = "wrist"
    THUMB_TIP = "thumb_tip"
    INDEX_TIP = "index_tip"
    MIDDLE_TIP = "middle_tip"
    RING_TIP = "ring_tip"
    LITTLE_TIP = "little_tip"
    INDEX_BASE = "index_base"
    MIDDLE_BASE = "middle_base"
    RING_BASE = "ring_base"
    LITTLE_BASE = "little_base"


@dataclass(frozen=True)
class LandmarkPoint:
    """A single keypoint with its detection confidence."""

    x: float
    y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class HandObservation:
    """Keypoints of one detected hand. Undetected landmarks are absent."""

    landmarks: Mapping[HandLandmark, LandmarkPoint] = field(default_factory=dict)

    def point(self, landmark: HandLandmark) -> Optional[LandmarkPoint]:
        return self.landmarks.get(landmark)

    def confident(self, landmark: HandLandmark, threshold: float) -> Optional[LandmarkPoint]:
        """Return the landmark only if its confidence exceeds threshold."""
        point = self.landmarks.get(landmark)
        if point is None or point.confidence <= threshold:
            return None
        return point

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HandObservation":
        """Build from {"wrist": {"x": .., "y": .., "confidence": ..}, ...}.

        Unknown landmark names are ignored.
        """
        known = {lm.value: lm for lm in HandLandmark}
        landmarks = {}
        for name, raw in data.items():
            landmark = known.get(name)
            if landmark is None:
                continue
            landmarks[landmark] = LandmarkPoint(
                x=float(raw["x"]),
                y=float(raw["y"]),
                confidence=float(raw.get("confidence", 1.0)),
            )
        return cls(landmarks=landmarks)


@dataclass(frozen=True)
class HeadPose:
    """Head orientation in radians (signed)."""

    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True)
class FrameObservation:
    """Everything the perception provider saw in one frame."""

    face_visible: bool = False
    head_pose: HeadPose = field(default_factory=HeadPose)
    face_position_x: float = 0.5  # 0 = left edge, 1 = right edge
    hands: tuple[HandObservation, ...] = ()
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def empty(cls, timestamp: float | None = None) -> "FrameObservation":
        """A degraded frame: no face, no hands."""
        return cls(timestamp=time.time() if timestamp is None else timestamp)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FrameObservation":
        """Build from the JSON/YAML shape used by replay files and the server."""
        pose = data.get("head_pose") or {}
        hands = tuple(HandObservation.from_dict(h) for h in data.get("hands", ())[:2])
        timestamp = data.get("timestamp")
        return cls(
            face_visible=bool(data.get("face_visible", False)),
            head_pose=HeadPose(
                yaw=float(pose.get("yaw", 0.0)),
                pitch=float(pose.get("pitch", 0.0)),
                roll=float(pose.get("roll", 0.0)),
            ),
            face_position_x=float(data.get("face_position_x", 0.5)),
            hands=hands,
            timestamp=time.time() if timestamp is None else float(timestamp),
        )
