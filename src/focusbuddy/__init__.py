"""FocusBuddy - attention inference for a desk companion robot.

Smoothed attention level, mood classification and debounced hand gestures
from per-frame face and hand observations.
"""

__version__ = "0.1.0"

from focusbuddy.events import (
    Event,
    EventEmitter,
    DistractedEvent,
    GestureEvent,
    MoodChangedEvent,
    MotivationEvent,
    RobotStateChangedEvent,
)
from focusbuddy.observation import FrameObservation, HandObservation, HandLandmark, HeadPose, LandmarkPoint
from focusbuddy.gestures import GestureRecognizer, GestureKind, GestureTrigger
from focusbuddy.context import AppContext, ContextClassifier, detect
from focusbuddy.attention import (
    AttentionEstimator,
    AttentionState,
    Mood,
    MoodAppearance,
    StrictnessMode,
    TimeOfDay,
    mood_appearance,
)
from focusbuddy.config import FocusSettings, PomodoroPhase, load_config
from focusbuddy.perception import PerceptionWorker, PerceptionSnapshot
from focusbuddy.orchestrator import FocusOrchestrator, FocusStats, FocusStatus, RobotState

__all__ = [
    # Main interface
    "FocusOrchestrator",
    # Components
    "PerceptionWorker",
    "GestureRecognizer",
    "ContextClassifier",
    "AttentionEstimator",
    # Data classes
    "FrameObservation",
    "HandObservation",
    "HandLandmark",
    "HeadPose",
    "LandmarkPoint",
    "PerceptionSnapshot",
    "GestureTrigger",
    "AttentionState",
    "FocusStats",
    "FocusStatus",
    "FocusSettings",
    "MoodAppearance",
    # Enums
    "GestureKind",
    "AppContext",
    "Mood",
    "StrictnessMode",
    "TimeOfDay",
    "PomodoroPhase",
    "RobotState",
    # Functions
    "detect",
    "load_config",
    "mood_appearance",
    # Events
    "Event",
    "EventEmitter",
    "DistractedEvent",
    "GestureEvent",
    "MoodChangedEvent",
    "MotivationEvent",
    "RobotStateChangedEvent",
    # Version
    "__version__",
]
