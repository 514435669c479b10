"""Attention estimation and mood classification.

Turns per-tick face/pose signals into a smoothed attention level and a
discrete robot mood. Looking away is tolerated for a grace period before
the target level starts to decay, and the visible level only ever eases
toward the target so a single noisy frame never flips the mood.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np

from focusbuddy.context import AppContext

logger = logging.getLogger(__name__)


class Mood(Enum):
    """Robot moods."""

    # Level bands
    HAPPY = "happy"
    NEUTRAL = "neutral"
    CONCERNED = "concerned"
    WORRIED = "worried"
    SAD = "sad"

    # Overrides and reactions
    PROUD = "proud"  # focused during a work session or in the morning
    SURPRISED = "surprised"
    SLEEPY = "sleepy"  # late at night outside a work session
    ANGRY = "angry"  # distracting app opened
    SKEPTICAL = "skeptical"  # distracting app, again
    LOVE = "love"
    CELEBRATING = "celebrating"


@dataclass(frozen=True)
class MoodAppearance:
    """How a mood is drawn. Consumed by the renderer only."""

    display_name: str
    eye_color: str
    eye_scale: float
    pupil_size: float
    brow_position: float  # -1 frown, 0 neutral, 1 raised
    mouth_shape: float  # -1 sad, 0 neutral, 1 smile
    antenna_position: float  # -1 drooping, 1 excited
    mouth_open: float = 0.0
    blush_intensity: float = 0.0
    left_eye_modifier: float = 1.0
    right_eye_modifier: float = 1.0


MOOD_APPEARANCE: dict[Mood, MoodAppearance] = {
    Mood.HAPPY: MoodAppearance("Happy", "#34C759", 1.0, 1.0, 0.3, 0.7, 0.3),
    Mood.NEUTRAL: MoodAppearance("Neutral", "#34C759CC", 0.95, 1.0, 0.0, 0.0, 0.0),
    Mood.CONCERNED: MoodAppearance("Concerned", "#FFCC00", 0.9, 0.9, 0.5, -0.2, -0.2),
    Mood.WORRIED: MoodAppearance("Worried", "#FF9500", 0.85, 0.8, 0.7, -0.4, -0.4),
    Mood.SAD: MoodAppearance("Sad", "#FF3B30", 0.75, 0.7, -0.5, -0.8, -0.8),
    Mood.PROUD: MoodAppearance("Proud", "#66CC66", 0.85, 0.9, 0.2, 0.5, 0.5, blush_intensity=0.3),
    Mood.SURPRISED: MoodAppearance("Surprised", "#32ADE6", 1.3, 1.4, 1.0, 0.0, 0.9, mouth_open=0.8),
    Mood.SLEEPY: MoodAppearance("Sleepy", "#32ADE6", 0.5, 0.6, -0.3, -0.1, -0.6, mouth_open=0.3),
    Mood.ANGRY: MoodAppearance("Angry", "#FF3B30", 0.7, 0.6, -0.8, -0.6, 0.7, blush_intensity=0.5),
    Mood.SKEPTICAL: MoodAppearance(
        "Skeptical", "#FFCC00", 0.9, 0.85, 0.3, 0.2, 0.2,
        left_eye_modifier=0.6, right_eye_modifier=1.1,
    ),
    Mood.LOVE: MoodAppearance("In love", "#FF2D55", 1.1, 1.3, 0.4, 0.9, 0.6, blush_intensity=0.8),
    Mood.CELEBRATING: MoodAppearance(
        "Celebrating", "#FFCC00", 1.2, 1.2, 0.8, 1.0, 1.0,
        mouth_open=0.5, blush_intensity=0.4,
    ),
}


def mood_appearance(mood: Mood) -> MoodAppearance:
    """Presentation attributes for a mood."""
    return MOOD_APPEARANCE[mood]


class TimeOfDay(Enum):
    """Coarse time of day; the robot is more lenient late in the day."""

    MORNING = "morning"  # 06:00 - 12:00
    AFTERNOON = "afternoon"  # 12:00 - 18:00
    EVENING = "evening"  # 18:00 - 22:00
    NIGHT = "night"  # 22:00 - 06:00

    @classmethod
    def from_hour(cls, hour: int) -> "TimeOfDay":
        if 6 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 18:
            return cls.AFTERNOON
        if 18 <= hour < 22:
            return cls.EVENING
        return cls.NIGHT

    @classmethod
    def current(cls, now: float | None = None) -> "TimeOfDay":
        moment = datetime.now() if now is None else datetime.fromtimestamp(now)
        return cls.from_hour(moment.hour)

    @property
    def energy_level(self) -> float:
        """Multiplier applied to attention decay."""
        return _ENERGY[self]


_ENERGY = {
    TimeOfDay.MORNING: 1.0,
    TimeOfDay.AFTERNOON: 0.9,
    TimeOfDay.EVENING: 0.7,
    TimeOfDay.NIGHT: 0.5,
}


class StrictnessMode(Enum):
    """User-selected monitoring strictness."""

    CHILL = "chill"
    NORMAL = "normal"
    STRICT = "strict"

    @property
    def grace_period_multiplier(self) -> float:
        return {StrictnessMode.CHILL: 2.0, StrictnessMode.NORMAL: 1.0, StrictnessMode.STRICT: 0.5}[self]

    @property
    def decay_multiplier(self) -> float:
        return {StrictnessMode.CHILL: 0.5, StrictnessMode.NORMAL: 1.0, StrictnessMode.STRICT: 1.5}[self]

    @property
    def volume_multiplier(self) -> float:
        # Only the audio collaborator reads this
        return {StrictnessMode.CHILL: 0.5, StrictnessMode.NORMAL: 1.0, StrictnessMode.STRICT: 1.2}[self]


@dataclass(frozen=True)
class AttentionRecord:
    """A noticeable change in attention."""

    timestamp: float
    level: float
    mood: Mood
    context: AppContext = AppContext.UNKNOWN


@dataclass
class AttentionState:
    """Current attention estimate. Mutated only by AttentionEstimator."""

    level: float = 1.0  # 1.0 = fully focused, 0.0 = gone
    target_level: float = 1.0
    mood: Mood = Mood.HAPPY
    is_bored: bool = False
    look_away_start: Optional[float] = None
    last_distraction: Optional[float] = None
    session_start: float = field(default_factory=time.time)
    history: list[AttentionRecord] = field(default_factory=list)


class AttentionEstimator:
    """Smoothed attention level plus mood state machine.

    Call update_attention() once per orchestrator tick.

    Usage:
        estimator = AttentionEstimator()
        estimator.update_attention(
            face_visible=True,
            looking_at_screen=False,
            head_angle=0.6,
            context=AppContext.WORKING,
            strictness=StrictnessMode.NORMAL,
        )
        print(estimator.state.level, estimator.state.mood)
    """

    BASE_GRACE_PERIOD = 2.0  # seconds of look-away forgiven
    NO_FACE_GRACE_FACTOR = 1.5  # maybe they're just grabbing a coffee
    RECOVERY_STEP = 0.2
    LOOK_AWAY_DECAY = 0.04
    ANGLE_DECAY = 0.08
    ANGLE_SATURATION = 0.5  # radians; larger turns get the full penalty
    NO_FACE_DECAY = 0.08
    SMOOTHING_FACTOR = 0.15
    HISTORY_CHANGE = 0.1
    HISTORY_CAPACITY = 1000
    HISTORY_TRIM = 100

    def __init__(self, state: AttentionState | None = None):
        self.state = state or AttentionState()

    def update_attention(
        self,
        face_visible: bool,
        looking_at_screen: bool,
        head_angle: float,
        context: AppContext = AppContext.UNKNOWN,
        strictness: StrictnessMode = StrictnessMode.NORMAL,
        time_of_day: TimeOfDay | None = None,
        working: bool = False,
        now: float | None = None,
    ) -> AttentionState:
        """Advance the estimate by one tick.

        Args:
            face_visible: A face was found in the latest frame
            looking_at_screen: The face is oriented toward the screen
            head_angle: Combined head rotation in radians
            context: Foreground application context
            strictness: User strictness mode
            time_of_day: Defaults to the wall-clock time of `now`
            working: A Pomodoro work session is running
            now: Tick timestamp

        Returns:
            The updated state
        """
        if now is None:
            now = time.time()
        if time_of_day is None:
            time_of_day = TimeOfDay.current(now)

        s = self.state
        previous_level = s.level
        energy = time_of_day.energy_level
        grace = self.BASE_GRACE_PERIOD * strictness.grace_period_multiplier
        decay = strictness.decay_multiplier

        if face_visible and looking_at_screen:
            s.look_away_start = None
            # Recover faster than we decay
            s.target_level = min(1.0, s.target_level + self.RECOVERY_STEP)
        elif face_visible:
            if s.look_away_start is None:
                s.look_away_start = now

            if now - s.look_away_start >= grace:
                angle = max(0.0, head_angle)
                angle_penalty = min(angle / self.ANGLE_SATURATION, 1.0) * self.ANGLE_DECAY
                step = (self.LOOK_AWAY_DECAY + angle_penalty) * energy * decay
                s.target_level = max(0.0, s.target_level - step)
        else:
            if s.look_away_start is None:
                s.look_away_start = now

            if now - s.look_away_start >= grace * self.NO_FACE_GRACE_FACTOR:
                s.target_level = max(0.0, s.target_level - self.NO_FACE_DECAY * energy * decay)

        s.level = s.level + (s.target_level - s.level) * self.SMOOTHING_FACTOR

        self._update_mood(time_of_day, working, now)

        if abs(previous_level - s.level) > self.HISTORY_CHANGE:
            self._record(context, now)

        logger.debug(
            f"Attention: level={s.level:.3f} target={s.target_level:.3f} mood={s.mood.value}"
        )
        return s

    def force_distracted(self, ignore_count: int = 0, now: float | None = None) -> AttentionState:
        """React immediately to a distracting app, bypassing smoothing.

        The more often the user has ignored the robot, the less angry and
        the more resigned it gets.
        """
        if now is None:
            now = time.time()

        s = self.state
        s.level = 0.1
        s.last_distraction = now
        s.is_bored = False  # actively annoyed, not bored

        if ignore_count > 10:
            s.mood = Mood.SAD
        elif ignore_count > 5:
            s.mood = Mood.SKEPTICAL
        else:
            s.mood = Mood.ANGRY
        return s

    def set_mood(self, mood: Mood):
        """Set a mood directly (debug/demo and break handling)."""
        self.state.mood = mood

    def _update_mood(self, time_of_day: TimeOfDay, working: bool, now: float):
        s = self.state

        if time_of_day is TimeOfDay.NIGHT and s.level > 0.5 and not working:
            s.mood = Mood.SLEEPY
            s.is_bored = False
            return

        if s.level >= 0.8:
            s.mood = Mood.PROUD if (time_of_day is TimeOfDay.MORNING or working) else Mood.HAPPY
            s.is_bored = False
        elif s.level >= 0.6:
            s.mood = Mood.NEUTRAL
            s.is_bored = False
        elif s.level >= 0.4:
            s.mood = Mood.CONCERNED
            s.is_bored = True
        elif s.level >= 0.2:
            s.mood = Mood.WORRIED
            s.is_bored = True
        else:
            s.mood = Mood.SAD
            s.is_bored = True
            s.last_distraction = now

    def _record(self, context: AppContext, now: float):
        s = self.state
        s.history.append(AttentionRecord(timestamp=now, level=s.level, mood=s.mood, context=context))
        if len(s.history) > self.HISTORY_CAPACITY:
            del s.history[:self.HISTORY_TRIM]

    def _recent(self, last_minutes: float, now: float | None) -> list[AttentionRecord]:
        if now is None:
            now = time.time()
        cutoff = now - last_minutes * 60
        return [r for r in self.state.history if r.timestamp > cutoff]

    def average_attention(self, last_minutes: float, now: float | None = None) -> float:
        """Mean recorded level over the window, or the current level if none."""
        recent = self._recent(last_minutes, now)
        if not recent:
            return self.state.level
        return float(np.mean([r.level for r in recent]))

    def distraction_frequency(self, last_minutes: float, now: float | None = None) -> int:
        """Number of low-attention records in the window."""
        return sum(1 for r in self._recent(last_minutes, now) if r.level < 0.4)

    def reset(self, now: float | None = None):
        """Start over with full attention."""
        self.state = AttentionState(session_start=time.time() if now is None else now)
        logger.info("Attention state reset")
