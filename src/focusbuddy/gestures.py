"""Hand gesture recognition with debouncing.

Turns a stream of hand observations into discrete, debounced triggers:
a wave, a two-finger "peace sign" (used to toggle breaks) and a two-hand
heart. Each detector keeps its own buffer and cooldown timestamp.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from focusbuddy.observation import HandLandmark, HandObservation

logger = logging.getLogger(__name__)


class GestureKind(Enum):
    """Recognized gestures."""

    WAVE = "wave"
    PEACE_SIGN = "peace_sign"
    HEART = "heart"


# Minimum seconds between two triggers of the same kind
GESTURE_COOLDOWNS: dict[GestureKind, float] = {
    GestureKind.WAVE: 5.0,
    GestureKind.PEACE_SIGN: 3.0,
    GestureKind.HEART: 5.0,
}


@dataclass(frozen=True)
class GestureTrigger:
    """A single debounced gesture detection."""

    kind: GestureKind
    timestamp: float


@dataclass(frozen=True)
class WristSample:
    """Horizontal wrist position at a point in time."""

    x: float
    timestamp: float


class GestureRecognizer:
    """Per-gesture detectors over normalized hand landmarks.

    Usage:
        recognizer = GestureRecognizer()

        for trigger in recognizer.process(frame.hands):
            print(f"Got {trigger.kind.value}")
    """

    # Wave
    WAVE_WRIST_CONFIDENCE = 0.7
    WAVE_WINDOW = 1.0  # seconds of wrist history
    WAVE_MIN_SAMPLES = 5
    WAVE_MIN_DELTA = 0.06  # smaller horizontal moves are jitter
    WAVE_MIN_REVERSALS = 3

    # Peace sign
    PEACE_CONFIDENCE = 0.5
    PEACE_EXTENDED = 0.06
    PEACE_CURLED = 0.03
    PEACE_MIN_SPREAD = 0.04
    PEACE_MAX_HEIGHT_DIFF = 0.08

    # Heart
    HEART_CONFIDENCE = 0.5
    HEART_MAX_THUMB_DISTANCE = 0.15
    HEART_MAX_INDEX_DISTANCE = 0.20

    def __init__(self, cooldowns: dict[GestureKind, float] | None = None):
        """Initialize recognizer.

        Args:
            cooldowns: Per-gesture debounce intervals, defaults to GESTURE_COOLDOWNS
        """
        self.cooldowns = dict(GESTURE_COOLDOWNS)
        if cooldowns:
            self.cooldowns.update(cooldowns)

        self._wrist_samples: deque[WristSample] = deque()
        self._last_triggered: dict[GestureKind, float] = {}

    def process(
        self,
        hands: Sequence[HandObservation],
        now: float | None = None,
    ) -> list[GestureTrigger]:
        """Run every detector that applies to this frame's hands.

        Single-hand detectors only look at the first reported hand; the
        two-hand detector is skipped unless at least two hands are present.
        """
        if now is None:
            now = time.time()

        triggers: list[GestureTrigger] = []
        if not hands:
            return triggers

        hand = hands[0]
        for detect in (self.detect_wave, self.detect_pinch_gesture):
            trigger = detect(hand, now)
            if trigger:
                triggers.append(trigger)

        if len(hands) >= 2:
            trigger = self.detect_two_hand_gesture(hands, now)
            if trigger:
                triggers.append(trigger)

        return triggers

    def detect_wave(self, hand: HandObservation, now: float | None = None) -> Optional[GestureTrigger]:
        """Detect a side-to-side wave from the wrist's recent x positions."""
        if now is None:
            now = time.time()

        if not self._cooldown_elapsed(GestureKind.WAVE, now):
            return None

        wrist = hand.confident(HandLandmark.WRIST, self.WAVE_WRIST_CONFIDENCE)
        if wrist is None:
            return None

        self._wrist_samples.append(WristSample(x=wrist.x, timestamp=now))
        while self._wrist_samples and now - self._wrist_samples[0].timestamp >= self.WAVE_WINDOW:
            self._wrist_samples.popleft()

        if len(self._wrist_samples) < self.WAVE_MIN_SAMPLES:
            return None

        reversals = self._count_reversals([s.x for s in self._wrist_samples])
        if reversals < self.WAVE_MIN_REVERSALS:
            return None

        self._wrist_samples.clear()
        return self._fire(GestureKind.WAVE, now)

    def detect_pinch_gesture(self, hand: HandObservation, now: float | None = None) -> Optional[GestureTrigger]:
        """Detect a peace sign: index and middle up and spread, ring and little curled."""
        if now is None:
            now = time.time()

        if not self._cooldown_elapsed(GestureKind.PEACE_SIGN, now):
            return None

        names = (
            HandLandmark.INDEX_TIP, HandLandmark.MIDDLE_TIP,
            HandLandmark.RING_TIP, HandLandmark.LITTLE_TIP,
            HandLandmark.INDEX_BASE, HandLandmark.MIDDLE_BASE,
            HandLandmark.RING_BASE, HandLandmark.LITTLE_BASE,
        )
        points = [hand.confident(name, self.PEACE_CONFIDENCE) for name in names]
        if any(p is None for p in points):
            return None
        index_tip, middle_tip, ring_tip, little_tip, index_base, middle_base, ring_base, little_base = points

        # y grows downward: a raised fingertip has a smaller y than its base
        index_extended = index_tip.y < index_base.y - self.PEACE_EXTENDED
        middle_extended = middle_tip.y < middle_base.y - self.PEACE_EXTENDED
        ring_curled = ring_tip.y > ring_base.y - self.PEACE_CURLED
        little_curled = little_tip.y > little_base.y - self.PEACE_CURLED

        spread = abs(index_tip.x - middle_tip.x) > self.PEACE_MIN_SPREAD
        level = abs(index_tip.y - middle_tip.y) < self.PEACE_MAX_HEIGHT_DIFF

        if not (index_extended and middle_extended and ring_curled and little_curled and spread and level):
            return None

        return self._fire(GestureKind.PEACE_SIGN, now)

    def detect_two_hand_gesture(
        self,
        hands: Sequence[HandObservation],
        now: float | None = None,
    ) -> Optional[GestureTrigger]:
        """Detect a heart: thumbs touching below touching index fingers."""
        if now is None:
            now = time.time()

        if len(hands) < 2:
            return None

        if not self._cooldown_elapsed(GestureKind.HEART, now):
            return None

        first, second = hands[0], hands[1]
        thumb1 = first.confident(HandLandmark.THUMB_TIP, self.HEART_CONFIDENCE)
        thumb2 = second.confident(HandLandmark.THUMB_TIP, self.HEART_CONFIDENCE)
        index1 = first.confident(HandLandmark.INDEX_TIP, self.HEART_CONFIDENCE)
        index2 = second.confident(HandLandmark.INDEX_TIP, self.HEART_CONFIDENCE)
        if thumb1 is None or thumb2 is None or index1 is None or index2 is None:
            return None

        thumb_distance = float(np.hypot(thumb1.x - thumb2.x, thumb1.y - thumb2.y))
        index_distance = float(np.hypot(index1.x - index2.x, index1.y - index2.y))
        thumbs_lower = (thumb1.y + thumb2.y) / 2 > (index1.y + index2.y) / 2

        if (
            thumb_distance < self.HEART_MAX_THUMB_DISTANCE
            and index_distance < self.HEART_MAX_INDEX_DISTANCE
            and thumbs_lower
        ):
            return self._fire(GestureKind.HEART, now)

        return None

    def _count_reversals(self, xs: list[float]) -> int:
        """Count direction changes between significant horizontal moves."""
        dx = np.diff(np.asarray(xs, dtype=float))
        directions = np.sign(dx[np.abs(dx) > self.WAVE_MIN_DELTA])
        if directions.size < 2:
            return 0
        return int(np.count_nonzero(directions[1:] != directions[:-1]))

    def _cooldown_elapsed(self, kind: GestureKind, now: float) -> bool:
        last = self._last_triggered.get(kind)
        return last is None or now - last >= self.cooldowns[kind]

    def _fire(self, kind: GestureKind, now: float) -> GestureTrigger:
        self._last_triggered[kind] = now
        logger.debug(f"Gesture recognized: {kind.value}")
        return GestureTrigger(kind=kind, timestamp=now)

    def last_triggered(self, kind: GestureKind) -> Optional[float]:
        """Timestamp of the last trigger of this kind, if any."""
        return self._last_triggered.get(kind)

    @property
    def wrist_samples(self) -> tuple[WristSample, ...]:
        """Buffered wrist samples, oldest first."""
        return tuple(self._wrist_samples)

    def reset(self):
        """Clear buffers and cooldowns."""
        self._wrist_samples.clear()
        self._last_triggered.clear()
