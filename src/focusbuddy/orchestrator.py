"""Focus orchestrator tying perception, context and attention together.

This is the primary interface for FocusBuddy.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from focusbuddy.attention import AttentionEstimator, AttentionState, Mood, TimeOfDay
from focusbuddy.config import FocusSettings, PomodoroPhase, load_config
from focusbuddy.context import AppContext, ContextClassifier
from focusbuddy.events import (
    DistractedEvent,
    EventEmitter,
    GestureEvent,
    MoodChangedEvent,
    MotivationEvent,
    RobotStateChangedEvent,
)
from focusbuddy.gestures import GestureKind
from focusbuddy.perception import PerceptionSnapshot, PerceptionWorker

logger = logging.getLogger(__name__)


class RobotState(Enum):
    """Coarse robot state used for statistics and sound cues."""

    FOCUSED = "focused"
    WARNING = "warning"
    DISTRACTED = "distracted"
    WELCOME_BACK = "welcome_back"


@dataclass
class FocusStats:
    """Accumulated focus statistics for the current session."""

    focused_time: float = 0.0
    distracted_time: float = 0.0
    distraction_count: int = 0

    @property
    def focus_percentage(self) -> float:
        total = self.focused_time + self.distracted_time
        if total <= 0:
            return 100.0
        return self.focused_time / total * 100

    @property
    def formatted_focused_time(self) -> str:
        return _format_time(self.focused_time)

    @property
    def formatted_distracted_time(self) -> str:
        return _format_time(self.distracted_time)

    def add_focused_time(self, seconds: float):
        self.focused_time += seconds

    def add_distracted_time(self, seconds: float):
        self.distracted_time += seconds

    def record_state_change(self, state: RobotState):
        if state is RobotState.DISTRACTED:
            self.distraction_count += 1


def _format_time(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class FocusStatus:
    """Read-only view published to presentation and persistence."""

    level: float
    mood: Mood
    is_bored: bool
    robot_state: RobotState
    context: AppContext
    focused_time: float
    distracted_time: float
    distraction_count: int
    ignore_count: int

    def to_dict(self) -> dict:
        return {
            "level": round(self.level, 4),
            "mood": self.mood.value,
            "is_bored": self.is_bored,
            "robot_state": self.robot_state.value,
            "context": self.context.value,
            "focused_seconds": self.focused_time,
            "distracted_seconds": self.distracted_time,
            "distraction_count": self.distraction_count,
            "ignore_count": self.ignore_count,
        }


# Peace sign toggles between focus and rest depending on the phase
BREAK_TOGGLE_COMMANDS = {
    PomodoroPhase.WORKING: "start_break",
    PomodoroPhase.ON_BREAK: "resume_work",
    PomodoroPhase.IDLE: "toggle_pause",
}

GESTURE_COMMANDS = {
    GestureKind.WAVE: "wave_back",
    GestureKind.HEART: "show_love",
}


class FocusOrchestrator:
    """Ticks the attention estimator and keeps focus statistics.

    Each tick classifies the foreground app, honours the Pomodoro phase,
    reacts to distracting apps, feeds camera signals into the estimator
    during work sessions and forwards gestures as commands.

    Usage:
        orchestrator = FocusOrchestrator()

        @orchestrator.on("gesture")
        def on_gesture(event):
            print(f"Run {event.command}")

        orchestrator.tick(snapshot, settings, app_id="Code")
    """

    def __init__(
        self,
        config: dict | None = None,
        events: EventEmitter | None = None,
        estimator: AttentionEstimator | None = None,
        classifier: ContextClassifier | None = None,
        ignore_count: int = 0,
        on_motivation: Callable[[MotivationEvent], None] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Config dict (see focusbuddy.config). Uses defaults if None.
            events: Event emitter for outbound events
            estimator: Attention estimator to drive
            classifier: Context classifier; built from config if None
            ignore_count: Times the user already ignored the robot
            on_motivation: Called when a motivational message is due
        """
        self.config = config or load_config()
        self.events = events or EventEmitter()
        self.estimator = estimator or AttentionEstimator()
        self.classifier = classifier or ContextClassifier.from_config(self.config.get("context", {}))
        self.ignore_count = ignore_count
        self.on_motivation = on_motivation

        self.stats = FocusStats()
        self.robot_state = RobotState.FOCUSED
        self.context = AppContext.UNKNOWN

        orch_config = self.config.get("orchestrator", {})
        self.tick_interval = orch_config.get("tick_interval", 0.5)
        self.motivation_interval = orch_config.get("motivation_interval", 300.0)
        self.motivation_cooldown = orch_config.get("motivation_cooldown", 600.0)
        self.welcome_back_duration = orch_config.get("welcome_back_duration", 2.0)

        self._was_distracted = False
        self._welcome_back_until: Optional[float] = None
        self._last_motivation: Optional[float] = None
        self._handled_gestures: dict[GestureKind, float] = {}
        self._tick_count = 0

        self._running = False
        self._tasks: list[asyncio.Task] = []

        logger.info("FocusOrchestrator initialized")

    def on(self, event_name: str, handler: Callable | None = None):
        """Register an event handler.

        Can be used as decorator or direct call.

        Events:
            - mood_changed: Mood differs from the previous tick
            - robot_state_changed: Coarse robot state changed
            - distracted: A tick was spent in a distracting app
            - gesture: A gesture was recognized, with the command to run
            - motivation: Encouragement is due
        """
        return self.events.on(event_name, handler)

    @property
    def attention(self) -> AttentionState:
        """Current attention state (read-only by convention)."""
        return self.estimator.state

    @property
    def state(self) -> FocusStatus:
        s = self.estimator.state
        return FocusStatus(
            level=s.level,
            mood=s.mood,
            is_bored=s.is_bored,
            robot_state=self.robot_state,
            context=self.context,
            focused_time=self.stats.focused_time,
            distracted_time=self.stats.distracted_time,
            distraction_count=self.stats.distraction_count,
            ignore_count=self.ignore_count,
        )

    def tick(
        self,
        snapshot: PerceptionSnapshot,
        settings: FocusSettings,
        app_id: str = "",
        title: str = "",
        now: float | None = None,
        time_of_day: TimeOfDay | None = None,
    ) -> FocusStatus:
        """Run one orchestrator tick.

        Args:
            snapshot: Latest published perception snapshot
            settings: Settings for this tick
            app_id: Foreground application name or bundle id
            title: Active window or tab title
            now: Tick timestamp
            time_of_day: Override for the wall-clock time of day

        Returns:
            Published status after the tick
        """
        if now is None:
            now = time.time()

        self._tick_count += 1
        previous_mood = self.estimator.state.mood
        interval = self.tick_interval

        self.context = self.classifier.classify(app_id, title, settings.whitelisted_sites)

        if settings.on_break:
            # No scolding during breaks
            if self.estimator.state.mood in (Mood.ANGRY, Mood.WORRIED):
                self.estimator.set_mood(Mood.HAPPY)
            self.stats.add_focused_time(interval)
        elif self.context.is_distracting:
            # Runs whatever the phase
            self.estimator.force_distracted(self.ignore_count, now)
            self.stats.add_distracted_time(interval)
            self.ignore_count += 1
            self.events.emit(
                DistractedEvent(context=self.context.value, ignore_count=self.ignore_count)
            )
        elif settings.is_working:
            self._track_attention(snapshot, settings, now, time_of_day)
        else:
            # Camera tracking only runs during a work session
            if self.estimator.state.mood not in (Mood.HAPPY, Mood.NEUTRAL):
                self.estimator.set_mood(Mood.NEUTRAL)

        self._update_robot_state(now)
        self._dispatch_gestures(snapshot, settings, now)

        mood = self.estimator.state.mood
        if mood is not previous_mood:
            self.events.emit(
                MoodChangedEvent(previous=previous_mood.value, mood=mood.value, level=self.estimator.state.level)
            )

        if self._tick_count % 120 == 0:
            logger.debug(
                f"Tick {self._tick_count}: context={self.context.value}, "
                f"level={self.estimator.state.level:.2f}, mood={mood.value}"
            )

        return self.state

    def _track_attention(
        self,
        snapshot: PerceptionSnapshot,
        settings: FocusSettings,
        now: float,
        time_of_day: TimeOfDay | None,
    ):
        face_visible = snapshot.is_face_detected
        head_angle = snapshot.head_angle

        if self.context.allowed_look_away:
            # Looking away is fine in calls and videos
            looking = face_visible
        else:
            looking = face_visible and head_angle < settings.sensitivity

        self.estimator.update_attention(
            face_visible=face_visible,
            looking_at_screen=looking,
            head_angle=head_angle,
            context=self.context,
            strictness=settings.strictness_mode,
            time_of_day=time_of_day,
            working=True,
            now=now,
        )

        level = self.estimator.state.level
        if level > 0.6:
            self.stats.add_focused_time(self.tick_interval)
        elif level < 0.3:
            self.stats.add_distracted_time(self.tick_interval)

    def _update_robot_state(self, now: float):
        previous = self.robot_state
        mood = self.estimator.state.mood

        if self.robot_state is RobotState.WELCOME_BACK and (
            self._welcome_back_until is None or now >= self._welcome_back_until
        ):
            self.robot_state = RobotState.FOCUSED

        if mood in (Mood.HAPPY, Mood.PROUD, Mood.LOVE, Mood.CELEBRATING):
            if self._was_distracted:
                self.robot_state = RobotState.WELCOME_BACK
                self._welcome_back_until = now + self.welcome_back_duration
                self._was_distracted = False
            elif self.robot_state is not RobotState.WELCOME_BACK:
                self.robot_state = RobotState.FOCUSED
        elif mood in (Mood.NEUTRAL, Mood.SLEEPY, Mood.SURPRISED):
            if self.robot_state is not RobotState.WELCOME_BACK:
                self.robot_state = RobotState.FOCUSED
        elif mood in (Mood.CONCERNED, Mood.SKEPTICAL, Mood.WORRIED, Mood.ANGRY):
            self.robot_state = RobotState.WARNING
        else:
            self.robot_state = RobotState.DISTRACTED
            self._was_distracted = True

        if self.robot_state is not previous:
            self.stats.record_state_change(self.robot_state)
            logger.info(f"Robot state: {previous.value} -> {self.robot_state.value}")
            self.events.emit(
                RobotStateChangedEvent(previous=previous.value, state=self.robot_state.value)
            )

    def _dispatch_gestures(self, snapshot: PerceptionSnapshot, settings: FocusSettings, now: float):
        """Forward each new gesture trigger exactly once."""
        for kind, triggered_at in snapshot.gesture_times.items():
            if self._handled_gestures.get(kind) == triggered_at:
                continue
            if not snapshot.is_active(kind, now):
                continue
            self._handled_gestures[kind] = triggered_at

            if kind is GestureKind.PEACE_SIGN:
                command = BREAK_TOGGLE_COMMANDS[settings.pomodoro_phase]
            else:
                command = GESTURE_COMMANDS[kind]

            logger.info(f"Gesture {kind.value} -> {command}")
            self.events.emit(GestureEvent(gesture=kind.value, command=command))

    def check_motivation(self, now: float | None = None) -> bool:
        """Send encouragement after a long, well-focused stretch.

        Returns:
            True if a motivation event was emitted
        """
        if now is None:
            now = time.time()

        if self._last_motivation is not None and now - self._last_motivation < self.motivation_cooldown:
            return False

        if self.stats.focus_percentage > 80 and self.stats.focused_time > 600:
            event = MotivationEvent(
                focus_percentage=self.stats.focus_percentage,
                focused_seconds=self.stats.focused_time,
            )
            self._last_motivation = now
            self.events.emit(event)
            if self.on_motivation:
                self.on_motivation(event)
            return True

        return False

    def reset_stats(self):
        """Clear statistics and attention history."""
        self.stats = FocusStats()
        self.estimator.state.history.clear()
        logger.info("Focus statistics reset")

    def start(
        self,
        worker: PerceptionWorker,
        settings_provider: Callable[[], FocusSettings],
        foreground_provider: Callable[[], tuple[str, str]] | None = None,
    ):
        """Start the tick loop (blocking)."""
        self._running = True
        logger.info("Starting FocusOrchestrator")

        try:
            asyncio.run(self._run(worker, settings_provider, foreground_provider))
        except KeyboardInterrupt:
            logger.info("FocusOrchestrator stopped by user")
        finally:
            self._running = False

    async def start_async(
        self,
        worker: PerceptionWorker,
        settings_provider: Callable[[], FocusSettings],
        foreground_provider: Callable[[], tuple[str, str]] | None = None,
    ):
        """Start the tick loop (non-blocking, for async contexts)."""
        self._running = True
        self._tasks = [
            asyncio.create_task(self._tick_loop(worker, settings_provider, foreground_provider)),
            asyncio.create_task(self._motivation_loop()),
        ]

    def stop(self):
        """Stop the tick loop."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        logger.info("Stopping FocusOrchestrator")

    async def _run(self, worker, settings_provider, foreground_provider):
        await asyncio.gather(
            self._tick_loop(worker, settings_provider, foreground_provider),
            self._motivation_loop(),
        )

    async def _tick_loop(
        self,
        worker: PerceptionWorker,
        settings_provider: Callable[[], FocusSettings],
        foreground_provider: Callable[[], tuple[str, str]] | None,
    ):
        """Main tick loop. One tick at a time, never overlapping."""
        logger.info("Tick loop started")

        while self._running:
            started = time.monotonic()
            try:
                app_id, title = foreground_provider() if foreground_provider else ("", "")
                self.tick(worker.latest, settings_provider(), app_id, title)
            except Exception as e:
                logger.error(f"Error in tick loop: {e}", exc_info=True)

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.tick_interval - elapsed))

        logger.info("Tick loop stopped")

    async def _motivation_loop(self):
        while self._running:
            await asyncio.sleep(self.motivation_interval)
            if self._running:
                self.check_motivation()
