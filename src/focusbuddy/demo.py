"""Scripted demo for FocusBuddy.

Replays a scenario of synthetic perception frames and foreground apps
through the full pipeline on a simulated clock, printing what the robot
would do. Run with: python -m focusbuddy.demo
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import yaml

from focusbuddy.attention import TimeOfDay
from focusbuddy.config import FocusSettings, PomodoroPhase, load_config
from focusbuddy.observation import FrameObservation
from focusbuddy.orchestrator import FocusOrchestrator, FocusStatus
from focusbuddy.perception import PerceptionWorker

logger = logging.getLogger(__name__)


def _wave_hand(x: float) -> dict:
    return {"wrist": {"x": x, "y": 0.6, "confidence": 0.9}}


# Two minutes of a work session: focus, glance away, open a distracting
# app, wave at the robot, take a break.
DEFAULT_SCENARIO = {
    "fps": 10,
    "start": 1_700_000_000.0,
    "time_of_day": "afternoon",
    "steps": [
        {
            "name": "focused coding",
            "duration": 20,
            "app": "Visual Studio Code",
            "phase": "working",
            "frames": [{"face_visible": True, "head_pose": {"yaw": 0.05, "pitch": 0.02}}],
        },
        {
            "name": "looking at phone",
            "duration": 20,
            "app": "Visual Studio Code",
            "phase": "working",
            "frames": [{"face_visible": True, "head_pose": {"yaw": 0.45, "pitch": 0.2}}],
        },
        {
            "name": "opened reddit",
            "duration": 5,
            "app": "Google Chrome",
            "title": "reddit - the front page of the internet",
            "phase": "working",
            "frames": [{"face_visible": True}],
        },
        {
            "name": "back to work, waving hello",
            "duration": 20,
            "app": "Visual Studio Code",
            "phase": "working",
            "frames": [
                {"face_visible": True, "hands": [_wave_hand(0.3)]},
                {"face_visible": True, "hands": [_wave_hand(0.5)]},
            ],
        },
        {
            "name": "coffee break",
            "duration": 10,
            "app": "Spotify",
            "phase": "on_break",
            "frames": [{"face_visible": False}],
        },
    ],
}


@dataclass
class ScenarioStep:
    """A stretch of time with fixed foreground app and looping frames."""

    name: str
    duration: float
    app: str = ""
    title: str = ""
    phase: PomodoroPhase = PomodoroPhase.WORKING
    frames: list[dict] = field(default_factory=list)


@dataclass
class Scenario:
    """A replayable session."""

    steps: list[ScenarioStep]
    fps: float = 10.0
    start: float = 1_700_000_000.0
    time_of_day: TimeOfDay | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        steps = [
            ScenarioStep(
                name=raw.get("name", f"step {i + 1}"),
                duration=float(raw["duration"]),
                app=raw.get("app", ""),
                title=raw.get("title", ""),
                phase=PomodoroPhase(raw.get("phase", "working")),
                frames=list(raw.get("frames") or [{}]),
            )
            for i, raw in enumerate(data.get("steps", []))
        ]
        tod = data.get("time_of_day")
        return cls(
            steps=steps,
            fps=float(data.get("fps", 10.0)),
            start=float(data.get("start", 1_700_000_000.0)),
            time_of_day=TimeOfDay(tod) if tod else None,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Scenario":
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f) or {})


def replay_frames(step: ScenarioStep, start: float, end: float, fps: float) -> Iterator[FrameObservation]:
    """Synthetic frames for [start, end), cycling through the step's frames."""
    interval = 1.0 / fps
    count = int(round((end - start) * fps))
    for i in range(count):
        raw = dict(step.frames[i % len(step.frames)])
        raw["timestamp"] = start + i * interval
        yield FrameObservation.from_dict(raw)


def run_scenario(
    scenario: Scenario,
    orchestrator: FocusOrchestrator,
    worker: PerceptionWorker | None = None,
    settings: FocusSettings | None = None,
) -> list[FocusStatus]:
    """Drive the pipeline through a scenario on a simulated clock.

    Returns:
        Status after every tick
    """
    worker = worker or PerceptionWorker()
    base_settings = settings or FocusSettings()
    interval = orchestrator.tick_interval
    now = scenario.start
    statuses = []

    for step in scenario.steps:
        logger.info(f"Scenario step: {step.name}")
        step_settings = base_settings.with_phase(step.phase)
        ticks = int(round(step.duration / interval))

        for _ in range(ticks):
            for frame in replay_frames(step, now, now + interval, scenario.fps):
                worker.submit(frame)
            now += interval
            statuses.append(
                orchestrator.tick(
                    worker.latest,
                    step_settings,
                    app_id=step.app,
                    title=step.title,
                    now=now,
                    time_of_day=scenario.time_of_day,
                )
            )

            if (now - scenario.start) % orchestrator.motivation_interval < interval:
                orchestrator.check_motivation(now)

    return statuses


def main(scenario_path: str | None = None, config_path: str | None = None):
    """Run the FocusBuddy demo."""
    print("=" * 60)
    print("FocusBuddy Demo")
    print("=" * 60)
    print()

    config = load_config(config_path)
    scenario = Scenario.from_yaml(scenario_path) if scenario_path else Scenario.from_dict(DEFAULT_SCENARIO)
    orchestrator = FocusOrchestrator(config=config)
    settings = FocusSettings.from_config(config)

    @orchestrator.on("mood_changed")
    def on_mood(event):
        print(f">>> MOOD {event.previous} -> {event.mood} (level={event.level:.2f})")

    @orchestrator.on("robot_state_changed")
    def on_state(event):
        print(f">>> ROBOT {event.previous} -> {event.state}")

    @orchestrator.on("gesture")
    def on_gesture(event):
        print(f">>> GESTURE {event.gesture}: {event.command}")

    @orchestrator.on("motivation")
    def on_motivation(event):
        print(f">>> MOTIVATION ({event.focus_percentage:.0f}% focused)")

    try:
        statuses = run_scenario(
            scenario, orchestrator, worker=PerceptionWorker.from_config(config), settings=settings
        )
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    stats = orchestrator.stats
    print()
    print(f"Ticks:        {len(statuses)}")
    print(f"Focused:      {stats.formatted_focused_time}")
    print(f"Distracted:   {stats.formatted_distracted_time}")
    print(f"Distractions: {stats.distraction_count}")
    print(f"Focus:        {stats.focus_percentage:.0f}%")
    print("\nDemo finished.")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    main()
