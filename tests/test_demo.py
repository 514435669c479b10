import json
import sys

from focusbuddy import cli
from focusbuddy.attention import Mood
from focusbuddy.config import PomodoroPhase
from focusbuddy.context import AppContext
from focusbuddy.demo import DEFAULT_SCENARIO, Scenario, replay_frames, run_scenario
from focusbuddy.orchestrator import FocusOrchestrator, RobotState

SCENARIO_YAML = """
fps: 10
start: 1000.0
time_of_day: afternoon
steps:
  - name: distracted
    duration: 2
    app: Telegram
    phase: idle
  - name: break
    duration: 1
    app: Finder
    phase: on_break
    frames:
      - face_visible: false
"""


def test_scenario_from_yaml(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text(SCENARIO_YAML)
    scenario = Scenario.from_yaml(path)
    assert scenario.start == 1000.0
    assert [s.name for s in scenario.steps] == ["distracted", "break"]
    assert scenario.steps[0].phase == PomodoroPhase.IDLE
    # a step without frames replays an empty frame
    assert scenario.steps[0].frames == [{}]


def test_replay_frames_cycles_and_stamps():
    step = Scenario.from_dict(DEFAULT_SCENARIO).steps[3]
    frames = list(replay_frames(step, 100.0, 100.5, fps=10))
    assert len(frames) == 5
    assert frames[0].timestamp == 100.0
    xs = [f.hands[0].landmarks for f in frames]
    assert xs[0] == xs[2] != xs[1]


def test_default_scenario_end_to_end():
    orchestrator = FocusOrchestrator()
    gestures = []
    orchestrator.on("gesture", gestures.append)

    statuses = run_scenario(Scenario.from_dict(DEFAULT_SCENARIO), orchestrator)
    assert len(statuses) == 150

    contexts = {s.context for s in statuses}
    assert AppContext.DISTRACTING in contexts
    assert statuses[0].mood == Mood.PROUD
    assert any(s.robot_state == RobotState.WARNING for s in statuses)
    assert "wave_back" in [g.command for g in gestures]
    assert statuses[-1].context == AppContext.ENTERTAINMENT
    assert statuses[-1].focused_time > statuses[-1].distracted_time


def test_short_scenario_counts_ignores():
    orchestrator = FocusOrchestrator()
    statuses = run_scenario(Scenario.from_dict({
        "start": 0.0,
        "steps": [{"duration": 2, "app": "Telegram", "phase": "idle"}],
    }), orchestrator)
    assert len(statuses) == 4
    assert statuses[-1].ignore_count == 4
    assert statuses[-1].distracted_time == 2.0


def test_cli_classify(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["focusbuddy", "classify", "Chrome", "--title", "Reddit"])
    cli.main()
    assert capsys.readouterr().out.startswith("distracting")


def test_cli_classify_whitelist(monkeypatch, capsys):
    monkeypatch.setattr(
        sys, "argv",
        ["focusbuddy", "classify", "Chrome", "--title", "Reddit", "--whitelist", "reddit"],
    )
    cli.main()
    assert capsys.readouterr().out.startswith("working")


def test_cli_replay_json(tmp_path, monkeypatch, capsys):
    path = tmp_path / "scenario.yaml"
    path.write_text(SCENARIO_YAML)
    monkeypatch.setattr(sys, "argv", ["focusbuddy", "replay", str(path), "--json"])
    cli.main()
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert len(lines) == 6
    assert lines[0]["context"] == "distracting"
    assert lines[-1]["context"] == "unknown"


def test_cli_moods(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["focusbuddy", "moods"])
    cli.main()
    assert len(capsys.readouterr().out.splitlines()) == 12
