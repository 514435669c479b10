"""Configuration loading and the read-only settings snapshot.

Defaults live in DEFAULT_CONFIG; a YAML file may override any subset of it.
"""

import copy
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

import yaml

from focusbuddy.attention import StrictnessMode

logger = logging.getLogger(__name__)


class PomodoroPhase(Enum):
    """Pomodoro timer phase, owned by the settings collaborator."""

    IDLE = "idle"
    WORKING = "working"
    ON_BREAK = "on_break"


DEFAULT_CONFIG = {
    "settings": {
        "warning_delay": 2.0,
        "distracted_delay": 4.0,
        "sensitivity": 0.4,
        "strictness_mode": "normal",
        "whitelisted_sites": [],
        "pomodoro_phase": "idle",
    },
    "orchestrator": {
        "tick_interval": 0.5,
        "motivation_interval": 300.0,
        "motivation_cooldown": 600.0,
        "welcome_back_duration": 2.0,
    },
    "perception": {
        "wave_window": 2.0,
        "peace_sign_window": 1.5,
        "heart_window": 3.0,
    },
    "context": {
        "extra_distracting_apps": [],
        "extra_meeting_apps": [],
        "extra_development_apps": [],
        "extra_entertainment_apps": [],
        "extra_distracting_sites": [],
    },
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: str | Path | None = None) -> dict:
    """Load configuration, merging a YAML file onto the defaults.

    Args:
        config_path: Path to YAML config file. Uses defaults if None.

    Returns:
        Nested config dict
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    with open(config_path) as f:
        overrides = yaml.safe_load(f) or {}

    logger.info(f"Loaded config from {config_path}")
    return _merge(config, overrides)


@dataclass(frozen=True)
class FocusSettings:
    """User settings as seen by one orchestrator tick.

    The settings collaborator owns and validates these; the core only reads
    them. Build a new instance (see with_phase) instead of mutating.
    """

    warning_delay: float = 2.0
    distracted_delay: float = 4.0
    sensitivity: float = 0.4  # head angle (radians) still counted as looking at the screen
    strictness_mode: StrictnessMode = StrictnessMode.NORMAL
    whitelisted_sites: tuple[str, ...] = ()
    pomodoro_phase: PomodoroPhase = PomodoroPhase.IDLE

    @classmethod
    def from_config(cls, config: dict) -> "FocusSettings":
        """Build from a full config dict or just its `settings` section."""
        section = config.get("settings", config)
        return cls(
            warning_delay=float(section.get("warning_delay", 2.0)),
            distracted_delay=float(section.get("distracted_delay", 4.0)),
            sensitivity=float(section.get("sensitivity", 0.4)),
            strictness_mode=StrictnessMode(section.get("strictness_mode", "normal")),
            whitelisted_sites=tuple(s.lower() for s in section.get("whitelisted_sites", ())),
            pomodoro_phase=PomodoroPhase(section.get("pomodoro_phase", "idle")),
        )

    def with_phase(self, phase: PomodoroPhase) -> "FocusSettings":
        return replace(self, pomodoro_phase=phase)

    @property
    def is_working(self) -> bool:
        return self.pomodoro_phase is PomodoroPhase.WORKING

    @property
    def on_break(self) -> bool:
        return self.pomodoro_phase is PomodoroPhase.ON_BREAK

    def is_whitelisted(self, site: str) -> bool:
        lower = site.lower()
        return any(w in lower for w in self.whitelisted_sites)
