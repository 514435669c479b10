from focusbuddy.attention import StrictnessMode
from focusbuddy.config import DEFAULT_CONFIG, FocusSettings, PomodoroPhase, load_config


def test_defaults_without_file():
    config = load_config()
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_yaml_overrides_are_merged(tmp_path):
    path = tmp_path / "focusbuddy.yaml"
    path.write_text(
        "settings:\n"
        "  strictness_mode: strict\n"
        "  whitelisted_sites: [GitHub]\n"
        "orchestrator:\n"
        "  tick_interval: 1.0\n"
    )
    config = load_config(path)
    assert config["orchestrator"]["tick_interval"] == 1.0
    # untouched keys keep their defaults
    assert config["orchestrator"]["motivation_interval"] == 300.0
    assert config["settings"]["sensitivity"] == 0.4

    settings = FocusSettings.from_config(config)
    assert settings.strictness_mode == StrictnessMode.STRICT
    assert settings.whitelisted_sites == ("github",)


def test_empty_yaml_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == DEFAULT_CONFIG


def test_load_does_not_mutate_defaults(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("settings:\n  sensitivity: 0.9\n")
    load_config(path)
    assert DEFAULT_CONFIG["settings"]["sensitivity"] == 0.4


def test_settings_phase_helpers():
    settings = FocusSettings()
    assert settings.pomodoro_phase == PomodoroPhase.IDLE
    assert not settings.is_working

    working = settings.with_phase(PomodoroPhase.WORKING)
    assert working.is_working
    assert settings.pomodoro_phase == PomodoroPhase.IDLE

    assert working.with_phase(PomodoroPhase.ON_BREAK).on_break


def test_settings_from_section_only():
    settings = FocusSettings.from_config({"pomodoro_phase": "working", "sensitivity": 0.3})
    assert settings.is_working
    assert settings.sensitivity == 0.3


def test_is_whitelisted():
    settings = FocusSettings(whitelisted_sites=("github",))
    assert settings.is_whitelisted("GitHub - pull requests")
    assert not settings.is_whitelisted("Reddit")
