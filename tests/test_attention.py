import pytest

from focusbuddy.attention import (
    MOOD_APPEARANCE,
    AttentionEstimator,
    AttentionState,
    Mood,
    StrictnessMode,
    TimeOfDay,
    mood_appearance,
)
from focusbuddy.context import AppContext

TICK = 0.5


def run_ticks(est, n, t0=0.0, face=True, looking=True, angle=0.0,
              strictness=StrictnessMode.NORMAL, tod=TimeOfDay.AFTERNOON, working=False):
    t = t0
    for _ in range(n):
        est.update_attention(face, looking, angle, AppContext.WORKING, strictness, tod, working, now=t)
        t += TICK
    return t


def test_starts_fully_focused():
    est = AttentionEstimator()
    assert est.state.level == 1.0
    assert est.state.target_level == 1.0
    assert est.state.mood == Mood.HAPPY


def test_grace_period_then_strict_decay_while_looking_away():
    est = AttentionEstimator()
    targets = []
    t = 0.0
    for _ in range(30):
        est.update_attention(True, False, 0.3, AppContext.WORKING, StrictnessMode.NORMAL,
                             TimeOfDay.AFTERNOON, now=t)
        targets.append((t, est.state.target_level))
        t += TICK

    # 2.0s grace: no change before it expires
    assert all(level == 1.0 for ts, level in targets if ts < 2.0)
    after = [level for ts, level in targets if ts >= 2.0]
    assert all(b < a for a, b in zip([1.0] + after, after) if a > 0)


def test_looking_away_decay_formula():
    est = AttentionEstimator()
    est.update_attention(True, False, 0.25, now=0.0, time_of_day=TimeOfDay.MORNING)
    est.update_attention(True, False, 0.25, now=2.0, time_of_day=TimeOfDay.MORNING)
    # 0.04 + (0.25 / 0.5) * 0.08 = 0.08
    assert est.state.target_level == pytest.approx(0.92)


def test_no_face_has_longer_grace_and_flat_decay():
    est = AttentionEstimator()
    est.update_attention(False, False, 0.0, now=0.0, time_of_day=TimeOfDay.EVENING)
    est.update_attention(False, False, 0.0, now=2.5, time_of_day=TimeOfDay.EVENING)
    assert est.state.target_level == 1.0  # 3.0s grace without a face
    est.update_attention(False, False, 0.0, now=3.0, time_of_day=TimeOfDay.EVENING)
    assert est.state.target_level == pytest.approx(1.0 - 0.08 * 0.7)


def test_looking_back_resets_grace_and_recovers():
    est = AttentionEstimator(AttentionState(level=0.5, target_level=0.5))
    est.update_attention(True, False, 0.6, now=0.0, time_of_day=TimeOfDay.AFTERNOON)
    assert est.state.look_away_start == 0.0
    est.update_attention(True, True, 0.0, now=0.5, time_of_day=TimeOfDay.AFTERNOON)
    assert est.state.look_away_start is None
    assert est.state.target_level == pytest.approx(0.7)


def test_level_converges_without_overshoot():
    est = AttentionEstimator(AttentionState(level=0.2, target_level=1.0))
    prev = est.state.level
    for i in range(100):
        est.update_attention(True, True, 0.0, now=i * TICK, time_of_day=TimeOfDay.AFTERNOON)
        assert prev <= est.state.level <= est.state.target_level
        prev = est.state.level
    assert est.state.level == pytest.approx(1.0, abs=1e-4)


def test_levels_stay_in_unit_interval():
    est = AttentionEstimator()
    run_ticks(est, 200, face=False, looking=False, strictness=StrictnessMode.STRICT, tod=TimeOfDay.MORNING)
    assert est.state.target_level == 0.0
    assert 0.0 <= est.state.level <= 1.0
    run_ticks(est, 200, t0=100.0)
    assert est.state.target_level == 1.0
    assert 0.0 <= est.state.level <= 1.0


def test_negative_head_angle_never_raises_target():
    est = AttentionEstimator()
    est.update_attention(True, False, -5.0, now=0.0, time_of_day=TimeOfDay.AFTERNOON)
    est.update_attention(True, False, -5.0, now=3.0, time_of_day=TimeOfDay.AFTERNOON)
    assert est.state.target_level < 1.0


@pytest.mark.parametrize("level, mood, bored", [
    (0.9, Mood.HAPPY, False),
    (0.7, Mood.NEUTRAL, False),
    (0.5, Mood.CONCERNED, True),
    (0.3, Mood.WORRIED, True),
    (0.1, Mood.SAD, True),
])
def test_mood_bands(level, mood, bored):
    est = AttentionEstimator(AttentionState(level=level, target_level=level))
    # Grace period keeps target fixed, so level stays put
    est.update_attention(True, False, 0.0, now=0.0, time_of_day=TimeOfDay.AFTERNOON)
    assert est.state.mood == mood
    assert est.state.is_bored == bored


def test_sad_records_last_distraction():
    est = AttentionEstimator(AttentionState(level=0.1, target_level=0.1))
    est.update_attention(True, False, 0.0, now=42.0, time_of_day=TimeOfDay.AFTERNOON)
    assert est.state.last_distraction == 42.0


def test_proud_in_the_morning_or_during_work():
    est = AttentionEstimator()
    est.update_attention(True, True, 0.0, now=0.0, time_of_day=TimeOfDay.MORNING)
    assert est.state.mood == Mood.PROUD

    est = AttentionEstimator()
    est.update_attention(True, True, 0.0, now=0.0, time_of_day=TimeOfDay.EVENING, working=True)
    assert est.state.mood == Mood.PROUD


def test_sleepy_at_night_outside_work_session():
    est = AttentionEstimator()
    est.update_attention(True, True, 0.0, now=0.0, time_of_day=TimeOfDay.NIGHT)
    assert est.state.mood == Mood.SLEEPY
    assert not est.state.is_bored

    est = AttentionEstimator()
    est.update_attention(True, True, 0.0, now=0.0, time_of_day=TimeOfDay.NIGHT, working=True)
    assert est.state.mood == Mood.PROUD


def test_not_sleepy_at_night_when_level_low():
    est = AttentionEstimator(AttentionState(level=0.3, target_level=0.3))
    est.update_attention(True, False, 0.0, now=0.0, time_of_day=TimeOfDay.NIGHT)
    assert est.state.mood == Mood.WORRIED


def test_force_distracted_from_full_attention():
    est = AttentionEstimator(AttentionState(level=1.0, target_level=1.0, is_bored=True))
    est.force_distracted(ignore_count=3, now=5.0)
    assert est.state.level == 0.1
    assert est.state.mood == Mood.ANGRY
    assert not est.state.is_bored
    assert est.state.last_distraction == 5.0


@pytest.mark.parametrize("count, mood", [
    (0, Mood.ANGRY),
    (5, Mood.ANGRY),
    (6, Mood.SKEPTICAL),
    (10, Mood.SKEPTICAL),
    (11, Mood.SAD),
])
def test_force_distracted_escalation(count, mood):
    est = AttentionEstimator(AttentionState(level=0.6, target_level=0.6))
    est.force_distracted(ignore_count=count, now=0.0)
    assert est.state.level == 0.1
    assert est.state.mood == mood


def test_set_mood_does_not_touch_level():
    est = AttentionEstimator(AttentionState(level=0.42, target_level=0.42))
    est.set_mood(Mood.CELEBRATING)
    assert est.state.mood == Mood.CELEBRATING
    assert est.state.level == 0.42


def ticks_to_cross(strictness, boundary=0.4):
    est = AttentionEstimator()
    for i in range(1000):
        est.update_attention(True, False, 0.3, AppContext.WORKING, strictness,
                             TimeOfDay.AFTERNOON, now=i * TICK)
        if est.state.level < boundary:
            return i + 1
    return None


def test_strict_crosses_concerned_boundary_sooner_than_chill():
    strict = ticks_to_cross(StrictnessMode.STRICT)
    normal = ticks_to_cross(StrictnessMode.NORMAL)
    chill = ticks_to_cross(StrictnessMode.CHILL)
    assert strict is not None and chill is not None
    assert strict < normal < chill


def test_history_records_big_changes_and_trims():
    est = AttentionEstimator(AttentionState(level=0.0, target_level=1.0))
    est.update_attention(True, True, 0.0, now=0.0, time_of_day=TimeOfDay.AFTERNOON)
    assert len(est.state.history) == 1
    assert est.state.history[0].context == AppContext.UNKNOWN

    est.state.history.extend(est.state.history * 1000)
    est._record(AppContext.WORKING, 1.0)
    assert len(est.state.history) == 1002 - 100


def test_small_changes_are_not_recorded():
    est = AttentionEstimator()
    run_ticks(est, 10)
    assert est.state.history == []


def test_average_attention_and_distraction_frequency():
    est = AttentionEstimator()
    assert est.average_attention(5, now=0.0) == est.state.level
    est._record(AppContext.WORKING, now=100.0)
    est.state.level = 0.3
    est._record(AppContext.WORKING, now=200.0)
    assert est.average_attention(5, now=250.0) == pytest.approx(0.65)
    assert est.distraction_frequency(5, now=250.0) == 1
    assert est.distraction_frequency(1, now=350.0) == 0


def test_time_of_day_bands():
    assert TimeOfDay.from_hour(6) == TimeOfDay.MORNING
    assert TimeOfDay.from_hour(12) == TimeOfDay.AFTERNOON
    assert TimeOfDay.from_hour(21) == TimeOfDay.EVENING
    assert TimeOfDay.from_hour(23) == TimeOfDay.NIGHT
    assert TimeOfDay.from_hour(3) == TimeOfDay.NIGHT
    assert TimeOfDay.NIGHT.energy_level == 0.5


def test_every_mood_has_an_appearance():
    assert set(MOOD_APPEARANCE) == set(Mood)
    assert MOOD_APPEARANCE[Mood.SKEPTICAL].left_eye_modifier == 0.6


def test_mood_appearance_lookup():
    assert mood_appearance(Mood.LOVE).display_name == "In love"
    assert mood_appearance(Mood.ANGRY) is MOOD_APPEARANCE[Mood.ANGRY]
