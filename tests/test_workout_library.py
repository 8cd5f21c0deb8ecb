from periodizer.models import PHASES, WORKOUT_TYPES, Segment, Workout
from periodizer.services.workout_library import (
    ALLOWED_ROLES,
    TEMPLATES,
    WORKOUT_DURATIONS,
    fallback_types,
    find_template,
    templates_for,
    validate_workout_structure,
)


def _workout(segments):
    return Workout("tempo", "X", "tempo", tuple(segments), "test", 40.0, 24.0)


def test_every_type_has_durations_and_a_template():
    assert set(WORKOUT_DURATIONS) == set(WORKOUT_TYPES)
    assert {t.workout_type for t in TEMPLATES.values()} == set(WORKOUT_TYPES)
    for lo, hi, typical in WORKOUT_DURATIONS.values():
        assert lo <= typical <= hi


def test_template_roles_are_known():
    for template in TEMPLATES.values():
        for seg in template.segments:
            assert seg.role in ALLOWED_ROLES
            assert seg.minutes > 0


def test_every_slot_resolves():
    for workout_type in WORKOUT_TYPES:
        for phase in PHASES:
            template, resolved = find_template(workout_type, phase)
            assert template is not None
            assert template.workout_type == resolved
            assert phase in template.phases


def test_phase_specific_templates():
    assert [t.key for t in templates_for("vo2max", "peak")] == ["VO2MAX_4X4", "VO2MAX_5X3"]
    assert templates_for("time_trial", "base") == []


def test_rotation_is_deterministic():
    first, _ = find_template("vo2max", "peak", rotation=0)
    second, _ = find_template("vo2max", "peak", rotation=1)
    third, _ = find_template("vo2max", "peak", rotation=2)
    assert first.key == "VO2MAX_4X4"
    assert second.key == "VO2MAX_5X3"
    assert third.key == first.key


def test_fallback_walks_down_intensity():
    template, resolved = find_template("time_trial", "base")
    assert resolved == "hill_repeats"
    assert template.key == "HILL_REPEATS_6X2"
    template, resolved = find_template("race_pace", "base")
    assert resolved == "tempo"


def test_unknown_type_falls_back_to_easy():
    assert fallback_types("aqua_jogging") == ["easy"]
    template, resolved = find_template("aqua_jogging", "build")
    assert resolved == "easy"
    assert template.key == "EASY_AEROBIC"


def test_validate_structure_valid():
    workout = _workout([
        Segment(10, 80, "easy", "Warm-up", "warmup"),
        Segment(20, 92.5, "tempo", "Tempo", "work", (290, 305)),
        Segment(10, 70, "recovery", "Cool-down", "cooldown"),
    ])
    assert validate_workout_structure(workout) == []


def test_validate_structure_errors():
    workout = _workout([
        Segment(0, 92.5, "tempo", "Tempo", "work", (305, 290)),
        Segment(10, 80, "easy", "Jog", "sprint"),
    ])
    errors = validate_workout_structure(workout)
    assert any("duration_min" in e for e in errors)
    assert any("role" in e for e in errors)
    assert any("pace_range" in e for e in errors)
    assert any("warm-up" in e for e in errors)
    assert any("cool-down" in e for e in errors)


def test_validate_structure_empty():
    assert validate_workout_structure(_workout([])) == ["workout must have at least one segment"]
