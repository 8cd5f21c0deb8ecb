"""End-to-end tests for plan generation."""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pytest

from periodizer.cache_utils import CalculationCache
from periodizer.config import Settings
from periodizer.models import HARD_TYPES, RECOVERY_LOAD_TYPES, FitnessMetrics, RunRecord
from periodizer.services.generator import fitness_metrics, from_run_history, generate_plan
from periodizer.services.methodology import METHODOLOGIES, customize_methodology, get_methodology
from periodizer.services.plan_assembler import is_calibrated
from periodizer.services.workout_library import validate_workout_structure
from periodizer.validators import ConfigurationError, PlanConfig

START = date(2026, 1, 5)


def _config(**changes) -> dict:
    config = {
        "goal": "10K improvement",
        "start_date": START,
        "target_date": START + timedelta(weeks=12),
        "methodology": "VDOT-driven",
        "fitness": {"vdot": 45, "weekly_km": 30},
        "preferences": {"available_days": ["mon", "tue", "wed", "thu", "sat"], "long_run_day": "sat"},
    }
    config.update(changes)
    return config


def _weeks(plan):
    return [week for block in plan.blocks for week in block.microcycles]


def _history(weeks: int = 8) -> list[RunRecord]:
    """Tue/Thu 8 km and a Sunday 18 km, ending the week before START."""
    first = START - timedelta(weeks=weeks)
    runs = []
    for w in range(weeks):
        monday = first + timedelta(weeks=w)
        for offset, km in ((1, 8.0), (3, 8.0), (6, 18.0)):
            runs.append(RunRecord(date=monday + timedelta(days=offset), distance_km=km, duration_min=km * 6.0))
    return runs


@pytest.fixture(scope="module")
def plan():
    return generate_plan(_config())


def test_ten_k_phase_blocks(plan):
    assert [(b.phase, b.weeks) for b in plan.blocks] == [("base", 4), ("build", 5), ("peak", 2), ("taper", 1)]
    assert plan.goal == "improve_10k"
    assert plan.methodology == "daniels"
    assert plan.name.endswith("(Jack Daniels)")


def test_one_long_run_per_week_on_saturday(plan):
    for week in _weeks(plan):
        long_runs = [w for w in week.workouts if w.workout_type == "long_run"]
        assert len(long_runs) == 1
        assert long_runs[0].date.weekday() == 5


def test_no_hard_workouts_on_consecutive_days(plan):
    hard_days = sorted(w.date for w in plan.workouts if w.workout_type in HARD_TYPES)
    for a, b in zip(hard_days, hard_days[1:]):
        assert (b - a).days > 1


def test_quality_never_beside_long_run():
    plan = generate_plan(_config(
        goal="half marathon",
        target_date=START + timedelta(weeks=16),
        methodology="daniels",
        preferences={},
    ))
    long_days = {w.date for w in plan.workouts if w.workout_type == "long_run"}
    quality = [w for w in plan.workouts if w.category != "easy"]
    assert quality
    for w in quality:
        assert w.date - timedelta(days=1) not in long_days
        assert w.date + timedelta(days=1) not in long_days


def test_no_quality_on_consecutive_days_with_default_days():
    plan = generate_plan(_config(goal="half marathon", target_date=START + timedelta(weeks=16), preferences={}))
    quality_days = sorted(w.date for w in plan.workouts if w.category != "easy")
    for a, b in zip(quality_days, quality_days[1:]):
        assert (b - a).days > 1


def test_total_distance_tracks_progression(plan):
    expected = 30.0 * sum(week.progression_factor for week in _weeks(plan))
    assert plan.summary.total_distance_km == pytest.approx(expected, rel=0.15)


def test_generation_is_deterministic(plan):
    assert generate_plan(_config()) == plan


def test_calendar_coverage(plan):
    assert (plan.end_date - plan.start_date).days + 1 == 7 * plan.summary.total_weeks
    assert sum(b.weeks for b in plan.blocks) == plan.summary.total_weeks == 12
    dates = [w.date for w in plan.workouts]
    assert len(dates) == len(set(dates))
    assert all(plan.start_date <= d <= plan.end_date for d in dates)
    assert {d.weekday() for d in dates} <= {0, 1, 2, 3, 5}


def test_blocks_are_contiguous(plan):
    assert plan.blocks[0].start_date == plan.start_date
    assert plan.blocks[-1].end_date == plan.end_date
    for prev, nxt in zip(plan.blocks, plan.blocks[1:]):
        assert nxt.start_date == prev.end_date + timedelta(days=1)


def test_weekly_load_continuity(plan):
    weeks = _weeks(plan)
    assert [w.week_number for w in weeks] == list(range(1, 13))
    for prev, nxt in zip(weeks, weeks[1:]):
        assert nxt.total_distance_km <= prev.total_distance_km * 1.2 + 0.05


def test_week_totals_are_consistent(plan):
    for week in _weeks(plan):
        assert week.total_distance_km == pytest.approx(sum(w.target.distance_km for w in week.workouts), abs=0.01)
        recovery = sum(1 for w in week.workouts if w.workout_type in RECOVERY_LOAD_TYPES)
        assert week.recovery_ratio == round(recovery / len(week.workouts), 3)
        assert len(week.pattern.split("-")) == 7


def test_every_workout_is_well_formed(plan):
    for w in plan.workouts:
        assert validate_workout_structure(w.workout) == []
        assert w.target.duration_min >= 15.0
        assert w.id == f"{w.date.isoformat()}-{w.workout_type}"


@pytest.mark.parametrize("methodology", sorted(METHODOLOGIES))
def test_intensity_distribution_calibrated(methodology):
    plan = generate_plan(_config(methodology=methodology))
    assert is_calibrated(plan.summary, tolerance_pct=10.0)


def test_general_fitness_has_no_race_phases():
    plan = generate_plan(_config(goal="general fitness", target_date=START + timedelta(weeks=10)))
    phases = {b.phase for b in plan.blocks}
    assert "peak" not in phases
    assert "taper" not in phases


def test_injury_history_leads_with_recovery():
    fitness = {"vdot": 45, "weekly_km": 30, "injury_history": ["shin splints"]}
    plan = generate_plan(_config(goal="half marathon", target_date=START + timedelta(weeks=16), fitness=fitness))
    assert plan.blocks[0].phase == "recovery"
    first_week = plan.blocks[0].microcycles[0]
    assert all(w.category == "easy" for w in first_week.workouts)


def test_environment_slows_paces():
    neutral = generate_plan(_config())
    hot = generate_plan(_config(environment={"temperature_c": 30}))
    a = neutral.workouts[0].workout.segments[0].pace_range_sec_per_km
    b = hot.workouts[0].workout.segments[0].pace_range_sec_per_km
    assert b[0] > a[0]
    assert b[1] > a[1]


def test_custom_profile_is_recorded():
    profile = customize_methodology(get_methodology("daniels"), intensity={"easy": 75, "moderate": 15, "hard": 10})
    plan = generate_plan(_config(), profile=profile)
    assert plan.methodology == "custom"
    assert plan.summary.target_distribution.easy == 75


def test_accepts_validated_config():
    cfg = PlanConfig.model_validate(_config())
    plan = generate_plan(cfg)
    assert plan.config is cfg


def test_cache_is_transparent():
    runs = _history()
    cache = CalculationCache()
    config = _config(fitness=None)
    first = generate_plan(config, runs, cache=cache)
    second = generate_plan(config, runs, cache=cache)
    assert first == second == generate_plan(config, runs)
    assert cache.counter.hits >= 1


def test_unknown_methodology_raises():
    with pytest.raises(ConfigurationError):
        generate_plan(_config(methodology="galloway"))


def test_bad_date_span_raises():
    with pytest.raises(ConfigurationError):
        generate_plan(_config(target_date=START))
    with pytest.raises(ConfigurationError):
        generate_plan(_config(target_date=START + timedelta(days=3)))


def test_unknown_goal_raises():
    with pytest.raises(ConfigurationError):
        generate_plan(_config(goal="triathlon"))


def test_no_usable_day_raises():
    prefs = {"available_days": ["mon", "wed"], "time_budgets": {"mon": 10, "wed": 10}}
    with pytest.raises(ConfigurationError):
        generate_plan(_config(preferences=prefs))


def test_min_session_setting_filters_days():
    prefs = {"available_days": ["mon", "wed", "sat"], "time_budgets": {"mon": 25}}
    plan = generate_plan(_config(preferences=prefs), settings=Settings(min_session_minutes=30))
    assert {w.date.weekday() for w in plan.workouts} == {2, 5}


def test_short_budget_day_never_overrun():
    prefs = {"available_days": ["mon", "wed", "sat"], "long_run_day": "sat", "time_budgets": {"mon": 12}}
    plan = generate_plan(_config(preferences=prefs), settings=Settings(min_session_minutes=10))
    mondays = [w for w in plan.workouts if w.date.weekday() == 0]
    assert mondays
    assert all(w.target.duration_min <= 12.0 for w in mondays)


def test_generation_logs_summary(caplog):
    with caplog.at_level(logging.INFO, logger="periodizer.services.generator"):
        generate_plan(_config())
    assert "Generated training plan" in caplog.text


def test_from_run_history_uses_training_pattern():
    plan = from_run_history(_history(), "half marathon", START, START + timedelta(weeks=16))
    weekdays = {w.date.weekday() for w in plan.workouts}
    assert weekdays == {1, 3, 6}
    long_days = {w.date.weekday() for w in plan.workouts if w.workout_type == "long_run"}
    assert long_days == {6}
    assert plan.methodology == "custom"
    assert plan.fitness.weekly_km == pytest.approx(34.0)


def test_from_run_history_without_runs_uses_defaults():
    plan = from_run_history([], "5K", START)
    assert plan.fitness.vdot == 35.0
    assert {w.date.weekday() for w in plan.workouts} == {0, 1, 3, 5, 6}


def test_fitness_metrics_diagnostics():
    metrics = fitness_metrics(_history(), resting_hr=50, as_of=START)
    assert isinstance(metrics, FitnessMetrics)
    assert metrics.vdot > 0
    assert 0 <= metrics.injury_risk <= 100
