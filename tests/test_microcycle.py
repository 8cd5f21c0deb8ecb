"""Tests for weekly volume, day patterns and week totals."""

from __future__ import annotations

import dataclasses
from datetime import date, timedelta

import pytest

from periodizer.models import HARD_TYPES, MODERATE_TYPES, FitnessProfile, TrainingBlock
from periodizer.services.fitness import estimate_lactate_threshold
from periodizer.services.methodology import customize_methodology, get_methodology
from periodizer.services.microcycle import (
    IntensityTracker,
    PlanContext,
    VolumeState,
    build_day_pattern,
    choose_quality_type,
    experience_level,
    generate_block_microcycles,
    generate_week,
    initial_volume_state,
    is_deload_week,
    long_run_weekday,
    progression_rate,
    quality_positions,
    split_volume,
    training_days,
    week_dates,
    week_volume,
)
from periodizer.services.periodization import get_goal
from periodizer.services.race_predictor import race_pace_sec_per_km
from periodizer.services.workout_selector import SelectionContext
from periodizer.validators import ConfigurationError, TrainingPreferences

MONDAY = date(2026, 1, 5)


def _ctx(methodology: str = "daniels", **prefs) -> PlanContext:
    profile = get_methodology(methodology)
    preferences = TrainingPreferences(**{"available_days": (0, 1, 2, 3, 5), "long_run_day": 5, **prefs})
    fitness = FitnessProfile(
        vdot=45.0,
        critical_speed_kmh=14.0,
        running_economy=200.0,
        threshold_pace_sec_per_km=estimate_lactate_threshold(45),
        weekly_km=30.0,
        longest_recent_run_km=12.0,
    )
    days = training_days(preferences, 20)
    return PlanContext(
        methodology=profile,
        goal=get_goal("improve_10k"),
        preferences=preferences,
        selection=SelectionContext(fitness, profile, 1.0, race_pace_sec_per_km(45, "improve_10k")),
        training_days=days,
        long_run_day=long_run_weekday(days, preferences.long_run_day),
        progression_rate=0.05,
    )


# --- progression and volume ---

def test_experience_level():
    assert experience_level("advanced", 0.5) == "advanced"
    assert experience_level(None, 3.0) == "advanced"
    assert experience_level(None, 1.5) == "intermediate"
    assert experience_level(None, 1.0) == "beginner"
    assert progression_rate("beginner") == 0.05
    assert progression_rate("advanced") == 0.10


def test_initial_volume_state_floor():
    state = initial_volume_state(4.0, get_goal("first_5k"))
    assert state.base_km == 10.0
    assert state.ceiling_km == pytest.approx(14.0)


def test_is_deload_week():
    assert is_deload_week("base", 3, 4) is True
    assert is_deload_week("base", 0, 4) is False
    assert is_deload_week("build", 2, 3) is True
    assert is_deload_week("taper", 3, 4) is False
    assert is_deload_week("recovery", 1, 2) is False


def test_week_volume_progression_and_deload():
    profile = get_methodology("daniels")
    state = VolumeState(base_km=30.0, ceiling_km=45.0, anchor_km=30.0)
    targets = []
    for wib in range(5):
        target, deload = week_volume(state, "base", wib, 5, profile, 0.10)
        state.previous_km = target
        targets.append((target, deload))
    assert targets[0] == (30.0, False)
    assert targets[1] == (33.0, False)
    assert targets[2] == (36.3, False)
    # deload holds the anchor and steps back 20%
    assert targets[3] == (29.04, True)
    # capped at 20% above the deload week
    assert targets[4] == (34.85, False)


def test_week_volume_cap_on_previous_week():
    state = VolumeState(base_km=30.0, ceiling_km=45.0, anchor_km=30.0, previous_km=20.0, started=True)
    target, _ = week_volume(state, "base", 1, 4, get_methodology("custom"), 0.05)
    assert target == 24.0


def test_week_volume_respects_ceiling():
    state = VolumeState(base_km=30.0, ceiling_km=45.0, anchor_km=44.0, previous_km=44.0, started=True)
    target, _ = week_volume(state, "base", 1, 8, get_methodology("custom"), 0.10)
    assert target == 45.0


def test_taper_and_recovery_weeks_step_down():
    profile = get_methodology("daniels")
    state = VolumeState(base_km=30.0, ceiling_km=45.0, anchor_km=40.0, started=True)
    assert week_volume(state, "taper", 0, 1, profile, 0.1) == (20.0, False)
    assert [week_volume(state, "taper", i, 3, profile, 0.1)[0] for i in range(3)] == [30.0, 24.0, 20.0]
    assert week_volume(state, "recovery", 0, 1, profile, 0.1) == (24.0, False)
    assert state.anchor_km == 40.0


# --- days ---

def test_training_days_drop_short_budgets():
    prefs = TrainingPreferences(available_days=(0, 2, 5), time_budgets={0: 15})
    assert training_days(prefs, 20) == (2, 5)


def test_training_days_none_left():
    prefs = TrainingPreferences(available_days=(0, 2), time_budgets={0: 10, 2: 10})
    with pytest.raises(ConfigurationError):
        training_days(prefs, 20)


def test_long_run_weekday():
    assert long_run_weekday((0, 1, 3), 5) == 3
    assert long_run_weekday((0, 5), 5) == 5
    assert long_run_weekday((0, 5), None) == 5


def test_week_dates_follow_start_weekday():
    wednesday = MONDAY + timedelta(days=2)
    assert week_dates(wednesday, (0, 5)) == [date(2026, 1, 10), date(2026, 1, 12)]


# --- pattern ---

def test_quality_positions():
    # consecutive days: the day before the long run stays easy
    assert quality_positions(5, 4, 2) == [1]
    assert quality_positions(5, 4, 1) == [1]
    assert quality_positions(3, 2, 2) == [0]
    assert quality_positions(7, 5, 2) == [1, 3]
    assert quality_positions(1, 0, 2) == []
    assert quality_positions(5, 4, 0) == []


def test_quality_positions_use_calendar_days():
    # Mon/Tue/Wed/Thu/Sat with a Saturday long run
    assert quality_positions(5, 4, 2, (0, 1, 2, 3, 5)) == [1, 3]
    # Mon/Tue/Thu/Sat/Sun with a Sunday long run: Saturday and Monday border it
    assert quality_positions(5, 4, 2, (0, 1, 3, 5, 6)) == [1, 2]


def test_quality_positions_beside_long_run_only_as_last_resort():
    assert quality_positions(2, 1, 2, (5, 6)) == [0]
    assert quality_positions(3, 2, 2, (4, 5, 6)) == [0]


def test_quality_positions_never_adjacent_or_last():
    for n in range(1, 8):
        for long_idx in range(n):
            chosen = quality_positions(n, long_idx, 3)
            assert long_idx not in chosen
            assert n - 1 not in chosen
            assert all(b - a > 1 for a, b in zip(chosen, chosen[1:]))
            if any(abs(i - long_idx) > 1 for i in range(n - 1) if i != long_idx):
                assert all(abs(i - long_idx) > 1 for i in chosen)


def test_choose_quality_type_by_score():
    assert choose_quality_type("hard", "base", get_methodology("daniels"), {}) == "threshold"
    assert choose_quality_type("hard", "base", get_methodology("lydiard"), {}) == "hill_repeats"
    assert choose_quality_type("hard", "peak", get_methodology("daniels"), {}) == "vo2max"
    assert choose_quality_type("hard", "recovery", get_methodology("daniels"), {}) is None


def test_choose_quality_type_usage_penalty_rotates():
    usage: dict[str, int] = {}
    picks = [choose_quality_type("hard", "base", get_methodology("daniels"), usage) for _ in range(6)]
    assert picks[0] == "threshold"
    assert "hill_repeats" in picks
    assert sum(usage.values()) == 6


def test_choose_quality_type_tie_goes_to_priority():
    profile = customize_methodology(
        get_methodology("custom"),
        workout_priorities=("tempo", "fartlek"),
        emphasis={"tempo": 0.9, "fartlek": 1.0, "steady": 1.0, "progression": 1.0},
        phase_focus={"base": "recovery"},
    )
    assert choose_quality_type("moderate", "base", profile, {}) == "tempo"


def test_build_day_pattern_daniels_base_week():
    slots = build_day_pattern(5, 4, "base", False, _ctx(), IntensityTracker())
    assert slots == ["recovery", "tempo", "easy", "easy", "long_run"]


def test_build_day_pattern_recovery_week_has_no_quality():
    slots = build_day_pattern(5, 4, "recovery", False, _ctx(), IntensityTracker())
    assert not any(s in MODERATE_TYPES or s in HARD_TYPES for s in slots)
    assert slots.count("long_run") == 1


def test_build_day_pattern_deload_single_quality():
    tracker = IntensityTracker(expected_hard=3.0, expected_moderate=3.0)
    slots = build_day_pattern(5, 4, "build", True, _ctx(), tracker)
    quality = [s for s in slots if s in MODERATE_TYPES or s in HARD_TYPES]
    assert len(quality) == 1


def test_build_day_pattern_recovery_follows_quality_for_high_emphasis():
    tracker = IntensityTracker(expected_hard=1.0, expected_moderate=3.0)
    slots = build_day_pattern(5, 4, "build", False, _ctx("lydiard"), tracker, (0, 1, 2, 3, 5))
    assert slots[1] in HARD_TYPES
    assert slots[3] in MODERATE_TYPES
    assert slots[2] == "recovery"
    assert slots[0] == "recovery"


def test_build_day_pattern_keeps_quality_off_long_run_neighbours():
    tracker = IntensityTracker(expected_hard=1.0, expected_moderate=3.0)
    slots = build_day_pattern(5, 4, "build", False, _ctx("lydiard"), tracker, (0, 1, 3, 5, 6))
    assert slots[0] not in MODERATE_TYPES | HARD_TYPES
    assert slots[3] not in MODERATE_TYPES | HARD_TYPES
    assert slots[1] in HARD_TYPES
    assert slots[2] in MODERATE_TYPES


def test_build_day_pattern_cross_training_and_strength():
    ctx = _ctx(include_cross_training=True, include_strength=True)
    slots = build_day_pattern(5, 4, "base", False, ctx, IntensityTracker())
    assert slots == ["recovery", "tempo", "strength", "cross_training", "long_run"]


# --- volume split ---

def test_split_volume():
    slots = ["easy", "tempo", "recovery", "easy", "long_run"]
    distances = split_volume(slots, 30.0, 0.3)
    assert distances[4] == 9.0
    assert sum(distances) == pytest.approx(30.0, abs=0.05)
    assert distances[2] < distances[0]


def test_split_volume_non_running_slots_carry_nothing():
    distances = split_volume(["cross_training", "easy", "long_run"], 20.0, 0.35)
    assert distances[0] == 0.0
    assert sum(distances) == pytest.approx(20.0, abs=0.05)


def test_split_volume_long_run_alone():
    assert split_volume(["long_run"], 12.0, 0.3) == [12.0]
    assert split_volume(["strength", "long_run"], 12.0, 0.3) == [0.0, 12.0]


# --- week assembly ---

def test_generate_week_totals_match_workouts():
    ctx = _ctx()
    state = initial_volume_state(30.0, ctx.goal)
    week = generate_week(ctx, "base", 1, 0, 4, MONDAY, state, IntensityTracker())
    assert len(week.workouts) == 5
    assert week.total_distance_km == pytest.approx(sum(w.target.distance_km for w in week.workouts), abs=0.01)
    assert week.total_duration_min == pytest.approx(sum(w.target.duration_min for w in week.workouts), abs=0.1)
    assert week.total_load == pytest.approx(sum(w.target.tss for w in week.workouts), abs=0.1)
    assert week.total_distance_km == pytest.approx(30.0, rel=0.05)
    assert week.pattern == "Recovery-Tempo-Easy-Easy-Rest-Long-Rest"
    assert week.recovery_ratio == 0.8
    assert state.previous_km == week.total_distance_km
    assert [w.date.weekday() for w in week.workouts] == [0, 1, 2, 3, 5]
    assert week.workouts[0].id == "2026-01-05-recovery"


def test_generate_block_microcycles():
    ctx = _ctx()
    block = TrainingBlock("base", MONDAY, MONDAY + timedelta(days=27), 4, ("Aerobic capacity",), "aerobic")
    state = initial_volume_state(30.0, ctx.goal)
    filled = generate_block_microcycles(block, ctx, 1, state, IntensityTracker())
    assert dataclasses.replace(filled, microcycles=()) == block
    assert [w.week_number for w in filled.microcycles] == [1, 2, 3, 4]
    assert [w.is_deload for w in filled.microcycles] == [False, False, False, True]
    assert filled.microcycles[1].start_date == MONDAY + timedelta(days=7)
    for prev, nxt in zip(filled.microcycles, filled.microcycles[1:]):
        if not nxt.is_deload:
            assert nxt.total_distance_km <= prev.total_distance_km * 1.2 + 0.01
