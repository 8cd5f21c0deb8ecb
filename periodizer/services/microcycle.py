"""Weekly microcycle generation.

Each week gets a target volume from a compounding progression (rate by
experience, damped by phase) that never exceeds the previous week's realised
distance by more than 20%. Every ``deload_every``-th week of a base, build or
peak block steps back by the methodology's deload reduction. Taper weeks step
down from the progression anchor and recovery weeks hold at 60% of it.

The day pattern places one long run, then quality sessions on non-adjacent
days away from the long run (never the last workout of the week), sized so
that the cumulative easy/moderate/hard counts track the methodology's
distribution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

from periodizer.models import (
    HARD_TYPES,
    MODERATE_TYPES,
    NON_RUNNING_TYPES,
    RECOVERY_LOAD_TYPES,
    IntensityDistribution,
    PlannedWorkout,
    TrainingBlock,
    WeeklyMicrocycle,
    intensity_category,
)
from periodizer.services.methodology import FOCUS_TYPES, MethodologyProfile
from periodizer.services.periodization import GoalSpec
from periodizer.services.workout_selector import SelectedWorkout, SelectionContext, select_workout
from periodizer.validators import ConfigurationError, TrainingPreferences

logger = logging.getLogger(__name__)

PROGRESSION_RATES = {"beginner": 0.05, "intermediate": 0.08, "advanced": 0.10}
MAX_WEEKLY_INCREASE = 0.20
PHASE_PROGRESSION = {"base": 1.0, "build": 0.8, "peak": 0.5, "taper": 0.0, "recovery": 0.0}
TAPER_STEPS = (0.75, 0.6, 0.5)
RECOVERY_PHASE_VOLUME = 0.6
MIN_BASE_WEEKLY_KM = 10.0
RESCALE_ATTEMPTS = 3

# Recovery runs carry less distance than easy runs
_SLOT_WEIGHTS = {"recovery": 0.7}

QUALITY_POOLS: dict[str, dict[str, tuple[str, ...]]] = {
    "base": {
        "moderate": ("steady", "progression", "fartlek", "tempo"),
        "hard": ("hill_repeats", "threshold"),
    },
    "build": {
        "moderate": ("tempo", "progression", "fartlek", "steady"),
        "hard": ("threshold", "vo2max", "hill_repeats"),
    },
    "peak": {
        "moderate": ("race_pace", "tempo", "fartlek"),
        "hard": ("vo2max", "speed", "threshold", "time_trial"),
    },
    "taper": {
        "moderate": ("race_pace", "tempo"),
        "hard": ("speed", "vo2max"),
    },
    "recovery": {"moderate": (), "hard": ()},
}

PATTERN_LABELS = {
    "recovery": "Recovery",
    "easy": "Easy",
    "steady": "Steady",
    "tempo": "Tempo",
    "threshold": "Threshold",
    "vo2max": "Intervals",
    "speed": "Speed",
    "hill_repeats": "Hills",
    "fartlek": "Fartlek",
    "progression": "Progression",
    "long_run": "Long",
    "race_pace": "Race Pace",
    "time_trial": "Time Trial",
    "cross_training": "Cross",
    "strength": "Strength",
}


# ---------------------------------------------------------------------------
# Plan-level state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PlanContext:
    """Everything week generation needs that is fixed for the whole plan."""
    methodology: MethodologyProfile
    goal: GoalSpec
    preferences: TrainingPreferences
    selection: SelectionContext
    training_days: tuple[int, ...]
    long_run_day: int
    progression_rate: float


@dataclass
class VolumeState:
    base_km: float
    ceiling_km: float
    anchor_km: float
    previous_km: Optional[float] = None
    started: bool = False


@dataclass
class IntensityTracker:
    """Cumulative realised vs expected quality counts across the plan."""
    sessions: int = 0
    moderate: int = 0
    hard: int = 0
    expected_moderate: float = 0.0
    expected_hard: float = 0.0
    usage: dict[str, int] = field(default_factory=dict)


def experience_level(preferred: Optional[str], training_age_years: float) -> str:
    if preferred in PROGRESSION_RATES:
        return preferred
    if training_age_years > 2:
        return "advanced"
    if training_age_years > 1:
        return "intermediate"
    return "beginner"


def progression_rate(level: str) -> float:
    return PROGRESSION_RATES.get(level, PROGRESSION_RATES["beginner"])


def initial_volume_state(weekly_km: float, goal: GoalSpec) -> VolumeState:
    base = max(MIN_BASE_WEEKLY_KM, float(weekly_km))
    if base > weekly_km:
        logger.debug("Weekly volume below floor, starting from minimum", extra={"ctx_weekly_km": weekly_km})
    return VolumeState(base_km=base, ceiling_km=base * goal.volume_ceiling, anchor_km=base)


def training_days(preferences: TrainingPreferences, min_session_minutes: int) -> tuple[int, ...]:
    """Available weekdays whose time budget fits at least one session."""
    days = tuple(d for d in preferences.available_days if preferences.budget_for(d) >= min_session_minutes)
    if not days:
        raise ConfigurationError("no available training day has enough time for a session")
    return days


def long_run_weekday(days: tuple[int, ...], preferred: Optional[int]) -> int:
    if preferred is not None and preferred in days:
        return preferred
    return days[-1]


def week_dates(week_start: date, days: tuple[int, ...]) -> list[date]:
    """Chronological dates in the 7 days from ``week_start`` falling on ``days``."""
    out = [week_start + timedelta(days=i) for i in range(7)]
    return [d for d in out if d.weekday() in days]


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------

def is_deload_week(phase: str, week_in_block: int, deload_every: int) -> bool:
    if phase not in ("base", "build", "peak"):
        return False
    return week_in_block > 0 and (week_in_block + 1) % deload_every == 0


def week_volume(
    state: VolumeState,
    phase: str,
    week_in_block: int,
    block_weeks: int,
    profile: MethodologyProfile,
    rate: float,
) -> tuple[float, bool]:
    """(target km, is deload) for one week; advances the progression anchor."""
    deload = is_deload_week(phase, week_in_block, profile.deload_every)
    if phase == "taper":
        steps = TAPER_STEPS[-block_weeks:] if block_weeks <= len(TAPER_STEPS) else TAPER_STEPS
        target = state.anchor_km * steps[min(week_in_block, len(steps) - 1)]
    elif phase == "recovery":
        target = state.anchor_km * RECOVERY_PHASE_VOLUME
    elif deload:
        target = state.anchor_km * (1.0 - profile.deload_reduction)
    else:
        if state.started:
            grown = state.anchor_km * (1.0 + rate * PHASE_PROGRESSION.get(phase, 0.0))
            state.anchor_km = min(state.ceiling_km, max(state.anchor_km, grown))
        state.started = True
        target = state.anchor_km

    if state.previous_km is not None and state.previous_km > 0:
        target = min(target, state.previous_km * (1.0 + MAX_WEEKLY_INCREASE))
    return round(target, 2), deload


# ---------------------------------------------------------------------------
# Day pattern
# ---------------------------------------------------------------------------

def quality_positions(
    n: int,
    long_idx: int,
    capacity: int,
    offsets: Optional[Sequence[int]] = None,
) -> list[int]:
    """Slot indices for quality work; never the long run or the last slot.

    ``offsets`` are the slots' day offsets within the week (consecutive days
    when omitted). Two quality sessions never fall on neighbouring days, and
    the days either side of the long run (this week's or the neighbouring
    week's) are only used when no other slot is free. Weeks repeat, so
    neighbouring days are counted modulo 7.
    """
    if capacity <= 0:
        return []
    days = list(offsets) if offsets is not None else list(range(n))

    def touching(a: int, b: int) -> bool:
        return (days[a] - days[b]) % 7 in (1, 6)

    candidates = [i for i in range(n - 1) if i != long_idx]
    ordered = [i for i in candidates if i % 2 == 1] + [i for i in candidates if i % 2 == 0]
    free = [i for i in ordered if not touching(i, long_idx)]
    beside_long = [i for i in ordered if touching(i, long_idx)]

    chosen: list[int] = []
    for pool in (free, beside_long):
        if chosen:
            break
        for idx in pool:
            if len(chosen) >= capacity:
                break
            if not any(touching(idx, c) for c in chosen):
                chosen.append(idx)
    return sorted(chosen)


def blended_distribution(profile: MethodologyProfile, phase: str) -> IntensityDistribution:
    phase_dist = profile.distribution_for(phase)
    overall = profile.intensity
    return IntensityDistribution(
        easy=(phase_dist.easy + overall.easy) / 2.0,
        moderate=(phase_dist.moderate + overall.moderate) / 2.0,
        hard=(phase_dist.hard + overall.hard) / 2.0,
    )


def quality_counts(
    tracker: IntensityTracker,
    sessions: int,
    dist: IntensityDistribution,
    capacity: int,
) -> tuple[int, int]:
    """(hard, moderate) sessions this week so cumulative counts track the target."""
    tracker.expected_hard += sessions * dist.hard / 100.0
    tracker.expected_moderate += sessions * dist.moderate / 100.0
    if capacity <= 0:
        return 0, 0
    hard = int(tracker.expected_hard - tracker.hard + 0.5)
    hard = max(0, min(capacity, hard))
    moderate = int(tracker.expected_moderate - tracker.moderate + 0.5)
    moderate = max(0, min(capacity - hard, moderate))
    return hard, moderate


def _type_score(workout_type: str, phase: str, profile: MethodologyProfile, usage: dict[str, int]) -> float:
    score = profile.emphasis_for(workout_type)
    rank = profile.priority_rank(workout_type)
    if rank < len(profile.workout_priorities):
        score += 0.1 * (len(profile.workout_priorities) - rank)
    if workout_type in FOCUS_TYPES.get(profile.phase_focus.get(phase, ""), frozenset()):
        score += 0.3
    score -= 0.15 * usage.get(workout_type, 0)
    return round(score, 6)


def choose_quality_type(category: str, phase: str, profile: MethodologyProfile, usage: dict[str, int]) -> Optional[str]:
    """Best-scoring type from the phase pool; ties go to the methodology's priority order."""
    pool = QUALITY_POOLS.get(phase, {}).get(category, ())
    if not pool:
        return None
    ranked = sorted(
        pool,
        key=lambda t: (-_type_score(t, phase, profile, usage), profile.priority_rank(t), pool.index(t)),
    )
    choice = ranked[0]
    usage[choice] = usage.get(choice, 0) + 1
    return choice


def build_day_pattern(
    n: int,
    long_idx: int,
    phase: str,
    deload: bool,
    ctx: PlanContext,
    tracker: IntensityTracker,
    offsets: Optional[Sequence[int]] = None,
) -> list[str]:
    """Workout type per training slot, in chronological order."""
    profile = ctx.methodology
    slots = ["easy"] * n
    slots[long_idx] = "long_run"

    capacity = 0 if phase == "recovery" else (1 if deload else 2)
    positions = quality_positions(n, long_idx, capacity, offsets)
    hard, moderate = quality_counts(tracker, n, blended_distribution(profile, phase), len(positions))
    categories = ["hard"] * hard + ["moderate"] * moderate
    for idx, category in zip(positions, categories):
        choice = choose_quality_type(category, phase, profile, tracker.usage)
        if choice:
            slots[idx] = choice

    quality = {i for i, t in enumerate(slots) if t in MODERATE_TYPES or t in HARD_TYPES}
    if n > 1:
        follow = {(long_idx + 1) % n}
        if profile.recovery_emphasis >= 0.75:
            follow |= {(i + 1) % n for i in quality}
        for idx in sorted(follow):
            if slots[idx] == "easy":
                slots[idx] = "recovery"

    if deload:
        flip = True
        for idx, t in enumerate(slots):
            if t in ("easy", "recovery") and idx not in quality:
                slots[idx] = "recovery" if flip else "easy"
                flip = not flip

    prefs = ctx.preferences
    for enabled, replacement in ((prefs.include_cross_training, "cross_training"), (prefs.include_strength, "strength")):
        if not enabled:
            continue
        easy_slots = [i for i, t in enumerate(slots) if t == "easy"]
        if easy_slots:
            slots[easy_slots[-1]] = replacement
    return slots


def pattern_string(week_start: date, workouts: list[PlannedWorkout]) -> str:
    by_date = {w.date: w.workout_type for w in workouts}
    labels = []
    for i in range(7):
        day = week_start + timedelta(days=i)
        labels.append(PATTERN_LABELS[by_date[day]] if day in by_date else "Rest")
    return "-".join(labels)


def split_volume(slots: list[str], target_km: float, long_run_share: float) -> list[float]:
    """Distance per slot. Cross-training and strength carry none."""
    running = [i for i, t in enumerate(slots) if t not in NON_RUNNING_TYPES]
    distances = [0.0] * len(slots)
    if not running or target_km <= 0:
        return distances
    long_idx = [i for i in running if slots[i] == "long_run"]
    others = [i for i in running if slots[i] != "long_run"]
    remaining = target_km
    if long_idx:
        if not others:
            share = 1.0
        else:
            count = len(running)
            share = min(1.0, max(min(long_run_share, 1.6 / count), 1.3 / count))
        distances[long_idx[0]] = target_km * share
        remaining = target_km - distances[long_idx[0]]
    weights = {i: _SLOT_WEIGHTS.get(slots[i], 1.0) for i in others}
    weight_sum = sum(weights.values())
    for i in others:
        distances[i] = remaining * weights[i] / weight_sum
    return [round(d, 2) for d in distances]


# ---------------------------------------------------------------------------
# Week assembly
# ---------------------------------------------------------------------------

def _select_all(
    ctx: PlanContext,
    dates: list[date],
    slots: list[str],
    distances: list[float],
    phase: str,
    week_number: int,
) -> list[SelectedWorkout]:
    seen: dict[str, int] = {}
    out = []
    for day, slot, km in zip(dates, slots, distances):
        rotation = week_number + seen.get(slot, 0)
        seen[slot] = seen.get(slot, 0) + 1
        budget = ctx.preferences.budget_for(day.weekday())
        out.append(select_workout(ctx.selection, slot, phase, km, budget, rotation))
    return out


def _realised(selected: list[SelectedWorkout]) -> float:
    return round(sum(s.target.distance_km for s in selected), 2)


def generate_week(
    ctx: PlanContext,
    phase: str,
    week_number: int,
    week_in_block: int,
    block_weeks: int,
    week_start: date,
    state: VolumeState,
    tracker: IntensityTracker,
) -> WeeklyMicrocycle:
    profile = ctx.methodology
    target_km, deload = week_volume(state, phase, week_in_block, block_weeks, profile, ctx.progression_rate)

    dates = week_dates(week_start, ctx.training_days)
    long_idx = next(i for i, d in enumerate(dates) if d.weekday() == ctx.long_run_day)
    offsets = [(d - week_start).days for d in dates]
    slots = build_day_pattern(len(dates), long_idx, phase, deload, ctx, tracker, offsets)
    distances = split_volume(slots, target_km, profile.long_run_share)
    selected = _select_all(ctx, dates, slots, distances, phase, week_number)

    # Move distance lost to time clamps onto uncapped easy running
    shortfall = target_km - _realised(selected)
    if shortfall > max(0.5, 0.05 * target_km):
        absorbers = [
            i for i, s in enumerate(selected)
            if s.workout_type in RECOVERY_LOAD_TYPES and distances[i] > 0
            and s.target.distance_km >= 0.97 * distances[i]
        ]
        pool = sum(distances[i] for i in absorbers)
        if pool > 0:
            distances = [
                round(d + shortfall * d / pool, 2) if i in absorbers else d for i, d in enumerate(distances)
            ]
            selected = _select_all(ctx, dates, slots, distances, phase, week_number)

    if state.previous_km and not deload:
        cap = state.previous_km * (1.0 + MAX_WEEKLY_INCREASE)
        for _ in range(RESCALE_ATTEMPTS):
            realised = _realised(selected)
            if realised <= cap:
                break
            factor = cap / realised * 0.995
            logger.warning(
                "Week exceeds the single-week increase cap, rescaling",
                extra={"ctx_week": week_number, "ctx_realised_km": realised, "ctx_cap_km": round(cap, 2)},
            )
            distances = [round(d * factor, 2) for d in distances]
            selected = _select_all(ctx, dates, slots, distances, phase, week_number)

    workouts = []
    for day, sel in zip(dates, selected):
        workouts.append(PlannedWorkout(
            id=f"{day.isoformat()}-{sel.workout_type}",
            date=day,
            workout_type=sel.workout_type,
            name=sel.name,
            description=sel.description,
            workout=sel.workout,
            target=sel.target,
        ))
        category = intensity_category(sel.workout_type)
        tracker.sessions += 1
        if category == "hard":
            tracker.hard += 1
        elif category == "moderate":
            tracker.moderate += 1

    total_distance = _realised(selected)
    state.previous_km = total_distance
    recovery_count = sum(1 for w in workouts if w.workout_type in RECOVERY_LOAD_TYPES)

    return WeeklyMicrocycle(
        week_number=week_number,
        week_in_block=week_in_block,
        start_date=week_start,
        pattern=pattern_string(week_start, workouts),
        workouts=tuple(workouts),
        total_load=round(sum(w.target.tss for w in workouts), 1),
        total_distance_km=total_distance,
        total_duration_min=round(sum(w.target.duration_min for w in workouts), 1),
        recovery_ratio=round(recovery_count / len(workouts), 3) if workouts else 0.0,
        is_deload=deload,
        progression_factor=round(target_km / state.base_km, 3),
        target_volume_km=target_km,
    )


def generate_block_microcycles(
    block: TrainingBlock,
    ctx: PlanContext,
    first_week_number: int,
    state: VolumeState,
    tracker: IntensityTracker,
) -> TrainingBlock:
    """Copy of ``block`` with one microcycle per week."""
    weeks = []
    for i in range(block.weeks):
        weeks.append(generate_week(
            ctx,
            block.phase,
            week_number=first_week_number + i,
            week_in_block=i,
            block_weeks=block.weeks,
            week_start=block.start_date + timedelta(days=7 * i),
            state=state,
            tracker=tracker,
        ))
    return TrainingBlock(
        phase=block.phase,
        start_date=block.start_date,
        end_date=block.end_date,
        weeks=block.weeks,
        focus_areas=block.focus_areas,
        methodology_focus=block.methodology_focus,
        microcycles=tuple(weeks),
    )
