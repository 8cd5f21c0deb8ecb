"""Turn a scheduled slot into a concrete, fully targeted workout.

For a (type, phase, distance budget, time budget) slot:
1. pick a template suited to the phase, rotating by week; fall back down the
   intensity ladder when the phase has none for the type
2. convert the distance budget to minutes through the template's
   segment-weighted pace and clamp to the type maximum and the day's budget
3. scale segments proportionally at 0.1 min resolution
4. resolve pace (threshold-relative, environment adjusted), heart-rate and
   cadence targets per segment
5. compute target metrics: distance, TSS, session-RPE load, intensity and
   recovery hours
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from periodizer.models import NON_RUNNING_TYPES, FitnessProfile, Segment, TargetMetrics, Workout
from periodizer.services.environment import adjust_pace
from periodizer.services.methodology import RECOVERY_MULTIPLIERS, MethodologyProfile
from periodizer.services.workout_library import (
    DEFAULT_TEMPLATE_KEY,
    RACE_PACE_ZONE,
    TEMPLATES,
    WORKOUT_DURATIONS,
    SegmentSpec,
    WorkoutTemplate,
    find_template,
)
from periodizer.services.zones import ZONES, cadence_for_zone, centre_pace, heart_rate_range, pace_range, zone_for_intensity

logger = logging.getLogger(__name__)

MIN_WORKOUT_MINUTES = 15.0


@dataclass(frozen=True)
class SelectionContext:
    """Athlete-level inputs shared by every slot of a plan."""
    fitness: FitnessProfile
    methodology: MethodologyProfile
    environment_factor: float = 1.0
    race_pace_sec_per_km: Optional[float] = None


@dataclass(frozen=True)
class SelectedWorkout:
    workout_type: str
    name: str
    description: str
    workout: Workout
    target: TargetMetrics


def _race_pace(ctx: SelectionContext) -> float:
    return adjust_pace(ctx.race_pace_sec_per_km or ctx.fitness.threshold_pace_sec_per_km, ctx.environment_factor)


def _segment_pace(zone: str, ctx: SelectionContext) -> float:
    """Nominal sec/km for a segment zone."""
    if zone == RACE_PACE_ZONE:
        return _race_pace(ctx)
    return centre_pace(zone, ctx.fitness.threshold_pace_sec_per_km, ctx.environment_factor)


def _segment_intensity(zone: str, ctx: SelectionContext) -> float:
    if zone == RACE_PACE_ZONE:
        # % of threshold speed, measured on unadjusted paces
        race = ctx.race_pace_sec_per_km or ctx.fitness.threshold_pace_sec_per_km
        return round(100.0 * ctx.fitness.threshold_pace_sec_per_km / race, 1)
    return ZONES[zone].intensity


def scale_segments(specs: tuple[SegmentSpec, ...], total_minutes: float) -> list[float]:
    """Proportional durations at 0.1 min resolution summing exactly to the total."""
    total_tenths = max(len(specs), int(round(total_minutes * 10)))
    typical = sum(s.minutes for s in specs)
    raw = [s.minutes * total_tenths / typical for s in specs]
    tenths = [max(1, int(r)) for r in raw]
    leftover = total_tenths - sum(tenths)
    order = sorted(range(len(specs)), key=lambda i: (-(raw[i] - int(raw[i])), i))
    while leftover > 0:
        for i in order:
            if leftover == 0:
                break
            tenths[i] += 1
            leftover -= 1
    while leftover < 0:
        i = max(range(len(tenths)), key=lambda j: (tenths[j], -j))
        tenths[i] -= 1
        leftover += 1
    return [t / 10.0 for t in tenths]


def _duration_for_distance(template: WorkoutTemplate, distance_km: float, ctx: SelectionContext) -> float:
    typical = template.typical_minutes
    km_per_min = sum((s.minutes / typical) * 60.0 / _segment_pace(s.zone, ctx) for s in template.segments)
    return distance_km / km_per_min


def _resolve_template(workout_type: str, phase: str, rotation: int) -> tuple[WorkoutTemplate, str]:
    template, resolved = find_template(workout_type, phase, rotation)
    if template is None:
        template, resolved = TEMPLATES[DEFAULT_TEMPLATE_KEY], "easy"
    if resolved != workout_type:
        logger.warning(
            "No template for workout type in phase, using lower intensity",
            extra={"ctx_requested": workout_type, "ctx_phase": phase, "ctx_resolved": resolved},
        )
    return template, resolved


def _target_duration(
    template: WorkoutTemplate,
    workout_type: str,
    distance_km: float,
    time_budget_min: float,
    ctx: SelectionContext,
) -> float:
    _, type_max, typical = WORKOUT_DURATIONS[workout_type]
    if workout_type in NON_RUNNING_TYPES or distance_km <= 0:
        duration = float(typical)
    else:
        duration = _duration_for_distance(template, distance_km, ctx)

    if duration > type_max:
        logger.warning(
            "Workout longer than type maximum, clamping",
            extra={"ctx_type": workout_type, "ctx_minutes": round(duration, 1), "ctx_max": type_max},
        )
        duration = float(type_max)
    if duration > time_budget_min:
        logger.warning(
            "Workout exceeds the day's time budget, clamping",
            extra={"ctx_type": workout_type, "ctx_minutes": round(duration, 1), "ctx_budget": time_budget_min},
        )
        duration = float(time_budget_min)
    # The floor never pushes a workout past the day's budget
    return max(min(MIN_WORKOUT_MINUTES, float(time_budget_min)), duration)


def _build_segment(spec: SegmentSpec, minutes: float, running: bool, ctx: SelectionContext) -> Segment:
    intensity = _segment_intensity(spec.zone, ctx)
    zone_key = spec.zone if spec.zone in ZONES else zone_for_intensity(intensity).key
    pace = None
    if running:
        if spec.zone == RACE_PACE_ZONE:
            centre = _race_pace(ctx)
            pace = (int(round(centre * 0.98)), int(round(centre * 1.02)))
        else:
            pace = pace_range(spec.zone, ctx.fitness.threshold_pace_sec_per_km, ctx.environment_factor)
    return Segment(
        duration_min=minutes,
        intensity=intensity,
        zone=zone_key,
        description=spec.description,
        role=spec.role,
        pace_range_sec_per_km=pace,
        heart_rate_range=heart_rate_range(zone_key, ctx.fitness.max_heart_rate, ctx.fitness.resting_heart_rate),
        cadence_spm=cadence_for_zone(zone_key) if running else None,
    )


def _rpe_mid(zone_key: str) -> float:
    lo, hi = ZONES[zone_key].rpe
    return (lo + hi) / 2.0


def compute_targets(
    workout_type: str,
    segments: list[Segment],
    specs: tuple[SegmentSpec, ...],
    ctx: SelectionContext,
) -> TargetMetrics:
    duration = round(sum(s.duration_min for s in segments), 1)
    running = workout_type not in NON_RUNNING_TYPES
    distance = 0.0
    if running:
        distance = sum(seg.duration_min * 60.0 / _segment_pace(spec.zone, ctx) for seg, spec in zip(segments, specs))
    tss = sum(s.duration_min * (s.intensity / 100.0) ** 2 * 100.0 / 60.0 for s in segments)
    load = sum(s.duration_min * _rpe_mid(s.zone) for s in segments)
    intensity = sum(s.duration_min * s.intensity for s in segments) / duration if duration else 0.0
    recovery = (
        RECOVERY_MULTIPLIERS.get(workout_type, 1.0)
        * 12.0
        * max(0.5, duration / 60.0)
        * (0.5 + ctx.methodology.recovery_emphasis)
    )
    return TargetMetrics(
        duration_min=duration,
        distance_km=round(distance, 2),
        tss=round(tss, 1),
        load=round(load, 1),
        intensity=round(intensity, 1),
        recovery_hours=round(recovery, 1),
    )


def select_workout(
    ctx: SelectionContext,
    workout_type: str,
    phase: str,
    distance_km: float,
    time_budget_min: float,
    rotation: int = 0,
) -> SelectedWorkout:
    """Concrete workout for one slot. Never raises for scheduling reasons."""
    template, resolved = _resolve_template(workout_type, phase, rotation)
    duration = _target_duration(template, resolved, distance_km, time_budget_min, ctx)
    running = resolved not in NON_RUNNING_TYPES

    minutes = scale_segments(template.segments, duration)
    segments = [_build_segment(spec, m, running, ctx) for spec, m in zip(template.segments, minutes)]
    target = compute_targets(resolved, segments, template.segments, ctx)

    workout = Workout(
        workout_type=resolved,
        template_key=template.key,
        primary_zone=template.primary_zone,
        segments=tuple(segments),
        adaptation_target=template.adaptation_target,
        estimated_tss=target.tss,
        recovery_hours=target.recovery_hours,
    )
    if running:
        description = f"{template.name}: {target.distance_km:.1f} km in about {target.duration_min:.0f} min"
    else:
        description = f"{template.name}: {target.duration_min:.0f} min"
    return SelectedWorkout(
        workout_type=resolved,
        name=template.name,
        description=description,
        workout=workout,
        target=target,
    )
