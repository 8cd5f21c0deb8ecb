"""Fold populated blocks into the final TrainingPlan and its summary."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from periodizer.models import (
    FitnessProfile,
    IntensityDistribution,
    PhaseSummary,
    PlannedWorkout,
    PlanSummary,
    TrainingBlock,
    TrainingPlan,
)
from periodizer.services.methodology import MethodologyProfile


def intensity_distribution(workouts: Iterable[PlannedWorkout]) -> IntensityDistribution:
    """Easy / moderate / hard share of workout counts, in percent."""
    counts = {"easy": 0, "moderate": 0, "hard": 0}
    for w in workouts:
        counts[w.category] += 1
    total = sum(counts.values())
    if total == 0:
        return IntensityDistribution(0.0, 0.0, 0.0)
    return IntensityDistribution(
        easy=round(100.0 * counts["easy"] / total, 1),
        moderate=round(100.0 * counts["moderate"] / total, 1),
        hard=round(100.0 * counts["hard"] / total, 1),
    )


def _block_workouts(block: TrainingBlock) -> list[PlannedWorkout]:
    return [w for week in block.microcycles for w in week.workouts]


def summarize(
    blocks: tuple[TrainingBlock, ...],
    workouts: tuple[PlannedWorkout, ...],
    profile: MethodologyProfile,
) -> PlanSummary:
    weeks = [week for block in blocks for week in block.microcycles]
    total_weeks = sum(block.weeks for block in blocks)
    weekly_km = [week.total_distance_km for week in weeks]
    total_distance = round(sum(weekly_km), 1)

    phases = tuple(
        PhaseSummary(
            phase=block.phase,
            weeks=block.weeks,
            focus=block.focus_areas,
            volume_progression=tuple(week.total_distance_km for week in block.microcycles),
            intensity_distribution=intensity_distribution(_block_workouts(block)),
        )
        for block in blocks
    )

    return PlanSummary(
        total_weeks=total_weeks,
        total_workouts=len(workouts),
        total_distance_km=total_distance,
        total_duration_min=round(sum(w.target.duration_min for w in workouts), 1),
        total_load=round(sum(w.target.tss for w in workouts), 1),
        peak_weekly_distance_km=max(weekly_km, default=0.0),
        average_weekly_distance_km=round(total_distance / total_weeks, 1) if total_weeks else 0.0,
        key_workouts=sum(1 for w in workouts if w.category == "hard"),
        recovery_days=sum(1 for w in workouts if w.workout_type == "recovery"),
        rest_days=total_weeks * 7 - len({w.date for w in workouts}),
        phases=phases,
        intensity_distribution=intensity_distribution(workouts),
        target_distribution=profile.intensity,
    )


def assemble_plan(
    name: str,
    goal: str,
    profile: MethodologyProfile,
    start_date: date,
    end_date: date,
    config,
    fitness: FitnessProfile,
    blocks: list[TrainingBlock],
) -> TrainingPlan:
    blocks_t = tuple(blocks)
    workouts = tuple(sorted((w for b in blocks_t for w in _block_workouts(b)), key=lambda w: w.date))
    return TrainingPlan(
        name=name,
        goal=goal,
        methodology=profile.key,
        start_date=start_date,
        end_date=end_date,
        config=config,
        fitness=fitness,
        blocks=blocks_t,
        workouts=workouts,
        summary=summarize(blocks_t, workouts, profile),
    )


def intensity_deviation(summary: PlanSummary) -> float:
    """Largest gap in percentage points between realised and target distribution."""
    actual = summary.intensity_distribution.as_dict()
    target = summary.target_distribution.as_dict()
    return round(max(abs(actual[k] - target[k]) for k in actual), 1)


def is_calibrated(summary: PlanSummary, tolerance_pct: float = 10.0) -> bool:
    return intensity_deviation(summary) <= tolerance_pct
