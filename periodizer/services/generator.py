"""Plan generation pipeline.

validate config -> methodology -> fitness profile -> phase allocation ->
dated blocks -> weekly microcycles -> assembled plan.

The pipeline never reads the wall clock and uses no randomness; the same
inputs always produce plans that compare equal.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Union

from periodizer.cache_utils import CalculationCache
from periodizer.config import Settings, get_settings
from periodizer.logging_config import plan_context
from periodizer.models import FitnessMetrics, RunRecord, TrainingPlan
from periodizer.services.environment import environment_factor
from periodizer.services.fitness import analyze_weekly_patterns, assess_fitness, compute_fitness_metrics
from periodizer.services.methodology import MethodologyProfile, get_methodology, validate_methodology
from periodizer.services.microcycle import (
    IntensityTracker,
    PlanContext,
    experience_level,
    generate_block_microcycles,
    initial_volume_state,
    long_run_weekday,
    progression_rate,
    training_days,
)
from periodizer.services.periodization import allocate_phase_weeks, build_blocks, get_goal, plan_dates
from periodizer.services.plan_assembler import assemble_plan, intensity_deviation, is_calibrated
from periodizer.services.race_predictor import race_pace_sec_per_km
from periodizer.services.vdot import get_paces
from periodizer.services.workout_selector import SelectionContext
from periodizer.validators import PlanConfig, validate_plan_config

logger = logging.getLogger(__name__)


def _goal_race_pace(vdot: float, goal: str) -> float:
    pace = race_pace_sec_per_km(vdot, goal)
    if pace is None:
        # No race distance: marathon pace stands in for "race pace" work
        return float(get_paces(vdot).marathon)
    return pace


def generate_plan(
    config: Union[PlanConfig, dict],
    runs: Optional[Iterable[RunRecord]] = None,
    *,
    cache: Optional[CalculationCache] = None,
    settings: Optional[Settings] = None,
    profile: Optional[MethodologyProfile] = None,
) -> TrainingPlan:
    """Generate a complete training plan.

    ``profile`` supplies a caller-built methodology (see
    ``customize_methodology``) instead of resolving ``config.methodology``.
    Only ConfigurationError is raised; scheduling conflicts degrade with a
    logged warning.
    """
    cfg = validate_plan_config(config)
    settings = settings or get_settings()
    methodology = validate_methodology(profile) if profile is not None else get_methodology(cfg.methodology)
    goal = get_goal(cfg.goal)
    prefs = cfg.preferences

    days = training_days(prefs, settings.min_session_minutes)
    fitness = assess_fitness(runs, cfg.fitness, cache=cache)
    total_weeks, end_date = plan_dates(cfg.start_date, cfg.target_date, cfg.goal)
    allocations = allocate_phase_weeks(total_weeks, cfg.goal, methodology, fitness.injury_history)
    blocks = build_blocks(cfg.start_date, allocations, methodology)

    ctx = PlanContext(
        methodology=methodology,
        goal=goal,
        preferences=prefs,
        selection=SelectionContext(
            fitness=fitness,
            methodology=methodology,
            environment_factor=environment_factor(cfg.environment),
            race_pace_sec_per_km=_goal_race_pace(fitness.vdot, cfg.goal),
        ),
        training_days=days,
        long_run_day=long_run_weekday(days, prefs.long_run_day),
        progression_rate=progression_rate(experience_level(prefs.experience_level, fitness.training_age_years)),
    )
    state = initial_volume_state(fitness.weekly_km, goal)
    tracker = IntensityTracker()

    populated = []
    week_number = 1
    for block in blocks:
        populated.append(generate_block_microcycles(block, ctx, week_number, state, tracker))
        week_number += block.weeks

    name = cfg.name or f"{goal.label} ({methodology.name})"
    plan = assemble_plan(name, cfg.goal, methodology, cfg.start_date, end_date, cfg, fitness, populated)
    if not is_calibrated(plan.summary, settings.intensity_tolerance_pct):
        logger.warning(
            "Plan intensity distribution outside tolerance",
            extra=plan_context(
                cfg.goal,
                methodology.key,
                deviation_pct=intensity_deviation(plan.summary),
                tolerance_pct=settings.intensity_tolerance_pct,
            ),
        )
    logger.info(
        "Generated training plan",
        extra=plan_context(
            cfg.goal,
            methodology.key,
            weeks=total_weeks,
            workouts=plan.summary.total_workouts,
            phases=[f"{b.phase}:{b.weeks}" for b in plan.blocks],
        ),
    )
    return plan


def from_run_history(
    runs: Iterable[RunRecord],
    goal: str,
    start_date: date,
    target_date: Optional[date] = None,
    methodology: str = "custom",
    *,
    cache: Optional[CalculationCache] = None,
    settings: Optional[Settings] = None,
) -> TrainingPlan:
    """Plan whose training days and long-run day follow the athlete's history."""
    runs = list(runs)
    patterns = analyze_weekly_patterns(runs)
    preferences: dict = {}
    if patterns.optimal_days:
        preferences["available_days"] = patterns.optimal_days
        if patterns.typical_long_run_day in patterns.optimal_days:
            preferences["long_run_day"] = patterns.typical_long_run_day
    else:
        logger.debug("No run history patterns, using default training days")

    config = {
        "goal": goal,
        "start_date": start_date,
        "target_date": target_date,
        "methodology": methodology,
        "preferences": preferences,
    }
    return generate_plan(config, runs, cache=cache, settings=settings)


def fitness_metrics(
    runs: Iterable[RunRecord],
    resting_hr: Optional[int] = None,
    hrv: Optional[float] = None,
    as_of: Optional[date] = None,
) -> FitnessMetrics:
    """Diagnostic fitness metrics for reporting; not used by generation."""
    return compute_fitness_metrics(runs, resting_hr=resting_hr, hrv=hrv, as_of=as_of)
