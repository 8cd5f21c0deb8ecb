"""Macrocycle planning: goal catalog, phase selection and week allocation.

Week counts follow the methodology's optimal phase lengths weighted by the
goal (short races get short bases and long builds, marathons the opposite),
then are clamped to each phase's (min, max) bounds. Shortfalls compress the
lowest-priority phases first; plans too short for every phase minimum are
scaled down uniformly instead of failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from periodizer.models import TrainingBlock
from periodizer.services.methodology import MethodologyProfile
from periodizer.validators import MAX_PLAN_WEEKS, ConfigurationError

logger = logging.getLogger(__name__)

PHASE_FOCUS_AREAS: dict[str, tuple[str, ...]] = {
    "base": ("Aerobic capacity", "Running economy", "Injury prevention"),
    "build": ("Lactate threshold", "VO2max development", "Race pace familiarity"),
    "peak": ("Race-specific fitness", "Speed endurance", "Mental preparation"),
    "taper": ("Recovery", "Maintenance", "Race readiness"),
    "recovery": ("Active recovery", "Reflection", "Planning"),
}

# Compression order when weeks run short, and growth order when they are left over
_COMPRESS_ORDER = ["recovery", "peak", "base", "build", "taper"]
_EXPAND_ORDER = ["base", "build", "peak"]
# Phases dropped first when a plan has fewer weeks than phases
_DROP_ORDER = ["recovery", "peak", "build", "taper"]


@dataclass(frozen=True)
class GoalSpec:
    key: str
    label: str
    race_distance_m: Optional[float]
    default_weeks: int
    volume_ceiling: float  # peak weekly volume as a multiple of the starting volume
    taper_max_weeks: int
    phase_weights: dict[str, float]

    @property
    def is_race(self) -> bool:
        return self.race_distance_m is not None


_SHORT_RACE_WEIGHTS = {"base": 0.7, "build": 1.2, "peak": 1.0, "taper": 0.5}

GOALS: dict[str, GoalSpec] = {
    "first_5k": GoalSpec("first_5k", "First 5K", 5000.0, 8, 1.4, 1, _SHORT_RACE_WEIGHTS),
    "improve_5k": GoalSpec("improve_5k", "5K Improvement", 5000.0, 10, 1.4, 1, _SHORT_RACE_WEIGHTS),
    "first_10k": GoalSpec("first_10k", "First 10K", 10000.0, 10, 1.5, 1, _SHORT_RACE_WEIGHTS),
    "improve_10k": GoalSpec("improve_10k", "10K Improvement", 10000.0, 12, 1.5, 1, _SHORT_RACE_WEIGHTS),
    "half_marathon": GoalSpec("half_marathon", "Half Marathon", 21097.5, 16, 1.7, 2, {}),
    "marathon": GoalSpec("marathon", "Marathon", 42195.0, 18, 2.0, 3, {"base": 1.1, "taper": 1.25}),
    "ultra": GoalSpec("ultra", "Ultra", 50000.0, 24, 2.2, 3, {"base": 1.3, "taper": 1.25}),
    "general_fitness": GoalSpec("general_fitness", "General Fitness", None, 12, 1.3, 0, {}),
}


@dataclass(frozen=True)
class PhaseAllocation:
    phase: str
    weeks: int


def get_goal(goal: str) -> GoalSpec:
    spec = GOALS.get(goal)
    if spec is None:
        raise ConfigurationError(f"unknown goal {goal!r}")
    return spec


def plan_dates(start: date, target_date: Optional[date], goal: str) -> tuple[int, date]:
    """(total weeks, last plan day). Without a target date the goal default applies."""
    if target_date is None:
        weeks = get_goal(goal).default_weeks
    else:
        if target_date <= start:
            raise ConfigurationError("target_date must be after start_date")
        weeks = (target_date - start).days // 7
        if weeks < 1:
            raise ConfigurationError("plan must span at least one week")
        if weeks > MAX_PLAN_WEEKS:
            raise ConfigurationError(f"plan must not exceed {MAX_PLAN_WEEKS} weeks")
    return weeks, start + timedelta(days=7 * weeks - 1)


def select_phases(total_weeks: int, goal: str, injury_history: tuple[str, ...] = ()) -> list[str]:
    """Ordered phases that apply to a plan of this length and goal."""
    spec = get_goal(goal)
    phases = ["base"]
    if total_weeks >= 3:
        phases.append("build")
    if spec.is_race and total_weeks >= 8:
        phases.append("peak")
    if spec.is_race and total_weeks >= 2:
        phases.append("taper")

    if injury_history and total_weeks >= 8:
        phases.insert(0, "recovery")
    elif total_weeks >= 20:
        phases.insert(phases.index("build") + 1, "recovery")
    return phases


def _largest_remainder(total: int, weights: dict[str, float], order: list[str]) -> dict[str, int]:
    weight_sum = sum(weights.values())
    raw = {p: total * weights[p] / weight_sum for p in order}
    counts = {p: int(raw[p]) for p in order}
    leftover = total - sum(counts.values())
    by_fraction = sorted(order, key=lambda p: (-(raw[p] - counts[p]), order.index(p)))
    for p in by_fraction[:leftover]:
        counts[p] += 1
    return counts


def _scale_down(total: int, phases: list[str], bounds: dict[str, tuple[int, int]]) -> dict[str, int]:
    phases = list(phases)
    for phase in _DROP_ORDER:
        if len(phases) <= total:
            break
        if phase in phases:
            phases.remove(phase)
    # every remaining phase keeps one week, the rest follows the minimums
    counts = {p: 1 for p in phases}
    extra = total - len(phases)
    if extra > 0:
        weights = {p: float(bounds[p][0]) for p in phases}
        for p, n in _largest_remainder(extra, weights, phases).items():
            counts[p] += n
    return counts


def allocate_phase_weeks(
    total_weeks: int,
    goal: str,
    profile: MethodologyProfile,
    injury_history: tuple[str, ...] = (),
) -> tuple[PhaseAllocation, ...]:
    """Week count per phase, in order, summing exactly to ``total_weeks``."""
    spec = get_goal(goal)
    phases = select_phases(total_weeks, goal, injury_history)
    bounds: dict[str, tuple[int, int]] = {}
    for p in phases:
        target = profile.phases[p]
        hi = target.max_weeks
        if p == "taper":
            hi = max(target.min_weeks, min(hi, spec.taper_max_weeks))
        bounds[p] = (target.min_weeks, hi)

    if total_weeks < sum(lo for lo, _ in bounds.values()):
        counts = _scale_down(total_weeks, phases, bounds)
        logger.warning(
            "Plan shorter than phase minimums, scaling phases uniformly",
            extra={"ctx_total_weeks": total_weeks, "ctx_phases": {p: counts[p] for p in counts}},
        )
        return tuple(PhaseAllocation(p, counts[p]) for p in phases if p in counts)

    weights = {p: profile.phases[p].optimal_weeks * spec.phase_weights.get(p, 1.0) for p in phases}
    counts = _largest_remainder(total_weeks, weights, phases)
    for p in phases:
        lo, hi = bounds[p]
        counts[p] = max(lo, min(hi, counts[p]))

    diff = total_weeks - sum(counts.values())
    compressed = diff < 0
    while diff < 0:
        for p in _COMPRESS_ORDER:
            if p in counts and counts[p] > bounds[p][0]:
                counts[p] -= 1
                diff += 1
                break
        else:
            break
    if compressed:
        logger.warning(
            "Compressed phases to fit the available weeks",
            extra={"ctx_total_weeks": total_weeks, "ctx_phases": dict(counts)},
        )

    while diff > 0:
        grown = False
        for p in _EXPAND_ORDER:
            if diff > 0 and p in counts and counts[p] < bounds[p][1]:
                counts[p] += 1
                diff -= 1
                grown = True
        if not grown:
            counts["base"] += diff
            logger.warning(
                "Extended base beyond its maximum to fill the plan",
                extra={"ctx_total_weeks": total_weeks, "ctx_base_weeks": counts["base"]},
            )
            diff = 0

    return tuple(PhaseAllocation(p, counts[p]) for p in phases)


def build_blocks(
    start: date,
    allocations: tuple[PhaseAllocation, ...],
    profile: MethodologyProfile,
) -> list[TrainingBlock]:
    """Dated blocks (without microcycles) laid end to end from ``start``."""
    blocks = []
    cursor = start
    for alloc in allocations:
        if alloc.weeks <= 0:
            continue
        end = cursor + timedelta(days=7 * alloc.weeks - 1)
        blocks.append(TrainingBlock(
            phase=alloc.phase,
            start_date=cursor,
            end_date=end,
            weeks=alloc.weeks,
            focus_areas=PHASE_FOCUS_AREAS[alloc.phase] + profile.phases[alloc.phase].focus,
            methodology_focus=profile.phase_focus.get(alloc.phase, alloc.phase),
        ))
        cursor = end + timedelta(days=1)
    return blocks
