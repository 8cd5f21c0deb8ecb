"""Plan and fitness data model.

Every entity is a frozen dataclass and every collection a tuple, so two plans
built from the same inputs compare equal with ``==``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

PHASES = ("base", "build", "peak", "taper", "recovery")

GOALS = (
    "first_5k",
    "improve_5k",
    "first_10k",
    "improve_10k",
    "half_marathon",
    "marathon",
    "ultra",
    "general_fitness",
)

WORKOUT_TYPES = (
    "recovery",
    "easy",
    "steady",
    "tempo",
    "threshold",
    "vo2max",
    "speed",
    "hill_repeats",
    "fartlek",
    "progression",
    "long_run",
    "race_pace",
    "time_trial",
    "cross_training",
    "strength",
)

EASY_TYPES = frozenset({"recovery", "easy", "long_run", "cross_training", "strength"})
MODERATE_TYPES = frozenset({"steady", "tempo", "progression", "fartlek", "race_pace"})
HARD_TYPES = frozenset({"threshold", "vo2max", "speed", "hill_repeats", "time_trial"})
RECOVERY_LOAD_TYPES = frozenset({"recovery", "easy", "long_run"})
NON_RUNNING_TYPES = frozenset({"cross_training", "strength"})


def intensity_category(workout_type: str) -> str:
    """Map a workout type to its easy / moderate / hard bucket."""
    if workout_type in HARD_TYPES:
        return "hard"
    if workout_type in MODERATE_TYPES:
        return "moderate"
    return "easy"


@dataclass(frozen=True)
class RunRecord:
    """One completed run supplied by the caller."""
    date: date
    distance_km: float
    duration_min: float
    avg_pace_min_per_km: Optional[float] = None
    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    elevation_gain_m: Optional[float] = None
    effort_level: Optional[int] = None  # 1-10
    temperature_c: Optional[float] = None
    is_race: bool = False

    @property
    def pace_min_per_km(self) -> Optional[float]:
        if self.avg_pace_min_per_km and self.avg_pace_min_per_km > 0:
            return float(self.avg_pace_min_per_km)
        if self.distance_km > 0 and self.duration_min > 0:
            return self.duration_min / self.distance_km
        return None

    @property
    def is_valid(self) -> bool:
        return self.distance_km > 0 and self.duration_min > 0


@dataclass(frozen=True)
class FitnessProfile:
    """Athlete fitness snapshot used for one generation run."""
    vdot: float
    critical_speed_kmh: float
    running_economy: float
    threshold_pace_sec_per_km: float
    weekly_km: float
    longest_recent_run_km: float
    training_age_years: float = 1.0
    injury_history: tuple[str, ...] = ()
    recovery_score: float = 70.0
    max_heart_rate: Optional[int] = None
    resting_heart_rate: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("vdot", "critical_speed_kmh", "running_economy", "threshold_pace_sec_per_km"):
            if not getattr(self, name) or getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.weekly_km < 0 or self.longest_recent_run_km < 0:
            raise ValueError("volume fields must not be negative")
        if not 0 <= self.recovery_score <= 100:
            raise ValueError("recovery_score must be within 0..100")


@dataclass(frozen=True)
class TrainingLoad:
    acute: float
    chronic: float
    ratio: Optional[float]  # None when chronic load is zero
    trend: str  # increasing / stable / decreasing
    risk_band: str
    recommendation: str


@dataclass(frozen=True)
class WeeklyPatterns:
    avg_weekly_km: float
    max_weekly_km: float
    avg_runs_per_week: float
    consistency_score: int
    optimal_days: tuple[int, ...]  # Monday = 0
    typical_long_run_day: Optional[int]


@dataclass(frozen=True)
class FitnessMetrics:
    vdot: float
    critical_speed_kmh: float
    running_economy: float
    threshold_pace_sec_per_km: float
    training_load: TrainingLoad
    injury_risk: int
    recovery_score: float


@dataclass(frozen=True)
class IntensityDistribution:
    """Easy / moderate / hard percentages."""
    easy: float
    moderate: float
    hard: float

    def as_dict(self) -> dict[str, float]:
        return {"easy": self.easy, "moderate": self.moderate, "hard": self.hard}


@dataclass(frozen=True)
class Zone:
    """Training zone expressed relative to threshold speed and max heart rate."""
    key: str
    name: str
    intensity: float  # nominal % effort used for segment intensity
    speed_pct: tuple[float, float]  # % of threshold speed (slow, fast)
    hr_pct: tuple[float, float]  # % of max HR / heart-rate reserve
    rpe: tuple[int, int]


@dataclass(frozen=True)
class Segment:
    duration_min: float
    intensity: float
    zone: str
    description: str
    role: str  # warmup / work / recovery / cooldown / steady
    pace_range_sec_per_km: Optional[tuple[int, int]] = None  # (fast, slow)
    heart_rate_range: Optional[tuple[int, int]] = None
    cadence_spm: Optional[int] = None


@dataclass(frozen=True)
class Workout:
    workout_type: str
    template_key: str
    primary_zone: str
    segments: tuple[Segment, ...]
    adaptation_target: str
    estimated_tss: float
    recovery_hours: float

    @property
    def duration_min(self) -> float:
        return round(sum(s.duration_min for s in self.segments), 1)


@dataclass(frozen=True)
class TargetMetrics:
    duration_min: float
    distance_km: float
    tss: float
    load: float
    intensity: float
    recovery_hours: float


@dataclass(frozen=True)
class PlannedWorkout:
    id: str
    date: date
    workout_type: str
    name: str
    description: str
    workout: Workout
    target: TargetMetrics

    @property
    def category(self) -> str:
        return intensity_category(self.workout_type)


@dataclass(frozen=True)
class WeeklyMicrocycle:
    week_number: int
    week_in_block: int
    start_date: date
    pattern: str
    workouts: tuple[PlannedWorkout, ...]
    total_load: float
    total_distance_km: float
    total_duration_min: float
    recovery_ratio: float
    is_deload: bool
    progression_factor: float
    target_volume_km: float


@dataclass(frozen=True)
class TrainingBlock:
    phase: str
    start_date: date
    end_date: date  # last day of the block
    weeks: int
    focus_areas: tuple[str, ...]
    methodology_focus: str
    microcycles: tuple[WeeklyMicrocycle, ...] = ()


@dataclass(frozen=True)
class PhaseSummary:
    phase: str
    weeks: int
    focus: tuple[str, ...]
    volume_progression: tuple[float, ...]
    intensity_distribution: IntensityDistribution


@dataclass(frozen=True)
class PlanSummary:
    total_weeks: int
    total_workouts: int
    total_distance_km: float
    total_duration_min: float
    total_load: float
    peak_weekly_distance_km: float
    average_weekly_distance_km: float
    key_workouts: int
    recovery_days: int
    rest_days: int
    phases: tuple[PhaseSummary, ...]
    intensity_distribution: IntensityDistribution
    target_distribution: IntensityDistribution


@dataclass(frozen=True)
class TrainingPlan:
    name: str
    goal: str
    methodology: str
    start_date: date
    end_date: date
    config: Any  # validated PlanConfig
    fitness: FitnessProfile
    blocks: tuple[TrainingBlock, ...]
    workouts: tuple[PlannedWorkout, ...]
    summary: PlanSummary
