"""Workout template library.

Templates describe a workout at its typical length: ordered segments with a
zone, a role and a description. The selector scales them to the day's
volume. Each template lists the phases it suits so that, for example, a
peak-phase VO2max slot gets an interval session rather than a hill session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from periodizer.models import PHASES, Workout

ALL_PHASES = frozenset(PHASES)
ALLOWED_ROLES = {"warmup", "work", "recovery", "cooldown", "steady"}

# Zone token resolved from the predicted goal race pace instead of threshold pace
RACE_PACE_ZONE = "race_pace"

# Highest to lowest intensity; fallback walks down this ladder
INTENSITY_LADDER = [
    "time_trial",
    "speed",
    "vo2max",
    "hill_repeats",
    "threshold",
    "race_pace",
    "tempo",
    "fartlek",
    "progression",
    "steady",
    "long_run",
    "easy",
    "recovery",
]

# Minutes (min, max, typical) per workout type
WORKOUT_DURATIONS: dict[str, tuple[int, int, int]] = {
    "recovery": (20, 40, 30),
    "easy": (30, 90, 60),
    "steady": (40, 80, 60),
    "tempo": (20, 60, 40),
    "threshold": (20, 40, 30),
    "vo2max": (30, 60, 45),
    "speed": (30, 60, 45),
    "hill_repeats": (30, 60, 45),
    "fartlek": (30, 60, 45),
    "progression": (40, 80, 60),
    "long_run": (60, 180, 120),
    "race_pace": (30, 75, 50),
    "time_trial": (30, 60, 45),
    "cross_training": (30, 60, 45),
    "strength": (20, 45, 30),
}


@dataclass(frozen=True)
class SegmentSpec:
    minutes: float
    zone: str
    description: str
    role: str


@dataclass(frozen=True)
class WorkoutTemplate:
    key: str
    workout_type: str
    name: str
    primary_zone: str
    segments: tuple[SegmentSpec, ...]
    adaptation_target: str
    phases: frozenset[str] = ALL_PHASES

    @property
    def typical_minutes(self) -> float:
        return sum(s.minutes for s in self.segments)


def _wu(minutes: float, text: str = "Warm-up") -> SegmentSpec:
    return SegmentSpec(minutes, "easy", text, "warmup")


def _cd(minutes: float) -> SegmentSpec:
    return SegmentSpec(minutes, "recovery", "Cool-down", "cooldown")


def _reps(count: int, work: SegmentSpec, rest: SegmentSpec) -> tuple[SegmentSpec, ...]:
    out: list[SegmentSpec] = []
    for i in range(count):
        out.append(work)
        if i < count - 1:
            out.append(rest)
    return tuple(out)


_TEMPLATE_LIST = [
    WorkoutTemplate(
        "RECOVERY_JOG", "recovery", "Recovery Jog", "recovery",
        (SegmentSpec(30, "recovery", "Very easy jog, focus on form", "steady"),),
        "Active recovery and blood flow",
    ),
    WorkoutTemplate(
        "EASY_AEROBIC", "easy", "Easy Aerobic Run", "easy",
        (SegmentSpec(60, "easy", "Conversational pace, nose breathing", "steady"),),
        "Aerobic base, fat oxidation, capillarization",
    ),
    WorkoutTemplate(
        "LONG_RUN", "long_run", "Long Run", "easy",
        (SegmentSpec(120, "easy", "Steady aerobic effort, maintain form", "steady"),),
        "Aerobic endurance, glycogen storage, mental resilience",
    ),
    WorkoutTemplate(
        "LONG_RUN_FAST_FINISH", "long_run", "Long Run with Steady Finish", "easy",
        (
            SegmentSpec(100, "easy", "Relaxed aerobic running", "steady"),
            SegmentSpec(20, "steady", "Finish at steady effort", "steady"),
        ),
        "Aerobic endurance and fatigue resistance",
        frozenset({"build", "peak"}),
    ),
    WorkoutTemplate(
        "STEADY_STATE", "steady", "Steady State Run", "steady",
        (_wu(10), SegmentSpec(40, "steady", "Controlled steady effort", "work"), _cd(10)),
        "Aerobic power, marathon-specific endurance",
        frozenset({"base", "build", "peak"}),
    ),
    WorkoutTemplate(
        "TEMPO_CONTINUOUS", "tempo", "Continuous Tempo", "tempo",
        (_wu(10), SegmentSpec(30, "tempo", "Steady tempo effort", "work"), _cd(10)),
        "Lactate clearance, aerobic power",
        frozenset({"base", "build", "peak", "taper"}),
    ),
    WorkoutTemplate(
        "LACTATE_THRESHOLD_2X20", "threshold", "Threshold 2 x 20 min", "threshold",
        (
            _wu(10),
            SegmentSpec(20, "threshold", "Threshold pace", "work"),
            SegmentSpec(5, "recovery", "Recovery jog", "recovery"),
            SegmentSpec(20, "threshold", "Threshold pace", "work"),
            _cd(10),
        ),
        "Lactate threshold improvement",
        frozenset({"build", "peak"}),
    ),
    WorkoutTemplate(
        "CRUISE_INTERVALS", "threshold", "Cruise Intervals 4 x 6 min", "threshold",
        (_wu(12),) + _reps(
            4,
            SegmentSpec(6, "threshold", "Cruise interval at threshold", "work"),
            SegmentSpec(1, "recovery", "Short jog", "recovery"),
        ) + (_cd(10),),
        "Threshold volume with short rests",
        frozenset({"base", "build", "peak"}),
    ),
    WorkoutTemplate(
        "THRESHOLD_PROGRESSION", "threshold", "Threshold Progression", "threshold",
        (
            _wu(10),
            SegmentSpec(10, "steady", "Build", "work"),
            SegmentSpec(10, "tempo", "Tempo", "work"),
            SegmentSpec(10, "threshold", "Threshold", "work"),
            _cd(10),
        ),
        "Progressive lactate tolerance",
        frozenset({"base", "build"}),
    ),
    WorkoutTemplate(
        "VO2MAX_4X4", "vo2max", "VO2max 4 x 4 min", "vo2max",
        (_wu(15),) + _reps(
            4,
            SegmentSpec(4, "vo2max", "VO2max interval", "work"),
            SegmentSpec(3, "recovery", "Recovery jog", "recovery"),
        ) + (_cd(10),),
        "VO2max improvement, aerobic power",
        frozenset({"build", "peak"}),
    ),
    WorkoutTemplate(
        "VO2MAX_5X3", "vo2max", "VO2max 5 x 3 min", "vo2max",
        (_wu(15),) + _reps(
            5,
            SegmentSpec(3, "vo2max", "VO2max interval", "work"),
            SegmentSpec(2, "recovery", "Recovery jog", "recovery"),
        ) + (_cd(10),),
        "VO2max and running economy",
        frozenset({"build", "peak", "taper"}),
    ),
    WorkoutTemplate(
        "SPEED_200M_REPS", "speed", "200 m Repetitions", "neuromuscular",
        (_wu(15),) + _reps(
            6,
            SegmentSpec(0.5, "neuromuscular", "200 m rep", "work"),
            SegmentSpec(2, "recovery", "Walk recovery", "recovery"),
        ) + (_cd(10),),
        "Neuromuscular power, running economy",
        frozenset({"build", "peak", "taper"}),
    ),
    WorkoutTemplate(
        "HILL_REPEATS_6X2", "hill_repeats", "Hill Repeats 6 x 2 min", "vo2max",
        (_wu(15, "Warm-up to hills"),) + _reps(
            6,
            SegmentSpec(2, "vo2max", "Hill repeat", "work"),
            SegmentSpec(3, "recovery", "Jog down", "recovery"),
        ) + (_cd(10),),
        "Power, strength, VO2max",
        frozenset({"base", "build"}),
    ),
    WorkoutTemplate(
        "FARTLEK_VARIED", "fartlek", "Varied Fartlek", "tempo",
        (
            _wu(10),
            SegmentSpec(2, "threshold", "Hard surge", "work"),
            SegmentSpec(3, "easy", "Easy recovery", "recovery"),
            SegmentSpec(1, "vo2max", "Fast surge", "work"),
            SegmentSpec(4, "easy", "Easy recovery", "recovery"),
            SegmentSpec(3, "tempo", "Tempo surge", "work"),
            SegmentSpec(2, "easy", "Easy recovery", "recovery"),
            SegmentSpec(0.5, "neuromuscular", "Sprint", "work"),
            SegmentSpec(4.5, "easy", "Easy recovery", "recovery"),
            _cd(10),
        ),
        "Speed variation, mental adaptation",
        frozenset({"base", "build", "peak"}),
    ),
    WorkoutTemplate(
        "PROGRESSION_3_STAGE", "progression", "Three-Stage Progression", "tempo",
        (
            SegmentSpec(20, "easy", "Easy start", "warmup"),
            SegmentSpec(20, "steady", "Steady pace", "work"),
            SegmentSpec(20, "tempo", "Tempo finish", "work"),
            _cd(5),
        ),
        "Pacing, fatigue resistance",
        frozenset({"base", "build"}),
    ),
    WorkoutTemplate(
        "RACE_PACE_INTERVALS", "race_pace", "Race Pace 3 x 10 min", RACE_PACE_ZONE,
        (_wu(12),) + _reps(
            3,
            SegmentSpec(10, RACE_PACE_ZONE, "Goal race pace", "work"),
            SegmentSpec(3, "easy", "Float recovery", "recovery"),
        ) + (_cd(10),),
        "Race pace familiarity and efficiency",
        frozenset({"build", "peak", "taper"}),
    ),
    WorkoutTemplate(
        "TIME_TRIAL", "time_trial", "Time Trial", RACE_PACE_ZONE,
        (
            _wu(15),
            SegmentSpec(3, "threshold", "Strides to sharpen", "warmup"),
            SegmentSpec(20, RACE_PACE_ZONE, "Time trial at race effort", "work"),
            _cd(10),
        ),
        "Fitness check and race rehearsal",
        frozenset({"peak"}),
    ),
    WorkoutTemplate(
        "CROSS_TRAINING_AEROBIC", "cross_training", "Aerobic Cross-Training", "easy",
        (SegmentSpec(45, "easy", "Cycling, swimming or elliptical at easy effort", "steady"),),
        "Aerobic maintenance with reduced impact",
    ),
    WorkoutTemplate(
        "STRENGTH_CIRCUIT", "strength", "Strength Circuit", "recovery",
        (
            SegmentSpec(5, "recovery", "Mobility warm-up", "warmup"),
            SegmentSpec(20, "recovery", "Squats, lunges, calf raises, core", "work"),
            SegmentSpec(5, "recovery", "Stretch", "cooldown"),
        ),
        "Musculoskeletal resilience, injury prevention",
    ),
]

TEMPLATES: dict[str, WorkoutTemplate] = {t.key: t for t in _TEMPLATE_LIST}

DEFAULT_TEMPLATE_KEY = "EASY_AEROBIC"


def templates_for(workout_type: str, phase: str) -> list[WorkoutTemplate]:
    """Templates of a type that suit a phase, in library order."""
    return [t for t in _TEMPLATE_LIST if t.workout_type == workout_type and phase in t.phases]


def fallback_types(workout_type: str) -> list[str]:
    """Lower-intensity types to try, nearest first."""
    if workout_type not in INTENSITY_LADDER:
        return ["easy"]
    return INTENSITY_LADDER[INTENSITY_LADDER.index(workout_type) + 1:]


def find_template(workout_type: str, phase: str, rotation: int = 0) -> tuple[Optional[WorkoutTemplate], str]:
    """(template, resolved type). Rotation picks among suitable templates deterministically."""
    for candidate in [workout_type] + fallback_types(workout_type):
        options = templates_for(candidate, phase)
        if options:
            return options[rotation % len(options)], candidate
    return None, "easy"


def validate_workout_structure(workout: Workout) -> list[str]:
    """Contract check: known roles, positive durations, warm-up/cool-down around work."""
    errors: list[str] = []
    if not workout.segments:
        return ["workout must have at least one segment"]
    for idx, seg in enumerate(workout.segments):
        prefix = f"segments[{idx}]"
        if seg.role not in ALLOWED_ROLES:
            errors.append(f"{prefix}.role must be one of {sorted(ALLOWED_ROLES)}")
        if seg.duration_min <= 0:
            errors.append(f"{prefix}.duration_min must be > 0")
        if seg.intensity <= 0:
            errors.append(f"{prefix}.intensity must be > 0")
        if seg.pace_range_sec_per_km is not None:
            fast, slow = seg.pace_range_sec_per_km
            if fast > slow:
                errors.append(f"{prefix}.pace_range must be (fast, slow)")
    roles = [s.role for s in workout.segments]
    if "work" in roles:
        if roles[0] != "warmup":
            errors.append("structured workout must start with a warm-up")
        if roles[-1] != "cooldown":
            errors.append("structured workout must end with a cool-down")
    if workout.estimated_tss < 0:
        errors.append("estimated_tss must not be negative")
    return errors
