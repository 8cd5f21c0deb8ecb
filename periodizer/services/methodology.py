"""Training methodology profiles.

Each methodology is an immutable record consumed by the planning functions;
there is no class hierarchy. The registry maps a key to its profile and
``get_methodology`` resolves the common aliases callers use.

Profiles:
- daniels     VDOT-driven, quality built on tempo/threshold/VO2max
- lydiard     long aerobic base, hills, late speed
- pfitzinger  lactate-threshold and race-pace emphasis
- hudson      adaptive, tempo and fartlek heavy
- custom      balanced default
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from periodizer.models import PHASES, WORKOUT_TYPES, IntensityDistribution
from periodizer.validators import ConfigurationError

# (min, max) weeks per phase; optimal comes from the methodology
PHASE_BOUNDS: dict[str, tuple[int, int]] = {
    "base": (4, 12),
    "build": (3, 8),
    "peak": (2, 4),
    "taper": (1, 3),
    "recovery": (1, 2),
}

# Relative cost of recovering from each workout type
RECOVERY_MULTIPLIERS: dict[str, float] = {
    "recovery": 0.5,
    "easy": 1.0,
    "long_run": 1.5,
    "cross_training": 0.75,
    "strength": 1.0,
    "steady": 1.5,
    "progression": 1.75,
    "fartlek": 1.75,
    "tempo": 2.0,
    "race_pace": 2.5,
    "threshold": 3.0,
    "hill_repeats": 3.0,
    "speed": 3.5,
    "vo2max": 4.0,
    "time_trial": 5.0,
}

# Workout types a methodology's phase focus label rewards
FOCUS_TYPES: dict[str, frozenset[str]] = {
    "aerobic": frozenset({"easy", "long_run", "steady"}),
    "threshold": frozenset({"threshold", "tempo"}),
    "vo2max": frozenset({"vo2max"}),
    "hills": frozenset({"hill_repeats"}),
    "speed": frozenset({"speed", "vo2max"}),
    "tempo": frozenset({"tempo", "progression", "fartlek"}),
    "race_pace": frozenset({"race_pace", "tempo"}),
    "maintenance": frozenset({"race_pace", "speed"}),
    "recovery": frozenset({"recovery", "easy"}),
}


@dataclass(frozen=True)
class PhaseTarget:
    min_weeks: int
    optimal_weeks: int
    max_weeks: int
    focus: tuple[str, ...]


@dataclass(frozen=True)
class MethodologyProfile:
    key: str
    name: str
    description: str
    intensity: IntensityDistribution
    workout_priorities: tuple[str, ...]
    emphasis: dict[str, float]
    recovery_emphasis: float
    phases: dict[str, PhaseTarget]
    phase_distributions: dict[str, IntensityDistribution]
    phase_focus: dict[str, str]
    deload_every: int = 4
    deload_reduction: float = 0.2
    long_run_share: float = 0.35

    def emphasis_for(self, workout_type: str) -> float:
        return self.emphasis.get(workout_type, 1.0)

    def priority_rank(self, workout_type: str) -> int:
        """Position in the priority list; unlisted types rank after all listed ones."""
        try:
            return self.workout_priorities.index(workout_type)
        except ValueError:
            return len(self.workout_priorities)

    def distribution_for(self, phase: str) -> IntensityDistribution:
        return self.phase_distributions.get(phase, self.intensity)


def _dist(easy: float, moderate: float, hard: float) -> IntensityDistribution:
    return IntensityDistribution(float(easy), float(moderate), float(hard))


def _phases(optimal: dict[str, int], focus: dict[str, tuple[str, ...]]) -> dict[str, PhaseTarget]:
    out = {}
    for phase in PHASES:
        lo, hi = PHASE_BOUNDS[phase]
        opt = optimal.get(phase, 1 if phase == "recovery" else lo)
        out[phase] = PhaseTarget(lo, max(lo, min(hi, opt)), hi, focus.get(phase, ("active_recovery",)))
    return out


def _emphasis(run_weights: dict[str, float], cross: float, strength: float) -> dict[str, float]:
    weights = {t: 1.0 for t in WORKOUT_TYPES}
    weights.update(run_weights)
    weights["cross_training"] = cross
    weights["strength"] = strength
    return weights


METHODOLOGIES: dict[str, MethodologyProfile] = {
    "daniels": MethodologyProfile(
        key="daniels",
        name="Jack Daniels",
        description="VDOT-based training with precise pace zones and an 80/20 intensity split",
        intensity=_dist(80, 10, 10),
        workout_priorities=("tempo", "vo2max", "threshold", "easy", "long_run"),
        emphasis=_emphasis(
            {"easy": 1.2, "tempo": 1.5, "threshold": 1.4, "vo2max": 1.3, "speed": 1.1,
             "long_run": 1.2, "race_pace": 1.3},
            cross=0.8, strength=0.9,
        ),
        recovery_emphasis=0.7,
        phases=_phases(
            {"base": 8, "build": 6, "peak": 3, "taper": 2},
            {"base": ("aerobic_capacity", "mitochondrial"), "build": ("lactate_threshold", "aerobic_power"),
             "peak": ("vo2max", "neuromuscular"), "taper": ("maintenance", "freshness")},
        ),
        phase_distributions={
            "base": _dist(85, 10, 5), "build": _dist(80, 15, 5), "peak": _dist(75, 15, 10),
            "taper": _dist(80, 15, 5), "recovery": _dist(95, 5, 0),
        },
        phase_focus={"base": "aerobic", "build": "threshold", "peak": "vo2max", "taper": "maintenance",
                     "recovery": "recovery"},
        deload_every=4,
        deload_reduction=0.2,
        long_run_share=0.3,
    ),
    "lydiard": MethodologyProfile(
        key="lydiard",
        name="Arthur Lydiard",
        description="Extended aerobic base, hill strength phase, then sharpening",
        intensity=_dist(85, 10, 5),
        workout_priorities=("easy", "long_run", "hill_repeats", "tempo", "speed"),
        emphasis=_emphasis(
            {"easy": 1.5, "tempo": 1.1, "threshold": 1.0, "vo2max": 0.8, "speed": 0.9,
             "long_run": 1.4, "hill_repeats": 1.3, "steady": 1.3},
            cross=0.7, strength=0.8,
        ),
        recovery_emphasis=0.9,
        phases=_phases(
            {"base": 12, "build": 4, "peak": 4, "taper": 2},
            {"base": ("aerobic_capacity", "capillarization"), "build": ("hill_strength", "aerobic_power"),
             "peak": ("speed", "neuromuscular"), "taper": ("maintenance", "freshness")},
        ),
        phase_distributions={
            "base": _dist(90, 8, 2), "build": _dist(85, 12, 3), "peak": _dist(80, 15, 5),
            "taper": _dist(85, 12, 3), "recovery": _dist(100, 0, 0),
        },
        phase_focus={"base": "aerobic", "build": "hills", "peak": "speed", "taper": "maintenance",
                     "recovery": "recovery"},
        deload_every=4,
        deload_reduction=0.2,
        long_run_share=0.4,
    ),
    "pfitzinger": MethodologyProfile(
        key="pfitzinger",
        name="Pete Pfitzinger",
        description="Lactate threshold focus with medium-long runs and race-pace work",
        intensity=_dist(75, 15, 10),
        workout_priorities=("threshold", "long_run", "tempo", "vo2max", "easy"),
        emphasis=_emphasis(
            {"easy": 1.3, "tempo": 1.2, "threshold": 1.5, "vo2max": 1.1, "speed": 1.0,
             "long_run": 1.3, "race_pace": 1.4},
            cross=0.8, strength=0.9,
        ),
        recovery_emphasis=0.8,
        phases=_phases(
            {"base": 6, "build": 8, "peak": 3, "taper": 2},
            {"base": ("aerobic_capacity", "mitochondrial"), "build": ("lactate_threshold", "marathon_pace"),
             "peak": ("race_pace", "aerobic_power"), "taper": ("maintenance", "race_readiness")},
        ),
        phase_distributions={
            "base": _dist(75, 20, 5), "build": _dist(70, 25, 5), "peak": _dist(70, 20, 10),
            "taper": _dist(75, 20, 5), "recovery": _dist(90, 10, 0),
        },
        phase_focus={"base": "aerobic", "build": "threshold", "peak": "race_pace", "taper": "maintenance",
                     "recovery": "recovery"},
        deload_every=3,
        deload_reduction=0.2,
        long_run_share=0.35,
    ),
    "hudson": MethodologyProfile(
        key="hudson",
        name="Brad Hudson",
        description="Adaptive running with tempo and fartlek variety",
        intensity=_dist(70, 20, 10),
        workout_priorities=("tempo", "fartlek", "long_run", "vo2max", "easy"),
        emphasis=_emphasis(
            {"easy": 1.2, "tempo": 1.4, "threshold": 1.2, "vo2max": 1.1, "speed": 1.0,
             "long_run": 1.2, "fartlek": 1.3},
            cross=0.9, strength=1.0,
        ),
        recovery_emphasis=0.75,
        phases=_phases(
            {"base": 8, "build": 6, "peak": 4, "taper": 2},
            {"base": ("aerobic_capacity", "mitochondrial"), "build": ("tempo_endurance", "lactate_buffering"),
             "peak": ("race_pace", "neuromuscular"), "taper": ("maintenance", "freshness")},
        ),
        phase_distributions={
            "base": _dist(80, 15, 5), "build": _dist(75, 20, 5), "peak": _dist(70, 20, 10),
            "taper": _dist(80, 15, 5), "recovery": _dist(90, 10, 0),
        },
        phase_focus={"base": "aerobic", "build": "tempo", "peak": "race_pace", "taper": "maintenance",
                     "recovery": "recovery"},
        deload_every=3,
        deload_reduction=0.25,
        long_run_share=0.3,
    ),
    "custom": MethodologyProfile(
        key="custom",
        name="Custom",
        description="Balanced default mixing the common elements of the named methods",
        intensity=_dist(75, 15, 10),
        workout_priorities=("easy", "tempo", "long_run", "vo2max", "threshold"),
        emphasis=_emphasis(
            {"easy": 1.2, "tempo": 1.2, "threshold": 1.2, "vo2max": 1.1, "speed": 1.0,
             "long_run": 1.2},
            cross=0.8, strength=0.9,
        ),
        recovery_emphasis=0.8,
        phases=_phases(
            {"base": 8, "build": 6, "peak": 3, "taper": 2},
            {"base": ("aerobic_capacity", "mitochondrial"), "build": ("lactate_threshold", "aerobic_power"),
             "peak": ("vo2max", "race_pace"), "taper": ("maintenance", "freshness")},
        ),
        phase_distributions={
            "base": _dist(80, 15, 5), "build": _dist(75, 20, 5), "peak": _dist(70, 20, 10),
            "taper": _dist(80, 15, 5), "recovery": _dist(90, 10, 0),
        },
        phase_focus={"base": "aerobic", "build": "threshold", "peak": "vo2max", "taper": "maintenance",
                     "recovery": "recovery"},
        deload_every=4,
        deload_reduction=0.2,
        long_run_share=0.35,
    ),
}

_ALIASES: dict[str, str] = {
    "jack-daniels": "daniels",
    "vdot": "daniels",
    "vdot-driven": "daniels",
    "scientific": "daniels",
    "arthur-lydiard": "lydiard",
    "aerobic-base": "lydiard",
    "hill": "lydiard",
    "hills": "lydiard",
    "pete-pfitzinger": "pfitzinger",
    "pfitz": "pfitzinger",
    "lactate-threshold": "pfitzinger",
    "threshold": "pfitzinger",
    "brad-hudson": "hudson",
    "adaptive": "hudson",
    "default": "custom",
    "balanced": "custom",
}


def get_methodology(name: str) -> MethodologyProfile:
    """Resolve a methodology name or alias. Unknown names raise ConfigurationError."""
    token = str(name or "custom").strip().lower().replace("_", "-").replace(" ", "-")
    key = token if token in METHODOLOGIES else _ALIASES.get(token)
    if key is None:
        raise ConfigurationError(f"unknown methodology {name!r}; expected one of {sorted(METHODOLOGIES)}")
    return METHODOLOGIES[key]


def validate_methodology(profile: MethodologyProfile) -> MethodologyProfile:
    """Structural checks for caller-built profiles."""
    dists = [("intensity", profile.intensity)] + sorted(profile.phase_distributions.items())
    for label, dist in dists:
        if min(dist.easy, dist.moderate, dist.hard) < 0:
            raise ConfigurationError(f"{label} distribution must not be negative")
        if abs(dist.easy + dist.moderate + dist.hard - 100.0) > 0.5:
            raise ConfigurationError(f"{label} distribution must sum to 100")
    if not 0.0 <= profile.recovery_emphasis <= 1.0:
        raise ConfigurationError("recovery_emphasis must be within [0, 1]")
    unknown = [t for t in profile.workout_priorities if t not in WORKOUT_TYPES]
    if unknown:
        raise ConfigurationError(f"unknown workout types in priorities: {unknown}")
    for phase, target in profile.phases.items():
        if phase not in PHASES:
            raise ConfigurationError(f"unknown phase {phase!r}")
        if not 0 < target.min_weeks <= target.optimal_weeks <= target.max_weeks:
            raise ConfigurationError(f"{phase} weeks must satisfy 0 < min <= optimal <= max")
    if profile.deload_every < 2:
        raise ConfigurationError("deload_every must be at least 2")
    if not 0.0 <= profile.deload_reduction <= 0.5:
        raise ConfigurationError("deload_reduction must be within [0, 0.5]")
    if not 0.2 <= profile.long_run_share <= 0.6:
        raise ConfigurationError("long_run_share must be within [0.2, 0.6]")
    return profile


def customize_methodology(base: MethodologyProfile, **changes: Any) -> MethodologyProfile:
    """New validated profile derived from ``base``; the base is left untouched.

    ``intensity`` and ``phase_distributions`` values may be given as dicts;
    ``optimal_weeks`` maps phase -> week count and adjusts the phase targets.
    """
    if isinstance(changes.get("intensity"), dict):
        changes["intensity"] = IntensityDistribution(**changes["intensity"])
    if "phase_distributions" in changes:
        merged = dict(base.phase_distributions)
        for phase, dist in changes["phase_distributions"].items():
            merged[phase] = IntensityDistribution(**dist) if isinstance(dist, dict) else dist
        changes["phase_distributions"] = merged
    if "emphasis" in changes:
        changes["emphasis"] = {**base.emphasis, **changes["emphasis"]}
    if "workout_priorities" in changes:
        changes["workout_priorities"] = tuple(changes["workout_priorities"])
    optimal = changes.pop("optimal_weeks", None)
    if optimal:
        phases = dict(base.phases)
        for phase, weeks in optimal.items():
            if phase not in phases:
                raise ConfigurationError(f"unknown phase {phase!r}")
            phases[phase] = dataclasses.replace(phases[phase], optimal_weeks=int(weeks))
        changes["phases"] = phases
    changes.setdefault("key", "custom")
    changes.setdefault("name", f"Custom ({base.name})")
    try:
        profile = dataclasses.replace(base, **changes)
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc
    return validate_methodology(profile)
