"""Pydantic validation models for the plan configuration entry point."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from periodizer.models import GOALS

MAX_PLAN_WEEKS = 52

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ConfigurationError(ValueError):
    """Raised when a plan configuration is structurally invalid."""


def normalize_goal(goal: str) -> Optional[str]:
    """Map free-text goals like "10K improvement" onto a catalog key."""
    token = str(goal or "").strip().lower().replace("-", " ").replace("_", " ")
    if token.replace(" ", "_") in GOALS:
        return token.replace(" ", "_")
    if not token:
        return None
    if "ultra" in token or "50k" in token or "100k" in token:
        return "ultra"
    if "half" in token or "21k" in token:
        return "half_marathon"
    if "marathon" in token or "42k" in token:
        return "marathon"
    first = any(word in token for word in ("first", "beginner", "finish", "complete", "couch"))
    compact = token.replace(" ", "")
    if "10k" in compact or "10000" in compact:
        return "first_10k" if first else "improve_10k"
    if "5k" in compact or "5000" in compact or "parkrun" in compact:
        return "first_5k" if first else "improve_5k"
    if "fitness" in token or "general" in token or "health" in token or "base" in token:
        return "general_fitness"
    return None


def parse_weekday(value: Any) -> int:
    """Weekday index (Monday = 0) from an int or a day name/abbreviation."""
    if isinstance(value, bool):
        raise ValueError(f"invalid weekday: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"weekday index must be 0..6, got {value}")
    token = str(value or "").strip().lower()
    for idx, name in enumerate(WEEKDAY_NAMES):
        if len(token) >= 3 and name.startswith(token):
            return idx
    raise ValueError(f"invalid weekday: {value!r}")


class TrainingPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    available_days: tuple[int, ...] = (0, 1, 3, 5, 6)
    long_run_day: Optional[int] = None
    max_session_minutes: int = Field(default=180, ge=0, le=480)
    time_budgets: dict[int, int] = Field(default_factory=dict)
    experience_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    include_cross_training: bool = False
    include_strength: bool = False

    @field_validator("available_days", mode="before")
    @classmethod
    def parse_available_days(cls, v):
        days = sorted({parse_weekday(d) for d in (v or ())})
        if not days:
            raise ValueError("at least one available training day is required")
        return tuple(days)

    @field_validator("long_run_day", mode="before")
    @classmethod
    def parse_long_run_day(cls, v):
        if v is None or v == "":
            return None
        return parse_weekday(v)

    @field_validator("time_budgets", mode="before")
    @classmethod
    def parse_time_budgets(cls, v):
        budgets: dict[int, int] = {}
        for day, minutes in dict(v or {}).items():
            if int(minutes) < 0:
                raise ValueError("time budgets must not be negative")
            budgets[parse_weekday(day)] = int(minutes)
        return budgets

    def budget_for(self, weekday: int) -> int:
        return int(self.time_budgets.get(weekday, self.max_session_minutes))


class EnvironmentalFactors(BaseModel):
    """Race or training environment; unset fields leave paces untouched."""
    model_config = ConfigDict(frozen=True)

    altitude_m: Optional[float] = Field(default=None, ge=0, le=6000)
    temperature_c: Optional[float] = Field(default=None, ge=-40, le=50)
    humidity_pct: Optional[float] = Field(default=None, ge=0, le=100)
    terrain: Literal["flat", "mixed", "hilly", "trail"] = "flat"


class FitnessOverride(BaseModel):
    """Caller-supplied fitness values that take precedence over run history."""
    model_config = ConfigDict(frozen=True)

    vdot: Optional[float] = Field(default=None, ge=30, le=85)
    weekly_km: Optional[float] = Field(default=None, ge=0, le=400)
    longest_recent_run_km: Optional[float] = Field(default=None, ge=0, le=200)
    training_age_years: Optional[float] = Field(default=None, ge=0, le=60)
    critical_speed_kmh: Optional[float] = Field(default=None, gt=0, le=30)
    running_economy: Optional[float] = Field(default=None, gt=0)
    threshold_pace_sec_per_km: Optional[float] = Field(default=None, gt=0)
    recovery_score: Optional[float] = Field(default=None, ge=0, le=100)
    injury_history: tuple[str, ...] = ()
    max_heart_rate: Optional[int] = Field(default=None, ge=100, le=230)
    resting_heart_rate: Optional[int] = Field(default=None, ge=25, le=120)
    hrv: Optional[float] = Field(default=None, ge=0)

    @field_validator("resting_heart_rate")
    @classmethod
    def resting_below_max(cls, v, info):
        max_hr = info.data.get("max_heart_rate")
        if v is not None and max_hr is not None and v >= max_hr:
            raise ValueError("resting_heart_rate must be below max_heart_rate")
        return v


class PlanConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, max_length=140)
    goal: str
    start_date: date
    target_date: Optional[date] = None
    methodology: str = "custom"
    fitness: Optional[FitnessOverride] = None
    preferences: TrainingPreferences = Field(default_factory=TrainingPreferences)
    environment: EnvironmentalFactors = Field(default_factory=EnvironmentalFactors)

    @field_validator("goal")
    @classmethod
    def valid_goal(cls, v):
        goal = normalize_goal(v)
        if goal is None:
            raise ValueError(f"goal must describe one of {GOALS}, got {v!r}")
        return goal

    @field_validator("methodology")
    @classmethod
    def clean_methodology(cls, v):
        token = str(v or "").strip().lower()
        return token or "custom"

    @model_validator(mode="after")
    def valid_date_span(self):
        if self.target_date is None:
            return self
        if self.target_date <= self.start_date:
            raise ValueError("target_date must be after start_date")
        span_days = (self.target_date - self.start_date).days
        if span_days < 7:
            raise ValueError("plan must span at least one week")
        if span_days // 7 > MAX_PLAN_WEEKS:
            raise ValueError(f"plan must not exceed {MAX_PLAN_WEEKS} weeks")
        return self


def validate_plan_config(config: Union[PlanConfig, dict]) -> PlanConfig:
    """Validate once at entry; pydantic errors surface as ConfigurationError."""
    if isinstance(config, PlanConfig):
        return config
    try:
        return PlanConfig.model_validate(config)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
