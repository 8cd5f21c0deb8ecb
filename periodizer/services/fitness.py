"""Fitness assessment from run history.

Every function here is pure and total: sparse or missing inputs resolve to a
documented default instead of raising. ``as_of`` always defaults to the date
of the latest run so results never depend on the wall clock.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from statistics import StatisticsError, linear_regression
from typing import Iterable, Optional

import pandas as pd

from periodizer.cache_utils import CalculationCache, run_set_key
from periodizer.models import FitnessMetrics, FitnessProfile, RunRecord, TrainingLoad, WeeklyPatterns
from periodizer.services.training_load import compute_training_load, compute_weekly_metrics, daily_loads, overtraining_risk
from periodizer.services.vdot import (
    VDOT_MIN,
    clamp_vdot,
    get_paces,
    pace_for_speed,
    speed_for_vo2,
    vdot_from_performance,
)

logger = logging.getLogger(__name__)

DEFAULT_VDOT = 35.0
DEFAULT_CRITICAL_SPEED_KMH = 10.0
DEFAULT_RUNNING_ECONOMY = 200.0
DEFAULT_WEEKLY_KM = 30.0
DEFAULT_LONGEST_RUN_KM = 10.0
DEFAULT_TRAINING_AGE_YEARS = 1.0
DEFAULT_RECOVERY_SCORE = 70.0

VDOT_LOOKBACK_DAYS = 120
VOLUME_FALLBACK_MAX_VDOT = 55.0

# Population HR assumptions for the economy proxy
_ECONOMY_REST_HR = 60
_ECONOMY_MAX_HR = 190


def _valid(runs: Iterable[RunRecord]) -> list[RunRecord]:
    return sorted((r for r in runs if r.is_valid), key=lambda r: r.date)


def _latest_date(runs: list[RunRecord]) -> Optional[date]:
    return max((r.date for r in runs), default=None)


# ---------------------------------------------------------------------------
# VDOT
# ---------------------------------------------------------------------------

def qualifying_efforts(runs: Iterable[RunRecord]) -> list[RunRecord]:
    """Race-like efforts recent enough to score: race or effort >= 9."""
    valid = _valid(runs)
    latest = _latest_date(valid)
    if latest is None:
        return []
    cutoff = latest - timedelta(days=VDOT_LOOKBACK_DAYS)
    return [
        r for r in valid
        if (r.is_race or (r.effort_level or 0) >= 9)
        and r.distance_km >= 1.5
        and r.duration_min >= 3.5
        and r.date >= cutoff
    ]


def volume_vdot_fallback(runs: Iterable[RunRecord]) -> float:
    """VDOT guess from training volume when no race-like effort exists."""
    avg_weekly = analyze_weekly_patterns(runs).avg_weekly_km
    return round(max(float(VDOT_MIN), min(VOLUME_FALLBACK_MAX_VDOT, 30.0 + 0.25 * avg_weekly)), 1)


def estimate_vdot(runs: Iterable[RunRecord]) -> float:
    """Best VDOT among qualifying efforts, clamped to [30, 85]."""
    valid = _valid(runs)
    if not valid:
        logger.debug("No runs supplied, using default VDOT", extra={"ctx_vdot": DEFAULT_VDOT})
        return DEFAULT_VDOT

    scores = [
        score
        for score in (vdot_from_performance(r.distance_km * 1000.0, r.duration_min * 60.0) for r in qualifying_efforts(valid))
        if score is not None
    ]
    if not scores:
        fallback = volume_vdot_fallback(valid)
        logger.debug("No qualifying effort, using volume-based VDOT", extra={"ctx_vdot": fallback})
        return fallback
    return round(clamp_vdot(max(scores)), 1)


# ---------------------------------------------------------------------------
# Critical speed, economy, threshold
# ---------------------------------------------------------------------------

def _vdot_critical_speed(vdot: float) -> float:
    speed = speed_for_vo2(vdot * 0.9)
    if speed is None:
        return DEFAULT_CRITICAL_SPEED_KMH
    return round(speed * 60.0 / 1000.0, 2)


def estimate_critical_speed(runs: Iterable[RunRecord], vdot: Optional[float] = None) -> float:
    """Critical speed (km/h) from a distance = CS * t + D' fit over hard efforts.

    Falls back to 90% of VDOT oxygen cost when the fit is impossible or
    physiologically implausible.
    """
    valid = _valid(runs)
    efforts = [r for r in valid if (r.is_race or (r.effort_level or 0) >= 8) and r.distance_km >= 1.0]
    durations = {round(r.duration_min * 60.0, 1) for r in efforts}
    if vdot is None:
        vdot = estimate_vdot(valid)

    if len(durations) < 2:
        logger.debug("Too few hard efforts for critical speed fit", extra={"ctx_efforts": len(efforts)})
        return _vdot_critical_speed(vdot)

    times = [r.duration_min * 60.0 for r in efforts]
    distances = [r.distance_km * 1000.0 for r in efforts]
    try:
        slope, intercept = linear_regression(times, distances)
    except StatisticsError:
        return _vdot_critical_speed(vdot)
    if slope <= 0 or intercept < 0:
        logger.debug("Implausible critical speed fit", extra={"ctx_slope": slope, "ctx_d_prime": intercept})
        return _vdot_critical_speed(vdot)
    return round(slope * 3.6, 2)


def estimate_running_economy(runs: Iterable[RunRecord]) -> float:
    """Oxygen-cost proxy in ml/kg/km from easy runs with heart rate (lower is better)."""
    samples: list[float] = []
    for run in _valid(runs):
        pace = run.pace_min_per_km
        if not run.avg_heart_rate or not pace or run.duration_min <= 20:
            continue
        if run.effort_level is not None and run.effort_level > 6:
            continue
        hrr = (run.avg_heart_rate - _ECONOMY_REST_HR) / (_ECONOMY_MAX_HR - _ECONOMY_REST_HR)
        if hrr <= 0:
            continue
        samples.append(min(1.0, hrr) * 50.0 * pace)
    if not samples:
        logger.debug("No heart-rate data, using default running economy")
        return DEFAULT_RUNNING_ECONOMY
    return float(round(sum(samples) / len(samples)))


def estimate_lactate_threshold(vdot: float) -> float:
    """Threshold pace (sec/km) at 85.5% of VDOT oxygen cost."""
    pace = pace_for_speed(speed_for_vo2(clamp_vdot(vdot) * 0.855))
    if pace is None:
        return float(get_paces(vdot).threshold)
    return round(pace, 1)


# ---------------------------------------------------------------------------
# Risk and recovery
# ---------------------------------------------------------------------------

_RATIO_POINTS = {
    "insufficient_data": 15,
    "very_low": 20,
    "low": 10,
    "optimal": 10,
    "elevated": 25,
    "high": 40,
    "very_high": 40,
}


def compute_injury_risk(load: TrainingLoad, mileage_increase_pct: float, recovery_score: float) -> int:
    """Composite 0-100 risk from load ratio, mileage jump and recovery."""
    risk = float(_RATIO_POINTS.get(load.risk_band, 15))
    if mileage_increase_pct > 20:
        risk += 30
    elif mileage_increase_pct > 10:
        risk += 20
    elif mileage_increase_pct > 5:
        risk += 10
    risk += (100.0 - recovery_score) * 0.3
    return int(round(max(0.0, min(100.0, risk))))


def compute_recovery_score(
    runs: Iterable[RunRecord],
    resting_hr: Optional[int] = None,
    hrv: Optional[float] = None,
    as_of: Optional[date] = None,
    threshold_pace_sec_per_km: Optional[float] = None,
) -> float:
    """0-100 readiness from recent hard efforts, weekly monotony/strain and physiology."""
    valid = _valid(runs)
    score = DEFAULT_RECOVERY_SCORE
    as_of = as_of or _latest_date(valid)

    if as_of is not None:
        window_start = as_of - timedelta(days=6)
        recent = [r for r in valid if window_start <= r.date <= as_of]
        score -= 5 * sum(1 for r in recent if (r.effort_level or 0) >= 7)

        threshold = threshold_pace_sec_per_km or estimate_lactate_threshold(estimate_vdot(valid))
        by_day = dict(daily_loads(recent, threshold, as_of))
        week = [by_day.get(window_start + timedelta(days=i), 0.0) for i in range(7)]
        metrics = compute_weekly_metrics(week)
        risk = overtraining_risk(metrics.monotony, metrics.strain)
        if risk == "high":
            score -= 15
        elif risk == "moderate":
            score -= 8

    if hrv:
        if hrv > 60:
            score += 10
        elif hrv < 40:
            score -= 10
    if resting_hr:
        if resting_hr < 50:
            score += 10
        elif resting_hr > 65:
            score -= 10
    return float(max(0.0, min(100.0, score)))


# ---------------------------------------------------------------------------
# Weekly patterns
# ---------------------------------------------------------------------------

def _weekly_frame(runs: list[RunRecord]) -> pd.DataFrame:
    """Per-week distance and run count, Monday-based, empty weeks included."""
    df = pd.DataFrame(
        {"date": [r.date for r in runs], "distance_km": [r.distance_km for r in runs]}
    )
    df["week"] = pd.to_datetime(df["date"]).dt.to_period("W")
    out = df.groupby("week").agg(distance_km=("distance_km", "sum"), runs=("distance_km", "count"))
    full = pd.period_range(out.index.min(), out.index.max(), freq="W")
    return out.reindex(full, fill_value=0)


def analyze_weekly_patterns(runs: Iterable[RunRecord]) -> WeeklyPatterns:
    valid = _valid(runs)
    if not valid:
        return WeeklyPatterns(0.0, 0.0, 0.0, 0, (), None)

    weekly = _weekly_frame(valid)
    weeks = len(weekly)
    avg_runs = len(valid) / weeks

    day_counts = [0] * 7
    for r in valid:
        day_counts[r.date.weekday()] += 1
    ranked = sorted(range(7), key=lambda d: (-day_counts[d], d))
    optimal_days = tuple(sorted(d for d in ranked[: max(1, round(avg_runs))] if day_counts[d] > 0))

    long_runs = [r for r in valid if r.distance_km > 15]
    if not long_runs:
        longest = max(r.distance_km for r in valid)
        long_runs = [r for r in valid if r.distance_km >= 0.8 * longest]
    long_counts = [0] * 7
    for r in long_runs:
        long_counts[r.date.weekday()] += 1
    typical_long = max(range(7), key=lambda d: (long_counts[d], d))

    return WeeklyPatterns(
        avg_weekly_km=round(float(weekly["distance_km"].mean()), 1),
        max_weekly_km=round(float(weekly["distance_km"].max()), 1),
        avg_runs_per_week=round(avg_runs, 1),
        consistency_score=int(round(100 * (weekly["runs"] > 0).sum() / weeks)),
        optimal_days=optimal_days,
        typical_long_run_day=typical_long,
    )


def recent_weekly_km(runs: Iterable[RunRecord], weeks: int = 4) -> float:
    """Average distance over the last ``weeks`` calendar weeks of the history."""
    valid = _valid(runs)
    if not valid:
        return 0.0
    weekly = _weekly_frame(valid).tail(weeks)
    return round(float(weekly["distance_km"].mean()), 1)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def compute_fitness_metrics(
    runs: Iterable[RunRecord],
    resting_hr: Optional[int] = None,
    hrv: Optional[float] = None,
    as_of: Optional[date] = None,
) -> FitnessMetrics:
    """Diagnostic snapshot of every calculator metric."""
    valid = _valid(runs)
    vdot = estimate_vdot(valid)
    threshold = estimate_lactate_threshold(vdot)
    as_of = as_of or _latest_date(valid)
    load = compute_training_load(valid, threshold, as_of)
    recovery = compute_recovery_score(valid, resting_hr, hrv, as_of, threshold)

    avg_weekly = analyze_weekly_patterns(valid).avg_weekly_km
    increase = 0.0
    if as_of is not None and avg_weekly > 0:
        last_week = sum(r.distance_km for r in valid if as_of - timedelta(days=6) <= r.date <= as_of)
        increase = (last_week - avg_weekly) / avg_weekly * 100.0

    return FitnessMetrics(
        vdot=vdot,
        critical_speed_kmh=estimate_critical_speed(valid, vdot),
        running_economy=estimate_running_economy(valid),
        threshold_pace_sec_per_km=threshold,
        training_load=load,
        injury_risk=compute_injury_risk(load, increase, recovery),
        recovery_score=recovery,
    )


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def default_profile() -> FitnessProfile:
    return FitnessProfile(
        vdot=DEFAULT_VDOT,
        critical_speed_kmh=_vdot_critical_speed(DEFAULT_VDOT),
        running_economy=DEFAULT_RUNNING_ECONOMY,
        threshold_pace_sec_per_km=estimate_lactate_threshold(DEFAULT_VDOT),
        weekly_km=DEFAULT_WEEKLY_KM,
        longest_recent_run_km=DEFAULT_LONGEST_RUN_KM,
        training_age_years=DEFAULT_TRAINING_AGE_YEARS,
        recovery_score=DEFAULT_RECOVERY_SCORE,
    )


def _assess(runs: list[RunRecord], override) -> FitnessProfile:
    o = override
    if not runs and o is None:
        return default_profile()

    vdot = _first(o and o.vdot, estimate_vdot(runs))
    threshold = _first(o and o.threshold_pace_sec_per_km, estimate_lactate_threshold(vdot))

    weekly_km = o and o.weekly_km
    longest = o and o.longest_recent_run_km
    training_age = o and o.training_age_years
    if runs:
        latest = runs[-1].date
        recent = [r for r in runs if r.date >= latest - timedelta(days=28)]
        weekly_km = _first(weekly_km, recent_weekly_km(runs))
        longest = _first(longest, max(r.distance_km for r in recent))
        span_years = (latest - runs[0].date).days / 365.25
        training_age = _first(training_age, max(DEFAULT_TRAINING_AGE_YEARS, round(span_years, 2)))

    max_hr = _first(o and o.max_heart_rate, max((r.max_heart_rate for r in runs if r.max_heart_rate), default=None))
    resting_hr = o.resting_heart_rate if o else None
    recovery = _first(
        o and o.recovery_score,
        compute_recovery_score(runs, resting_hr, o.hrv if o else None, threshold_pace_sec_per_km=threshold),
    )

    return FitnessProfile(
        vdot=float(vdot),
        critical_speed_kmh=float(_first(o and o.critical_speed_kmh, estimate_critical_speed(runs, vdot))),
        running_economy=float(_first(o and o.running_economy, estimate_running_economy(runs))),
        threshold_pace_sec_per_km=float(threshold),
        weekly_km=float(_first(weekly_km, DEFAULT_WEEKLY_KM)),
        longest_recent_run_km=float(_first(longest, DEFAULT_LONGEST_RUN_KM)),
        training_age_years=float(_first(training_age, DEFAULT_TRAINING_AGE_YEARS)),
        injury_history=tuple(o.injury_history) if o else (),
        recovery_score=float(recovery),
        max_heart_rate=max_hr,
        resting_heart_rate=resting_hr,
    )


def assess_fitness(
    runs: Optional[Iterable[RunRecord]] = None,
    override=None,
    cache: Optional[CalculationCache] = None,
) -> FitnessProfile:
    """Resolve the FitnessProfile used for generation.

    ``override`` is a validated FitnessOverride; its values win over anything
    derived from runs. With neither runs nor override the default profile
    (VDOT 35, 30 km/week) is returned.
    """
    valid = _valid(runs or ())
    if cache is None:
        return _assess(valid, override)
    key = run_set_key("fitness", valid, override)
    return cache.get_or_compute(key, lambda: _assess(valid, override))

