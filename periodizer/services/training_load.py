"""Training load metrics: TSS, acute/chronic EWMA load, monotony and strain.

Each run is scored as a Training Stress Score relative to threshold pace.
Daily scores (missing days are zero) feed exponentially weighted acute
(7-day) and chronic (28-day) loads whose ratio flags overreach risk.
Monotony and strain over the last week feed the recovery score.

Reference: Coggan TSS, Gabbett (2016) acute:chronic ratio, Foster (1998).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from statistics import mean, stdev
from typing import Iterable, Optional

from periodizer.models import RunRecord, TrainingLoad

ACUTE_DAYS = 7
CHRONIC_DAYS = 28

_RECOMMENDATIONS = {
    "insufficient_data": "Not enough training history to assess load. Build volume gradually.",
    "very_low": "Training load is low. Consider increasing volume gradually.",
    "low": "Training load is slightly below your usual. Room to build.",
    "optimal": "Training load is in optimal range for adaptation.",
    "elevated": "Training load is high. Monitor fatigue carefully.",
    "high": "Training load is very high. Risk of overtraining. Consider recovery.",
    "very_high": "Training load spike. Schedule recovery before adding more work.",
}


@dataclass(frozen=True)
class WeeklyLoadMetrics:
    """Aggregated load metrics for a 7-day window."""
    total_load: float
    session_count: int
    monotony: float       # mean daily load / stdev (high = uniform stress = risky)
    strain: float         # total load * monotony
    avg_daily_load: float
    peak_daily_load: float


def compute_tss(run: RunRecord, threshold_pace_sec_per_km: float) -> float:
    """duration * IF^2 * 100/60, IF = threshold pace / run pace. 0 without a usable pace."""
    pace_min = run.pace_min_per_km
    if not pace_min or not threshold_pace_sec_per_km or threshold_pace_sec_per_km <= 0:
        return 0.0
    if run.duration_min <= 0:
        return 0.0
    intensity_factor = threshold_pace_sec_per_km / (pace_min * 60.0)
    return round(run.duration_min * intensity_factor ** 2 * 100.0 / 60.0, 1)


def daily_loads(
    runs: Iterable[RunRecord],
    threshold_pace_sec_per_km: float,
    as_of: Optional[date] = None,
) -> list[tuple[date, float]]:
    """Daily TSS from the first run through ``as_of`` with rest days filled as zero."""
    loads_by_date: dict[date, float] = {}
    for run in runs:
        if not run.is_valid:
            continue
        loads_by_date[run.date] = loads_by_date.get(run.date, 0.0) + compute_tss(run, threshold_pace_sec_per_km)
    if not loads_by_date:
        return []

    start = min(loads_by_date)
    end = as_of or max(loads_by_date)
    series: list[tuple[date, float]] = []
    current = start
    while current <= end:
        series.append((current, loads_by_date.get(current, 0.0)))
        current += timedelta(days=1)
    return series


def ewma_loads(
    series: list[tuple[date, float]],
    acute_days: int = ACUTE_DAYS,
    chronic_days: int = CHRONIC_DAYS,
) -> list[tuple[float, float]]:
    """(acute, chronic) per day, alpha = 2 / (n + 1)."""
    acute_alpha = 2.0 / (acute_days + 1)
    chronic_alpha = 2.0 / (chronic_days + 1)
    acute = 0.0
    chronic = 0.0
    out: list[tuple[float, float]] = []
    for _, load in series:
        acute = acute + acute_alpha * (load - acute)
        chronic = chronic + chronic_alpha * (load - chronic)
        out.append((acute, chronic))
    return out


def load_risk_band(ratio: Optional[float]) -> str:
    if ratio is None:
        return "insufficient_data"
    if ratio < 0.8:
        return "very_low"
    if ratio < 1.0:
        return "low"
    if ratio <= 1.25:
        return "optimal"
    if ratio <= 1.5:
        return "elevated"
    if ratio <= 2.0:
        return "high"
    return "very_high"


def compute_training_load(
    runs: Iterable[RunRecord],
    threshold_pace_sec_per_km: float,
    as_of: Optional[date] = None,
) -> TrainingLoad:
    """Acute/chronic load, ratio, trend and recommendation for a run history."""
    series = daily_loads(runs, threshold_pace_sec_per_km, as_of)
    points = ewma_loads(series)
    if not points or points[-1][1] <= 0:
        return TrainingLoad(
            acute=round(points[-1][0], 1) if points else 0.0,
            chronic=0.0,
            ratio=None,
            trend="stable",
            risk_band="insufficient_data",
            recommendation=_RECOMMENDATIONS["insufficient_data"],
        )

    acute, chronic = points[-1]
    ratio = round(acute / chronic, 2)

    week_ago = points[-8][0] if len(points) >= 8 else 0.0
    trend = "stable"
    if week_ago <= 0:
        trend = "increasing" if acute > 0 else "stable"
    elif acute > week_ago * 1.1:
        trend = "increasing"
    elif acute < week_ago * 0.9:
        trend = "decreasing"

    band = load_risk_band(ratio)
    return TrainingLoad(
        acute=round(acute, 1),
        chronic=round(chronic, 1),
        ratio=ratio,
        trend=trend,
        risk_band=band,
        recommendation=_RECOMMENDATIONS[band],
    )


def compute_weekly_metrics(daily: list[float]) -> WeeklyLoadMetrics:
    """Weekly load summary from daily load values (pass 0.0 for rest days)."""
    if not daily:
        return WeeklyLoadMetrics(
            total_load=0, session_count=0, monotony=0, strain=0, avg_daily_load=0, peak_daily_load=0,
        )

    total = sum(daily)
    count = sum(1 for d in daily if d > 0)
    avg = mean(daily)
    sd = stdev(daily) if len(daily) > 1 else 0
    monotony = round(avg / sd, 2) if sd > 0 else 0.0
    strain = round(total * monotony, 1)

    return WeeklyLoadMetrics(
        total_load=round(total, 1),
        session_count=count,
        monotony=monotony,
        strain=strain,
        avg_daily_load=round(avg, 1),
        peak_daily_load=max(daily),
    )


def overtraining_risk(monotony: float, strain: float) -> str:
    """Classify overtraining risk from TSS-based monotony and strain.

    Returns: 'low', 'moderate', or 'high'.
    """
    if monotony >= 2.0 and strain >= 1800:
        return "high"
    if monotony >= 1.5 or strain >= 1200:
        return "moderate"
    return "low"
