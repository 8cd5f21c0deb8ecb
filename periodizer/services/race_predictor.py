"""Race time prediction from VDOT.

Race-pace workouts target the pace the athlete's current VDOT predicts for
the goal distance, solved from Daniels' oxygen cost model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from periodizer.services.vdot import get_paces, percent_max, vo2_from_velocity

RACE_DISTANCES_M: dict[str, float] = {
    "5K": 5000.0,
    "10K": 10000.0,
    "Half Marathon": 21097.5,
    "Marathon": 42195.0,
    "50K": 50000.0,
}

GOAL_RACE_DISTANCE_M: dict[str, Optional[float]] = {
    "first_5k": 5000.0,
    "improve_5k": 5000.0,
    "first_10k": 10000.0,
    "improve_10k": 10000.0,
    "half_marathon": 21097.5,
    "marathon": 42195.0,
    "ultra": 50000.0,
    "general_fitness": None,
}


@dataclass(frozen=True)
class RacePrediction:
    """Predicted finish time for a target distance."""
    distance_label: str
    distance_m: float
    predicted_seconds: float
    predicted_display: str
    method: str
    vdot_used: Optional[float] = None


def format_time(seconds: float) -> str:
    """Format seconds as H:MM:SS or M:SS."""
    total = int(round(seconds))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def predict_race_time(vdot: float, target_distance_m: float) -> float:
    """Predict finish time (seconds) from VDOT using the Daniels/Gilbert model.

    Iteratively solves for the time at which the oxygen cost of the implied
    velocity divided by the sustainable fraction of VO2max equals the VDOT.
    """
    if vdot <= 0 or target_distance_m <= 0:
        return 0.0

    paces = get_paces(vdot)
    # Initial estimate: marathon pace * distance
    est_seconds = paces.marathon * (target_distance_m / 1000.0)

    for _ in range(200):
        t_min = est_seconds / 60.0
        if t_min <= 0:
            break
        velocity = target_distance_m / t_min
        vo2 = vo2_from_velocity(velocity)
        pct = percent_max(t_min)
        if pct <= 0:
            break
        error = vo2 / pct - vdot
        if abs(error) < 0.01:
            break
        # Estimated VDOT too high means the guess is too fast: slow down
        est_seconds *= 1 + error * 0.01

    return max(0.0, round(est_seconds, 1))


def race_pace_sec_per_km(vdot: float, goal: str) -> Optional[float]:
    """Goal race pace in sec/km, or None for goals without a race distance."""
    distance_m = GOAL_RACE_DISTANCE_M.get(goal)
    if not distance_m:
        return None
    seconds = predict_race_time(vdot, distance_m)
    if seconds <= 0:
        return None
    return round(seconds / (distance_m / 1000.0), 1)


def predict_all_distances(vdot: float) -> dict[str, RacePrediction]:
    """VDOT prediction for every standard distance."""
    results: dict[str, RacePrediction] = {}
    for label, distance_m in RACE_DISTANCES_M.items():
        seconds = predict_race_time(vdot, distance_m)
        results[label] = RacePrediction(
            distance_label=label,
            distance_m=distance_m,
            predicted_seconds=seconds,
            predicted_display=format_time(seconds),
            method="vdot",
            vdot_used=vdot,
        )
    return results
