"""Training zones relative to threshold speed and heart rate.

Pace targets scale off the athlete's threshold pace: a zone at 90-95% of
threshold speed runs at threshold_pace / 0.95 .. threshold_pace / 0.90.
Heart-rate targets use the Karvonen reserve method when resting HR is known,
otherwise a plain percentage of max HR, otherwise nothing.
"""

from __future__ import annotations

from typing import Optional

from periodizer.models import Zone

ZONES: dict[str, Zone] = {
    # open-ended below 75%; 65% caps the slow end of the pace band
    "recovery": Zone("recovery", "Recovery", 70.0, (65.0, 75.0), (50.0, 60.0), (1, 2)),
    "easy": Zone("easy", "Easy Aerobic", 80.0, (75.0, 85.0), (60.0, 70.0), (2, 3)),
    "steady": Zone("steady", "Steady State", 87.5, (85.0, 90.0), (70.0, 80.0), (4, 5)),
    "tempo": Zone("tempo", "Tempo", 92.5, (90.0, 95.0), (80.0, 87.0), (5, 6)),
    "threshold": Zone("threshold", "Lactate Threshold", 97.5, (95.0, 100.0), (87.0, 92.0), (6, 7)),
    "vo2max": Zone("vo2max", "VO2 Max", 110.0, (105.0, 115.0), (92.0, 97.0), (8, 9)),
    "neuromuscular": Zone("neuromuscular", "Neuromuscular Power", 122.5, (115.0, 130.0), (97.0, 100.0), (9, 10)),
}

ZONE_ORDER = ["recovery", "easy", "steady", "tempo", "threshold", "vo2max", "neuromuscular"]

_CADENCE_SPM = {"vo2max": 180, "neuromuscular": 188}


def zone_for_intensity(intensity_pct: float) -> Zone:
    """Zone whose speed band holds the given % of threshold speed (nearest when none does)."""
    for key in ZONE_ORDER:
        lo, hi = ZONES[key].speed_pct
        if lo <= intensity_pct <= hi:
            return ZONES[key]
    return min(ZONES.values(), key=lambda z: abs(z.intensity - intensity_pct))


def pace_range(
    zone_key: str,
    threshold_pace_sec_per_km: float,
    environment_factor: float = 1.0,
) -> Optional[tuple[int, int]]:
    """(fast, slow) sec/km for a zone, slowed by an environment factor <= 1."""
    zone = ZONES.get(zone_key)
    if zone is None or not threshold_pace_sec_per_km or threshold_pace_sec_per_km <= 0:
        return None
    factor = environment_factor if environment_factor > 0 else 1.0
    lo, hi = zone.speed_pct
    fast = threshold_pace_sec_per_km / (hi / 100.0) / factor
    slow = threshold_pace_sec_per_km / (lo / 100.0) / factor
    return (int(round(fast)), int(round(slow)))


def centre_pace(zone_key: str, threshold_pace_sec_per_km: float, environment_factor: float = 1.0) -> float:
    """Pace at the zone's nominal intensity; used to convert distance to duration."""
    zone = ZONES[zone_key]
    factor = environment_factor if environment_factor > 0 else 1.0
    return threshold_pace_sec_per_km / (zone.intensity / 100.0) / factor


def heart_rate_range(
    zone_key: str,
    max_hr: Optional[int],
    resting_hr: Optional[int] = None,
) -> Optional[tuple[int, int]]:
    """(low, high) bpm for a zone; None without a usable max HR."""
    zone = ZONES.get(zone_key)
    if zone is None or not max_hr:
        return None
    lo, hi = zone.hr_pct
    if resting_hr and max_hr > resting_hr:
        hrr = max_hr - resting_hr
        return (round(resting_hr + lo / 100.0 * hrr), round(resting_hr + hi / 100.0 * hrr))
    return (round(max_hr * lo / 100.0), round(max_hr * hi / 100.0))


def cadence_for_zone(zone_key: str) -> Optional[int]:
    return _CADENCE_SPM.get(zone_key)
