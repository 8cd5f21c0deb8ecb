"""Environmental pace corrections.

Altitude, heat, humidity and terrain each slow the pace an athlete can hold
at a given effort. The factors multiply into one value <= 1.0 that pace
targets are divided by; heart-rate and RPE targets are left alone.
"""

from __future__ import annotations

from typing import Optional

# (upper bound exclusive, factor); last entry catches everything above
_ALTITUDE_BANDS = [(1000.0, 1.0), (2000.0, 0.98), (3000.0, 0.94), (float("inf"), 0.88)]
_HUMIDITY_BANDS = [(40.0, 1.0), (60.0, 0.98), (float("inf"), 0.95)]

TERRAIN_FACTORS = {"flat": 1.0, "mixed": 0.98, "hilly": 0.97, "trail": 0.93}


def _banded(value: float, bands: list[tuple[float, float]]) -> float:
    for upper, factor in bands:
        if value < upper:
            return factor
    return bands[-1][1]


def altitude_factor(altitude_m: Optional[float]) -> float:
    if altitude_m is None:
        return 1.0
    return _banded(altitude_m, _ALTITUDE_BANDS)


def temperature_factor(temperature_c: Optional[float]) -> float:
    if temperature_c is None:
        return 1.0
    if temperature_c < 5:
        return 0.98
    if temperature_c <= 15:
        return 1.0
    if temperature_c <= 25:
        return 0.97
    return 0.92


def humidity_factor(humidity_pct: Optional[float]) -> float:
    if humidity_pct is None:
        return 1.0
    return _banded(humidity_pct, _HUMIDITY_BANDS)


def terrain_factor(terrain: Optional[str]) -> float:
    return TERRAIN_FACTORS.get(str(terrain or "flat").lower(), 1.0)


def environment_factor(environment) -> float:
    """Combined pace factor for an EnvironmentalFactors (None means neutral)."""
    if environment is None:
        return 1.0
    factor = (
        altitude_factor(environment.altitude_m)
        * temperature_factor(environment.temperature_c)
        * humidity_factor(environment.humidity_pct)
        * terrain_factor(environment.terrain)
    )
    return round(factor, 4)


def adjust_pace(pace_sec_per_km: float, factor: float) -> float:
    """Slow a pace target by an environment factor."""
    if factor <= 0:
        return pace_sec_per_km
    return pace_sec_per_km / factor
