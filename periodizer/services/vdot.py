"""Daniels/Gilbert VDOT model.

VDOT is a single aerobic fitness index derived from race performances. This
module holds the oxygen-cost and percent-max equations, the published
training-pace table (E, M, T, I, R in seconds per kilometre) and the
closed-form pace bands derived from fractions of VDOT.

Reference: Daniels' Running Formula, 3rd Edition (2013).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

VDOT_MIN = 30
VDOT_MAX = 85


@dataclass(frozen=True)
class DanielsPaces:
    """Five Daniels training paces in seconds per kilometre."""
    vdot: int
    easy: int
    marathon: int
    threshold: int
    interval: int
    repetition: int


# VDOT -> (E, M, T, I, R) sec/km
_PACE_TABLE: dict[int, tuple[int, int, int, int, int]] = {
    30: (447, 404, 379, 351, 327),
    31: (438, 396, 372, 344, 321),
    32: (429, 388, 364, 337, 314),
    33: (421, 381, 357, 331, 308),
    34: (413, 374, 350, 324, 302),
    35: (405, 367, 344, 318, 296),
    36: (398, 360, 337, 312, 291),
    37: (390, 354, 331, 307, 286),
    38: (383, 347, 325, 301, 280),
    39: (377, 341, 320, 296, 275),
    40: (370, 335, 314, 291, 270),
    41: (364, 330, 309, 286, 266),
    42: (358, 324, 304, 281, 261),
    43: (352, 319, 299, 277, 257),
    44: (346, 314, 294, 272, 253),
    45: (341, 309, 289, 268, 249),
    46: (336, 304, 285, 264, 245),
    47: (330, 300, 281, 260, 241),
    48: (326, 295, 277, 256, 237),
    49: (321, 291, 273, 252, 234),
    50: (316, 287, 269, 248, 230),
    51: (312, 283, 265, 245, 227),
    52: (307, 279, 261, 241, 224),
    53: (303, 275, 258, 238, 221),
    54: (299, 271, 254, 235, 218),
    55: (295, 268, 251, 232, 215),
    56: (291, 264, 248, 229, 212),
    57: (287, 261, 245, 226, 210),
    58: (284, 258, 242, 223, 207),
    59: (280, 255, 239, 220, 205),
    60: (277, 252, 236, 218, 202),
    61: (274, 249, 233, 215, 200),
    62: (270, 246, 231, 213, 198),
    63: (267, 243, 228, 210, 195),
    64: (264, 241, 226, 208, 193),
    65: (261, 238, 223, 206, 191),
    66: (258, 235, 221, 204, 189),
    67: (256, 233, 219, 201, 187),
    68: (253, 231, 216, 199, 185),
    69: (250, 228, 214, 197, 183),
    70: (248, 226, 212, 195, 181),
    71: (245, 224, 210, 193, 179),
    72: (243, 222, 208, 191, 178),
    73: (241, 220, 206, 190, 176),
    74: (238, 218, 204, 188, 174),
    75: (236, 216, 202, 186, 173),
    76: (234, 214, 200, 184, 171),
    77: (232, 212, 198, 183, 170),
    78: (230, 210, 196, 181, 168),
    79: (228, 208, 195, 179, 167),
    80: (226, 206, 193, 178, 165),
    81: (224, 205, 191, 176, 164),
    82: (222, 203, 190, 175, 162),
    83: (220, 201, 188, 173, 161),
    84: (218, 200, 187, 172, 160),
    85: (217, 198, 185, 170, 158),
}


def clamp_vdot(vdot: float) -> float:
    return max(float(VDOT_MIN), min(float(VDOT_MAX), float(vdot)))


def get_paces(vdot: float) -> DanielsPaces:
    """Daniels training paces for a VDOT, interpolated between table rows."""
    clamped = clamp_vdot(vdot)
    lo = int(math.floor(clamped))
    hi = min(VDOT_MAX, lo + 1)
    frac = clamped - lo
    lo_p, hi_p = _PACE_TABLE[lo], _PACE_TABLE[hi]
    vals = [round(a + frac * (b - a)) for a, b in zip(lo_p, hi_p)]
    return DanielsPaces(
        vdot=int(round(clamped)),
        easy=vals[0],
        marathon=vals[1],
        threshold=vals[2],
        interval=vals[3],
        repetition=vals[4],
    )


def pace_display(sec_per_km: Optional[float]) -> str:
    """Format seconds-per-km as 'M:SS/km'."""
    if not sec_per_km or sec_per_km <= 0:
        return "n/a"
    total = int(round(sec_per_km))
    return f"{total // 60}:{total % 60:02d}/km"


def vo2_from_velocity(v_m_per_min: float) -> float:
    """Oxygen cost (mL/kg/min) of running at v metres per minute."""
    return -4.60 + 0.182258 * v_m_per_min + 0.000104 * v_m_per_min * v_m_per_min


def percent_max(t_min: float) -> float:
    """Fraction of VO2max sustainable for t_min minutes."""
    return 0.8 + 0.1894393 * math.exp(-0.012778 * t_min) + 0.2989558 * math.exp(-0.1932605 * t_min)


def vdot_from_performance(distance_m: float, time_seconds: float) -> Optional[float]:
    """Raw VDOT for a performance, or None when the inputs cannot be scored."""
    if distance_m <= 0 or time_seconds <= 0:
        return None
    t_min = time_seconds / 60.0
    vo2 = vo2_from_velocity(distance_m / t_min)
    pct = percent_max(t_min)
    if pct <= 0 or vo2 <= 0:
        return None
    return vo2 / pct


def speed_for_vo2(vo2_cost: float) -> Optional[float]:
    """Invert the oxygen-cost quadratic: metres per minute for a VO2 cost."""
    a = 0.000104
    b = 0.182258
    c = -4.60 - float(vo2_cost)
    disc = (b * b) - (4 * a * c)
    if disc <= 0:
        return None
    root = (-b + math.sqrt(disc)) / (2 * a)
    if not math.isfinite(root) or root <= 0:
        return None
    return float(root)


def pace_for_speed(speed_m_per_min: Optional[float]) -> Optional[float]:
    if not speed_m_per_min or speed_m_per_min <= 0:
        return None
    return 60000.0 / float(speed_m_per_min)


# Training intensity bands as fractions of VDOT oxygen cost
VDOT_CODE_FRACTIONS: dict[str, tuple[float, float]] = {
    "E": (0.59, 0.74),
    "M": (0.75, 0.84),
    "T": (0.83, 0.88),
    "I": (0.95, 1.00),
    "R": (1.03, 1.10),
}


def vdot_pace_band(vdot: float, code: str) -> Optional[tuple[float, float]]:
    """(fast, slow) sec/km band for a Daniels intensity code."""
    token = str(code or "").strip().upper()
    if token not in VDOT_CODE_FRACTIONS or not vdot or vdot <= 0:
        return None
    lo_frac, hi_frac = VDOT_CODE_FRACTIONS[token]
    paces = [pace_for_speed(speed_for_vo2(vdot * frac)) for frac in (lo_frac, hi_frac)]
    if any(p is None for p in paces):
        return None
    return (min(paces), max(paces))


def daniels_pace_band(code: str, vdot: float) -> tuple[int, int]:
    """Table-based (fast, slow) band: ±3% for E/M, ±2% for T/I/R."""
    paces = get_paces(vdot)
    mapping = {"E": paces.easy, "M": paces.marathon, "T": paces.threshold, "I": paces.interval, "R": paces.repetition}
    token = str(code or "").strip().upper()
    centre = mapping.get(token)
    if centre is None:
        return (0, 0)
    margin = max(1, round(centre * (0.03 if token in ("E", "M") else 0.02)))
    return (centre - margin, centre + margin)
