from __future__ import annotations

import random
from datetime import date, timedelta

from periodizer.cache_utils import CalculationCache
from periodizer.config import get_settings
from periodizer.logging_config import get_logger, setup_logging
from periodizer.models import RunRecord
from periodizer.services.generator import fitness_metrics, generate_plan
from periodizer.services.vdot import pace_display

logger = get_logger(__name__)


def sample_runs(end: date, weeks: int = 12, seed: int = 7) -> list[RunRecord]:
    """Synthetic history: four runs a week, long run on Sunday, one 10K race."""
    rng = random.Random(seed)
    runs = []
    start = end - timedelta(weeks=weeks)
    for week in range(weeks):
        monday = start + timedelta(weeks=week)
        for offset, base_km in ((1, 8.0), (3, 10.0), (4, 6.0), (6, 16.0)):
            km = round(base_km * rng.uniform(0.9, 1.1), 1)
            pace = rng.uniform(5.4, 6.0)
            runs.append(RunRecord(
                date=monday + timedelta(days=offset),
                distance_km=km,
                duration_min=round(km * pace, 1),
                avg_heart_rate=rng.randint(138, 152),
                effort_level=rng.randint(3, 5),
            ))
    runs.append(RunRecord(date=end - timedelta(days=10), distance_km=10.0, duration_min=44.5,
                          avg_heart_rate=172, effort_level=9, is_race=True))
    return sorted(runs, key=lambda r: r.date)


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, app_env=settings.app_env)
    cache = CalculationCache(settings.cache_max_entries, settings.cache_ttl_seconds)

    start = date(2026, 1, 5)
    runs = sample_runs(start - timedelta(days=1))
    metrics = fitness_metrics(runs)
    print(f"vdot={metrics.vdot} threshold={pace_display(metrics.threshold_pace_sec_per_km)} "
          f"acwr={metrics.training_load.ratio} risk={metrics.injury_risk}")

    plan = generate_plan(
        {
            "goal": "10K improvement",
            "start_date": start,
            "target_date": start + timedelta(weeks=12),
            "methodology": "daniels",
            "preferences": {"available_days": ["mon", "tue", "wed", "thu", "sat"], "long_run_day": "sat"},
        },
        runs,
        cache=cache,
        settings=settings,
    )
    for block in plan.blocks:
        print(f"{block.phase:<9} {block.weeks} weeks  {', '.join(block.focus_areas[:2])}")
        for week in block.microcycles:
            flag = " deload" if week.is_deload else ""
            print(f"  wk{week.week_number:02d} {week.total_distance_km:6.1f} km  {week.pattern}{flag}")
    s = plan.summary
    print(f"total={s.total_distance_km} km peak={s.peak_weekly_distance_km} km "
          f"distribution={s.intensity_distribution.as_dict()} target={s.target_distribution.as_dict()}")
    logger.info("Demo plan complete", extra={"ctx_cache_hits": cache.counter.hits})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
