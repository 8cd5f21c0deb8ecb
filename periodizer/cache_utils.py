from __future__ import annotations

import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from periodizer.models import RunRecord


@dataclass
class CacheCounter:
    hits: int = 0
    misses: int = 0


class CalculationCache:
    """Bounded LRU cache whose entries also expire after ``ttl_seconds``.

    Instances are passed explicitly to the functions that use them; nothing in
    the package keeps a module-level cache.
    """

    def __init__(
        self,
        max_entries: int = 128,
        ttl_seconds: int = 300,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.max_entries = max(1, int(max_entries))
        self.ttl = ttl_seconds
        self._clock = clock or time.monotonic
        self._store: OrderedDict[str, tuple[float, object]] = OrderedDict()
        self.counter = CacheCounter()

    def set(self, key: str, value: object) -> None:
        self._store[key] = (self._clock(), value)
        self._store.move_to_end(key)
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    def get(self, key: str):
        item = self._store.get(key)
        if not item:
            self.counter.misses += 1
            return None
        ts, val = item
        if self._clock() - ts > self.ttl:
            self._store.pop(key, None)
            self.counter.misses += 1
            return None
        self._store.move_to_end(key)
        self.counter.hits += 1
        return val

    def get_or_compute(self, key: str, compute: Callable[[], object]):
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)


def run_set_key(prefix: str, runs: Iterable[RunRecord], *extra: object) -> str:
    """Content hash over every field of every run plus any extra arguments."""
    digest = hashlib.sha256()
    digest.update(prefix.encode("utf-8"))
    for run in runs:
        digest.update(
            "|".join(
                str(v)
                for v in (
                    run.date.isoformat(),
                    run.distance_km,
                    run.duration_min,
                    run.avg_pace_min_per_km,
                    run.avg_heart_rate,
                    run.max_heart_rate,
                    run.elevation_gain_m,
                    run.effort_level,
                    run.temperature_c,
                    run.is_race,
                )
            ).encode("utf-8")
        )
        digest.update(b";")
    for item in extra:
        digest.update(b"#" + repr(item).encode("utf-8"))
    return f"{prefix}:{digest.hexdigest()}"
