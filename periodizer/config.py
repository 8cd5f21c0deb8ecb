"""Engine settings with environment-specific profiles.

Supports dev, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Immutable engine settings resolved from environment."""

    app_env: str = "dev"
    log_level: str = "INFO"

    # Fitness calculation cache
    cache_max_entries: int = 128
    cache_ttl_seconds: int = 300

    # Scheduling
    min_session_minutes: int = 20
    intensity_tolerance_pct: float = 10.0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "cache_max_entries": 32,
    },
    "staging": {
        "log_level": "INFO",
        "cache_max_entries": 128,
    },
    "production": {
        "log_level": "WARNING",
        "cache_max_entries": 512,
        "cache_ttl_seconds": 900,
    },
}


def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", str(profile.get("cache_max_entries", 128)))),
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", str(profile.get("cache_ttl_seconds", 300)))),
        min_session_minutes=int(os.getenv("MIN_SESSION_MINUTES", "20")),
        intensity_tolerance_pct=float(os.getenv("INTENSITY_TOLERANCE_PCT", "10")),
    )
