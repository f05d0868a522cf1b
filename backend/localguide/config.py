"""Runtime configuration for the Local Guide sync layer.

Values come from the environment (a local ``.env`` file is loaded first).
Everything has a usable default so the service can start without a
reviews backend or Redis.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value == "true":
        return True
    if value == "false":
        return False
    return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Storage keys are versioned so the persisted schema can change later.
NEARBY_CACHE_PREFIX = "nearbyBusinesses_v1"
OFFLINE_QUEUE_KEY = "offlineMutations_v1"

MAX_OFFLINE_MUTATIONS = 50
NEARBY_CACHE_MAX_AGE_MS = 6 * 60 * 60 * 1000

DEFAULT_LATITUDE = 14.5995
DEFAULT_LONGITUDE = 120.9842
DEFAULT_RADIUS_METERS = 5000
DEFAULT_PAGE_SIZE = 20

REVIEW_RATE_LIMIT_ATTEMPTS = 5
REVIEW_RATE_LIMIT_WINDOW_MS = 60 * 1000


@dataclass
class Settings:
    """Settings snapshot read from the environment."""

    geoapify_api_key: str | None = field(default_factory=lambda: os.getenv("GEOAPIFY_API_KEY"))
    geoapify_base_url: str = field(
        default_factory=lambda: os.getenv("GEOAPIFY_BASE_URL", "https://api.geoapify.com/v2")
    )
    api_base_url: str | None = field(default_factory=lambda: os.getenv("API_BASE_URL"))
    redis_url: str | None = field(default_factory=lambda: os.getenv("REDIS_URL"))
    connectivity_probe_url: str = field(
        default_factory=lambda: os.getenv(
            "CONNECTIVITY_PROBE_URL", "https://clients3.google.com/generate_204"
        )
    )
    nearby_cache_max_age_ms: int = field(
        default_factory=lambda: int(
            _env_float("NEARBY_CACHE_MAX_AGE_HOURS", 6) * 60 * 60 * 1000
        )
    )
    default_latitude: float = field(
        default_factory=lambda: _env_float("DEFAULT_LATITUDE", DEFAULT_LATITUDE)
    )
    default_longitude: float = field(
        default_factory=lambda: _env_float("DEFAULT_LONGITUDE", DEFAULT_LONGITUDE)
    )
    enable_debug_logging: bool = field(
        default_factory=lambda: _env_bool("ENABLE_DEBUG_LOGGING", False)
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
