"""Location service module.

The process-wide coordinator that deduplicates device location queries
and broadcasts snapshots to subscribers.
"""

from .service import (
    DEFAULT_LOCATION,
    LocationCoordinator,
    LocationPermissionError,
    LocationProvider,
    StaticLocationProvider,
    get_current_location,
    location_coordinator,
    refresh_location,
    subscribe,
)

__all__ = [
    "DEFAULT_LOCATION",
    "LocationCoordinator",
    "LocationPermissionError",
    "LocationProvider",
    "StaticLocationProvider",
    "get_current_location",
    "location_coordinator",
    "refresh_location",
    "subscribe",
]
