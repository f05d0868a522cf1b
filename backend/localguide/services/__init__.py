"""Local Guide Services.

Service layer components:
- Storage: durable key/value store (Redis, in-memory fallback)
- Connectivity: network monitor and protected-action gate
- Location: process-wide location coordinator
- Offline queue: bounded FIFO queue of writes made offline
- Cache: two-tier geo result cache with stale-on-error fallback
- Places: Geoapify place-search origin
- Reviews: reviews backend adapter and offline replay handler
- Business: cache-backed business fetch functions
"""

from .storage import InMemoryKeyValueStorage, KeyValueStorage, RedisKeyValueStorage
from .connectivity import (
    ConnectivityGate,
    ConnectivityMonitor,
    ProtectedActionOptions,
)
from .location import LocationCoordinator, location_coordinator
from .offline_queue import OfflineMutationQueue
from .cache import GeoResultCache, nearby_cache_key
from .places import GeoapifyPlacesService, PlaceSearchError
from .reviews import HttpReviewGateway, NullReviewGateway, ReviewGateway
from .business import BusinessService

__all__ = [
    # Storage
    "InMemoryKeyValueStorage",
    "KeyValueStorage",
    "RedisKeyValueStorage",
    # Connectivity
    "ConnectivityGate",
    "ConnectivityMonitor",
    "ProtectedActionOptions",
    # Location
    "LocationCoordinator",
    "location_coordinator",
    # Offline queue
    "OfflineMutationQueue",
    # Cache
    "GeoResultCache",
    "nearby_cache_key",
    # Origin and backends
    "GeoapifyPlacesService",
    "PlaceSearchError",
    "HttpReviewGateway",
    "NullReviewGateway",
    "ReviewGateway",
    # Business
    "BusinessService",
]
