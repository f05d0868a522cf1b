"""Geo result cache and key builders."""

from .keys import nearby_cache_key, request_signature
from .service import GeoResultCache

__all__ = ["GeoResultCache", "nearby_cache_key", "request_signature"]
