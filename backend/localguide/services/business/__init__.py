"""Business service module.

Cache-backed nearby, paged and filtered searches plus single-business
lookups built on the place-search origin and the reviews backend.
"""

from .service import BusinessService, filter_businesses

__all__ = ["BusinessService", "filter_businesses"]
