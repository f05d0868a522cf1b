"""Cache-backed business fetch functions.

Read path for a nearby search:
1. Persisted tier (skipped on force refresh). A fresh entry is served
   as-is; an expired one is kept aside.
2. Volatile tier / origin via ``GeoResultCache.fetch_through``. An
   expired persisted entry skips the volatile tier so the origin is
   asked again. The origin failing degrades to the last good volatile
   result.
3. If the origin failed with nothing in the volatile tier, an expired
   persisted entry is served as stale rather than raising.

On a fresh origin result the expired persisted entry is removed and the
new one is written in the background.
"""

import logging
from collections.abc import Sequence

from localguide.config import DEFAULT_PAGE_SIZE, DEFAULT_RADIUS_METERS
from localguide.models import (
    Business,
    FetchResult,
    Freshness,
    OriginUnavailableError,
    Place,
)
from localguide.services.cache import GeoResultCache, nearby_cache_key, request_signature
from localguide.services.places import PlaceSearchOrigin
from localguide.services.reviews import NullReviewGateway, ReviewGateway
from localguide.utils.business_mapper import map_app_categories, map_place_to_business

logger = logging.getLogger(__name__)


class BusinessService:
    """Business lookups for the API layer."""

    def __init__(
        self,
        origin: PlaceSearchOrigin,
        cache: GeoResultCache,
        reviews: ReviewGateway | None = None,
    ) -> None:
        self._origin = origin
        self._cache = cache
        self._reviews: ReviewGateway = reviews or NullReviewGateway()

    @property
    def cache(self) -> GeoResultCache:
        return self._cache

    async def _attach_reviews(self, places: Sequence[Place]) -> list[Business]:
        try:
            stats = await self._reviews.get_review_stats([p.place_id for p in places])
        except Exception as e:
            logger.warning(f"[BUSINESS] Review stats unavailable, using zeros: {e}")
            stats = {}
        return [map_place_to_business(place, stats.get(place.place_id)) for place in places]

    async def get_nearby_businesses(
        self,
        lat: float,
        lng: float,
        radius: float = DEFAULT_RADIUS_METERS,
        categories: Sequence[str] = (),
        force_refresh: bool = False,
    ) -> FetchResult[list[Business]]:
        """Nearby businesses, served from cache when possible.

        Raises:
            OriginUnavailableError: The origin failed and nothing at all
                is cached for this query.
        """
        key = nearby_cache_key(lat, lng, radius, categories)

        expired = None
        if not force_refresh:
            entry = await self._cache.read_persisted(key)
            if entry is not None:
                if not self._cache.is_expired(entry):
                    logger.info(f"[BUSINESS] Persisted cache HIT: {key}")
                    return FetchResult(
                        data=entry.payload, freshness=Freshness.CACHED, updated_at=entry.updated_at
                    )
                logger.info(f"[BUSINESS] Persisted entry expired: {key}")
                expired = entry

        origin_categories = map_app_categories(categories)
        signature = request_signature(lat, lng, radius, origin_categories, DEFAULT_PAGE_SIZE, 0)
        try:
            result = await self._cache.fetch_through(
                signature,
                lambda: self._origin.search_nearby(
                    lat, lng, radius, origin_categories, DEFAULT_PAGE_SIZE, 0
                ),
                force_refresh=force_refresh or expired is not None,
            )
        except OriginUnavailableError:
            if expired is None:
                raise
            logger.warning(f"[BUSINESS] Origin down, serving expired entry: {key}")
            return FetchResult(
                data=expired.payload, freshness=Freshness.STALE, updated_at=expired.updated_at
            )

        businesses = await self._attach_reviews(result.data)
        if result.freshness == Freshness.FRESH:
            if expired is not None:
                await self._cache.remove_persisted(key)
            self._cache.write_persisted(key, businesses)

        return FetchResult(data=businesses, freshness=result.freshness, updated_at=result.updated_at)

    async def get_nearby_businesses_page(
        self,
        lat: float,
        lng: float,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        radius: float = DEFAULT_RADIUS_METERS,
        categories: Sequence[str] = (),
        force_refresh: bool = False,
    ) -> FetchResult[list[Business]]:
        """One page of nearby businesses. Pages are cached in the volatile tier only."""
        if page < 1:
            raise ValueError("page must be >= 1")
        offset = (page - 1) * page_size
        origin_categories = map_app_categories(categories)
        signature = request_signature(lat, lng, radius, origin_categories, page_size, offset)

        result = await self._cache.fetch_through(
            signature,
            lambda: self._origin.search_nearby(
                lat, lng, radius, origin_categories, page_size, offset
            ),
            force_refresh=force_refresh,
        )
        businesses = await self._attach_reviews(result.data)
        return FetchResult(data=businesses, freshness=result.freshness, updated_at=result.updated_at)

    async def search_businesses(
        self,
        query: str,
        lat: float,
        lng: float,
        radius: float = DEFAULT_RADIUS_METERS,
        categories: Sequence[str] = (),
    ) -> FetchResult[list[Business]]:
        """Nearby businesses matching ``query`` on name, address or features."""
        if not query.strip():
            return FetchResult(data=[], freshness=Freshness.FRESH)

        result = await self.get_nearby_businesses(lat, lng, radius, categories)
        return FetchResult(
            data=filter_businesses(result.data, query),
            freshness=result.freshness,
            updated_at=result.updated_at,
        )

    async def get_business_by_id(self, place_id: str) -> Business | None:
        """Single business with its review stats, or None when it cannot be loaded."""
        try:
            place = await self._origin.get_place_details(place_id)
        except Exception as e:
            logger.error(f"[BUSINESS] Error fetching business details for {place_id}: {e}")
            return None
        businesses = await self._attach_reviews([place])
        return businesses[0]


def filter_businesses(businesses: Sequence[Business], query: str) -> list[Business]:
    """Case-insensitive match on name, address and features."""
    q = query.strip().lower()
    if not q:
        return list(businesses)
    return [
        b
        for b in businesses
        if q in b.name.lower()
        or q in b.address.lower()
        or any(q in feature.lower() for feature in b.features)
    ]
