"""Geoapify Places API client.

This is the place-search origin: the source of truth for business
locations. It knows nothing about caching; ``BusinessService`` puts the
GeoResultCache in front of it.

Every call may fail with a transient network error. Failures surface as
``PlaceSearchError`` so the cache layer can decide whether stale data
is available.
"""

import logging
from collections.abc import Sequence
from typing import Any, Optional, Protocol

import httpx

from localguide.models import Place, PlaceAddress, PlaceDetails

logger = logging.getLogger(__name__)

DEFAULT_PLACE_CATEGORIES = [
    "catering.restaurant",
    "catering.fast_food",
    "catering.cafe",
]


class PlaceSearchError(Exception):
    """The origin could not answer a request."""


class PlaceSearchOrigin(Protocol):
    """Interface of the remote place-search service."""

    async def search_nearby(
        self,
        lat: float,
        lon: float,
        radius: float,
        categories: Sequence[str],
        limit: int = 20,
        offset: int = 0,
    ) -> list[Place]:
        ...

    async def search_by_name(
        self,
        name: str,
        lat: float,
        lon: float,
        radius: float,
        categories: Sequence[str],
        limit: int = 20,
    ) -> list[Place]:
        ...

    async def get_place_details(self, place_id: str) -> Place:
        ...


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def transform_feature(feature: dict) -> Place:
    """Convert one GeoJSON feature from Geoapify into a :class:`Place`."""
    props = feature.get("properties") or {}
    geometry = feature.get("geometry") or {}
    coordinates = geometry.get("coordinates") or []
    raw = (props.get("datasource") or {}).get("raw") or {}

    lon = coordinates[0] if len(coordinates) >= 2 else props.get("lon")
    lat = coordinates[1] if len(coordinates) >= 2 else props.get("lat")

    takeaway = props.get("takeaway")
    if takeaway is None:
        takeaway = raw.get("takeaway") in ("yes", "only")

    return Place(
        place_id=props["place_id"],
        name=props.get("name") or "Unnamed Place",
        formatted=props.get("formatted") or "Address not available",
        lat=float(lat),
        lon=float(lon),
        categories=props.get("categories") or [],
        address=PlaceAddress(
            street=props.get("street"),
            city=props.get("city"),
            state=props.get("state"),
            postcode=props.get("postcode"),
            country=props.get("country"),
        ),
        details=PlaceDetails(
            cuisine=_first((props.get("catering") or {}).get("cuisine")) or raw.get("cuisine"),
            brand=props.get("brand") or raw.get("brand"),
            takeaway=bool(takeaway),
        ),
        distance=props.get("distance"),
    )


def transform_response(data: dict) -> list[Place]:
    features = data.get("features")
    if not features:
        logger.info("[PLACES] No features found")
        return []

    places = []
    for feature in features:
        try:
            places.append(transform_feature(feature))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"[PLACES] Skipping malformed feature: {e}")
    return places


class GeoapifyPlacesService:
    """Geoapify Places API client.

    Uses a shared httpx client. The client timeout is the only timeout
    applied to origin calls.
    """

    HEADERS = {"User-Agent": "LocalGuide/1.0", "Accept": "application/json"}

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.geoapify.com/v2",
        timeout: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self.HEADERS,
                limits=httpx.Limits(max_connections=8, max_keepalive_connections=4),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self._api_key:
            raise PlaceSearchError("GEOAPIFY_API_KEY is not configured")

        try:
            response = await self._get_client().get(
                f"{self._base_url}/{path}",
                params={**params, "apiKey": self._api_key},
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[PLACES] Geoapify API error: {e.response.status_code}")
            raise PlaceSearchError(f"Geoapify API error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[PLACES] Geoapify request failed: {type(e).__name__}: {e}")
            raise PlaceSearchError("Failed to fetch places from Geoapify") from e

    async def search_nearby(
        self,
        lat: float,
        lon: float,
        radius: float = 5000,
        categories: Sequence[str] = DEFAULT_PLACE_CATEGORIES,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Place]:
        """Places inside a circle, nearest first."""
        logger.info(f"[PLACES] Fetching nearby places ({lat:.4f}, {lon:.4f}, r={radius})")
        params: dict[str, Any] = {
            "categories": ",".join(categories or DEFAULT_PLACE_CATEGORIES),
            "filter": f"circle:{lon},{lat},{radius}",
            "bias": f"proximity:{lon},{lat}",
            "limit": limit,
        }
        if offset:
            params["offset"] = offset
        return transform_response(await self._get("places", params))

    async def search_by_name(
        self,
        name: str,
        lat: float,
        lon: float,
        radius: float = 5000,
        categories: Sequence[str] = DEFAULT_PLACE_CATEGORIES,
        limit: int = 20,
    ) -> list[Place]:
        """Places inside a circle whose name matches ``name``."""
        if not name.strip():
            return []
        params = {
            "categories": ",".join(categories or DEFAULT_PLACE_CATEGORIES),
            "filter": f"circle:{lon},{lat},{radius}",
            "name": name.strip(),
            "limit": limit,
        }
        return transform_response(await self._get("places", params))

    async def get_place_details(self, place_id: str) -> Place:
        if not place_id:
            raise ValueError("place_id cannot be empty")
        places = transform_response(await self._get("place-details", {"id": place_id}))
        if not places:
            raise PlaceSearchError(f"Place not found: {place_id}")
        return places[0]
