"""Core data models for Local Guide.

Pydantic models for locations, place records returned by the search
origin, the app-level business records derived from them, and the
cache/fetch envelopes used by the sync layer.
"""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class LocationSnapshot(BaseModel):
    """A single device location reading.

    Frozen: consumers receive copies and must not expect live updates.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class PlaceAddress(BaseModel):
    """Structured address parts of a place."""

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class PlaceDetails(BaseModel):
    """Extra venue details extracted from raw origin tags."""

    cuisine: Optional[str] = None
    brand: Optional[str] = None
    takeaway: bool = False


class Place(BaseModel):
    """A place record as returned by the place-search origin."""

    place_id: str = Field(..., min_length=1)
    name: str = "Unnamed Place"
    formatted: str = "Address not available"
    lat: float
    lon: float
    categories: list[str] = Field(default_factory=list)
    address: PlaceAddress = Field(default_factory=PlaceAddress)
    details: PlaceDetails = Field(default_factory=PlaceDetails)
    distance: Optional[float] = None


class ReviewStats(BaseModel):
    """Aggregated review numbers for one business."""

    rating: float = 0.0
    review_count: int = 0


class Business(BaseModel):
    """App-level business record shown to users.

    Built from a :class:`Place` plus review statistics from the
    reviews backend.
    """

    id: str
    place_id: str
    name: str
    category: str
    rating: float = 0.0
    review_count: int = 0
    price_level: int = Field(2, ge=1, le=4, description="1-4 ($ to $$$$)")
    image_url: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    hours: dict[str, str] = Field(default_factory=dict)
    coordinates: LocationSnapshot
    photos: list[str] = Field(default_factory=list)
    description: str = ""
    features: list[str] = Field(default_factory=list)
    source: str = "geoapify"
    city: Optional[str] = None
    country: Optional[str] = None


class Freshness(str, Enum):
    """Where a fetch result came from."""

    FRESH = "fresh"
    CACHED = "cached"
    STALE = "stale"


class CacheEntry(BaseModel, Generic[T]):
    """A persisted cache entry. Replaced wholesale on every write."""

    model_config = ConfigDict(frozen=True)

    key: str
    payload: T
    updated_at: int = Field(..., description="Epoch milliseconds of the write")


class FetchResult(BaseModel, Generic[T]):
    """Result of a cache-backed fetch, tagged with its freshness.

    ``STALE`` means the origin failed and the last good result for the
    same request was served instead.
    """

    data: T
    freshness: Freshness = Freshness.FRESH
    updated_at: Optional[int] = None

    @property
    def is_stale(self) -> bool:
        return self.freshness == Freshness.STALE
