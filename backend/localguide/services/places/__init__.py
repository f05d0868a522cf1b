"""Place-search origin (Geoapify Places API)."""

from .service import (
    DEFAULT_PLACE_CATEGORIES,
    GeoapifyPlacesService,
    PlaceSearchError,
    PlaceSearchOrigin,
    transform_feature,
    transform_response,
)

__all__ = [
    "DEFAULT_PLACE_CATEGORIES",
    "GeoapifyPlacesService",
    "PlaceSearchError",
    "PlaceSearchOrigin",
    "transform_feature",
    "transform_response",
]
