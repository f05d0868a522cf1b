"""Local Guide data models."""

from .core import (
    Business,
    CacheEntry,
    FetchResult,
    Freshness,
    LocationSnapshot,
    Place,
    PlaceAddress,
    PlaceDetails,
    ReviewStats,
)
from .errors import (
    AppError,
    ErrorCode,
    LocalGuideError,
    OriginUnavailableError,
    RecoveryOption,
)
from .mutations import (
    AddReviewMutation,
    DeleteReviewMutation,
    HelpfulVoteMutation,
    OfflineMutation,
    ReviewPayload,
    offline_mutation_adapter,
)

__all__ = [
    # Core
    "Business",
    "CacheEntry",
    "FetchResult",
    "Freshness",
    "LocationSnapshot",
    "Place",
    "PlaceAddress",
    "PlaceDetails",
    "ReviewStats",
    # Errors
    "AppError",
    "ErrorCode",
    "LocalGuideError",
    "OriginUnavailableError",
    "RecoveryOption",
    # Offline mutations
    "AddReviewMutation",
    "DeleteReviewMutation",
    "HelpfulVoteMutation",
    "OfflineMutation",
    "ReviewPayload",
    "offline_mutation_adapter",
]
