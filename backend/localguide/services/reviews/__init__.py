"""Reviews backend adapter and offline replay handler."""

from .service import (
    HttpReviewGateway,
    NullReviewGateway,
    ReviewBackendError,
    ReviewGateway,
    ReviewMutationHandler,
    create_review_gateway,
)

__all__ = [
    "HttpReviewGateway",
    "NullReviewGateway",
    "ReviewBackendError",
    "ReviewGateway",
    "ReviewMutationHandler",
    "create_review_gateway",
]
