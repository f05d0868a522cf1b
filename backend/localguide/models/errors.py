"""Error envelope and exception types.

``AppError`` is what the HTTP layer returns to clients. The exception
classes are raised inside the sync layer and translated at the edge.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    OFFLINE = "OFFLINE"
    ORIGIN_UNAVAILABLE = "ORIGIN_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    API_ERROR = "API_ERROR"


class RecoveryOption(BaseModel):
    """An action the client can offer to recover from an error."""

    label: str
    action: str
    params: Optional[dict[str, Any]] = None


class AppError(BaseModel):
    """User-facing error details."""

    code: ErrorCode
    message: str = Field(..., description="Technical message for logs")
    user_message: str = Field(..., description="Message safe to show to users")
    recovery_options: list[RecoveryOption] = Field(default_factory=list)


class LocalGuideError(Exception):
    """Base class for sync layer errors."""


class OriginUnavailableError(LocalGuideError):
    """The place-search origin failed and nothing was cached for the request."""
