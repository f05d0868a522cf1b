"""Offline mutation records.

A mutation is a write the user made while offline. Ids are assigned by
the producer so callers can detect duplicates themselves; the queue
never deduplicates.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter


def _new_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReviewPayload(BaseModel):
    """Body of a review written by a user."""

    business_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    user_name: str = ""
    user_avatar: str = ""
    rating: int = Field(..., ge=1, le=5)
    text: str = ""
    images: list[str] = Field(default_factory=list)


class AddReviewMutation(BaseModel):
    type: Literal["review:add"] = "review:add"
    id: str = Field(default_factory=_new_id)
    payload: ReviewPayload
    created_at: str = Field(default_factory=_now_iso)


class DeleteReviewMutation(BaseModel):
    type: Literal["review:delete"] = "review:delete"
    id: str = Field(default_factory=_new_id)
    review_id: str
    business_id: str
    created_at: str = Field(default_factory=_now_iso)


class HelpfulVoteMutation(BaseModel):
    type: Literal["review:helpful"] = "review:helpful"
    id: str = Field(default_factory=_new_id)
    review_id: str
    review_owner_id: str
    tagged_by: str
    business_id: str
    delta: Literal[1, -1]
    created_at: str = Field(default_factory=_now_iso)


OfflineMutation = Annotated[
    Union[AddReviewMutation, DeleteReviewMutation, HelpfulVoteMutation],
    Field(discriminator="type"),
]

offline_mutation_adapter: TypeAdapter[OfflineMutation] = TypeAdapter(OfflineMutation)
