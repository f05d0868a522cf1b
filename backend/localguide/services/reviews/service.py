"""Reviews backend adapter.

The reviews backend is an external collaborator. This module defines the
interface the sync layer needs from it, an httpx client for a REST
deployment, and a null gateway used when no backend is configured.

It also provides the handler that replays queued offline mutations
against the backend.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

import httpx

from localguide.models import (
    AddReviewMutation,
    DeleteReviewMutation,
    HelpfulVoteMutation,
    OfflineMutation,
    ReviewPayload,
    ReviewStats,
)

logger = logging.getLogger(__name__)


class ReviewBackendError(Exception):
    """The reviews backend rejected or could not process a request."""


class ReviewGateway(Protocol):
    async def get_review_stats(self, place_ids: Sequence[str]) -> dict[str, ReviewStats]:
        ...

    async def add_review(self, payload: ReviewPayload) -> str:
        """Create a review and return its id."""
        ...

    async def delete_review(self, review_id: str, business_id: str) -> None:
        ...

    async def update_helpful(
        self,
        review_id: str,
        review_owner_id: str,
        tagged_by: str,
        business_id: str,
        delta: int,
    ) -> None:
        ...


class NullReviewGateway:
    """No backend: zero stats for everything, writes are rejected."""

    async def get_review_stats(self, place_ids: Sequence[str]) -> dict[str, ReviewStats]:
        return {}

    async def add_review(self, payload: ReviewPayload) -> str:
        raise ReviewBackendError("No reviews backend configured")

    async def delete_review(self, review_id: str, business_id: str) -> None:
        raise ReviewBackendError("No reviews backend configured")

    async def update_helpful(
        self,
        review_id: str,
        review_owner_id: str,
        tagged_by: str,
        business_id: str,
        delta: int,
    ) -> None:
        raise ReviewBackendError("No reviews backend configured")


class HttpReviewGateway:
    """REST client for the reviews backend at ``API_BASE_URL``."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._get_client().request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise ReviewBackendError(
                f"Reviews backend returned {e.response.status_code} for {method} {path}"
            ) from e
        except httpx.HTTPError as e:
            raise ReviewBackendError(f"Reviews backend unreachable: {type(e).__name__}") from e

    async def get_review_stats(self, place_ids: Sequence[str]) -> dict[str, ReviewStats]:
        if not place_ids:
            return {}
        response = await self._request(
            "GET", "/reviews/stats", params={"place_ids": ",".join(place_ids)}
        )
        stats = response.json().get("stats", {})
        return {place_id: ReviewStats.model_validate(value) for place_id, value in stats.items()}

    async def add_review(self, payload: ReviewPayload) -> str:
        response = await self._request("POST", "/reviews", json=payload.model_dump(mode="json"))
        return str(response.json()["id"])

    async def delete_review(self, review_id: str, business_id: str) -> None:
        await self._request(
            "DELETE", f"/reviews/{review_id}", params={"business_id": business_id}
        )

    async def update_helpful(
        self,
        review_id: str,
        review_owner_id: str,
        tagged_by: str,
        business_id: str,
        delta: int,
    ) -> None:
        await self._request(
            "POST",
            f"/reviews/{review_id}/helpful",
            json={
                "review_owner_id": review_owner_id,
                "tagged_by": tagged_by,
                "business_id": business_id,
                "delta": delta,
            },
        )


class ReviewMutationHandler:
    """Applies one queued offline mutation to the reviews backend."""

    def __init__(self, gateway: ReviewGateway) -> None:
        self._gateway = gateway

    async def __call__(self, mutation: OfflineMutation) -> None:
        if isinstance(mutation, AddReviewMutation):
            await self._gateway.add_review(mutation.payload)
        elif isinstance(mutation, DeleteReviewMutation):
            await self._gateway.delete_review(mutation.review_id, mutation.business_id)
        elif isinstance(mutation, HelpfulVoteMutation):
            await self._gateway.update_helpful(
                mutation.review_id,
                mutation.review_owner_id,
                mutation.tagged_by,
                mutation.business_id,
                mutation.delta,
            )
        else:
            raise ValueError(f"Unknown mutation type: {type(mutation).__name__}")


def create_review_gateway(api_base_url: str | None) -> ReviewGateway:
    if api_base_url:
        return HttpReviewGateway(api_base_url)
    logger.info("[REVIEWS] No API_BASE_URL set, review writes are disabled")
    return NullReviewGateway()
