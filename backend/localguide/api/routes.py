"""API routes for Local Guide.

These routes are the consumers of the sync layer, the counterpart of
the mobile app's data hooks:
- Reads go through the ConnectivityGate, then the cache-backed
  BusinessService.
- Review writes are rate limited per user. When the gate reports the
  device offline the write is captured in the OfflineMutationQueue and
  reported as queued.
- "Near me" queries without coordinates use the LocationCoordinator.
"""

from typing import Literal, Optional
import logging

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from localguide.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_RADIUS_METERS,
    REVIEW_RATE_LIMIT_ATTEMPTS,
    REVIEW_RATE_LIMIT_WINDOW_MS,
    get_settings,
)
from localguide.models import (
    AddReviewMutation,
    AppError,
    Business,
    DeleteReviewMutation,
    ErrorCode,
    FetchResult,
    HelpfulVoteMutation,
    LocationSnapshot,
    OriginUnavailableError,
    RecoveryOption,
    ReviewPayload,
)
from localguide.services.business import BusinessService, filter_businesses
from localguide.services.cache import GeoResultCache
from localguide.services.connectivity import (
    CHECK_CONNECTION,
    ConnectivityGate,
    ConnectivityMonitor,
    HttpNetworkStatusProvider,
    ProtectedActionOptions,
)
from localguide.services.location import location_coordinator
from localguide.services.offline_queue import OfflineMutationQueue
from localguide.services.places import GeoapifyPlacesService
from localguide.services.reviews import (
    ReviewBackendError,
    ReviewGateway,
    ReviewMutationHandler,
    create_review_gateway,
)
from localguide.services.storage import KeyValueStorage, create_storage
from localguide.utils import rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models
class BusinessListResponse(BaseModel):
    """Response model for business lists."""
    success: bool
    businesses: list[Business] = Field(default_factory=list)
    freshness: Optional[str] = None
    updated_at: Optional[int] = None
    location: Optional[LocationSnapshot] = None
    error: Optional[AppError] = None


class BusinessDetailsResponse(BaseModel):
    """Response model for a single business."""
    success: bool
    business: Optional[Business] = None
    error: Optional[AppError] = None


class MutationResponse(BaseModel):
    """Response model for review writes."""
    success: bool
    status: Optional[Literal["synced", "queued"]] = None
    review_id: Optional[str] = None
    mutation_id: Optional[str] = None
    error: Optional[AppError] = None


class HelpfulVoteRequest(BaseModel):
    """Request model for a helpful vote on a review."""
    review_owner_id: str = Field(..., min_length=1)
    tagged_by: str = Field(..., min_length=1)
    business_id: str = Field(..., min_length=1)
    delta: Literal[1, -1]


class OfflineQueueResponse(BaseModel):
    """Response model for the offline queue contents."""
    success: bool
    size: int = 0
    capacity: int = 0
    mutations: list[dict] = Field(default_factory=list)


class ReplayResponse(BaseModel):
    """Response model for an offline replay pass."""
    success: bool
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    error: Optional[AppError] = None


class LocationResponse(BaseModel):
    success: bool
    location: LocationSnapshot
    error: Optional[str] = None
    last_updated: int = 0


class ConnectivityResponse(BaseModel):
    success: bool
    is_connected: bool


# Service instances
_storage: KeyValueStorage | None = None
_places_service: GeoapifyPlacesService | None = None
_review_gateway: ReviewGateway | None = None
_geo_cache: GeoResultCache | None = None
_business_service: BusinessService | None = None
_offline_queue: OfflineMutationQueue | None = None
_gate: ConnectivityGate | None = None


def get_storage() -> KeyValueStorage:
    global _storage
    if _storage is None:
        _storage = create_storage(get_settings().redis_url)
    return _storage


def get_places_service() -> GeoapifyPlacesService:
    global _places_service
    if _places_service is None:
        settings = get_settings()
        _places_service = GeoapifyPlacesService(
            settings.geoapify_api_key, settings.geoapify_base_url
        )
    return _places_service


def get_review_gateway() -> ReviewGateway:
    global _review_gateway
    if _review_gateway is None:
        _review_gateway = create_review_gateway(get_settings().api_base_url)
    return _review_gateway


def get_geo_cache() -> GeoResultCache:
    global _geo_cache
    if _geo_cache is None:
        _geo_cache = GeoResultCache(
            get_storage(), max_age_ms=get_settings().nearby_cache_max_age_ms
        )
    return _geo_cache


def get_business_service() -> BusinessService:
    global _business_service
    if _business_service is None:
        _business_service = BusinessService(
            get_places_service(), get_geo_cache(), get_review_gateway()
        )
    return _business_service


def get_offline_queue() -> OfflineMutationQueue:
    global _offline_queue
    if _offline_queue is None:
        _offline_queue = OfflineMutationQueue(get_storage())
    return _offline_queue


def get_gate() -> ConnectivityGate:
    global _gate
    if _gate is None:
        provider = HttpNetworkStatusProvider(get_settings().connectivity_probe_url)
        monitor = ConnectivityMonitor(provider)
        _gate = ConnectivityGate(monitor)
        monitor.set_hooks(
            on_offline=_gate.notify_connection_lost,
            on_online=_gate.notify_connection_restored,
        )
    return _gate


async def close_services() -> None:
    """Flush pending cache writes and close network clients."""
    global _storage, _places_service, _review_gateway, _geo_cache
    global _business_service, _offline_queue, _gate

    if _geo_cache is not None:
        await _geo_cache.drain()
    if _places_service is not None:
        await _places_service.close()
    close_reviews = getattr(_review_gateway, "close", None)
    if close_reviews is not None:
        await close_reviews()
    if _gate is not None:
        _gate.monitor.stop()
        close_provider = getattr(_gate.monitor.provider, "close", None)
        if close_provider is not None:
            await close_provider()
    if _storage is not None:
        await _storage.close()

    _storage = _places_service = _review_gateway = _geo_cache = None
    _business_service = _offline_queue = _gate = None


def _offline_error(action_name: str) -> AppError:
    return AppError(
        code=ErrorCode.OFFLINE,
        message=f"{action_name} blocked: no connectivity",
        user_message=f"{action_name} requires an internet connection. {CHECK_CONNECTION}",
        recovery_options=[RecoveryOption(label="Retry", action="retry")],
    )


def _rate_limited_error(key: str) -> AppError:
    retry_after = rate_limiter.get_remaining_time(key)
    return AppError(
        code=ErrorCode.RATE_LIMITED,
        message=f"Rate limit exceeded for {key}",
        user_message="You're doing that too often. Please wait a moment and try again.",
        recovery_options=[
            RecoveryOption(label="Wait", action="wait", params={"retry_after_ms": retry_after})
        ],
    )


def _list_response(
    result: FetchResult[list[Business]] | Literal[False],
    action_name: str,
    location: LocationSnapshot | None = None,
    query: str | None = None,
) -> BusinessListResponse:
    if result is False:
        return BusinessListResponse(
            success=False, location=location, error=_offline_error(action_name)
        )
    businesses = filter_businesses(result.data, query) if query else result.data
    return BusinessListResponse(
        success=True,
        businesses=businesses,
        freshness=result.freshness.value,
        updated_at=result.updated_at,
        location=location,
    )


def _origin_error(e: Exception) -> AppError:
    return AppError(
        code=ErrorCode.ORIGIN_UNAVAILABLE,
        message=str(e),
        user_message="Failed to load nearby places. Pull to refresh to retry.",
        recovery_options=[RecoveryOption(label="Retry", action="retry")],
    )


async def _resolve_location(lat: float | None, lng: float | None) -> LocationSnapshot:
    if lat is not None and lng is not None:
        return LocationSnapshot(latitude=lat, longitude=lng)
    return await location_coordinator.refresh_location()


@router.get("/businesses/nearby", response_model=BusinessListResponse)
async def get_nearby_businesses(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_METERS, gt=0),
    categories: list[str] = Query([]),
    q: Optional[str] = None,
    force_refresh: bool = False,
) -> BusinessListResponse:
    """Nearby businesses for a point, or for the device location when omitted.

    Served from the persisted/volatile cache when possible. ``q``
    filters the result on name, address and features.
    """
    location = await _resolve_location(lat, lng)
    service = get_business_service()
    action_name = "Refreshing nearby places" if force_refresh else "Loading nearby places"

    try:
        result = await get_gate().protected_action(
            lambda: service.get_nearby_businesses(
                location.latitude, location.longitude, radius, categories, force_refresh
            ),
            ProtectedActionOptions(action_name=action_name, retry=True),
        )
    except OriginUnavailableError as e:
        return BusinessListResponse(success=False, location=location, error=_origin_error(e))

    return _list_response(result, action_name, location, q)


@router.get("/businesses/page", response_model=BusinessListResponse)
async def get_nearby_businesses_page(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    radius: float = Query(DEFAULT_RADIUS_METERS, gt=0),
    categories: list[str] = Query([]),
) -> BusinessListResponse:
    """One page of nearby businesses for infinite scrolling."""
    location = await _resolve_location(lat, lng)
    service = get_business_service()
    action_name = "Loading nearby places" if page == 1 else "Loading more nearby places"

    try:
        result = await get_gate().protected_action(
            lambda: service.get_nearby_businesses_page(
                location.latitude,
                location.longitude,
                page=page,
                page_size=page_size,
                radius=radius,
                categories=categories,
            ),
            ProtectedActionOptions(action_name=action_name, retry=True),
        )
    except OriginUnavailableError as e:
        return BusinessListResponse(success=False, location=location, error=_origin_error(e))

    return _list_response(result, action_name, location)


@router.get("/businesses/search", response_model=BusinessListResponse)
async def search_businesses(
    q: str = Query(..., min_length=1),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(DEFAULT_RADIUS_METERS, gt=0),
) -> BusinessListResponse:
    """Nearby businesses whose name, address or features match ``q``."""
    location = await _resolve_location(lat, lng)
    service = get_business_service()

    try:
        result = await get_gate().protected_action(
            lambda: service.search_businesses(q, location.latitude, location.longitude, radius),
            ProtectedActionOptions(action_name="Searching places", retry=True),
        )
    except OriginUnavailableError as e:
        return BusinessListResponse(success=False, location=location, error=_origin_error(e))

    return _list_response(result, "Searching places", location)


@router.get("/businesses/{place_id}", response_model=BusinessDetailsResponse)
async def get_business(place_id: str) -> BusinessDetailsResponse:
    """Details for one business."""
    service = get_business_service()
    business = await get_gate().protected_action(
        lambda: service.get_business_by_id(place_id),
        ProtectedActionOptions(action_name="Loading business details", retry=False),
    )

    if business is False:
        return BusinessDetailsResponse(
            success=False, error=_offline_error("Loading business details")
        )
    if business is None:
        return BusinessDetailsResponse(
            success=False,
            error=AppError(
                code=ErrorCode.NOT_FOUND,
                message=f"Business {place_id} could not be loaded",
                user_message="Place not found.",
            ),
        )
    return BusinessDetailsResponse(success=True, business=business)


def _backend_error(e: ReviewBackendError) -> AppError:
    return AppError(
        code=ErrorCode.API_ERROR,
        message=str(e),
        user_message="Your change could not be saved. Please try again.",
        recovery_options=[RecoveryOption(label="Retry", action="retry")],
    )


@router.post("/reviews", response_model=MutationResponse)
async def add_review(payload: ReviewPayload) -> MutationResponse:
    """Submit a review, or queue it for later when offline."""
    key = f"review:{payload.user_id}"
    if not rate_limiter.is_allowed(key, REVIEW_RATE_LIMIT_ATTEMPTS, REVIEW_RATE_LIMIT_WINDOW_MS):
        return MutationResponse(success=False, error=_rate_limited_error(key))

    gateway = get_review_gateway()
    try:
        review_id = await get_gate().protected_action(
            lambda: gateway.add_review(payload),
            ProtectedActionOptions(action_name="Posting a review", show_alert=False),
        )
    except ReviewBackendError as e:
        return MutationResponse(success=False, error=_backend_error(e))

    if review_id is False:
        mutation = AddReviewMutation(payload=payload)
        await get_offline_queue().enqueue(mutation)
        return MutationResponse(success=True, status="queued", mutation_id=mutation.id)
    return MutationResponse(success=True, status="synced", review_id=review_id)


@router.delete("/reviews/{review_id}", response_model=MutationResponse)
async def delete_review(review_id: str, business_id: str = Query(..., min_length=1)) -> MutationResponse:
    """Delete a review, or queue the deletion when offline."""
    gateway = get_review_gateway()

    async def _delete() -> bool:
        await gateway.delete_review(review_id, business_id)
        return True

    try:
        done = await get_gate().protected_action(
            _delete,
            ProtectedActionOptions(action_name="Deleting a review", show_alert=False),
        )
    except ReviewBackendError as e:
        return MutationResponse(success=False, error=_backend_error(e))

    if done is False:
        mutation = DeleteReviewMutation(review_id=review_id, business_id=business_id)
        await get_offline_queue().enqueue(mutation)
        return MutationResponse(success=True, status="queued", mutation_id=mutation.id)
    return MutationResponse(success=True, status="synced", review_id=review_id)


@router.post("/reviews/{review_id}/helpful", response_model=MutationResponse)
async def vote_helpful(review_id: str, request: HelpfulVoteRequest) -> MutationResponse:
    """Add or remove a helpful vote, or queue it when offline."""
    key = f"helpful:{request.tagged_by}"
    if not rate_limiter.is_allowed(key, REVIEW_RATE_LIMIT_ATTEMPTS, REVIEW_RATE_LIMIT_WINDOW_MS):
        return MutationResponse(success=False, error=_rate_limited_error(key))

    gateway = get_review_gateway()

    async def _vote() -> bool:
        await gateway.update_helpful(
            review_id,
            request.review_owner_id,
            request.tagged_by,
            request.business_id,
            request.delta,
        )
        return True

    try:
        done = await get_gate().protected_action(
            _vote,
            ProtectedActionOptions(action_name="Voting on a review", show_alert=False),
        )
    except ReviewBackendError as e:
        return MutationResponse(success=False, error=_backend_error(e))

    if done is False:
        mutation = HelpfulVoteMutation(review_id=review_id, **request.model_dump())
        await get_offline_queue().enqueue(mutation)
        return MutationResponse(success=True, status="queued", mutation_id=mutation.id)
    return MutationResponse(success=True, status="synced", review_id=review_id)


@router.get("/offline-queue", response_model=OfflineQueueResponse)
async def get_offline_queue_contents() -> OfflineQueueResponse:
    queue = get_offline_queue()
    mutations = await queue.get_all()
    return OfflineQueueResponse(
        success=True,
        size=len(mutations),
        capacity=queue.capacity,
        mutations=[m.model_dump(mode="json") for m in mutations],
    )


@router.delete("/offline-queue", response_model=OfflineQueueResponse)
async def clear_offline_queue() -> OfflineQueueResponse:
    queue = get_offline_queue()
    await queue.clear()
    return OfflineQueueResponse(success=True, size=0, capacity=queue.capacity)


@router.post("/offline-queue/replay", response_model=ReplayResponse)
async def replay_offline_queue() -> ReplayResponse:
    """Push queued mutations to the reviews backend; failures stay queued."""
    queue = get_offline_queue()
    handler = ReviewMutationHandler(get_review_gateway())

    report = await get_gate().protected_action(
        lambda: queue.replay(handler),
        ProtectedActionOptions(action_name="Syncing offline changes", retry=False),
    )
    if report is False:
        return ReplayResponse(success=False, error=_offline_error("Syncing offline changes"))
    return ReplayResponse(success=True, succeeded=report.succeeded, failed=report.failed)


@router.get("/location", response_model=LocationResponse)
async def get_location(force: bool = False) -> LocationResponse:
    location = await location_coordinator.refresh_location(force)
    return LocationResponse(
        success=True,
        location=location,
        error=location_coordinator.error,
        last_updated=location_coordinator.last_updated,
    )


@router.get("/connectivity", response_model=ConnectivityResponse)
async def get_connectivity() -> ConnectivityResponse:
    connected = await get_gate().monitor.check_connectivity()
    return ConnectivityResponse(success=True, is_connected=connected)


@router.delete("/cache")
async def clear_cache() -> dict:
    """Drop the volatile tier and persisted entries written this session."""
    removed = await get_geo_cache().clear()
    return {"success": True, "persisted_removed": removed}
