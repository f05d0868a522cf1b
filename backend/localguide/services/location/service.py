"""Process-wide location coordinator.

One coordinator instance owns the last known location, the in-flight
device query and the subscriber list. Every consumer goes through it so
that a burst of concurrent ``refresh_location`` calls issues exactly one
device query and everybody converges on the same snapshot.

Concurrent callers await a shared task instead of polling a flag. On
provider failure the last snapshot (or the default coordinate) is
broadcast as a fallback and ``error`` is set; nothing is raised.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from localguide.config import DEFAULT_LATITUDE, DEFAULT_LONGITUDE
from localguide.models import LocationSnapshot
from localguide.utils import now_ms

logger = logging.getLogger(__name__)

LocationListener = Callable[[LocationSnapshot], None]

DEFAULT_LOCATION = LocationSnapshot(latitude=DEFAULT_LATITUDE, longitude=DEFAULT_LONGITUDE)
FALLBACK_ERROR = "Failed to get your location. Using default area."


class LocationPermissionError(Exception):
    """The user did not grant location access."""


class LocationProvider(Protocol):
    """Device location source."""

    async def request_permissions(self) -> bool:
        ...

    async def get_current_position(self) -> LocationSnapshot:
        """One-shot position query. May raise on timeout or denial."""
        ...


class StaticLocationProvider:
    """Always reports the same coordinates. Used for headless runs."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._snapshot = LocationSnapshot(latitude=latitude, longitude=longitude)

    async def request_permissions(self) -> bool:
        return True

    async def get_current_position(self) -> LocationSnapshot:
        return self._snapshot


class LocationCoordinator:
    """Deduplicates location fetches and broadcasts results."""

    def __init__(
        self,
        provider: LocationProvider | None = None,
        default_location: LocationSnapshot = DEFAULT_LOCATION,
    ) -> None:
        self._provider: LocationProvider = provider or StaticLocationProvider(
            default_location.latitude, default_location.longitude
        )
        self._default = default_location
        self._snapshot: LocationSnapshot | None = None
        self._in_flight: asyncio.Task[LocationSnapshot] | None = None
        self._subscribers: list[LocationListener] = []
        self._error: str | None = None
        self._last_updated = 0

    @property
    def current(self) -> LocationSnapshot | None:
        return self._snapshot

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._in_flight is not None

    @property
    def last_updated(self) -> int:
        """Epoch ms of the last successful device reading, 0 if none."""
        return self._last_updated

    @property
    def default_location(self) -> LocationSnapshot:
        return self._default

    def configure(
        self,
        provider: LocationProvider,
        default_location: LocationSnapshot | None = None,
    ) -> None:
        self._provider = provider
        if default_location is not None:
            self._default = default_location

    def reset(self) -> None:
        """Forget the snapshot, error and subscribers."""
        self._snapshot = None
        self._in_flight = None
        self._subscribers.clear()
        self._error = None
        self._last_updated = 0

    def subscribe(self, callback: LocationListener) -> Callable[[], None]:
        """Receive every future snapshot until the returned function is called.

        Existing snapshots are not replayed; seed initial state from
        ``current``.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def refresh_location(self, force: bool = False) -> LocationSnapshot:
        if not force and self._snapshot is not None:
            return self._snapshot

        # A forced refresh joins a running query instead of racing it.
        if self._in_flight is None:
            self._in_flight = asyncio.ensure_future(self._fetch_and_broadcast())
        return await asyncio.shield(self._in_flight)

    async def _fetch_and_broadcast(self) -> LocationSnapshot:
        self._error = None
        try:
            if not await self._provider.request_permissions():
                raise LocationPermissionError("Location permission denied")
            position = await self._provider.get_current_position()
            snapshot = LocationSnapshot(latitude=position.latitude, longitude=position.longitude)
            self._last_updated = now_ms()
            logger.info(
                f"[LOCATION] Fetched {snapshot.latitude:.4f}, {snapshot.longitude:.4f}"
            )
        except Exception as e:
            snapshot = self._snapshot or self._default
            self._error = FALLBACK_ERROR
            logger.warning(f"[LOCATION] Falling back after error: {type(e).__name__}: {e}")
        finally:
            self._in_flight = None

        self._snapshot = snapshot
        self._broadcast(snapshot)
        return snapshot

    def _broadcast(self, snapshot: LocationSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("[LOCATION] Subscriber callback failed")


location_coordinator = LocationCoordinator()


async def refresh_location(force: bool = False) -> LocationSnapshot:
    return await location_coordinator.refresh_location(force)


def subscribe(callback: LocationListener) -> Callable[[], None]:
    return location_coordinator.subscribe(callback)


def get_current_location() -> LocationSnapshot | None:
    return location_coordinator.current
