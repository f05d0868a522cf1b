"""Two-tier cache for geo-bounded search results.

Tiers:
1. Volatile (process lifetime): exact request signature -> last good
   origin result. Served whenever present unless the caller forces a
   refresh. Never expires on its own; ``clear_volatile()`` or a restart
   empties it. Also the source of stale-on-error fallback.
2. Persisted (cross-session): rounded composite key -> business list
   stored as ``{"businesses": [...], "updatedAt": <epoch-ms>}``. Entries
   younger than ``max_age_ms`` (6h) are served without contacting the
   origin.

Concurrent origin fetches for the same signature share one task.
Persisted writes run in the background; their failures are logged and
swallowed because caching is an optimization.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from localguide.config import NEARBY_CACHE_MAX_AGE_MS
from localguide.models import Business, CacheEntry, FetchResult, Freshness, OriginUnavailableError
from localguide.services.storage import KeyValueStorage
from localguide.utils import now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GeoResultCache:
    """Volatile + persisted cache for nearby-search results.

    Attributes:
        _volatile: In-memory entries keyed by request signature.
        _pending: In-flight origin fetches keyed by request signature.
        _writes: Background persisted-tier writes not yet finished.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        max_age_ms: int = NEARBY_CACHE_MAX_AGE_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._storage = storage
        self._max_age_ms = max_age_ms
        self._clock = clock
        self._volatile: dict[str, CacheEntry[Any]] = {}
        self._pending: dict[str, asyncio.Task[FetchResult[Any]]] = {}
        self._writes: set[asyncio.Task[None]] = set()
        self._persisted_keys: set[str] = set()

    @property
    def max_age_ms(self) -> int:
        return self._max_age_ms

    # ─── Volatile tier ───

    def get_volatile(self, signature: str) -> CacheEntry[Any] | None:
        return self._volatile.get(signature)

    def put_volatile(self, signature: str, payload: Any) -> CacheEntry[Any]:
        entry = CacheEntry[Any](key=signature, payload=payload, updated_at=self._clock())
        self._volatile[signature] = entry
        return entry

    def clear_volatile(self) -> None:
        self._volatile.clear()
        logger.info("[CACHE] Volatile tier cleared")

    async def fetch_through(
        self,
        signature: str,
        fetcher: Callable[[], Awaitable[T]],
        force_refresh: bool = False,
    ) -> FetchResult[T]:
        """Serve from the volatile tier or call the origin.

        On origin failure the last good result for ``signature`` is
        returned with ``Freshness.STALE``. With nothing to fall back to,
        raises :class:`OriginUnavailableError`.
        """
        if not force_refresh:
            entry = self._volatile.get(signature)
            if entry is not None:
                logger.debug(f"[CACHE] Volatile HIT: {signature}")
                return FetchResult(
                    data=entry.payload, freshness=Freshness.CACHED, updated_at=entry.updated_at
                )

        task = self._pending.get(signature)
        if task is None:
            task = asyncio.ensure_future(self._fetch_origin(signature, fetcher))
            self._pending[signature] = task
            task.add_done_callback(lambda done: self._forget_pending(signature, done))
        else:
            logger.debug(f"[CACHE] Joining in-flight fetch: {signature}")
        return await asyncio.shield(task)

    def _forget_pending(self, signature: str, task: asyncio.Task[Any]) -> None:
        if self._pending.get(signature) is task:
            del self._pending[signature]

    async def _fetch_origin(
        self, signature: str, fetcher: Callable[[], Awaitable[T]]
    ) -> FetchResult[T]:
        try:
            data = await fetcher()
        except Exception as e:
            entry = self._volatile.get(signature)
            if entry is not None:
                logger.warning(
                    f"[CACHE] Origin failed, serving stale result for {signature}: {e}"
                )
                return FetchResult(
                    data=entry.payload, freshness=Freshness.STALE, updated_at=entry.updated_at
                )
            raise OriginUnavailableError(f"Origin fetch failed for {signature}: {e}") from e

        entry = self.put_volatile(signature, data)
        return FetchResult(data=data, freshness=Freshness.FRESH, updated_at=entry.updated_at)

    # ─── Persisted tier ───

    def is_expired(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.updated_at >= self._max_age_ms

    async def read_persisted(self, key: str) -> CacheEntry[list[Business]] | None:
        """Load a persisted entry regardless of age.

        Unreadable or malformed entries are removed and read as absent.
        """
        try:
            raw = await self._storage.get_item(key)
        except Exception as e:
            logger.warning(f"[CACHE] Persisted read failed for {key}: {e}")
            return None
        if not raw:
            return None

        try:
            parsed = json.loads(raw)
            businesses = [Business.model_validate(item) for item in parsed["businesses"]]
            updated_at = int(parsed["updatedAt"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"[CACHE] Dropping corrupt persisted entry {key}: {e}")
            await self.remove_persisted(key)
            return None

        return CacheEntry[list[Business]](key=key, payload=businesses, updated_at=updated_at)

    async def remove_persisted(self, key: str) -> None:
        try:
            await self._storage.remove_item(key)
        except Exception as e:
            logger.warning(f"[CACHE] Persisted remove failed for {key}: {e}")
        self._persisted_keys.discard(key)

    def write_persisted(self, key: str, businesses: Sequence[Business]) -> None:
        """Schedule a background write of a fresh result."""
        entry = CacheEntry[list[Business]](
            key=key, payload=list(businesses), updated_at=self._clock()
        )
        task = asyncio.ensure_future(self._write(entry))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write(self, entry: CacheEntry[list[Business]]) -> None:
        payload = {
            "businesses": [b.model_dump(mode="json") for b in entry.payload],
            "updatedAt": entry.updated_at,
        }
        try:
            await self._storage.set_item(entry.key, json.dumps(payload))
            self._persisted_keys.add(entry.key)
            logger.debug(f"[CACHE] Persisted {len(entry.payload)} businesses under {entry.key}")
        except Exception as e:
            logger.warning(f"[CACHE] Persisted write failed for {entry.key}: {e}")

    async def drain(self) -> None:
        """Wait for all scheduled persisted writes to finish."""
        while self._writes:
            await asyncio.gather(*list(self._writes))

    # ─── Maintenance ───

    async def clear(self) -> int:
        """Empty the volatile tier and remove persisted entries written this session.

        Returns:
            Number of persisted entries removed.
        """
        await self.drain()
        self.clear_volatile()
        keys = list(self._persisted_keys)
        for key in keys:
            await self.remove_persisted(key)
        return len(keys)

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._volatile),
            "keys": list(self._volatile),
            "pending": len(self._pending),
            "persisted_keys": sorted(self._persisted_keys),
        }
