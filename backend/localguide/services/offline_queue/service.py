"""Bounded queue of writes made while offline.

The queue lives in durable storage under a single versioned key as
``{"mutations": [...]}``. It holds at most ``MAX_OFFLINE_MUTATIONS``
entries; appending beyond that drops the oldest ones first.

Loading never raises: corrupt JSON or a non-list payload reads as an
empty queue, and individually malformed entries are skipped. Saving
logs and swallows storage errors. A broken offline queue must not take
the rest of the app down with it.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from localguide.config import MAX_OFFLINE_MUTATIONS, OFFLINE_QUEUE_KEY
from localguide.models import OfflineMutation, offline_mutation_adapter
from localguide.services.storage import KeyValueStorage

logger = logging.getLogger(__name__)

MutationHandler = Callable[[OfflineMutation], Awaitable[None]]


@dataclass
class ReplayReport:
    """Outcome of one replay pass."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return len(self.failed)


class OfflineMutationQueue:
    """FIFO queue of pending mutations with a hard capacity.

    Read-modify-write cycles on the stored state are serialized by a
    lock owned by the queue.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = OFFLINE_QUEUE_KEY,
        max_mutations: int = MAX_OFFLINE_MUTATIONS,
    ) -> None:
        self._storage = storage
        self._key = storage_key
        self._max = max_mutations
        self._lock = asyncio.Lock()
        self._replay_lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        return self._max

    async def _load(self) -> list[OfflineMutation]:
        try:
            raw = await self._storage.get_item(self._key)
        except Exception as e:
            logger.warning(f"[QUEUE] Failed to load state: {e}")
            return []
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[QUEUE] Stored queue is not valid JSON: {e}")
            return []

        if isinstance(parsed, dict):
            items = parsed.get("mutations")
        else:
            items = parsed
        if not isinstance(items, list):
            return []

        mutations: list[OfflineMutation] = []
        for item in items[-self._max:]:
            if not item:
                continue
            try:
                mutations.append(offline_mutation_adapter.validate_python(item))
            except ValidationError:
                logger.warning("[QUEUE] Dropping malformed mutation entry")
        return mutations

    async def _save(self, mutations: Sequence[OfflineMutation]) -> None:
        state = {
            "mutations": [
                offline_mutation_adapter.dump_python(mutation, mode="json")
                for mutation in mutations
            ]
        }
        try:
            await self._storage.set_item(self._key, json.dumps(state))
        except Exception as e:
            logger.warning(f"[QUEUE] Failed to save state: {e}")

    async def enqueue(self, mutation: OfflineMutation) -> None:
        async with self._lock:
            mutations = await self._load()
            mutations.append(mutation)

            if len(mutations) > self._max:
                dropped = len(mutations) - self._max
                del mutations[:dropped]
                logger.info(f"[QUEUE] Capacity reached, dropped {dropped} oldest mutation(s)")

            await self._save(mutations)
        logger.debug(f"[QUEUE] Enqueued {mutation.type} ({mutation.id}), size={len(mutations)}")

    async def get_all(self) -> list[OfflineMutation]:
        """All pending mutations in insertion order."""
        return await self._load()

    async def replace_all(self, mutations: Sequence[OfflineMutation]) -> None:
        """Overwrite the queue."""
        async with self._lock:
            await self._save(list(mutations))

    async def clear(self) -> None:
        async with self._lock:
            await self._save([])

    async def replay(self, handler: MutationHandler) -> ReplayReport:
        """Send every queued mutation through ``handler`` in FIFO order.

        Mutations whose handler raises are kept for the next pass; the
        rest are removed. The queue is re-read before saving, so
        mutations enqueued while the pass runs are kept too. Only one
        pass runs at a time.
        """
        async with self._replay_lock:
            report = ReplayReport()

            for mutation in await self._load():
                try:
                    await handler(mutation)
                    report.succeeded.append(mutation.id)
                except Exception as e:
                    logger.warning(
                        f"[QUEUE] Replay failed for {mutation.type} ({mutation.id}): {e}"
                    )
                    report.failed.append(mutation.id)

            synced = set(report.succeeded)
            async with self._lock:
                remaining = [m for m in await self._load() if m.id not in synced]
                await self._save(remaining)

        logger.info(
            f"[QUEUE] Replay done: {len(report.succeeded)} synced, {len(remaining)} kept"
        )
        return report
