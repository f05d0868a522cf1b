"""Unit tests for the offline mutation queue."""

import asyncio
import json

import pytest

from localguide.models import (
    AddReviewMutation,
    DeleteReviewMutation,
    HelpfulVoteMutation,
    ReviewPayload,
)
from localguide.services.offline_queue import OfflineMutationQueue, ReplayReport
from localguide.services.storage import InMemoryKeyValueStorage

KEY = "offlineMutations_v1"


def delete_mutation(n: int) -> DeleteReviewMutation:
    return DeleteReviewMutation(id=f"m{n}", review_id=f"r{n}", business_id="b1")


class SlowStorage(InMemoryKeyValueStorage):
    """Yields to the event loop on every read and write."""

    async def get_item(self, key: str) -> str | None:
        await asyncio.sleep(0.001)
        return await super().get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.sleep(0.001)
        await super().set_item(key, value)


class FailingStorage(InMemoryKeyValueStorage):
    async def get_item(self, key: str) -> str | None:
        raise ConnectionError("storage down")

    async def set_item(self, key: str, value: str) -> None:
        raise ConnectionError("storage down")


class TestOfflineMutationQueue:
    """Tests for enqueue, capacity and load tolerance."""

    def setup_method(self) -> None:
        self.storage = InMemoryKeyValueStorage()
        self.queue = OfflineMutationQueue(self.storage)

    @pytest.mark.asyncio
    async def test_empty_queue(self) -> None:
        assert await self.queue.get_all() == []

    @pytest.mark.asyncio
    async def test_enqueue_preserves_order(self) -> None:
        for n in range(3):
            await self.queue.enqueue(delete_mutation(n))
        ids = [m.id for m in await self.queue.get_all()]
        assert ids == ["m0", "m1", "m2"]

    @pytest.mark.asyncio
    async def test_capacity_keeps_newest_fifty(self) -> None:
        for n in range(60):
            await self.queue.enqueue(delete_mutation(n))

        mutations = await self.queue.get_all()

        assert len(mutations) == 50
        assert [m.id for m in mutations] == [f"m{n}" for n in range(10, 60)]

    @pytest.mark.asyncio
    async def test_custom_capacity(self) -> None:
        queue = OfflineMutationQueue(self.storage, max_mutations=2)
        for n in range(4):
            await queue.enqueue(delete_mutation(n))
        assert [m.id for m in await queue.get_all()] == ["m2", "m3"]
        assert queue.capacity == 2

    @pytest.mark.asyncio
    async def test_state_is_stored_under_versioned_key(self) -> None:
        await self.queue.enqueue(delete_mutation(1))
        stored = json.loads(await self.storage.get_item(KEY))
        assert stored["mutations"][0]["type"] == "review:delete"
        assert stored["mutations"][0]["id"] == "m1"

    @pytest.mark.asyncio
    async def test_all_mutation_types_round_trip(self) -> None:
        payload = ReviewPayload(business_id="b1", user_id="u1", rating=4, text="Good")
        await self.queue.enqueue(AddReviewMutation(payload=payload))
        await self.queue.enqueue(delete_mutation(2))
        await self.queue.enqueue(
            HelpfulVoteMutation(
                review_id="r1",
                review_owner_id="u2",
                tagged_by="u1",
                business_id="b1",
                delta=-1,
            )
        )

        mutations = await self.queue.get_all()

        assert isinstance(mutations[0], AddReviewMutation)
        assert mutations[0].payload.rating == 4
        assert isinstance(mutations[1], DeleteReviewMutation)
        assert isinstance(mutations[2], HelpfulVoteMutation)
        assert mutations[2].delta == -1

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        await self.queue.enqueue(delete_mutation(1))
        await self.queue.clear()
        assert await self.queue.get_all() == []

    @pytest.mark.asyncio
    async def test_replace_all(self) -> None:
        await self.queue.enqueue(delete_mutation(1))
        await self.queue.replace_all([delete_mutation(7), delete_mutation(8)])
        assert [m.id for m in await self.queue.get_all()] == ["m7", "m8"]


class TestOfflineQueueLoading:
    """Corrupt or legacy stored state never raises."""

    @pytest.mark.asyncio
    async def test_invalid_json_loads_empty(self) -> None:
        queue = OfflineMutationQueue(InMemoryKeyValueStorage({KEY: "{not json"}))
        assert await queue.get_all() == []

    @pytest.mark.asyncio
    async def test_non_list_mutations_load_empty(self) -> None:
        storage = InMemoryKeyValueStorage({KEY: json.dumps({"mutations": "oops"})})
        assert await OfflineMutationQueue(storage).get_all() == []

    @pytest.mark.asyncio
    async def test_scalar_payload_loads_empty(self) -> None:
        storage = InMemoryKeyValueStorage({KEY: "42"})
        assert await OfflineMutationQueue(storage).get_all() == []

    @pytest.mark.asyncio
    async def test_bare_list_is_accepted(self) -> None:
        raw = [delete_mutation(1).model_dump(mode="json")]
        storage = InMemoryKeyValueStorage({KEY: json.dumps(raw)})
        mutations = await OfflineMutationQueue(storage).get_all()
        assert [m.id for m in mutations] == ["m1"]

    @pytest.mark.asyncio
    async def test_malformed_entries_are_dropped(self) -> None:
        raw = {
            "mutations": [
                None,
                {"type": "review:unknown", "id": "x"},
                {"type": "review:delete", "id": "no-fields"},
                delete_mutation(3).model_dump(mode="json"),
            ]
        }
        storage = InMemoryKeyValueStorage({KEY: json.dumps(raw)})
        mutations = await OfflineMutationQueue(storage).get_all()
        assert [m.id for m in mutations] == ["m3"]

    @pytest.mark.asyncio
    async def test_oversized_state_is_capped_on_load(self) -> None:
        raw = {"mutations": [delete_mutation(n).model_dump(mode="json") for n in range(70)]}
        storage = InMemoryKeyValueStorage({KEY: json.dumps(raw)})
        mutations = await OfflineMutationQueue(storage).get_all()
        assert len(mutations) == 50
        assert mutations[0].id == "m20"

    @pytest.mark.asyncio
    async def test_storage_errors_are_swallowed(self) -> None:
        queue = OfflineMutationQueue(FailingStorage())
        await queue.enqueue(delete_mutation(1))
        assert await queue.get_all() == []


class TestOfflineQueueReplay:
    """Tests for replaying queued mutations through a handler."""

    def setup_method(self) -> None:
        self.storage = InMemoryKeyValueStorage()
        self.queue = OfflineMutationQueue(self.storage)

    @pytest.mark.asyncio
    async def test_replay_removes_succeeded_and_keeps_failed(self) -> None:
        for n in range(4):
            await self.queue.enqueue(delete_mutation(n))
        seen: list[str] = []

        async def handler(mutation) -> None:
            seen.append(mutation.id)
            if mutation.id in ("m1", "m3"):
                raise RuntimeError("backend rejected")

        report = await self.queue.replay(handler)

        assert seen == ["m0", "m1", "m2", "m3"]
        assert report.succeeded == ["m0", "m2"]
        assert report.failed == ["m1", "m3"]
        assert report.remaining == 2
        assert [m.id for m in await self.queue.get_all()] == ["m1", "m3"]

    @pytest.mark.asyncio
    async def test_replay_empty_queue(self) -> None:
        async def handler(mutation) -> None:
            raise AssertionError("should not be called")

        report = await self.queue.replay(handler)

        assert report == ReplayReport()

    @pytest.mark.asyncio
    async def test_enqueue_during_replay_is_kept(self) -> None:
        await self.queue.enqueue(delete_mutation(1))
        started = asyncio.Event()

        async def slow_handler(mutation) -> None:
            started.set()
            await asyncio.sleep(0.01)

        replay = asyncio.create_task(self.queue.replay(slow_handler))
        await started.wait()
        await self.queue.enqueue(delete_mutation(2))
        report = await replay

        assert report.succeeded == ["m1"]
        assert [m.id for m in await self.queue.get_all()] == ["m2"]

    @pytest.mark.asyncio
    async def test_failed_and_new_mutations_both_survive(self) -> None:
        await self.queue.enqueue(delete_mutation(1))
        await self.queue.enqueue(delete_mutation(2))

        async def handler(mutation) -> None:
            if mutation.id == "m1":
                await self.queue.enqueue(delete_mutation(3))
                raise RuntimeError("backend rejected")

        await self.queue.replay(handler)

        assert [m.id for m in await self.queue.get_all()] == ["m1", "m3"]

    @pytest.mark.asyncio
    async def test_concurrent_enqueues_are_not_lost(self) -> None:
        queue = OfflineMutationQueue(SlowStorage())

        await asyncio.gather(*(queue.enqueue(delete_mutation(n)) for n in range(10)))

        assert sorted(m.id for m in await queue.get_all()) == sorted(f"m{n}" for n in range(10))
