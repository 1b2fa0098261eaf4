from __future__ import annotations

import pendulum
import pytest

from recruitflow.adapters import MemoryStorage, RecordStore, StorageService
from recruitflow.errors import RecordNotFoundError, StaleRecordError, StorageError, ValidationError


def build_storage(**kwargs) -> MemoryStorage:
    return MemoryStorage(indexes={"people": ("team",)}, **kwargs)


def test_memory_storage_satisfies_protocols():
    storage = build_storage()
    assert isinstance(storage, StorageService)
    assert isinstance(storage.store("people"), RecordStore)


@pytest.mark.asyncio
async def test_create_then_get_round_trip():
    store = build_storage().store("people")
    data = {"name": "Ada", "team": "core", "skills": ["python", "sql"]}

    created = await store.create(data)
    fetched = await store.get_by_id(created["id"])

    assert fetched == created
    assert {k: v for k, v in fetched.items() if k not in ("id", "created_at", "updated_at")} == data
    assert fetched["id"]
    assert fetched["created_at"] == fetched["updated_at"]


@pytest.mark.asyncio
async def test_create_rejects_managed_fields():
    store = build_storage().store("people")
    with pytest.raises(ValidationError):
        await store.create({"id": "x", "name": "Ada"})


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = build_storage().store("people")
    created = await store.create({"name": "Ada", "skills": ["python"]})
    created["skills"].append("mutated")

    fetched = await store.get_by_id(created["id"])
    assert fetched["skills"] == ["python"]


@pytest.mark.asyncio
async def test_missing_records():
    store = build_storage().store("people")
    assert await store.get_by_id("missing") is None
    with pytest.raises(RecordNotFoundError):
        await store.update("missing", {"name": "x"})
    with pytest.raises(RecordNotFoundError):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_update_merges_and_refreshes_timestamp(frozen_clock):
    store = build_storage(now_provider=frozen_clock).store("people")
    created = await store.create({"name": "Ada", "team": "core"})

    updated = await store.update(created["id"], {"team": "platform", "id": "ignored"})

    assert updated["id"] == created["id"]
    assert updated["name"] == "Ada"
    assert updated["team"] == "platform"
    assert updated["updated_at"] > created["updated_at"]


@pytest.mark.asyncio
async def test_timestamps_strictly_increase_with_frozen_clock(frozen_clock):
    store = build_storage(now_provider=frozen_clock).store("people")
    stamps = [(await store.create({"name": str(i)}))["created_at"] for i in range(3)]

    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 3
    assert pendulum.parse(stamps[1]) == pendulum.parse(stamps[0]).add(microseconds=1)


@pytest.mark.asyncio
async def test_compare_and_swap_rejects_stale_update():
    store = build_storage().store("people")
    created = await store.create({"name": "Ada"})
    await store.update(created["id"], {"name": "Ada L."}, expected_updated_at=created["updated_at"])

    with pytest.raises(StaleRecordError) as excinfo:
        await store.update(created["id"], {"name": "Grace"}, expected_updated_at=created["updated_at"])

    assert excinfo.value.expected == created["updated_at"]
    assert (await store.get_by_id(created["id"]))["name"] == "Ada L."


@pytest.mark.asyncio
async def test_index_lookup_and_undeclared_index():
    store = build_storage().store("people")
    first = await store.create({"name": "Ada", "team": "core"})
    await store.create({"name": "Linus", "team": "kernel"})
    second = await store.create({"name": "Guido", "team": "core"})

    matches = await store.get_by_index("team", "core")
    assert [m["id"] for m in matches] == [first["id"], second["id"]]

    with pytest.raises(StorageError):
        await store.get_by_index("name", "Ada")


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error():
    storage = build_storage()
    people = storage.store("people")
    kept = await people.create({"name": "Ada", "team": "core"})

    with pytest.raises(RuntimeError):
        async with storage.transaction():
            await people.update(kept["id"], {"team": "changed"})
            await people.create({"name": "Temp"})
            await storage.store("teams").create({"name": "new store"})
            raise RuntimeError("boom")

    assert await people.get_all() == [kept]
    assert await storage.store("teams").get_all() == []


@pytest.mark.asyncio
async def test_nested_transaction_joins_outer():
    storage = build_storage()
    people = storage.store("people")

    with pytest.raises(RuntimeError):
        async with storage.transaction():
            async with storage.transaction():
                await people.create({"name": "Inner"})
            await people.create({"name": "Outer"})
            raise RuntimeError("boom")

    assert await people.get_all() == []


@pytest.mark.asyncio
async def test_snapshot_round_trip():
    storage = build_storage()
    created = await storage.store("people").create({"name": "Ada", "team": "core"})

    restored = MemoryStorage.from_snapshot(storage.snapshot(), indexes={"people": ("team",)})

    assert await restored.store("people").get_by_id(created["id"]) == created
    assert await restored.store("people").get_by_index("team", "core") == [created]
