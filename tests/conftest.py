from __future__ import annotations

from collections import defaultdict
from typing import Any

import pendulum
import pytest

from recruitflow.adapters import MemoryStorage
from recruitflow.container import create_container
from recruitflow.fixtures import SampleRecruitmentBuilder
from recruitflow.repositories import STORE_INDEXES


class FaultyRecordStore:
    """Record store double raising queued errors before delegating."""

    def __init__(self, inner: Any, owner: "FaultyStorage") -> None:
        self._inner = inner
        self._owner = owner
        self.name = inner.name

    def _maybe_fail(self, operation: str) -> None:
        queue = self._owner.failures[(self.name, operation)]
        if queue:
            raise queue.pop(0)

    async def create(self, data):
        self._maybe_fail("create")
        return await self._inner.create(data)

    async def get_all(self):
        self._maybe_fail("get_all")
        return await self._inner.get_all()

    async def get_by_id(self, record_id):
        self._maybe_fail("get_by_id")
        return await self._inner.get_by_id(record_id)

    async def update(self, record_id, partial, *, expected_updated_at=None):
        self._maybe_fail("update")
        return await self._inner.update(record_id, partial, expected_updated_at=expected_updated_at)

    async def delete(self, record_id):
        self._maybe_fail("delete")
        return await self._inner.delete(record_id)

    async def get_by_index(self, index_name, value):
        self._maybe_fail("get_by_index")
        return await self._inner.get_by_index(index_name, value)


class FaultyStorage:
    def __init__(self, inner: MemoryStorage, *, transactional: bool = True) -> None:
        self.inner = inner
        self.transactional = transactional
        self.failures: dict[tuple[str, str], list[Exception]] = defaultdict(list)
        self._stores: dict[str, FaultyRecordStore] = {}

    @property
    def supports_transactions(self) -> bool:
        return self.transactional

    def store(self, name: str) -> FaultyRecordStore:
        if name not in self._stores:
            self._stores[name] = FaultyRecordStore(self.inner.store(name), self)
        return self._stores[name]

    def transaction(self):
        return self.inner.transaction()

    def fail(self, store: str, operation: str, *errors: Exception) -> None:
        self.failures[(store, operation)].extend(errors)


def build_memory_storage() -> MemoryStorage:
    return MemoryStorage(indexes=STORE_INDEXES)


@pytest.fixture
def container():
    return create_container()


@pytest.fixture
def workflow(container):
    return container.workflow()


@pytest.fixture
def builder(workflow) -> SampleRecruitmentBuilder:
    return SampleRecruitmentBuilder(workflow)


@pytest.fixture
def faulty_workflow():
    """Return ``(storage, workflow)`` factories over a fault-injecting storage."""

    def factory(*, transactional: bool = True, settings: dict | None = None):
        storage = FaultyStorage(build_memory_storage(), transactional=transactional)
        workflow = create_container(settings=settings, storage=storage).workflow()
        return storage, workflow

    return factory


@pytest.fixture
def frozen_clock():
    moment = pendulum.datetime(2025, 1, 1, 9, 0, 0, tz="UTC")
    return lambda: moment
