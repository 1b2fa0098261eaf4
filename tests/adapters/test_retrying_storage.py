from __future__ import annotations

import pytest

from recruitflow.adapters import MemoryStorage, RetryingStorage
from recruitflow.errors import StorageError, TransientStorageError


class FlakyStore:
    def __init__(self, inner, failures: int, error: Exception | None = None) -> None:
        self._inner = inner
        self.name = inner.name
        self.failures = failures
        self.error = error or TransientStorageError("temporarily unavailable")
        self.calls = 0

    async def create(self, data):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise self.error
        return await self._inner.create(data)


class FlakyStorage:
    supports_transactions = False

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.memory = MemoryStorage()
        self.flaky = FlakyStore(self.memory.store("items"), failures, error)

    def store(self, name):
        return self.flaky


@pytest.mark.asyncio
async def test_transient_failure_is_retried_once():
    inner = FlakyStorage(failures=1)
    storage = RetryingStorage(inner, retries=1)

    record = await storage.store("items").create({"name": "x"})

    assert record["name"] == "x"
    assert inner.flaky.calls == 2


@pytest.mark.asyncio
async def test_second_transient_failure_propagates():
    inner = FlakyStorage(failures=2)
    storage = RetryingStorage(inner, retries=1)

    with pytest.raises(TransientStorageError):
        await storage.store("items").create({"name": "x"})
    assert inner.flaky.calls == 2


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried():
    inner = FlakyStorage(failures=1, error=StorageError("disk full"))
    storage = RetryingStorage(inner, retries=1)

    with pytest.raises(StorageError):
        await storage.store("items").create({"name": "x"})
    assert inner.flaky.calls == 1


def test_transaction_support_is_delegated():
    assert RetryingStorage(MemoryStorage()).supports_transactions is True
    assert RetryingStorage(FlakyStorage(failures=0)).supports_transactions is False
