"""In-memory implementation of the storage contract."""

from __future__ import annotations

import copy
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Iterable, Mapping

import pendulum
import structlog

from ..errors import RecordNotFoundError, StaleRecordError, StorageError, ValidationError

_MANAGED_FIELDS = ("id", "created_at", "updated_at")


class MemoryRecordStore:
    """Dictionary-backed record store with declared secondary indexes."""

    def __init__(
        self,
        name: str,
        *,
        owner: "MemoryStorage",
        indexes: Iterable[str] = (),
    ) -> None:
        self.name = name
        self._owner = owner
        self._indexes = frozenset(indexes)
        self._records: dict[str, dict[str, Any]] = {}

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        managed = [key for key in _MANAGED_FIELDS if key in data]
        if managed:
            raise ValidationError(
                f"create() input for {self.name} must not carry {', '.join(managed)}"
            )
        stamp = self._owner.stamp()
        record_id = self._owner.new_id()
        record = {
            **copy.deepcopy(data),
            "id": record_id,
            "created_at": stamp,
            "updated_at": stamp,
        }
        self._records[record_id] = record
        return copy.deepcopy(record)

    async def get_all(self) -> list[dict[str, Any]]:
        records = sorted(self._records.values(), key=lambda item: item["created_at"])
        return copy.deepcopy(records)

    async def get_by_id(self, record_id: str) -> dict[str, Any] | None:
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(
        self,
        record_id: str,
        partial: dict[str, Any],
        *,
        expected_updated_at: str | None = None,
    ) -> dict[str, Any]:
        existing = self._records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(self.name, record_id)
        if expected_updated_at is not None and existing["updated_at"] != expected_updated_at:
            raise StaleRecordError(
                self.name, record_id, expected_updated_at, existing["updated_at"]
            )
        changes = {k: v for k, v in partial.items() if k not in _MANAGED_FIELDS}
        updated = {
            **existing,
            **copy.deepcopy(changes),
            "updated_at": self._owner.stamp(),
        }
        self._records[record_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, record_id: str) -> None:
        if record_id not in self._records:
            raise RecordNotFoundError(self.name, record_id)
        del self._records[record_id]

    async def get_by_index(self, index_name: str, value: Any) -> list[dict[str, Any]]:
        if index_name not in self._indexes:
            raise StorageError(f"Store {self.name} has no index {index_name!r}")
        matches = [
            record
            for record in self._records.values()
            if record.get(index_name) == value
        ]
        matches.sort(key=lambda item: item["created_at"])
        return copy.deepcopy(matches)

    def _dump(self) -> list[dict[str, Any]]:
        return copy.deepcopy(list(self._records.values()))

    def _restore(self, records: dict[str, dict[str, Any]]) -> None:
        self._records = records


class MemoryStorage:
    """Named in-memory stores with snapshot/restore transactions."""

    supports_transactions = True

    def __init__(
        self,
        *,
        indexes: Mapping[str, Iterable[str]] | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._index_catalog = {name: tuple(fields) for name, fields in (indexes or {}).items()}
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._stores: dict[str, MemoryRecordStore] = {}
        self._last_stamp: pendulum.DateTime | None = None
        self._tx_depth = 0
        self._logger = structlog.get_logger(__name__)

    def store(self, name: str) -> MemoryRecordStore:
        store = self._stores.get(name)
        if store is None:
            store = MemoryRecordStore(
                name,
                owner=self,
                indexes=self._index_catalog.get(name, ()),
            )
            self._stores[name] = store
        return store

    def stamp(self) -> str:
        """Return a strictly increasing ISO-8601 timestamp."""
        now = self._now_provider()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp.add(microseconds=1)
        self._last_stamp = now
        # Fixed width so stamps order lexicographically.
        return now.in_timezone("UTC").isoformat(timespec="microseconds")

    def new_id(self) -> str:
        return self._id_factory()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._tx_depth:
            # Nested blocks join the outermost transaction.
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return

        saved = {
            name: copy.deepcopy(store._records) for name, store in self._stores.items()
        }
        saved_stamp = self._last_stamp
        self._tx_depth = 1
        try:
            yield
        except BaseException:
            for name in list(self._stores):
                if name in saved:
                    self._stores[name]._restore(saved[name])
                else:
                    self._stores[name]._restore({})
            self._last_stamp = saved_stamp
            self._logger.info("storage.rolled_back", stores=sorted(self._stores))
            raise
        finally:
            self._tx_depth = 0

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Return every store's records keyed by store name."""
        return {name: store._dump() for name, store in sorted(self._stores.items())}

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Iterable[Mapping[str, Any]]],
        **kwargs: Any,
    ) -> "MemoryStorage":
        storage = cls(**kwargs)
        for name, records in data.items():
            store = storage.store(name)
            store._restore({str(item["id"]): copy.deepcopy(dict(item)) for item in records})
        return storage
