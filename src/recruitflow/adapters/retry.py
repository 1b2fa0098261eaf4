"""Single-retry decorator for transient storage failures."""

from __future__ import annotations

from typing import Any, AsyncContextManager, Awaitable, Callable, TypeVar

import structlog

from ..errors import TransientStorageError

T = TypeVar("T")


class RetryingRecordStore:
    """Wrap a record store and retry transient failures."""

    def __init__(self, inner: Any, *, retries: int = 1) -> None:
        self._inner = inner
        self._retries = max(0, retries)
        self._logger = structlog.get_logger(__name__)

    @property
    def name(self) -> str:
        return self._inner.name

    async def _call(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                return await func()
            except TransientStorageError as exc:
                if attempt >= self._retries:
                    raise
                attempt += 1
                self._logger.warning(
                    "storage.retry",
                    store=self.name,
                    operation=operation,
                    attempt=attempt,
                    error=str(exc),
                )

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._call("create", lambda: self._inner.create(data))

    async def get_all(self) -> list[dict[str, Any]]:
        return await self._call("get_all", self._inner.get_all)

    async def get_by_id(self, record_id: str) -> dict[str, Any] | None:
        return await self._call("get_by_id", lambda: self._inner.get_by_id(record_id))

    async def update(
        self,
        record_id: str,
        partial: dict[str, Any],
        *,
        expected_updated_at: str | None = None,
    ) -> dict[str, Any]:
        return await self._call(
            "update",
            lambda: self._inner.update(
                record_id, partial, expected_updated_at=expected_updated_at
            ),
        )

    async def delete(self, record_id: str) -> None:
        await self._call("delete", lambda: self._inner.delete(record_id))

    async def get_by_index(self, index_name: str, value: Any) -> list[dict[str, Any]]:
        return await self._call(
            "get_by_index", lambda: self._inner.get_by_index(index_name, value)
        )


class RetryingStorage:
    """Storage service decorator applying ``RetryingRecordStore`` to every store."""

    def __init__(self, inner: Any, *, retries: int = 1) -> None:
        self._inner = inner
        self._retries = retries
        self._stores: dict[str, RetryingRecordStore] = {}

    @property
    def inner(self) -> Any:
        return self._inner

    @property
    def supports_transactions(self) -> bool:
        return bool(getattr(self._inner, "supports_transactions", False))

    def store(self, name: str) -> RetryingRecordStore:
        if name not in self._stores:
            self._stores[name] = RetryingRecordStore(
                self._inner.store(name), retries=self._retries
            )
        return self._stores[name]

    def transaction(self) -> AsyncContextManager[None]:
        return self._inner.transaction()
