"""Storage service contract and bundled adapters."""

from __future__ import annotations

from typing import Any, AsyncContextManager, Protocol, runtime_checkable

from .memory import MemoryRecordStore, MemoryStorage
from .retry import RetryingStorage


@runtime_checkable
class RecordStore(Protocol):
    """Keyed record store contract consumed by the workflow core.

    Implementations assign an opaque identifier and ISO-8601 ``created_at`` /
    ``updated_at`` stamps on create, refresh ``updated_at`` on update and raise
    ``RecordNotFoundError`` for operations addressing a missing id.
    """

    name: str

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Persist a new record and return it with id and timestamps."""

    async def get_all(self) -> list[dict[str, Any]]:
        """Return every record in the store."""

    async def get_by_id(self, record_id: str) -> dict[str, Any] | None:
        """Return the record or None when absent."""

    async def update(
        self,
        record_id: str,
        partial: dict[str, Any],
        *,
        expected_updated_at: str | None = None,
    ) -> dict[str, Any]:
        """Merge partial fields into the record."""

    async def delete(self, record_id: str) -> None:
        """Remove the record."""

    async def get_by_index(self, index_name: str, value: Any) -> list[dict[str, Any]]:
        """Secondary-key lookup."""


@runtime_checkable
class StorageService(Protocol):
    """A set of named record stores.

    ``transaction()`` is only meaningful when ``supports_transactions`` is
    true; callers fall back to idempotent two-phase writes otherwise.
    """

    supports_transactions: bool

    def store(self, name: str) -> RecordStore:
        """Return the store registered under ``name``."""

    def transaction(self) -> AsyncContextManager[None]:
        """Group writes so that they all apply or none do."""


__all__ = [
    "RecordStore",
    "StorageService",
    "MemoryStorage",
    "MemoryRecordStore",
    "RetryingStorage",
]
