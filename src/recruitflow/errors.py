"""Error kinds raised by the recruitment workflow."""

from __future__ import annotations

from typing import Any


class RecruitmentError(Exception):
    """Base class for every error raised by recruitflow."""


class ValidationError(RecruitmentError, ValueError):
    """Raised when input to a constructor operation is malformed."""

    def __init__(self, message: str, errors: list[Any] | None = None):
        super().__init__(message)
        self.errors = errors or []


class PreconditionError(RecruitmentError):
    """Raised when a stage gate or compliance gate condition is unmet."""

    def __init__(self, condition: str, *, step: int | None = None):
        super().__init__(condition)
        self.condition = condition
        self.step = step

    def __str__(self) -> str:
        if self.step is None:
            return self.condition
        return f"step {self.step}: {self.condition}"


class InvalidTransitionError(RecruitmentError):
    """Raised when a transition is requested from a state that forbids it."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"{entity} cannot move from {current!r} to {target!r}")
        self.entity = entity
        self.current = current
        self.target = target


class StorageError(RecruitmentError):
    """Raised by storage adapters on failed operations."""


class RecordNotFoundError(StorageError, LookupError):
    """Raised when an operation addresses a nonexistent record."""

    def __init__(self, store: str, record_id: Any):
        super().__init__(f"Record {record_id!r} not found in {store}")
        self.store = store
        self.record_id = record_id


class TransientStorageError(StorageError):
    """Raised for storage failures that may succeed when retried."""


class StaleRecordError(StorageError):
    """Raised when a compare-and-swap update sees a newer record."""

    def __init__(self, store: str, record_id: Any, expected: str | None, actual: str | None):
        super().__init__(
            f"Record {record_id!r} in {store} was modified "
            f"(expected updated_at {expected}, found {actual})"
        )
        self.store = store
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "RecruitmentError",
    "ValidationError",
    "PreconditionError",
    "InvalidTransitionError",
    "StorageError",
    "RecordNotFoundError",
    "TransientStorageError",
    "StaleRecordError",
]
