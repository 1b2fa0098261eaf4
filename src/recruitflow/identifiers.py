"""Human-facing code generation."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import pendulum

from .errors import StorageError

if TYPE_CHECKING:
    from .repositories import Repository

# Excludes the look-alike characters 0/O and 1/I.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_CODE_ATTEMPTS = 5


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_code(prefix: str, *, now: pendulum.DateTime | None = None, length: int = 6) -> str:
    """Return ``PREFIX-<utc timestamp>-<random suffix>``."""
    moment = now or pendulum.now("UTC")
    return f"{prefix}-{moment.in_timezone('UTC').format('YYYYMMDDHHmmss')}-{random_suffix(length)}"


async def issue_code(repository: "Repository", field: str, prefix: str) -> str:
    """Generate a code that no record of ``repository`` carries in ``field``."""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_code(prefix)
        if not await repository.by_index(field, code):
            return code
    raise StorageError(f"Could not issue a unique {field} for {repository.store_name}")


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return pendulum.now("UTC").to_iso8601_string()
