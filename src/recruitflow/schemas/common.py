"""Shared base model for stored records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class Record(BaseModel):
    """Base for every entity persisted through the storage service."""

    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(extra="forbid")
