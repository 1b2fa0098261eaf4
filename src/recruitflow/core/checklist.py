"""Final file audit checklist."""

from __future__ import annotations

from typing import Mapping

import structlog

from ..errors import PreconditionError, ValidationError
from ..identifiers import utc_timestamp
from ..repositories import Repositories
from ..schemas import CHECKLIST_FIELDS, FileChecklist

logger = structlog.get_logger(__name__)


class ChecklistService:
    """Open, tick and verify the per-process FileChecklist.

    The checklist ``status`` is always recomputed from the flags.
    """

    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories

    async def open(self, process_id: str, **flags: bool) -> FileChecklist:
        await self._repos.processes.get(process_id)
        if await self._repos.checklists.first_by_index("recruitment_id", process_id):
            raise ValidationError(f"file checklist already exists for recruitment {process_id}")
        _check_flags(flags)
        return await self._repos.checklists.create({**flags, "recruitment_id": process_id})

    async def for_process(self, process_id: str) -> FileChecklist | None:
        return await self._repos.checklists.first_by_index("recruitment_id", process_id)

    async def mark(self, checklist_id: str, flags: Mapping[str, bool]) -> FileChecklist:
        _check_flags(flags)
        checklist = await self._repos.checklists.get(checklist_id)
        updated = await self._repos.checklists.update(
            checklist_id, dict(flags), expected_updated_at=checklist.updated_at
        )
        logger.info(
            "checklist.marked",
            recruitment_id=updated.recruitment_id,
            status=updated.status,
            missing=len(updated.missing()),
        )
        return updated

    async def verify(self, checklist_id: str, *, verified_by: str) -> FileChecklist:
        checklist = await self._repos.checklists.get(checklist_id)
        if checklist.status != "complete":
            raise PreconditionError(
                "file checklist is missing: " + ", ".join(checklist.missing())
            )
        return await self._repos.checklists.update(
            checklist_id,
            {"verified_by": verified_by, "verified_at": utc_timestamp()},
            expected_updated_at=checklist.updated_at,
        )


def _check_flags(flags: Mapping[str, object]) -> None:
    if "status" in flags:
        raise ValidationError("checklist status is derived from its flags and cannot be set")
    unknown = sorted(set(flags) - set(CHECKLIST_FIELDS))
    if unknown:
        raise ValidationError(f"unknown checklist fields: {', '.join(unknown)}")
    for name, value in flags.items():
        if not isinstance(value, bool):
            raise ValidationError(f"checklist field {name} must be a boolean")
