"""Shared plumbing for stage operation services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Collection, Mapping, TypeVar

import structlog

from ...errors import InvalidTransitionError, PreconditionError, ValidationError
from ...repositories import Repositories, Repository
from ...schemas import Record

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


@dataclass
class StageConfig:
    """Default field values for rounds created by the stage services."""

    shortlisting: dict[str, float] = field(default_factory=dict)
    written_test: dict[str, float] = field(default_factory=dict)
    interview: dict[str, float] = field(default_factory=dict)


class StageService:
    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories

    async def _move(
        self,
        repository: Repository[RecordT],
        record: RecordT,
        target: str,
        *,
        allowed_from: Collection[str],
        entity: str,
        changes: Mapping[str, Any] | None = None,
    ) -> RecordT:
        current = getattr(record, "status")
        if current not in allowed_from:
            raise InvalidTransitionError(entity, current, target)
        updated = await repository.update(
            record.id,
            {**(changes or {}), "status": target},
            expected_updated_at=record.updated_at,
        )
        logger.info("stage.status_changed", entity=entity, record_id=record.id, from_status=current, to_status=target)
        return updated

    async def _application_in_process(self, application_id: str, process_id: str | None):
        application = await self._repos.applications.get(application_id)
        if process_id is not None and application.recruitment_id != process_id:
            raise ValidationError(
                f"application {application_id} does not belong to recruitment {process_id}"
            )
        return application


def require(condition: bool, message: str, *, step: int | None = None) -> None:
    if not condition:
        raise PreconditionError(message, step=step)
