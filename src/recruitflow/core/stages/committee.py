"""Recruitment committee membership and conflict-of-interest review."""

from __future__ import annotations

from typing import Any, Iterable

import structlog

from ...errors import InvalidTransitionError, ValidationError
from ...identifiers import utc_timestamp
from ...schemas import COIDeclaration, CommitteeMember
from .base import StageService

logger = structlog.get_logger(__name__)


class CommitteeStage(StageService):
    async def add_member(self, committee_id: str, **fields: Any) -> CommitteeMember:
        await self._repos.committees.get(committee_id)
        members = await self.members(committee_id)
        if fields.get("is_chair") and any(member.is_chair for member in members):
            raise ValidationError(f"committee {committee_id} already has a chair")
        return await self._repos.committee_members.create({**fields, "committee_id": committee_id})

    async def members(self, committee_id: str) -> list[CommitteeMember]:
        return await self._repos.committee_members.by_index("committee_id", committee_id)

    async def declare_conflict(
        self,
        member_id: str,
        *,
        has_conflict: bool,
        related_application_ids: Iterable[str] = (),
        description: str | None = None,
    ) -> COIDeclaration:
        member = await self._repos.committee_members.get(member_id)
        committee = await self._repos.committees.get(member.committee_id)
        if await self._repos.coi_declarations.first_by_index("committee_member_id", member_id):
            raise ValidationError(f"member {member_id} has already declared")
        related = list(related_application_ids)
        for application_id in related:
            await self._application_in_process(application_id, committee.recruitment_id)
        declaration = await self._repos.coi_declarations.create(
            {
                "recruitment_id": committee.recruitment_id,
                "committee_member_id": member_id,
                "has_conflict": has_conflict,
                "conflict_description": description,
                "related_application_ids": related,
                "declaration_date": utc_timestamp(),
            }
        )
        logger.info("committee.coi_declared", member_id=member_id, has_conflict=has_conflict)
        return declaration

    async def review_conflict(
        self,
        declaration_id: str,
        *,
        decision: str,
        reviewed_by: str,
        comments: str | None = None,
    ) -> COIDeclaration:
        declaration = await self._repos.coi_declarations.get(declaration_id)
        if declaration.hr_decision is not None:
            raise InvalidTransitionError("COI declaration", declaration.hr_decision, decision)
        return await self._repos.coi_declarations.update(
            declaration_id,
            {
                "hr_decision": decision,
                "hr_reviewed_by": reviewed_by,
                "hr_reviewed_at": utc_timestamp(),
                "hr_comments": comments,
            },
            expected_updated_at=declaration.updated_at,
        )

    async def unresolved_conflicts(self, process_id: str) -> list[COIDeclaration]:
        declarations = await self._repos.coi_declarations.by_index("recruitment_id", process_id)
        return [d for d in declarations if d.has_conflict and d.hr_decision is None]
