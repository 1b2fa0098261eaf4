"""Terms of reference, staff requisition and vacancy announcement operations."""

from __future__ import annotations

import structlog

from ...errors import InvalidTransitionError
from ...identifiers import utc_timestamp
from ...schemas import StaffRequisition, TermsOfReference, VacancyAnnouncement
from .base import StageService, require

logger = structlog.get_logger(__name__)


class RequisitionStage(StageService):
    """Approval flow for steps 1 to 4."""

    # terms of reference

    async def submit_tor(self, tor_id: str) -> TermsOfReference:
        repo = self._repos.terms_of_reference
        tor = await repo.get(tor_id)
        return await self._move(
            repo, tor, "pending_approval", allowed_from=("draft", "rejected"), entity="terms of reference"
        )

    async def approve_tor(self, tor_id: str, *, approved_by: str) -> TermsOfReference:
        repo = self._repos.terms_of_reference
        tor = await repo.get(tor_id)
        return await self._move(
            repo,
            tor,
            "approved",
            allowed_from=("draft", "pending_approval"),
            entity="terms of reference",
            changes={"approved_by": approved_by, "approved_at": utc_timestamp()},
        )

    async def reject_tor(self, tor_id: str, *, rejected_by: str, reason: str) -> TermsOfReference:
        repo = self._repos.terms_of_reference
        tor = await repo.get(tor_id)
        return await self._move(
            repo,
            tor,
            "rejected",
            allowed_from=("draft", "pending_approval"),
            entity="terms of reference",
            changes={"rejected_by": rejected_by, "rejection_reason": reason},
        )

    # staff requisition

    async def submit_requisition(self, srf_id: str) -> StaffRequisition:
        repo = self._repos.requisitions
        srf = await repo.get(srf_id)
        return await self._move(repo, srf, "hr_review", allowed_from=("draft", "rejected"), entity="staff requisition")

    async def verify_hr(self, srf_id: str, *, verified_by: str) -> StaffRequisition:
        repo = self._repos.requisitions
        srf = await repo.get(srf_id)
        return await self._move(
            repo,
            srf,
            "finance_review",
            allowed_from=("draft", "hr_review"),
            entity="staff requisition",
            changes={"hr_verified": True, "hr_verified_by": verified_by, "hr_verified_at": utc_timestamp()},
        )

    async def verify_budget(self, srf_id: str, *, verified_by: str) -> StaffRequisition:
        repo = self._repos.requisitions
        srf = await repo.get(srf_id)
        require(srf.hr_verified, "staff requisition must be HR verified before budget verification")
        if srf.status != "finance_review":
            raise InvalidTransitionError("staff requisition", srf.status, "budget verified")
        updated = await repo.update(
            srf_id,
            {"budget_verified": True, "budget_verified_by": verified_by, "budget_verified_at": utc_timestamp()},
            expected_updated_at=srf.updated_at,
        )
        logger.info("stage.budget_verified", record_id=srf_id, verified_by=verified_by)
        return updated

    async def approve_requisition(self, srf_id: str, *, approved_by: str) -> StaffRequisition:
        repo = self._repos.requisitions
        srf = await repo.get(srf_id)
        require(srf.hr_verified, "staff requisition must be HR verified")
        require(srf.budget_verified, "staff requisition budget must be verified")
        return await self._move(
            repo,
            srf,
            "approved",
            allowed_from=("finance_review",),
            entity="staff requisition",
            changes={"approved_by": approved_by, "approved_at": utc_timestamp()},
        )

    async def reject_requisition(self, srf_id: str, *, reason: str) -> StaffRequisition:
        repo = self._repos.requisitions
        srf = await repo.get(srf_id)
        return await self._move(
            repo,
            srf,
            "rejected",
            allowed_from=("draft", "hr_review", "finance_review"),
            entity="staff requisition",
            changes={
                "rejection_reason": reason,
                "hr_verified": False,
                "budget_verified": False,
            },
        )

    # vacancy announcement

    async def publish_announcement(self, announcement_id: str) -> VacancyAnnouncement:
        repo = self._repos.announcements
        announcement = await repo.get(announcement_id)
        return await self._move(
            repo,
            announcement,
            "published",
            allowed_from=("draft",),
            entity="vacancy announcement",
            changes={"published_at": utc_timestamp()},
        )

    async def close_announcement(self, announcement_id: str) -> VacancyAnnouncement:
        repo = self._repos.announcements
        announcement = await repo.get(announcement_id)
        return await self._move(
            repo,
            announcement,
            "closed",
            allowed_from=("published",),
            entity="vacancy announcement",
            changes={"closed_at": utc_timestamp()},
        )
