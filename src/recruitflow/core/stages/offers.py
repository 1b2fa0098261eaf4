"""Conditional offers (step 12)."""

from __future__ import annotations

from typing import Any

import structlog

from ...errors import InvalidTransitionError, ValidationError
from ...identifiers import utc_timestamp
from ...repositories import Repositories, atomic
from ...schemas import Offer
from ..applications import ApplicationStateMachine
from .base import StageService, require

logger = structlog.get_logger(__name__)

OPEN_OFFER_STATUSES = ("draft", "sent", "accepted")


class OfferStage(StageService):
    def __init__(self, repositories: Repositories, applications: ApplicationStateMachine) -> None:
        super().__init__(repositories)
        self._applications = applications

    async def draft(self, application_id: str, **fields: Any) -> Offer:
        application = await self._repos.applications.get(application_id)
        report = await self._repos.reports.first_by_index("recruitment_id", application.recruitment_id)
        require(
            report is not None and report.status == "approved",
            "recruitment report must be approved before offers are made",
        )
        require(
            application_id in report.selected_application_ids,
            f"application {application_id} is not selected in the recruitment report",
        )
        if application.status != "interviewed":
            raise InvalidTransitionError("application", application.status, "offered")
        offers = await self._repos.offers.by_index("application_id", application_id)
        if any(offer.status in OPEN_OFFER_STATUSES for offer in offers):
            raise ValidationError(f"application {application_id} already has an open offer")
        process = await self._repos.processes.get(application.recruitment_id)
        return await self._repos.offers.create(
            {
                "position": process.position_title,
                **fields,
                "recruitment_id": application.recruitment_id,
                "application_id": application_id,
                "status": "draft",
                "sent_at": None,
                "responded_at": None,
            }
        )

    async def send(self, offer_id: str) -> Offer:
        offer = await self._repos.offers.get(offer_id)
        async with atomic(self._repos.storage):
            sent = await self._move(
                self._repos.offers,
                offer,
                "sent",
                allowed_from=("draft",),
                entity="offer",
                changes={"sent_at": utc_timestamp()},
            )
            await self._applications.apply_offer(sent)
        return sent

    async def issue(self, application_id: str, **fields: Any) -> Offer:
        """Draft and send an offer in one step."""
        async with atomic(self._repos.storage):
            offer = await self.draft(application_id, **fields)
            return await self.send(offer.id)

    async def respond(self, offer_id: str, *, accepted: bool, reason: str | None = None) -> Offer:
        offer = await self._repos.offers.get(offer_id)
        target = "accepted" if accepted else "declined"
        async with atomic(self._repos.storage):
            updated = await self._move(
                self._repos.offers,
                offer,
                target,
                allowed_from=("sent",),
                entity="offer",
                changes={"responded_at": utc_timestamp(), "decline_reason": None if accepted else reason},
            )
            await self._applications.apply_offer(updated)
        logger.info("offer.responded", application_id=offer.application_id, status=target)
        return updated

    async def expire(self, offer_id: str) -> Offer:
        offer = await self._repos.offers.get(offer_id)
        async with atomic(self._repos.storage):
            updated = await self._move(self._repos.offers, offer, "expired", allowed_from=("sent",), entity="offer")
            await self._applications.apply_offer(updated)
        return updated
