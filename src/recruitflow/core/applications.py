"""Per-candidate application lifecycle."""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping

import structlog

from ..errors import InvalidTransitionError, PreconditionError, ValidationError
from ..identifiers import issue_code, utc_timestamp
from ..repositories import Repositories, atomic
from ..schemas import (
    CandidateApplication,
    LonglistingCandidate,
    Offer,
    ShortlistingCandidate,
    StatusChange,
    WrittenTestCandidate,
)
from .gates import APPLICATION_RECEIPT_STEP

logger = structlog.get_logger(__name__)

FORWARD_EDGES: dict[str, str] = {
    "received": "longlisted",
    "longlisted": "shortlisted",
    "shortlisted": "tested",
    "tested": "interviewed",
    "interviewed": "offered",
    "offered": "hired",
}
TERMINAL_STATUSES = frozenset({"hired", "rejected", "withdrawn"})
EXIT_STATUSES = frozenset({"rejected", "withdrawn"})
TERMINAL_PROCESS_STATUSES = frozenset({"completed", "cancelled"})


def can_transition(current: str, target: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if target in EXIT_STATUSES:
        return True
    return FORWARD_EDGES.get(current) == target


class ApplicationStateMachine:
    """Drive application status changes from stage decision records.

    Every transition is checked against the application's stored status and
    written with a compare-and-swap on ``updated_at``.
    """

    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories

    async def receive(
        self,
        process_id: str,
        candidate_id: str,
        **fields: Any,
    ) -> CandidateApplication:
        process = await self._repos.processes.get(process_id)
        if process.status in TERMINAL_PROCESS_STATUSES:
            raise InvalidTransitionError("recruitment", process.status, "receive application")
        if process.current_step < APPLICATION_RECEIPT_STEP:
            raise PreconditionError(
                "applications are received once the vacancy is announced",
                step=APPLICATION_RECEIPT_STEP,
            )
        existing = await self._repos.applications.by_index("candidate_id", candidate_id)
        if any(app.recruitment_id == process_id for app in existing):
            raise ValidationError(
                f"candidate {candidate_id} already applied to recruitment {process_id}"
            )
        now = utc_timestamp()
        code = await issue_code(self._repos.applications, "application_code", "APP")
        application = await self._repos.applications.create(
            {
                "application_date": now,
                **fields,
                "application_code": code,
                "recruitment_id": process_id,
                "candidate_id": candidate_id,
                "status": "received",
                "history": [StatusChange(from_status=None, to_status="received", at=now)],
            }
        )
        logger.info(
            "application.received",
            application_id=application.id,
            recruitment_id=process_id,
            candidate_id=candidate_id,
        )
        return application

    async def transition(
        self,
        application_id: str,
        target: str,
        *,
        reason: str | None = None,
    ) -> CandidateApplication:
        application = await self._repos.applications.get(application_id)
        return await self._move(application, target, reason=reason)

    async def _move(
        self,
        application: CandidateApplication,
        target: str,
        *,
        reason: str | None = None,
    ) -> CandidateApplication:
        current = application.status
        if not can_transition(current, target):
            raise InvalidTransitionError("application", current, target)
        change = StatusChange(from_status=current, to_status=target, at=utc_timestamp(), reason=reason)
        changes: dict[str, Any] = {
            "status": target,
            "history": [*application.model_dump(mode="json")["history"], change.model_dump()],
        }
        if target == "rejected":
            changes["rejection_reason"] = reason
        elif target == "withdrawn":
            changes["withdrawal_reason"] = reason
        updated = await self._repos.applications.update(
            application.id, changes, expected_updated_at=application.updated_at
        )
        logger.info(
            "application.transitioned",
            application_id=application.id,
            from_status=current,
            to_status=target,
            reason=reason,
        )
        return updated

    async def apply_longlisting(self, decision: LonglistingCandidate) -> CandidateApplication:
        if decision.is_longlisted:
            return await self.transition(decision.application_id, "longlisted")
        return await self.transition(
            decision.application_id,
            "rejected",
            reason=decision.reason or "not longlisted",
        )

    async def apply_shortlisting(self, score: ShortlistingCandidate) -> CandidateApplication:
        if score.is_shortlisted:
            return await self.transition(score.application_id, "shortlisted")
        return await self.transition(
            score.application_id,
            "rejected",
            reason=f"shortlisting score {score.total_score:g} below passing score",
        )

    async def apply_written_test(self, result: WrittenTestCandidate) -> CandidateApplication:
        if result.is_passed is None:
            raise ValidationError(f"written test result for {result.application_id} is not marked")
        if result.is_passed:
            return await self.transition(result.application_id, "tested")
        reason = "absent from written test" if not result.attended else "written test failed"
        return await self.transition(result.application_id, "rejected", reason=reason)

    async def select_for_interview(self, application_ids: Iterable[str]) -> list[CandidateApplication]:
        """Move an explicit, committee-curated selection to ``interviewed``.

        The whole selection is validated before any application is written.
        """
        ids = list(dict.fromkeys(application_ids))
        if not ids:
            raise ValidationError("interview selection is empty")
        applications = [await self._repos.applications.get(app_id) for app_id in ids]
        for application in applications:
            if not can_transition(application.status, "interviewed"):
                raise InvalidTransitionError("application", application.status, "interviewed")
        async with atomic(self._repos.storage):
            return [await self._move(application, "interviewed") for application in applications]

    async def apply_offer(self, offer: Offer) -> CandidateApplication:
        if offer.status == "sent":
            return await self.transition(offer.application_id, "offered")
        if offer.status in ("declined", "expired"):
            reason = "offer expired" if offer.status == "expired" else offer.decline_reason
            return await self.transition(
                offer.application_id,
                "withdrawn",
                reason=reason or "offer declined",
            )
        return await self._repos.applications.get(offer.application_id)

    async def hire(self, application_id: str) -> CandidateApplication:
        application = await self._repos.applications.get(application_id)
        if application.status != "offered":
            raise InvalidTransitionError("application", application.status, "hired")
        offers = await self._repos.offers.by_index("application_id", application_id)
        if not any(offer.status == "accepted" for offer in offers):
            raise PreconditionError("offer has not been accepted")
        contract = await self._repos.contracts.first_by_index("application_id", application_id)
        if contract is None:
            raise PreconditionError("employment contract does not exist")
        if not contract.is_fully_signed:
            raise PreconditionError("employment contract must be signed by both parties")
        return await self._move(application, "hired")

    async def reject(self, application_id: str, reason: str) -> CandidateApplication:
        return await self.transition(application_id, "rejected", reason=reason)

    async def withdraw(self, application_id: str, reason: str | None = None) -> CandidateApplication:
        return await self.transition(application_id, "withdrawn", reason=reason)

    async def for_process(
        self, process_id: str, *, status: str | None = None
    ) -> list[CandidateApplication]:
        applications = await self._repos.applications.by_index("recruitment_id", process_id)
        if status is None:
            return applications
        return [app for app in applications if app.status == status]

    async def counts_by_status(self, process_id: str) -> Mapping[str, int]:
        return dict(Counter(app.status for app in await self.for_process(process_id)))
