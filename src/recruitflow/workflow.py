"""Facade bundling the recruitment services over one storage service."""

from __future__ import annotations

from typing import Any

from .core import (
    ApplicationStateMachine,
    CandidateRegistry,
    ChecklistService,
    CommitteeStage,
    ComplianceGateChain,
    InterviewStage,
    OfferStage,
    RecruitmentProcessMachine,
    ReportStage,
    RequisitionStage,
    ScoringEngine,
    SelectionStage,
)
from .repositories import Repositories
from .schemas import CandidateApplication


class RecruitmentWorkflow:
    """Entry point for callers driving recruitments end to end."""

    def __init__(
        self,
        *,
        storage: Any,
        repositories: Repositories,
        scoring: ScoringEngine,
        processes: RecruitmentProcessMachine,
        applications: ApplicationStateMachine,
        candidates: CandidateRegistry,
        requisition: RequisitionStage,
        committee: CommitteeStage,
        selection: SelectionStage,
        interview: InterviewStage,
        report: ReportStage,
        offers: OfferStage,
        compliance: ComplianceGateChain,
        checklist: ChecklistService,
    ) -> None:
        self.storage = storage
        self.repositories = repositories
        self.scoring = scoring
        self.processes = processes
        self.applications = applications
        self.candidates = candidates
        self.requisition = requisition
        self.committee = committee
        self.selection = selection
        self.interview = interview
        self.report = report
        self.offers = offers
        self.compliance = compliance
        self.checklist = checklist

    async def hire(self, application_id: str) -> CandidateApplication:
        return await self.applications.hire(application_id)

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Dump the underlying in-memory storage."""
        storage = self.storage
        while not hasattr(storage, "snapshot") and hasattr(storage, "inner"):
            storage = storage.inner
        if not hasattr(storage, "snapshot"):
            raise TypeError(f"{type(storage).__name__} cannot be snapshotted")
        return storage.snapshot()
