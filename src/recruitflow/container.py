"""Dependency injection container for the recruitment workflow."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .adapters import MemoryStorage, RetryingStorage
from .core import (
    ApplicationStateMachine,
    CandidateRegistry,
    CandidateSearchConfig,
    ChecklistService,
    CommitteeStage,
    ComplianceConfig,
    ComplianceGateChain,
    InterviewStage,
    OfferStage,
    RecruitmentProcessMachine,
    ReportStage,
    RequisitionStage,
    ScoringConfig,
    ScoringEngine,
    SelectionStage,
    StageConfig,
    StageGateEvaluator,
)
from .repositories import STORE_INDEXES, Repositories
from .workflow import RecruitmentWorkflow


class RecruitmentContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    storage_backend = providers.Singleton(MemoryStorage, indexes=STORE_INDEXES)
    storage_retries = providers.Object(1)
    storage = providers.Singleton(RetryingStorage, storage_backend, retries=storage_retries)
    repositories = providers.Singleton(Repositories, storage)

    scoring_config = providers.Singleton(ScoringConfig)
    compliance_config = providers.Singleton(ComplianceConfig)
    stage_config = providers.Singleton(StageConfig)
    search_config = providers.Singleton(CandidateSearchConfig)

    scoring = providers.Singleton(ScoringEngine, config=scoring_config)
    gates = providers.Singleton(StageGateEvaluator)
    applications = providers.Singleton(ApplicationStateMachine, repositories)
    candidates = providers.Singleton(CandidateRegistry, repositories, config=search_config)
    compliance = providers.Singleton(ComplianceGateChain, repositories, config=compliance_config)
    checklist = providers.Singleton(ChecklistService, repositories)

    requisition = providers.Singleton(RequisitionStage, repositories)
    committee = providers.Singleton(CommitteeStage, repositories)
    selection = providers.Singleton(
        SelectionStage, repositories, applications, scoring, config=stage_config
    )
    interview = providers.Singleton(
        InterviewStage, repositories, applications, scoring, config=stage_config
    )
    report = providers.Singleton(ReportStage, repositories)
    offers = providers.Singleton(OfferStage, repositories, applications)

    processes = providers.Singleton(
        RecruitmentProcessMachine,
        repositories,
        applications=applications,
        compliance=compliance,
        offers=offers,
        gates=gates,
    )

    workflow = providers.Singleton(
        RecruitmentWorkflow,
        storage=storage,
        repositories=repositories,
        scoring=scoring,
        processes=processes,
        applications=applications,
        candidates=candidates,
        requisition=requisition,
        committee=committee,
        selection=selection,
        interview=interview,
        report=report,
        offers=offers,
        compliance=compliance,
        checklist=checklist,
    )


def create_container(
    *,
    settings: dict | None = None,
    storage: Any | None = None,
) -> RecruitmentContainer:
    """Instantiate container with optional overrides.

    ``storage`` replaces the in-memory backend; it is still wrapped by the
    retrying decorator.
    """

    container = RecruitmentContainer()

    if storage is not None:
        container.storage_backend.override(providers.Object(storage))

    if not settings:
        return container

    if "scoring" in settings:
        scoring_config = ScoringConfig(**settings["scoring"])
        container.scoring_config.override(providers.Object(scoring_config))

    storage_settings = settings.get("storage", {})
    if "retries" in storage_settings:
        container.storage_retries.override(providers.Object(storage_settings["retries"]))

    if "compliance" in settings:
        compliance_config = ComplianceConfig(**settings["compliance"])
        container.compliance_config.override(providers.Object(compliance_config))

    if "stages" in settings:
        stage_config = StageConfig(**settings["stages"])
        container.stage_config.override(providers.Object(stage_config))

    if "search" in settings:
        search_config = CandidateSearchConfig(**settings["search"])
        container.search_config.override(providers.Object(search_config))

    return container
