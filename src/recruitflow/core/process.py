"""Top-level recruitment process state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, get_args

import structlog

from ..errors import InvalidTransitionError, PreconditionError, ValidationError
from ..identifiers import issue_code, utc_timestamp
from ..repositories import Repositories, Repository, atomic
from ..schemas import FINAL_STEP, FIRST_STEP, MANAGED_FIELDS, Record, RecruitmentProcess, TermsOfReference
from ..schemas.process import ProcessStatus
from .applications import TERMINAL_PROCESS_STATUSES, ApplicationStateMachine
from .compliance import ComplianceGateChain
from .gates import STAGE_BY_STEP, GateContextLoader, Stage, StageGateEvaluator
from .stages import OfferStage
from .stages.offers import OPEN_OFFER_STATUSES

logger = structlog.get_logger(__name__)

# Steps 3 and 5 carry no artifact.
STAGE_REPOSITORIES: dict[int, str] = {
    1: "terms_of_reference",
    2: "requisitions",
    4: "announcements",
    6: "committees",
    7: "longlistings",
    8: "shortlistings",
    9: "written_tests",
    10: "interviews",
    11: "reports",
    12: "offers",
    13: "sanctions",
    14: "background_checks",
    15: "contracts",
}


@dataclass(slots=True)
class AdvanceOutcome:
    process: RecruitmentProcess
    artifact: Record | None
    created: bool


@dataclass(slots=True)
class ProcessStatusReport:
    process_id: str
    recruitment_code: str
    position_title: str
    status: str
    current_step: int
    step_title: str
    application_counts: dict[str, int] = field(default_factory=dict)
    checklist_status: str | None = None


@dataclass(slots=True)
class ProcessStats:
    total: int = 0
    draft: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0


class RecruitmentProcessMachine:
    """Coordinates stage gates, artifacts and the step counter of a process.

    ``advance`` persists the next stage's artifact and bumps ``current_step``
    as one unit: inside a storage transaction when the storage offers one,
    otherwise as a two-phase sequence that reuses an existing artifact and
    deletes a freshly created one when the step bump fails.
    """

    def __init__(
        self,
        repositories: Repositories,
        *,
        applications: ApplicationStateMachine,
        compliance: ComplianceGateChain,
        offers: OfferStage,
        gates: StageGateEvaluator | None = None,
    ) -> None:
        self._repos = repositories
        self._applications = applications
        self._compliance = compliance
        self._offers = offers
        self._gates = gates or StageGateEvaluator()
        self._loader = GateContextLoader(repositories)

    async def open(
        self,
        process: RecruitmentProcess | Mapping[str, Any],
        tor: TermsOfReference | Mapping[str, Any] | None = None,
    ) -> RecruitmentProcess:
        repo = self._repos.processes
        data = _as_dict(process)
        data.update(status="draft", current_step=FIRST_STEP, completed_at=None, cancelled_at=None)
        if not data.get("recruitment_code"):
            data["recruitment_code"] = await issue_code(repo, "recruitment_code", "RC")
        async with atomic(self._repos.storage) as transactional:
            created = await repo.create(data)
            if tor is not None:
                try:
                    await self._repos.terms_of_reference.create({**_as_dict(tor), "recruitment_id": created.id})
                except Exception:
                    if not transactional:
                        await repo.delete(created.id)
                    raise
        logger.info("process.opened", process_id=created.id, recruitment_code=created.recruitment_code)
        return created

    async def get(self, process_id: str) -> RecruitmentProcess:
        return await self._repos.processes.get(process_id)

    async def advance(
        self,
        process_id: str,
        stage_artifact: Record | Mapping[str, Any] | None = None,
        *,
        to_step: int | None = None,
    ) -> AdvanceOutcome:
        process = await self._repos.processes.get(process_id)
        if process.status in TERMINAL_PROCESS_STATUSES:
            raise InvalidTransitionError("recruitment", process.status, "advance")
        if process.current_step >= FINAL_STEP:
            raise InvalidTransitionError("recruitment", f"step {process.current_step}", "advance")
        target = process.current_step + 1
        if to_step is not None and to_step != target:
            raise PreconditionError(
                f"cannot move from step {process.current_step} to step {to_step}; "
                f"step {target} must be completed first",
                step=to_step,
            )
        stage = STAGE_BY_STEP[target]
        artifact = self._coerce(stage, stage_artifact)
        application_id = getattr(artifact, "application_id", None)
        if application_id is not None:
            application = await self._repos.applications.get(application_id)
            if application.recruitment_id != process_id:
                raise ValidationError(f"application {application_id} does not belong to recruitment {process_id}")

        context = await self._loader.load(process_id, application_id=application_id)
        self._gates.require(target, context)

        async with atomic(self._repos.storage) as transactional:
            stored, created = await self._ensure_artifact(stage, process, artifact)
            try:
                updated = await self._repos.processes.update(
                    process_id,
                    {"current_step": target, "status": "in_progress"},
                    expected_updated_at=process.updated_at,
                )
            except Exception:
                if created and not transactional:
                    await self._repository(stage).delete(stored.id)
                    logger.warning("process.artifact_compensated", process_id=process_id, step=target)
                raise
        logger.info(
            "process.advanced",
            process_id=process_id,
            step=target,
            stage=stage.key,
            artifact_id=stored.id if stored else None,
            created=created,
        )
        return AdvanceOutcome(process=updated, artifact=stored, created=created)

    async def complete(self, process_id: str) -> RecruitmentProcess:
        process = await self._repos.processes.get(process_id)
        if process.status in TERMINAL_PROCESS_STATUSES:
            raise InvalidTransitionError("recruitment", process.status, "completed")
        if process.current_step != FINAL_STEP:
            raise PreconditionError(
                f"process is at step {process.current_step}; step {FINAL_STEP} is required",
                step=FINAL_STEP,
            )
        checklist = await self._repos.checklists.first_by_index("recruitment_id", process_id)
        if checklist is None:
            raise PreconditionError("file checklist has not been opened")
        if checklist.status != "complete":
            raise PreconditionError("file checklist is missing: " + ", ".join(checklist.missing()))
        updated = await self._repos.processes.update(
            process_id,
            {"status": "completed", "completed_at": utc_timestamp()},
            expected_updated_at=process.updated_at,
        )
        logger.info("process.completed", process_id=process_id)
        return updated

    async def cancel(self, process_id: str, reason: str) -> RecruitmentProcess:
        if not reason or not reason.strip():
            raise ValidationError("a cancellation reason is required")
        process = await self._repos.processes.get(process_id)
        if process.status in TERMINAL_PROCESS_STATUSES:
            raise InvalidTransitionError("recruitment", process.status, "cancelled")
        updated = await self._repos.processes.update(
            process_id,
            {"status": "cancelled", "cancelled_at": utc_timestamp(), "cancellation_reason": reason},
            expected_updated_at=process.updated_at,
        )
        logger.info("process.cancelled", process_id=process_id, step=process.current_step, reason=reason)
        return updated

    async def status_report(self, process_id: str) -> ProcessStatusReport:
        process = await self._repos.processes.get(process_id)
        checklist = await self._repos.checklists.first_by_index("recruitment_id", process_id)
        return ProcessStatusReport(
            process_id=process.id,
            recruitment_code=process.recruitment_code,
            position_title=process.position_title,
            status=process.status,
            current_step=process.current_step,
            step_title=STAGE_BY_STEP[process.current_step].title,
            application_counts=dict(await self._applications.counts_by_status(process_id)),
            checklist_status=checklist.status if checklist else None,
        )

    async def by_status(self, status: str) -> list[RecruitmentProcess]:
        if status not in get_args(ProcessStatus):
            raise ValidationError(f"unknown recruitment status {status!r}")
        return await self._repos.processes.by_index("status", status)

    async def search(self, term: str) -> list[RecruitmentProcess]:
        """Case-insensitive substring match on recruitment code or position title."""
        processes = await self._repos.processes.all()
        needle = term.strip().lower()
        if not needle:
            return processes
        return [
            process
            for process in processes
            if needle in process.recruitment_code.lower() or needle in process.position_title.lower()
        ]

    async def stats(self) -> ProcessStats:
        stats = ProcessStats(total=len(await self._repos.processes.all()))
        for status in ("draft", "completed", "cancelled"):
            setattr(stats, status, len(await self.by_status(status)))
        stats.in_progress = stats.total - stats.draft - stats.completed - stats.cancelled
        return stats

    def _repository(self, stage: Stage) -> Repository:
        return getattr(self._repos, STAGE_REPOSITORIES[stage.step])

    def _coerce(self, stage: Stage, artifact: Record | Mapping[str, Any] | None) -> Record | None:
        if stage.step not in STAGE_REPOSITORIES:
            if artifact is not None:
                raise ValidationError(f"step {stage.step} ({stage.title}) takes no artifact")
            return None
        repo = self._repository(stage)
        if artifact is None:
            if stage.per_candidate:
                raise ValidationError(f"step {stage.step} ({stage.title}) needs a per-candidate artifact")
            return None
        if isinstance(artifact, Record):
            if not isinstance(artifact, repo.model):
                raise ValidationError(
                    f"step {stage.step} expects {repo.model.__name__}, got {type(artifact).__name__}"
                )
            return artifact
        return repo.validate(artifact)

    async def _ensure_artifact(
        self, stage: Stage, process: RecruitmentProcess, artifact: Record | None
    ) -> tuple[Record | None, bool]:
        if stage.step not in STAGE_REPOSITORIES:
            return None, False
        repo = self._repository(stage)
        if stage.per_candidate:
            matches = await repo.by_index("application_id", artifact.application_id)
            if stage.key == "offer":
                matches = [offer for offer in matches if offer.status in OPEN_OFFER_STATUSES]
            existing = matches[-1] if matches else None
        else:
            existing = await repo.first_by_index("recruitment_id", process.id)
        if existing is not None:
            return existing, False
        if artifact is None:
            raise ValidationError(f"step {stage.step} ({stage.title}) needs an artifact")
        return await self._create_artifact(stage, process, artifact), True

    async def _create_artifact(self, stage: Stage, process: RecruitmentProcess, artifact: Record) -> Record:
        fields = artifact.model_dump(
            mode="json", exclude=set(MANAGED_FIELDS) | {"recruitment_id"}, exclude_none=True
        )
        if stage.per_candidate:
            application_id = fields.pop("application_id")
            if stage.key == "offer":
                return await self._offers.draft(application_id, **fields)
            if stage.key == "sanction":
                return await self._compliance.declare_sanction(application_id, **fields)
            if stage.key == "background_check":
                return await self._compliance.open_background_check(application_id, **fields)
            return await self._compliance.draft_contract(application_id, **fields)
        repo = self._repository(stage)
        if stage.key == "report" and not fields.get("report_number"):
            fields["report_number"] = await issue_code(repo, "report_number", "RR")
        return await repo.create({**fields, "recruitment_id": process.id})


def _as_dict(item: Record | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(item, Record):
        return item.model_dump(mode="json", exclude=set(MANAGED_FIELDS))
    return dict(item)
