"""Typed repositories over the storage service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, Mapping, TypeVar

from pydantic import ValidationError as PydanticValidationError

from .errors import RecordNotFoundError, StaleRecordError, ValidationError
from .schemas import (
    MANAGED_FIELDS,
    BackgroundCheck,
    Candidate,
    CandidateApplication,
    COIDeclaration,
    Committee,
    CommitteeMember,
    EmploymentContract,
    FileChecklist,
    InterviewCandidate,
    InterviewEvaluation,
    InterviewResult,
    InterviewRound,
    LonglistingCandidate,
    LonglistingRound,
    Offer,
    Record,
    RecruitmentProcess,
    RecruitmentReport,
    SanctionDeclaration,
    ShortlistingCandidate,
    ShortlistingRound,
    StaffRequisition,
    TermsOfReference,
    VacancyAnnouncement,
    WrittenTest,
    WrittenTestCandidate,
)

ModelT = TypeVar("ModelT", bound=Record)

STORE_INDEXES: dict[str, tuple[str, ...]] = {
    "recruitments": ("recruitment_code", "status"),
    "terms_of_reference": ("recruitment_id",),
    "staff_requisitions": ("recruitment_id",),
    "vacancy_announcements": ("recruitment_id",),
    "candidates": ("candidate_code", "email"),
    "candidate_applications": ("application_code", "recruitment_id", "candidate_id", "status"),
    "committees": ("recruitment_id",),
    "committee_members": ("committee_id",),
    "coi_declarations": ("recruitment_id", "committee_member_id"),
    "longlistings": ("recruitment_id",),
    "longlisting_candidates": ("longlisting_id", "application_id"),
    "shortlistings": ("recruitment_id",),
    "shortlisting_candidates": ("shortlisting_id", "application_id"),
    "written_tests": ("recruitment_id",),
    "written_test_candidates": ("written_test_id", "application_id", "unique_code"),
    "interviews": ("recruitment_id",),
    "interview_candidates": ("interview_id", "application_id"),
    "interview_evaluations": ("interview_candidate_id",),
    "interview_results": ("interview_candidate_id", "application_id"),
    "recruitment_reports": ("recruitment_id", "report_number"),
    "offers": ("recruitment_id", "application_id"),
    "sanction_declarations": ("recruitment_id", "application_id"),
    "background_checks": ("recruitment_id", "application_id"),
    "employment_contracts": ("recruitment_id", "application_id", "contract_number"),
    "file_checklists": ("recruitment_id",),
}


class Repository(Generic[ModelT]):
    """Validate, persist and load one record type.

    ``parents`` maps foreign-key fields to the store they reference; a write
    naming a missing parent is rejected with ``ValidationError``.
    """

    def __init__(
        self,
        storage: Any,
        store_name: str,
        model: type[ModelT],
        *,
        parents: Mapping[str, str] | None = None,
    ) -> None:
        self.store_name = store_name
        self.model = model
        self._storage = storage
        self._store = storage.store(store_name)
        self._parents = dict(parents or {})

    def validate(self, data: Mapping[str, Any]) -> ModelT:
        try:
            return self.model.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid {self.model.__name__}: {exc.error_count()} error(s)",
                errors=exc.errors(include_url=False),
            ) from exc

    async def create(self, item: ModelT | Mapping[str, Any]) -> ModelT:
        data = item.model_dump(mode="json") if isinstance(item, Record) else dict(item)
        validated = self.validate(data)
        await self._check_parents(validated, fields=self._parents)
        payload = validated.model_dump(mode="json", exclude=set(MANAGED_FIELDS))
        record = await self._store.create(payload)
        return self.model.model_validate(record)

    async def find(self, record_id: str) -> ModelT | None:
        record = await self._store.get_by_id(record_id)
        return self.model.model_validate(record) if record is not None else None

    async def get(self, record_id: str) -> ModelT:
        found = await self.find(record_id)
        if found is None:
            raise RecordNotFoundError(self.store_name, record_id)
        return found

    async def all(self) -> list[ModelT]:
        return [self.model.model_validate(record) for record in await self._store.get_all()]

    async def by_index(self, index_name: str, value: Any) -> list[ModelT]:
        records = await self._store.get_by_index(index_name, value)
        return [self.model.model_validate(record) for record in records]

    async def first_by_index(self, index_name: str, value: Any) -> ModelT | None:
        matches = await self.by_index(index_name, value)
        return matches[0] if matches else None

    async def update(
        self,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        expected_updated_at: str | None = None,
    ) -> ModelT:
        """Merge ``changes``, re-run model validation and compare-and-swap."""
        current = await self.get(record_id)
        if expected_updated_at is not None and current.updated_at != expected_updated_at:
            raise StaleRecordError(
                self.store_name, record_id, expected_updated_at, current.updated_at
            )
        illegal = MANAGED_FIELDS.intersection(changes)
        if illegal:
            raise ValidationError(f"Cannot update managed fields: {', '.join(sorted(illegal))}")
        merged = self.validate({**current.model_dump(mode="json"), **changes})
        touched = {key: value for key, value in self._parents.items() if key in changes}
        await self._check_parents(merged, fields=touched)
        payload = merged.model_dump(mode="json", exclude=set(MANAGED_FIELDS))
        record = await self._store.update(
            record_id, payload, expected_updated_at=current.updated_at
        )
        return self.model.model_validate(record)

    async def delete(self, record_id: str) -> None:
        await self._store.delete(record_id)

    async def _check_parents(self, item: ModelT, *, fields: Mapping[str, str]) -> None:
        for field, parent_store in fields.items():
            value = getattr(item, field)
            if value is None:
                continue
            if await self._storage.store(parent_store).get_by_id(value) is None:
                raise ValidationError(
                    f"{self.model.__name__}.{field} references missing "
                    f"{parent_store} record {value!r}"
                )


class Repositories:
    """All repositories of the recruitment pipeline over one storage service."""

    def __init__(self, storage: Any) -> None:
        self.storage = storage
        rec = {"recruitment_id": "recruitments"}
        app = {"application_id": "candidate_applications"}

        self.processes = Repository(storage, "recruitments", RecruitmentProcess)
        self.terms_of_reference = Repository(storage, "terms_of_reference", TermsOfReference, parents=rec)
        self.requisitions = Repository(storage, "staff_requisitions", StaffRequisition, parents=rec)
        self.announcements = Repository(storage, "vacancy_announcements", VacancyAnnouncement, parents=rec)
        self.candidates = Repository(storage, "candidates", Candidate)
        self.applications = Repository(
            storage,
            "candidate_applications",
            CandidateApplication,
            parents={**rec, "candidate_id": "candidates"},
        )
        self.committees = Repository(storage, "committees", Committee, parents=rec)
        self.committee_members = Repository(
            storage, "committee_members", CommitteeMember, parents={"committee_id": "committees"}
        )
        self.coi_declarations = Repository(
            storage,
            "coi_declarations",
            COIDeclaration,
            parents={**rec, "committee_member_id": "committee_members"},
        )
        self.longlistings = Repository(storage, "longlistings", LonglistingRound, parents=rec)
        self.longlisting_decisions = Repository(
            storage,
            "longlisting_candidates",
            LonglistingCandidate,
            parents={"longlisting_id": "longlistings", **app},
        )
        self.shortlistings = Repository(storage, "shortlistings", ShortlistingRound, parents=rec)
        self.shortlisting_scores = Repository(
            storage,
            "shortlisting_candidates",
            ShortlistingCandidate,
            parents={"shortlisting_id": "shortlistings", **app},
        )
        self.written_tests = Repository(storage, "written_tests", WrittenTest, parents=rec)
        self.written_test_candidates = Repository(
            storage,
            "written_test_candidates",
            WrittenTestCandidate,
            parents={"written_test_id": "written_tests", **app},
        )
        self.interviews = Repository(storage, "interviews", InterviewRound, parents=rec)
        self.interview_candidates = Repository(
            storage,
            "interview_candidates",
            InterviewCandidate,
            parents={"interview_id": "interviews", **app},
        )
        self.evaluations = Repository(
            storage,
            "interview_evaluations",
            InterviewEvaluation,
            parents={"interview_candidate_id": "interview_candidates"},
        )
        self.interview_results = Repository(
            storage,
            "interview_results",
            InterviewResult,
            parents={"interview_candidate_id": "interview_candidates", **app},
        )
        self.reports = Repository(storage, "recruitment_reports", RecruitmentReport, parents=rec)
        self.offers = Repository(storage, "offers", Offer, parents={**rec, **app})
        self.sanctions = Repository(
            storage, "sanction_declarations", SanctionDeclaration, parents={**rec, **app}
        )
        self.background_checks = Repository(
            storage,
            "background_checks",
            BackgroundCheck,
            parents={**rec, **app, "sanction_declaration_id": "sanction_declarations"},
        )
        self.contracts = Repository(
            storage, "employment_contracts", EmploymentContract, parents={**rec, **app}
        )
        self.checklists = Repository(storage, "file_checklists", FileChecklist, parents=rec)


@asynccontextmanager
async def atomic(storage: Any) -> AsyncIterator[bool]:
    """Run the block inside a storage transaction when one is available.

    Yields whether the block is transactional so callers can fall back to
    compensating writes.
    """
    if getattr(storage, "supports_transactions", False):
        async with storage.transaction():
            yield True
    else:
        yield False
