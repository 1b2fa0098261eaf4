"""Longlisting, shortlisting and written-test operations (steps 7 to 9)."""

from __future__ import annotations

from typing import Any

import structlog

from ...errors import InvalidTransitionError, ValidationError
from ...identifiers import issue_code, utc_timestamp
from ...repositories import Repositories, atomic
from ...schemas import (
    LonglistingCandidate,
    LonglistingRound,
    ShortlistingCandidate,
    ShortlistingRound,
    WrittenTest,
    WrittenTestCandidate,
)
from ..applications import ApplicationStateMachine
from ..scoring import ScoringEngine
from .base import StageConfig, StageService, require

logger = structlog.get_logger(__name__)


class SelectionStage(StageService):
    """Record screening decisions and feed them to the application machine."""

    def __init__(
        self,
        repositories: Repositories,
        applications: ApplicationStateMachine,
        scoring: ScoringEngine,
        *,
        config: StageConfig | None = None,
    ) -> None:
        super().__init__(repositories)
        self._applications = applications
        self._scoring = scoring
        self._config = config or StageConfig()

    def new_longlisting(self, **fields: Any) -> LonglistingRound:
        return LonglistingRound.model_validate(fields)

    def new_shortlisting(self, **fields: Any) -> ShortlistingRound:
        return self._repos.shortlistings.validate({**self._config.shortlisting, **fields})

    def new_written_test(self, **fields: Any) -> WrittenTest:
        return self._repos.written_tests.validate({**self._config.written_test, **fields})

    # longlisting

    async def longlist(
        self,
        longlisting_id: str,
        application_id: str,
        *,
        is_longlisted: bool,
        reason: str | None = None,
    ) -> LonglistingCandidate:
        round_ = await self._repos.longlistings.get(longlisting_id)
        if round_.status != "pending":
            raise InvalidTransitionError("longlisting", round_.status, "record decision")
        application = await self._application_in_process(application_id, round_.recruitment_id)
        decisions = await self._repos.longlisting_decisions.by_index("application_id", application_id)
        if any(d.longlisting_id == longlisting_id for d in decisions):
            raise ValidationError(f"application {application_id} already has a longlisting decision")
        if application.status != "received":
            raise InvalidTransitionError("application", application.status, "longlisted")
        async with atomic(self._repos.storage):
            decision = await self._repos.longlisting_decisions.create(
                {
                    "longlisting_id": longlisting_id,
                    "application_id": application_id,
                    "is_longlisted": is_longlisted,
                    "reason": reason,
                }
            )
            await self._applications.apply_longlisting(decision)
        return decision

    async def complete_longlisting(self, longlisting_id: str) -> LonglistingRound:
        round_ = await self._repos.longlistings.get(longlisting_id)
        pending = await self._applications.for_process(round_.recruitment_id, status="received")
        require(not pending, f"{len(pending)} application(s) still await a longlisting decision")
        decisions = await self._repos.longlisting_decisions.by_index("longlisting_id", longlisting_id)
        updated = await self._move(
            self._repos.longlistings,
            round_,
            "completed",
            allowed_from=("pending",),
            entity="longlisting",
            changes={
                "total_applications": len(decisions),
                "total_longlisted": sum(1 for d in decisions if d.is_longlisted),
                "completed_at": utc_timestamp(),
            },
        )
        logger.info(
            "selection.longlisting_completed",
            recruitment_id=round_.recruitment_id,
            total=updated.total_applications,
            longlisted=updated.total_longlisted,
        )
        return updated

    # shortlisting

    async def score(
        self,
        shortlisting_id: str,
        application_id: str,
        *,
        academic_score: float,
        experience_score: float,
        other_criteria_score: float,
        notes: str | None = None,
    ) -> ShortlistingCandidate:
        round_ = await self._repos.shortlistings.get(shortlisting_id)
        if round_.status != "pending":
            raise InvalidTransitionError("shortlisting", round_.status, "record score")
        application = await self._application_in_process(application_id, round_.recruitment_id)
        scores = await self._repos.shortlisting_scores.by_index("application_id", application_id)
        if any(s.shortlisting_id == shortlisting_id for s in scores):
            raise ValidationError(f"application {application_id} is already scored")
        if application.status != "longlisted":
            raise InvalidTransitionError("application", application.status, "shortlisted")
        total, passed = self._scoring.shortlisting_score(
            round_,
            academic_score=academic_score,
            experience_score=experience_score,
            other_score=other_criteria_score,
        )
        async with atomic(self._repos.storage):
            record = await self._repos.shortlisting_scores.create(
                {
                    "shortlisting_id": shortlisting_id,
                    "application_id": application_id,
                    "academic_score": academic_score,
                    "experience_score": experience_score,
                    "other_criteria_score": other_criteria_score,
                    "total_score": total,
                    "is_shortlisted": passed,
                    "notes": notes,
                }
            )
            await self._applications.apply_shortlisting(record)
        return record

    async def complete_shortlisting(self, shortlisting_id: str) -> ShortlistingRound:
        round_ = await self._repos.shortlistings.get(shortlisting_id)
        pending = await self._applications.for_process(round_.recruitment_id, status="longlisted")
        require(not pending, f"{len(pending)} longlisted application(s) are not scored")
        return await self._move(
            self._repos.shortlistings,
            round_,
            "completed",
            allowed_from=("pending",),
            entity="shortlisting",
            changes={"completed_at": utc_timestamp()},
        )

    # written test

    async def enrol(self, written_test_id: str, application_id: str) -> WrittenTestCandidate:
        test = await self._repos.written_tests.get(written_test_id)
        if test.status != "scheduled":
            raise InvalidTransitionError("written test", test.status, "enrol candidate")
        application = await self._application_in_process(application_id, test.recruitment_id)
        if application.status != "shortlisted":
            raise InvalidTransitionError("application", application.status, "enrolled")
        enrolled = await self._repos.written_test_candidates.by_index("application_id", application_id)
        if any(c.written_test_id == written_test_id for c in enrolled):
            raise ValidationError(f"application {application_id} is already enrolled")
        code = await issue_code(self._repos.written_test_candidates, "unique_code", "WT")
        return await self._repos.written_test_candidates.create(
            {"written_test_id": written_test_id, "application_id": application_id, "unique_code": code}
        )

    async def enrol_shortlisted(self, written_test_id: str) -> list[WrittenTestCandidate]:
        test = await self._repos.written_tests.get(written_test_id)
        enrolled = {
            c.application_id
            for c in await self._repos.written_test_candidates.by_index("written_test_id", written_test_id)
        }
        shortlisted = await self._applications.for_process(test.recruitment_id, status="shortlisted")
        return [
            await self.enrol(written_test_id, app.id) for app in shortlisted if app.id not in enrolled
        ]

    async def conduct_written_test(self, written_test_id: str) -> WrittenTest:
        test = await self._repos.written_tests.get(written_test_id)
        return await self._move(
            self._repos.written_tests, test, "conducted", allowed_from=("scheduled",), entity="written test"
        )

    async def record_attendance(self, candidate_id: str, *, attended: bool = True) -> WrittenTestCandidate:
        candidate = await self._repos.written_test_candidates.get(candidate_id)
        test = await self._repos.written_tests.get(candidate.written_test_id)
        if test.status == "evaluated":
            raise InvalidTransitionError("written test", test.status, "record attendance")
        return await self._repos.written_test_candidates.update(
            candidate_id,
            {"attended": attended, "attendance_time": utc_timestamp() if attended else None},
            expected_updated_at=candidate.updated_at,
        )

    async def record_marks(self, candidate_id: str, marks: float) -> WrittenTestCandidate:
        candidate = await self._repos.written_test_candidates.get(candidate_id)
        test = await self._repos.written_tests.get(candidate.written_test_id)
        if test.status != "conducted":
            raise InvalidTransitionError("written test", test.status, "record marks")
        if not candidate.attended:
            raise ValidationError(f"candidate {candidate.unique_code} did not attend the written test")
        if not 0 <= marks <= test.total_marks:
            raise ValidationError(f"marks must be within 0..{test.total_marks:g}")
        return await self._repos.written_test_candidates.update(
            candidate_id,
            {"marks_obtained": marks, "is_passed": marks >= test.passing_marks},
            expected_updated_at=candidate.updated_at,
        )

    async def complete_written_test(self, written_test_id: str) -> WrittenTest:
        """Mark the test evaluated and move every enrolled application on."""
        test = await self._repos.written_tests.get(written_test_id)
        if test.status != "conducted":
            raise InvalidTransitionError("written test", test.status, "evaluated")
        candidates = await self._repos.written_test_candidates.by_index("written_test_id", written_test_id)
        unmarked = [c.unique_code for c in candidates if c.attended and c.marks_obtained is None]
        require(not unmarked, "marks missing for " + ", ".join(unmarked))
        async with atomic(self._repos.storage):
            for candidate in candidates:
                if not candidate.attended:
                    candidate = await self._repos.written_test_candidates.update(
                        candidate.id, {"is_passed": False}, expected_updated_at=candidate.updated_at
                    )
                application = await self._repos.applications.get(candidate.application_id)
                if application.status == "shortlisted":
                    await self._applications.apply_written_test(candidate)
            updated = await self._move(
                self._repos.written_tests, test, "evaluated", allowed_from=("conducted",), entity="written test"
            )
        logger.info(
            "selection.written_test_evaluated",
            recruitment_id=test.recruitment_id,
            candidates=len(candidates),
            passed=sum(1 for c in candidates if c.is_passed),
        )
        return updated
