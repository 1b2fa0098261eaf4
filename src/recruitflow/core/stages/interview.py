"""Interview round operations and the recruitment report (steps 10 and 11)."""

from __future__ import annotations

from typing import Any, Iterable

import structlog

from ...errors import InvalidTransitionError, ValidationError
from ...identifiers import utc_timestamp
from ...repositories import Repositories, atomic
from ...schemas import (
    InterviewCandidate,
    InterviewEvaluation,
    InterviewResult,
    InterviewRound,
    RankingEntry,
    RecruitmentReport,
)
from ..applications import ApplicationStateMachine
from ..scoring import RankCandidate, ScoringEngine, evaluator_total, written_test_percentage
from .base import StageConfig, StageService, require

logger = structlog.get_logger(__name__)

DIMENSIONS = (
    "technical_score",
    "communication_score",
    "problem_solving_score",
    "experience_relevance_score",
    "cultural_fit_score",
)


class InterviewStage(StageService):
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

    def new_interview(self, **fields: Any) -> InterviewRound:
        return self._repos.interviews.validate({**self._config.interview, **fields})

    async def select(self, interview_id: str, application_ids: Iterable[str]) -> list[InterviewCandidate]:
        """Enrol the committee's selection and move those applications to ``interviewed``."""
        interview = await self._repos.interviews.get(interview_id)
        if interview.status != "scheduled":
            raise InvalidTransitionError("interview", interview.status, "select candidates")
        ids = list(dict.fromkeys(application_ids))
        for application_id in ids:
            await self._application_in_process(application_id, interview.recruitment_id)
        async with atomic(self._repos.storage):
            await self._applications.select_for_interview(ids)
            return [
                await self._repos.interview_candidates.create(
                    {"interview_id": interview_id, "application_id": application_id}
                )
                for application_id in ids
            ]

    async def candidates(self, interview_id: str) -> list[InterviewCandidate]:
        return await self._repos.interview_candidates.by_index("interview_id", interview_id)

    async def conduct(self, interview_id: str) -> InterviewRound:
        interview = await self._repos.interviews.get(interview_id)
        return await self._move(
            self._repos.interviews, interview, "conducted", allowed_from=("scheduled",), entity="interview"
        )

    async def record_attendance(self, candidate_id: str, *, attended: bool = True) -> InterviewCandidate:
        candidate = await self._repos.interview_candidates.get(candidate_id)
        interview = await self._repos.interviews.get(candidate.interview_id)
        if interview.status == "evaluated":
            raise InvalidTransitionError("interview", interview.status, "record attendance")
        return await self._repos.interview_candidates.update(
            candidate_id,
            {"attended": attended, "attendance_time": utc_timestamp() if attended else None},
            expected_updated_at=candidate.updated_at,
        )

    async def evaluate(
        self,
        candidate_id: str,
        *,
        evaluator_name: str,
        technical_score: float,
        communication_score: float,
        problem_solving_score: float,
        experience_relevance_score: float,
        cultural_fit_score: float,
        **fields: Any,
    ) -> InterviewEvaluation:
        candidate = await self._repos.interview_candidates.get(candidate_id)
        interview = await self._repos.interviews.get(candidate.interview_id)
        if interview.status != "conducted":
            raise InvalidTransitionError("interview", interview.status, "evaluate")
        if not candidate.attended:
            raise ValidationError(f"application {candidate.application_id} did not attend the interview")
        existing = await self._repos.evaluations.by_index("interview_candidate_id", candidate_id)
        if any(e.evaluator_name == evaluator_name for e in existing):
            raise ValidationError(f"{evaluator_name} already evaluated this candidate")
        scores = {
            "technical_score": technical_score,
            "communication_score": communication_score,
            "problem_solving_score": problem_solving_score,
            "experience_relevance_score": experience_relevance_score,
            "cultural_fit_score": cultural_fit_score,
        }
        total = evaluator_total([scores[name] for name in DIMENSIONS])
        return await self._repos.evaluations.create(
            {
                **fields,
                **scores,
                "interview_candidate_id": candidate_id,
                "evaluator_name": evaluator_name,
                "total_score": total,
                "evaluated_at": utc_timestamp(),
            }
        )

    async def compute_results(self, interview_id: str) -> list[InterviewResult]:
        """Score and rank every evaluated candidate, replacing earlier results."""
        interview = await self._repos.interviews.get(interview_id)
        written = await self._written_scores(interview.recruitment_id)
        test = await self._repos.written_tests.first_by_index("recruitment_id", interview.recruitment_id)
        test_weight = test.test_weight if test is not None else 0.5

        scored = []
        for candidate in await self.candidates(interview_id):
            evaluations = await self._repos.evaluations.by_index("interview_candidate_id", candidate.id)
            if not candidate.attended or not evaluations:
                continue
            application = await self._repos.applications.get(candidate.application_id)
            scores = self._scoring.interview_scores(
                [e.total_score for e in evaluations],
                written_test_score=written.get(candidate.application_id),
                interview_weight=interview.interview_weight,
                test_weight=test_weight,
            )
            scored.append((candidate, application, scores))

        ranked = self._scoring.rank(
            RankCandidate(
                application_id=application.id,
                combined_score=scores.combined_score,
                written_test_score=scores.written_test_score,
                application_date=application.application_date or application.created_at,
            )
            for _, application, scores in scored
        )
        ranks = {entry.application_id: entry.rank for entry in ranked}

        results = []
        async with atomic(self._repos.storage):
            for candidate, application, scores in scored:
                payload = {
                    "interview_candidate_id": candidate.id,
                    "application_id": application.id,
                    "evaluator_count": scores.evaluator_count,
                    "average_score": scores.average_score,
                    "normalized_score": scores.normalized_score,
                    "written_test_score": scores.written_test_score,
                    "combined_score": scores.combined_score,
                    "final_rank": ranks[application.id],
                }
                existing = await self._repos.interview_results.first_by_index(
                    "interview_candidate_id", candidate.id
                )
                if existing is None:
                    results.append(await self._repos.interview_results.create(payload))
                else:
                    results.append(
                        await self._repos.interview_results.update(
                            existing.id, payload, expected_updated_at=existing.updated_at
                        )
                    )
        results.sort(key=lambda result: (result.final_rank, -result.combined_score))
        return results

    async def ranking(self, interview_id: str) -> list[InterviewResult]:
        results = []
        for candidate in await self.candidates(interview_id):
            result = await self._repos.interview_results.first_by_index("interview_candidate_id", candidate.id)
            if result is not None:
                results.append(result)
        return sorted(results, key=lambda result: (result.final_rank or 0, -result.combined_score))

    async def complete(self, interview_id: str) -> InterviewRound:
        """Require an evaluation per attendee, rank results and close the round."""
        interview = await self._repos.interviews.get(interview_id)
        if interview.status != "conducted":
            raise InvalidTransitionError("interview", interview.status, "evaluated")
        candidates = await self.candidates(interview_id)
        missing = [
            c.application_id
            for c in candidates
            if c.attended and not await self._repos.evaluations.by_index("interview_candidate_id", c.id)
        ]
        require(not missing, "no evaluation recorded for " + ", ".join(missing))
        async with atomic(self._repos.storage):
            results = await self.compute_results(interview_id)
            for candidate in candidates:
                if not candidate.attended:
                    application = await self._repos.applications.get(candidate.application_id)
                    if application.status == "interviewed":
                        await self._applications.reject(application.id, "absent from interview")
            updated = await self._move(
                self._repos.interviews, interview, "evaluated", allowed_from=("conducted",), entity="interview"
            )
        logger.info("interview.evaluated", recruitment_id=interview.recruitment_id, ranked=len(results))
        return updated

    async def _written_scores(self, process_id: str | None) -> dict[str, float]:
        test = await self._repos.written_tests.first_by_index("recruitment_id", process_id)
        if test is None:
            return {}
        candidates = await self._repos.written_test_candidates.by_index("written_test_id", test.id)
        return {
            c.application_id: written_test_percentage(c.marks_obtained, test.total_marks)
            for c in candidates
            if c.marks_obtained is not None
        }


class ReportStage(StageService):
    """Recruitment report drafted from the interview ranking."""

    async def draft(
        self,
        process_id: str,
        selected_application_ids: Iterable[str],
        **fields: Any,
    ) -> RecruitmentReport:
        """Build an unsaved report snapshotting the current ranking."""
        interview = await self._repos.interviews.first_by_index("recruitment_id", process_id)
        require(interview is not None, "interview round has not been created")
        candidates = await self._repos.interview_candidates.by_index("interview_id", interview.id)
        ranking = []
        for candidate in candidates:
            result = await self._repos.interview_results.first_by_index("interview_candidate_id", candidate.id)
            if result is not None:
                ranking.append(
                    RankingEntry(
                        application_id=result.application_id,
                        combined_score=result.combined_score,
                        rank=result.final_rank or 0,
                    )
                )
        ranking.sort(key=lambda entry: (entry.rank, -entry.combined_score))
        selected = list(dict.fromkeys(selected_application_ids))
        if not selected:
            raise ValidationError("report must select at least one application")
        ranked_ids = {entry.application_id for entry in ranking}
        unranked = [app_id for app_id in selected if app_id not in ranked_ids]
        if unranked:
            raise ValidationError("selected applications are not ranked: " + ", ".join(unranked))
        return self._repos.reports.validate(
            {
                **fields,
                "recruitment_id": process_id,
                "ranking": [entry.model_dump() for entry in ranking],
                "selected_application_ids": selected,
                "status": "draft",
            }
        )

    async def submit(self, report_id: str) -> RecruitmentReport:
        report = await self._repos.reports.get(report_id)
        return await self._move(
            self._repos.reports,
            report,
            "submitted",
            allowed_from=("draft", "rejected"),
            entity="recruitment report",
            changes={"submitted_at": utc_timestamp(), "rejection_reason": None},
        )

    async def approve(self, report_id: str, *, approved_by: str) -> RecruitmentReport:
        report = await self._repos.reports.get(report_id)
        return await self._move(
            self._repos.reports,
            report,
            "approved",
            allowed_from=("submitted",),
            entity="recruitment report",
            changes={"approved_by": approved_by, "approved_at": utc_timestamp()},
        )

    async def reject(self, report_id: str, *, reason: str) -> RecruitmentReport:
        report = await self._repos.reports.get(report_id)
        return await self._move(
            self._repos.reports,
            report,
            "rejected",
            allowed_from=("submitted",),
            entity="recruitment report",
            changes={"rejection_reason": reason},
        )
