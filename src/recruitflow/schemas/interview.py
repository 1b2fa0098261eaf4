"""Interview round, evaluations, results and the recruitment report."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import Record
from .selection import TestStatus

Recommendation = Literal[
    "strongly_recommend",
    "recommend",
    "neutral",
    "not_recommend",
    "strongly_not_recommend",
]
ReportStatus = Literal["draft", "submitted", "approved", "rejected"]


class InterviewRound(Record):
    """Step 10 artifact."""

    recruitment_id: str | None = None
    interview_date: str | None = None
    venue: str | None = None
    total_marks: float = Field(default=100.0, gt=0)
    passing_marks: float = Field(default=50.0, ge=0)
    interview_weight: float = Field(default=0.5, gt=0, le=1)
    status: TestStatus = "scheduled"

    @model_validator(mode="after")
    def _passing_within_total(self) -> "InterviewRound":
        if self.passing_marks > self.total_marks:
            raise ValueError("passing_marks cannot exceed total_marks")
        return self


class InterviewCandidate(Record):
    interview_id: str
    application_id: str
    scheduled_time: str | None = None
    attended: bool = False
    attendance_time: str | None = None


class InterviewEvaluation(Record):
    """One evaluator's scores for one interview candidate."""

    interview_candidate_id: str
    evaluator_name: str
    technical_score: float = Field(ge=0, le=5)
    communication_score: float = Field(ge=0, le=5)
    problem_solving_score: float = Field(ge=0, le=5)
    experience_relevance_score: float = Field(ge=0, le=5)
    cultural_fit_score: float = Field(ge=0, le=5)
    total_score: float = Field(default=0.0, ge=0, le=25)
    recommendation: Recommendation | None = None
    strengths: str | None = None
    weaknesses: str | None = None
    evaluated_at: str | None = None


class InterviewResult(Record):
    """Aggregated interview outcome for one interview candidate."""

    interview_candidate_id: str
    application_id: str
    evaluator_count: int = 0
    average_score: float
    normalized_score: float
    written_test_score: float | None = None
    combined_score: float
    final_rank: int | None = None


class RankingEntry(BaseModel):
    """Snapshot of one ranked candidate inside a report."""

    application_id: str
    combined_score: float
    rank: int

    model_config = ConfigDict(extra="forbid")


class RecruitmentReport(Record):
    """Step 11 artifact."""

    recruitment_id: str | None = None
    report_number: str = ""
    title: str | None = None
    summary: str | None = None
    ranking: list[RankingEntry] = Field(default_factory=list)
    selected_application_ids: list[str] = Field(default_factory=list)
    status: ReportStatus = "draft"
    prepared_by: str | None = None
    submitted_at: str | None = None
    approved_by: str | None = None
    approved_at: str | None = None
    rejection_reason: str | None = None
