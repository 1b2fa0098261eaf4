"""Longlisting, shortlisting and written-test records."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator

from .common import Record

RoundStatus = Literal["pending", "completed"]
TestStatus = Literal["scheduled", "conducted", "evaluated"]

WEIGHT_TOLERANCE = 1e-6


class LonglistingRound(Record):
    """Step 7 artifact."""

    recruitment_id: str | None = None
    conducted_by: str | None = None
    criteria: list[str] = Field(default_factory=list)
    status: RoundStatus = "pending"
    total_applications: int = 0
    total_longlisted: int = 0
    completed_at: str | None = None


class LonglistingCandidate(Record):
    """Binary longlisting decision for one application."""

    longlisting_id: str
    application_id: str
    is_longlisted: bool
    reason: str | None = None


class ShortlistingRound(Record):
    """Step 8 artifact carrying the weighted scoring scheme."""

    recruitment_id: str | None = None
    conducted_by: str | None = None
    academic_weight: float = Field(default=0.20, ge=0, le=1)
    experience_weight: float = Field(default=0.30, ge=0, le=1)
    other_weight: float = Field(default=0.50, ge=0, le=1)
    passing_score: float = Field(default=60.0, ge=0, le=100)
    status: RoundStatus = "pending"
    completed_at: str | None = None

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "ShortlistingRound":
        total = self.academic_weight + self.experience_weight + self.other_weight
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"shortlisting weights must sum to 1.0 (got {total:.6f})")
        return self


class ShortlistingCandidate(Record):
    """Weighted shortlisting score for one application."""

    shortlisting_id: str
    application_id: str
    academic_score: float = Field(ge=0, le=100)
    experience_score: float = Field(ge=0, le=100)
    other_criteria_score: float = Field(ge=0, le=100)
    total_score: float = 0.0
    is_shortlisted: bool = False
    notes: str | None = None


class WrittenTest(Record):
    """Step 9 artifact."""

    recruitment_id: str | None = None
    test_date: str | None = None
    venue: str | None = None
    duration_minutes: int | None = Field(default=None, gt=0)
    total_marks: float = Field(default=100.0, gt=0)
    passing_marks: float = Field(default=50.0, ge=0)
    test_weight: float = Field(default=0.5, gt=0, le=1)
    status: TestStatus = "scheduled"

    @model_validator(mode="after")
    def _passing_within_total(self) -> "WrittenTest":
        if self.passing_marks > self.total_marks:
            raise ValueError("passing_marks cannot exceed total_marks")
        return self


class WrittenTestCandidate(Record):
    """Anonymous written-test sitting for one application."""

    written_test_id: str
    application_id: str
    unique_code: str
    attended: bool = False
    attendance_time: str | None = None
    marks_obtained: float | None = Field(default=None, ge=0)
    is_passed: bool | None = None
