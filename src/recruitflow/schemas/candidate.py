"""Candidates and their applications."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import Record
from .process import EducationLevel

ApplicationStatus = Literal[
    "received",
    "longlisted",
    "shortlisted",
    "tested",
    "interviewed",
    "offered",
    "hired",
    "rejected",
    "withdrawn",
]


class EducationEntry(BaseModel):
    """Structured education history entry."""

    level: EducationLevel
    degree: str | None = None
    field_of_study: str | None = None
    institution: str | None = None
    country: str | None = None
    start: str | None = None
    end: str | None = None

    model_config = ConfigDict(extra="forbid")


class ExperienceEntry(BaseModel):
    """Employment history entry."""

    job_title: str
    organization: str = ""
    location: str | None = None
    start: str | None = None
    end: str | None = None
    is_current: bool = False
    responsibilities: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class Candidate(Record):
    """A person who may apply to one or more recruitments."""

    candidate_code: str = ""
    full_name: str
    father_name: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None
    national_id: str | None = None
    email: str | None = None
    phone: str | None = None
    province: str | None = None
    address: str | None = None
    nationality: str | None = None
    education: list[EducationEntry] = Field(default_factory=list)
    experiences: list[ExperienceEntry] = Field(default_factory=list)
    notes: str | None = None


class StatusChange(BaseModel):
    """One entry of an application's status history."""

    from_status: ApplicationStatus | None
    to_status: ApplicationStatus
    at: str
    reason: str | None = None

    model_config = ConfigDict(extra="forbid")


class CandidateApplication(Record):
    """Per-candidate application to a recruitment process."""

    application_code: str = ""
    recruitment_id: str
    candidate_id: str
    status: ApplicationStatus = "received"
    application_date: str | None = None
    source: str | None = None
    expected_salary: float | None = Field(default=None, ge=0)
    currency: str | None = None
    rejection_reason: str | None = None
    withdrawal_reason: str | None = None
    history: list[StatusChange] = Field(default_factory=list)
    notes: str | None = None
