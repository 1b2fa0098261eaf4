"""Recruitment process and requisition-stage artifacts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .common import Record

ProcessStatus = Literal["draft", "in_progress", "completed", "cancelled"]
HiringApproach = Literal[
    "open_competition",
    "internal_promotion",
    "headhunting",
    "internal_transfer",
    "sole_source",
    "employee_referral",
]
ContractType = Literal[
    "core",
    "project",
    "consultant",
    "part_time",
    "internship",
    "volunteer",
    "daily_wage",
]
EducationLevel = Literal["high_school", "diploma", "bachelors", "masters", "phd"]
TORStatus = Literal["draft", "pending_approval", "approved", "rejected"]
SRFStatus = Literal["draft", "hr_review", "finance_review", "approved", "rejected"]
AnnouncementStatus = Literal["draft", "published", "closed"]
AnnouncementMethod = Literal["acbar", "local", "website", "referral", "social_media"]
CommitteeRole = Literal["hr_representative", "technical_expert", "department_rep", "additional"]
COIDecision = Literal["no_conflict", "conflict_recusal", "action_taken"]

FIRST_STEP = 1
FINAL_STEP = 15


class RecruitmentProcess(Record):
    """Top-level aggregate advancing through the fifteen pipeline steps."""

    recruitment_code: str = ""
    position_title: str
    department: str | None = None
    project: str | None = None
    office: str | None = None
    grade: str | None = None
    number_of_positions: int = Field(default=1, ge=1)
    hiring_approach: HiringApproach = "open_competition"
    contract_type: ContractType = "core"
    status: ProcessStatus = "draft"
    current_step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=FINAL_STEP)
    start_date: str | None = None
    target_completion_date: str | None = None
    completed_at: str | None = None
    cancelled_at: str | None = None
    cancellation_reason: str | None = None
    created_by: str | None = None
    notes: str | None = None


class LanguageRequirement(BaseModel):
    """Language proficiency expected for a position."""

    language: str
    level: str | None = None

    model_config = ConfigDict(extra="forbid")


class TermsOfReference(Record):
    """Step 1 artifact: the role definition."""

    recruitment_id: str | None = None
    position_title: str
    department: str | None = None
    reports_to: str | None = None
    location: str | None = None
    purpose: str | None = None
    responsibilities: list[str] = Field(default_factory=list)
    qualifications: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    languages: list[LanguageRequirement] = Field(default_factory=list)
    required_education: EducationLevel | None = None
    required_experience_years: float | None = Field(default=None, ge=0)
    status: TORStatus = "draft"
    prepared_by: str | None = None
    approved_by: str | None = None
    approved_at: str | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None


class StaffRequisition(Record):
    """Step 2 artifact: budget- and HR-verified request to open a position."""

    recruitment_id: str | None = None
    position_title: str
    department: str | None = None
    project: str | None = None
    number_of_positions: int = Field(default=1, ge=1)
    justification: str | None = None
    budget_code: str | None = None
    budget_amount: float | None = Field(default=None, ge=0)
    currency: str | None = None
    status: SRFStatus = "draft"
    requested_by: str | None = None
    hr_verified: bool = False
    hr_verified_by: str | None = None
    hr_verified_at: str | None = None
    budget_verified: bool = False
    budget_verified_by: str | None = None
    budget_verified_at: str | None = None
    approved_by: str | None = None
    approved_at: str | None = None
    rejection_reason: str | None = None


class VacancyAnnouncement(Record):
    """Step 4 artifact."""

    recruitment_id: str | None = None
    title: str
    description: str | None = None
    requirements: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    announcement_method: AnnouncementMethod = "website"
    closing_date: str | None = None
    status: AnnouncementStatus = "draft"
    published_at: str | None = None
    closed_at: str | None = None


class Committee(Record):
    """Step 6 artifact: the recruitment committee."""

    recruitment_id: str | None = None
    name: str | None = None
    formed_date: str | None = None
    notes: str | None = None


class CommitteeMember(Record):
    committee_id: str
    member_name: str
    role: CommitteeRole
    employee_id: str | None = None
    department: str | None = None
    email: str | None = None
    is_chair: bool = False


class COIDeclaration(Record):
    """Conflict-of-interest declaration by a committee member."""

    recruitment_id: str
    committee_member_id: str
    has_conflict: bool
    conflict_description: str | None = None
    related_application_ids: list[str] = Field(default_factory=list)
    declaration_date: str | None = None
    hr_decision: COIDecision | None = None
    hr_reviewed_by: str | None = None
    hr_reviewed_at: str | None = None
    hr_comments: str | None = None
