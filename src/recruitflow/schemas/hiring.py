"""Offer, compliance and contract records."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import Record
from .process import ContractType

OfferStatus = Literal["draft", "sent", "accepted", "declined", "expired"]
SanctionStatus = Literal["pending", "cleared", "flagged"]
ReferenceStatus = Literal["pending", "contacted", "verified", "failed"]
GuaranteeStatus = Literal["pending", "received", "verified"]
AddressStatus = Literal["pending", "in_progress", "verified", "failed"]
CriminalStatus = Literal["pending", "in_progress", "cleared", "flagged"]
BackgroundStatus = Literal["pending", "in_progress", "failed", "completed"]
ContractStatus = Literal["draft", "pending_signature", "signed", "active"]
ChecklistStatus = Literal["incomplete", "complete"]

MIN_REFERENCES = 2

CHECKLIST_FIELDS: tuple[str, ...] = (
    "tor_attached",
    "srf_attached",
    "shortlist_form_attached",
    "rc_form_attached",
    "written_test_papers_attached",
    "interview_forms_attached",
    "interview_result_attached",
    "recruitment_report_attached",
    "offer_letter_attached",
    "sanction_clearance_attached",
    "reference_checks_attached",
    "guarantee_letter_attached",
    "address_verification_attached",
    "criminal_check_attached",
    "contract_attached",
    "personal_info_form_attached",
)


class Offer(Record):
    """Conditional offer to one application."""

    recruitment_id: str | None = None
    application_id: str
    position: str | None = None
    salary: float | None = Field(default=None, ge=0)
    currency: str | None = None
    start_date: str | None = None
    expiry_date: str | None = None
    conditions: list[str] = Field(default_factory=list)
    status: OfferStatus = "draft"
    sent_at: str | None = None
    responded_at: str | None = None
    decline_reason: str | None = None


class SanctionDeclaration(Record):
    """Sanction-list clearance for one application."""

    recruitment_id: str | None = None
    application_id: str
    candidate_name: str | None = None
    national_id: str | None = None
    status: SanctionStatus = "pending"
    verified_by: str | None = None
    verified_at: str | None = None
    notes: str | None = None


class ReferenceCheck(BaseModel):
    name: str
    organization: str | None = None
    phone: str | None = None
    relationship: str | None = None
    status: ReferenceStatus = "pending"
    notes: str | None = None

    model_config = ConfigDict(extra="forbid")


class GuaranteeLetter(BaseModel):
    guarantor_name: str | None = None
    guarantor_national_id: str | None = None
    relationship: str | None = None
    status: GuaranteeStatus = "pending"

    model_config = ConfigDict(extra="forbid")


class AddressVerification(BaseModel):
    province: str | None = None
    district: str | None = None
    village: str | None = None
    status: AddressStatus = "pending"
    verified_by: str | None = None

    model_config = ConfigDict(extra="forbid")


class CriminalCheck(BaseModel):
    status: CriminalStatus = "pending"
    checked_by: str | None = None
    notes: str | None = None

    model_config = ConfigDict(extra="forbid")


def background_check_problems(check: "BackgroundCheck") -> list[str]:
    """Return every unmet completion condition of a background check."""
    problems: list[str] = []
    if len(check.references) < check.min_references:
        problems.append(f"at least {check.min_references} references are required")
    elif any(ref.status != "verified" for ref in check.references):
        problems.append("all references must be verified")
    if check.guarantee_letter.status != "verified":
        problems.append("guarantee letter must be verified")
    if check.home_address.status != "verified":
        problems.append("home address must be verified")
    if check.criminal_check.status != "cleared":
        problems.append("criminal record check must be cleared")
    return problems


class BackgroundCheck(Record):
    """Four sub-checks guarding the contract; ``status`` is derived."""

    recruitment_id: str | None = None
    application_id: str
    sanction_declaration_id: str | None = None
    references: list[ReferenceCheck] = Field(default_factory=list)
    guarantee_letter: GuaranteeLetter = Field(default_factory=GuaranteeLetter)
    home_address: AddressVerification = Field(default_factory=AddressVerification)
    criminal_check: CriminalCheck = Field(default_factory=CriminalCheck)
    min_references: int = Field(default=MIN_REFERENCES, ge=MIN_REFERENCES)
    status: BackgroundStatus = "pending"
    verified_by: str | None = None
    completed_at: str | None = None

    @model_validator(mode="after")
    def _derive_status(self) -> "BackgroundCheck":
        self.status = derive_background_status(self)
        return self


def derive_background_status(check: BackgroundCheck) -> BackgroundStatus:
    if not background_check_problems(check):
        return "completed"
    if (
        any(ref.status == "failed" for ref in check.references)
        or check.home_address.status == "failed"
        or check.criminal_check.status == "flagged"
    ):
        return "failed"
    untouched = (
        not check.references
        and check.guarantee_letter.status == "pending"
        and check.home_address.status == "pending"
        and check.criminal_check.status == "pending"
    )
    return "pending" if untouched else "in_progress"


class EmploymentContract(Record):
    """Terminal artifact; signatures are recorded by separate operations."""

    recruitment_id: str | None = None
    application_id: str
    contract_number: str = ""
    position: str | None = None
    grade: str | None = None
    salary: float | None = Field(default=None, ge=0)
    currency: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    contract_type: ContractType | None = None
    probation_period_months: int = Field(default=3, ge=0)
    status: ContractStatus = "draft"
    employee_signed_at: str | None = None
    employer_signed_at: str | None = None
    employer_signatory: str | None = None

    @property
    def is_fully_signed(self) -> bool:
        return bool(self.employee_signed_at and self.employer_signed_at)


class FileChecklist(Record):
    """Final audit checklist; ``status`` is derived from the flags."""

    recruitment_id: str
    tor_attached: bool = False
    srf_attached: bool = False
    shortlist_form_attached: bool = False
    rc_form_attached: bool = False
    written_test_papers_attached: bool = False
    interview_forms_attached: bool = False
    interview_result_attached: bool = False
    recruitment_report_attached: bool = False
    offer_letter_attached: bool = False
    sanction_clearance_attached: bool = False
    reference_checks_attached: bool = False
    guarantee_letter_attached: bool = False
    address_verification_attached: bool = False
    criminal_check_attached: bool = False
    contract_attached: bool = False
    personal_info_form_attached: bool = False
    status: ChecklistStatus = "incomplete"
    verified_by: str | None = None
    verified_at: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _derive_status(self) -> "FileChecklist":
        self.status = derive_checklist_status(self)
        return self

    def missing(self) -> list[str]:
        return [name for name in CHECKLIST_FIELDS if not getattr(self, name)]


def derive_checklist_status(checklist: FileChecklist) -> ChecklistStatus:
    return "complete" if not checklist.missing() else "incomplete"
