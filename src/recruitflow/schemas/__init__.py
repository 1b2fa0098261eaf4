"""Pydantic schema definitions for recruitment records."""

from __future__ import annotations

from .candidate import (
    ApplicationStatus,
    Candidate,
    CandidateApplication,
    EducationEntry,
    ExperienceEntry,
    StatusChange,
)
from .common import MANAGED_FIELDS, Record
from .hiring import (
    CHECKLIST_FIELDS,
    AddressVerification,
    BackgroundCheck,
    CriminalCheck,
    EmploymentContract,
    FileChecklist,
    GuaranteeLetter,
    Offer,
    ReferenceCheck,
    SanctionDeclaration,
)
from .interview import (
    InterviewCandidate,
    InterviewEvaluation,
    InterviewResult,
    InterviewRound,
    RankingEntry,
    RecruitmentReport,
)
from .process import (
    FINAL_STEP,
    FIRST_STEP,
    COIDeclaration,
    Committee,
    CommitteeMember,
    LanguageRequirement,
    RecruitmentProcess,
    StaffRequisition,
    TermsOfReference,
    VacancyAnnouncement,
)
from .selection import (
    WEIGHT_TOLERANCE,
    LonglistingCandidate,
    LonglistingRound,
    ShortlistingCandidate,
    ShortlistingRound,
    WrittenTest,
    WrittenTestCandidate,
)

__all__ = [
    "MANAGED_FIELDS",
    "Record",
    "FIRST_STEP",
    "FINAL_STEP",
    "RecruitmentProcess",
    "TermsOfReference",
    "StaffRequisition",
    "VacancyAnnouncement",
    "LanguageRequirement",
    "Committee",
    "CommitteeMember",
    "COIDeclaration",
    "Candidate",
    "CandidateApplication",
    "ApplicationStatus",
    "EducationEntry",
    "ExperienceEntry",
    "StatusChange",
    "WEIGHT_TOLERANCE",
    "LonglistingRound",
    "LonglistingCandidate",
    "ShortlistingRound",
    "ShortlistingCandidate",
    "WrittenTest",
    "WrittenTestCandidate",
    "InterviewRound",
    "InterviewCandidate",
    "InterviewEvaluation",
    "InterviewResult",
    "RankingEntry",
    "RecruitmentReport",
    "CHECKLIST_FIELDS",
    "Offer",
    "SanctionDeclaration",
    "ReferenceCheck",
    "GuaranteeLetter",
    "AddressVerification",
    "CriminalCheck",
    "BackgroundCheck",
    "EmploymentContract",
    "FileChecklist",
]
