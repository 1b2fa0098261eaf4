"""Recruitment workflow engine components."""

from __future__ import annotations

from .applications import ApplicationStateMachine, can_transition
from .candidates import CandidateMatch, CandidateRegistry, CandidateSearchConfig
from .checklist import ChecklistService
from .compliance import ComplianceConfig, ComplianceGateChain
from .gates import STAGES, GateContext, GateContextLoader, GateResult, StageGateEvaluator
from .process import AdvanceOutcome, ProcessStats, ProcessStatusReport, RecruitmentProcessMachine
from .scoring import RankCandidate, RankedCandidate, ScoringConfig, ScoringEngine
from .stages import (
    CommitteeStage,
    InterviewStage,
    OfferStage,
    ReportStage,
    RequisitionStage,
    SelectionStage,
    StageConfig,
)

__all__ = [
    "ApplicationStateMachine",
    "can_transition",
    "CandidateMatch",
    "CandidateRegistry",
    "CandidateSearchConfig",
    "ChecklistService",
    "ComplianceConfig",
    "ComplianceGateChain",
    "STAGES",
    "GateContext",
    "GateContextLoader",
    "GateResult",
    "StageGateEvaluator",
    "AdvanceOutcome",
    "ProcessStats",
    "ProcessStatusReport",
    "RecruitmentProcessMachine",
    "RankCandidate",
    "RankedCandidate",
    "ScoringConfig",
    "ScoringEngine",
    "StageConfig",
    "RequisitionStage",
    "CommitteeStage",
    "SelectionStage",
    "InterviewStage",
    "ReportStage",
    "OfferStage",
]
