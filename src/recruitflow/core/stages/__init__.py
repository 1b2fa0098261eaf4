"""Per-stage operations feeding the stage gates."""

from .base import StageConfig, StageService
from .committee import CommitteeStage
from .interview import InterviewStage, ReportStage
from .offers import OfferStage
from .requisition import RequisitionStage
from .selection import SelectionStage

__all__ = [
    "StageConfig",
    "StageService",
    "RequisitionStage",
    "CommitteeStage",
    "SelectionStage",
    "InterviewStage",
    "ReportStage",
    "OfferStage",
]
