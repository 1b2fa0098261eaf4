"""Composite scoring for shortlisting and interview evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

import pendulum

from ..errors import ValidationError
from ..schemas import WEIGHT_TOLERANCE, ShortlistingRound

TieBreak = Literal["shared", "written_test", "application_date"]

SCORE_SCALE = 100.0
DIMENSION_MAX = 5.0
INTERVIEW_DIMENSIONS = 5


@dataclass
class ScoringConfig:
    """Configuration for interview normalization and ranking ties."""

    interview_max_total: float = DIMENSION_MAX * INTERVIEW_DIMENSIONS
    tie_break: TieBreak = "shared"


@dataclass(slots=True)
class InterviewScores:
    evaluator_count: int
    average_score: float
    normalized_score: float
    written_test_score: float | None
    combined_score: float


@dataclass(slots=True)
class RankCandidate:
    application_id: str
    combined_score: float
    written_test_score: float | None = None
    application_date: str | None = None


@dataclass(slots=True)
class RankedCandidate:
    application_id: str
    combined_score: float
    rank: int


def validate_weights(academic: float, experience: float, other: float) -> None:
    total = academic + experience + other
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ValidationError(f"shortlisting weights must sum to 1.0 (got {total:.6f})")


def shortlisting_total(
    academic_score: float,
    experience_score: float,
    other_score: float,
    *,
    academic_weight: float,
    experience_weight: float,
    other_weight: float,
) -> float:
    validate_weights(academic_weight, experience_weight, other_weight)
    for label, value in (
        ("academic", academic_score),
        ("experience", experience_score),
        ("other criteria", other_score),
    ):
        if not 0 <= value <= SCORE_SCALE:
            raise ValidationError(f"{label} score must be within 0..100 (got {value})")
    return (
        academic_score * academic_weight
        + experience_score * experience_weight
        + other_score * other_weight
    )


def evaluator_total(dimension_scores: Sequence[float]) -> float:
    """Sum one evaluator's five dimension scores (max 25)."""
    if len(dimension_scores) != INTERVIEW_DIMENSIONS:
        raise ValidationError(
            f"expected {INTERVIEW_DIMENSIONS} dimension scores, got {len(dimension_scores)}"
        )
    for value in dimension_scores:
        if not 0 <= value <= DIMENSION_MAX:
            raise ValidationError(f"dimension scores must be within 0..5 (got {value})")
    return float(sum(dimension_scores))


def average_score(totals: Iterable[float]) -> float:
    values = [float(value) for value in totals]
    if not values:
        raise ValidationError("at least one evaluation is required")
    return sum(values) / len(values)


def normalize_interview_score(average: float, *, max_total: float = DIMENSION_MAX * INTERVIEW_DIMENSIONS) -> float:
    """Map an evaluator average onto the 0..100 written-test scale."""
    return average * SCORE_SCALE / max_total


def written_test_percentage(marks: float, total_marks: float) -> float:
    if total_marks <= 0:
        raise ValidationError("total_marks must be positive")
    if not 0 <= marks <= total_marks:
        raise ValidationError(f"marks must be within 0..{total_marks:g} (got {marks})")
    return marks * SCORE_SCALE / total_marks


def combine_scores(
    normalized_interview: float,
    written_test: float | None,
    *,
    interview_weight: float = 0.5,
    test_weight: float = 0.5,
) -> float:
    """Weighted mean of the two 0..100 scores; the interview alone without a test score."""
    if written_test is None:
        return normalized_interview
    return (normalized_interview * interview_weight + written_test * test_weight) / (
        interview_weight + test_weight
    )


class ScoringEngine:
    """Scoring entry points used by the stage operations."""

    def __init__(self, *, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def shortlisting_score(
        self,
        round_: ShortlistingRound,
        *,
        academic_score: float,
        experience_score: float,
        other_score: float,
    ) -> tuple[float, bool]:
        total = shortlisting_total(
            academic_score,
            experience_score,
            other_score,
            academic_weight=round_.academic_weight,
            experience_weight=round_.experience_weight,
            other_weight=round_.other_weight,
        )
        return total, total >= round_.passing_score

    def interview_scores(
        self,
        evaluator_totals: Sequence[float],
        *,
        written_test_score: float | None = None,
        interview_weight: float = 0.5,
        test_weight: float = 0.5,
    ) -> InterviewScores:
        average = average_score(evaluator_totals)
        normalized = normalize_interview_score(
            average, max_total=self._config.interview_max_total
        )
        return InterviewScores(
            evaluator_count=len(evaluator_totals),
            average_score=average,
            normalized_score=normalized,
            written_test_score=written_test_score,
            combined_score=combine_scores(
                normalized,
                written_test_score,
                interview_weight=interview_weight,
                test_weight=test_weight,
            ),
        )

    def rank(self, candidates: Iterable[RankCandidate]) -> list[RankedCandidate]:
        """Order by combined score descending.

        Candidates the tie-break policy cannot separate share a rank
        (competition ranking: 1, 1, 3).
        """
        ordered = sorted(candidates, key=self._sort_key)
        ranked: list[RankedCandidate] = []
        previous_key: tuple | None = None
        for position, candidate in enumerate(ordered, start=1):
            key = self._sort_key(candidate)
            rank = ranked[-1].rank if key == previous_key else position
            ranked.append(
                RankedCandidate(
                    application_id=candidate.application_id,
                    combined_score=candidate.combined_score,
                    rank=rank,
                )
            )
            previous_key = key
        return ranked

    def _sort_key(self, candidate: RankCandidate) -> tuple:
        primary = -round(candidate.combined_score, 6)
        if self._config.tie_break == "written_test":
            written = candidate.written_test_score
            return (primary, -round(written, 6) if written is not None else float("inf"))
        if self._config.tie_break == "application_date":
            if candidate.application_date is None:
                return (primary, 1, 0.0)
            return (primary, 0, pendulum.parse(candidate.application_date).timestamp())
        return (primary,)
