"""Candidate registration and fuzzy lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rapidfuzz import fuzz

from ..errors import ValidationError
from ..identifiers import issue_code
from ..repositories import Repositories
from ..schemas import Candidate


@dataclass
class CandidateSearchConfig:
    """Configuration for fuzzy candidate search."""

    min_similarity: float = 60.0
    limit: int = 10


@dataclass(slots=True)
class CandidateMatch:
    candidate: Candidate
    score: float


class CandidateRegistry:
    def __init__(self, repositories: Repositories, *, config: CandidateSearchConfig | None = None) -> None:
        self._repos = repositories
        self._config = config or CandidateSearchConfig()

    async def register(self, **fields: Any) -> Candidate:
        email = fields.get("email")
        if email and await self._repos.candidates.by_index("email", email):
            raise ValidationError(f"a candidate with email {email} is already registered")
        code = await issue_code(self._repos.candidates, "candidate_code", "CAN")
        return await self._repos.candidates.create({**fields, "candidate_code": code})

    async def search(self, query: str, *, limit: int | None = None) -> list[CandidateMatch]:
        """Rank candidates by token-set similarity of name, code, contact and job titles."""
        needle = query.strip().lower()
        if not needle:
            return []
        matches = []
        for candidate in await self._repos.candidates.all():
            score = max(fuzz.token_set_ratio(needle, text) for text in _searchable(candidate))
            if score >= self._config.min_similarity:
                matches.append(CandidateMatch(candidate=candidate, score=score))
        matches.sort(key=lambda match: (-match.score, match.candidate.full_name))
        return matches[: limit or self._config.limit]


def _searchable(candidate: Candidate) -> list[str]:
    fields = [
        candidate.full_name,
        candidate.candidate_code,
        candidate.email,
        candidate.phone,
        candidate.national_id,
        *(experience.job_title for experience in candidate.experiences),
    ]
    return [value.lower() for value in fields if value]
