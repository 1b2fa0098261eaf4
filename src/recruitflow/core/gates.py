"""Stage gate preconditions for advancing a recruitment process."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from ..errors import PreconditionError
from ..repositories import Repositories
from ..schemas import (
    BackgroundCheck,
    COIDeclaration,
    Committee,
    CommitteeMember,
    InterviewRound,
    LonglistingRound,
    Offer,
    RecruitmentReport,
    SanctionDeclaration,
    ShortlistingRound,
    StaffRequisition,
    TermsOfReference,
    VacancyAnnouncement,
    WrittenTest,
)


@dataclass(frozen=True, slots=True)
class Stage:
    step: int
    key: str
    title: str
    per_candidate: bool = False


STAGES: tuple[Stage, ...] = (
    Stage(1, "tor", "Terms of Reference"),
    Stage(2, "requisition", "Staff Requisition"),
    Stage(3, "requisition_review", "Requisition Review"),
    Stage(4, "announcement", "Vacancy Announcement"),
    Stage(5, "application_receipt", "Application Receipt"),
    Stage(6, "committee", "Committee Formation"),
    Stage(7, "longlisting", "Longlisting"),
    Stage(8, "shortlisting", "Shortlisting"),
    Stage(9, "written_test", "Written Test"),
    Stage(10, "interview", "Interview"),
    Stage(11, "report", "Recruitment Report"),
    Stage(12, "offer", "Conditional Offer", per_candidate=True),
    Stage(13, "sanction", "Sanction Clearance", per_candidate=True),
    Stage(14, "background_check", "Background Check", per_candidate=True),
    Stage(15, "contract", "Employment Contract", per_candidate=True),
)
STAGE_BY_STEP: dict[int, Stage] = {stage.step: stage for stage in STAGES}
APPLICATION_RECEIPT_STEP = 5


@dataclass(slots=True)
class GateContext:
    """Snapshot of the artifacts the gate predicates read."""

    tor: TermsOfReference | None = None
    requisition: StaffRequisition | None = None
    announcement: VacancyAnnouncement | None = None
    committee: Committee | None = None
    members: list[CommitteeMember] = field(default_factory=list)
    coi_declarations: list[COIDeclaration] = field(default_factory=list)
    longlisting: LonglistingRound | None = None
    shortlisting: ShortlistingRound | None = None
    written_test: WrittenTest | None = None
    interview: InterviewRound | None = None
    longlisted: int = 0
    shortlisted: int = 0
    passed_written_test: int = 0
    attended_interview: int = 0
    report: RecruitmentReport | None = None
    offer: Offer | None = None
    sanction: SanctionDeclaration | None = None
    background_check: BackgroundCheck | None = None


@dataclass(slots=True)
class GateResult:
    step: int
    unmet: list[str]

    @property
    def passed(self) -> bool:
        return not self.unmet

    def raise_for_unmet(self) -> None:
        if self.unmet:
            raise PreconditionError("; ".join(self.unmet), step=self.step)


def _tor_approved(ctx: GateContext) -> list[str]:
    if ctx.tor is None:
        return ["terms of reference have not been created"]
    if ctx.tor.status != "approved":
        return [f"terms of reference must be approved (status is {ctx.tor.status})"]
    return []


def _requisition_filed(ctx: GateContext) -> list[str]:
    if ctx.requisition is None:
        return ["staff requisition has not been filed"]
    return []


def _requisition_approved(ctx: GateContext) -> list[str]:
    srf = ctx.requisition
    if srf is None:
        return ["staff requisition has not been filed"]
    unmet = []
    if srf.status != "approved":
        unmet.append(f"staff requisition must be approved (status is {srf.status})")
    if not srf.hr_verified:
        unmet.append("staff requisition must be HR verified")
    if not srf.budget_verified:
        unmet.append("staff requisition budget must be verified")
    return unmet


def _announcement_published(ctx: GateContext) -> list[str]:
    announcement = ctx.announcement
    if announcement is None:
        return ["vacancy announcement has not been created"]
    # Closing is only reachable from published.
    if announcement.status not in ("published", "closed"):
        return [f"vacancy announcement must be published (status is {announcement.status})"]
    return []


def _committee_cleared(ctx: GateContext) -> list[str]:
    if ctx.committee is None:
        return ["recruitment committee has not been formed"]
    unmet = []
    if not ctx.members:
        unmet.append("recruitment committee needs at least one member")
    unresolved = [
        declaration.committee_member_id
        for declaration in ctx.coi_declarations
        if declaration.has_conflict and declaration.hr_decision is None
    ]
    if unresolved:
        unmet.append(
            "conflict of interest awaiting HR resolution for member(s) "
            + ", ".join(unresolved)
        )
    return unmet


def _status_is(label: str, attr: str, expected: str) -> Callable[[GateContext], list[str]]:
    def check(ctx: GateContext) -> list[str]:
        artifact = getattr(ctx, attr)
        if artifact is None:
            return [f"{label} has not been created"]
        if artifact.status != expected:
            return [f"{label} must be {expected} (status is {artifact.status})"]
        return []

    return check


def _round_with_survivors(
    label: str, attr: str, expected: str, count_attr: str, outcome: str
) -> Callable[[GateContext], list[str]]:
    status_check = _status_is(label, attr, expected)

    def check(ctx: GateContext) -> list[str]:
        unmet = status_check(ctx)
        if getattr(ctx, attr) is not None and not getattr(ctx, count_attr):
            unmet.append(f"at least one candidate must {outcome}")
        return unmet

    return check


def _background_check_completed(ctx: GateContext) -> list[str]:
    check = ctx.background_check
    if check is None:
        return ["background check has not been opened for this candidate"]
    if check.status != "completed" or check.completed_at is None:
        return ["background check has not been completed for this candidate"]
    return []


GATES: dict[int, Callable[[GateContext], list[str]]] = {
    2: _tor_approved,
    3: _requisition_filed,
    4: _requisition_approved,
    5: _announcement_published,
    6: _announcement_published,
    7: _committee_cleared,
    8: _round_with_survivors("longlisting", "longlisting", "completed", "longlisted", "be longlisted"),
    9: _round_with_survivors("shortlisting", "shortlisting", "completed", "shortlisted", "be shortlisted"),
    10: _round_with_survivors(
        "written test", "written_test", "evaluated", "passed_written_test", "pass the written test"
    ),
    11: _round_with_survivors(
        "interview round", "interview", "evaluated", "attended_interview", "attend the interview"
    ),
    12: _status_is("recruitment report", "report", "approved"),
    13: _status_is("offer for this candidate", "offer", "accepted"),
    14: _status_is("sanction declaration for this candidate", "sanction", "cleared"),
    15: _background_check_completed,
}


class StageGateEvaluator:
    """Pure predicates deciding whether a process may enter a step."""

    def evaluate(self, step: int, context: GateContext) -> GateResult:
        gate = GATES.get(step)
        if gate is None:
            return GateResult(step=step, unmet=[f"step {step} is not a pipeline stage"])
        return GateResult(step=step, unmet=gate(context))

    def require(self, step: int, context: GateContext) -> None:
        self.evaluate(step, context).raise_for_unmet()


class GateContextLoader:
    """Load the artifacts a gate needs from the repositories."""

    def __init__(self, repositories: Repositories) -> None:
        self._repos = repositories

    async def load(self, process_id: str, *, application_id: str | None = None) -> GateContext:
        repos = self._repos
        context = GateContext(
            tor=await repos.terms_of_reference.first_by_index("recruitment_id", process_id),
            requisition=await repos.requisitions.first_by_index("recruitment_id", process_id),
            announcement=await repos.announcements.first_by_index("recruitment_id", process_id),
            committee=await repos.committees.first_by_index("recruitment_id", process_id),
            coi_declarations=await repos.coi_declarations.by_index("recruitment_id", process_id),
            longlisting=await repos.longlistings.first_by_index("recruitment_id", process_id),
            shortlisting=await repos.shortlistings.first_by_index("recruitment_id", process_id),
            written_test=await repos.written_tests.first_by_index("recruitment_id", process_id),
            interview=await repos.interviews.first_by_index("recruitment_id", process_id),
            report=await repos.reports.first_by_index("recruitment_id", process_id),
        )
        if context.committee is not None:
            context.members = await repos.committee_members.by_index(
                "committee_id", context.committee.id
            )
        await self._count_survivors(context)
        if application_id is not None:
            context.offer = _latest(await repos.offers.by_index("application_id", application_id))
            context.sanction = await repos.sanctions.first_by_index("application_id", application_id)
            context.background_check = await repos.background_checks.first_by_index(
                "application_id", application_id
            )
        return context

    async def _count_survivors(self, context: GateContext) -> None:
        repos = self._repos
        if context.longlisting is not None:
            decisions = await repos.longlisting_decisions.by_index("longlisting_id", context.longlisting.id)
            context.longlisted = sum(1 for decision in decisions if decision.is_longlisted)
        if context.shortlisting is not None:
            scores = await repos.shortlisting_scores.by_index("shortlisting_id", context.shortlisting.id)
            context.shortlisted = sum(1 for score in scores if score.is_shortlisted)
        if context.written_test is not None:
            takers = await repos.written_test_candidates.by_index("written_test_id", context.written_test.id)
            context.passed_written_test = sum(1 for taker in takers if taker.is_passed)
        if context.interview is not None:
            interviewees = await repos.interview_candidates.by_index("interview_id", context.interview.id)
            context.attended_interview = sum(1 for interviewee in interviewees if interviewee.attended)


def _latest(items: list) -> object | None:
    return items[-1] if items else None
