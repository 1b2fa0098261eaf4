"""Explicit seeding of a complete sample recruitment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from .schemas import (
    BackgroundCheck,
    Committee,
    EmploymentContract,
    Offer,
    RecruitmentProcess,
    SanctionDeclaration,
    StaffRequisition,
    TermsOfReference,
    VacancyAnnouncement,
)
from .workflow import RecruitmentWorkflow

logger = structlog.get_logger(__name__)

LONGLIST_THRESHOLD = 70
INTERVIEW_THRESHOLD = 75
COMPLETED = 16

SAMPLE_CANDIDATES: tuple[dict[str, Any], ...] = (
    {"full_name": "Ahmad Khalil", "gender": "male", "province": "Kabul", "education": "masters", "score": 85},
    {"full_name": "Fatima Ahmadi", "gender": "female", "province": "Herat", "education": "masters", "score": 82},
    {"full_name": "Hassan Karimi", "gender": "male", "province": "Balkh", "education": "masters", "score": 88},
    {"full_name": "Mariam Nouri", "gender": "female", "province": "Kabul", "education": "masters", "score": 75},
    {"full_name": "Rashid Qasimi", "gender": "male", "province": "Nangarhar", "education": "bachelors", "score": 55},
)

COMMITTEE = (
    ("HR Manager", "hr_representative", True),
    ("Program Director", "technical_expert", False),
    ("Finance Manager", "additional", False),
)


@dataclass(slots=True)
class SampleRecruitment:
    process: RecruitmentProcess
    application_ids: list[str]
    hired_application_id: str
    counts: dict[str, int] = field(default_factory=dict)


def sample_candidates(count: int) -> list[dict[str, Any]]:
    """Return ``count`` candidate profiles, padding the fixed set deterministically."""
    profiles = [dict(profile) for profile in SAMPLE_CANDIDATES[:count]]
    for index in range(len(profiles), count):
        profiles.append(
            {
                "full_name": f"Sample Candidate {index + 1}",
                "gender": "female" if index % 2 else "male",
                "province": "Kabul",
                "education": "bachelors",
                "score": 50 + (index * 13) % 46,
            }
        )
    return profiles


class SampleRecruitmentBuilder:
    """Drive one sample recruitment step by step.

    Each phase advances the process into its step and performs the stage
    operations the next gate needs; ``run_until`` stops after a given step.
    """

    def __init__(
        self,
        workflow: RecruitmentWorkflow,
        *,
        candidates: int = 5,
        position_title: str = "Senior Program Manager",
        department: str = "Programs",
    ) -> None:
        if candidates < 1:
            raise ValueError("at least one candidate is required")
        self.workflow = workflow
        self.candidates = candidates
        self.position_title = position_title
        self.department = department
        self.process_id: str | None = None
        self.step = 0
        self.scores: dict[str, int] = {}
        self.artifacts: dict[str, Any] = {}
        self.members: list[Any] = []
        self.top_application_id: str | None = None
        self._phases = {
            1: self._open,
            2: self._requisition,
            3: self._review,
            4: self._announce,
            5: self._receive,
            6: self._committee,
            7: self._longlist,
            8: self._shortlist,
            9: self._written_test,
            10: self._interview,
            11: self._report,
            12: self._offer,
            13: self._sanction,
            14: self._background_check,
            15: self._contract,
            COMPLETED: self._finish,
        }

    async def run_until(self, step: int) -> RecruitmentProcess:
        while self.step < step:
            await self._phases[self.step + 1]()
            self.step += 1
        return await self.workflow.processes.get(self.process_id)

    async def build(self) -> SampleRecruitment:
        process = await self.run_until(COMPLETED)
        counts = dict(await self.workflow.applications.counts_by_status(process.id))
        logger.info("fixtures.seeded", process_id=process.id, candidates=self.candidates, counts=counts)
        return SampleRecruitment(
            process=process,
            application_ids=list(self.scores),
            hired_application_id=self.top_application_id,
            counts=counts,
        )

    async def _advance(self, key: str, artifact: Any = None) -> Any:
        outcome = await self.workflow.processes.advance(self.process_id, artifact)
        if outcome.artifact is not None:
            self.artifacts[key] = outcome.artifact
        return outcome.artifact

    async def _open(self) -> None:
        wf = self.workflow
        process = await wf.processes.open(
            RecruitmentProcess(
                position_title=self.position_title,
                department=self.department,
                hiring_approach="open_competition",
                contract_type="core",
            ),
            TermsOfReference(
                position_title=self.position_title,
                department=self.department,
                reports_to="Country Director",
                responsibilities=[
                    "Oversee implementation of all program activities",
                    "Manage program budget and financial reporting",
                    "Supervise program staff and provide technical guidance",
                ],
                skills=["Project management", "Report writing", "Team leadership"],
                languages=[
                    {"language": "English", "level": "Fluent"},
                    {"language": "Dari", "level": "Fluent"},
                ],
                required_education="masters",
                required_experience_years=5,
            ),
        )
        self.process_id = process.id
        tor = await wf.repositories.terms_of_reference.first_by_index("recruitment_id", process.id)
        await wf.requisition.submit_tor(tor.id)
        self.artifacts["tor"] = await wf.requisition.approve_tor(tor.id, approved_by="Country Director")

    async def _requisition(self) -> None:
        wf = self.workflow
        srf = await self._advance(
            "requisition",
            StaffRequisition(
                position_title=self.position_title,
                department=self.department,
                budget_code="PROG-001",
                budget_amount=36000,
                currency="USD",
                requested_by="Program Director",
            ),
        )
        await wf.requisition.submit_requisition(srf.id)
        await wf.requisition.verify_hr(srf.id, verified_by="HR Manager")
        await wf.requisition.verify_budget(srf.id, verified_by="Finance Manager")
        await wf.requisition.approve_requisition(srf.id, approved_by="Country Director")

    async def _review(self) -> None:
        await self._advance("review")

    async def _announce(self) -> None:
        announcement = await self._advance(
            "announcement",
            VacancyAnnouncement(
                title=self.position_title,
                requirements=["Master's degree", "5 years of relevant experience"],
                benefits=["Health insurance", "Annual leave"],
                announcement_method="acbar",
            ),
        )
        await self.workflow.requisition.publish_announcement(announcement.id)

    async def _receive(self) -> None:
        wf = self.workflow
        await self._advance("receipt")
        for profile in sample_candidates(self.candidates):
            slug = profile["full_name"].lower().replace(" ", ".")
            candidate = await wf.candidates.register(
                full_name=profile["full_name"],
                gender=profile["gender"],
                email=f"{slug}@example.com",
                province=profile["province"],
                education=[{"level": profile["education"], "field_of_study": "International Development"}],
                experiences=[{"job_title": "Program Officer", "organization": "International NGO"}],
            )
            application = await wf.applications.receive(self.process_id, candidate.id, source="announcement")
            self.scores[application.id] = profile["score"]

    async def _committee(self) -> None:
        wf = self.workflow
        committee = await self._advance("committee", Committee(name=f"{self.position_title} Recruitment Committee"))
        self.members = [
            await wf.committee.add_member(committee.id, member_name=name, role=role, is_chair=chair)
            for name, role, chair in COMMITTEE
        ]
        for member in self.members:
            await wf.committee.declare_conflict(member.id, has_conflict=False)

    async def _longlist(self) -> None:
        wf = self.workflow
        longlisting = await self._advance("longlisting", wf.selection.new_longlisting())
        for app_id, score in self.scores.items():
            passed = score >= LONGLIST_THRESHOLD
            await wf.selection.longlist(
                longlisting.id,
                app_id,
                is_longlisted=passed,
                reason=None if passed else "does not meet minimum requirements",
            )
        await wf.selection.complete_longlisting(longlisting.id)

    async def _shortlist(self) -> None:
        wf = self.workflow
        shortlisting = await self._advance("shortlisting", wf.selection.new_shortlisting())
        for application in await wf.applications.for_process(self.process_id, status="longlisted"):
            score = self.scores[application.id]
            await wf.selection.score(
                shortlisting.id,
                application.id,
                academic_score=min(score, 100),
                experience_score=max(min(score - 5, 100), 0),
                other_criteria_score=min(score + 5, 100),
            )
        await wf.selection.complete_shortlisting(shortlisting.id)

    async def _written_test(self) -> None:
        wf = self.workflow
        test = await self._advance("written_test", wf.selection.new_written_test(venue="Main office"))
        enrolled = await wf.selection.enrol_shortlisted(test.id)
        await wf.selection.conduct_written_test(test.id)
        for entry in enrolled:
            await wf.selection.record_attendance(entry.id)
            await wf.selection.record_marks(entry.id, max(40, min(self.scores[entry.application_id], 95)))
        await wf.selection.complete_written_test(test.id)

    async def _interview(self) -> None:
        wf = self.workflow
        interview = await self._advance("interview", wf.interview.new_interview())
        tested = await wf.applications.for_process(self.process_id, status="tested")
        selected = [app.id for app in tested if self.scores[app.id] >= INTERVIEW_THRESHOLD]
        if not selected and tested:
            selected = [max(tested, key=lambda app: self.scores[app.id]).id]
        for application in tested:
            if application.id not in selected:
                await wf.applications.reject(application.id, "not selected for interview")
        interviewees = await wf.interview.select(interview.id, selected)
        await wf.interview.conduct(interview.id)
        for interviewee in interviewees:
            score = self.scores[interviewee.application_id]
            base = min(5, score // 20)
            await wf.interview.record_attendance(interviewee.id)
            for member in self.members:
                await wf.interview.evaluate(
                    interviewee.id,
                    evaluator_name=member.member_name,
                    technical_score=base,
                    communication_score=base,
                    problem_solving_score=max(base - 1, 0),
                    experience_relevance_score=base,
                    cultural_fit_score=base,
                    recommendation="strongly_recommend" if score >= 85 else "recommend",
                )
        await wf.interview.complete(interview.id)

    async def _report(self) -> None:
        wf = self.workflow
        ranking = await wf.interview.ranking(self.artifacts["interview"].id)
        self.top_application_id = ranking[0].application_id
        draft = await wf.report.draft(
            self.process_id,
            [self.top_application_id],
            title=f"{self.position_title} recruitment report",
            prepared_by="HR Manager",
        )
        report = await self._advance("report", draft)
        await wf.report.submit(report.id)
        await wf.report.approve(report.id, approved_by="Country Director")

    async def _offer(self) -> None:
        wf = self.workflow
        offer = await self._advance("offer", Offer(application_id=self.top_application_id, salary=3000, currency="USD"))
        await wf.offers.send(offer.id)
        await wf.offers.respond(offer.id, accepted=True)

    async def _sanction(self) -> None:
        sanction = await self._advance("sanction", SanctionDeclaration(application_id=self.top_application_id))
        await self.workflow.compliance.verify_sanction(sanction.id, is_clear=True, verified_by="Compliance Officer")

    async def _background_check(self) -> None:
        compliance = self.workflow.compliance
        check = await self._advance("background_check", BackgroundCheck(application_id=self.top_application_id))
        for name in ("Reference One", "Reference Two"):
            check = await compliance.add_reference(check.id, {"name": name, "status": "verified"})
        await compliance.set_guarantee_letter(check.id, guarantor_name="Guarantor", status="verified")
        await compliance.set_home_address(check.id, status="verified", verified_by="HR Officer")
        await compliance.set_criminal_check(check.id, status="cleared", checked_by="HR Officer")
        await compliance.complete_background_check(check.id, verified_by="HR Manager")

    async def _contract(self) -> None:
        wf = self.workflow
        contract = await self._advance(
            "contract",
            EmploymentContract(
                application_id=self.top_application_id,
                position=self.position_title,
                salary=3000,
                currency="USD",
            ),
        )
        await wf.compliance.sign_as_employee(contract.id)
        await wf.compliance.sign_as_employer(contract.id, signatory="Country Director")
        await wf.compliance.activate(contract.id)
        await wf.hire(self.top_application_id)

    async def _finish(self) -> None:
        wf = self.workflow
        checklist = await wf.checklist.open(self.process_id)
        checklist = await wf.checklist.mark(checklist.id, {name: True for name in checklist.missing()})
        await wf.checklist.verify(checklist.id, verified_by="HR Manager")
        await wf.processes.complete(self.process_id)


async def build_sample_recruitment(
    workflow: RecruitmentWorkflow,
    *,
    candidates: int = 5,
    position_title: str = "Senior Program Manager",
    department: str = "Programs",
) -> SampleRecruitment:
    """Seed one recruitment taken through all fifteen steps to completion."""
    builder = SampleRecruitmentBuilder(
        workflow,
        candidates=candidates,
        position_title=position_title,
        department=department,
    )
    return await builder.build()
