from __future__ import annotations

import pytest

from recruitflow.errors import InvalidTransitionError, PreconditionError, ValidationError
from recruitflow.schemas import Committee, StaffRequisition


def scores(**overrides):
    values = {
        "technical_score": 4,
        "communication_score": 4,
        "problem_solving_score": 3,
        "experience_relevance_score": 4,
        "cultural_fit_score": 4,
    }
    values.update(overrides)
    return values


@pytest.mark.asyncio
async def test_terms_of_reference_rejection_and_resubmission(workflow):
    process = await workflow.processes.open({"position_title": "Driver"}, {"position_title": "Driver"})
    tor = await workflow.repositories.terms_of_reference.first_by_index("recruitment_id", process.id)
    requisition = workflow.requisition

    tor = await requisition.submit_tor(tor.id)
    assert tor.status == "pending_approval"
    tor = await requisition.reject_tor(tor.id, rejected_by="Country Director", reason="scope unclear")
    assert tor.rejection_reason == "scope unclear"
    with pytest.raises(InvalidTransitionError):
        await requisition.approve_tor(tor.id, approved_by="Country Director")

    tor = await requisition.submit_tor(tor.id)
    tor = await requisition.approve_tor(tor.id, approved_by="Country Director")
    assert tor.status == "approved"
    assert tor.approved_at is not None


@pytest.mark.asyncio
async def test_requisition_needs_hr_then_budget_verification(builder, workflow):
    process = await builder.run_until(1)
    outcome = await workflow.processes.advance(process.id, StaffRequisition(position_title="Driver"))
    srf = outcome.artifact
    requisition = workflow.requisition

    with pytest.raises(PreconditionError, match="HR verified"):
        await requisition.verify_budget(srf.id, verified_by="Finance Manager")
    with pytest.raises(PreconditionError):
        await requisition.approve_requisition(srf.id, approved_by="Country Director")

    await requisition.submit_requisition(srf.id)
    srf = await requisition.verify_hr(srf.id, verified_by="HR Manager")
    assert srf.status == "finance_review"
    assert srf.hr_verified

    srf = await requisition.reject_requisition(srf.id, reason="budget line exhausted")
    assert srf.status == "rejected"
    assert not srf.hr_verified and not srf.budget_verified

    srf = await requisition.submit_requisition(srf.id)
    await requisition.verify_hr(srf.id, verified_by="HR Manager")
    srf = await requisition.verify_budget(srf.id, verified_by="Finance Manager")
    assert srf.status == "finance_review"
    assert srf.budget_verified_by == "Finance Manager"
    srf = await requisition.approve_requisition(srf.id, approved_by="Country Director")
    assert srf.status == "approved"
    with pytest.raises(InvalidTransitionError):
        await requisition.verify_budget(srf.id, verified_by="Finance Manager")


@pytest.mark.asyncio
async def test_announcement_close_requires_publication(builder, workflow):
    process = await builder.run_until(4)
    announcement = await workflow.repositories.announcements.first_by_index("recruitment_id", process.id)
    closed = await workflow.requisition.close_announcement(announcement.id)
    assert closed.status == "closed"
    with pytest.raises(InvalidTransitionError):
        await workflow.requisition.publish_announcement(announcement.id)


@pytest.mark.asyncio
async def test_conflict_of_interest_blocks_longlisting(builder, workflow):
    process = await builder.run_until(5)
    committee = (await workflow.processes.advance(process.id, Committee(name="Panel"))).artifact
    stage = workflow.committee

    chair = await stage.add_member(committee.id, member_name="HR Manager", role="hr_representative", is_chair=True)
    with pytest.raises(ValidationError, match="already has a chair"):
        await stage.add_member(committee.id, member_name="Director", role="additional", is_chair=True)
    expert = await stage.add_member(committee.id, member_name="Engineer", role="technical_expert")

    application_id = next(iter(builder.scores))
    await stage.declare_conflict(chair.id, has_conflict=False)
    declaration = await stage.declare_conflict(
        expert.id,
        has_conflict=True,
        related_application_ids=[application_id],
        description="former colleague",
    )
    with pytest.raises(ValidationError):
        await stage.declare_conflict(expert.id, has_conflict=False)
    assert [d.id for d in await stage.unresolved_conflicts(process.id)] == [declaration.id]

    with pytest.raises(PreconditionError, match="conflict of interest"):
        await workflow.processes.advance(process.id, workflow.selection.new_longlisting())

    await stage.review_conflict(declaration.id, decision="conflict_recusal", reviewed_by="HR Manager")
    with pytest.raises(InvalidTransitionError):
        await stage.review_conflict(declaration.id, decision="no_conflict", reviewed_by="HR Manager")

    outcome = await workflow.processes.advance(process.id, workflow.selection.new_longlisting())
    assert outcome.process.current_step == 7


@pytest.mark.asyncio
async def test_longlisting_completion_requires_every_decision(builder, workflow):
    process = await builder.run_until(6)
    round_ = (await workflow.processes.advance(process.id, workflow.selection.new_longlisting())).artifact
    app_ids = list(builder.scores)

    await workflow.selection.longlist(round_.id, app_ids[0], is_longlisted=True)
    with pytest.raises(ValidationError):
        await workflow.selection.longlist(round_.id, app_ids[0], is_longlisted=False)
    with pytest.raises(PreconditionError, match="4 application"):
        await workflow.selection.complete_longlisting(round_.id)

    for app_id in app_ids[1:]:
        await workflow.selection.longlist(round_.id, app_id, is_longlisted=False)
    completed = await workflow.selection.complete_longlisting(round_.id)

    assert completed.total_applications == 5
    assert completed.total_longlisted == 1
    rejected = await workflow.repositories.applications.get(app_ids[1])
    assert rejected.rejection_reason == "not longlisted"


@pytest.mark.asyncio
async def test_shortlisting_blocked_when_nobody_is_longlisted(builder, workflow):
    process = await builder.run_until(6)
    round_ = (await workflow.processes.advance(process.id, workflow.selection.new_longlisting())).artifact
    for app_id in builder.scores:
        await workflow.selection.longlist(round_.id, app_id, is_longlisted=False)
    await workflow.selection.complete_longlisting(round_.id)

    with pytest.raises(PreconditionError, match="at least one candidate must be longlisted") as excinfo:
        await workflow.processes.advance(process.id, workflow.selection.new_shortlisting())
    assert excinfo.value.step == 8
    assert (await workflow.repositories.processes.get(process.id)).current_step == 7
    assert await workflow.repositories.shortlistings.all() == []


@pytest.mark.asyncio
async def test_shortlisting_scores_drive_transitions(builder, workflow):
    process = await builder.run_until(7)
    round_ = (
        await workflow.processes.advance(process.id, workflow.selection.new_shortlisting(passing_score=82))
    ).artifact
    longlisted = await workflow.applications.for_process(process.id, status="longlisted")
    rejected = await workflow.applications.for_process(process.id, status="rejected")

    record = await workflow.selection.score(
        round_.id, longlisted[0].id, academic_score=80, experience_score=75, other_criteria_score=85
    )
    assert record.total_score == pytest.approx(81.0)
    assert record.is_shortlisted is False
    application = await workflow.repositories.applications.get(longlisted[0].id)
    assert application.status == "rejected"
    assert application.rejection_reason == "shortlisting score 81 below passing score"

    with pytest.raises(InvalidTransitionError):
        await workflow.selection.score(
            round_.id, rejected[0].id, academic_score=90, experience_score=90, other_criteria_score=90
        )
    with pytest.raises(PreconditionError, match="3 longlisted"):
        await workflow.selection.complete_shortlisting(round_.id)

    passed = await workflow.selection.score(
        round_.id, longlisted[1].id, academic_score=90, experience_score=90, other_criteria_score=90
    )
    assert passed.is_shortlisted
    assert (await workflow.repositories.applications.get(longlisted[1].id)).status == "shortlisted"


@pytest.mark.asyncio
async def test_written_test_marks_attendance_and_outcomes(builder, workflow):
    process = await builder.run_until(8)
    test = (
        await workflow.processes.advance(
            process.id, workflow.selection.new_written_test(total_marks=60, passing_marks=30)
        )
    ).artifact
    selection = workflow.selection
    entries = await selection.enrol_shortlisted(test.id)
    assert len(entries) == 4
    assert all(entry.unique_code.startswith("WT-") for entry in entries)
    assert await selection.enrol_shortlisted(test.id) == []

    with pytest.raises(InvalidTransitionError):
        await selection.record_marks(entries[0].id, 40)

    await selection.conduct_written_test(test.id)
    with pytest.raises(ValidationError, match="did not attend"):
        await selection.record_marks(entries[0].id, 40)

    for entry in entries[:3]:
        await selection.record_attendance(entry.id)
    with pytest.raises(ValidationError):
        await selection.record_marks(entries[0].id, 61)
    with pytest.raises(PreconditionError, match="marks missing"):
        await selection.complete_written_test(test.id)

    for entry, marks in zip(entries[:3], (42, 20, 55)):
        await selection.record_marks(entry.id, marks)
    evaluated = await selection.complete_written_test(test.id)
    assert evaluated.status == "evaluated"

    apps = [await workflow.repositories.applications.get(entry.application_id) for entry in entries]
    assert [app.status for app in apps] == ["tested", "rejected", "tested", "rejected"]
    assert apps[1].rejection_reason == "written test failed"
    assert apps[3].rejection_reason == "absent from written test"
    absent = await workflow.repositories.written_test_candidates.get(entries[3].id)
    assert absent.is_passed is False


@pytest.mark.asyncio
async def test_interview_evaluations_and_absentees(builder, workflow):
    process = await builder.run_until(9)
    interview = (await workflow.processes.advance(process.id, workflow.interview.new_interview())).artifact
    tested = await workflow.applications.for_process(process.id, status="tested")
    stage = workflow.interview

    present, absent = await stage.select(interview.id, [tested[0].id, tested[1].id])
    assert (await workflow.repositories.applications.get(tested[0].id)).status == "interviewed"

    with pytest.raises(InvalidTransitionError):
        await stage.evaluate(present.id, evaluator_name="Panel A", **scores())

    await stage.conduct(interview.id)
    await stage.record_attendance(present.id)
    with pytest.raises(ValidationError, match="did not attend"):
        await stage.evaluate(absent.id, evaluator_name="Panel A", **scores())
    with pytest.raises(PreconditionError, match="no evaluation recorded"):
        await stage.complete(interview.id)

    evaluation = await stage.evaluate(present.id, evaluator_name="Panel A", **scores())
    assert evaluation.total_score == pytest.approx(19.0)
    with pytest.raises(ValidationError, match="already evaluated"):
        await stage.evaluate(present.id, evaluator_name="Panel A", **scores())
    with pytest.raises(ValidationError):
        await stage.evaluate(present.id, evaluator_name="Panel B", **scores(technical_score=6))

    await stage.complete(interview.id)

    dropped = await workflow.repositories.applications.get(absent.application_id)
    assert dropped.status == "rejected"
    assert dropped.rejection_reason == "absent from interview"
    ranking = await stage.ranking(interview.id)
    assert [(result.application_id, result.final_rank) for result in ranking] == [(tested[0].id, 1)]
    assert ranking[0].normalized_score == pytest.approx(76.0)


@pytest.mark.asyncio
async def test_interview_ranking_combines_written_scores(builder, workflow):
    await builder.run_until(10)

    ranking = await workflow.interview.ranking(builder.artifacts["interview"].id)

    assert [result.final_rank for result in ranking] == [1, 2, 3, 4]
    top = ranking[0]
    assert top.application_id == max(builder.scores, key=builder.scores.get)
    assert top.evaluator_count == 3
    assert top.average_score == pytest.approx(19.0)
    assert top.written_test_score == pytest.approx(88.0)
    assert top.combined_score == pytest.approx(82.0)


@pytest.mark.asyncio
async def test_report_drafting_and_review(builder, workflow):
    process = await builder.run_until(10)
    rejected = (await workflow.applications.for_process(process.id, status="rejected"))[0]
    ranking = await workflow.interview.ranking(builder.artifacts["interview"].id)
    report_stage = workflow.report

    with pytest.raises(ValidationError):
        await report_stage.draft(process.id, [])
    with pytest.raises(ValidationError, match="not ranked"):
        await report_stage.draft(process.id, [rejected.id])

    draft = await report_stage.draft(process.id, [ranking[0].application_id], title="Final report")
    assert draft.id is None
    assert draft.status == "draft"
    assert [entry.rank for entry in draft.ranking] == [1, 2, 3, 4]

    report = (await workflow.processes.advance(process.id, draft)).artifact
    assert report.report_number.startswith("RR-")
    with pytest.raises(InvalidTransitionError):
        await report_stage.approve(report.id, approved_by="Country Director")

    await report_stage.submit(report.id)
    rejected_report = await report_stage.reject(report.id, reason="missing signatures")
    assert rejected_report.rejection_reason == "missing signatures"
    resubmitted = await report_stage.submit(report.id)
    assert resubmitted.rejection_reason is None
    approved = await report_stage.approve(report.id, approved_by="Country Director")
    assert approved.status == "approved"


@pytest.mark.asyncio
async def test_offer_requires_selection_and_single_open_offer(builder, workflow):
    process = await builder.run_until(11)
    others = [
        app
        for app in await workflow.applications.for_process(process.id, status="interviewed")
        if app.id != builder.top_application_id
    ]

    with pytest.raises(PreconditionError, match="not selected"):
        await workflow.offers.draft(others[0].id)

    offer = await workflow.offers.draft(builder.top_application_id, salary=3000)
    assert offer.position == "Senior Program Manager"
    with pytest.raises(ValidationError, match="open offer"):
        await workflow.offers.draft(builder.top_application_id)

    await workflow.offers.send(offer.id)
    declined = await workflow.offers.respond(offer.id, accepted=False, reason="accepted another post")
    assert declined.status == "declined"

    application = await workflow.repositories.applications.get(builder.top_application_id)
    assert application.status == "withdrawn"
    assert application.withdrawal_reason == "accepted another post"


@pytest.mark.asyncio
async def test_offer_expiry_withdraws_application(builder, workflow):
    await builder.run_until(11)

    offer = await workflow.offers.issue(builder.top_application_id)
    assert offer.status == "sent"
    assert (await workflow.repositories.applications.get(builder.top_application_id)).status == "offered"

    expired = await workflow.offers.expire(offer.id)
    assert expired.status == "expired"
    application = await workflow.repositories.applications.get(builder.top_application_id)
    assert application.status == "withdrawn"
    assert application.withdrawal_reason == "offer expired"
    with pytest.raises(InvalidTransitionError):
        await workflow.offers.respond(offer.id, accepted=True)
