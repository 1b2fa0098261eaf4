from __future__ import annotations

import pytest

from recruitflow.core.gates import STAGE_BY_STEP, GateContext, StageGateEvaluator
from recruitflow.errors import PreconditionError
from recruitflow.schemas import (
    BackgroundCheck,
    COIDeclaration,
    Committee,
    CommitteeMember,
    InterviewRound,
    LonglistingRound,
    Offer,
    RecruitmentReport,
    StaffRequisition,
    TermsOfReference,
    VacancyAnnouncement,
    WrittenTest,
)


def test_stage_catalogue_covers_fifteen_steps():
    assert sorted(STAGE_BY_STEP) == list(range(1, 16))
    assert [step for step, stage in STAGE_BY_STEP.items() if stage.per_candidate] == [12, 13, 14, 15]


def test_tor_gate_requires_approval():
    evaluator = StageGateEvaluator()

    missing = evaluator.evaluate(2, GateContext())
    assert not missing.passed
    assert missing.unmet == ["terms of reference have not been created"]

    draft = evaluator.evaluate(2, GateContext(tor=TermsOfReference(position_title="Engineer")))
    assert draft.unmet == ["terms of reference must be approved (status is draft)"]

    approved = TermsOfReference(position_title="Engineer", status="approved")
    assert evaluator.evaluate(2, GateContext(tor=approved)).passed


def test_requisition_gate_lists_every_unmet_condition():
    srf = StaffRequisition(position_title="Engineer", status="finance_review", hr_verified=True)
    result = StageGateEvaluator().evaluate(4, GateContext(requisition=srf))

    assert result.unmet == [
        "staff requisition must be approved (status is finance_review)",
        "staff requisition budget must be verified",
    ]
    with pytest.raises(PreconditionError) as excinfo:
        result.raise_for_unmet()
    assert excinfo.value.step == 4
    assert "budget must be verified" in str(excinfo.value)


def test_announcement_gate_accepts_published_or_closed():
    evaluator = StageGateEvaluator()
    for status, passed in (("draft", False), ("published", True), ("closed", True)):
        context = GateContext(announcement=VacancyAnnouncement(title="Engineer", status=status))
        assert evaluator.evaluate(5, context).passed is passed
        assert evaluator.evaluate(6, context).passed is passed


def test_committee_gate_blocks_unresolved_conflicts():
    committee = Committee(id="c1", recruitment_id="r1")
    member = CommitteeMember(id="m1", committee_id="c1", member_name="Aziz", role="technical_expert")
    conflict = COIDeclaration(recruitment_id="r1", committee_member_id="m1", has_conflict=True)
    evaluator = StageGateEvaluator()

    assert evaluator.evaluate(7, GateContext(committee=committee)).unmet == [
        "recruitment committee needs at least one member"
    ]

    blocked = evaluator.evaluate(
        7, GateContext(committee=committee, members=[member], coi_declarations=[conflict])
    )
    assert blocked.unmet == ["conflict of interest awaiting HR resolution for member(s) m1"]

    resolved = conflict.model_copy(update={"hr_decision": "conflict_recusal"})
    assert evaluator.evaluate(
        7, GateContext(committee=committee, members=[member], coi_declarations=[resolved])
    ).passed


def test_status_gates_name_the_artifact():
    evaluator = StageGateEvaluator()
    assert evaluator.evaluate(8, GateContext()).unmet == ["longlisting has not been created"]

    report = RecruitmentReport(status="submitted")
    assert evaluator.evaluate(12, GateContext(report=report)).unmet == [
        "recruitment report must be approved (status is submitted)"
    ]

    offer = Offer(application_id="a1", status="accepted")
    assert evaluator.evaluate(13, GateContext(offer=offer)).passed


def test_selection_gates_need_a_surviving_candidate():
    evaluator = StageGateEvaluator()
    completed = LonglistingRound(status="completed", total_applications=3)

    assert evaluator.evaluate(8, GateContext(longlisting=completed)).unmet == [
        "at least one candidate must be longlisted"
    ]
    assert evaluator.evaluate(8, GateContext(longlisting=completed, longlisted=1)).passed

    pending = LonglistingRound()
    assert evaluator.evaluate(8, GateContext(longlisting=pending)).unmet == [
        "longlisting must be completed (status is pending)",
        "at least one candidate must be longlisted",
    ]

    evaluated = WrittenTest(status="evaluated")
    assert evaluator.evaluate(10, GateContext(written_test=evaluated)).unmet == [
        "at least one candidate must pass the written test"
    ]
    interview = InterviewRound(status="evaluated")
    assert not evaluator.evaluate(11, GateContext(interview=interview)).passed
    assert evaluator.evaluate(11, GateContext(interview=interview, attended_interview=2)).passed


def test_contract_gate_requires_completed_background_check():
    evaluator = StageGateEvaluator()
    assert not evaluator.evaluate(15, GateContext()).passed

    pending = BackgroundCheck(application_id="a1")
    assert evaluator.evaluate(15, GateContext(background_check=pending)).unmet == [
        "background check has not been completed for this candidate"
    ]

    done = BackgroundCheck(
        application_id="a1",
        references=[{"name": "A", "status": "verified"}, {"name": "B", "status": "verified"}],
        guarantee_letter={"status": "verified"},
        home_address={"status": "verified"},
        criminal_check={"status": "cleared"},
    )
    assert done.status == "completed"
    # Derived status alone is not enough until the check is closed out.
    assert not evaluator.evaluate(15, GateContext(background_check=done)).passed
    closed = done.model_copy(update={"completed_at": "2025-01-01T09:00:00+00:00"})
    assert evaluator.evaluate(15, GateContext(background_check=closed)).passed


def test_require_raises_for_unknown_step():
    with pytest.raises(PreconditionError):
        StageGateEvaluator().require(16, GateContext())
