import uuid

import pytest

from capstone.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from capstone.core.proposal_graph import ALLOWED_PROPOSAL_TRANSITIONS, can_transition
from capstone.models.audit_log import AuditLog
from capstone.models.enums import (
    MemberAction,
    MemberStatus,
    ProjectStatus,
    ProposalOutlineStatus,
    ProposedProjectStatus as S,
    ReviewDecision,
    UserRole,
)
from capstone.models.project import Project
from capstone.models.proposed_project import ProposedProject
from capstone.policies.rbac import Principal
from capstone.services.proposal_workflow_service import ProposalWorkflowService

OUTLINE = dict(
    introduction="Why",
    objectives="What",
    methodology="How",
    expected_results="Result",
)


def create_proposal(db, svc, advisor, students=("stu-1",)):
    return svc.create_proposal(
        db,
        advisor,
        title=None,
        student_ids=list(students),
        advisor_id=advisor.user_id,
    )


def to_topic_approved(db, svc, advisor, student):
    p = create_proposal(db, svc, advisor)
    svc.submit_topic(db, student, p.id, title="Smart campus", submit_to_advisor=True)
    svc.review_topic(db, advisor, p.id, decision=ReviewDecision.approve)
    return p


def to_outline_pending(db, svc, advisor, student):
    p = to_topic_approved(db, svc, advisor, student)
    outline = svc.submit_outline(db, student, p.id, submit_for_review=True, **OUTLINE)
    return p, outline


def to_outline_approved(db, svc, advisor, student):
    p, outline = to_outline_pending(db, svc, advisor, student)
    svc.review_outline(db, advisor, outline.id, decision=ReviewDecision.approve)
    return p, outline


def status_of(db, project_id):
    db.expire_all()
    return db.get(ProposedProject, project_id).status


# ─────────────────────────────────────────────
# graph
# ─────────────────────────────────────────────

def test_terminal_statuses_have_no_exits():
    for terminal in (S.APPROVED_BY_HEAD, S.REJECTED_BY_HEAD, S.OUTLINE_REJECTED):
        assert ALLOWED_PROPOSAL_TRANSITIONS[terminal] == set()
        for target in S:
            assert can_transition(terminal, target) is False


def test_every_status_is_in_graph():
    assert set(ALLOWED_PROPOSAL_TRANSITIONS) == set(S)


# ─────────────────────────────────────────────
# creation
# ─────────────────────────────────────────────

def test_create_proposal_defaults(db, advisor):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor, students=("stu-1", "stu-2"))

    assert p.status == S.TOPIC_SUBMISSION_PENDING.value
    assert p.version == 1
    assert p.created_by_id == advisor.user_id
    assert p.faculty_id == advisor.faculty_id
    roles = {m.user_id: m.role for m in p.members}
    assert roles == {"stu-1": "LEADER", "stu-2": "STUDENT", "lect-1": "ADVISOR"}


def test_create_proposal_requires_faculty(db, student):
    svc = ProposalWorkflowService()
    with pytest.raises(ForbiddenError):
        svc.create_proposal(db, student, title="x", student_ids=["stu-1"], advisor_id="lect-1")


def test_create_proposal_rejects_empty_students(db, advisor):
    svc = ProposalWorkflowService()
    with pytest.raises(ValidationError):
        svc.create_proposal(db, advisor, title="x", student_ids=[], advisor_id=advisor.user_id)


def test_one_proposal_per_allocation(db, advisor):
    svc = ProposalWorkflowService()
    svc.create_proposal(db, advisor, title="a", student_ids=["stu-1"], advisor_id="lect-1", allocation_id="al-1")
    with pytest.raises(ValidationError):
        svc.create_proposal(db, advisor, title="b", student_ids=["stu-2"], advisor_id="lect-1", allocation_id="al-1")


# ─────────────────────────────────────────────
# topic
# ─────────────────────────────────────────────

def test_topic_submit_then_approve(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)

    svc.submit_topic(db, student, p.id, title="Smart campus", submit_to_advisor=True)
    assert status_of(db, p.id) == S.TOPIC_PENDING_ADVISOR.value

    svc.review_topic(db, advisor, p.id, decision=ReviewDecision.approve)
    assert status_of(db, p.id) == S.TOPIC_APPROVED.value


def test_topic_draft_save_keeps_status(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)

    svc.submit_topic(db, student, p.id, title="Draft title")

    db.expire_all()
    fresh = db.get(ProposedProject, p.id)
    assert fresh.title == "Draft title"
    assert fresh.status == S.TOPIC_SUBMISSION_PENDING.value


def test_topic_request_changes_then_resubmit(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    svc.submit_topic(db, student, p.id, title="v1", submit_to_advisor=True)

    svc.review_topic(db, advisor, p.id, decision=ReviewDecision.request_changes, comment="Narrow it down")
    assert status_of(db, p.id) == S.TOPIC_REQUESTED_CHANGES.value

    svc.submit_topic(db, student, p.id, title="v2", submit_to_advisor=True)
    assert status_of(db, p.id) == S.TOPIC_PENDING_ADVISOR.value

    comments = db.get(ProposedProject, p.id).comments
    assert [c.content for c in comments] == ["Narrow it down"]


def test_topic_edit_window_closes_after_approval(db, advisor, student):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)

    with pytest.raises(InvalidTransitionError):
        svc.submit_topic(db, student, p.id, title="Changed")
    assert db.get(ProposedProject, p.id).title == "Smart campus"


def test_review_topic_requires_comment_unless_approve(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    svc.submit_topic(db, student, p.id, title="t", submit_to_advisor=True)

    with pytest.raises(ValidationError):
        svc.review_topic(db, advisor, p.id, decision=ReviewDecision.request_changes, comment="   ")
    assert status_of(db, p.id) == S.TOPIC_PENDING_ADVISOR.value


def test_review_topic_wrong_role(db, advisor, other_lecturer, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    svc.submit_topic(db, student, p.id, title="t", submit_to_advisor=True)

    with pytest.raises(ForbiddenError):
        svc.review_topic(db, other_lecturer, p.id, decision=ReviewDecision.approve)
    with pytest.raises(ForbiddenError):
        svc.review_topic(db, student, p.id, decision=ReviewDecision.approve)
    assert status_of(db, p.id) == S.TOPIC_PENDING_ADVISOR.value


def test_review_topic_before_submission_is_illegal(db, advisor):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)

    with pytest.raises(InvalidTransitionError):
        svc.review_topic(db, advisor, p.id, decision=ReviewDecision.approve)
    assert status_of(db, p.id) == S.TOPIC_SUBMISSION_PENDING.value


def test_non_member_student_cannot_submit_topic(db, advisor, other_student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    with pytest.raises(ForbiddenError):
        svc.submit_topic(db, other_student, p.id, title="x", submit_to_advisor=True)


def test_missing_proposal(db, student):
    svc = ProposalWorkflowService()
    with pytest.raises(NotFoundError):
        svc.submit_topic(db, student, uuid.uuid4(), title="x")


# ─────────────────────────────────────────────
# outline
# ─────────────────────────────────────────────

def test_outline_submission_moves_both_statuses(db, advisor, student):
    svc = ProposalWorkflowService()
    p, outline = to_outline_pending(db, svc, advisor, student)

    assert status_of(db, p.id) == S.OUTLINE_PENDING_ADVISOR.value
    assert outline.status == ProposalOutlineStatus.PENDING_REVIEW.value


def test_outline_submission_requires_all_sections(db, advisor, student):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)

    with pytest.raises(ValidationError) as exc:
        svc.submit_outline(db, student, p.id, introduction="Only intro", submit_for_review=True)
    assert "objectives" in exc.value.details["missing"]
    assert status_of(db, p.id) == S.TOPIC_APPROVED.value


def test_outline_draft_is_partial_and_merges(db, advisor, student):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)

    svc.submit_outline(db, student, p.id, introduction="Intro", objectives="Obj")
    assert status_of(db, p.id) == S.OUTLINE_PENDING_SUBMISSION.value

    outline = svc.submit_outline(
        db, student, p.id, methodology="Method", expected_results="Res", submit_for_review=True
    )
    assert outline.introduction == "Intro"
    assert outline.status == ProposalOutlineStatus.PENDING_REVIEW.value
    assert status_of(db, p.id) == S.OUTLINE_PENDING_ADVISOR.value


def test_outline_before_topic_approval_is_illegal(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    with pytest.raises(InvalidTransitionError):
        svc.submit_outline(db, student, p.id, submit_for_review=True, **OUTLINE)


@pytest.mark.parametrize(
    "decision, project_status, outline_status",
    [
        (ReviewDecision.approve, S.OUTLINE_APPROVED, ProposalOutlineStatus.APPROVED),
        (ReviewDecision.request_changes, S.OUTLINE_REQUESTED_CHANGES, ProposalOutlineStatus.DRAFT),
        (ReviewDecision.reject, S.OUTLINE_REJECTED, ProposalOutlineStatus.REJECTED),
    ],
)
def test_outline_review_cascades(db, advisor, student, decision, project_status, outline_status):
    svc = ProposalWorkflowService()
    p, outline = to_outline_pending(db, svc, advisor, student)

    svc.review_outline(db, advisor, outline.id, decision=decision, comment="noted")

    assert status_of(db, p.id) == project_status.value
    assert db.get(ProposedProject, p.id).outline.status == outline_status.value


def test_reject_outline_not_pending_review(db, advisor, student):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)
    outline = svc.submit_outline(db, student, p.id, **OUTLINE)

    with pytest.raises(InvalidTransitionError):
        svc.review_outline(db, advisor, outline.id, decision=ReviewDecision.reject, comment="no")
    assert status_of(db, p.id) == S.OUTLINE_PENDING_SUBMISSION.value
    assert outline.status == ProposalOutlineStatus.DRAFT.value


def test_outline_rejected_is_terminal(db, advisor, student):
    svc = ProposalWorkflowService()
    p, outline = to_outline_pending(db, svc, advisor, student)
    svc.review_outline(db, advisor, outline.id, decision=ReviewDecision.reject, comment="off scope")

    with pytest.raises(InvalidTransitionError):
        svc.submit_outline(db, student, p.id, submit_for_review=True, **OUTLINE)


def test_outline_review_requires_comment(db, advisor, student):
    svc = ProposalWorkflowService()
    p, outline = to_outline_pending(db, svc, advisor, student)

    with pytest.raises(ValidationError):
        svc.review_outline(db, advisor, outline.id, decision=ReviewDecision.reject)
    assert status_of(db, p.id) == S.OUTLINE_PENDING_ADVISOR.value


def test_outline_resubmit_after_changes(db, advisor, student):
    svc = ProposalWorkflowService()
    p, outline = to_outline_pending(db, svc, advisor, student)
    svc.review_outline(db, advisor, outline.id, decision=ReviewDecision.request_changes, comment="more detail")

    svc.submit_outline(db, student, p.id, methodology="Better method", submit_for_review=True)
    assert status_of(db, p.id) == S.OUTLINE_PENDING_ADVISOR.value


def test_locked_outline_is_immutable(db, advisor, student, dean):
    svc = ProposalWorkflowService()
    p, outline = to_outline_approved(db, svc, advisor, student)

    locked = svc.lock_outline(db, dean, outline.id)
    assert locked.status == ProposalOutlineStatus.LOCKED.value

    with pytest.raises(InvalidStateError):
        svc.submit_outline(db, student, p.id, introduction="rewrite")


def test_only_dean_locks_outline(db, advisor, student, head):
    svc = ProposalWorkflowService()
    _, outline = to_outline_approved(db, svc, advisor, student)
    with pytest.raises(ForbiddenError):
        svc.lock_outline(db, head, outline.id)


# ─────────────────────────────────────────────
# department head
# ─────────────────────────────────────────────

def test_head_request_changes_then_resubmit(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)

    svc.submit_to_head(db, student, p.id)
    assert status_of(db, p.id) == S.PENDING_HEAD.value

    svc.department_head_review(db, head, p.id, decision=ReviewDecision.request_changes, comment="budget?")
    assert status_of(db, p.id) == S.REQUESTED_CHANGES_HEAD.value

    svc.submit_to_head(db, advisor, p.id)
    assert status_of(db, p.id) == S.PENDING_HEAD.value


def test_head_review_requires_comment(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)
    with pytest.raises(ValidationError):
        svc.department_head_review(db, head, p.id, decision=ReviewDecision.reject, comment="")
    assert status_of(db, p.id) == S.OUTLINE_APPROVED.value


def test_head_of_other_faculty_is_forbidden(db, advisor, student, foreign_head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)
    with pytest.raises(ForbiddenError):
        svc.department_head_review(db, foreign_head, p.id, decision=ReviewDecision.reject, comment="x")


def test_head_cannot_review_before_outline_approval(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)
    with pytest.raises(InvalidTransitionError):
        svc.department_head_review(db, head, p.id, decision=ReviewDecision.reject, comment="x")


def test_final_approval_creates_project_once(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)

    svc.final_approval(db, head, p.id, comment="Go ahead")

    db.expire_all()
    fresh = db.get(ProposedProject, p.id)
    assert fresh.status == S.APPROVED_BY_HEAD.value
    assert fresh.approved_by_id == head.user_id
    assert fresh.approved_at is not None

    project = db.query(Project).filter(Project.proposed_project_id == p.id).one()
    assert project.status == ProjectStatus.WAITING_FOR_EVALUATION.value
    assert project.advisor_ids() == {"lect-1"}
    assert {m.user_id for m in project.members} == {"stu-1", "lect-1"}

    with pytest.raises(InvalidTransitionError):
        svc.final_approval(db, head, p.id)
    assert db.query(Project).count() == 1


def test_final_approval_requires_head(db, advisor, student, dean):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)
    with pytest.raises(ForbiddenError):
        svc.final_approval(db, advisor, p.id)
    with pytest.raises(ForbiddenError):
        svc.final_approval(db, dean, p.id)


def test_rejected_by_head_is_terminal(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)
    svc.department_head_review(db, head, p.id, decision=ReviewDecision.reject, comment="duplicate topic")

    with pytest.raises(InvalidTransitionError):
        svc.submit_to_head(db, student, p.id)
    with pytest.raises(InvalidTransitionError):
        svc.final_approval(db, head, p.id)


# ─────────────────────────────────────────────
# role enforcement
# ─────────────────────────────────────────────

def _outline_pending(db, svc, advisor, student):
    p, outline = to_outline_pending(db, svc, advisor, student)
    return p, {"outline_id": outline.id}


def _topic_approved(db, svc, advisor, student):
    return to_topic_approved(db, svc, advisor, student), {}


def _outline_approved(db, svc, advisor, student):
    p, _ = to_outline_approved(db, svc, advisor, student)
    return p, {}


def _pending_head(db, svc, advisor, student):
    p, _ = to_outline_approved(db, svc, advisor, student)
    svc.submit_to_head(db, student, p.id)
    return p, {}


ROLE_CASES = {
    "review_outline": (
        _outline_pending,
        lambda svc, db, who, p, ctx: svc.review_outline(
            db, who, ctx["outline_id"], decision=ReviewDecision.approve
        ),
    ),
    "submit_outline": (
        _topic_approved,
        lambda svc, db, who, p, ctx: svc.submit_outline(db, who, p.id, submit_for_review=True, **OUTLINE),
    ),
    "submit_to_head": (
        _outline_approved,
        lambda svc, db, who, p, ctx: svc.submit_to_head(db, who, p.id),
    ),
    "department_head_review": (
        _pending_head,
        lambda svc, db, who, p, ctx: svc.department_head_review(
            db, who, p.id, decision=ReviewDecision.reject, comment="no"
        ),
    ),
}


@pytest.mark.parametrize(
    "operation,actor",
    [
        ("review_outline", "other_lecturer"),
        ("review_outline", "student"),
        ("submit_outline", "other_student"),
        ("submit_outline", "advisor"),
        ("submit_to_head", "other_lecturer"),
        ("submit_to_head", "other_student"),
        ("department_head_review", "advisor"),
        ("department_head_review", "dean"),
    ],
)
def test_wrong_role_is_forbidden_and_status_unchanged(request, db, advisor, student, operation, actor):
    svc = ProposalWorkflowService()
    setup, call = ROLE_CASES[operation]
    p, ctx = setup(db, svc, advisor, student)
    before = status_of(db, p.id)

    with pytest.raises(ForbiddenError):
        call(svc, db, request.getfixturevalue(actor), p, ctx)
    assert status_of(db, p.id) == before


# ─────────────────────────────────────────────
# concurrency / audit
# ─────────────────────────────────────────────

def test_stale_expected_version_is_conflict(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    read_version = p.version

    svc.submit_topic(db, student, p.id, title="first", expected_version=read_version)

    with pytest.raises(ConflictError):
        svc.submit_topic(db, student, p.id, title="second", expected_version=read_version)
    assert db.get(ProposedProject, p.id).title == "first"


def test_role_is_checked_before_version(db, advisor, other_lecturer, student, other_student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    stale = p.version
    svc.submit_topic(db, student, p.id, title="first", submit_to_advisor=True)

    with pytest.raises(ForbiddenError):
        svc.submit_topic(db, other_student, p.id, title="second", expected_version=stale)
    with pytest.raises(ForbiddenError):
        svc.review_topic(db, other_lecturer, p.id, decision=ReviewDecision.approve, expected_version=stale)
    assert status_of(db, p.id) == S.TOPIC_PENDING_ADVISOR.value


def test_transitions_write_audit_rows(db, advisor, student):
    svc = ProposalWorkflowService()
    p = to_topic_approved(db, svc, advisor, student)

    actions = [
        row.action
        for row in db.query(AuditLog)
        .filter(AuditLog.entity_id == str(p.id))
        .order_by(AuditLog.created_at, AuditLog.id)
    ]
    assert "PROPOSAL_CREATED" in actions
    assert "TOPIC_SUBMITTED" in actions
    assert "TOPIC_REVIEWED" in actions


# ─────────────────────────────────────────────
# comments / members
# ─────────────────────────────────────────────

def test_participants_comment(db, advisor, student, other_student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)

    c = svc.add_comment(db, student, p.id, content="Can we use open data?")
    assert c.author_role == "STUDENT"

    with pytest.raises(ForbiddenError):
        svc.add_comment(db, other_student, p.id, content="hi")
    with pytest.raises(ValidationError):
        svc.add_comment(db, student, p.id, content="  ")


def test_member_add_remove_readd(db, advisor):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)

    svc.manage_member(db, advisor, p.id, action=MemberAction.add, student_id="stu-2")
    with pytest.raises(ValidationError):
        svc.manage_member(db, advisor, p.id, action=MemberAction.add, student_id="stu-2")

    removed = svc.manage_member(db, advisor, p.id, action=MemberAction.remove, student_id="stu-2")
    assert removed.status == MemberStatus.REMOVED.value
    with pytest.raises(NotFoundError):
        svc.manage_member(db, advisor, p.id, action=MemberAction.remove, student_id="stu-2")

    again = svc.manage_member(db, advisor, p.id, action=MemberAction.add, student_id="stu-2")
    assert again.id == removed.id
    assert again.status == MemberStatus.ACTIVE.value


def test_member_management_forbidden_for_students(db, advisor, student):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    with pytest.raises(ForbiddenError):
        svc.manage_member(db, student, p.id, action=MemberAction.add, student_id="stu-3")


# ─────────────────────────────────────────────
# bulk
# ─────────────────────────────────────────────

def test_bulk_topic_approval(db, advisor):
    svc = ProposalWorkflowService()
    ids = []
    for sid in ("stu-1", "stu-2"):
        p = create_proposal(db, svc, advisor, students=(sid,))
        author = Principal(user_id=sid, roles=frozenset({UserRole.STUDENT}))
        svc.submit_topic(db, author, p.id, title=f"topic {sid}", submit_to_advisor=True)
        ids.append(p.id)

    result = svc.bulk_review(db, advisor, project_ids=ids, target_status=S.TOPIC_APPROVED)

    assert result["processed"] == 2
    assert result["total"] == 2
    assert all(r["newStatus"] == S.TOPIC_APPROVED.value for r in result["results"])


def test_bulk_is_all_or_nothing(db, advisor, student):
    svc = ProposalWorkflowService()
    ready = create_proposal(db, svc, advisor)
    svc.submit_topic(db, student, ready.id, title="ready", submit_to_advisor=True)
    not_ready = create_proposal(db, svc, advisor, students=("stu-2",))

    with pytest.raises(ValidationError) as exc:
        svc.bulk_review(db, advisor, project_ids=[ready.id, not_ready.id], target_status=S.TOPIC_APPROVED)

    failures = exc.value.details["failures"]
    assert [f["id"] for f in failures] == [str(not_ready.id)]
    assert status_of(db, ready.id) == S.TOPIC_PENDING_ADVISOR.value


def test_bulk_final_approval_creates_projects(db, advisor, student, head):
    svc = ProposalWorkflowService()
    p, _ = to_outline_approved(db, svc, advisor, student)

    result = svc.bulk_review(db, head, project_ids=[p.id], target_status=S.APPROVED_BY_HEAD)

    assert result["results"][0]["oldStatus"] == S.OUTLINE_APPROVED.value
    assert db.query(Project).filter(Project.proposed_project_id == p.id).count() == 1


def test_bulk_rejects_non_decision_status(db, advisor):
    svc = ProposalWorkflowService()
    p = create_proposal(db, svc, advisor)
    with pytest.raises(ValidationError):
        svc.bulk_review(db, advisor, project_ids=[p.id], target_status=S.PENDING_HEAD)
