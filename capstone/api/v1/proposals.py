# capstone/api/v1/proposals.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from capstone.api.v1._serializers import (
    outline_to_schema,
    parse_uuids,
    proposal_to_schema,
)
from capstone.core.auth_deps import get_current_principal
from capstone.db.session import get_db
from capstone.policies.rbac import Principal
from capstone.schemas.proposals import (
    BulkReviewRequest,
    BulkReviewResponse,
    CommentCreateRequest,
    CommentOut,
    FinalApprovalRequest,
    MemberManageRequest,
    MemberOut,
    OutlineOut,
    OutlineSubmitRequest,
    ProposalCreateRequest,
    ProposalOut,
    ReviewRequest,
    TopicSubmitRequest,
    VersionedRequest,
)
from capstone.services.proposal_workflow_service import ProposalWorkflowService

router = APIRouter(prefix="/proposals", tags=["proposals"])

svc = ProposalWorkflowService()


# ─────────────────────────────────────────────────────────────
# CREATE / READ
# ─────────────────────────────────────────────────────────────

@router.post("", response_model=ProposalOut, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    payload: ProposalCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.create_proposal(
        db,
        principal,
        title=payload.title,
        description=payload.description,
        student_ids=payload.studentIds,
        advisor_id=payload.advisorId,
        allocation_id=payload.allocationId,
        faculty_id=payload.facultyId,
        proposal_deadline=payload.proposalDeadline,
        topic_lock_date=payload.topicLockDate,
    )
    return proposal_to_schema(proposal)


# declared before /{project_id} routes so "bulk-review" is never parsed as an id
@router.post("/bulk-review", response_model=BulkReviewResponse)
async def bulk_review(
    payload: BulkReviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return svc.bulk_review(
        db,
        principal,
        project_ids=parse_uuids(payload.projectIds, "projectIds"),
        target_status=payload.status,
        comment=payload.comment,
    )


@router.get("/{project_id}", response_model=ProposalOut)
async def get_proposal(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return proposal_to_schema(svc.get_proposal(db, principal, project_id))


# ─────────────────────────────────────────────────────────────
# TOPIC
# ─────────────────────────────────────────────────────────────

@router.put("/{project_id}/topic", response_model=ProposalOut)
async def submit_topic(
    project_id: uuid.UUID,
    payload: TopicSubmitRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.submit_topic(
        db,
        principal,
        project_id,
        title=payload.title,
        description=payload.description,
        submit_to_advisor=payload.submitToAdvisor,
        expected_version=payload.expectedVersion,
    )
    return proposal_to_schema(proposal)


@router.post("/{project_id}/topic/review", response_model=ProposalOut)
async def review_topic(
    project_id: uuid.UUID,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.review_topic(
        db,
        principal,
        project_id,
        decision=payload.decision,
        comment=payload.comment,
        expected_version=payload.expectedVersion,
    )
    return proposal_to_schema(proposal)


# ─────────────────────────────────────────────────────────────
# OUTLINE
# ─────────────────────────────────────────────────────────────

@router.put("/{project_id}/outline", response_model=OutlineOut)
async def submit_outline(
    project_id: uuid.UUID,
    payload: OutlineSubmitRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    outline = svc.submit_outline(
        db,
        principal,
        project_id,
        introduction=payload.introduction,
        objectives=payload.objectives,
        methodology=payload.methodology,
        expected_results=payload.expectedResults,
        file_id=payload.fileId,
        submit_for_review=payload.submitForReview,
        expected_version=payload.expectedVersion,
    )
    return outline_to_schema(outline)


# ─────────────────────────────────────────────────────────────
# DEPARTMENT HEAD
# ─────────────────────────────────────────────────────────────

@router.post("/{project_id}/submit-to-head", response_model=ProposalOut)
async def submit_to_head(
    project_id: uuid.UUID,
    payload: VersionedRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.submit_to_head(
        db, principal, project_id, expected_version=payload.expectedVersion
    )
    return proposal_to_schema(proposal)


@router.post("/{project_id}/head-review", response_model=ProposalOut)
async def department_head_review(
    project_id: uuid.UUID,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.department_head_review(
        db,
        principal,
        project_id,
        decision=payload.decision,
        comment=payload.comment,
        expected_version=payload.expectedVersion,
    )
    return proposal_to_schema(proposal)


@router.post("/{project_id}/final-approval", response_model=ProposalOut)
async def final_approval(
    project_id: uuid.UUID,
    payload: FinalApprovalRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    proposal = svc.final_approval(
        db,
        principal,
        project_id,
        comment=payload.comment,
        expected_version=payload.expectedVersion,
    )
    return proposal_to_schema(proposal)


# ─────────────────────────────────────────────────────────────
# COMMENTS / MEMBERS
# ─────────────────────────────────────────────────────────────

@router.post("/{project_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    project_id: uuid.UUID,
    payload: CommentCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    c = svc.add_comment(db, principal, project_id, content=payload.content)
    return CommentOut(
        id=str(c.id),
        authorId=c.author_id,
        authorRole=c.author_role,
        content=c.content,
        createdAt=c.created_at.isoformat() if c.created_at else None,
    )


@router.post("/{project_id}/members", response_model=MemberOut)
async def manage_member(
    project_id: uuid.UUID,
    payload: MemberManageRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    m = svc.manage_member(
        db,
        principal,
        project_id,
        action=payload.action,
        student_id=payload.studentId,
        role=payload.role,
    )
    return MemberOut(userId=m.user_id, role=m.role, status=m.status)
