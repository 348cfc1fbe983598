# capstone/api/v1/outlines.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from capstone.api.v1._serializers import outline_to_schema
from capstone.core.auth_deps import get_current_principal
from capstone.db.session import get_db
from capstone.policies.rbac import Principal
from capstone.schemas.proposals import OutlineOut, ReviewRequest
from capstone.services.proposal_workflow_service import ProposalWorkflowService

router = APIRouter(prefix="/outlines", tags=["outlines"])

svc = ProposalWorkflowService()


@router.post("/{outline_id}/review", response_model=OutlineOut)
async def review_outline(
    outline_id: uuid.UUID,
    payload: ReviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    outline = svc.review_outline(
        db,
        principal,
        outline_id,
        decision=payload.decision,
        comment=payload.comment,
        expected_version=payload.expectedVersion,
    )
    return outline_to_schema(outline)


@router.post("/{outline_id}/lock", response_model=OutlineOut)
async def lock_outline(
    outline_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return outline_to_schema(svc.lock_outline(db, principal, outline_id))
