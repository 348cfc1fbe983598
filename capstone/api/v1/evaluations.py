# capstone/api/v1/evaluations.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from capstone.api.v1._serializers import evaluation_to_schema, parse_uuid
from capstone.core.auth_deps import get_current_principal
from capstone.db.session import get_db
from capstone.policies.rbac import Principal
from capstone.schemas.evaluations import (
    EvaluationCreateRequest,
    EvaluationOut,
    EvaluationUpdateRequest,
    FinalizeRequest,
    ScoreOut,
    ScoreSubmitRequest,
)
from capstone.services.evaluation_service import EvaluationService

router = APIRouter(prefix="/evaluations", tags=["evaluations"])

svc = EvaluationService()


@router.post("", response_model=EvaluationOut, status_code=status.HTTP_201_CREATED)
async def create_evaluation(
    payload: EvaluationCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    evaluation = svc.create_evaluation(
        db,
        principal,
        parse_uuid(payload.projectId, "projectId"),
        advisor_weight=payload.advisorWeight,
        committee_weight=payload.committeeWeight,
    )
    return evaluation_to_schema(svc.evaluation_summary(db, principal, evaluation.id))


@router.get("/{evaluation_id}", response_model=EvaluationOut)
async def get_evaluation(
    evaluation_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return evaluation_to_schema(svc.evaluation_summary(db, principal, evaluation_id))


@router.patch("/{evaluation_id}", response_model=EvaluationOut)
async def update_evaluation(
    evaluation_id: uuid.UUID,
    payload: EvaluationUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc.update_weights(
        db,
        principal,
        evaluation_id,
        advisor_weight=payload.advisorWeight,
        committee_weight=payload.committeeWeight,
    )
    return evaluation_to_schema(svc.evaluation_summary(db, principal, evaluation_id))


@router.put("/{evaluation_id}/scores", response_model=ScoreOut)
async def submit_score(
    evaluation_id: uuid.UUID,
    payload: ScoreSubmitRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    row = svc.submit_score(
        db,
        principal,
        evaluation_id,
        role=payload.role,
        score=payload.score,
        comment=payload.comment,
        evaluator_id=payload.evaluatorId,
    )
    return ScoreOut(
        id=str(row.id),
        evaluatorId=row.evaluator_id,
        role=row.role,
        score=row.score,
        comment=row.comment,
    )


@router.post("/{evaluation_id}/finalize", response_model=EvaluationOut)
async def finalize(
    evaluation_id: uuid.UUID,
    payload: FinalizeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    summary = svc.finalize(
        db,
        principal,
        evaluation_id,
        advisor_weight=payload.advisorWeight,
        committee_weight=payload.committeeWeight,
    )
    return evaluation_to_schema(summary)
