# capstone/api/v1/committees.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from capstone.api.v1._serializers import committee_member_to_schema, committee_to_schema, parse_uuid
from capstone.core.auth_deps import get_current_principal
from capstone.db.session import get_db
from capstone.policies.rbac import Principal
from capstone.schemas.committees import (
    CommitteeCreateRequest,
    CommitteeMemberAssignRequest,
    CommitteeMemberOut,
    CommitteeOut,
    CommitteeUpdateRequest,
)
from capstone.services.committee_service import CommitteeService

router = APIRouter(prefix="/committees", tags=["committees"])

svc = CommitteeService()


@router.post("", response_model=CommitteeOut, status_code=status.HTTP_201_CREATED)
async def create_committee(
    payload: CommitteeCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    committee = svc.create_committee(
        db,
        principal,
        parse_uuid(payload.projectId, "projectId"),
        name=payload.name,
        description=payload.description,
        defense_date=payload.defenseDate,
        location=payload.location,
    )
    return committee_to_schema(committee)


@router.patch("/{project_id}", response_model=CommitteeOut)
async def update_committee(
    project_id: uuid.UUID,
    payload: CommitteeUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    committee = svc.update_committee(
        db,
        principal,
        project_id,
        name=payload.name,
        description=payload.description,
        defense_date=payload.defenseDate,
        location=payload.location,
        status=payload.status,
    )
    return committee_to_schema(committee)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_committee(
    project_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc.delete_committee(db, principal, project_id)


@router.post(
    "/{project_id}/members",
    response_model=CommitteeMemberOut,
    status_code=status.HTTP_201_CREATED,
)
async def assign_committee_member(
    project_id: uuid.UUID,
    payload: CommitteeMemberAssignRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    member = svc.assign_committee_member(
        db,
        principal,
        project_id,
        faculty_member_id=payload.facultyMemberId,
        role=payload.role,
    )
    return committee_member_to_schema(member)


@router.delete("/{project_id}/members/{faculty_member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_committee_member(
    project_id: uuid.UUID,
    faculty_member_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc.remove_committee_member(db, principal, project_id, faculty_member_id=faculty_member_id)
