from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from capstone.models.enums import CommitteeRole, DefenseCommitteeStatus


class CommitteeCreateRequest(BaseModel):
    projectId: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    defenseDate: Optional[datetime] = None
    location: Optional[str] = None


class CommitteeUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    defenseDate: Optional[datetime] = None
    location: Optional[str] = None
    status: Optional[DefenseCommitteeStatus] = None


class CommitteeMemberAssignRequest(BaseModel):
    facultyMemberId: str = Field(..., min_length=1)
    role: CommitteeRole


class CommitteeMemberOut(BaseModel):
    id: str
    committeeId: str
    facultyMemberId: str
    role: str


class CommitteeOut(BaseModel):
    id: str
    projectId: str
    name: str
    description: Optional[str] = None
    defenseDate: Optional[str] = None
    location: Optional[str] = None
    status: str
    createdById: str
    members: List[CommitteeMemberOut] = []
