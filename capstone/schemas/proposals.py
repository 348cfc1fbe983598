from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from capstone.models.enums import (
    MemberAction,
    MemberRole,
    ProposedProjectStatus,
    ReviewDecision,
)


class VersionedRequest(BaseModel):
    # optimistic concurrency: the version the client last read
    expectedVersion: Optional[int] = Field(default=None, ge=1)


class ProposalCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    studentIds: List[str] = Field(..., min_length=1)
    advisorId: Optional[str] = None
    allocationId: Optional[str] = None
    facultyId: Optional[str] = None
    proposalDeadline: Optional[datetime] = None
    topicLockDate: Optional[datetime] = None


class TopicSubmitRequest(VersionedRequest):
    title: str = Field(..., min_length=1, max_length=512)
    description: Optional[str] = None
    submitToAdvisor: bool = False


class ReviewRequest(VersionedRequest):
    decision: ReviewDecision
    comment: Optional[str] = None


class OutlineSubmitRequest(VersionedRequest):
    """
    Omitted sections keep their stored value on a draft save.
    """
    introduction: Optional[str] = None
    objectives: Optional[str] = None
    methodology: Optional[str] = None
    expectedResults: Optional[str] = None
    fileId: Optional[str] = None
    submitForReview: bool = False


class FinalApprovalRequest(VersionedRequest):
    comment: Optional[str] = None


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)


class MemberManageRequest(BaseModel):
    action: MemberAction
    studentId: str = Field(..., min_length=1)
    role: Optional[MemberRole] = None


class BulkReviewRequest(BaseModel):
    projectIds: List[str] = Field(..., min_length=1)
    status: ProposedProjectStatus
    comment: Optional[str] = None


# ─────────── RESPONSES ───────────

class MemberOut(BaseModel):
    userId: str
    role: str
    status: str


class CommentOut(BaseModel):
    id: str
    authorId: str
    authorRole: str
    content: str
    createdAt: Optional[str] = None


class OutlineOut(BaseModel):
    id: str
    proposedProjectId: str
    introduction: Optional[str] = None
    objectives: Optional[str] = None
    methodology: Optional[str] = None
    expectedResults: Optional[str] = None
    fileId: Optional[str] = None
    status: str


class ProposalOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    version: int
    createdById: str
    facultyId: Optional[str] = None
    allocationId: Optional[str] = None
    approvedAt: Optional[str] = None
    approvedById: Optional[str] = None
    members: List[MemberOut] = []
    outline: Optional[OutlineOut] = None
    comments: List[CommentOut] = []


class BulkReviewResult(BaseModel):
    id: str
    title: str
    oldStatus: str
    newStatus: str
    success: bool


class BulkReviewResponse(BaseModel):
    processed: int
    total: int
    results: List[BulkReviewResult]


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = {}
