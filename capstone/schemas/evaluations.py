from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from capstone.models.enums import EvaluatorRole


class EvaluationCreateRequest(BaseModel):
    projectId: str = Field(..., min_length=1)
    advisorWeight: Optional[float] = Field(default=None, ge=0, le=1)
    committeeWeight: Optional[float] = Field(default=None, ge=0, le=1)


class EvaluationUpdateRequest(BaseModel):
    advisorWeight: Optional[float] = Field(default=None, ge=0, le=1)
    committeeWeight: Optional[float] = Field(default=None, ge=0, le=1)


class ScoreSubmitRequest(BaseModel):
    """
    Range is checked by the service against the configured bounds.
    """
    role: EvaluatorRole
    score: float
    comment: Optional[str] = None
    evaluatorId: Optional[str] = None


class FinalizeRequest(BaseModel):
    advisorWeight: float = Field(..., ge=0, le=1)
    committeeWeight: float = Field(..., ge=0, le=1)


class ScoreOut(BaseModel):
    id: str
    evaluatorId: str
    role: str
    score: float
    comment: Optional[str] = None


class EvaluationOut(BaseModel):
    id: str
    projectId: str
    status: str
    advisorWeight: Optional[float] = None
    committeeWeight: Optional[float] = None
    finalScore: Optional[float] = None
    advisorAverage: Optional[float] = None
    committeeAverage: Optional[float] = None
    projectedScore: Optional[float] = None
    scores: List[ScoreOut] = []
