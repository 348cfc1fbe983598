# capstone/models/evaluation.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Double,
    Integer,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capstone.db.base import Base
from capstone.models.enums import EvaluationStatus


class ProjectEvaluation(Base):
    """
    Defense evaluation of one project.
    - final_score stays NULL until finalize
    - once EVALUATED, scores and weights are frozen
    """
    __tablename__ = "project_evaluations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=EvaluationStatus.PENDING.value
    )

    advisor_weight: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    committee_weight: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    final_score: Mapped[Optional[float]] = mapped_column(Double, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    project = relationship("Project", back_populates="evaluation")

    scores: Mapped[List["EvaluationScore"]] = relationship(
        back_populates="evaluation",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class EvaluationScore(Base):
    """
    One evaluator's score for an evaluation. (evaluation_id, evaluator_id) is
    unique: re-submitting updates the row in place.
    """
    __tablename__ = "evaluation_scores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    evaluation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("project_evaluations.id", ondelete="CASCADE"),
        nullable=False,
    )

    evaluator_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    score: Mapped[float] = mapped_column(Double, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    evaluation: Mapped[ProjectEvaluation] = relationship(back_populates="scores")

    __table_args__ = (
        UniqueConstraint("evaluation_id", "evaluator_id", name="uq_evaluation_score_evaluator"),
        Index("ix_evaluation_scores_role", "evaluation_id", "role"),
    )
