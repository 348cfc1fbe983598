# capstone/models/project.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capstone.db.base import Base
from capstone.models.enums import MemberRole, MemberStatus, ProjectStatus


class Project(Base):
    """
    Official capstone project, created when the department head gives final
    approval to a proposal. Defense evaluation hangs off this row.
    """
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    proposed_project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposed_projects.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.WAITING_FOR_EVALUATION.value
    )

    approved_by_id: Mapped[str] = mapped_column(String(128), nullable=False)
    faculty_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    members: Mapped[List["ProjectMember"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
    )

    committee = relationship(
        "DefenseCommittee",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
    )

    evaluation = relationship(
        "ProjectEvaluation",
        back_populates="project",
        uselist=False,
    )

    __table_args__ = (Index("ix_projects_status", "status"),)

    def advisor_ids(self) -> set[str]:
        return {
            m.user_id
            for m in self.members
            if m.role == MemberRole.ADVISOR.value and m.status == MemberStatus.ACTIVE.value
        }

    @property
    def committee_members(self) -> list:
        return list(self.committee.members) if self.committee is not None else []


class ProjectMember(Base):
    __tablename__ = "project_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MemberStatus.ACTIVE.value)

    project: Mapped[Project] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member_project_user"),
    )
