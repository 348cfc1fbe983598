# capstone/models/proposed_project.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capstone.db.base import Base
from capstone.models.enums import (
    MemberRole,
    MemberStatus,
    ProposedProjectStatus,
    STUDENT_MEMBER_ROLES,
)


class ProposedProject(Base):
    """
    A student's capstone proposal moving through topic -> outline -> head review.
    `status` changes only through the workflow service; `version` is the
    optimistic-concurrency counter maintained by the mapper.
    """
    __tablename__ = "proposed_projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=ProposedProjectStatus.TOPIC_SUBMISSION_PENDING.value,
    )

    proposal_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    topic_lock_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_by_id: Mapped[str] = mapped_column(String(128), nullable=False)
    faculty_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    allocation_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, unique=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    members: Mapped[List["ProposedProjectMember"]] = relationship(
        back_populates="proposed_project",
        cascade="all, delete-orphan",
        order_by="ProposedProjectMember.created_at",
    )

    comments: Mapped[List["ProposedProjectComment"]] = relationship(
        back_populates="proposed_project",
        cascade="all, delete-orphan",
        order_by="ProposedProjectComment.created_at",
    )

    # at most one outline per proposal
    outline = relationship(
        "ProposalOutline",
        back_populates="proposed_project",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (Index("ix_proposed_projects_status", "status"),)

    @property
    def status_enum(self) -> ProposedProjectStatus:
        return ProposedProjectStatus(self.status)

    def active_members(self) -> List["ProposedProjectMember"]:
        return [m for m in self.members if m.status == MemberStatus.ACTIVE.value]

    def active_advisor_ids(self) -> set[str]:
        return {m.user_id for m in self.active_members() if m.role == MemberRole.ADVISOR.value}

    def active_student_ids(self) -> set[str]:
        student_roles = {r.value for r in STUDENT_MEMBER_ROLES}
        return {m.user_id for m in self.active_members() if m.role in student_roles}


class ProposedProjectMember(Base):
    """
    Student(s) and advisor attached to a proposal. Never hard-deleted:
    removal flips status to REMOVED and re-adding reactivates the row.
    """
    __tablename__ = "proposed_project_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    proposed_project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposed_projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=MemberRole.STUDENT.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MemberStatus.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    proposed_project: Mapped[ProposedProject] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("proposed_project_id", "user_id", name="uq_proposed_member_project_user"),
        Index("ix_proposed_member_user", "user_id"),
    )


class ProposedProjectComment(Base):
    """
    Append-only comment thread; review decisions store their comment here too.
    """
    __tablename__ = "proposed_project_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    proposed_project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposed_projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    author_role: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    proposed_project: Mapped[ProposedProject] = relationship(back_populates="comments")

    __table_args__ = (Index("ix_proposed_comment_project", "proposed_project_id", "created_at"),)
