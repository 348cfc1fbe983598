# capstone/models/defense_committee.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capstone.db.base import Base
from capstone.models.enums import DefenseCommitteeStatus


class DefenseCommittee(Base):
    """
    Defense session scheduled for one official Project.

    PREPARING while members are being seated, ONGOING during the defense,
    FINISHED once scores are locked. CANCELLED committees accept no changes.
    """
    __tablename__ = "defense_committees"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    defense_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DefenseCommitteeStatus.PREPARING.value
    )

    created_by_id: Mapped[str] = mapped_column(String(128), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    project = relationship("Project", back_populates="committee")

    members: Mapped[List["DefenseCommitteeMember"]] = relationship(
        back_populates="committee",
        cascade="all, delete-orphan",
    )

    @property
    def is_closed(self) -> bool:
        return self.status in {DefenseCommitteeStatus.FINISHED.value, DefenseCommitteeStatus.CANCELLED.value}


class DefenseCommitteeMember(Base):
    """
    Faculty member sitting on a defense committee.
    At most one CHAIRMAN and one SECRETARY per committee (enforced by the service).
    """
    __tablename__ = "defense_committee_members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    committee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("defense_committees.id", ondelete="CASCADE"),
        nullable=False,
    )

    faculty_member_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    committee: Mapped[DefenseCommittee] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("committee_id", "faculty_member_id", name="uq_committee_member"),
    )
