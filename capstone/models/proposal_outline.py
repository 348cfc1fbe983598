# capstone/models/proposal_outline.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from capstone.db.base import Base
from capstone.models.enums import ProposalOutlineStatus


class ProposalOutline(Base):
    __tablename__ = "proposal_outlines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # unique: exactly one owning proposal, at most one outline per proposal
    proposed_project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposed_projects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    introduction: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    objectives: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    methodology: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expected_results: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # opaque reference into the file-storage service
    file_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ProposalOutlineStatus.DRAFT.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    proposed_project = relationship("ProposedProject", back_populates="outline")
