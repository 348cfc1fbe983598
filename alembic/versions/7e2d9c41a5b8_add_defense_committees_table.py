"""add defense committees table

Revision ID: 7e2d9c41a5b8
Revises: 3c1f7a2b9d04
Create Date: 2026-10-18 15:02:17.730541

Committee seats move from projects to a scheduled defense committee.
Projects that already had seats get a PREPARING committee holding them.
"""
import uuid
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7e2d9c41a5b8'
down_revision: Union[str, Sequence[str], None] = '3c1f7a2b9d04'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    committees = op.create_table(
        "defense_committees",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("defense_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'PREPARING'")),
        sa.Column("created_by_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    old_members = sa.table(
        "defense_committee_members",
        sa.column("id", sa.Uuid()),
        sa.column("project_id", sa.Uuid()),
        sa.column("faculty_member_id", sa.String()),
        sa.column("role", sa.String()),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )
    seated = op.get_bind().execute(sa.select(old_members)).fetchall()

    committee_for = {}
    for row in seated:
        if row.project_id not in committee_for:
            committee_for[row.project_id] = uuid.uuid4()
    if committee_for:
        op.bulk_insert(
            committees,
            [
                {
                    "id": cid,
                    "project_id": pid,
                    "name": "Defense committee",
                    "status": "PREPARING",
                    "created_by_id": "migration",
                }
                for pid, cid in committee_for.items()
            ],
        )

    op.drop_table("defense_committee_members")
    members = op.create_table(
        "defense_committee_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "committee_id",
            sa.Uuid(),
            sa.ForeignKey("defense_committees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("faculty_member_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("committee_id", "faculty_member_id", name="uq_committee_member"),
    )
    if seated:
        op.bulk_insert(
            members,
            [
                {
                    "id": row.id,
                    "committee_id": committee_for[row.project_id],
                    "faculty_member_id": row.faculty_member_id,
                    "role": row.role,
                    "created_at": row.created_at,
                }
                for row in seated
            ],
        )


def downgrade() -> None:
    op.drop_table("defense_committee_members")
    op.create_table(
        "defense_committee_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("faculty_member_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("project_id", "faculty_member_id", name="uq_committee_project_member"),
    )
    op.drop_table("defense_committees")
