"""initial workflow schema

Revision ID: 3c1f7a2b9d04
Revises:
Create Date: 2026-10-18 10:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f7a2b9d04'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated=True):
    cols = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if updated:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return cols


def upgrade():
    op.create_table(
        "proposed_projects",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("proposal_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("topic_lock_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by_id", sa.String(length=128), nullable=True),
        sa.Column("created_by_id", sa.String(length=128), nullable=False),
        sa.Column("faculty_id", sa.String(length=128), nullable=True),
        sa.Column("allocation_id", sa.String(length=128), nullable=True, unique=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_proposed_projects_status", "proposed_projects", ["status"])

    op.create_table(
        "proposed_project_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "proposed_project_id",
            sa.Uuid(),
            sa.ForeignKey("proposed_projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("proposed_project_id", "user_id", name="uq_proposed_member_project_user"),
    )
    op.create_index("ix_proposed_member_user", "proposed_project_members", ["user_id"])

    op.create_table(
        "proposed_project_comments",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "proposed_project_id",
            sa.Uuid(),
            sa.ForeignKey("proposed_projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(length=128), nullable=False),
        sa.Column("author_role", sa.String(length=32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_proposed_comment_project", "proposed_project_comments", ["proposed_project_id", "created_at"]
    )

    op.create_table(
        "proposal_outlines",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "proposed_project_id",
            sa.Uuid(),
            sa.ForeignKey("proposed_projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("introduction", sa.Text(), nullable=True),
        sa.Column("objectives", sa.Text(), nullable=True),
        sa.Column("methodology", sa.Text(), nullable=True),
        sa.Column("expected_results", sa.Text(), nullable=True),
        sa.Column("file_id", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "proposed_project_id",
            sa.Uuid(),
            sa.ForeignKey("proposed_projects.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("approved_by_id", sa.String(length=128), nullable=False),
        sa.Column("faculty_id", sa.String(length=128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "project_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_member_project_user"),
    )

    op.create_table(
        "defense_committee_members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("faculty_member_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("project_id", "faculty_member_id", name="uq_committee_project_member"),
    )

    op.create_table(
        "project_evaluations",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("advisor_weight", sa.Double(), nullable=True),
        sa.Column("committee_weight", sa.Double(), nullable=True),
        sa.Column("final_score", sa.Double(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "evaluation_scores",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "evaluation_id",
            sa.Uuid(),
            sa.ForeignKey("project_evaluations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("evaluator_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("score", sa.Double(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("evaluation_id", "evaluator_id", name="uq_evaluation_score_evaluator"),
    )
    op.create_index("ix_evaluation_scores_role", "evaluation_scores", ["evaluation_id", "role"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        sa.Column("details_json", sa.JSON(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_audit_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("ix_audit_action", "audit_logs", ["action"])
    op.create_index("ix_audit_created_at", "audit_logs", ["created_at"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("evaluation_scores")
    op.drop_table("project_evaluations")
    op.drop_table("defense_committee_members")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("proposal_outlines")
    op.drop_table("proposed_project_comments")
    op.drop_table("proposed_project_members")
    op.drop_table("proposed_projects")
