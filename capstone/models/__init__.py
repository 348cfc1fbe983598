# Importing every model registers it on Base.metadata (create_all / alembic autogenerate).
from capstone.models.audit_log import AuditLog  # noqa: F401
from capstone.models.defense_committee import DefenseCommittee, DefenseCommitteeMember  # noqa: F401
from capstone.models.evaluation import EvaluationScore, ProjectEvaluation  # noqa: F401
from capstone.models.project import Project, ProjectMember  # noqa: F401
from capstone.models.proposal_outline import ProposalOutline  # noqa: F401
from capstone.models.proposed_project import (  # noqa: F401
    ProposedProject,
    ProposedProjectComment,
    ProposedProjectMember,
)
