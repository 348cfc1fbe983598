# capstone/api/v1/_serializers.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from capstone.core.errors import ValidationError
from capstone.models.defense_committee import DefenseCommittee, DefenseCommitteeMember
from capstone.models.proposal_outline import ProposalOutline
from capstone.models.proposed_project import ProposedProject
from capstone.schemas.committees import CommitteeMemberOut, CommitteeOut
from capstone.schemas.evaluations import EvaluationOut, ScoreOut
from capstone.schemas.proposals import CommentOut, MemberOut, OutlineOut, ProposalOut
from capstone.services.evaluation_service import EvaluationSummary


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def parse_uuid(value: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be a UUID.", details={field: value})


def parse_uuids(values: Iterable[str], field: str) -> List[uuid.UUID]:
    return [parse_uuid(v, field) for v in values]


def outline_to_schema(o: ProposalOutline) -> OutlineOut:
    return OutlineOut(
        id=str(o.id),
        proposedProjectId=str(o.proposed_project_id),
        introduction=o.introduction,
        objectives=o.objectives,
        methodology=o.methodology,
        expectedResults=o.expected_results,
        fileId=o.file_id,
        status=o.status,
    )


def proposal_to_schema(p: ProposedProject) -> ProposalOut:
    return ProposalOut(
        id=str(p.id),
        title=p.title,
        description=p.description,
        status=p.status,
        version=p.version,
        createdById=p.created_by_id,
        facultyId=p.faculty_id,
        allocationId=p.allocation_id,
        approvedAt=_iso(p.approved_at),
        approvedById=p.approved_by_id,
        members=[MemberOut(userId=m.user_id, role=m.role, status=m.status) for m in p.members],
        outline=outline_to_schema(p.outline) if p.outline else None,
        comments=[
            CommentOut(
                id=str(c.id),
                authorId=c.author_id,
                authorRole=c.author_role,
                content=c.content,
                createdAt=_iso(c.created_at),
            )
            for c in p.comments
        ],
    )


def evaluation_to_schema(s: EvaluationSummary) -> EvaluationOut:
    e = s.evaluation
    return EvaluationOut(
        id=str(e.id),
        projectId=str(e.project_id),
        status=e.status,
        advisorWeight=e.advisor_weight,
        committeeWeight=e.committee_weight,
        finalScore=e.final_score,
        advisorAverage=s.advisor_average,
        committeeAverage=s.committee_average,
        projectedScore=s.projected_score,
        scores=[
            ScoreOut(
                id=str(r.id),
                evaluatorId=r.evaluator_id,
                role=r.role,
                score=r.score,
                comment=r.comment,
            )
            for r in e.scores
        ],
    )


def committee_member_to_schema(m: DefenseCommitteeMember) -> CommitteeMemberOut:
    return CommitteeMemberOut(
        id=str(m.id),
        committeeId=str(m.committee_id),
        facultyMemberId=m.faculty_member_id,
        role=m.role,
    )


def committee_to_schema(c: DefenseCommittee) -> CommitteeOut:
    return CommitteeOut(
        id=str(c.id),
        projectId=str(c.project_id),
        name=c.name,
        description=c.description,
        defenseDate=_iso(c.defense_date),
        location=c.location,
        status=c.status,
        createdById=c.created_by_id,
        members=[committee_member_to_schema(m) for m in c.members],
    )
