#capstone/policies/evaluation_policy.py
from __future__ import annotations

from typing import Optional

from capstone.models.enums import CommitteeRole, EvaluatorRole, UserRole
from capstone.models.project import Project
from capstone.policies.rbac import Principal


def committee_role_of(principal: Principal, project: Project) -> Optional[CommitteeRole]:
    for m in project.committee_members:
        if m.faculty_member_id == principal.user_id:
            return CommitteeRole(m.role)
    return None


def can_create_evaluation(principal: Principal, project: Project) -> bool:
    if principal.user_id in project.advisor_ids():
        return True
    return committee_role_of(principal, project) == CommitteeRole.CHAIRMAN


def can_score_as(principal: Principal, project: Project, role: EvaluatorRole) -> bool:
    if role == EvaluatorRole.ADVISOR:
        return principal.user_id in project.advisor_ids()
    if role == EvaluatorRole.COMMITTEE:
        return committee_role_of(principal, project) is not None
    return False


def can_finalize(principal: Principal, project: Project) -> bool:
    if committee_role_of(principal, project) == CommitteeRole.SECRETARY:
        return True
    return principal.has_role(UserRole.DEAN)


def can_view_evaluation(principal: Principal, project: Project) -> bool:
    if principal.user_id in {m.user_id for m in project.members}:
        return True
    if committee_role_of(principal, project) is not None:
        return True
    return principal.has_role(UserRole.DEPARTMENT_HEAD, UserRole.DEAN)
