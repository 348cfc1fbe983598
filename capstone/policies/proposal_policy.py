#capstone/policies/proposal_policy.py
from __future__ import annotations

from capstone.models.enums import UserRole
from capstone.models.proposed_project import ProposedProject
from capstone.policies.rbac import FACULTY_ROLES, Principal


def can_create_proposal(principal: Principal) -> bool:
    return principal.has_role(*FACULTY_ROLES)


def is_student_member(principal: Principal, proposal: ProposedProject) -> bool:
    return (
        principal.has_role(UserRole.STUDENT)
        and principal.user_id in proposal.active_student_ids()
    )


def is_advisor(principal: Principal, proposal: ProposedProject) -> bool:
    return principal.user_id in proposal.active_advisor_ids()


def _same_faculty(principal: Principal, proposal: ProposedProject) -> bool:
    # unscoped proposals or principals are not restricted
    if not principal.faculty_id or not proposal.faculty_id:
        return True
    return principal.faculty_id == proposal.faculty_id


def is_department_head_for(principal: Principal, proposal: ProposedProject) -> bool:
    return principal.has_role(UserRole.DEPARTMENT_HEAD) and _same_faculty(principal, proposal)


def can_manage_members(principal: Principal, proposal: ProposedProject) -> bool:
    return principal.user_id == proposal.created_by_id or is_advisor(principal, proposal)


def is_participant(principal: Principal, proposal: ProposedProject) -> bool:
    if principal.user_id in {m.user_id for m in proposal.active_members()}:
        return True
    if principal.user_id == proposal.created_by_id:
        return True
    if principal.has_role(UserRole.DEAN):
        return _same_faculty(principal, proposal)
    return is_department_head_for(principal, proposal)


def can_lock_outline(principal: Principal, proposal: ProposedProject) -> bool:
    return principal.has_role(UserRole.DEAN) and _same_faculty(principal, proposal)
