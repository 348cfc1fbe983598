#capstone/models/enums.py
from __future__ import annotations
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    LECTURER = "LECTURER"
    DEPARTMENT_HEAD = "DEPARTMENT_HEAD"
    DEAN = "DEAN"


class ProposedProjectStatus(str, Enum):
    # topic
    TOPIC_SUBMISSION_PENDING = "TOPIC_SUBMISSION_PENDING"
    TOPIC_PENDING_ADVISOR = "TOPIC_PENDING_ADVISOR"
    TOPIC_REQUESTED_CHANGES = "TOPIC_REQUESTED_CHANGES"
    TOPIC_APPROVED = "TOPIC_APPROVED"

    # outline
    OUTLINE_PENDING_SUBMISSION = "OUTLINE_PENDING_SUBMISSION"
    OUTLINE_PENDING_ADVISOR = "OUTLINE_PENDING_ADVISOR"
    OUTLINE_REQUESTED_CHANGES = "OUTLINE_REQUESTED_CHANGES"
    OUTLINE_REJECTED = "OUTLINE_REJECTED"
    OUTLINE_APPROVED = "OUTLINE_APPROVED"

    # department head
    PENDING_HEAD = "PENDING_HEAD"
    REQUESTED_CHANGES_HEAD = "REQUESTED_CHANGES_HEAD"
    REJECTED_BY_HEAD = "REJECTED_BY_HEAD"
    APPROVED_BY_HEAD = "APPROVED_BY_HEAD"


class ProposalOutlineStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"
    LOCKED = "LOCKED"


class MemberRole(str, Enum):
    STUDENT = "STUDENT"
    LEADER = "LEADER"
    MEMBER = "MEMBER"
    ADVISOR = "ADVISOR"


STUDENT_MEMBER_ROLES = {MemberRole.STUDENT, MemberRole.LEADER, MemberRole.MEMBER}


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class ReviewDecision(str, Enum):
    approve = "approve"
    request_changes = "request_changes"
    reject = "reject"


class MemberAction(str, Enum):
    add = "add"
    remove = "remove"


class ProjectStatus(str, Enum):
    WAITING_FOR_EVALUATION = "WAITING_FOR_EVALUATION"
    COMPLETED = "COMPLETED"


class CommitteeRole(str, Enum):
    CHAIRMAN = "CHAIRMAN"
    SECRETARY = "SECRETARY"
    MEMBER = "MEMBER"


class DefenseCommitteeStatus(str, Enum):
    PREPARING = "PREPARING"
    ONGOING = "ONGOING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class EvaluationStatus(str, Enum):
    PENDING = "PENDING"
    EVALUATED = "EVALUATED"


class EvaluatorRole(str, Enum):
    ADVISOR = "ADVISOR"
    COMMITTEE = "COMMITTEE"
