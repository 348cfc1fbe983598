# capstone/core/proposal_graph.py
from typing import Dict, Set

from capstone.core.errors import InvalidTransitionError
from capstone.models.enums import ProposedProjectStatus as S

ALLOWED_PROPOSAL_TRANSITIONS: Dict[S, Set[S]] = {
    S.TOPIC_SUBMISSION_PENDING: {S.TOPIC_PENDING_ADVISOR},

    S.TOPIC_PENDING_ADVISOR: {
        S.TOPIC_APPROVED,
        S.TOPIC_REQUESTED_CHANGES,
    },

    # student resubmits
    S.TOPIC_REQUESTED_CHANGES: {S.TOPIC_PENDING_ADVISOR},

    S.TOPIC_APPROVED: {S.OUTLINE_PENDING_SUBMISSION},

    S.OUTLINE_PENDING_SUBMISSION: {S.OUTLINE_PENDING_ADVISOR},

    S.OUTLINE_PENDING_ADVISOR: {
        S.OUTLINE_APPROVED,
        S.OUTLINE_REQUESTED_CHANGES,
        S.OUTLINE_REJECTED,
    },

    S.OUTLINE_REQUESTED_CHANGES: {S.OUTLINE_PENDING_ADVISOR},

    # head may act on OUTLINE_APPROVED directly, same as on PENDING_HEAD
    S.OUTLINE_APPROVED: {
        S.PENDING_HEAD,
        S.OUTLINE_PENDING_ADVISOR,
        S.OUTLINE_PENDING_SUBMISSION,
        S.APPROVED_BY_HEAD,
        S.REQUESTED_CHANGES_HEAD,
        S.REJECTED_BY_HEAD,
    },

    S.PENDING_HEAD: {
        S.APPROVED_BY_HEAD,
        S.REQUESTED_CHANGES_HEAD,
        S.REJECTED_BY_HEAD,
    },

    S.REQUESTED_CHANGES_HEAD: {S.PENDING_HEAD},

    S.APPROVED_BY_HEAD: set(),
    S.REJECTED_BY_HEAD: set(),
    S.OUTLINE_REJECTED: set(),
}

TERMINAL_STATUSES: Set[S] = {
    status for status, targets in ALLOWED_PROPOSAL_TRANSITIONS.items() if not targets
}

# statuses in which the department head may decide
HEAD_REVIEWABLE_STATUSES: Set[S] = {S.OUTLINE_APPROVED, S.PENDING_HEAD}

# statuses in which the topic title/description may still be edited
TOPIC_EDITABLE_STATUSES: Set[S] = {S.TOPIC_SUBMISSION_PENDING, S.TOPIC_REQUESTED_CHANGES}

OUTLINE_SUBMITTABLE_STATUSES: Set[S] = {
    S.TOPIC_APPROVED,
    S.OUTLINE_PENDING_SUBMISSION,
    S.OUTLINE_REQUESTED_CHANGES,
    S.OUTLINE_APPROVED,
}


def can_transition(current: S, target: S) -> bool:
    return target in ALLOWED_PROPOSAL_TRANSITIONS.get(current, set())


def assert_transition(current: S, target: S) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move proposal from {current.value} to {target.value}.",
            details={"from": current.value, "to": target.value},
        )
