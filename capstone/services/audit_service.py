from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from capstone.core.logging import request_id_var
from capstone.models.audit_log import AuditLog


class AuditAction:
    # Proposal lifecycle
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    TOPIC_SAVED = "TOPIC_SAVED"
    TOPIC_SUBMITTED = "TOPIC_SUBMITTED"
    TOPIC_REVIEWED = "TOPIC_REVIEWED"
    OUTLINE_SAVED = "OUTLINE_SAVED"
    OUTLINE_SUBMITTED = "OUTLINE_SUBMITTED"
    OUTLINE_REVIEWED = "OUTLINE_REVIEWED"
    OUTLINE_LOCKED = "OUTLINE_LOCKED"
    SUBMITTED_TO_HEAD = "SUBMITTED_TO_HEAD"
    HEAD_REVIEWED = "HEAD_REVIEWED"
    FINAL_APPROVED = "FINAL_APPROVED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"

    # Defense committee
    COMMITTEE_CREATED = "COMMITTEE_CREATED"
    COMMITTEE_UPDATED = "COMMITTEE_UPDATED"
    COMMITTEE_DELETED = "COMMITTEE_DELETED"
    COMMITTEE_MEMBER_ASSIGNED = "COMMITTEE_MEMBER_ASSIGNED"
    COMMITTEE_MEMBER_REMOVED = "COMMITTEE_MEMBER_REMOVED"

    # Evaluation
    EVALUATION_CREATED = "EVALUATION_CREATED"
    EVALUATION_UPDATED = "EVALUATION_UPDATED"
    SCORE_SUBMITTED = "SCORE_SUBMITTED"
    EVALUATION_FINALIZED = "EVALUATION_FINALIZED"


def _json_safe(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    return value


class AuditService:
    def write(
        self,
        db: Session,
        *,
        entity_type: str,
        entity_id: Any,
        actor_id: str,
        action: str,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Stage an append-only audit row. Does NOT commit: the caller's
        unit_of_work commits it together with the change it records.
        """
        row = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=actor_id,
            action=action,
            request_id=request_id or request_id_var.get(),
            details_json=_json_safe(details or {}),
        )
        db.add(row)
        return row
