"""
Domain errors raised by the workflow and evaluation services.

Each error carries a machine-readable ``code``, a human-readable ``message``
and optional ``details``; the API layer renders them as
``{"code", "message", "details"}`` with ``status_code``.

Usage:
    from capstone.core.errors import InvalidTransitionError

    if current not in allowed:
        raise InvalidTransitionError("Topic is not awaiting advisor review.")
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base exception for all workflow/evaluation errors"""

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError, ValueError):
    """Malformed or missing input; caller corrects input and retries"""

    code = "VALIDATION_ERROR"
    status_code = 422


class ForbiddenError(DomainError, PermissionError):
    """Caller does not hold the role for this edge"""

    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(DomainError, LookupError):
    """Entity id does not exist"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class InvalidTransitionError(DomainError, ValueError):
    """Proposal/outline status does not allow the requested edge"""

    code = "INVALID_TRANSITION"
    status_code = 409


class InvalidStateError(DomainError, ValueError):
    """Entity is in a state incompatible with the operation (e.g. finalized evaluation)"""

    code = "INVALID_STATE"
    status_code = 409


class ConflictError(DomainError, ValueError):
    """Optimistic-concurrency collision; refetch and retry the same operation"""

    code = "CONFLICT"
    status_code = 409
