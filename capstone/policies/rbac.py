#capstone/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from capstone.core.errors import ForbiddenError
from capstone.models.enums import UserRole


@dataclass(frozen=True)
class Principal:
    """
    Pre-authenticated caller. Passed explicitly into every service call.
    """
    user_id: str
    roles: FrozenSet[UserRole] = field(default_factory=frozenset)
    faculty_id: Optional[str] = None
    display_name: str = "Unknown"

    def has_role(self, *roles: UserRole) -> bool:
        return any(r in self.roles for r in roles)

    @property
    def primary_role(self) -> str:
        """
        Most senior role, used to label comments and audit rows.
        """
        for role in (UserRole.DEAN, UserRole.DEPARTMENT_HEAD, UserRole.LECTURER, UserRole.STUDENT):
            if role in self.roles:
                return role.value
        return "UNKNOWN"


FACULTY_ROLES = frozenset({UserRole.LECTURER, UserRole.DEPARTMENT_HEAD, UserRole.DEAN})


def require_role(principal: Principal, *roles: UserRole) -> None:
    if not principal.has_role(*roles):
        wanted = ", ".join(r.value for r in roles)
        raise ForbiddenError(
            f"Requires one of roles: {wanted}.",
            details={"required": [r.value for r in roles]},
        )
