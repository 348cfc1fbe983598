#capstone/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from capstone.core.security import decode_token
from capstone.models.enums import UserRole
from capstone.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Builds the Principal every service call receives.

    Guarantees:
    - JWT is valid and unexpired
    - `sub` and a non-empty `roles` list are present
    - every role is a known UserRole
    """
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    user_id = payload.get("sub")
    roles = payload.get("roles") or []

    if not user_id or not roles:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        role_set = frozenset(UserRole(r) for r in roles)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid role in token.")

    principal = Principal(
        user_id=str(user_id),
        roles=role_set,
        faculty_id=payload.get("faculty_id"),
        display_name=str(payload.get("display_name") or "Unknown"),
    )

    request.state.principal = principal
    return principal
