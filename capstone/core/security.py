# capstone/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import jwt

from capstone.core.config import get_settings


def create_access_token(
    subject: str,
    roles: Iterable[str],
    *,
    faculty_id: Optional[str] = None,
    display_name: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Issue a bearer token carrying the principal claims the workflow trusts.
    Login itself lives in the identity service; this is used by it and by tests.
    """
    settings = get_settings()
    exp_minutes = expires_minutes or settings.jwt_access_token_minutes
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
        "roles": sorted(set(roles)),
        "faculty_id": faculty_id,
        "display_name": display_name,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
