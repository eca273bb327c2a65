"""
Session token handling.

Sessions are issued by an external auth service as signed JWTs. A token
carries the user id (``sub``) and, once the user has picked one, the active
organization (``org_id``).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt


@dataclass(frozen=True)
class SessionContext:
    """Authenticated caller resolved from a session token."""

    user_id: str
    organization_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


def decode_session_token(token: str, secret: str, algorithm: str = "HS256") -> SessionContext:
    """
    Verify a session token and extract the caller.

    Raises:
        jwt.ExpiredSignatureError: token expired
        jwt.InvalidTokenError: bad signature, malformed token or missing ``sub``
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        options={"require": ["sub"]},
    )
    return SessionContext(
        user_id=str(payload["sub"]),
        organization_id=payload.get("org_id"),
        email=payload.get("email"),
        name=payload.get("name"),
    )


def create_session_token(
    user_id: str,
    secret: str,
    algorithm: str = "HS256",
    organization_id: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
    **claims: Any,
) -> str:
    """Sign a session token (local development and tests)."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {"sub": user_id, "iat": now, "exp": now + expires_in, **claims}
    if organization_id:
        payload["org_id"] = organization_id
    return jwt.encode(payload, secret, algorithm=algorithm)
