"""FastAPI dependencies for dependency injection."""

from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.tenancy import ensure_writable
from core.config import settings
from core.exceptions import ForbiddenError, UnauthorizedError
from core.middleware.authentication import get_current_session
from core.security import SessionContext
from core.storage.base import BlobStorage, create_storage
from database.engine import get_db


_storage: Optional[BlobStorage] = None


def get_storage() -> BlobStorage:
    """Process-wide blob storage backend, built on first use."""
    global _storage
    if _storage is None:
        _storage = create_storage(settings)
    return _storage


async def require_auth(request: Request) -> SessionContext:
    """
    Require a session with an active organization.

    Raises:
        UnauthorizedError: no session was resolved
        ForbiddenError: the session has no active organization
    """
    session = get_current_session(request)
    if session is None:
        raise UnauthorizedError("Unauthorized")
    if not session.organization_id:
        raise ForbiddenError("No active organization")
    return session


async def require_user(request: Request) -> SessionContext:
    """Require a session; the active organization is optional."""
    session = get_current_session(request)
    if session is None:
        raise UnauthorizedError("Unauthorized")
    return session


async def require_writable_org(
    session: SessionContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Require a session whose organization accepts writes."""
    await ensure_writable(db, session.organization_id)
    return session
