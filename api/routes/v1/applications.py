"""Application endpoints."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_writable_org
from api.schemas.applications import ApplicationResponse, ApplicationUpdate
from api.schemas.common import error_responses
from api.services import applications as application_service
from core.security import SessionContext
from database.engine import get_db

router = APIRouter(prefix="/applications", tags=["applications"])


@router.patch(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Update Application",
    description="Change status, notes or score. Status changes must follow the hiring pipeline.",
    responses=error_responses(401, 403, 404, 409, 422),
)
async def update_application(
    changes: ApplicationUpdate,
    application_id: str = Path(..., max_length=36),
    session: SessionContext = Depends(require_writable_org),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.update_application(
        db, session.organization_id, application_id, changes
    )
