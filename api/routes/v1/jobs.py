"""Job endpoints."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_writable_org
from api.schemas.common import error_responses
from api.schemas.jobs import JobResponse, JobStatusUpdate
from api.services import jobs as job_service
from core.security import SessionContext
from database.engine import get_db

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.patch(
    "/{job_id}",
    response_model=JobResponse,
    summary="Update Job Status",
    responses=error_responses(401, 403, 404, 409, 422),
)
async def update_job_status(
    body: JobStatusUpdate,
    job_id: str = Path(..., max_length=36),
    session: SessionContext = Depends(require_writable_org),
    db: AsyncSession = Depends(get_db),
):
    return await job_service.update_job_status(db, session.organization_id, job_id, body.status)
