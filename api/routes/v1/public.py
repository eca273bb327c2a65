"""
Public, unauthenticated endpoints.

Anonymous candidates apply to open jobs by slug. The route is rate limited
per client IP by ``RateLimitMiddleware``.
"""

import logging

from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_storage
from api.schemas.applications import SubmissionAccepted
from api.schemas.common import error_responses
from api.services.intake import parse_submission, submit_application
from core.storage.base import BlobStorage
from database.engine import get_db

router = APIRouter(prefix="/public", tags=["public"])
logger = logging.getLogger(__name__)


@router.post(
    "/jobs/{slug}/apply",
    response_model=SubmissionAccepted,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a Job",
    description=(
        "Submit an application as JSON or multipart/form-data. File answers are "
        "sent as parts named `file:<questionId>`; other answers go in a JSON "
        "`responses` field."
    ),
    responses=error_responses(400, 404, 409, 413, 422, 429),
)
async def apply_to_job(
    request: Request,
    slug: str = Path(..., max_length=255, description="Public job slug"),
    db: AsyncSession = Depends(get_db),
    storage: BlobStorage = Depends(get_storage),
):
    submission = await parse_submission(request)

    if submission.is_bot:
        logger.info(f"Honeypot triggered on job {slug}; submission discarded")
        return JSONResponse(status_code=status.HTTP_200_OK, content={"success": True})

    await submit_application(db, storage, slug, submission)
    return SubmissionAccepted()
