"""Application service functions."""

from typing import Sequence
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.applications import ApplicationUpdate, QuestionAnswer
from core.exceptions import DuplicateApplication, NotFoundError
from core.transitions import APPLICATION_STATUS_TRANSITIONS, ensure_transition
from database.models.applications import Application, ApplicationStatus, QuestionResponse

logger = logging.getLogger(__name__)


async def application_exists(
    db: AsyncSession, organization_id: str, candidate_id: str, job_id: str
) -> bool:
    result = await db.execute(
        select(Application.id).where(
            Application.organization_id == organization_id,
            Application.candidate_id == candidate_id,
            Application.job_id == job_id,
        )
    )
    return result.first() is not None


async def ensure_not_applied(
    db: AsyncSession, organization_id: str, candidate_id: str, job_id: str
) -> None:
    """
    Reject a second application to the same job.

    This only produces the clean error for the common case; the unique
    constraint catches racing submissions in ``create_application``.
    """
    if await application_exists(db, organization_id, candidate_id, job_id):
        raise DuplicateApplication()


async def create_application(
    db: AsyncSession,
    organization_id: str,
    candidate_id: str,
    job_id: str,
    responses: Sequence[QuestionAnswer] = (),
) -> Application:
    """
    Insert a NEW application together with its question responses.

    Both are committed in one transaction. A unique violation means another
    submission won the race and is reported as DuplicateApplication.
    """
    application = Application(
        organization_id=organization_id,
        candidate_id=candidate_id,
        job_id=job_id,
        status=ApplicationStatus.NEW,
    )
    db.add(application)
    try:
        await db.flush()
        db.add_all(
            [
                QuestionResponse(
                    organization_id=organization_id,
                    application_id=application.id,
                    question_id=response.question_id,
                    value=response.value,
                )
                for response in responses
            ]
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Duplicate application for job {job_id} rejected by constraint")
        raise DuplicateApplication()

    logger.info(f"Created application {application.id} for job {job_id}")
    return application


async def get_application(
    db: AsyncSession, organization_id: str, application_id: str
) -> Application:
    result = await db.execute(
        select(Application).where(
            Application.id == application_id,
            Application.organization_id == organization_id,
        )
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError("Application not found")
    return application


async def update_application(
    db: AsyncSession,
    organization_id: str,
    application_id: str,
    changes: ApplicationUpdate,
) -> Application:
    """Apply a recruiter update; status changes must follow the pipeline."""
    application = await get_application(db, organization_id, application_id)

    if changes.status is not None:
        ensure_transition(APPLICATION_STATUS_TRANSITIONS, application.status, changes.status)
        application.status = changes.status
    if "notes" in changes.model_fields_set:
        application.notes = changes.notes
    if "score" in changes.model_fields_set:
        application.score = changes.score

    await db.commit()
    await db.refresh(application)
    logger.info(f"Updated application {application.id} (status={application.status.value})")
    return application
