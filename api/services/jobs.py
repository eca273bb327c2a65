"""Job service functions."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import JobNotAcceptingApplications, NotFoundError
from core.transitions import JOB_STATUS_TRANSITIONS, ensure_transition
from database.models.jobs import Job, JobStatus

logger = logging.getLogger(__name__)


async def get_open_job_by_slug(db: AsyncSession, slug: str) -> Job:
    """
    Resolve a public slug to an open job.

    Missing and not-open jobs raise the same error so callers cannot tell
    which one applies.
    """
    result = await db.execute(
        select(Job).where(Job.slug == slug, Job.status == JobStatus.OPEN)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise JobNotAcceptingApplications()
    return job


async def get_job(db: AsyncSession, organization_id: str, job_id: str) -> Job:
    result = await db.execute(
        select(Job).where(Job.id == job_id, Job.organization_id == organization_id)
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise NotFoundError("Job not found")
    return job


async def update_job_status(
    db: AsyncSession, organization_id: str, job_id: str, status: JobStatus
) -> Job:
    job = await get_job(db, organization_id, job_id)
    ensure_transition(JOB_STATUS_TRANSITIONS, job.status, status)
    job.status = status
    await db.commit()
    await db.refresh(job)
    logger.info(f"Job {job.id} moved to {job.status.value}")
    return job
