"""Candidate service functions."""

from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import NotFoundError
from database.mixins import utcnow
from database.models.applications import Application
from database.models.candidates import Candidate

logger = logging.getLogger(__name__)


async def find_candidate_by_email(
    db: AsyncSession, organization_id: str, email: str
) -> Optional[Candidate]:
    result = await db.execute(
        select(Candidate).where(
            Candidate.organization_id == organization_id,
            Candidate.email == email.lower(),
        )
    )
    return result.scalar_one_or_none()


def fill_missing_fields(
    candidate: Candidate,
    first_name: str,
    last_name: str,
    phone: Optional[str],
) -> None:
    """Copy submitted values only into fields that are empty; never overwrite."""
    if not candidate.first_name and first_name:
        candidate.first_name = first_name
    if not candidate.last_name and last_name:
        candidate.last_name = last_name
    if not candidate.phone and phone:
        candidate.phone = phone
    candidate.updated_at = utcnow()


async def resolve_candidate(
    db: AsyncSession,
    organization_id: str,
    email: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
) -> str:
    """
    Find or create the organization's candidate for ``email``.

    Returns the candidate id. Concurrent submissions for a new email race on
    the (organization_id, email) unique constraint: the loser rolls back,
    re-reads the winner's row and fills its gaps instead.
    """
    email = email.lower()
    candidate = await find_candidate_by_email(db, organization_id, email)

    if candidate is None:
        candidate = Candidate(
            organization_id=organization_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        db.add(candidate)
        try:
            await db.commit()
            logger.info(f"Created candidate {candidate.id} in organization {organization_id}")
            return candidate.id
        except IntegrityError:
            await db.rollback()
            logger.info(f"Concurrent candidate insert in organization {organization_id}, re-reading")
            candidate = await find_candidate_by_email(db, organization_id, email)
            if candidate is None:
                raise

    fill_missing_fields(candidate, first_name, last_name, phone)
    await db.commit()
    return candidate.id


async def get_candidate(db: AsyncSession, organization_id: str, candidate_id: str) -> Candidate:
    """Candidate of the organization, or NotFoundError."""
    result = await db.execute(
        select(Candidate).where(
            Candidate.id == candidate_id,
            Candidate.organization_id == organization_id,
        )
    )
    candidate = result.scalar_one_or_none()
    if candidate is None:
        raise NotFoundError("Candidate not found")
    return candidate


async def get_candidate_detail(
    db: AsyncSession, organization_id: str, candidate_id: str
) -> Candidate:
    """Candidate with applications (and their jobs) and documents loaded."""
    result = await db.execute(
        select(Candidate)
        .options(
            selectinload(Candidate.applications).selectinload(Application.job),
            selectinload(Candidate.documents),
        )
        .where(
            Candidate.id == candidate_id,
            Candidate.organization_id == organization_id,
        )
    )
    candidate = result.scalar_one_or_none()
    if candidate is None:
        raise NotFoundError("Candidate not found")
    return candidate
