"""
Read-only tenant guard.

Demo / preview organizations accept reads but reject every write with a
ReadOnlyTenantError (code PREVIEW_READ_ONLY) before anything is mutated. An
organization is read-only when flagged in the database or when its slug is
the configured DEMO_ORG_SLUG.
"""

from typing import Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import ReadOnlyTenantError
from database.models.organizations import Organization

logger = logging.getLogger(__name__)


def is_read_only(organization: Organization, demo_org_slug: Optional[str] = None) -> bool:
    if organization.is_read_only:
        return True
    demo_slug = demo_org_slug if demo_org_slug is not None else settings.demo_org_slug
    return bool(demo_slug) and organization.slug == demo_slug


async def ensure_writable(db: AsyncSession, organization_id: str) -> None:
    """Raise ReadOnlyTenantError when the organization rejects writes."""
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    organization = result.scalar_one_or_none()
    if organization is not None and is_read_only(organization):
        logger.info(f"Blocked write to read-only organization {organization_id}")
        raise ReadOnlyTenantError()
