"""
Organization Model

An organization is the tenant boundary. Every other entity carries an
organization_id and every query filters on it.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Boolean
from database.engine import Base
from database.mixins import IdMixin, TimestampMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.jobs import Job


# ==================== Organization Model ===================== #
class Organization(Base, IdMixin, TimestampMixin):
    """
    Organization (tenant).
    A read-only organization (demo / preview sandbox) rejects every write.
    """

    __tablename__: str = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    is_read_only: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Relationships
    jobs: Mapped[list["Job"]] = relationship(
        "Job", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, slug={self.slug})>"
