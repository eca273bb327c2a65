"""
Candidate Models

Candidates are job seekers known to one organization. Within an organization
a candidate is identified by their lowercased email; repeated public
applications with the same email resolve to the same profile.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, ForeignKey, UniqueConstraint
from database.engine import Base
from database.mixins import IdMixin, TimestampMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Application
    from database.models.documents import Document


# ==================== Candidate Model ===================== #
class Candidate(Base, IdMixin, TimestampMixin):
    """
    Candidate profile scoped to one organization.
    (organization_id, email) is unique; email is always stored lowercased.
    """

    __tablename__ = "candidates"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))

    # Relationships
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="candidate",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document",
        back_populates="candidate",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "email", name="uq_candidate_org_email"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, organization_id={self.organization_id})>"
