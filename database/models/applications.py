"""
Application Models

An application links one candidate to one job inside an organization and
moves through the hiring pipeline. Answers to the job's custom questions are
stored as QuestionResponse rows.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    Integer,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from database.engine import Base
from database.mixins import IdMixin, TimestampMixin, CreatedAtMixin, enum_values
from enum import Enum as PyEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.candidates import Candidate
    from database.models.jobs import Job, JobQuestion


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Hiring pipeline stage."""

    NEW = "new"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    HIRED = "hired"
    REJECTED = "rejected"


# ==================== Application Model ===================== #
class Application(Base, IdMixin, TimestampMixin):
    """
    Candidate application to a job.
    At most one row per (organization, candidate, job); the unique constraint
    is the authority, application code only pre-checks for a friendlier error.
    """

    __tablename__ = "applications"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    candidate_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=ApplicationStatus.NEW,
    )
    score: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    candidate: Mapped["Candidate"] = relationship("Candidate", back_populates="applications")
    job: Mapped["Job"] = relationship("Job")
    responses: Mapped[list["QuestionResponse"]] = relationship(
        "QuestionResponse",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "candidate_id", "job_id", name="uq_application_org_candidate_job"
        ),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_application_score"),
        Index("idx_application_org_status", "organization_id", "status"),
        Index("idx_application_job", "job_id"),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status})>"


# ==================== Question Response Model ===================== #
class QuestionResponse(Base, IdMixin, CreatedAtMixin):
    """
    Answer to one job question.

    ``value`` is schema-less JSON: a string, list of strings, number or
    boolean. For file_upload questions it holds the Document id.
    """

    __tablename__ = "question_responses"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    application_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("job_questions.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[Any] = mapped_column(JSON, nullable=False)

    # Relationships
    application: Mapped["Application"] = relationship("Application", back_populates="responses")
    question: Mapped["JobQuestion"] = relationship("JobQuestion")

    __table_args__ = (
        Index("idx_question_response_application", "application_id"),
    )
