"""
Job Models

Jobs are published by an organization and addressed publicly by a globally
unique slug. Each job owns an ordered set of custom application questions.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    Integer,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base
from database.mixins import IdMixin, TimestampMixin, enum_values
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.organizations import Organization


# ==================== Job Enums ===================== #
class JobType(str, PyEnum):
    """Employment type of the posting."""

    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


class JobStatus(str, PyEnum):
    """Publication status. Only OPEN jobs accept public applications."""

    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


class QuestionType(str, PyEnum):
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"
    DATE = "date"
    URL = "url"
    CHECKBOX = "checkbox"
    FILE_UPLOAD = "file_upload"


SELECT_QUESTION_TYPES = frozenset({QuestionType.SINGLE_SELECT, QuestionType.MULTI_SELECT})


# ==================== Job Model ===================== #
class Job(Base, IdMixin, TimestampMixin):
    """Job posting."""

    __tablename__ = "jobs"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # Public URLs carry no tenant prefix, so the slug is unique across all orgs
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))
    type: Mapped[JobType] = mapped_column(
        SQLEnum(JobType, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=JobType.FULL_TIME,
    )
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=JobStatus.DRAFT,
        index=True,
    )

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="jobs")
    questions: Mapped[list["JobQuestion"]] = relationship(
        "JobQuestion",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobQuestion.display_order",
    )

    __table_args__ = (Index("idx_job_org_status", "organization_id", "status"),)

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, slug={self.slug}, status={self.status})>"


# ==================== Job Question Model ===================== #
class JobQuestion(Base, IdMixin, TimestampMixin):
    """
    Custom question attached to a job's application form.
    Deleted together with its job.
    """

    __tablename__ = "job_questions"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[QuestionType] = mapped_column(
        SQLEnum(QuestionType, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
    )
    label: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000))
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Ordered choices; mandatory for select types
    options: Mapped[list[str] | None] = mapped_column(JSON)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    job: Mapped["Job"] = relationship("Job", back_populates="questions")

    __table_args__ = (Index("idx_job_question_job_order", "job_id", "display_order"),)

    @property
    def is_file_upload(self) -> bool:
        return self.type == QuestionType.FILE_UPLOAD

    def __repr__(self) -> str:
        return f"<JobQuestion(id={self.id}, type={self.type}, required={self.required})>"
