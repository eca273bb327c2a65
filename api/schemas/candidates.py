"""Candidate-related Pydantic schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import TimestampMixin
from api.schemas.documents import DocumentSummary
from database.models.applications import ApplicationStatus


class JobReference(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str


class CandidateApplicationSummary(BaseModel):
    """Application as listed on a candidate profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: ApplicationStatus
    created_at: datetime
    job: JobReference


class CandidateDetail(TimestampMixin):
    """Candidate profile with applications and documents, newest first."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Unique candidate identifier")
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    applications: list[CandidateApplicationSummary] = Field(default_factory=list)
    documents: list[DocumentSummary] = Field(default_factory=list)
