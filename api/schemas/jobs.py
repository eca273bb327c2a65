"""Job schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from database.models.jobs import JobStatus, JobType


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    slug: str
    location: Optional[str] = None
    type: JobType
    status: JobStatus
    created_at: datetime
    updated_at: datetime
