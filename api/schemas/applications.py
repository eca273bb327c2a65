"""Application and public submission schemas."""

from datetime import datetime
from typing import Optional, Union
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
)

from database.models.applications import ApplicationStatus


# string | string[] | number | boolean; stored as-is in a JSON column
ResponseValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr, list[StrictStr]]


class QuestionAnswer(BaseModel):
    """One answer to a job question."""

    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId", min_length=1, max_length=36)
    value: ResponseValue


class ApplicationSubmission(BaseModel):
    """Applicant details of a public submission (after the honeypot check)."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", max_length=100)
    last_name: str = Field(alias="lastName", max_length=100)
    email: EmailStr = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    responses: list[QuestionAnswer] = Field(default_factory=list)

    @field_validator("first_name", "last_name", "email", mode="before")
    @classmethod
    def require_trimmed(cls, v, info):
        """Trim required text fields; empty after trimming is missing."""
        labels = {"first_name": "First name", "last_name": "Last name", "email": "Email"}
        if isinstance(v, str):
            v = v.strip()
        if not v:
            raise ValueError(f"{labels[info.field_name]} is required")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def blank_phone_is_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None


class SubmissionAccepted(BaseModel):
    """Acknowledgement of a public submission; carries no internal ids."""

    success: bool = True


class ApplicationUpdate(BaseModel):
    """Recruiter update of an application."""

    status: Optional[ApplicationStatus] = None
    notes: Optional[str] = Field(None, max_length=5000)
    score: Optional[int] = Field(None, ge=0, le=100)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    candidate_id: str
    job_id: str
    status: ApplicationStatus
    score: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
